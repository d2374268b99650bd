import pytest

from libs.exceptions import ValidationError
from libs.validation import UserPayload, export_user_json_schema, validate_user_payload


def test_validate_user_payload_ok(user_data):
    payload = validate_user_payload(user_data)
    assert isinstance(payload, UserPayload)
    assert payload.model_dump() == user_data


def test_validate_user_payload_trims_and_drops_unknown_fields():
    payload = validate_user_payload(
        {"name": "  Ana Lima  ", "email": "ana@example.com", "phone": "912345678", "role": "admin"}
    )
    assert payload.name == "Ana Lima"
    assert payload.email == "ana@example.com"
    assert "role" not in payload.model_dump()


def test_missing_name_mentions_field():
    with pytest.raises(ValidationError) as info:
        validate_user_payload({"email": "invalid@example.com", "phone": "912345678"})
    assert info.value.field == "name"
    assert '"name"' in info.value.message


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"name": "Al"}, "name"),
        ({"name": "x" * 101}, "name"),
        ({"email": "invalid-email"}, "email"),
        ({"phone": "123"}, "phone"),
        ({"phone": "98765432a"}, "phone"),
        ({"phone": 987654321}, "phone"),
        ({"phone": "٩٨٧٦٥٤٣٢١"}, "phone"),
    ],
)
def test_invalid_field_is_reported(user_data, overrides, field):
    with pytest.raises(ValidationError) as info:
        validate_user_payload({**user_data, **overrides})
    assert info.value.field == field
    assert f'"{field}"' in info.value.message


def test_phone_length_matches_producer_schema(user_data):
    # 10 and 11 digit numbers are rejected on both sides of the queue
    for phone in ("1198765432", "11987654321"):
        with pytest.raises(ValidationError):
            validate_user_payload({**user_data, "phone": phone})


def test_all_violations_are_listed():
    with pytest.raises(ValidationError) as info:
        validate_user_payload({"name": "Teste", "email": "email.com", "phone": "123"})
    fields = [err["field"] for err in info.value.errors]
    assert fields == ["email", "phone"]
    assert info.value.field == "email"


@pytest.mark.parametrize("raw", [None, [], "name=Teste", 42])
def test_non_object_body_is_rejected(raw):
    with pytest.raises(ValidationError) as info:
        validate_user_payload(raw)
    assert info.value.field == "body"


def test_export_user_json_schema():
    schema = export_user_json_schema()
    assert set(schema["required"]) == {"name", "email", "phone"}
    assert schema["properties"]["phone"]["pattern"] == r"^[0-9]{9}$"
