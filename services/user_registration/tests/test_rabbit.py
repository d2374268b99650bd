import json
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aio_pika import DeliveryMode

import libs.rabbit as rabbit
from libs.exceptions import ChannelUnavailable
from libs.rabbit import UserPublisher, declare_registration_queue, encode_payload, open_channel
from libs.validation import UserPayload


def _payload() -> UserPayload:
    return UserPayload(name="Teste Jest", email="teste.jest@example.com", phone="987654321")


def _channel(closed: bool = False) -> SimpleNamespace:
    return SimpleNamespace(
        is_closed=closed,
        default_exchange=SimpleNamespace(publish=AsyncMock()),
        declare_queue=AsyncMock(return_value=SimpleNamespace(name="user_registration_queue")),
        set_qos=AsyncMock(),
        close=AsyncMock(),
    )


def test_encode_payload_is_compact_json():
    body = encode_payload(_payload())
    assert body == b'{"name":"Teste Jest","email":"teste.jest@example.com","phone":"987654321"}'


@pytest.mark.asyncio
async def test_publish_sends_persistent_json_message():
    channel = _channel()
    publisher = UserPublisher(channel, "user_registration_queue")

    await publisher.publish(_payload())

    channel.default_exchange.publish.assert_awaited_once()
    message = channel.default_exchange.publish.await_args.args[0]
    assert channel.default_exchange.publish.await_args.kwargs["routing_key"] == "user_registration_queue"
    assert json.loads(message.body) == _payload().model_dump()
    assert message.delivery_mode == DeliveryMode.PERSISTENT
    assert message.content_type == "application/json"


@pytest.mark.asyncio
@pytest.mark.parametrize("channel", [None, _channel(closed=True)])
async def test_publish_without_open_channel_raises(channel):
    publisher = UserPublisher(channel)

    with pytest.raises(ChannelUnavailable):
        await publisher.publish(_payload())


@pytest.mark.asyncio
async def test_publish_broker_error_propagates():
    channel = _channel()
    channel.default_exchange.publish.side_effect = ConnectionError("broker gone")
    publisher = UserPublisher(channel)

    with pytest.raises(ConnectionError):
        await publisher.publish(_payload())


@pytest.mark.asyncio
async def test_declare_registration_queue_is_durable():
    channel = _channel()

    await declare_registration_queue(channel, "user_registration_queue")

    channel.declare_queue.assert_awaited_once_with("user_registration_queue", durable=True)


def _connection(channel) -> SimpleNamespace:
    return SimpleNamespace(channel=AsyncMock(return_value=channel), close=AsyncMock())


@pytest.mark.asyncio
async def test_open_channel_sets_qos_and_closes(monkeypatch):
    channel = _channel()
    connection = _connection(channel)
    monkeypatch.setattr(rabbit.aio_pika, "connect", AsyncMock(return_value=connection))

    async with open_channel("amqp://localhost/", prefetch_count=1) as ch:
        assert ch is channel

    channel.set_qos.assert_awaited_once_with(prefetch_count=1)
    channel.close.assert_awaited_once()
    connection.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_open_channel_closes_on_error_and_logs_close_failures(monkeypatch, caplog):
    channel = _channel()
    channel.close.side_effect = RuntimeError("already closed")
    connection = _connection(channel)
    monkeypatch.setattr(rabbit.aio_pika, "connect", AsyncMock(return_value=connection))

    with pytest.raises(ValueError):
        async with open_channel("amqp://localhost/"):
            raise ValueError("boom")

    channel.set_qos.assert_not_called()
    channel.close.assert_awaited_once()
    connection.close.assert_awaited_once()
    assert "Error closing RabbitMQ channel" in caplog.text


@pytest.mark.asyncio
async def test_open_channel_connect_failure_propagates(monkeypatch):
    monkeypatch.setattr(rabbit.aio_pika, "connect", AsyncMock(side_effect=ConnectionError("refused")))

    with pytest.raises(ConnectionError):
        async with open_channel("amqp://localhost/"):
            pass
