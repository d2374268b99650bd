import os
import sys
from pathlib import Path

import pytest

# Ensure tests can import the service's 'libs', 'api' and 'scripts' packages
SERVICE_ROOT = Path(__file__).resolve().parents[1]
if str(SERVICE_ROOT) not in sys.path:
    sys.path.insert(0, str(SERVICE_ROOT))

# Keep SMTP credentials out of tests unless a test sets them explicitly
for var in ("SMTP_USERNAME", "SMTP_PASSWORD", "ETHEREAL_USER", "ETHEREAL_PASS"):
    os.environ.pop(var, None)


@pytest.fixture
def user_data() -> dict:
    return {"name": "Teste Jest", "email": "teste.jest@example.com", "phone": "987654321"}


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    from libs.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
