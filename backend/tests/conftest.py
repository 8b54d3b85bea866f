"""
PicHealth API — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Environment variables are set BEFORE anything from `pichealth` is
       imported, because the settings singleton (and the Gemini client and
       retry policy built from it) are created at import time.

Fixture Hierarchy:
    ├── fake_llm:          scripted LLMService (no network, records calls)
    ├── model_responses:   canned model output per domain
    ├── scan_log_mock:     ScanLogService stand-in with AsyncMock recorders
    ├── image_store_mock:  ImageStore stand-in
    ├── app:               fresh create_app() with the three overridden
    ├── test_client:       HTTPX AsyncClient over ASGITransport
    ├── api_headers:       a valid x-api-key header
    ├── temp_storage:      per-test storage directory
    └── sample_image_*:    tiny JPEG bytes / data URI / DecodedImage
"""

import base64
import os
import tempfile
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Override settings for testing BEFORE any pichealth imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["GEMINI_API_KEY"] = "test-key-not-real"
os.environ["OCR_API_KEY"] = "test-key-1, test-key-2"
os.environ["ALLOWED_ORIGINS"] = "https://app.pichealth.test,*.partner.test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="pichealth_test_")
os.environ["RETRY_MAX_ATTEMPTS"] = "1"  # no backoff sleeps in failure tests
os.environ["LOG_LEVEL"] = "WARNING"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from pichealth.services.image_service import DecodedImage  # noqa: E402
from pichealth.services.llm_base import LLMService  # noqa: E402


class FakeLLM(LLMService):
    """
    Scripted model client.

    `responses` are returned in order (the last one repeats); `error`, when
    set, is raised instead. Every call is recorded in `calls`.
    """

    def __init__(self, responses=None, error=None, healthy=True):
        self.responses = list(responses or [])
        self.error = error
        self.healthy = healthy
        self.calls = []

    async def generate(self, prompt, image=None, temperature=None):
        self.calls.append({"prompt": prompt, "image": image, "temperature": temperature})
        if self.error is not None:
            raise self.error
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0] if self.responses else ""

    async def health_check(self):
        return self.healthy


BLOOD_PRESSURE_RESPONSE = """```json
{
  "deviceType": "blood_pressure",
  "bloodPressure": {"systolic": 128, "diastolic": "82", "pulse": "71 bpm"},
  "date": "2024/3/5",
  "time": "下午1:05"
}
```"""

INVOICE_RESPONSE = """Here is the receipt:
{"date": "2024-03-05", "time": "09:12", "items": [
  {"description": "Americano", "quantity": "2", "unitPrice": "NT$60", "price": "120 TX"},
  {"description": "", "quantity": "1", "price": "10"}
]}"""

ADVICE_RESPONSE = """{
  "status": {"level": "elevated", "title": "血壓偏高", "description": "收縮壓略高", "color": "#FFA500"},
  "advice": {
    "summary": "血壓略高，注意飲食",
    "details": ["7日平均收縮壓 135 mmHg"],
    "lifestyle": ["每日步行 30 分鐘"],
    "dietary": ["減少鹽分攝取"],
    "warnings": [],
    "should_see_doctor": false
  }
}"""

SUMMARY_RESPONSE = """```json
{
  "status": {"level": "normal", "title": "Healthy", "description": "All readings in range"},
  "summary": {
    "overview": "Your readings look stable.",
    "details": ["Average blood pressure 118/76 mmHg"],
    "lifestyle": [],
    "dietary": [],
    "warnings": [],
    "should_see_doctor": false
  }
}
```"""


@pytest.fixture
def model_responses():
    """Canned model outputs, one per domain."""
    return {
        "blood_pressure": BLOOD_PRESSURE_RESPONSE,
        "invoice": INVOICE_RESPONSE,
        "advice": ADVICE_RESPONSE,
        "summary": SUMMARY_RESPONSE,
    }


@pytest.fixture
def fake_llm():
    return FakeLLM(responses=[BLOOD_PRESSURE_RESPONSE])


@pytest.fixture
def scan_log_mock():
    mock = MagicMock()
    mock.record_health_scan = AsyncMock(return_value="TW_abc123.jpg")
    mock.record_health_summary = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def image_store_mock():
    store = MagicMock()
    store.upload = AsyncMock(side_effect=lambda data, content_type, key: key)
    return store


@pytest.fixture
def app(fake_llm, scan_log_mock, image_store_mock):
    """A fresh application (own rate-limit table) with collaborators faked."""
    from pichealth.main import create_app
    from pichealth.routes.dependencies import (
        get_image_store,
        get_llm_service,
        get_scan_log_service,
    )

    application = create_app()
    application.dependency_overrides[get_llm_service] = lambda: fake_llm
    application.dependency_overrides[get_scan_log_service] = lambda: scan_log_mock
    application.dependency_overrides[get_image_store] = lambda: image_store_mock
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def api_headers():
    return {"x-api-key": "test-key-1"}


@pytest.fixture
def temp_storage(tmp_path):
    """A fresh storage directory for each test."""
    storage_dir = tmp_path / "storage"
    storage_dir.mkdir()
    return str(storage_dir)


@pytest.fixture
def sample_image_bytes():
    """Smallest valid JPEG: SOI + JFIF header + EOI."""
    return (
        b'\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00'
        b'\xff\xd9'
    )


@pytest.fixture
def sample_image_data_uri(sample_image_bytes):
    return "data:image/jpeg;base64," + base64.b64encode(sample_image_bytes).decode()


@pytest.fixture
def sample_decoded_image(sample_image_bytes):
    return DecodedImage(data=sample_image_bytes, mime_type="image/jpeg", extension="jpg")
