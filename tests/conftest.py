"""
Pytest configuration for the image ingest tests.

Outbound HTTP goes through FakeSession, a stand-in for requests.Session that
records every request and answers from a queue of canned responses.
"""

import io
import json
import sys
from pathlib import Path

import pytest
import requests

FUNCTIONS_DIR = Path(__file__).resolve().parents[1] / "functions"
if str(FUNCTIONS_DIR) not in sys.path:
    sys.path.insert(0, str(FUNCTIONS_DIR))

from image_ingest.config import PipelineConfig  # noqa: E402


class FakeResponse:
    def __init__(self, status_code: int = 200, body=None, text: str | None = None, reason: str = "OK"):
        self.status_code = status_code
        self.reason = reason
        if text is None:
            text = "" if body is None else json.dumps(body)
        self.text = text

    def json(self):
        # json.JSONDecodeError is a ValueError, like requests' own
        return json.loads(self.text)


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: list[dict] = []
        self.closed = False

    def queue(self, response) -> None:
        self.responses.append(response)

    def post(self, url, json=None, headers=None, params=None, timeout=None):
        self.calls.append(
            {"url": url, "json": json, "headers": headers, "params": params, "timeout": timeout}
        )
        if not self.responses:
            raise AssertionError(f"Unexpected request to {url}")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self) -> None:
        self.closed = True


class FakeStream(io.BytesIO):
    """Readable blob content with the ``length`` attribute of func.InputStream."""

    def __init__(self, content: bytes = b"\x89PNG\r\n\x1a\n"):
        super().__init__(content)
        self.length = len(content)


CAT_ANALYSIS = {
    "requestId": "req-1",
    "description": {
        "captions": [{"text": "a cat", "confidence": 0.93}],
        "tags": ["cat", "animal"],
    },
}


@pytest.fixture
def config() -> PipelineConfig:
    return PipelineConfig(
        storage_connection_string="UseDevelopmentStorage=true",
        subscription_key="test-key",
        vision_endpoint="https://vision.example/vision/v2.0",
        sparql_endpoint="https://sparql.example/api",
    )


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def stream() -> FakeStream:
    return FakeStream()


@pytest.fixture
def connection_error() -> Exception:
    return requests.ConnectionError("connection refused")
