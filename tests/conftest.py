import pytest
from fastapi.testclient import TestClient
import json
import yaml
import importlib
import httpx
import logging
from pathlib import Path

# Mock upstream SSE events
MOCK_STREAMING_EVENTS = [
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "gpt-4o-mini",
        "choices": [
            {
                "index": 0,
                "delta": {"role": "assistant", "content": ""},
                "finish_reason": None,
            }
        ],
    },
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "gpt-4o-mini",
        "choices": [
            {"index": 0, "delta": {"content": "Hello"}, "finish_reason": None}
        ],
    },
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "gpt-4o-mini",
        "choices": [
            {"index": 0, "delta": {"content": " world"}, "finish_reason": None}
        ],
    },
    {
        "id": "chatcmpl-123",
        "object": "chat.completion.chunk",
        "created": 1694268190,
        "model": "gpt-4o-mini",
        "choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}],
    },
]

MOCK_UPSTREAM_ERROR = {
    "error": {"message": "Invalid API key", "code": 401},
}

# Mock configurations
MOCK_CONFIG_DEFAULT = {
    "providers": {
        "openrouter": {
            "url_env": "OPENROUTER_URL",
            "key_env": "OPENROUTER_API_KEY",
            "model_env": "OPENROUTER_MODEL",
        },
        "aimlapi": {
            "url_env": "AIMLAPI_URL",
            "key_env": "AIMLAPI_KEY",
            "model_env": "AIMLAPI_MODEL",
        },
    },
    "settings": {"timeout": 30, "host": "127.0.0.1", "port": 3000},
}

MOCK_ENV = {
    "OPENROUTER_URL": "http://openrouter.example.com/v1/chat/completions",
    "OPENROUTER_API_KEY": "or-test-key",
    "OPENROUTER_MODEL": "or-test-model",
    "AIMLAPI_URL": "http://aimlapi.example.com/v1/chat/completions",
    "AIMLAPI_KEY": "aiml-test-key",
    "AIMLAPI_MODEL": "aiml-test-model",
}


def sse_chunks(events, done=True):
    """Encode events the way an OpenAI-compatible provider frames them"""
    chunks = [f"data: {json.dumps(event)}\n\n".encode() for event in events]
    if done:
        chunks.append(b"data: [DONE]\n\n")
    return chunks


async def aiter_chunks(chunks):
    for chunk in chunks:
        yield chunk


class MockStreamingResponse:
    """Mock for an httpx response opened with stream=True"""

    def __init__(
        self, chunks=None, status_code=200, headers=None, fail_after=None, read_error=None
    ):
        self.status_code = status_code
        self.headers = headers or {"content-type": "text/event-stream"}
        self._chunks = chunks if chunks is not None else sse_chunks(MOCK_STREAMING_EVENTS)
        self._fail_after = fail_after
        self._read_error = read_error
        self.closed = False

    async def aiter_bytes(self):
        for i, chunk in enumerate(self._chunks):
            if self._fail_after is not None and i >= self._fail_after:
                raise httpx.ReadError("Connection reset by peer")
            yield chunk

    async def aread(self):
        if self._read_error is not None:
            raise self._read_error
        return b"".join(self._chunks)

    async def aclose(self):
        self.closed = True


class UpstreamRecorder:
    """Replaces httpx.AsyncClient.send and records what was sent upstream"""

    def __init__(self, response=None, exc=None):
        self.response = response if response is not None else MockStreamingResponse()
        self.exc = exc
        self.requests = []

    # Instances are not bound as methods, so there is no client argument
    async def __call__(self, request, **kwargs):
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return self.response

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


def _reload_relay(monkeypatch, config):
    def mock_read_text(*args, **kwargs):
        return yaml.dump(config)

    monkeypatch.setattr(Path, "read_text", mock_read_text)
    import chatrelay.config
    import chatrelay.api

    importlib.reload(chatrelay.config)
    importlib.reload(chatrelay.api)
    return config


# Shared fixtures
@pytest.fixture
def provider_env(monkeypatch):
    """Provider credentials for both upstreams"""
    for key, value in MOCK_ENV.items():
        monkeypatch.setenv(key, value)
    return MOCK_ENV


@pytest.fixture
def mock_config_default(monkeypatch):
    """Mock config file with both providers"""
    return _reload_relay(monkeypatch, MOCK_CONFIG_DEFAULT)


@pytest.fixture
def test_client(mock_config_default, provider_env):
    """Create a test client for the relay app"""
    from chatrelay.api import app

    return TestClient(app)


@pytest.fixture
def upstream(monkeypatch):
    """Successful streaming upstream"""
    recorder = UpstreamRecorder()
    monkeypatch.setattr(httpx.AsyncClient, "send", recorder)
    return recorder


@pytest.fixture
def relay_log(caplog):
    """Capture records from the relay logger, which does not propagate"""
    relay_logger = logging.getLogger("relay")
    relay_logger.addHandler(caplog.handler)
    yield caplog
    relay_logger.removeHandler(caplog.handler)
