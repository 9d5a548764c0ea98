import httpx
import pytest

from aiw_core.domain.exceptions import ApiError, NetworkError
from aiw_core.domain.models import Turn
from aiw_core.providers.http_client import HttpCompletionClient


class SettingsStub:
    completion_endpoint = "http://demo.local/api/chat"
    request_timeout = 1.0


class Resp:
    def __init__(self, status_code=200, text="", content_type="application/json", json_data=None):
        self.status_code = status_code
        self.text = text
        self.headers = {"content-type": content_type}
        self._json = json_data

    def json(self):
        if self._json is None:
            raise ValueError("Expecting value")
        return self._json


def _patch_client(monkeypatch, resp, captured=None):
    captured = captured if captured is not None else {}

    class Client:
        def __init__(self, *a, **kw):
            captured["client_kwargs"] = kw

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, json=None, headers=None, **_):
            captured["url"] = url
            captured["payload"] = json
            captured["headers"] = headers
            return resp

    monkeypatch.setattr("httpx.AsyncClient", Client)
    return captured


@pytest.mark.asyncio
async def test_json_reply(monkeypatch):
    captured = _patch_client(monkeypatch, Resp(text='{"reply": "ok"}', json_data={"reply": "ok"}))
    client = HttpCompletionClient(SettingsStub())
    reply = await client.complete([Turn(role="user", content="hi")], session_id="s-1")
    assert reply == "ok"
    assert captured["url"] == "http://demo.local/api/chat"
    assert captured["payload"] == {"messages": [{"role": "user", "content": "hi"}], "stream": False}
    assert captured["headers"]["X-Session-Id"] == "s-1"
    assert captured["client_kwargs"]["timeout"] == 1.0


@pytest.mark.asyncio
async def test_json_without_reply_uses_raw_text(monkeypatch):
    _patch_client(monkeypatch, Resp(text='{"answer": "x"}', json_data={"answer": "x"}))
    reply = await HttpCompletionClient(SettingsStub()).complete([Turn(role="user", content="hi")])
    assert reply == '{"answer": "x"}'


@pytest.mark.asyncio
async def test_invalid_json_degrades_to_text(monkeypatch):
    _patch_client(monkeypatch, Resp(text="{oops", content_type="application/json; charset=utf-8"))
    reply = await HttpCompletionClient(SettingsStub()).complete([Turn(role="user", content="hi")])
    assert reply == "{oops"


@pytest.mark.asyncio
async def test_plain_text_used_verbatim(monkeypatch):
    _patch_client(monkeypatch, Resp(text="Hello there", content_type="text/plain"))
    reply = await HttpCompletionClient(SettingsStub()).complete([Turn(role="user", content="hi")])
    assert reply == "Hello there"


@pytest.mark.asyncio
async def test_non_2xx_raises_api_error(monkeypatch):
    _patch_client(monkeypatch, Resp(status_code=503, text="x" * 1000, content_type="text/plain"))
    with pytest.raises(ApiError) as exc:
        await HttpCompletionClient(SettingsStub()).complete([Turn(role="user", content="hi")])
    assert exc.value.http_status == 503
    assert exc.value.message == "HTTP 503: " + "x" * 300


@pytest.mark.asyncio
async def test_transport_error_raises_network_error(monkeypatch):
    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, url, **_):
            raise httpx.ConnectError("connection refused")

    monkeypatch.setattr("httpx.AsyncClient", Client)
    with pytest.raises(NetworkError) as exc:
        await HttpCompletionClient(SettingsStub()).complete([Turn(role="user", content="hi")])
    assert "connection refused" in exc.value.message
