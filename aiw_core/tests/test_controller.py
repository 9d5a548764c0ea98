"""测试请求控制器的状态机、取消与失败处理。"""

import asyncio

import pytest

from aiw_core.chat.controller import EMPTY_REPLY_PLACEHOLDER, FAILED_REPLY, RequestController
from aiw_core.chat.store import ConversationStore
from aiw_core.domain.exceptions import ApiError
from aiw_core.domain.models import Cancelled, Failed, Ok, Turn
from aiw_core.infrastructure.storage.json_store import MemoryStorage
from aiw_core.infrastructure.storage.session_identity import SessionIdentity
from aiw_core.providers.http_client import HttpCompletionClient


class FakeClient:
    """立即返回固定回复的补全客户端。"""

    def __init__(self, reply="done", error=None):
        self.reply = reply
        self.error = error
        self.requests = []

    async def complete(self, messages, *, session_id=None):
        self.requests.append((list(messages), session_id))
        if self.error is not None:
            raise self.error
        return self.reply


class ScriptedClient:
    """每次调用都挂起，直到测试手动给出结果。

    使用 shield 让底层 future 在调用被取消后依然可以被 resolve，
    以模拟“被取代的请求稍后才返回”。
    """

    def __init__(self):
        self.calls = []

    async def complete(self, messages, *, session_id=None):
        fut = asyncio.get_running_loop().create_future()
        self.calls.append((list(messages), fut))
        return await asyncio.shield(fut)


async def _settle():
    for _ in range(10):
        await asyncio.sleep(0)


def _store():
    store = ConversationStore(welcome="Welcome")
    store.initialize()
    return store


def _pairs(store):
    return [(t.role, t.content) for t in store.turns]


@pytest.mark.asyncio
async def test_blank_input_is_ignored():
    store = _store()
    client = FakeClient()
    ctl = RequestController(store, client)
    assert await ctl.send("   \n\t") is None
    assert await ctl.send("") is None
    assert len(store) == 1
    assert client.requests == []
    assert ctl.error is None


@pytest.mark.asyncio
async def test_successful_send_replaces_placeholder():
    store = _store()
    client = FakeClient(reply="Sure, pricing starts at $49.")
    resets = []
    ctl = RequestController(store, client, on_input_reset=lambda: resets.append(True))
    ctl.draft = "  Price for 10 users  "
    outcome = await ctl.submit()
    assert outcome == Ok(content="Sure, pricing starts at $49.")
    assert _pairs(store) == [
        ("assistant", "Welcome"),
        ("user", "Price for 10 users"),
        ("assistant", "Sure, pricing starts at $49."),
    ]
    assert ctl.draft == ""
    assert resets == [True]
    assert ctl.busy is False
    assert ctl.state == "idle"


@pytest.mark.asyncio
async def test_history_excludes_placeholder_and_carries_session_id():
    storage = MemoryStorage({"aiw_session_id": "sess-42"})

    class IdentityStub:
        session_storage_key = "aiw_session_id"

    store = _store()
    client = FakeClient()
    ctl = RequestController(store, client, identity=SessionIdentity(storage, IdentityStub()))
    await ctl.send("hello")
    messages, session_id = client.requests[0]
    assert messages == [Turn(role="assistant", content="Welcome"), Turn(role="user", content="hello")]
    assert session_id == "sess-42"


@pytest.mark.asyncio
async def test_empty_reply_becomes_ellipsis():
    store = _store()
    ctl = RequestController(store, FakeClient(reply=""))
    outcome = await ctl.send("hi")
    assert outcome == Ok(content="")
    assert store.last == Turn(role="assistant", content=EMPTY_REPLY_PLACEHOLDER)


@pytest.mark.asyncio
async def test_failure_surfaces_error_and_marks_turn():
    store = _store()
    err = ApiError(code="API_ERROR", message="HTTP 502: upstream down", http_status=502)
    ctl = RequestController(store, FakeClient(error=err))
    outcome = await ctl.send("hi")
    assert outcome == Failed(reason="HTTP 502: upstream down")
    assert ctl.error == "HTTP 502: upstream down"
    assert store.last == Turn(role="assistant", content=FAILED_REPLY)
    assert ctl.busy is False


@pytest.mark.asyncio
async def test_unexpected_exception_is_contained():
    store = _store()
    ctl = RequestController(store, FakeClient(error=RuntimeError("boom")))
    outcome = await ctl.send("hi")
    assert outcome == Failed(reason="boom")
    assert store.last.content == FAILED_REPLY


@pytest.mark.asyncio
async def test_next_send_clears_previous_error():
    store = _store()
    client = FakeClient(error=RuntimeError("boom"))
    ctl = RequestController(store, client)
    await ctl.send("first")
    assert ctl.error == "boom"
    client.error = None
    await ctl.send("second")
    assert ctl.error is None


@pytest.mark.asyncio
async def test_non_overlapping_sends_alternate():
    store = _store()
    ctl = RequestController(store, FakeClient(reply="answer"))
    for text in ["one", "two", "three"]:
        await ctl.send(text)
    roles = [t.role for t in store.turns[1:]]
    assert roles == ["user", "assistant"] * 3
    assert all(t.content for t in store.turns)


@pytest.mark.asyncio
async def test_busy_and_typing_while_pending():
    store = _store()
    client = ScriptedClient()
    ctl = RequestController(store, client)
    task = asyncio.create_task(ctl.send("hi"))
    await _settle()
    assert ctl.busy is True
    assert ctl.is_typing is True
    assert _pairs(store)[-2:] == [("user", "hi"), ("assistant", "")]

    # 普通提交路径在忙碌时被忽略
    assert await ctl.submit("another") is None
    assert len(client.calls) == 1

    client.calls[0][1].set_result("hello")
    await task
    assert ctl.busy is False
    assert ctl.is_typing is False


@pytest.mark.asyncio
async def test_superseded_response_never_mutates_log():
    store = _store()
    client = ScriptedClient()
    ctl = RequestController(store, client)

    task_a = asyncio.create_task(ctl.send("A"))
    await _settle()
    task_b = asyncio.create_task(ctl.send("B"))
    await _settle()
    assert len(client.calls) == 2
    assert task_a.done()
    assert isinstance(task_a.result(), Cancelled)
    assert ctl.busy is True

    # B 的请求上下文包含 A 冻结的占位消息
    assert client.calls[1][0][-1] == Turn(role="user", content="B")

    client.calls[1][1].set_result("reply B")
    assert await task_b == Ok(content="reply B")
    client.calls[0][1].set_result("late reply A")
    await _settle()

    assert _pairs(store) == [
        ("assistant", "Welcome"),
        ("user", "A"),
        ("assistant", ""),
        ("user", "B"),
        ("assistant", "reply B"),
    ]
    assert ctl.error is None
    assert ctl.busy is False


@pytest.mark.asyncio
async def test_superseded_failure_is_silent():
    store = _store()
    client = ScriptedClient()
    ctl = RequestController(store, client)
    task_a = asyncio.create_task(ctl.send("A"))
    await _settle()
    task_b = asyncio.create_task(ctl.send("B"))
    await _settle()
    client.calls[0][1].set_exception(RuntimeError("late failure"))
    client.calls[1][1].set_result("ok")
    await asyncio.gather(task_a, task_b)
    assert ctl.error is None
    assert FAILED_REPLY not in [t.content for t in store.turns]


@pytest.mark.asyncio
async def test_reset_while_pending_discards_response():
    store = _store()
    client = ScriptedClient()
    ctl = RequestController(store, client)
    task = asyncio.create_task(ctl.send("hi"))
    await _settle()
    ctl.reset()
    assert ctl.busy is False
    assert isinstance(await task, Cancelled)
    client.calls[0][1].set_result("too late")
    await _settle()
    assert _pairs(store) == [("assistant", "Welcome")]


@pytest.mark.asyncio
async def test_outer_task_cancellation_clears_busy():
    store = _store()
    ctl = RequestController(store, ScriptedClient())
    task = asyncio.create_task(ctl.send("hi"))
    await _settle()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await _settle()
    assert ctl.busy is False
    assert _pairs(store)[-1] == ("assistant", "")


@pytest.mark.asyncio
async def test_plain_text_response_end_to_end(monkeypatch):
    class Resp:
        status_code = 200
        text = "Hello there"
        headers = {"content-type": "text/plain"}

    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, *a, **kw):
            return Resp()

    class SettingsStub:
        completion_endpoint = "http://demo.local/api/chat"
        request_timeout = None

    monkeypatch.setattr("httpx.AsyncClient", Client)
    store = _store()
    ctl = RequestController(store, HttpCompletionClient(SettingsStub()))
    await ctl.send("hi")
    assert store.last == Turn(role="assistant", content="Hello there")


@pytest.mark.asyncio
async def test_server_error_end_to_end(monkeypatch):
    class Resp:
        status_code = 500
        text = "Internal error"
        headers = {"content-type": "text/plain"}

    class Client:
        def __init__(self, *a, **kw):
            pass

        async def __aenter__(self):
            return self

        async def __aexit__(self, *a):
            return False

        async def post(self, *a, **kw):
            return Resp()

    class SettingsStub:
        completion_endpoint = "http://demo.local/api/chat"
        request_timeout = None

    monkeypatch.setattr("httpx.AsyncClient", Client)
    store = _store()
    ctl = RequestController(store, HttpCompletionClient(SettingsStub()))
    await ctl.send("hi")
    assert store.last == Turn(role="assistant", content=FAILED_REPLY)
    assert "500" in ctl.error
    assert "Internal error" in ctl.error


@pytest.mark.asyncio
async def test_input_reset_hook_error_becomes_failed_outcome():
    store = _store()
    client = FakeClient(reply="ok")
    calls = []

    def flaky_reset():
        calls.append(True)
        if len(calls) == 1:
            raise RuntimeError("focus lost")

    ctl = RequestController(store, client, on_input_reset=flaky_reset)
    outcome = await ctl.send("hello")
    assert outcome == Failed(reason="focus lost")
    assert ctl.error == "focus lost"
    assert not ctl.busy
    assert client.requests == []
    assert _pairs(store)[-2:] == [("user", "hello"), ("assistant", FAILED_REPLY)]

    # 控制器仍可继续使用
    assert await ctl.send("again") == Ok(content="ok")
    assert ctl.error is None
    assert store.last.content == "ok"
