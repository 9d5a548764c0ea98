"""在线演示的请求控制器。

状态机：idle -> sending -> idle（成功 / 失败 / 被取代）。

- 任意时刻只有一个发送是“权威”的：新的 send 会先让上一个令牌失效。
- 被取代的请求无论何时返回，都不会再修改 ConversationStore。
- 网络调用的结果统一转换为 Ok / Cancelled / Failed，在 _apply 中一次性分支处理。
- busy 标志总在 finally 中由当前权威的发送清除。
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from aiw_core.chat.cancellation import CancellationToken
from aiw_core.chat.store import ConversationStore
from aiw_core.domain.exceptions import BusinessError
from aiw_core.domain.models import Cancelled, Failed, Ok, SendOutcome, Turn
from aiw_core.infrastructure.logging.logger import logger
from aiw_core.providers.base import CompletionClient


EMPTY_REPLY_PLACEHOLDER = "…"
FAILED_REPLY = "⚠️ Error: failed to get a reply."


def _discard(task: "asyncio.Future[str]") -> None:
    if not task.done():
        task.cancel()
    elif not task.cancelled():
        # 取出异常，避免 "exception was never retrieved" 警告
        task.exception()


class RequestController:
    def __init__(
        self,
        store: ConversationStore,
        client: CompletionClient,
        identity=None,
        on_input_reset: Optional[Callable[[], None]] = None,
    ):
        """初始化控制器。

        Args:
            store: 会话日志（唯一数据源）
            client: 补全服务客户端
            identity: 会话标识提供者（可选），其值随请求一起发送用于关联
            on_input_reset: 发送后清空输入框并恢复焦点的界面回调（可选）
        """
        self._store = store
        self._client = client
        self._identity = identity
        self._on_input_reset = on_input_reset
        self._token: Optional[CancellationToken] = None
        self._send_seq = 0
        self.busy = False
        self.error: Optional[str] = None
        self.draft = ""

    @property
    def state(self) -> str:
        return "sending" if self.busy else "idle"

    @property
    def is_typing(self) -> bool:
        """是否显示“正在输入”提示：忙碌且最后一条 assistant 消息仍为空。"""
        last = self._store.last
        return self.busy and last is not None and last.role == "assistant" and not last.content

    async def submit(self, text: Optional[str] = None) -> Optional[SendOutcome]:
        """界面提交入口：忙碌时忽略，未传 text 时使用输入框草稿。"""
        if self.busy:
            return None
        return await self.send(self.draft if text is None else text)

    async def send(self, text: str) -> Optional[SendOutcome]:
        """发送一条用户消息并等待回复落到日志中。

        Returns:
            本次发送的结果；输入为空时返回 None（静默忽略）。
        """
        content = (text or "").strip()
        if not content:
            return None

        if self._token is not None:
            self._token.cancel()
        token = CancellationToken()
        self._token = token
        self._send_seq += 1
        log_ctx: Dict[str, Any] = {"send_id": self._send_seq}
        start_time = time.time()
        try:
            if self._identity is not None:
                log_ctx["session_id"] = self._identity.get_or_create()

            self.error = None
            user_turn = Turn(role="user", content=content)
            history: List[Turn] = list(self._store.turns) + [user_turn]
            self._store.append(user_turn)
            self._store.append(Turn(role="assistant", content=""))

            self.draft = ""
            if self._on_input_reset is not None:
                self._on_input_reset()

            self.busy = True
            self._log(logging.INFO, "Sending message", log_ctx, message_count=len(history))
            outcome = await self._race(history, token, log_ctx.get("session_id"))
            self._apply(outcome, log_ctx)
        except Exception as e:
            # 观察者或界面回调抛出的异常同样收敛为 Failed
            outcome = self._abort(e, token, log_ctx)
        finally:
            if self._token is token:
                self._token = None
                self.busy = False
        self._log(
            logging.INFO,
            "Send finished",
            log_ctx,
            outcome=type(outcome).__name__,
            elapsed_seconds=round(time.time() - start_time, 2),
        )
        return outcome

    def cancel(self) -> None:
        """使当前请求失效（例如界面卸载时）。"""
        if self._token is not None:
            self._token.cancel()
            self._token = None
        self.busy = False

    def reset(self) -> None:
        self.cancel()
        self.error = None
        self._store.reset()

    async def _race(self, history: List[Turn], token: CancellationToken, session_id: Optional[str]) -> SendOutcome:
        call = asyncio.ensure_future(self._client.complete(history, session_id=session_id))
        waiter = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        # 令牌失效优先：即使调用已经完成，结果也必须丢弃
        if token.cancelled:
            _discard(call)
            return Cancelled()
        try:
            content = call.result()
        except BusinessError as e:
            return Failed(reason=e.message)
        except Exception as e:
            return Failed(reason=str(e) or type(e).__name__)
        return Ok(content=content or "")

    def _apply(self, outcome: SendOutcome, log_ctx: Dict[str, Any]) -> None:
        if isinstance(outcome, Cancelled):
            self._log(logging.INFO, "Send superseded, response ignored", log_ctx)
        elif isinstance(outcome, Ok):
            self._store.replace_last(outcome.content or EMPTY_REPLY_PLACEHOLDER)
        elif isinstance(outcome, Failed):
            self.error = outcome.reason
            self._store.replace_last(FAILED_REPLY)
            self._log(logging.WARNING, "Send failed", log_ctx, error=outcome.reason)
        else:
            raise TypeError(f"Unknown send outcome: {outcome!r}")

    def _abort(self, exc: Exception, token: CancellationToken, log_ctx: Dict[str, Any]) -> Failed:
        outcome = Failed(reason=str(exc) or type(exc).__name__)
        self._log(logging.ERROR, "Send aborted by local error", log_ctx, error=outcome.reason)
        if self._token is not token:
            return outcome
        self.error = outcome.reason
        last = self._store.last
        if last is not None and last.role == "assistant" and not last.content:
            try:
                self._store.replace_last(FAILED_REPLY)
            except Exception as e:
                self._log(logging.ERROR, "Could not mark reply as failed", log_ctx, error=str(e))
        return outcome

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
