from typing import Optional, Sequence, Tuple

from aiw_core.chat.controller import RequestController
from aiw_core.chat.store import ConversationStore
from aiw_core.domain.exceptions import ValidationError
from aiw_core.domain.models import SendOutcome


DEFAULT_STARTER_PROMPTS: Tuple[str, ...] = ("Price for 10 users", "Product bundle", "Book a demo")


class StarterPrompts:
    """欢迎语下方的快捷提问按钮。"""

    def __init__(
        self,
        controller: RequestController,
        store: ConversationStore,
        prompts: Sequence[str] = DEFAULT_STARTER_PROMPTS,
    ):
        self._controller = controller
        self._store = store
        self._prompts = tuple(prompts)

    @property
    def prompts(self) -> Tuple[str, ...]:
        return self._prompts

    @property
    def visible(self) -> bool:
        # 只在会话刚开始（仅有欢迎语）且没有请求在途时显示
        return len(self._store) <= 1 and not self._controller.busy

    async def choose(self, prompt: str) -> Optional[SendOutcome]:
        if prompt not in self._prompts:
            raise ValidationError(code="UNKNOWN_STARTER_PROMPT", message=prompt)
        if self._controller.busy:
            return None
        return await self._controller.send(prompt)
