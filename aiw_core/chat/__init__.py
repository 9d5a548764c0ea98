"""在线演示的会话核心。

- store: 会话日志 ConversationStore。
- controller: 请求状态机 RequestController。
- scroll: 自动滚动跟随 ScrollFollower。
- starters: 快捷提问 StarterPrompts。
"""

from aiw_core.chat.cancellation import CancellationToken
from aiw_core.chat.controller import RequestController
from aiw_core.chat.scroll import ScrollFollower, ScrollViewport
from aiw_core.chat.starters import DEFAULT_STARTER_PROMPTS, StarterPrompts
from aiw_core.chat.store import ConversationStore

__all__ = [
    "CancellationToken",
    "ConversationStore",
    "DEFAULT_STARTER_PROMPTS",
    "RequestController",
    "ScrollFollower",
    "ScrollViewport",
    "StarterPrompts",
]
