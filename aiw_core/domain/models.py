"""统一的对话与结果数据模型。

本模块定义了在线演示各组件之间共享的标准数据结构：

- Turn: 一条对话消息（user/assistant/system）。
- CompletionRequest: 发给补全接口的完整请求体。
- Ok / Cancelled / Failed: 一次发送的最终结果（带标签的结果类型）。
- AuthTokens / AuthSession: 认证服务返回的令牌与用户信息。

控制器只根据 SendOutcome 的具体类型分支处理，不再用异常表达“已取消”。
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Union


# 消息角色，与补全接口的 role 字段一一对应
Role = Literal["user", "assistant", "system"]

ROLES = ("user", "assistant", "system")


@dataclass(frozen=True)
class Turn:
    """一条对话消息。

    Turn 本身不可变；替换最后一条消息时会生成新的 Turn 对象。
    """

    role: Role
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """一次补全请求。

    - messages: 按顺序排列的完整上下文，不包含界面上的占位消息。
    - stream: 预留的流式开关，目前始终为 False。
    """

    messages: List[Turn]
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "messages": [t.to_payload() for t in self.messages],
            "stream": self.stream,
        }


@dataclass(frozen=True)
class Ok:
    """请求成功，content 为归一化后的回复文本（可能为空）。"""

    content: str


@dataclass(frozen=True)
class Cancelled:
    """请求已被更新的发送取代，结果必须丢弃。"""


@dataclass(frozen=True)
class Failed:
    """请求失败，reason 为可展示给用户的错误描述。"""

    reason: str


SendOutcome = Union[Ok, Cancelled, Failed]


@dataclass
class AuthTokens:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None


@dataclass
class AuthSession:
    """登录/注册成功后的结果。"""

    user: Dict[str, Any] = field(default_factory=dict)
    tokens: AuthTokens = field(default_factory=AuthTokens)
