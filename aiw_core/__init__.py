"""AIW Core 顶层包。

该包提供 AI 聊天组件营销站点中“在线演示”的会话核心，
包括配置加载、领域模型、补全接口适配、会话日志、请求状态机、
防抖持久化、会话标识以及认证协作方封装。
"""

from aiw_core.api.service import LiveChatDemo, create_live_demo

__all__ = ["LiveChatDemo", "create_live_demo"]
