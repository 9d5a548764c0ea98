"""领域层模型与协议。

包含：
- models: 统一的 Turn / CompletionRequest / SendOutcome 模型。
- conversation: 存储变更事件、键值存储协议以及消息序列的编解码。
- exceptions: 业务异常类型定义。
"""
