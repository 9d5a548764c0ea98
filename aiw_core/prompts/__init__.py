"""欢迎语加载工具。

按语言(locale) 从 prompts/<locale> 目录读取在线演示的欢迎语，
用于初始化或重置会话时生成第一条 assistant 消息。
"""

from pathlib import Path


PROMPTS_DIR = Path(__file__).resolve().parent


def load_welcome_message(locale: str = "en") -> str:
    """加载欢迎语文本；找不到对应语言时回退到英文。"""

    fname = PROMPTS_DIR / locale / "welcome.md"
    if not fname.exists():
        fname = PROMPTS_DIR / "en" / "welcome.md"
    return fname.read_text(encoding="utf-8").strip()
