"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AIW_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
        Path(__file__).resolve().parents[1] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except Exception as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- 远端服务 ----
    api_base: str = Field(
        default="https://cloudcompliance.duckdns.org/api/aiw",
        description="认证服务根地址（/auth/login、/auth/me 等）",
    )
    completion_endpoint: str = Field(
        default="http://localhost:3000/api/chat",
        description="在线演示使用的对话补全接口（绝对 URL）",
    )
    request_timeout: Optional[float] = Field(
        default=60.0,
        description="单次补全请求的超时时间（秒），为空表示不限时",
    )

    # ---- 持久化 ----
    storage_root: str = Field(default=".storage", description="存储根目录")
    storage_file: str = Field(default="local_storage.json", description="键值存储文件名")
    chat_storage_key: str = Field(default="aiw_demo_chat", description="会话日志的存储键")
    session_storage_key: str = Field(default="aiw_session_id", description="会话标识的存储键")
    persist_debounce_ms: int = Field(default=150, description="写盘防抖延迟（毫秒）")
    persist_max_turns: int = Field(default=200, description="持久化保留的最大消息条数")

    # ---- 界面行为 ----
    near_bottom_threshold: float = Field(default=180.0, description="自动滚动的距底阈值（像素）")
    locale: str = Field(default="en", description="欢迎语所用语言")

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("completion_endpoint", "api_base")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("persist_debounce_ms", "persist_max_turns")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be positive")
        return v

    @field_validator("near_bottom_threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("threshold must be positive")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            return None
        return v

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_root) / self.storage_file

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
