import pytest


@pytest.fixture(autouse=True)
def _reset_session_storage_flag(monkeypatch):
    """每个测试都从“存储可用”的进程状态开始。"""
    monkeypatch.setattr(
        "aiw_core.infrastructure.storage.session_identity._storage_unavailable", False
    )
