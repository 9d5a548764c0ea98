"""自动滚动跟随。

只有当用户原本就停留在底部附近时，新消息才会触发平滑滚动；
用户向上翻阅历史时绝不强制滚动。
"""

from typing import Callable, Optional, Protocol

from aiw_core.config.settings import settings as default_settings
from aiw_core.domain.conversation import StoreMutation


class ScrollViewport(Protocol):
    """消息列表的滚动容器。"""

    scroll_height: float
    scroll_top: float
    client_height: float

    def scroll_to_bottom(self, smooth: bool = True) -> None:
        ...


class ScrollFollower:
    def __init__(self, viewport: ScrollViewport, threshold: Optional[float] = None, cfg=default_settings):
        self._viewport = viewport
        self._threshold = threshold if threshold is not None else cfg.near_bottom_threshold
        self.last_decision: Optional[bool] = None

    @property
    def threshold(self) -> float:
        return self._threshold

    def distance_from_bottom(self) -> float:
        vp = self._viewport
        return vp.scroll_height - vp.scroll_top - vp.client_height

    def is_near_bottom(self) -> bool:
        return self.distance_from_bottom() < self._threshold

    def attach(self, store) -> Callable[[], None]:
        """订阅 store；需先于渲染层订阅，以便读取到渲染前的几何信息。"""
        return store.subscribe(self.on_mutation)

    def on_mutation(self, event: StoreMutation) -> bool:
        near = self.is_near_bottom()
        self.last_decision = near
        if near:
            self._viewport.scroll_to_bottom(smooth=True)
        return near
