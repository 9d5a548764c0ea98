import asyncio


class CancellationToken:
    """表示“这一次发送仍然有效”的句柄。

    令牌只能从有效变为失效，不能恢复；每次发送都会换一个新令牌。
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
