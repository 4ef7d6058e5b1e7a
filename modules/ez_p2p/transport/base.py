import abc
from typing import Any, Awaitable, Callable


OnFrame = Callable[[bytes, str, Any], Awaitable[None]]  # (data, remote_id, reply_ctx)


class AbstractTransport(abc.ABC):
    """Moves opaque frames between channel endpoints.

    ``send`` dials ``addr`` (reusing an open connection when possible);
    ``send_via_context`` replies over the connection an inbound frame
    arrived on, using the ``reply_ctx`` handed to the frame callback.
    """

    @property
    @abc.abstractmethod
    def local_address(self) -> str:
        ...

    @abc.abstractmethod
    def set_on_frame(self, callback: OnFrame) -> None:
        ...

    @abc.abstractmethod
    async def start(self) -> None:
        ...

    @abc.abstractmethod
    async def stop(self) -> None:
        ...

    @abc.abstractmethod
    async def send(self, addr: str, data: bytes) -> None:
        ...

    @abc.abstractmethod
    async def send_via_context(self, ctx: Any, data: bytes) -> None:
        ...
