from typing import Any, Dict, Optional

from .base import AbstractTransport, OnFrame


class LoopbackHub:
    """In-process switchboard connecting LoopbackTransport endpoints by address."""

    def __init__(self):
        self._endpoints: Dict[str, "LoopbackTransport"] = {}

    def attach(self, transport: "LoopbackTransport") -> None:
        self._endpoints[transport.local_address] = transport

    def detach(self, transport: "LoopbackTransport") -> None:
        if self._endpoints.get(transport.local_address) is transport:
            self._endpoints.pop(transport.local_address, None)

    def get(self, addr: str) -> Optional["LoopbackTransport"]:
        return self._endpoints.get(addr)


class LoopbackTransport(AbstractTransport):
    def __init__(self, hub: LoopbackHub, address: str):
        self._hub = hub
        self._address = address
        self._on_frame_cb: Optional[OnFrame] = None

    @property
    def local_address(self) -> str:
        return self._address

    def set_on_frame(self, callback: OnFrame) -> None:
        self._on_frame_cb = callback

    async def start(self) -> None:
        self._hub.attach(self)

    async def stop(self) -> None:
        self._hub.detach(self)

    async def send(self, addr: str, data: bytes) -> None:
        target = self._hub.get(addr)
        if target is None:
            raise ConnectionError(f"unreachable:{addr}")
        await target._receive(bytes(data), self._address)

    async def send_via_context(self, ctx: Any, data: bytes) -> None:
        # the reply context is the sender's loopback address
        await self.send(str(ctx), data)

    async def _receive(self, data: bytes, remote_addr: str) -> None:
        if self._on_frame_cb:
            await self._on_frame_cb(data, remote_addr, remote_addr)
