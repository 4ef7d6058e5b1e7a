import asyncio
import contextlib
import struct
from typing import Any, Dict, Optional, Set

from .base import AbstractTransport, OnFrame

FRAME_HEADER = struct.Struct("!I")


async def read_frame(reader: asyncio.StreamReader) -> bytes:
    header = await reader.readexactly(FRAME_HEADER.size)
    (length,) = FRAME_HEADER.unpack(header)
    return await reader.readexactly(length)


async def write_frame(writer: asyncio.StreamWriter, data: bytes) -> None:
    writer.write(FRAME_HEADER.pack(len(data)))
    writer.write(data)
    await writer.drain()


def _peer_label(writer: asyncio.StreamWriter) -> str:
    peername = writer.get_extra_info("peername")
    return f"{peername[0]}:{peername[1]}" if isinstance(peername, tuple) else str(peername)


class TcpTransport(AbstractTransport):
    """Length-prefixed frames over asyncio streams.

    Outbound connections are cached per ``host:port`` and read in the
    background, so replies written on the dialed socket reach the
    frame callback as well.
    """

    def __init__(self, host: str, port: int, dial_timeout: float = 3.0):
        self._host = host
        self._port = port
        self._dial_timeout = dial_timeout
        self._server: Optional[asyncio.base_events.Server] = None
        self._on_frame_cb: Optional[OnFrame] = None
        self._writers: Dict[str, asyncio.StreamWriter] = {}
        self._readers: Set[asyncio.Task] = set()

    @property
    def local_address(self) -> str:
        return f"{self._host}:{self._port}"

    def set_on_frame(self, callback: OnFrame) -> None:
        self._on_frame_cb = callback

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._read_loop, self._host, self._port)
        if self._port == 0 and self._server.sockets:
            self._port = self._server.sockets[0].getsockname()[1]

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        for task in list(self._readers):
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        for writer in list(self._writers.values()):
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()
        self._writers.clear()

    async def _read_loop(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        remote_addr = _peer_label(writer)
        try:
            while True:
                payload = await read_frame(reader)
                if self._on_frame_cb:
                    await self._on_frame_cb(payload, remote_addr, writer)
        except (asyncio.IncompleteReadError, ConnectionResetError):
            writer.close()

    async def _ensure_writer(self, addr: str) -> asyncio.StreamWriter:
        writer = self._writers.get(addr)
        if writer and not writer.is_closing():
            return writer
        host, port_s = addr.rsplit(":", 1)
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, int(port_s)), timeout=self._dial_timeout
        )
        self._writers[addr] = writer
        task = asyncio.get_running_loop().create_task(self._read_loop(reader, writer))
        self._readers.add(task)
        task.add_done_callback(self._readers.discard)
        return writer

    async def send(self, addr: str, data: bytes) -> None:
        writer = await self._ensure_writer(addr)
        await write_frame(writer, data)

    async def send_via_context(self, ctx: Any, data: bytes) -> None:
        if not isinstance(ctx, asyncio.StreamWriter):
            raise RuntimeError("invalid TCP context")
        await write_frame(ctx, data)
