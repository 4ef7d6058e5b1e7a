from .base import AbstractTransport, OnFrame
from .loopback import LoopbackHub, LoopbackTransport
from .tcp import TcpTransport

__all__ = ["AbstractTransport", "OnFrame", "LoopbackHub", "LoopbackTransport", "TcpTransport"]
