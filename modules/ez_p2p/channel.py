import asyncio
import time
from typing import Any, Callable, Dict, Optional, Set, Tuple

from .codec import REQUIRED_ENVELOPE_FIELDS, build_envelope, decode_envelope, encode_envelope
from .config import P2PConfig
from .logger import setup_logger
from .peers import Peer, PeerBook
from .security import (
    SUPPORTED_ALGORITHM,
    build_auth,
    fingerprint_public_key,
    generate_identity_key,
    public_key_bytes,
    verify_envelope_signature,
)
from .transport.base import AbstractTransport
from .transport.tcp import TcpTransport


Callback = Callable[[Any, Peer], None]


class PeerChannel:
    """Authenticated message channel between the local identity and its peers.

    Outbound messages are any object exposing a ``TYPE`` class attribute
    and ``to_payload()``; inbound payloads are decoded with the
    ``from_payload`` classmethod of the type registered in
    ``add_callback``. Callbacks run synchronously on the event loop and
    receive ``(message, peer)``.
    """

    def __init__(self, config: P2PConfig, transport: Optional[AbstractTransport] = None):
        self.cfg = config
        self.logger = setup_logger("ez_p2p")
        self._identity_private_key_pem = config.identity_private_key_pem or generate_identity_key()
        self.pub_key = public_key_bytes(self._identity_private_key_pem)
        self.node_id = config.node_id or fingerprint_public_key(self.pub_key)
        self.peers = PeerBook(max_neighbors=config.max_neighbors)
        self.callbacks: Dict[str, Tuple[type, Callback]] = {}
        self._pending: Set[asyncio.Task] = set()
        self._enforce_identity = bool(config.enforce_identity_verification)
        self._signed_message_types = set(config.signed_message_types or [])

        if transport is not None:
            self.transport = transport
        elif config.transport == "tcp":
            self.transport = TcpTransport(config.listen_host, config.listen_port)
        else:
            raise RuntimeError(f"transport '{config.transport}' must be passed explicitly")
        self.transport.set_on_frame(self._on_frame)

    async def start(self):
        await self.transport.start()
        self.logger.info("channel_listen", extra={"extra": {"address": self.transport.local_address, "node_id": self.node_id}})

    async def stop(self):
        await self.drain()
        await self.transport.stop()

    @property
    def busy(self) -> bool:
        return bool(self._pending)

    async def drain(self):
        """Wait until every scheduled send, including ones scheduled meanwhile, has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def connect(self, pub_key: bytes, address: str, contact: Any = None) -> Peer:
        """Register a reachable peer. Each call yields a fresh Peer object."""
        peer = Peer(
            pub_key=bytes(pub_key),
            address=address,
            contact=contact,
            channel=self,
            last_seen_ms=int(time.time() * 1000),
        )
        if not self.peers.add_peer(peer):
            self.logger.info("drop_peer_table_full", extra={"extra": {"address": address}})
        return peer

    def add_callback(self, message_type: type, handler: Callback) -> None:
        self.callbacks[message_type.TYPE] = (message_type, handler)

    def post_dh(self, pub_key: bytes, message: Any) -> None:
        """Fire-and-forget send to the peer owning ``pub_key``.

        Must be called from inside the running event loop; the outcome is
        only logged.
        """
        peer = self.peers.find_by_key(pub_key)
        if peer is None:
            self.logger.info("drop_unknown_peer", extra={"extra": {"type": message.TYPE}})
            return
        data = self._encode_outbound_message(msg_type=message.TYPE, payload=message.to_payload())
        task = asyncio.get_running_loop().create_task(self._deliver(peer, data, message.TYPE))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver(self, peer: Peer, data: bytes, msg_type: str) -> None:
        timeout_sec = max(0.1, self.cfg.send_timeout_ms / 1000.0)
        try:
            if peer.address:
                await asyncio.wait_for(self.transport.send(peer.address, data), timeout=timeout_sec)
            elif peer.reply_ctx is not None:
                await asyncio.wait_for(self.transport.send_via_context(peer.reply_ctx, data), timeout=timeout_sec)
            else:
                raise ConnectionError("no_route")
        except (OSError, RuntimeError, asyncio.TimeoutError) as e:
            self.logger.warning(
                "send_failed",
                extra={"extra": {"type": msg_type, "peer": peer.fingerprint[:16], "err": str(e)}},
            )

    async def _on_frame(self, data: bytes, remote_id: str, ctx: Any):
        if len(data) > self.cfg.msg_size_limit_bytes:
            self.logger.info("drop_oversize_message", extra={"extra": {"size": len(data)}})
            return
        try:
            msg = decode_envelope(data)
        except ValueError as e:
            self.logger.warning("decode_failed", extra={"extra": {"err": str(e)}})
            return

        if not self._validate_envelope(msg):
            return

        msg_type = msg.get("type")
        entry = self.callbacks.get(msg_type)
        if not entry:
            self.logger.info("drop_unknown_type", extra={"extra": {"type": msg_type}})
            return
        message_type, handler = entry
        try:
            message = message_type.from_payload(msg["payload"])
        except ValueError as e:
            self.logger.warning("decode_failed", extra={"extra": {"type": msg_type, "err": str(e)}})
            return

        peer = self._resolve_sender(msg, remote_id, ctx)
        self.logger.debug("message_recv", extra={"extra": {"type": msg_type, "from": remote_id}})
        handler(message, peer)

    def _resolve_sender(self, msg: Dict[str, Any], remote_id: str, ctx: Any) -> Peer:
        sender_key = self._extract_sender_key(msg)
        now_ms = int(time.time() * 1000)
        if sender_key is not None:
            known = self.peers.find_by_key(sender_key)
            if known is not None:
                known.last_seen_ms = now_ms
                if not known.address:
                    known.reply_ctx = ctx
                return known
        peer = Peer(
            pub_key=sender_key or b"",
            address=None,
            channel=self,
            reply_ctx=ctx,
            last_seen_ms=now_ms,
        )
        if sender_key is not None:
            self.peers.add_peer(peer)
        return peer

    @staticmethod
    def _extract_sender_key(msg: Dict[str, Any]) -> Optional[bytes]:
        auth = msg.get("auth")
        if not isinstance(auth, dict):
            return None
        try:
            return bytes.fromhex(str(auth.get("public_key", "")))
        except ValueError:
            return None

    def _should_sign(self, msg_type: str) -> bool:
        return not self._signed_message_types or msg_type in self._signed_message_types

    def _encode_outbound_message(self, *, msg_type: str, payload: Dict[str, Any]) -> bytes:
        envelope = build_envelope(
            network=self.cfg.network_id,
            msg_type=msg_type,
            payload=payload,
            protocol_version=self.cfg.protocol_version,
            sender_id=self.node_id,
        )
        if self._should_sign(msg_type):
            envelope["auth"] = build_auth(envelope, self._identity_private_key_pem)
        return encode_envelope(envelope)

    def _validate_envelope(self, msg: Dict[str, Any]) -> bool:
        if any(name not in msg for name in REQUIRED_ENVELOPE_FIELDS):
            self.logger.info("drop_malformed_envelope", extra={"extra": {"type": msg.get("type")}})
            return False
        remote_version = str(msg.get("version", ""))
        if not self._is_version_compatible(self.cfg.protocol_version, remote_version):
            self.logger.info(
                "drop_incompatible_version",
                extra={"extra": {"local": self.cfg.protocol_version, "remote": remote_version}},
            )
            return False
        if msg.get("network", self.cfg.network_id) != self.cfg.network_id:
            self.logger.info("drop_foreign_network", extra={"extra": {"network": msg.get("network")}})
            return False
        return self._validate_identity(msg)

    def _validate_identity(self, msg: Dict[str, Any]) -> bool:
        msg_type = str(msg.get("type", ""))
        if not self._should_sign(msg_type):
            return True

        auth = msg.get("auth")
        if not isinstance(auth, dict):
            self.logger.info("drop_missing_identity_fields", extra={"extra": {"type": msg_type}})
            return not self._enforce_identity

        sender_key = self._extract_sender_key(msg)
        sig = auth.get("signature")
        if auth.get("algorithm") != SUPPORTED_ALGORITHM or not sender_key or not isinstance(sig, str):
            self.logger.info("drop_invalid_identity_metadata", extra={"extra": {"type": msg_type}})
            return not self._enforce_identity

        if not verify_envelope_signature(msg, signature_hex=sig, public_key=sender_key):
            self.logger.info(
                "drop_invalid_identity_signature",
                extra={"extra": {"type": msg_type, "sender_id": msg.get("sender_id", "")}},
            )
            return not self._enforce_identity
        return True

    @staticmethod
    def _is_version_compatible(local_version: str, remote_version: str) -> bool:
        def _major(v: str) -> str:
            return v.split(".", 1)[0] if v else ""
        return bool(remote_version) and _major(local_version) == _major(remote_version)
