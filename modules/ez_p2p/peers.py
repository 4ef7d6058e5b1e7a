from dataclasses import dataclass
from typing import Any, Dict, Optional

from .security import fingerprint_public_key


@dataclass(eq=False)
class Peer:
    """One live connection to a remote party.

    Peers compare by identity: a reconnect yields a new Peer object even
    when ``pub_key`` is unchanged.
    """

    pub_key: bytes
    address: Optional[str] = None  # dialable host:port, None for inbound-only peers
    contact: Any = None
    channel: Any = None
    reply_ctx: Any = None
    last_seen_ms: int = 0

    @property
    def fingerprint(self) -> str:
        return fingerprint_public_key(self.pub_key)


class PeerBook:
    """Latest Peer object per channel identity key."""

    def __init__(self, max_neighbors: int = 32):
        self.max_neighbors = max_neighbors
        self._peers: Dict[str, Peer] = {}

    def add_peer(self, peer: Peer) -> bool:
        key = peer.fingerprint
        if key not in self._peers and len(self._peers) >= self.max_neighbors:
            return False
        self._peers[key] = peer
        return True

    def find_by_key(self, pub_key: bytes) -> Optional[Peer]:
        return self._peers.get(fingerprint_public_key(pub_key))
