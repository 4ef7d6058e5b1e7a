from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class P2PConfig:
    node_id: Optional[str] = None  # defaults to the identity key fingerprint
    listen_host: str = "127.0.0.1"
    listen_port: int = 19101
    transport: str = "tcp"  # tcp|loopback
    network_id: str = "devnet"
    protocol_version: str = "0.1"
    max_neighbors: int = 32
    send_timeout_ms: int = 3000
    msg_size_limit_bytes: int = 2 * 1024 * 1024
    identity_private_key_pem: Optional[str] = None  # generated when absent
    enforce_identity_verification: bool = False
    signed_message_types: List[str] = field(default_factory=list)  # empty: sign everything

    @staticmethod
    def from_dict(d: dict) -> "P2PConfig":
        return P2PConfig(**d)
