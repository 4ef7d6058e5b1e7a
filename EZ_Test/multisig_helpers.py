from typing import Any, List, Optional, Tuple

from modules.ez_multisig.interfaces import Contact, IdentitySession
from modules.ez_multisig.memory import (
    MemoryContactDirectory,
    MemoryFund,
    MemoryFundStore,
    MemoryTaskStore,
    parse_multisig_script,
)
from modules.ez_p2p.peers import Peer


class RecordingChannel:
    """Stands in for PeerChannel: keeps every posted message instead of sending it."""

    def __init__(self):
        self.sent: List[Tuple[bytes, Any]] = []
        self.callbacks = {}

    def post_dh(self, pub_key: bytes, message: Any) -> None:
        self.sent.append((pub_key, message))

    def add_callback(self, message_type: type, handler) -> None:
        self.callbacks[message_type.TYPE] = handler

    def messages(self, message_type: type) -> List[Any]:
        return [m for _, m in self.sent if isinstance(m, message_type)]


def fund_keys(n: int) -> List[bytes]:
    return [bytes([2]) + bytes([i + 1]) * 32 for i in range(n)]


def make_session(watched: Optional[list] = None) -> IdentitySession:
    return IdentitySession(
        tasks=MemoryTaskStore(),
        funds=MemoryFundStore(),
        contacts=MemoryContactDirectory(),
        parse_script=parse_multisig_script,
        watch_address=(watched.append if watched is not None else (lambda address: None)),
    )


def make_peer(contact: Optional[Contact], channel: Optional[RecordingChannel] = None, tag: int = 0xAA) -> Peer:
    return Peer(pub_key=bytes([3]) + bytes([tag]) * 32, contact=contact, channel=channel or RecordingChannel())


def make_fund_setup(n: int = 3, m: int = 2, name: str = "vault"):
    """Session holding an m-of-n fund, with one contact per key except key 0 (ourselves)."""
    session = make_session()
    keys = fund_keys(n)
    fund = MemoryFund.create(m, keys, name=name)
    session.funds.add_fund(fund)
    contacts = [None] + [session.contacts.add(Contact(name=f"party-{i}", pub_keys=[keys[i]])) for i in range(1, n)]
    return session, fund, contacts
