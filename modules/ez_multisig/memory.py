"""In-memory collaborators for the tracker.

Reference implementations of the task store, fund store, fund object and
contact directory, plus a parser for bare ``m-of-n CHECKMULTISIG``
scripts. Addresses are ``0x`` + the first 40 hex chars of sha256(script);
real address derivation belongs to the wallet.
"""

from __future__ import annotations

import hashlib
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .interfaces import Contact, ContactDirectory, Fund, FundStore, TaskStore
from .models import Task, TaskKind

OP_CHECKMULTISIG = 0xAE
OP_1 = 0x51
OP_16 = 0x60
COMPRESSED_KEY_LEN = 33
UNCOMPRESSED_KEY_LEN = 65


def tx_hash(tx_hex: str) -> str:
    """Bitcoin txid: double sha256 of the raw transaction, byte-reversed."""
    digest = hashlib.sha256(hashlib.sha256(bytes.fromhex(tx_hex)).digest()).digest()
    return digest[::-1].hex()


def address_from_script(script_hex: str) -> str:
    return "0x" + hashlib.sha256(bytes.fromhex(script_hex)).hexdigest()[:40]


def build_multisig_script(m: int, pub_keys: Sequence[bytes]) -> str:
    n = len(pub_keys)
    if not 1 <= m <= n <= 16:
        raise ValueError("invalid_multisig_threshold")
    script = bytearray([OP_1 - 1 + m])
    for key in pub_keys:
        if len(key) not in (COMPRESSED_KEY_LEN, UNCOMPRESSED_KEY_LEN):
            raise ValueError("invalid_public_key_length")
        script.append(len(key))
        script.extend(key)
    script.extend([OP_1 - 1 + n, OP_CHECKMULTISIG])
    return script.hex()


def parse_multisig_script(script_hex: str) -> "MemoryFund":
    try:
        raw = bytes.fromhex(script_hex)
    except (TypeError, ValueError):
        raise ValueError("invalid_multisig_script")
    if len(raw) < 3 or raw[-1] != OP_CHECKMULTISIG:
        raise ValueError("invalid_multisig_script")
    if not (OP_1 <= raw[0] <= OP_16 and OP_1 <= raw[-2] <= OP_16):
        raise ValueError("invalid_multisig_script")

    pub_keys: List[bytes] = []
    pos = 1
    while pos < len(raw) - 2:
        size = raw[pos]
        if size not in (COMPRESSED_KEY_LEN, UNCOMPRESSED_KEY_LEN) or pos + 1 + size > len(raw) - 2:
            raise ValueError("invalid_multisig_script")
        pub_keys.append(raw[pos + 1:pos + 1 + size])
        pos += 1 + size

    m = raw[0] - OP_1 + 1
    n = raw[-2] - OP_1 + 1
    if n != len(pub_keys) or m > n:
        raise ValueError("invalid_multisig_script")
    return MemoryFund(address=address_from_script(script_hex), pub_keys=pub_keys, script=script_hex, m=m)


@dataclass(eq=False)
class MemoryFund(Fund):
    address: str
    pub_keys: List[bytes]
    script: str = ""
    m: int = 1
    name: Optional[str] = None
    participants: Optional[List[bytes]] = None
    spends: Dict[str, Task] = field(default_factory=dict)
    signatures: Dict[str, List[str]] = field(default_factory=dict)

    @classmethod
    def create(cls, m: int, pub_keys: Sequence[bytes], name: Optional[str] = None) -> "MemoryFund":
        fund = parse_multisig_script(build_multisig_script(m, pub_keys))
        fund.name = name
        return fund

    def get_spend(self, tx_hash_hex: str) -> Optional[Task]:
        return self.spends.get(tx_hash_hex)

    def import_signature(self, sig_hex: str, spend: Task) -> None:
        collected = self.signatures.setdefault(tx_hash(spend.tx), [])
        if sig_hex not in collected:
            collected.append(sig_hex)

    def import_transaction(self, tx_hex: str) -> Optional[Task]:
        key = tx_hash(tx_hex)
        if key in self.spends:
            return None
        spend = Task(kind=TaskKind.SPEND, address=self.address, tx=tx_hex, pending=[])
        self.spends[key] = spend
        return spend


class MemoryFundStore(FundStore):
    def __init__(self):
        self._funds: Dict[str, Fund] = {}

    def search(self, *, address: Optional[str]) -> Optional[Fund]:
        if not address:
            return None
        return self._funds.get(address)

    def add_fund(self, fund: Fund) -> str:
        self._funds[fund.address] = fund
        return fund.address


class MemoryTaskStore(TaskStore):
    def __init__(self):
        self._sections: Dict[str, List[Task]] = defaultdict(list)

    def get_tasks(self, section: str) -> List[Task]:
        return list(self._sections.get(section, []))

    def add_task(self, section: str, task: Task) -> None:
        self._sections[section].append(task)

    def remove_task(self, section: str, task: Task) -> None:
        tasks = self._sections.get(section, [])
        self._sections[section] = [t for t in tasks if t is not task]


class MemoryContactDirectory(ContactDirectory):
    def __init__(self, contacts: Optional[List[Contact]] = None):
        self._contacts: List[Contact] = list(contacts or [])

    def add(self, contact: Contact) -> Contact:
        self._contacts.append(contact)
        return contact

    def find_by_pub_key(self, pub_key: bytes) -> Optional[Contact]:
        wanted = bytes(pub_key)
        for contact in self._contacts:
            if any(bytes(key) == wanted for key in contact.pub_keys):
                return contact
        return None
