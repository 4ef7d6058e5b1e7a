from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Sequence

from .models import Task


@dataclass(eq=False)
class Contact:
    name: str
    pub_keys: List[bytes] = field(default_factory=list)  # fund keys the contact signs with


class Fund(abc.ABC):
    """A multisig fund held by the wallet: address plus ordered participant keys."""

    address: str
    pub_keys: Sequence[bytes]
    script: str
    name: Optional[str]

    @abc.abstractmethod
    def get_spend(self, tx_hash: str) -> Optional[Task]:
        ...

    @abc.abstractmethod
    def import_signature(self, sig_hex: str, spend: Task) -> None:
        ...

    @abc.abstractmethod
    def import_transaction(self, tx_hex: str) -> Optional[Task]:
        """Return the spend task when ``tx_hex`` is new to the fund, else None."""


class FundStore(abc.ABC):
    @abc.abstractmethod
    def search(self, *, address: Optional[str]) -> Optional[Fund]:
        ...

    @abc.abstractmethod
    def add_fund(self, fund: Fund) -> str:
        """Register ``fund`` and return the wallet address to watch."""


class TaskStore(abc.ABC):
    @abc.abstractmethod
    def get_tasks(self, section: str) -> List[Task]:
        ...

    @abc.abstractmethod
    def add_task(self, section: str, task: Task) -> None:
        ...

    @abc.abstractmethod
    def remove_task(self, section: str, task: Task) -> None:
        ...


class ContactDirectory(abc.ABC):
    @abc.abstractmethod
    def find_by_pub_key(self, pub_key: bytes) -> Optional[Contact]:
        ...


def _ignore_address(wallet_address: str) -> None:
    return None


@dataclass
class IdentitySession:
    """Everything the tracker needs from the active identity, passed explicitly."""

    tasks: TaskStore
    funds: FundStore
    contacts: ContactDirectory
    parse_script: Callable[[str], Fund]
    watch_address: Callable[[str], Any] = _ignore_address
    name: str = "default"
