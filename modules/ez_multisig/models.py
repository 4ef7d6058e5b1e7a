from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class TaskKind(Enum):
    SPEND = "multisig"
    ANNOUNCE = "multisig-announce"
    SIGN = "multisig-sign"
    INVITE = "multisig-invite"


# Task store sections share their names with the task kinds filed in them.
SECTION_SPEND = TaskKind.SPEND.value
SECTION_ANNOUNCE = TaskKind.ANNOUNCE.value
SECTION_SIGN = TaskKind.SIGN.value
SECTION_INVITE = TaskKind.INVITE.value

DISPATCH_SECTIONS = (SECTION_SPEND, SECTION_ANNOUNCE, SECTION_SIGN)


class UnknownFundError(ValueError):
    """A locally requested operation referenced a fund this identity does not hold."""


@dataclass(eq=False)
class ParticipantSlot:
    pub_key: bytes
    available: bool = False
    sent: Union[bool, int] = False  # False, or the outstanding correlation id
    ack: bool = False
    sig: Optional[str] = None
    peer: Any = None  # peer object the message was last sent to

    @property
    def was_sent(self) -> bool:
        return self.sent is not False


@dataclass(eq=False)
class Task:
    kind: Optional[TaskKind] = None
    address: Optional[str] = None
    participants: Optional[List[ParticipantSlot]] = None
    started: Optional[int] = None
    state: Optional[str] = None
    in_pocket: Optional[str] = None
    # spend
    tx: Optional[str] = None
    pending: Optional[List[Dict[str, Any]]] = None
    # sign
    hash: Optional[str] = None
    signature: Optional[str] = None
    # invite
    fund: Any = None
    name: Optional[str] = None


def now_ms() -> int:
    return int(time.time() * 1000)


def prepare_task(task: Task, fund: Any) -> Task:
    """Give ``task`` one fresh slot per key of ``fund``, in key order.

    Keys are stored as ``bytes``: mutable key buffers are copied, immutable
    ``bytes`` keys may be shared with the fund. Later changes to the fund's
    key list never reach the slots. Returns ``task``.
    """
    task.participants = [ParticipantSlot(pub_key=bytes(pub_key)) for pub_key in fund.pub_keys]
    task.started = now_ms()
    task.address = fund.address
    return task
