import logging
from typing import Any, Optional

from .correlation import CorrelationTracker
from .interfaces import IdentitySession
from .messages import MultisigAck, MultisigAnnounce, MultisigSign, MultisigSpend, ProtocolMessage
from .models import SECTION_ANNOUNCE, SECTION_SIGN, SECTION_SPEND, ParticipantSlot, Task


class OutboundMessageBuilder:
    """Turns a (section, task, slot) triple into one protocol message and posts it.

    Spend and sign messages expect an ack: their slot is tracked in the
    correlation tracker before the message reaches the channel.
    """

    def __init__(self, tracker: CorrelationTracker, logger: logging.Logger):
        self.tracker = tracker
        self.logger = logger

    def build(self, session: IdentitySession, section: str, task: Task, slot: ParticipantSlot) -> Optional[ProtocolMessage]:
        if section == SECTION_SPEND:
            return MultisigSpend(
                address=task.address,
                tx=task.tx,
                pending=list(task.pending or []),
                id=self.tracker.track(slot),
            )
        if section == SECTION_ANNOUNCE:
            fund = session.funds.search(address=task.address)
            if fund is None:
                self.logger.info("drop_unknown_fund", extra={"extra": {"section": section, "address": task.address}})
                return None
            return MultisigAnnounce(script=fund.script, name=fund.name)
        if section == SECTION_SIGN:
            return MultisigSign(
                address=task.address,
                hash=task.hash,
                signature=[task.signature],
                id=self.tracker.track(slot),
            )
        raise ValueError(f"unknown_section:{section}")

    def send(self, session: IdentitySession, peer: Any, section: str, task: Task, slot: ParticipantSlot) -> Optional[ProtocolMessage]:
        message = self.build(session, section, task, slot)
        if message is None:
            return None
        slot.peer = peer
        peer.channel.post_dh(peer.pub_key, message)
        self.logger.info(
            "message_sent",
            extra={"extra": {"type": message.TYPE, "address": task.address, "id": getattr(message, "id", None)}},
        )
        return message

    def send_ack(self, peer: Any, request_id: Any) -> MultisigAck:
        message = MultisigAck(id=request_id)
        peer.channel.post_dh(peer.pub_key, message)
        return message
