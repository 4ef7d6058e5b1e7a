from __future__ import annotations

from typing import Any, Dict, List, Optional

from modules.ez_p2p.logger import setup_logger

from .builder import OutboundMessageBuilder
from .config import MultisigConfig
from .correlation import CorrelationTracker
from .dispatcher import PeerAvailabilityDispatcher
from .handlers import InboundHandlers
from .interfaces import Fund, IdentitySession
from .messages import MultisigAck, MultisigAnnounce, MultisigSign, MultisigSpend
from .models import (
    SECTION_ANNOUNCE,
    SECTION_SIGN,
    SECTION_SPEND,
    Task,
    TaskKind,
    UnknownFundError,
    prepare_task,
)


class MultisigTrackService:
    """Tracks and sends multisig actions for the active identity.

    Owns the correlation tracker for the identity session; every
    operation takes the session explicitly.
    """

    name = "multisigTrack"

    def __init__(self, config: Optional[MultisigConfig] = None):
        self.cfg = config or MultisigConfig()
        self.logger = setup_logger("ez_multisig", self.cfg.log_level)
        self.tracker = CorrelationTracker(first_id=self.cfg.first_correlation_id)
        self.builder = OutboundMessageBuilder(self.tracker, self.logger)
        self.dispatcher = PeerAvailabilityDispatcher(self.builder, self.logger, sections=self.cfg.sections)
        self.handlers = InboundHandlers(self.tracker, self.builder, self.logger)

    # ---------------- lifecycle events ----------------
    def handle_wallet_event(self, event: Dict[str, Any]) -> None:
        if event.get("type") == "closing":
            self.on_session_closing()

    def handle_contacts_event(self, session: IdentitySession, event: Dict[str, Any]) -> None:
        if event.get("type") == "contact":
            self.on_contact_available(session, event["peer"])

    def handle_channel_event(self, session: IdentitySession, event: Dict[str, Any]) -> None:
        if event.get("type") == "initChannel":
            self.bind_channel(session, event["channel"])

    def on_session_closing(self) -> None:
        dropped = len(self.tracker)
        self.tracker.reset()
        self.logger.info("session_closing", extra={"extra": {"dropped_requests": dropped}})

    def bind_channel(self, session: IdentitySession, channel: Any) -> None:
        channel.add_callback(MultisigAnnounce, lambda msg, peer: self.handlers.on_multisig_announce(session, msg, peer))
        channel.add_callback(MultisigSpend, lambda msg, peer: self.handlers.on_multisig_spend(session, msg, peer))
        channel.add_callback(MultisigAck, lambda msg, peer: self.handlers.on_multisig_ack(session, msg, peer))
        channel.add_callback(MultisigSign, lambda msg, peer: self.handlers.on_multisig_sign(session, msg, peer))

    def on_contact_available(self, session: IdentitySession, peer: Any) -> int:
        return self.dispatcher.on_contact_available(session, peer)

    # ---------------- local operations ----------------
    def announce(self, session: IdentitySession, fund: Fund) -> Task:
        """Queue announcing the fund to every participant."""
        task = prepare_task(Task(kind=TaskKind.ANNOUNCE), fund)
        session.tasks.add_task(SECTION_ANNOUNCE, task)
        return task

    def accept(self, session: IdentitySession, task: Task) -> None:
        self.handlers.accept(session, task)

    def sign(self, session: IdentitySession, fund: Fund, tx_hash: str, signature: bytes | str) -> Task:
        task = prepare_task(Task(kind=TaskKind.SIGN), fund)
        task.hash = tx_hash
        task.signature = signature.hex() if isinstance(signature, (bytes, bytearray)) else signature
        session.tasks.add_task(SECTION_SIGN, task)
        return task

    def spend(self, session: IdentitySession, tx_hex: str, pending: List[Dict[str, Any]]) -> Task:
        """Send the spend to the other participants so they can co-sign it.

        The fund is taken from the first pending entry's address.
        """
        if not pending:
            raise ValueError("pending_required")
        address = pending[0].get("address")
        fund = session.funds.search(address=address)
        if fund is None:
            raise UnknownFundError(f"multisig_not_found:{address}")
        task = prepare_task(Task(kind=TaskKind.SPEND), fund)
        task.tx = tx_hex
        task.pending = list(pending)
        task.in_pocket = address
        session.tasks.add_task(SECTION_SPEND, task)
        return task
