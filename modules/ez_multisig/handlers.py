import logging
from typing import Any

from .builder import OutboundMessageBuilder
from .correlation import CorrelationTracker
from .interfaces import IdentitySession
from .messages import MultisigAck, MultisigAnnounce, MultisigSign, MultisigSpend
from .models import SECTION_INVITE, Task, TaskKind, prepare_task


class InboundHandlers:
    """Task-state transitions for each inbound protocol message.

    A message naming a fund this identity does not hold is dropped and
    logged; peers routinely run ahead of or behind each other.
    """

    def __init__(self, tracker: CorrelationTracker, builder: OutboundMessageBuilder, logger: logging.Logger):
        self.tracker = tracker
        self.builder = builder
        self.logger = logger

    def on_multisig_announce(self, session: IdentitySession, message: MultisigAnnounce, peer: Any) -> None:
        try:
            fund = session.parse_script(message.script)
        except ValueError as e:
            self.logger.info("drop_invalid_script", extra={"extra": {"err": str(e)}})
            return
        if session.funds.search(address=fund.address) is not None:
            self.logger.debug("drop_known_fund", extra={"extra": {"address": fund.address}})
            return
        for invite in session.tasks.get_tasks(SECTION_INVITE):
            if invite.fund is not None and invite.fund.address == fund.address:
                self.logger.debug("drop_duplicate_invite", extra={"extra": {"address": fund.address}})
                return
        session.tasks.add_task(SECTION_INVITE, Task(kind=TaskKind.INVITE, fund=fund, name=message.name))
        self.logger.info("invite_recv", extra={"extra": {"address": fund.address, "name": message.name}})

    def accept(self, session: IdentitySession, task: Task) -> None:
        task.state = "finished"
        fund = task.fund
        if session.funds.search(address=fund.address) is not None:
            return
        fund.name = task.name
        fund.participants = [bytes(key) for key in fund.pub_keys]
        wallet_address = session.funds.add_fund(fund)
        session.watch_address(wallet_address)
        self.logger.info("fund_accepted", extra={"extra": {"address": fund.address, "name": task.name}})

    def on_multisig_sign(self, session: IdentitySession, message: MultisigSign, peer: Any) -> None:
        self.builder.send_ack(peer, message.id)

        fund = session.funds.search(address=message.address)
        if fund is None:
            self.logger.info("drop_unknown_fund", extra={"extra": {"type": message.TYPE, "address": message.address}})
            return
        spend = fund.get_spend(message.hash)
        if spend is None:
            self.logger.info("drop_unknown_spend", extra={"extra": {"hash": message.hash}})
            return
        for sig_hex in message.signature:
            fund.import_signature(sig_hex, spend)
        if spend.participants and peer.contact is not None and message.signature:
            for slot in spend.participants:
                if session.contacts.find_by_pub_key(slot.pub_key) is peer.contact:
                    slot.sig = message.signature[0]

    def on_multisig_spend(self, session: IdentitySession, message: MultisigSpend, peer: Any) -> None:
        self.builder.send_ack(peer, message.id)

        fund = session.funds.search(address=message.address)
        if fund is None:
            self.logger.info("drop_unknown_fund", extra={"extra": {"type": message.TYPE, "address": message.address}})
            return
        try:
            spend = fund.import_transaction(message.tx)
        except ValueError as e:
            self.logger.info("drop_invalid_tx", extra={"extra": {"address": message.address, "err": str(e)}})
            return
        if spend is None:
            return
        prepare_task(spend, fund)
        if not spend.pending:
            spend.pending = list(message.pending)
        self.logger.info("spend_recv", extra={"extra": {"address": message.address}})

    def on_multisig_ack(self, session: IdentitySession, message: MultisigAck, peer: Any) -> None:
        slot = self.tracker.resolve(message.id)
        if slot is None:
            self.logger.debug("drop_stale_ack", extra={"extra": {"id": message.id}})
            return
        slot.ack = True
