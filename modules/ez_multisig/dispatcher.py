import logging
from typing import Any, Sequence

from .builder import OutboundMessageBuilder
from .interfaces import IdentitySession
from .models import DISPATCH_SECTIONS, prepare_task


class PeerAvailabilityDispatcher:
    def __init__(self, builder: OutboundMessageBuilder, logger: logging.Logger, sections: Sequence[str] = DISPATCH_SECTIONS):
        self.builder = builder
        self.logger = logger
        self.sections = tuple(sections)

    def on_contact_available(self, session: IdentitySession, peer: Any) -> int:
        """Push whatever the newly reachable peer still needs. Returns the number of messages sent."""
        return sum(self.check_peer_tasks(session, peer, section) for section in self.sections)

    def check_peer_tasks(self, session: IdentitySession, peer: Any, section: str) -> int:
        sent = 0
        contact = peer.contact
        for task in session.tasks.get_tasks(section):
            if task.participants is None:
                fund = session.funds.search(address=task.address or task.in_pocket)
                if fund is None:
                    self.logger.debug("skip_unresolved_task", extra={"extra": {"section": section}})
                    continue
                prepare_task(task, fund)

            for slot in task.participants:
                slot.available = True
                # resend only when the last delivery went to another peer object
                if slot.was_sent and slot.peer is peer:
                    continue
                if contact is None or session.contacts.find_by_pub_key(slot.pub_key) is not contact:
                    continue
                if self.builder.send(session, peer, section, task, slot) is not None:
                    sent += 1
        return sent
