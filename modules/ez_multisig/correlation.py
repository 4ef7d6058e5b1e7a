import itertools
from typing import Dict, Optional

from .models import ParticipantSlot


class CorrelationTracker:
    """Outstanding request ids awaiting an ack, for one identity session.

    Ids come from a counter that keeps running across ``reset`` so an ack
    for a request sent before the reset can never hit a newer entry.
    Each slot holds at most one live id: tracking a slot again retires
    its previous id.
    """

    def __init__(self, first_id: int = 1):
        self._ids = itertools.count(first_id)
        self._entries: Dict[int, ParticipantSlot] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request_id) -> bool:
        return request_id in self._entries

    def track(self, slot: ParticipantSlot) -> int:
        if slot.was_sent and self._entries.get(slot.sent) is slot:
            del self._entries[slot.sent]
        request_id = next(self._ids)
        slot.sent = request_id
        self._entries[request_id] = slot
        return request_id

    def peek(self, request_id) -> Optional[ParticipantSlot]:
        return self._entries.get(request_id)

    def resolve(self, request_id) -> Optional[ParticipantSlot]:
        """Consume the entry for ``request_id``; None when unknown or already consumed."""
        return self._entries.pop(request_id, None)

    def reset(self) -> None:
        self._entries.clear()
