import json
import time
import uuid
from typing import Any, Dict

REQUIRED_ENVELOPE_FIELDS = ("version", "type", "msg_id", "timestamp", "payload")


def new_msg_id() -> str:
    return uuid.uuid4().hex


def build_envelope(
    *,
    network: str,
    msg_type: str,
    payload: Dict[str, Any],
    protocol_version: str = "0.1",
    msg_id: str | None = None,
    timestamp_ms: int | None = None,
    sender_id: str | None = None,
) -> Dict[str, Any]:
    envelope = {
        "version": protocol_version,
        "network": network,
        "type": msg_type,
        "msg_id": msg_id or new_msg_id(),
        "timestamp": int(timestamp_ms if timestamp_ms is not None else time.time() * 1000),
        "payload": payload,
    }
    if sender_id:
        envelope["sender_id"] = sender_id
    return envelope


def encode_envelope(envelope: Dict[str, Any]) -> bytes:
    return json.dumps(envelope, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def decode_envelope(data: bytes) -> Dict[str, Any]:
    """Decode one frame. Raises ValueError on bad UTF-8, bad JSON or a non-object body."""
    envelope = json.loads(data.decode("utf-8"))
    if not isinstance(envelope, dict):
        raise ValueError("envelope_not_object")
    return envelope
