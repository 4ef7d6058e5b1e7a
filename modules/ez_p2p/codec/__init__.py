from .json_codec import (
    REQUIRED_ENVELOPE_FIELDS,
    build_envelope,
    decode_envelope,
    encode_envelope,
    new_msg_id,
)

__all__ = [
    "REQUIRED_ENVELOPE_FIELDS",
    "build_envelope",
    "decode_envelope",
    "encode_envelope",
    "new_msg_id",
]
