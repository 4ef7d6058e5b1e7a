"""EZ peer channel used by the multisig tracker.

This package provides the authenticated channel the multisig core talks through:
- JSON envelope codec
- ECDSA P-256 envelope signing (channel identity keys)
- Abstract transport with TCP (asyncio, length-prefixed frames) and
  in-process loopback implementations
- PeerChannel with a per-message-type callback registry and
  fire-and-forget ``post_dh`` sends
"""

__all__ = [
    "config",
    "logger",
    "peers",
    "channel",
    "transport",
    "codec",
    "security",
]
