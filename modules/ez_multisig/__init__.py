"""Multisig task tracking over the EZ peer channel.

Keeps per-participant delivery state for fund announcements, spend
proposals and signatures, resends when a participant's peer becomes
reachable and correlates outbound requests with their acks.
"""

__all__ = [
    "builder",
    "config",
    "correlation",
    "dispatcher",
    "handlers",
    "interfaces",
    "memory",
    "messages",
    "models",
    "service",
]
