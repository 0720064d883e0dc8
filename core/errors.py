"""
Error taxonomy for the dining philosophers protocol.

All of these signal defects, not runtime conditions: a correct topology and
a correct handshake never raise them.
"""


class ProtocolViolation(AssertionError):
    """A fork or fork request that the protocol guarantees can never arrive."""


class HandshakeViolation(ProtocolViolation):
    """A message that arrived out of the register -> wire -> start order."""


class TopologyError(ValueError):
    """Invalid ring parameters, rejected before any agent is created."""
