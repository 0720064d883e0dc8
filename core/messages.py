"""
Message types exchanged by philosophers and the table.

The set is closed: every message carries a ``type`` tag and handlers
dispatch on that tag instead of inspecting classes.

Peer-to-peer (philosopher -> neighbour):
    Fork            - the shared resource itself, always sent clean
    ForkRequest     - the request token for a fork

Handshake (table <-> philosopher):
    Init            - id and ring size, delivered at spawn
    Register        - philosopher -> table, once, after Init
    WireNeighbors   - table -> philosopher, addresses of both neighbours
    WireAck         - philosopher -> table, once, after WireNeighbors
    Start           - table -> philosopher, begins the dinner
"""
from dataclasses import dataclass
from typing import Any, ClassVar, Union


@dataclass
class Fork:
    """
    A fork token. Mutable: the holder flips ``dirty`` while it owns it.

    Forks start dirty so that the initial holder yields on the first request.
    """
    type: ClassVar[str] = 'fork'
    id: int
    dirty: bool = True


@dataclass(frozen=True)
class ForkRequest:
    type: ClassVar[str] = 'fork_request'
    id: int


@dataclass(frozen=True)
class Init:
    type: ClassVar[str] = 'init'
    id: int
    n: int


@dataclass(frozen=True)
class Register:
    type: ClassVar[str] = 'register'
    id: int
    address: Any


@dataclass(frozen=True)
class WireNeighbors:
    type: ClassVar[str] = 'wire_neighbors'
    left: Any
    right: Any


@dataclass(frozen=True)
class WireAck:
    type: ClassVar[str] = 'wire_ack'
    id: int


@dataclass(frozen=True)
class Start:
    type: ClassVar[str] = 'start'


Message = Union[Fork, ForkRequest, Init, Register, WireNeighbors, WireAck, Start]

PROTOCOL_TYPES = frozenset({Fork.type, ForkRequest.type})


def is_protocol_message(message: Message) -> bool:
    """True for the peer-to-peer messages (Fork, ForkRequest)."""
    return message.type in PROTOCOL_TYPES


# ─── dict conversion (used by the TCP runtime) ───────────────────────────────

def _address(value):
    # JSON turns (host, port) tuples into lists
    if isinstance(value, list):
        return tuple(value)
    return value


def to_dict(message: Message) -> dict:
    """
    Convert a message to a plain dict with a ``type`` field.

    Example:
        to_dict(Fork(3, dirty=False)) == {'type': 'fork', 'id': 3, 'dirty': False}
    """
    kind = message.type
    if kind == 'fork':
        return {'type': kind, 'id': message.id, 'dirty': message.dirty}
    elif kind == 'fork_request':
        return {'type': kind, 'id': message.id}
    elif kind == 'init':
        return {'type': kind, 'id': message.id, 'n': message.n}
    elif kind == 'register':
        return {'type': kind, 'id': message.id, 'address': message.address}
    elif kind == 'wire_neighbors':
        return {'type': kind, 'left': message.left, 'right': message.right}
    elif kind == 'wire_ack':
        return {'type': kind, 'id': message.id}
    elif kind == 'start':
        return {'type': kind}
    raise ValueError(f"Unknown message type: {kind}")


def parse_message(data: dict) -> Message:
    """
    Parse a dict produced by :func:`to_dict` back into a typed message.

    Raises:
        ValueError: if the type tag is missing or unknown
    """
    kind = data.get('type')
    if kind == 'fork':
        return Fork(id=data['id'], dirty=data.get('dirty', True))
    elif kind == 'fork_request':
        return ForkRequest(id=data['id'])
    elif kind == 'init':
        return Init(id=data['id'], n=data['n'])
    elif kind == 'register':
        return Register(id=data['id'], address=_address(data['address']))
    elif kind == 'wire_neighbors':
        return WireNeighbors(left=_address(data['left']),
                             right=_address(data['right']))
    elif kind == 'wire_ack':
        return WireAck(id=data['id'])
    elif kind == 'start':
        return Start()
    raise ValueError(f"Unknown message type: {kind}")
