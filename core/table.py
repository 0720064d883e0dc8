"""
Bootstrap coordinator ("the table").

Three strict phases, each a barrier over all N philosophers:

    REGISTERING ── N x Register ──► WIRING ── N x WireAck ──► STARTED
                                    (sends WireNeighbors)     (sends Start)

The table only takes part in the handshake. Once Start is out, philosophers
talk to their neighbours directly and the table receives nothing more.
"""
import logging
from enum import Enum, auto
from typing import Any, List, Optional, Set

from core.errors import HandshakeViolation
from core.messages import Message, Start, WireNeighbors
from core.topology import RingTopology


class TablePhase(Enum):
    REGISTERING = auto()
    WIRING = auto()
    STARTED = auto()


class Table:
    """
    Collects registrations, wires neighbours, then starts the dinner.

    Args:
        n: number of philosophers (validated here, before anything is spawned)
        address: the table's own address, used as sender
        transport: object with send(sender, recipient, message)
    """

    def __init__(self, n: int, address: Any, transport):
        self.topology = RingTopology(n)
        self.n = n
        self.address = address
        self.transport = transport
        self.phase = TablePhase.REGISTERING
        self.addresses: List[Optional[Any]] = [None] * n
        self.acks: Set[int] = set()
        self.logger = logging.getLogger('Table')

    @property
    def registered(self) -> int:
        return sum(1 for a in self.addresses if a is not None)

    def handle(self, message: Message) -> None:
        kind = message.type
        if kind == 'register':
            self._handle_register(message)
        elif kind == 'wire_ack':
            self._handle_wire_ack(message)
        else:
            raise HandshakeViolation(f"Table: unexpected message {message!r}")

    def on_timer(self) -> None:
        raise HandshakeViolation("Table: never schedules timers")

    def _check_id(self, agent_id: int) -> None:
        if not 0 <= agent_id < self.n:
            raise HandshakeViolation(f"Table: unknown philosopher {agent_id}")

    def _handle_register(self, message) -> None:
        if self.phase is not TablePhase.REGISTERING:
            raise HandshakeViolation(f"Table: Register from {message.id} in {self.phase.name}")
        self._check_id(message.id)
        if self.addresses[message.id] is not None:
            raise HandshakeViolation(f"Table: philosopher {message.id} registered twice")
        self.addresses[message.id] = message.address
        self.logger.debug(f"registered philosopher {message.id} at {message.address}")

        if self.registered == self.n:
            self._wire()

    def _wire(self) -> None:
        self.phase = TablePhase.WIRING
        self.logger.info(f"all {self.n} philosophers registered, wiring neighbours")
        for i, address in enumerate(self.addresses):
            left = self.addresses[self.topology.left(i)]
            right = self.addresses[self.topology.right(i)]
            self.transport.send(self.address, address, WireNeighbors(left, right))

    def _handle_wire_ack(self, message) -> None:
        if self.phase is not TablePhase.WIRING:
            raise HandshakeViolation(f"Table: WireAck from {message.id} in {self.phase.name}")
        self._check_id(message.id)
        if message.id in self.acks:
            raise HandshakeViolation(f"Table: philosopher {message.id} acknowledged twice")
        self.acks.add(message.id)

        if len(self.acks) == self.n:
            self._start()

    def _start(self) -> None:
        self.phase = TablePhase.STARTED
        self.logger.info(f"all {self.n} philosophers wired, starting the dinner")
        start = Start()
        for address in self.addresses:
            self.transport.send(self.address, address, start)
