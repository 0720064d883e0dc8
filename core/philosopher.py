"""
Philosopher agent: the Chandy/Misra fork protocol as an explicit state machine.

The agent is driven from outside, one event at a time:
    handle(message)  - a message delivered by the transport
    on_timer()       - the think or eat delay it scheduled has expired

It never blocks and never touches another agent. Its only effects go
through the injected transport:
    transport.send(sender, recipient, message)
    transport.schedule(address, delay)     # later calls on_timer()
    transport.now()

State diagram (after the handshake):

    THINKING ── think timer ──► HUNGRY ── both forks ──► EATING
        ▲                                                   │
        └───────────────────── eat timer ───────────────────┘

Rules (Chandy/Misra, "The Drinking Philosophers Problem"):
    HUNGRY:   with both forks, eat. Otherwise hand over every dirty fork that
              was requested, and send the request token for each missing fork.
    THINKING: hand over every dirty fork that was requested.
    EATING:   queue incoming messages until the meal is over.

Forks are dirtied by eating and cleaned when handed over, so a fork cannot
bounce back to the same philosopher before the neighbour has used it.
"""
import logging
from enum import Enum, auto
from typing import Any, List, Optional

from core.errors import HandshakeViolation, ProtocolViolation
from core.messages import (
    Fork, ForkRequest, Init, Message, Register, WireAck, WireNeighbors,
)
from core.topology import LEFT, RIGHT, SIDES, RingTopology, Seat
from core.trace import ACQUIRE, RELEASE, STATE, TraceEvent


class PhilosopherState(Enum):
    THINKING = auto()
    HUNGRY = auto()
    EATING = auto()


class Phase(Enum):
    """Handshake progress; protocol messages are legal only in DINING."""
    CREATED = auto()      # waiting for Init
    REGISTERED = auto()   # Register sent, waiting for WireNeighbors
    WIRED = auto()        # WireAck sent, waiting for Start
    DINING = auto()


class Philosopher:
    """
    One dining philosopher.

    Attributes:
        address: how the transport reaches this philosopher
        table: address of the bootstrap coordinator
        forks: [left, right] - Fork held on that side, or None
        requests: [left, right] - ForkRequest (request token) held, or None
        trace: observations, see core.trace
    """

    def __init__(self, address: Any, table: Any, transport, delays):
        self.address = address
        self.table = table
        self.transport = transport
        self.delays = delays

        self.id: Optional[int] = None
        self.n: Optional[int] = None
        self.seat: Optional[Seat] = None
        self.phase = Phase.CREATED
        self.state: Optional[PhilosopherState] = None

        self.neighbours: List[Any] = [None, None]
        self.forks: List[Optional[Fork]] = [None, None]
        self.requests: List[Optional[ForkRequest]] = [None, None]
        self.deferred: List[Message] = []

        self.meals = 0
        self.trace: List[TraceEvent] = []
        self.logger = logging.getLogger('Philosopher')

    # ── Event entry points ───────────────────────────────────────────────────

    def handle(self, message: Message) -> None:
        kind = message.type
        if kind == 'init':
            self._handle_init(message)
        elif kind == 'wire_neighbors':
            self._handle_wire_neighbors(message)
        elif kind == 'start':
            self._handle_start()
        elif kind == 'fork' or kind == 'fork_request':
            self._handle_protocol(message)
        else:
            raise ProtocolViolation(f"{self}: unexpected message {message!r}")

    def on_timer(self) -> None:
        if self.state is PhilosopherState.THINKING:
            self.logger.debug("thinking ... END")
            self._set_state(PhilosopherState.HUNGRY)
            self._evaluate()
        elif self.state is PhilosopherState.EATING:
            self.logger.debug("eating ... END")
            self._finish_eating()
        else:
            raise HandshakeViolation(f"{self}: timer fired while {self.state}")

    # ── Handshake ────────────────────────────────────────────────────────────

    def _expect_phase(self, phase: Phase, message: str) -> None:
        if self.phase is not phase:
            raise HandshakeViolation(
                f"{self}: {message} received in phase {self.phase.name}, "
                f"expected {phase.name}")

    def _handle_init(self, message: Init) -> None:
        self._expect_phase(Phase.CREATED, 'Init')
        self.id = message.id
        self.n = message.n
        self.seat = RingTopology(message.n).seat(message.id)
        self.logger = logging.getLogger(f'Philosopher-{self.id}')
        self.phase = Phase.REGISTERED
        self.transport.send(self.address, self.table, Register(self.id, self.address))

    def _handle_wire_neighbors(self, message: WireNeighbors) -> None:
        self._expect_phase(Phase.REGISTERED, 'WireNeighbors')
        self.neighbours = [message.left, message.right]
        for side in SIDES:
            fork_id = self.seat.fork_ids[side]
            if self.seat.holds_fork[side]:
                self.forks[side] = Fork(fork_id)
            if self.seat.holds_request[side]:
                self.requests[side] = ForkRequest(fork_id)
        self.phase = Phase.WIRED
        self.logger.debug(f"wired ... forks:[{self._forks_str()}], "
                          f"requests:[{self._requests_str()}]")
        self.transport.send(self.address, self.table, WireAck(self.id))

    def _handle_start(self) -> None:
        self._expect_phase(Phase.WIRED, 'Start')
        self.phase = Phase.DINING
        for side in SIDES:
            if self.forks[side] is not None:
                self._record(ACQUIRE, fork=self.forks[side].id, dirty=self.forks[side].dirty)
        self._think()

    # ── Protocol messages ────────────────────────────────────────────────────

    def _handle_protocol(self, message: Message) -> None:
        if self.phase is not Phase.DINING:
            raise HandshakeViolation(
                f"{self}: {message!r} received before Start (phase {self.phase.name})")
        if self.state is PhilosopherState.EATING:
            self.deferred.append(message)
            return
        self._accept(message)
        self._evaluate()

    def _accept(self, message: Message) -> None:
        side = self.seat.side_of(message.id)
        if side is None:
            raise ProtocolViolation(
                f"{self}: {message!r} is not for one of forks {self.seat.fork_ids}")
        if message.type == 'fork':
            if self.forks[side] is not None:
                raise ProtocolViolation(f"{self}: already holds fork {message.id}")
            if message.dirty:
                raise ProtocolViolation(f"{self}: received dirty fork {message.id}")
            self.logger.debug(f"received {self._side_name(side)} fork {message.id}")
            self.forks[side] = message
            self._record(ACQUIRE, fork=message.id, dirty=message.dirty)
        else:
            if self.requests[side] is not None:
                raise ProtocolViolation(
                    f"{self}: duplicate request for fork {message.id}")
            self.logger.debug(f"received {self._side_name(side)} fork request {message.id}")
            self.requests[side] = message

    def _evaluate(self) -> None:
        if self.state is PhilosopherState.HUNGRY:
            if self.has_fork(LEFT) and self.has_fork(RIGHT):
                self._eat()
                return
            # Yield first: a fork handed over here is requested back right away.
            for side in SIDES:
                self._send_fork_if_possible(side)
            for side in SIDES:
                self._send_request_if_possible(side)
        elif self.state is PhilosopherState.THINKING:
            for side in SIDES:
                self._send_fork_if_possible(side)
        # EATING: nothing until the meal is over

    def _send_fork_if_possible(self, side: int) -> None:
        fork = self.forks[side]
        if fork is not None and fork.dirty and self.has_request(side):
            self._record(RELEASE, fork=fork.id, dirty=fork.dirty)
            fork.dirty = False
            self.forks[side] = None
            self.logger.debug(f"sending fork {fork.id} to {self.seat.neighbour_ids[side]}")
            self.transport.send(self.address, self.neighbours[side], fork)

    def _send_request_if_possible(self, side: int) -> None:
        request = self.requests[side]
        if not self.has_fork(side) and request is not None:
            self.requests[side] = None
            self.logger.debug(
                f"sending fork request {request.id} to {self.seat.neighbour_ids[side]}")
            self.transport.send(self.address, self.neighbours[side], request)

    # ── Timed phases ─────────────────────────────────────────────────────────

    def _think(self) -> None:
        self._set_state(PhilosopherState.THINKING)
        self.logger.debug("thinking ... START")
        self.transport.schedule(self.address, self.delays.think())

    def _eat(self) -> None:
        self._set_state(PhilosopherState.EATING)
        self.meals += 1
        self._dirty_forks()
        self.logger.debug("eating ... START")
        self.transport.schedule(self.address, self.delays.eat())

    def _finish_eating(self) -> None:
        self._dirty_forks()
        self._think()
        deferred, self.deferred = self.deferred, []
        for message in deferred:
            self._accept(message)
        self._evaluate()

    def _dirty_forks(self) -> None:
        for fork in self.forks:
            if fork is not None:
                fork.dirty = True

    # ── Predicates (named after the paper) ───────────────────────────────────

    def has_fork(self, side: int) -> bool:
        return self.forks[side] is not None

    def has_request(self, side: int) -> bool:
        return self.requests[side] is not None

    def is_dirty(self, side: int) -> bool:
        return self.forks[side].dirty

    # ── Bookkeeping ──────────────────────────────────────────────────────────

    def _set_state(self, state: PhilosopherState) -> None:
        self.state = state
        self._record(STATE, state=state.name)

    def _record(self, kind: str, **detail) -> None:
        self.trace.append(TraceEvent(self.transport.now(), self.id, kind, **detail))

    def snapshot(self) -> dict:
        return {
            'id': self.id,
            'phase': self.phase.name,
            'state': self.state.name if self.state else None,
            'forks': [None if f is None else {'id': f.id, 'dirty': f.dirty}
                      for f in self.forks],
            'requests': [None if r is None else r.id for r in self.requests],
            'deferred': len(self.deferred),
            'meals': self.meals,
        }

    @staticmethod
    def _side_name(side: int) -> str:
        return 'left' if side == LEFT else 'right'

    def _forks_str(self) -> str:
        return ','.join('null' if f is None else f"<{f.id}/{f.dirty}>" for f in self.forks)

    def _requests_str(self) -> str:
        return ','.join('null' if r is None else f"<{r.id}>" for r in self.requests)

    def __repr__(self):
        return f"Philosopher({self.id})"
