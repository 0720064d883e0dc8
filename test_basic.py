#!/usr/bin/env python3
"""
Quick unit tests to verify basic functionality
"""
import json
from dataclasses import replace

import pytest

from core import (
    Fork, ForkRequest, Init, Register, Start, WireAck, WireNeighbors,
    HandshakeViolation, ProtocolViolation, TopologyError,
    RingTopology, LEFT, RIGHT, find_cycle, is_acyclic, precedence_graph,
    FixedDelays, RandomDelays, Philosopher, PhilosopherState, Phase,
    Table, TablePhase,
)
from core.messages import parse_message, to_dict
from core.trace import ACQUIRE, RELEASE


class RecordingTransport:
    """Transport stand-in: remembers sends and timers, the clock is set by hand."""

    def __init__(self):
        self.sent = []
        self.timers = []
        self.time = 0

    def send(self, sender, recipient, message):
        self.sent.append((recipient, message))

    def schedule(self, address, delay):
        self.timers.append(delay)

    def now(self):
        return self.time


def seated(i, n, think=(10,), eat=(5,)):
    """A philosopher taken through the whole handshake, outbox cleared."""
    transport = RecordingTransport()
    p = Philosopher(('p', i), 'table', transport, FixedDelays(think, eat))
    p.handle(Init(i, n))
    p.handle(WireNeighbors('L', 'R'))
    p.handle(Start())
    transport.sent.clear()
    return p, transport


# ── Topology ─────────────────────────────────────────────────────────────────

def test_topology():
    """Test neighbours and fork ids around the ring."""
    print("Testing RingTopology...")
    ring = RingTopology(5)

    assert ring.left(0) == 4 and ring.right(0) == 1
    assert ring.left(4) == 3 and ring.right(4) == 0
    assert ring.fork_ids(0) == (4, 0)
    assert ring.fork_ids(3) == (2, 3)

    two = RingTopology(2)
    assert two.left(0) == two.right(0) == 1
    assert two.fork_ids(0) == (1, 0)
    assert two.fork_ids(1) == (0, 1)
    print("  ✓ Neighbours and fork ids wrap around")


def test_initial_assignment():
    """Test who starts with which fork and which request token."""
    print("\nTesting initial assignment...")
    seats = RingTopology(5).seats()

    assert seats[0].holds_fork == (True, True)
    assert seats[0].holds_request == (False, False)
    for i in (1, 2, 3):
        assert seats[i].holds_fork == (False, True)
        assert seats[i].holds_request == (True, False)
    assert seats[4].holds_fork == (False, False)
    assert seats[4].holds_request == (True, True)
    print("  ✓ Lower id on every edge owns the fork")


def test_bootstrap_acyclic():
    """Test that the initial precedence graph has no cycle."""
    print("\nTesting precedence graph...")
    for n in range(2, 61):
        assert is_acyclic(RingTopology(n).seats()), f"cycle for N={n}"
    print("  ✓ Acyclic for N = 2..60")

    # everybody owns the right fork: the classic deadlock ring
    uniform = [replace(seat, holds_fork=(False, True), holds_request=(True, False))
               for seat in RingTopology(5).seats()]
    cycle = find_cycle(precedence_graph(uniform))
    assert cycle is not None
    assert sorted(cycle) == [0, 1, 2, 3, 4]
    print(f"  ✓ Uniform assignment is cyclic: {cycle}")


def test_ring_size_validation():
    """Test that fewer than two philosophers are rejected."""
    print("\nTesting ring size validation...")
    for n in (1, 0, -3):
        with pytest.raises(TopologyError):
            RingTopology(n)
    with pytest.raises(TopologyError):
        RingTopology(2.5)
    with pytest.raises(TopologyError):
        Table(1, 'table', RecordingTransport())
    with pytest.raises(TopologyError):
        RingTopology(3).seat(3)
    print("  ✓ N < 2 raises TopologyError")


# ── Messages ─────────────────────────────────────────────────────────────────

def test_messages():
    """Test dict conversion as used on the wire."""
    print("\nTesting messages...")
    wire = json.loads(json.dumps(to_dict(WireNeighbors(('127.0.0.1', 7001), ('127.0.0.1', 7002)))))
    message = parse_message(wire)
    assert message == WireNeighbors(('127.0.0.1', 7001), ('127.0.0.1', 7002))

    fork = parse_message(json.loads(json.dumps(to_dict(Fork(3, dirty=False)))))
    assert fork.id == 3 and fork.dirty is False
    assert parse_message({'type': 'start'}) == Start()

    with pytest.raises(ValueError):
        parse_message({'type': 'spoon', 'id': 1})
    with pytest.raises(ValueError):
        parse_message({})
    print("  ✓ Addresses survive JSON, unknown types are rejected")


def test_delays():
    """Test duration sources."""
    print("\nTesting delays...")
    fixed = FixedDelays([1, 2], [7])
    assert [fixed.think() for _ in range(5)] == [1, 2, 1, 2, 1]
    assert [fixed.eat() for _ in range(2)] == [7, 7]

    a, b = RandomDelays(9), RandomDelays(9)
    draws = [a.think() for _ in range(20)]
    assert draws == [b.think() for _ in range(20)]
    assert all(1 <= d <= 2000 for d in draws)

    with pytest.raises(ValueError):
        RandomDelays(think=(10, 5))
    with pytest.raises(ValueError):
        FixedDelays([], [1])
    print("  ✓ Fixed tables wrap, random sources are reproducible")


# ── Philosopher ──────────────────────────────────────────────────────────────

def test_handshake():
    """Test the Init / WireNeighbors / Start sequence of one philosopher."""
    print("\nTesting philosopher handshake...")
    transport = RecordingTransport()
    p = Philosopher(('p', 1), 'table', transport, FixedDelays([10], [5]))
    assert p.phase is Phase.CREATED

    p.handle(Init(1, 3))
    assert p.phase is Phase.REGISTERED
    assert transport.sent == [('table', Register(1, ('p', 1)))]

    p.handle(WireNeighbors('L', 'R'))
    assert p.phase is Phase.WIRED
    assert transport.sent[-1] == ('table', WireAck(1))
    assert p.forks[RIGHT] == Fork(1) and p.forks[RIGHT].dirty
    assert p.forks[LEFT] is None
    assert p.requests[LEFT] == ForkRequest(0)

    p.handle(Start())
    assert p.phase is Phase.DINING
    assert p.state is PhilosopherState.THINKING
    assert transport.timers == [10]
    assert [(e.kind, e.fork) for e in p.trace if e.kind == ACQUIRE] == [(ACQUIRE, 1)]
    print("  ✓ Register, WireAck, then THINKING with the initial fork")


def test_handshake_order():
    """Test that out-of-order handshake and early protocol messages are fatal."""
    print("\nTesting handshake order...")
    p = Philosopher('p', 'table', RecordingTransport(), FixedDelays([10], [5]))
    with pytest.raises(HandshakeViolation):
        p.handle(Start())

    p.handle(Init(0, 2))
    with pytest.raises(HandshakeViolation):
        p.handle(Init(0, 2))
    with pytest.raises(HandshakeViolation):
        p.handle(ForkRequest(0))

    p.handle(WireNeighbors('L', 'R'))
    with pytest.raises(HandshakeViolation):
        p.handle(Fork(1, dirty=False))
    with pytest.raises(HandshakeViolation):
        p.on_timer()
    print("  ✓ HandshakeViolation before DINING")


def test_holder_of_both_forks_eats():
    """Test that philosopher 0 eats as soon as it gets hungry."""
    print("\nTesting immediate meal...")
    p, transport = seated(0, 3)
    p.on_timer()
    assert p.state is PhilosopherState.EATING
    assert p.meals == 1
    assert transport.sent == []
    assert transport.timers[-1] == 5
    assert p.is_dirty(LEFT) and p.is_dirty(RIGHT)
    print("  ✓ HUNGRY with both forks goes straight to EATING")


def test_hungry_sends_request():
    """Test that a hungry philosopher asks for the fork it lacks."""
    print("\nTesting fork request...")
    p, transport = seated(1, 3)
    p.on_timer()
    assert p.state is PhilosopherState.HUNGRY
    assert transport.sent == [('L', ForkRequest(0))]
    assert not p.has_request(LEFT)

    transport.time = 7
    p.handle(Fork(0, dirty=False))
    assert p.state is PhilosopherState.EATING
    assert p.trace[-2].kind == ACQUIRE and p.trace[-2].time == 7
    print("  ✓ Request token sent, fork arrival starts the meal")


def test_thinking_yields_dirty_fork():
    """Test that a thinking philosopher hands over a requested dirty fork."""
    print("\nTesting fork hand-over...")
    p, transport = seated(1, 3)
    p.handle(ForkRequest(1))

    assert len(transport.sent) == 1
    recipient, fork = transport.sent[0]
    assert recipient == 'R'
    assert fork.id == 1 and fork.dirty is False
    assert p.forks[RIGHT] is None
    assert p.has_request(RIGHT)
    release = p.trace[-1]
    assert release.kind == RELEASE and release.fork == 1 and release.dirty is True
    print("  ✓ Dirty fork cleaned and sent, token kept")


def test_hungry_keeps_clean_fork():
    """Test that a clean fork is not given up until it has been eaten with."""
    print("\nTesting clean fork retention...")
    p, transport = seated(2, 3)       # holds both tokens, no fork
    p.on_timer()
    assert transport.sent == [('L', ForkRequest(1)), ('R', ForkRequest(2))]
    transport.sent.clear()

    p.handle(Fork(1, dirty=False))
    p.handle(ForkRequest(1))          # neighbour 1 wants it back
    assert transport.sent == []
    assert p.has_fork(LEFT) and p.has_request(LEFT)

    p.handle(Fork(2, dirty=False))
    assert p.state is PhilosopherState.EATING

    p.on_timer()                      # meal over
    assert p.state is PhilosopherState.THINKING
    assert len(transport.sent) == 1
    recipient, fork = transport.sent[0]
    assert recipient == 'L' and fork.id == 1 and not fork.dirty
    assert p.has_fork(RIGHT) and p.is_dirty(RIGHT)
    print("  ✓ Clean fork kept while hungry, yielded after eating")


def test_eating_defers_messages():
    """Test that requests arriving during a meal wait for its end."""
    print("\nTesting deferred messages...")
    p, transport = seated(0, 3)
    p.on_timer()
    assert p.state is PhilosopherState.EATING

    p.handle(ForkRequest(0))
    assert transport.sent == []
    assert len(p.deferred) == 1
    assert not p.has_request(RIGHT)

    p.on_timer()
    assert p.deferred == []
    assert transport.sent == [('R', Fork(0, dirty=False))]
    assert p.state is PhilosopherState.THINKING
    print("  ✓ Deferred request replayed after EATING")


def test_protocol_violations():
    """Test that impossible protocol messages are fatal."""
    print("\nTesting protocol violations...")
    p, _ = seated(1, 5)               # forks 0 (left, missing) and 1 (right, held)

    with pytest.raises(ProtocolViolation):
        p.handle(Fork(3, dirty=False))
    with pytest.raises(ProtocolViolation):
        p.handle(Fork(1, dirty=False))
    with pytest.raises(ProtocolViolation):
        p.handle(ForkRequest(0))
    with pytest.raises(ProtocolViolation):
        p.handle(Fork(0, dirty=True))
    with pytest.raises(ProtocolViolation):
        p.handle(Register(1, 'x'))
    print("  ✓ Foreign, duplicate and dirty forks are rejected")


# ── Table ────────────────────────────────────────────────────────────────────

def test_table_handshake():
    """Test the table's register / wire / start barriers."""
    print("\nTesting table...")
    transport = RecordingTransport()
    table = Table(3, 'table', transport)
    addresses = ['a', 'b', 'c']

    table.handle(Register(0, 'a'))
    table.handle(Register(2, 'c'))
    assert transport.sent == [] and table.registered == 2
    with pytest.raises(HandshakeViolation):
        table.handle(Register(0, 'a'))
    with pytest.raises(HandshakeViolation):
        table.handle(WireAck(0))

    table.handle(Register(1, 'b'))
    assert table.phase is TablePhase.WIRING
    assert transport.sent == [
        ('a', WireNeighbors('c', 'b')),
        ('b', WireNeighbors('a', 'c')),
        ('c', WireNeighbors('b', 'a')),
    ]
    transport.sent.clear()

    table.handle(WireAck(1))
    table.handle(WireAck(0))
    assert transport.sent == []
    with pytest.raises(HandshakeViolation):
        table.handle(WireAck(0))
    table.handle(WireAck(2))
    assert table.phase is TablePhase.STARTED
    assert transport.sent == [(a, Start()) for a in addresses]

    with pytest.raises(HandshakeViolation):
        table.handle(ForkRequest(0))
    print("  ✓ Wires after all registrations, starts after all acks")


def run_all_tests():
    """Run all unit tests."""
    print("="*70)
    print("CHANDY/MISRA DINNER - UNIT TESTS")
    print("="*70)

    try:
        test_topology()
        test_initial_assignment()
        test_bootstrap_acyclic()
        test_ring_size_validation()
        test_messages()
        test_delays()
        test_handshake()
        test_handshake_order()
        test_holder_of_both_forks_eats()
        test_hungry_sends_request()
        test_thinking_yields_dirty_fork()
        test_hungry_keeps_clean_fork()
        test_eating_defers_messages()
        test_protocol_violations()
        test_table_handshake()

        print("\n" + "="*70)
        print("ALL TESTS PASSED ✓")
        print("="*70)
        print("\nCore components are working correctly.")
        print("You can now run the full evaluation with:")
        print("  python run_evaluation.py")

        return 0

    except AssertionError as e:
        print(f"\n✗ TEST FAILED: {e}")
        return 1
    except Exception as e:
        print(f"\n✗ ERROR: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    exit(run_all_tests())
