#!/usr/bin/env python3
"""
Tests for the TCP runtime (coordinator + philosopher nodes on localhost)
"""
import time

import pytest

from core import FixedDelays, Fork, TopologyError, WireNeighbors
from core.trace import TraceEvent
from coordinator.coordinator import Coordinator
from orchestrator.orchestrator import run_dinner, summarise
from philosopher_node.philosopher_node import PhilosopherNode
from shared.models import (
    decode_msg, encode_msg, message_from_request, message_request,
    trace_from_dicts, trace_to_dicts,
)
from shared.transport import send_request


def wait_until(predicate, timeout=5.0, delay=0.05):
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        time.sleep(delay)
    return True


def test_wire_format():
    """Test the newline-delimited JSON requests."""
    print("Testing wire format...")
    request = message_request(WireNeighbors(('127.0.0.1', 7001), ('127.0.0.1', 7002)))
    raw = encode_msg(request)
    assert raw.endswith(b'\n') and raw.count(b'\n') == 1
    assert message_from_request(decode_msg(raw)) == \
        WireNeighbors(('127.0.0.1', 7001), ('127.0.0.1', 7002))

    trace = [TraceEvent(1.5, 2, 'acquire', fork=1, dirty=False),
             TraceEvent(2.0, 2, 'state', state='EATING')]
    assert trace_from_dicts(decode_msg(encode_msg({'t': trace_to_dicts(trace)}))['t']) == trace
    print("  ✓ Messages and traces survive the wire")


def test_coordinator_rejects_small_table():
    print("\nTesting coordinator validation...")
    with pytest.raises(TopologyError):
        Coordinator(1)
    print("  ✓ N < 2 rejected before binding")


def test_protocol_message_before_start_is_fatal():
    """Test that a node receiving a fork before Start stops with a failure."""
    print("\nTesting early protocol message...")
    coordinator = Coordinator(2).start()
    node = PhilosopherNode(0, 2, coordinator.address, FixedDelays([100], [100])).start()
    try:
        host, port = node.address
        assert wait_until(lambda: send_request(*coordinator.address, {'type': 'GET_STATUS'})
                          ['registered'] == 1)
        status = send_request(*coordinator.address, {'type': 'GET_STATUS'})
        assert status['phase'] == 'REGISTERING'

        assert send_request(host, port, message_request(Fork(0, dirty=False)))['ok']
        assert wait_until(lambda: send_request(host, port, {'type': 'GET_STATE'})['failure'])
        state = send_request(host, port, {'type': 'GET_STATE'})
        assert state['halted']
        assert 'before Start' in state['failure']
    finally:
        node.stop()
        coordinator.stop()
    print("  ✓ Node halts with a handshake violation")


def test_unknown_request_type():
    coordinator = Coordinator(2).start()
    try:
        resp = send_request(*coordinator.address, {'type': 'STEAL_FORK'})
        assert resp['ok'] is False
        assert send_request(*coordinator.address, {'type': 'PING'})['ok']
    finally:
        coordinator.stop()


def test_network_dinner():
    """Test a short dinner of three nodes over TCP."""
    print("\nTesting networked dinner (N = 3)...")
    result = run_dinner(3, duration_s=2.0, seed=1, think=(100, 200), eat=(20, 80))

    assert result['failures'] == []
    for name, violations in result['properties'].items():
        assert violations == [], f"{name}: {violations[:3]}"
    assert min(result['meals']) >= 1

    summary = summarise(result)
    assert summary['violations'] == {name: 0 for name in result['properties']}
    assert summary['hunger_wait_s']['max'] >= 0
    print(f"  ✓ Meals {result['meals']}, no violations")


def run_all_tests():
    print("="*70)
    print("CHANDY/MISRA DINNER - NETWORK TESTS")
    print("="*70)

    try:
        test_wire_format()
        test_coordinator_rejects_small_table()
        test_protocol_message_before_start_is_fatal()
        test_unknown_request_type()
        test_network_dinner()

        print("\n" + "="*70)
        print("ALL TESTS PASSED ✓")
        print("="*70)
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
