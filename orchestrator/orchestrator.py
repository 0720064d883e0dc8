#!/usr/bin/env python3
"""
Orchestrator — runs a networked dinner on localhost and checks it.

  1. Start the coordinator and N philosopher nodes (each its own TCP server)
  2. Wait until the coordinator reports the STARTED phase
  3. Let the philosophers dine for a while
  4. Halt every node, collect the per-node traces and evaluate the
     safety / liveness properties on the merged trace
"""
import os
import json
import time
import logging
import statistics
from typing import List, Tuple

from core.delays import RandomDelays
from core.properties import check_all, hunger_waits, merge_traces
from core.trace import TraceEvent
from coordinator.coordinator import Coordinator
from philosopher_node.philosopher_node import PhilosopherNode
from shared.models import trace_from_dicts
from shared.transport import send_request

logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(name)s] %(message)s')
logger = logging.getLogger('Orchestrator')

Address = Tuple[str, int]

# Think delays must stay well above the time the sequential Start broadcast
# takes; a fork request reaching a node before its Start is a fatal violation.
NETWORK_THINK = (100, 400)
NETWORK_EAT = (50, 300)


def wait_for_start(coordinator: Address, timeout: float = 10.0, delay: float = 0.05) -> dict:
    """Block until the coordinator has broadcast Start."""
    host, port = coordinator
    deadline = time.monotonic() + timeout
    while True:
        status = send_request(host, port, {'type': 'GET_STATUS'})
        if status.get('failure'):
            raise RuntimeError(f"Handshake failed: {status['failure']}")
        if status.get('phase') == 'STARTED':
            return status
        if time.monotonic() > deadline:
            raise RuntimeError(
                f"Dinner not started after {timeout}s "
                f"({status.get('registered')} registered, {status.get('acknowledged')} wired)")
        time.sleep(delay)


def halt_all(nodes: List[Address]):
    for host, port in nodes:
        send_request(host, port, {'type': 'HALT'})


def collect_traces(nodes: List[Address]) -> List[List[TraceEvent]]:
    """Collect the trace of every philosopher node."""
    traces = []
    for host, port in nodes:
        resp = send_request(host, port, {'type': 'GET_TRACE'})
        traces.append(trace_from_dicts(resp.get('trace', [])))
    return traces


def collect_states(nodes: List[Address]) -> List[dict]:
    states = []
    for host, port in nodes:
        resp = send_request(host, port, {'type': 'GET_STATE'})
        states.append({'state': resp.get('state'), 'failure': resp.get('failure')})
    return states


def run_dinner(n: int, duration_s: float, seed: int = 0,
               think: Tuple[int, int] = NETWORK_THINK,
               eat: Tuple[int, int] = NETWORK_EAT,
               host: str = '127.0.0.1') -> dict:
    """
    Run one networked dinner and evaluate it.

    Returns: {n, events, states, failures, meals, properties}
    """
    coordinator = Coordinator(n, host=host).start()
    nodes: List[PhilosopherNode] = []
    try:
        for i in range(n):
            delays = RandomDelays(seed * 100003 + i, think=think, eat=eat)
            nodes.append(PhilosopherNode(i, n, coordinator.address, delays, host=host).start())
        addresses = [node.address for node in nodes]

        wait_for_start(coordinator.address)
        logger.info(f"Dinner with {n} philosophers started, dining for {duration_s}s")
        time.sleep(duration_s)

        halt_all(addresses)
        traces = collect_traces(addresses)
        states = collect_states(addresses)
    finally:
        for node in nodes:
            node.stop()
        coordinator.stop()

    events = merge_traces(traces)
    return {
        'n': n,
        'events': events,
        'states': [s['state'] for s in states],
        'failures': [s['failure'] for s in states if s['failure']],
        'meals': [s['state']['meals'] for s in states],
        'properties': check_all(events, n),
    }


def summarise(result: dict) -> dict:
    waits = [w for agent in hunger_waits(result['events'], result['n']) for w in agent]
    return {
        'n': result['n'],
        'meals': result['meals'],
        'failures': result['failures'],
        'violations': {name: len(v) for name, v in result['properties'].items()},
        'hunger_wait_s': {
            'mean': statistics.mean(waits) if waits else 0.0,
            'max': max(waits) if waits else 0.0,
        },
    }


# ─── Main ─────────────────────────────────────────────────────────────────────

def main():
    output_dir = os.environ.get('OUTPUT_DIR', 'results')
    os.makedirs(output_dir, exist_ok=True)

    n = int(os.environ.get('N_PHILOSOPHERS', 5))
    duration_s = float(os.environ.get('DURATION_S', 5))
    seed = int(os.environ.get('SEED', 0))

    result = run_dinner(n, duration_s, seed=seed)
    summary = summarise(result)

    for name, count in summary['violations'].items():
        logger.info(f"  {name}: {'OK' if count == 0 else f'{count} violations'}")
    logger.info(f"  meals per philosopher: {summary['meals']}")

    with open(f'{output_dir}/network_dinner.json', 'w') as f:
        json.dump(summary, f, indent=2)
    logger.info(f"=== Network dinner complete. Results in {output_dir}/ ===")


if __name__ == '__main__':
    main()
