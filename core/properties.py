"""
Safety and liveness properties evaluated over a merged trace.

Each check returns a list of human-readable violations; an empty list means
the property holds for the trace.

1. mutual_exclusion: a fork is held by at most one philosopher at a time
2. conservation: per fork, acquisitions - releases is 0 or 1
3. dirty_transfers: a fork is only handed over while dirty
4. adjacent_eating: neighbours never eat at the same time
5. everyone_ate: every philosopher entered EATING at least once
"""
from typing import Dict, Iterable, List, Optional, Tuple

from core.trace import ACQUIRE, RELEASE, STATE, TraceEvent

Interval = Tuple[float, float]


def merge_traces(traces: Iterable[Iterable[TraceEvent]]) -> List[TraceEvent]:
    """
    Merge per-philosopher traces into one time-ordered trace.

    At equal timestamps a release sorts before an acquisition: the receiver
    can only acquire what the sender already let go of.
    """
    events = [event for trace in traces for event in trace]
    events.sort(key=lambda e: (e.time, 0 if e.kind == RELEASE else 1))
    return events


def check_mutual_exclusion(events: List[TraceEvent]) -> List[str]:
    violations = []
    holders: Dict[int, int] = {}
    for event in events:
        if event.kind == ACQUIRE:
            if event.fork in holders:
                violations.append(
                    f"t={event.time}: fork {event.fork} acquired by {event.agent} "
                    f"while held by {holders[event.fork]}")
            holders[event.fork] = event.agent
        elif event.kind == RELEASE:
            if holders.get(event.fork) != event.agent:
                violations.append(
                    f"t={event.time}: fork {event.fork} released by {event.agent} "
                    f"but held by {holders.get(event.fork)}")
            holders.pop(event.fork, None)
    return violations


def check_conservation(events: List[TraceEvent], n: int) -> List[str]:
    acquired = [0] * n
    released = [0] * n
    violations = []
    for event in events:
        if event.kind not in (ACQUIRE, RELEASE):
            continue
        if not 0 <= event.fork < n:
            violations.append(f"unknown fork {event.fork} in {event}")
            continue
        if event.kind == ACQUIRE:
            acquired[event.fork] += 1
        else:
            released[event.fork] += 1
    for fork_id in range(n):
        balance = acquired[fork_id] - released[fork_id]
        if balance not in (0, 1):
            violations.append(
                f"fork {fork_id}: {acquired[fork_id]} acquisitions vs "
                f"{released[fork_id]} releases")
    return violations


def check_dirty_transfers(events: List[TraceEvent]) -> List[str]:
    return [f"clean fork handed over: {event}"
            for event in events
            if event.kind == RELEASE and event.dirty is not True]


def eating_intervals(events: List[TraceEvent], n: int,
                     end_time: Optional[float] = None) -> List[List[Interval]]:
    """
    Half-open [start, end) EATING intervals per philosopher.

    A meal still running at the end of the trace closes at ``end_time``
    (default: infinity).
    """
    closing = float('inf') if end_time is None else end_time
    intervals: List[List[Interval]] = [[] for _ in range(n)]
    started: Dict[int, float] = {}
    for event in events:
        if event.kind != STATE:
            continue
        if event.state == 'EATING':
            started[event.agent] = event.time
        elif event.agent in started:
            intervals[event.agent].append((started.pop(event.agent), event.time))
    for agent, start in started.items():
        intervals[agent].append((start, closing))
    return intervals


def _overlaps(a: List[Interval], b: List[Interval]) -> List[Tuple[Interval, Interval]]:
    """Overlapping pairs between two sorted, internally disjoint interval lists."""
    found = []
    i = j = 0
    while i < len(a) and j < len(b):
        if a[i][0] < b[j][1] and b[j][0] < a[i][1]:
            found.append((a[i], b[j]))
        if a[i][1] <= b[j][1]:
            i += 1
        else:
            j += 1
    return found


def check_adjacent_eating(events: List[TraceEvent], n: int) -> List[str]:
    intervals = eating_intervals(events, n)
    violations = []
    for i in range(n):
        j = (i + 1) % n
        if n == 2 and i == 1:
            break   # the only pair, already checked
        for x, y in _overlaps(intervals[i], intervals[j]):
            violations.append(f"neighbours {i} and {j} eating together: {x} / {y}")
    return violations


def non_adjacent_overlaps(events: List[TraceEvent], n: int) -> int:
    """Number of overlapping meals between philosophers that share no fork."""
    intervals = eating_intervals(events, n)
    count = 0
    for i in range(n):
        for j in range(i + 1, n):
            if j == i + 1 or (i == 0 and j == n - 1):
                continue
            count += len(_overlaps(intervals[i], intervals[j]))
    return count


def check_everyone_ate(events: List[TraceEvent], n: int) -> List[str]:
    ate = {e.agent for e in events if e.kind == STATE and e.state == 'EATING'}
    return [f"philosopher {i} never ate" for i in range(n) if i not in ate]


def hunger_waits(events: List[TraceEvent], n: int) -> List[List[float]]:
    """Per philosopher, the time from each HUNGRY to the following EATING."""
    waits: List[List[float]] = [[] for _ in range(n)]
    hungry_since: Dict[int, float] = {}
    for event in events:
        if event.kind != STATE:
            continue
        if event.state == 'HUNGRY':
            hungry_since[event.agent] = event.time
        elif event.state == 'EATING' and event.agent in hungry_since:
            waits[event.agent].append(event.time - hungry_since.pop(event.agent))
    return waits


def check_all(events: List[TraceEvent], n: int) -> Dict[str, List[str]]:
    """
    Evaluate every property.

    Returns:
        property name -> violations (all empty when the run is correct)
    """
    return {
        'mutual_exclusion': check_mutual_exclusion(events),
        'conservation': check_conservation(events, n),
        'dirty_transfers': check_dirty_transfers(events),
        'adjacent_eating': check_adjacent_eating(events, n),
        'everyone_ate': check_everyone_ate(events, n),
    }
