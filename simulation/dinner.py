"""
A complete dinner on the simulated network.

The dinner spawns the table and N philosophers at integer addresses
0..N-1 (indices into ``philosophers``), delivers each philosopher its Init,
lets the handshake run, and then drives the think/eat cycle for as long as
asked.
"""
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from core.delays import DEFAULT_EAT, DEFAULT_THINK, RandomDelays
from core.messages import Init
from core.philosopher import Phase, Philosopher
from core.properties import check_all, merge_traces
from core.table import Table, TablePhase
from core.trace import TraceEvent
from simulation.network import SimulatedNetwork

TABLE = 'table'


class Dinner:
    """
    Configuration:
    - n >= 2 philosophers
    - think / eat: (lo, hi) simulated ms, drawn per philosopher from its own
      seeded generator, unless ``delays`` provides one source per philosopher
    - latency: (lo, hi) simulated ms for fork and fork-request delivery
    """

    def __init__(self, n: int, seed: int = 0,
                 think: Tuple[int, int] = DEFAULT_THINK,
                 eat: Tuple[int, int] = DEFAULT_EAT,
                 latency: Tuple[int, int] = (1, 5),
                 delays: Optional[Sequence] = None):
        self.n = n
        self.seed = seed
        self.network = SimulatedNetwork(seed=seed, latency=latency)
        self.table = Table(n, TABLE, self.network)
        self.network.attach(TABLE, self.table)
        if delays is not None and len(delays) != n:
            raise ValueError(f"Need {n} delay sources, got {len(delays)}")

        self.philosophers: List[Philosopher] = []
        for i in range(n):
            source = delays[i] if delays is not None else \
                RandomDelays(seed * 100003 + i, think=think, eat=eat)
            philosopher = Philosopher(i, TABLE, self.network, source)
            self.network.attach(i, philosopher)
            self.philosophers.append(philosopher)
            self.network.send(TABLE, i, Init(i, n))
        self.logger = logging.getLogger('Dinner')

    @property
    def started(self) -> bool:
        return (self.table.phase is TablePhase.STARTED and
                all(p.phase is Phase.DINING for p in self.philosophers))

    def start(self) -> 'Dinner':
        """Run the register / wire / start handshake to completion."""
        if not self.started:
            self.network.run(stop=lambda: self.started)
            self.logger.debug(f"dinner with {self.n} philosophers started at t={self.network.time}")
        return self

    def run(self, meals: Optional[int] = None, max_time: Optional[int] = None) -> 'Dinner':
        """
        Run until every philosopher has eaten ``meals`` times, or for
        ``max_time`` more simulated ms, whichever comes first.
        """
        if meals is None and max_time is None:
            raise ValueError("run() needs meals or max_time, the dinner never ends by itself")
        self.start()
        stop = None
        if meals is not None:
            stop = lambda: all(p.meals >= meals for p in self.philosophers)
            if stop():
                return self
        until = None if max_time is None else self.network.time + max_time
        self.network.run(until=until, stop=stop)
        return self

    # ── Observation ──────────────────────────────────────────────────────────

    @property
    def time(self) -> int:
        return self.network.time

    def trace(self) -> List[TraceEvent]:
        return merge_traces(p.trace for p in self.philosophers)

    def meals(self) -> List[int]:
        return [p.meals for p in self.philosophers]

    def states(self) -> List[str]:
        return [p.state.name if p.state else p.phase.name for p in self.philosophers]

    def holders(self) -> Dict[int, int]:
        """fork id -> philosopher currently holding it (forks in transit are absent)."""
        held = {}
        for p in self.philosophers:
            for fork in p.forks:
                if fork is not None:
                    held[fork.id] = p.id
        return held

    def forks_in_transit(self) -> List[int]:
        return [m.id for m in self.network.in_flight() if m.type == 'fork']

    def check(self) -> Dict[str, List[str]]:
        return check_all(self.trace(), self.n)
