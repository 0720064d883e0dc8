"""
Discrete-event transport with a controllable clock.

Replaces real sockets and sleeps for reproducible runs:
- time is an integer number of simulated milliseconds, advanced only by
  processing events
- every delivery and every timer expiry is one event; events are processed
  strictly one at a time
- messages between one ordered pair of endpoints arrive in send order;
  across pairs the random latency reorders them freely
- handshake messages travel with zero latency, so the Start broadcast has
  reached everybody before the first think timer can fire
"""
import copy
import heapq
import itertools
import logging
import random
from typing import Any, Callable, Dict, Optional, Tuple

from core.messages import is_protocol_message

_TIMER = None


class SimulatedNetwork:
    """
    Endpoints are any objects with ``handle(message)`` and ``on_timer()``.

    Args:
        seed: seed of the latency generator
        latency: (lo, hi) inclusive range for peer-to-peer message latency
    """

    def __init__(self, seed: int = 0, latency: Tuple[int, int] = (1, 5)):
        lo, hi = latency
        if lo < 0 or hi < lo:
            raise ValueError(f"Invalid latency range: {latency}")
        self.time = 0
        self.latency = latency
        self.rng = random.Random(seed)
        self.endpoints: Dict[Any, Any] = {}
        self._queue = []
        self._seq = itertools.count()
        self._last_delivery: Dict[Tuple[Any, Any], int] = {}
        self.sent = 0
        self.processed = 0
        self.logger = logging.getLogger('SimulatedNetwork')

    # ── Transport interface ──────────────────────────────────────────────────

    def attach(self, address: Any, endpoint: Any) -> None:
        if address in self.endpoints:
            raise ValueError(f"Address already in use: {address!r}")
        self.endpoints[address] = endpoint

    def now(self) -> int:
        return self.time

    def send(self, sender: Any, recipient: Any, message: Any) -> None:
        if recipient not in self.endpoints:
            raise ValueError(f"Unknown endpoint: {recipient!r}")
        delay = self.rng.randint(*self.latency) if is_protocol_message(message) else 0
        pair = (sender, recipient)
        at = max(self.time + delay, self._last_delivery.get(pair, 0))
        self._last_delivery[pair] = at
        # the sender gives the message up; the receiver gets its own copy
        heapq.heappush(self._queue, (at, next(self._seq), recipient, copy.copy(message)))
        self.sent += 1

    def schedule(self, address: Any, delay: int) -> None:
        heapq.heappush(self._queue, (self.time + delay, next(self._seq), address, _TIMER))

    # ── Event loop ───────────────────────────────────────────────────────────

    @property
    def pending(self) -> int:
        return len(self._queue)

    def in_flight(self):
        """Messages sent but not yet delivered, in no particular order."""
        return [message for _, _, _, message in self._queue if message is not _TIMER]

    def step(self) -> bool:
        """Process the next event. Returns False when nothing is left."""
        if not self._queue:
            return False
        at, _, address, message = heapq.heappop(self._queue)
        self.time = at
        endpoint = self.endpoints[address]
        if message is _TIMER:
            endpoint.on_timer()
        else:
            endpoint.handle(message)
        self.processed += 1
        return True

    def run(self, until: Optional[int] = None,
            stop: Optional[Callable[[], bool]] = None,
            max_events: Optional[int] = None) -> int:
        """
        Process events until the queue is empty, the next event lies after
        ``until``, ``stop()`` becomes true or ``max_events`` were processed.

        Returns:
            number of events processed by this call
        """
        count = 0
        while self._queue:
            if until is not None and self._queue[0][0] > until:
                self.time = until
                break
            if max_events is not None and count >= max_events:
                break
            self.step()
            count += 1
            if stop is not None and stop():
                break
        self.logger.debug(f"processed {count} events, t={self.time}")
        return count
