"""
Ring topology and initial fork / request-token assignment.

Fork ``i`` sits between philosopher ``i`` (its right fork) and philosopher
``i+1`` (its left fork). For every fork exactly one of the two neighbours
holds the fork and the other holds the request token.

Initial assignment:
    every philosopher owns its RIGHT fork and the request token of its LEFT
    fork, except on the wrap-around edge (fork N-1) where the roles are
    reversed: philosopher 0 owns its LEFT fork and philosopher N-1 holds the
    request token of its RIGHT fork.

Since all forks start dirty, the holder of a fork yields to the other side.
The precedence graph therefore has an edge token-holder -> fork-holder per
fork. With the exception above every edge points from the higher id to the
lower id, so the graph is acyclic. Without it, the edges form the ring
0 -> N-1 -> ... -> 1 -> 0 and the classic deadlock is possible.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from core.errors import TopologyError

LEFT = 0
RIGHT = 1
SIDES = (LEFT, RIGHT)


@dataclass(frozen=True)
class Seat:
    """Everything one philosopher needs to know about its place at the table."""
    id: int
    neighbour_ids: Tuple[int, int]    # (left, right)
    fork_ids: Tuple[int, int]         # (left, right)
    holds_fork: Tuple[bool, bool]
    holds_request: Tuple[bool, bool]

    @property
    def left_neighbour(self) -> int:
        return self.neighbour_ids[LEFT]

    @property
    def right_neighbour(self) -> int:
        return self.neighbour_ids[RIGHT]

    def side_of(self, fork_id: int) -> Optional[int]:
        """Side on which ``fork_id`` lies, or None if it is not ours."""
        if fork_id == self.fork_ids[LEFT]:
            return LEFT
        if fork_id == self.fork_ids[RIGHT]:
            return RIGHT
        return None


class RingTopology:
    """
    N philosophers around a table.

    left(i)     = (i - 1 + N) mod N
    right(i)    = (i + 1) mod N
    fork_ids(i) = [(i - 1 + N) mod N, i]
    """

    def __init__(self, n: int):
        if not isinstance(n, int) or isinstance(n, bool) or n < 2:
            raise TopologyError(f"A ring needs at least 2 philosophers, got {n!r}")
        self.n = n

    def left(self, i: int) -> int:
        return (i - 1 + self.n) % self.n

    def right(self, i: int) -> int:
        return (i + 1) % self.n

    def fork_ids(self, i: int) -> Tuple[int, int]:
        return ((i - 1 + self.n) % self.n, i)

    def seat(self, i: int) -> Seat:
        if not 0 <= i < self.n:
            raise TopologyError(f"Philosopher id {i} outside [0, {self.n})")
        neighbours = (self.left(i), self.right(i))
        # Only philosopher 0 owns its left fork (the wrap-around fork N-1);
        # only philosopher N-1 holds the token for its right fork.
        holds_fork = (i == 0, i != self.n - 1)
        holds_request = (not holds_fork[LEFT], not holds_fork[RIGHT])
        return Seat(
            id=i,
            neighbour_ids=neighbours,
            fork_ids=self.fork_ids(i),
            holds_fork=holds_fork,
            holds_request=holds_request,
        )

    def seats(self) -> List[Seat]:
        seats = [self.seat(i) for i in range(self.n)]
        check_assignment(seats)
        return seats

    def __repr__(self):
        return f"RingTopology(n={self.n})"


# ─── Assignment checks ───────────────────────────────────────────────────────

def _holders(seats: Iterable[Seat]) -> Tuple[Dict[int, List[int]], Dict[int, List[int]]]:
    """fork id -> ids holding the fork, fork id -> ids holding its token."""
    forks: Dict[int, List[int]] = {}
    tokens: Dict[int, List[int]] = {}
    for seat in seats:
        for side in SIDES:
            fork_id = seat.fork_ids[side]
            forks.setdefault(fork_id, [])
            tokens.setdefault(fork_id, [])
            if seat.holds_fork[side]:
                forks[fork_id].append(seat.id)
            if seat.holds_request[side]:
                tokens[fork_id].append(seat.id)
    return forks, tokens


def check_assignment(seats: List[Seat]) -> None:
    """
    Exactly one fork and one request token per edge, never on the same side.

    Raises:
        TopologyError: if the assignment breaks fork conservation
    """
    forks, tokens = _holders(seats)
    if len(forks) != len(seats):
        raise TopologyError(f"Expected {len(seats)} forks, found {len(forks)}")
    for fork_id in forks:
        if len(forks[fork_id]) != 1:
            raise TopologyError(f"Fork {fork_id} held by {forks[fork_id]}")
        if len(tokens[fork_id]) != 1:
            raise TopologyError(f"Request token {fork_id} held by {tokens[fork_id]}")
        if forks[fork_id] == tokens[fork_id]:
            raise TopologyError(f"Fork {fork_id} and its token both at {forks[fork_id][0]}")


def precedence_graph(seats: Iterable[Seat]) -> Dict[int, List[int]]:
    """
    Initial precedence graph: for every fork, token holder -> fork holder.

    All forks are dirty at start, so the fork holder yields to the token
    holder. Parallel edges (N = 2) are kept.
    """
    seats = list(seats)
    graph: Dict[int, List[int]] = {seat.id: [] for seat in seats}
    forks, tokens = _holders(seats)
    for fork_id in sorted(forks):
        for src in tokens[fork_id]:
            for dst in forks[fork_id]:
                graph[src].append(dst)
    return graph


def find_cycle(graph: Dict[int, List[int]]) -> Optional[List[int]]:
    """Return one cycle as a list of nodes, or None if the graph is a DAG."""
    WHITE, GREY, BLACK = 0, 1, 2
    colour = {node: WHITE for node in graph}
    parent: Dict[int, int] = {}

    for root in graph:
        if colour[root] != WHITE:
            continue
        colour[root] = GREY
        stack = [(root, iter(graph[root]))]
        while stack:
            node, children = stack[-1]
            child = next(children, None)
            if child is None:
                colour[node] = BLACK
                stack.pop()
            elif colour[child] == GREY:
                cycle = [child]
                walk = node
                while walk != child:
                    cycle.append(walk)
                    walk = parent[walk]
                cycle.reverse()
                return cycle
            elif colour[child] == WHITE:
                colour[child] = GREY
                parent[child] = node
                stack.append((child, iter(graph[child])))
    return None


def is_acyclic(seats: Iterable[Seat]) -> bool:
    return find_cycle(precedence_graph(seats)) is None
