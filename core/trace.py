"""
Trace records emitted by philosophers.
"""
from dataclasses import dataclass, asdict
from typing import Literal, Optional

# kinds
STATE = 'state'        # entered ``state``
ACQUIRE = 'acquire'    # started holding ``fork``
RELEASE = 'release'    # sent ``fork`` away; ``dirty`` is the flag before cleaning


@dataclass
class TraceEvent:
    """
    One observation made by a single philosopher.

    An event is a quadruplet (time, agent, kind, detail) where the detail is
    either a state name or a fork id with its dirty flag.
    """
    time: float
    agent: int
    kind: Literal['state', 'acquire', 'release']
    fork: Optional[int] = None
    dirty: Optional[bool] = None
    state: Optional[str] = None

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_dict(cls, d):
        return cls(**d)

    def __str__(self):
        if self.kind == STATE:
            return f"t={self.time} p{self.agent} {self.state}"
        flag = 'dirty' if self.dirty else 'clean'
        return f"t={self.time} p{self.agent} {self.kind} fork {self.fork} ({flag})"
