"""
Core components of the dining philosophers protocol
"""
from .errors import ProtocolViolation, HandshakeViolation, TopologyError
from .messages import (
    Fork, ForkRequest, Init, Register, WireNeighbors, WireAck, Start,
    to_dict, parse_message
)
from .topology import RingTopology, Seat, LEFT, RIGHT, precedence_graph, find_cycle, is_acyclic
from .delays import RandomDelays, FixedDelays
from .trace import TraceEvent
from .philosopher import Philosopher, PhilosopherState, Phase
from .table import Table, TablePhase
from .properties import merge_traces, check_all

__all__ = [
    'ProtocolViolation',
    'HandshakeViolation',
    'TopologyError',
    'Fork',
    'ForkRequest',
    'Init',
    'Register',
    'WireNeighbors',
    'WireAck',
    'Start',
    'to_dict',
    'parse_message',
    'RingTopology',
    'Seat',
    'LEFT',
    'RIGHT',
    'precedence_graph',
    'find_cycle',
    'is_acyclic',
    'RandomDelays',
    'FixedDelays',
    'TraceEvent',
    'Philosopher',
    'PhilosopherState',
    'Phase',
    'Table',
    'TablePhase',
    'merge_traces',
    'check_all'
]
