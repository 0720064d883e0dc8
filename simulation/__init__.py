"""
Deterministic simulation runtime
"""
from .network import SimulatedNetwork
from .dinner import Dinner, TABLE

__all__ = [
    'SimulatedNetwork',
    'Dinner',
    'TABLE'
]
