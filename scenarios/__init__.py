"""
Evaluation scenarios for the dining philosophers protocol
"""
from .scenario1 import Scenario1
from .scenario2 import Scenario2
from .scenario3 import Scenario3, jain_index

__all__ = ['Scenario1', 'Scenario2', 'Scenario3', 'jain_index']
