"""
Core engine components for the Threadloom narrative core
"""

from .consequence import ConsequenceEngine
from .relationship import RelationshipEngine
from .roster import InMemoryRoster, Roster
from .synchronization import SynchronizationManager, default_loop_predicate
from .temporal import TemporalEngine, phase_of

__all__ = [
    "ConsequenceEngine",
    "RelationshipEngine",
    "TemporalEngine",
    "SynchronizationManager",
    "Roster",
    "InMemoryRoster",
    "default_loop_predicate",
    "phase_of",
]
