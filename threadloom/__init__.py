"""
Threadloom - narrative-state simulation core for interactive fiction
"""

from .engine import (
    ConsequenceEngine,
    InMemoryRoster,
    RelationshipEngine,
    SynchronizationManager,
    TemporalEngine,
)
from .errors import (
    AlreadyActive,
    HardError,
    InvalidComposition,
    LoopNotActive,
    NoSuchTension,
    NoSuchWeb,
    ThreadloomError,
    TurnInProgress,
)
from .schemas import LoopCheckpoint, PlayerAction, PlayerChoice, SyncResult, WorldModel

__version__ = "0.1.0"

__all__ = [
    "ConsequenceEngine",
    "RelationshipEngine",
    "TemporalEngine",
    "SynchronizationManager",
    "InMemoryRoster",
    "WorldModel",
    "LoopCheckpoint",
    "PlayerAction",
    "PlayerChoice",
    "SyncResult",
    "ThreadloomError",
    "HardError",
    "InvalidComposition",
    "LoopNotActive",
    "AlreadyActive",
    "NoSuchTension",
    "NoSuchWeb",
    "TurnInProgress",
]
