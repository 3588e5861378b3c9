"""
Schemas for the Threadloom narrative core
"""

from .actions import (
    JealousyTrigger,
    MemoryRequest,
    PlayerAction,
    PlayerChoice,
    RelationshipEvent,
    TensionRequest,
    WebRequest,
)
from .content import (
    ChainNarrative,
    GroupName,
    ManifestationNarrative,
    NarrativeHook,
    PsychologicalProfile,
    TensionComplications,
)
from .results import MaturationResult, SyncResult, ValidationReport
from .validation import validate_generated_content, validate_json_schema
from .world import (
    AWARENESS_LEVELS,
    ConsequenceChain,
    LoopCheckpoint,
    MemoryEntry,
    PsychologicalEffect,
    RelationshipWeb,
    RomanticTension,
    TemporalState,
    WorldModel,
)

__all__ = [
    # World model
    "WorldModel",
    "ConsequenceChain",
    "RelationshipWeb",
    "RomanticTension",
    "TemporalState",
    "MemoryEntry",
    "PsychologicalEffect",
    "LoopCheckpoint",
    "AWARENESS_LEVELS",
    # Turn input
    "PlayerAction",
    "PlayerChoice",
    "RelationshipEvent",
    "WebRequest",
    "TensionRequest",
    "JealousyTrigger",
    "MemoryRequest",
    # Generated content shapes
    "ChainNarrative",
    "ManifestationNarrative",
    "GroupName",
    "TensionComplications",
    "NarrativeHook",
    "PsychologicalProfile",
    # Results
    "MaturationResult",
    "ValidationReport",
    "SyncResult",
    # Validation functions
    "validate_json_schema",
    "validate_generated_content",
]
