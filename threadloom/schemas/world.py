"""
World model schema definitions.

The WorldModel is the aggregate every engine reads and returns. Engines
never mutate a model they were handed; they build a copy with model_copy()
so the caller always keeps the previous turn's value intact.

Bounded numeric fields (cohesion, conflict, tension, stability, retention,
intensity) intentionally carry no range validators: out-of-range values
produced upstream are clamped by the consistency check and reported as
warnings instead of raising.
"""

import uuid
from typing import Any, Dict, List, Literal, Optional, Set

from pydantic import BaseModel, Field

DynamicsType = Literal["alliance", "rivalry", "love_triangle", "mentorship"]
TensionType = Literal["unrequited", "love_triangle", "rivalry_romance"]
AwarenessLevel = Literal["unaware", "suspecting", "aware", "mastered"]
MemoryType = Literal["trauma", "relationship", "knowledge", "general"]
EffectType = Literal["trauma", "determination", "paranoia", "attachment"]
TemporalPhase = Literal["dormant", "active", "looping"]

# Ordered from least to most aware; awareness only ever moves right
AWARENESS_LEVELS: List[str] = ["unaware", "suspecting", "aware", "mastered"]

BOUNDED_MIN = 0
BOUNDED_MAX = 100

# Fields replaced by a checkpoint on rollback vs. fields carried across it
RESET_FIELDS = ("consequence_chains", "relationship_webs", "romantic_tensions")
PERSISTENT_FIELDS = ("temporal_state", "retained_memories", "psychological_effects")


def new_id(prefix: str) -> str:
    """Short, prefixed identifier for world model records"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def clamp(value: float, low: float = BOUNDED_MIN, high: float = BOUNDED_MAX) -> float:
    return max(low, min(high, value))


class ConsequenceChain(BaseModel):
    """A scheduled, decaying effect of a player choice"""

    id: str = Field(default_factory=lambda: new_id("chain"))
    origin_description: str = Field(..., description="What set this chain off")
    chain_level: int = Field(default=0, ge=0, description="Depth, 0 = root")
    magnitude: float = Field(..., description="Strength, decays with depth")
    affected_thread_ids: Set[str] = Field(default_factory=set)
    related_actor_ids: Set[str] = Field(
        default_factory=set, description="Actors touched when the chain matures"
    )
    relationship_impact: float = Field(
        default=0.0, description="Sign and weight of emitted relationship events"
    )
    is_active: bool = Field(default=True)
    manifest_at_turn: int = Field(..., description="Turn at which it matures")
    created_at_turn: int = Field(default=0)
    parent_id: Optional[str] = Field(default=None)
    manifestation: Optional[str] = Field(
        default=None, description="Narrative text recorded when it matured"
    )
    is_archived: bool = Field(default=False)


class RelationshipWeb(BaseModel):
    """A named group of actors with aggregate cohesion and conflict"""

    id: str = Field(default_factory=lambda: new_id("web"))
    group_name: str = Field(...)
    member_ids: Set[str] = Field(...)
    dynamics_type: DynamicsType = Field(...)
    cohesion_level: float = Field(default=50)
    conflict_level: float = Field(default=0)
    is_resolved: bool = Field(default=False)
    history: List[str] = Field(default_factory=list)


class RomanticTension(BaseModel):
    """A tracked emotional conflict among two or three actors"""

    id: str = Field(default_factory=lambda: new_id("tension"))
    type: TensionType = Field(...)
    involved_actor_ids: Set[str] = Field(...)
    player_involved: bool = Field(default=False)
    tension_level: float = Field(default=50)
    complications: List[str] = Field(default_factory=list)
    potential_outcomes: List[str] = Field(default_factory=list)
    narrative_hooks: List[str] = Field(
        default_factory=list, description="Hooks for the caller to surface"
    )
    is_resolved: bool = Field(default=False)
    resolution: Optional[str] = Field(default=None)


class TemporalState(BaseModel):
    """Loop bookkeeping; absent from the world model while Dormant"""

    loop_id: str = Field(default_factory=lambda: new_id("loop"))
    trigger_event: str = Field(default="")
    current_iteration: int = Field(default=0, ge=0)
    total_loops: int = Field(default=0, ge=0)
    protagonist_awareness: AwarenessLevel = Field(default="unaware")
    temporal_stability_level: float = Field(default=100)
    loop_mechanics_active: bool = Field(default=True)
    phase: Literal["active", "looping"] = Field(default="active")
    last_trigger_reason: Optional[str] = Field(default=None)


class MemoryEntry(BaseModel):
    """A memory that may survive a rollback"""

    id: str = Field(default_factory=lambda: new_id("memory"))
    memory_type: MemoryType = Field(default="general")
    content: str = Field(...)
    retention_strength: float = Field(default=50)
    turn_id: int = Field(default=0, description="Turn the memory was formed")
    loops_survived: int = Field(default=0, ge=0)


class PsychologicalEffect(BaseModel):
    """Lasting scarring from loop exposure; never reset by a rollback"""

    id: str = Field(default_factory=lambda: new_id("psych"))
    effect_type: EffectType = Field(...)
    intensity: float = Field(default=0)
    description: str = Field(default="")
    manifestations: List[str] = Field(default_factory=list)
    cumulative_loops: int = Field(default=0, ge=0)


class WorldModel(BaseModel):
    """Aggregate root for the narrative simulation"""

    consequence_chains: List[ConsequenceChain] = Field(default_factory=list)
    relationship_webs: List[RelationshipWeb] = Field(default_factory=list)
    romantic_tensions: List[RomanticTension] = Field(default_factory=list)
    temporal_state: Optional[TemporalState] = Field(default=None)
    retained_memories: List[MemoryEntry] = Field(default_factory=list)
    psychological_effects: List[PsychologicalEffect] = Field(default_factory=list)
    current_turn: int = Field(default=0, ge=0)

    def find_chain(self, chain_id: str) -> Optional[ConsequenceChain]:
        return next((c for c in self.consequence_chains if c.id == chain_id), None)

    def find_web(self, web_id: str) -> Optional[RelationshipWeb]:
        return next((w for w in self.relationship_webs if w.id == web_id), None)

    def find_tension(self, tension_id: str) -> Optional[RomanticTension]:
        return next((t for t in self.romantic_tensions if t.id == tension_id), None)

    def active_chains(self) -> List[ConsequenceChain]:
        return [c for c in self.consequence_chains if c.is_active]

    def open_tensions(self) -> List[RomanticTension]:
        return [t for t in self.romantic_tensions if not t.is_resolved]

    def reset_fields(self) -> Dict[str, Any]:
        """Deep copies of the fields a rollback replaces"""
        return {name: _deep(getattr(self, name)) for name in RESET_FIELDS}

    def persistent_fields(self) -> Dict[str, Any]:
        """Deep copies of the fields a rollback carries forward"""
        return {name: _deep(getattr(self, name)) for name in PERSISTENT_FIELDS}


class LoopCheckpoint(BaseModel):
    """Caller-owned snapshot of the fields a loop rewinds to"""

    consequence_chains: List[ConsequenceChain] = Field(default_factory=list)
    relationship_webs: List[RelationshipWeb] = Field(default_factory=list)
    romantic_tensions: List[RomanticTension] = Field(default_factory=list)
    captured_at_turn: int = Field(default=0)

    @classmethod
    def capture(cls, world: WorldModel) -> "LoopCheckpoint":
        return cls(captured_at_turn=world.current_turn, **world.reset_fields())


def _deep(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_copy(deep=True)
    if isinstance(value, list):
        return [_deep(v) for v in value]
    return value
