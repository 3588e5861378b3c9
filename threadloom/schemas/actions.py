"""
Turn input schemas: player actions, flagged choices and relationship events
"""

from typing import List, Literal, Optional, Set

from pydantic import BaseModel, Field

from .world import DynamicsType, MemoryType, TensionType


class PlayerChoice(BaseModel):
    """A choice flagged as consequential, with declared risk inputs"""

    choice_text: str = Field(..., description="What the player chose")
    risk_level: float = Field(default=0.5, ge=0.0, le=1.0)
    moral_weight: float = Field(default=0.5, ge=0.0, le=1.0)
    moral_alignment: Literal["good", "neutral", "evil", "complex"] = Field(
        default="neutral"
    )
    affected_thread_ids: Set[str] = Field(default_factory=set)
    related_actor_ids: Set[str] = Field(default_factory=set)
    relationship_impact: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="How the eventual fallout will sway the related actors",
    )


class RelationshipEvent(BaseModel):
    """A relationship-affecting event for one actor"""

    actor_id: str = Field(...)
    delta: float = Field(..., description="Signed change, positive warms")
    reason: str = Field(default="")


class WebRequest(BaseModel):
    """Ask the relationship engine to form a web this turn"""

    member_ids: Set[str] = Field(...)
    dynamics_type: DynamicsType = Field(...)
    group_name: Optional[str] = Field(default=None)


class TensionRequest(BaseModel):
    """Ask the relationship engine to open a romantic tension this turn"""

    tension_type: TensionType = Field(...)
    involved_actor_ids: Set[str] = Field(...)
    player_involved: bool = Field(default=False)


class JealousyTrigger(BaseModel):
    """One actor reacting jealously to attention paid to another"""

    jealous_actor_id: str = Field(...)
    target_actor_id: str = Field(...)
    trigger_description: str = Field(...)


class MemoryRequest(BaseModel):
    """A memory the protagonist forms this turn"""

    memory_type: MemoryType = Field(default="general")
    content: str = Field(...)
    retention_strength: float = Field(default=50)


class PlayerAction(BaseModel):
    """Everything the caller submits for one turn"""

    description: str = Field(default="", description="Free-text action")
    choice: Optional[PlayerChoice] = Field(
        default=None, description="Set when the action is a flagged choice"
    )
    events: List[str] = Field(
        default_factory=list, description="Narrative event tags, e.g. player_death"
    )
    relationship_events: List[RelationshipEvent] = Field(default_factory=list)
    new_webs: List[WebRequest] = Field(default_factory=list)
    new_tensions: List[TensionRequest] = Field(default_factory=list)
    jealousy_triggers: List[JealousyTrigger] = Field(default_factory=list)
    memories: List[MemoryRequest] = Field(default_factory=list)
    initialize_loop: Optional[str] = Field(
        default=None, description="Trigger event that arms loop mechanics"
    )
    stability_restoration: float = Field(default=0, ge=0)
    loop_reason: Optional[str] = Field(
        default=None, description="Reason recorded if this turn triggers a loop"
    )
    preserve_memories: bool = Field(default=True)
