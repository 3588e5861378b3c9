"""
Result schemas returned by the engines and the synchronization manager
"""

from typing import List

from pydantic import BaseModel, Field

from .actions import RelationshipEvent
from .world import ConsequenceChain, WorldModel


class MaturationResult(BaseModel):
    """Outcome of maturing due consequence chains"""

    world_model: WorldModel
    matured_chains: List[ConsequenceChain] = Field(default_factory=list)
    child_chains: List[ConsequenceChain] = Field(default_factory=list)
    relationship_events: List[RelationshipEvent] = Field(
        default_factory=list,
        description="Events for the relationship engine, consumed the same turn",
    )


class ValidationReport(BaseModel):
    """Consistency check output; world_model has out-of-range values clamped"""

    world_model: WorldModel
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


class SyncResult(BaseModel):
    """Single consistent world model plus the turn's diagnostic report"""

    world_model: WorldModel
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)
    narrative_hooks: List[str] = Field(default_factory=list)
    matured_chain_ids: List[str] = Field(default_factory=list)
    loop_triggered: bool = Field(default=False)
    rejected: bool = Field(
        default=False,
        description="True when validation refused the turn and the input model was kept",
    )
