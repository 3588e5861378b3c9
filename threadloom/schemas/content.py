"""
Shapes requested from the content-generation collaborator.

Each shape is a small pydantic model whose JSON schema is handed to the
provider. Required fields have no defaults, so a payload missing one is
treated as malformed and the calling engine substitutes its fallback.
"""

from typing import List

from pydantic import BaseModel, Field


class ChainNarrative(BaseModel):
    """Refined description of a newly scheduled consequence"""

    description: str = Field(..., min_length=1)


class ManifestationNarrative(BaseModel):
    """What happens in the story when a consequence comes due"""

    manifestation: str = Field(..., min_length=1)
    child_descriptions: List[str] = Field(
        default_factory=list, description="Seeds for follow-on consequences"
    )


class GroupName(BaseModel):
    """Display name for a relationship web"""

    group_name: str = Field(..., min_length=1, max_length=80)


class TensionComplications(BaseModel):
    """Opening complications for a romantic tension"""

    complications: List[str] = Field(..., min_length=1)


class NarrativeHook(BaseModel):
    """A short hook the presentation layer can surface"""

    hook: str = Field(..., min_length=1)


class PsychologicalProfile(BaseModel):
    """Description and manifestations of a psychological effect"""

    description: str = Field(..., min_length=1)
    manifestations: List[str] = Field(..., min_length=1)
