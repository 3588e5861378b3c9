"""
Configuration management for the Threadloom narrative core
"""

from typing import List, Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Content generation provider configuration
    model_provider: Literal["openai", "generic", "none"] = Field(default="none")
    openai_api_base: str = Field(default="https://api.openai.com/v1")
    openai_api_key: str = Field(default="")
    model_name: str = Field(default="gpt-4o-mini")
    generation_temperature: float = Field(default=0.7)
    generation_timeout_seconds: float = Field(
        default=20.0,
        description="Seconds to wait for structured content before falling back",
    )

    # Consequence chains
    max_chain_depth: int = Field(
        default=3, ge=0, description="Deepest chain level (D_max); never spawns"
    )
    consequence_decay_factor: float = Field(default=0.6, gt=0.0, le=1.0)
    spawn_probability: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Per-child spawn chance for a chain of magnitude 1.0",
    )
    max_children_per_chain: int = Field(default=2, ge=0)
    consequence_base_delay: int = Field(default=2, ge=1)
    consequence_min_delay: int = Field(default=1, ge=1)
    consequence_delay_step: int = Field(default=1, ge=0)
    complex_choice_multiplier: float = Field(default=1.25)
    relationship_event_scale: float = Field(
        default=20.0, description="Relationship delta produced by magnitude 1.0"
    )

    # Relationship webs and romantic tensions
    complication_delta_threshold: float = Field(default=10.0)
    max_complications: int = Field(default=10, ge=1)
    jealousy_increment: int = Field(default=30)
    jealousy_threshold: int = Field(default=75)

    # Temporal loops
    retention_threshold: int = Field(
        default=10, description="Memories must be strictly stronger to survive"
    )
    memory_decay_per_loop: int = Field(default=15, ge=0)
    max_retained_memories: int = Field(default=10, ge=0)
    loop_stability_cost: int = Field(default=5, ge=0)
    awareness_thresholds: List[int] = Field(default_factory=lambda: [1, 3, 6])
    psych_intensity_per_loop: int = Field(default=15, ge=0)
    paranoia_loop_threshold: int = Field(default=5)

    # Shared identifiers
    player_id: str = Field(default="player")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO"
    )

    class Config:
        env_file = ".env"
        env_prefix = "THREADLOOM_"
        case_sensitive = False


# Global settings instance
settings = Settings()
