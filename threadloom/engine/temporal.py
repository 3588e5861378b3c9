"""
Temporal engine - time loops, rollback and memory retention.

Loop mechanics move through three phases:

    dormant  --initialize_loop-->  active  --trigger_loop-->  looping  --> active

Dormant is simply the absence of a TemporalState on the world model.
Initialization is irreversible for the session.

A loop rewinds consequence chains, relationship webs and romantic tensions
to a checkpoint the caller supplies. The temporal engine never stores that
checkpoint itself; it only re-applies it. Temporal state, retained memories
and psychological effects are carried across the loop: memories fade and
may be lost, psychological effects only ever accumulate.
"""

from typing import Dict, List, Optional, Tuple

from threadloom.config import Settings, settings
from threadloom.errors import AlreadyActive, LoopNotActive
from threadloom.prompts import PSYCHOLOGICAL_CONTEXT
from threadloom.providers.generation import ContentGenerator, generate_or_fallback
from threadloom.schemas.content import PsychologicalProfile
from threadloom.schemas.world import (
    AWARENESS_LEVELS,
    AwarenessLevel,
    ConsequenceChain,
    EffectType,
    LoopCheckpoint,
    MemoryEntry,
    MemoryType,
    PsychologicalEffect,
    TemporalPhase,
    TemporalState,
    WorldModel,
    clamp,
)
from threadloom.utils.logger import get_logger

logger = get_logger(__name__)

TRAUMA_KEYWORDS = ("death", "died", "killed", "failure", "catastrophic")
TRAUMA_MEMORY_STRENGTH = 90

DEFAULT_PROFILES: Dict[str, Tuple[str, List[str]]] = {
    "trauma": (
        "Psychological trauma from repeated deaths",
        ["nightmares", "hypervigilance", "emotional numbness"],
    ),
    "determination": (
        "Growing determination to break the loop",
        ["increased focus", "risk taking", "strategic thinking"],
    ),
    "paranoia": (
        "Distrust of a world that keeps resetting",
        ["second-guessing allies", "rehearsing escape routes", "sleeplessness"],
    ),
    "attachment": (
        "Clinging to the people who are remembered across loops",
        ["protectiveness", "reluctance to part", "grief at their forgetting"],
    ),
}


def is_traumatic(trigger_reason: str) -> bool:
    reason = trigger_reason.lower()
    return any(keyword in reason for keyword in TRAUMA_KEYWORDS)


def select_surviving_memories(
    memories: List[MemoryEntry],
    retention_threshold: float,
    decay: float,
    max_retained: int,
) -> List[MemoryEntry]:
    """
    Memories that make it through a rollback.

    Only entries strictly above ``retention_threshold`` survive; survivors
    lose ``decay`` strength (floored at 0) and the strongest ``max_retained``
    are kept. The cap wins over the threshold: when more entries clear the
    threshold than ``max_retained`` allows, the weakest of them are dropped
    even though they were strong enough to survive.
    """
    survivors = [
        m.model_copy(
            update={
                "retention_strength": max(0.0, m.retention_strength - decay),
                "loops_survived": m.loops_survived + 1,
            }
        )
        for m in memories
        if m.retention_strength > retention_threshold
    ]
    survivors.sort(key=lambda m: m.retention_strength, reverse=True)
    return survivors[:max_retained]


def advance_awareness(
    current: AwarenessLevel, total_loops: int, thresholds: List[int]
) -> AwarenessLevel:
    """
    Move awareness at most one step toward the level earned by total_loops.

    Never moves backwards.
    """
    earned = sum(1 for t in thresholds if total_loops >= t)
    earned = min(earned, len(AWARENESS_LEVELS) - 1)
    index = AWARENESS_LEVELS.index(current)
    if earned > index:
        index += 1
    return AWARENESS_LEVELS[index]  # type: ignore[return-value]


def reschedule_restored_chains(
    chains: List[ConsequenceChain], elapsed_turns: int
) -> List[ConsequenceChain]:
    """
    Deep copies of checkpointed chains with pending ones pushed back by
    ``elapsed_turns``.

    The turn counter keeps running across a loop, so an active chain keeps
    the delay it had left when the checkpoint was captured.
    """
    shift = max(0, elapsed_turns)
    restored = []
    for chain in chains:
        copy = chain.model_copy(deep=True)
        if copy.is_active and shift:
            copy.manifest_at_turn += shift
        restored.append(copy)
    return restored


def phase_of(world: WorldModel) -> TemporalPhase:
    if world.temporal_state is None:
        return "dormant"
    return world.temporal_state.phase


class TemporalEngine:
    """Manages loop state, rollback snapshots and memory retention"""

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        config: Optional[Settings] = None,
    ):
        self.generator = generator
        self.config = config or settings

    def initialize_loop(self, trigger_event: str, world: WorldModel) -> WorldModel:
        """
        Arm loop mechanics (dormant -> active).

        Raises:
            AlreadyActive: loop mechanics were already initialized
        """
        if world.temporal_state is not None:
            raise AlreadyActive(
                f"Loop mechanics already initialized by '{world.temporal_state.trigger_event}'"
            )

        state = TemporalState(trigger_event=trigger_event, loop_mechanics_active=True)
        logger.info(f"[Temporal] Loop {state.loop_id} armed by '{trigger_event}'")
        return world.model_copy(update={"temporal_state": state})

    def _require_active(self, world: WorldModel) -> TemporalState:
        state = world.temporal_state
        if state is None or not state.loop_mechanics_active:
            raise LoopNotActive("Loop mechanics have not been initialized")
        return state

    def record_memory(
        self,
        memory_type: MemoryType,
        content: str,
        retention_strength: float,
        world: WorldModel,
    ) -> WorldModel:
        """Add a memory formed on the current turn"""
        entry = MemoryEntry(
            memory_type=memory_type,
            content=content,
            retention_strength=retention_strength,
            turn_id=world.current_turn,
        )
        return world.model_copy(
            update={"retained_memories": [*world.retained_memories, entry]}
        )

    def restore_stability(
        self, amount: float, reason: str, world: WorldModel
    ) -> WorldModel:
        """
        Restore temporal stability through a narrative event.

        The only operation that may raise stability; capped at 100.

        Raises:
            LoopNotActive: loop mechanics are dormant
        """
        state = self._require_active(world)
        if amount <= 0:
            return world

        level = clamp(state.temporal_stability_level + amount)
        logger.info(
            f"[Temporal] Stability restored {state.temporal_stability_level:.0f} -> "
            f"{level:.0f} ({reason})"
        )
        return world.model_copy(
            update={
                "temporal_state": state.model_copy(
                    update={"temporal_stability_level": level}
                )
            }
        )

    async def trigger_loop(
        self,
        trigger_reason: str,
        world: WorldModel,
        checkpoint: Optional[LoopCheckpoint] = None,
        preserve_memories: bool = True,
    ) -> WorldModel:
        """
        Roll the world back to ``checkpoint`` (active -> looping -> active).

        Steps, in order: count the loop, select surviving memories, advance
        awareness, pay the stability cost, accumulate psychological effects,
        then re-apply the checkpoint. Without a checkpoint the reset-on-loop
        fields are left as they are.

        Raises:
            LoopNotActive: loop mechanics are dormant
        """
        state = self._require_active(world)
        looping = state.model_copy(update={"phase": "looping"})
        logger.info(
            f"[Temporal] Loop {looping.loop_id} triggered: {trigger_reason} "
            f"(iteration {looping.current_iteration})"
        )

        # 1. Count the loop
        total_loops = looping.total_loops + 1
        iteration = looping.current_iteration + 1

        # 2. Memory retention
        memories: List[MemoryEntry] = []
        if preserve_memories:
            memories = select_surviving_memories(
                world.retained_memories,
                self.config.retention_threshold,
                self.config.memory_decay_per_loop,
                self.config.max_retained_memories,
            )
            if is_traumatic(trigger_reason) and self.config.max_retained_memories > 0:
                memories.append(
                    MemoryEntry(
                        memory_type="trauma",
                        content=f"Traumatic loop end: {trigger_reason}",
                        retention_strength=TRAUMA_MEMORY_STRENGTH,
                        turn_id=world.current_turn,
                    )
                )
                memories.sort(key=lambda m: m.retention_strength, reverse=True)
                memories = memories[: self.config.max_retained_memories]
        lost = len(world.retained_memories) - len(memories)

        # 3. Awareness never regresses
        awareness = advance_awareness(
            looping.protagonist_awareness,
            total_loops,
            self.config.awareness_thresholds,
        )

        # 4. Stability cost
        stability = clamp(
            looping.temporal_stability_level - self.config.loop_stability_cost
        )

        # 5. Psychological effects persist and accumulate
        effects = await self._accumulate_effects(
            world.psychological_effects, trigger_reason, total_loops, memories
        )

        finished = looping.model_copy(
            update={
                "total_loops": total_loops,
                "current_iteration": iteration,
                "protagonist_awareness": awareness,
                "temporal_stability_level": stability,
                "last_trigger_reason": trigger_reason,
                "phase": "active",
            }
        )

        # 6. Re-apply the caller's checkpoint
        update = {
            "temporal_state": finished,
            "retained_memories": memories,
            "psychological_effects": effects,
        }
        if checkpoint is not None:
            update.update(
                consequence_chains=reschedule_restored_chains(
                    checkpoint.consequence_chains,
                    world.current_turn - checkpoint.captured_at_turn,
                ),
                relationship_webs=[w.model_copy(deep=True) for w in checkpoint.relationship_webs],
                romantic_tensions=[t.model_copy(deep=True) for t in checkpoint.romantic_tensions],
            )
        else:
            logger.warning(
                "[Temporal] No checkpoint supplied; chains, webs and tensions kept as-is"
            )

        logger.info(
            f"[Temporal] Loop {total_loops} complete: awareness={awareness}, "
            f"stability={stability:.0f}, memories kept={len(memories)}, lost={max(lost, 0)}"
        )
        return world.model_copy(update=update)

    async def _accumulate_effects(
        self,
        effects: List[PsychologicalEffect],
        trigger_reason: str,
        total_loops: int,
        memories: List[MemoryEntry],
    ) -> List[PsychologicalEffect]:
        step = self.config.psych_intensity_per_loop
        wanted: List[EffectType] = [
            "trauma" if is_traumatic(trigger_reason) else "determination"
        ]
        if total_loops > self.config.paranoia_loop_threshold:
            wanted.append("paranoia")
        if any(m.memory_type == "relationship" for m in memories):
            wanted.append("attachment")

        updated = list(effects)
        for effect_type in wanted:
            index = next(
                (i for i, e in enumerate(updated) if e.effect_type == effect_type), None
            )
            if index is not None:
                existing = updated[index]
                updated[index] = existing.model_copy(
                    update={
                        "intensity": clamp(existing.intensity + step),
                        "cumulative_loops": existing.cumulative_loops + 1,
                    }
                )
                continue

            intensity = clamp(step * total_loops)
            description, manifestations = DEFAULT_PROFILES[effect_type]
            context = PSYCHOLOGICAL_CONTEXT.format(
                total_loops=total_loops,
                trigger_reason=trigger_reason,
                effect_type=effect_type,
                intensity=intensity,
            )
            profile = await generate_or_fallback(
                self.generator,
                context,
                PsychologicalProfile,
                PsychologicalProfile(
                    description=description, manifestations=list(manifestations)
                ),
            )
            updated.append(
                PsychologicalEffect(
                    effect_type=effect_type,
                    intensity=intensity,
                    description=profile.description,
                    manifestations=profile.manifestations,
                    cumulative_loops=1,
                )
            )
            logger.debug(
                f"[Temporal] New psychological effect {effect_type} at {intensity:.0f}"
            )

        return updated
