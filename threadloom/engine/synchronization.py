"""
Synchronization manager - runs one turn through all three engines.

The pipeline is strictly ordered:

1. Consequence engine: mature due chains, then schedule a chain for the
   turn's flagged choice.
2. Relationship engine: fold in the events emitted in step 1 and any
   caller-supplied events, then form requested webs and tensions and
   process jealousy triggers.
3. Temporal engine: optional initialization, memory recording, stability
   restoration, then the loop predicate and possibly a rollback.
4. Consistency validation.

A hard error from a single operation is recorded and that operation is
skipped; the rest of the turn still runs. Dangling references and
out-of-range values are warnings (values are clamped). A love-triangle
cardinality violation rejects the whole turn and the caller gets its input
world model back unchanged.
"""

import random
from typing import Any, Callable, Dict, List, Optional, Union

from threadloom.config import Settings, settings
from threadloom.errors import HardError, TurnInProgress
from threadloom.providers.generation import ContentGenerator
from threadloom.schemas.actions import PlayerAction
from threadloom.schemas.results import SyncResult, ValidationReport
from threadloom.schemas.world import (
    BOUNDED_MAX,
    BOUNDED_MIN,
    LoopCheckpoint,
    WorldModel,
    clamp,
)
from threadloom.utils.jsonlogic import JSONLogicEvaluator
from threadloom.utils.logger import get_logger

from .consequence import ConsequenceEngine
from .relationship import (
    LOVE_TRIANGLE_SIZES,
    TENSION_SIZES,
    WEB_MAX_MEMBERS,
    WEB_MIN_MEMBERS,
    RelationshipEngine,
)
from .roster import Roster
from .temporal import TemporalEngine, phase_of

logger = get_logger(__name__)

LoopPredicate = Union[
    Callable[[Optional[PlayerAction], WorldModel], bool], Dict[str, Any]
]

DEATH_MARKERS = ("death", "died", "killed")
FAILURE_MARKERS = ("critical_failure", "catastrophic")


def default_loop_predicate(action: Optional[PlayerAction], world: WorldModel) -> bool:
    """Loop on death or critical failure events"""
    if action is None:
        return False
    return any(
        marker in event.lower()
        for event in action.events
        for marker in DEATH_MARKERS + FAILURE_MARKERS
    )


def derive_loop_reason(action: Optional[PlayerAction]) -> str:
    if action is not None and action.loop_reason:
        return action.loop_reason
    events = [e.lower() for e in (action.events if action else [])]
    if any(m in e for e in events for m in DEATH_MARKERS):
        return "Character death detected"
    if any(m in e for e in events for m in FAILURE_MARKERS):
        return "Critical failure detected"
    return "Loop condition met"


def _new_hooks(before: WorldModel, after: WorldModel) -> List[str]:
    seen = {t.id: len(t.narrative_hooks) for t in before.romantic_tensions}
    hooks: List[str] = []
    for tension in after.romantic_tensions:
        hooks.extend(tension.narrative_hooks[seen.get(tension.id, 0) :])
    return hooks


class SynchronizationManager:
    """
    Applies a player action to the world model through every engine.

    Not re-entrant: exactly one turn may be in flight per manager. The
    caller owns turn ordering; a second concurrent process_turn raises
    TurnInProgress instead of interleaving with the first.
    """

    def __init__(
        self,
        consequence_engine: Optional[ConsequenceEngine] = None,
        relationship_engine: Optional[RelationshipEngine] = None,
        temporal_engine: Optional[TemporalEngine] = None,
        npc_roster: Optional[Roster] = None,
        thread_roster: Optional[Roster] = None,
        loop_predicate: Optional[LoopPredicate] = None,
        generator: Optional[ContentGenerator] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            consequence_engine, relationship_engine, temporal_engine: engines
                to use; built from ``generator`` and ``config`` when omitted
            npc_roster: roster that actor and member IDs must resolve to
            thread_roster: roster that affected thread IDs must resolve to
            loop_predicate: callable ``(action, world) -> bool`` or a
                JSONLogic expression over ``{"action": ..., "world": ...}``;
                defaults to looping on death or critical failure events
            generator: content collaborator shared by default-built engines
            config: tunables, defaults to the global settings
            rng: random source for the default consequence engine
        """
        self.config = config or settings
        self.consequences = consequence_engine or ConsequenceEngine(
            generator, self.config, rng
        )
        self.relationships = relationship_engine or RelationshipEngine(
            generator, self.config
        )
        self.temporal = temporal_engine or TemporalEngine(generator, self.config)
        self.npc_roster = npc_roster
        self.thread_roster = thread_roster
        self.jsonlogic = JSONLogicEvaluator()
        if isinstance(loop_predicate, dict) and not self.jsonlogic.validate_expression(
            loop_predicate
        ):
            raise ValueError(f"Invalid JSONLogic loop predicate: {loop_predicate}")
        self.loop_predicate: LoopPredicate = loop_predicate or default_loop_predicate
        self._in_progress = False

    # === TURN PIPELINE ===

    async def process_turn(
        self,
        action: Optional[PlayerAction],
        world: WorldModel,
        current_turn_id: int,
        checkpoint: Optional[LoopCheckpoint] = None,
    ) -> SyncResult:
        """
        Run one turn.

        Args:
            action: the player's action, or None to only advance the world
            world: current world model (not modified)
            current_turn_id: turn number being played
            checkpoint: state to rewind to if this turn triggers a loop

        Returns:
            SyncResult with the new world model and the turn's diagnostics

        Raises:
            TurnInProgress: another turn is still running on this manager
        """
        if self._in_progress:
            raise TurnInProgress("A turn is already being processed")

        self._in_progress = True
        try:
            return await self._run_turn(action, world, current_turn_id, checkpoint)
        finally:
            self._in_progress = False

    async def synchronize_all_systems(
        self, world: WorldModel, current_turn_id: int
    ) -> SyncResult:
        """Advance the world to ``current_turn_id`` with no player input"""
        return await self.process_turn(None, world, current_turn_id)

    async def _run_turn(
        self,
        action: Optional[PlayerAction],
        original: WorldModel,
        current_turn_id: int,
        checkpoint: Optional[LoopCheckpoint],
    ) -> SyncResult:
        warnings: List[str] = []
        errors: List[str] = []

        logger.info(f"[Sync] Turn {current_turn_id} started")
        if current_turn_id < original.current_turn:
            warnings.append(
                f"Turn {current_turn_id} is earlier than the world's turn {original.current_turn}"
            )
        world = original.model_copy(update={"current_turn": current_turn_id})

        # 1. Consequences
        maturation = await self.consequences.mature_chains(current_turn_id, world)
        world = maturation.world_model
        if action is not None and action.choice is not None:
            chain = await self.consequences.create_chain(
                action.description or action.choice.choice_text, action.choice, world
            )
            world = self.consequences.add_chain(chain, world)

        # 2. Relationships
        events = list(maturation.relationship_events)
        if action is not None:
            events.extend(action.relationship_events)
        world = self.relationships.apply_relationship_events(events, world)

        before_hooks = world
        if action is not None:
            world = await self._apply_relationship_requests(action, world, errors)
        hooks = _new_hooks(before_hooks, world)

        # 3. Temporal
        loop_triggered = False
        if action is not None:
            world = self._apply_temporal_requests(action, world, errors)

        if phase_of(world) == "active" and self._should_loop(action, world, warnings):
            reason = derive_loop_reason(action)
            preserve = action.preserve_memories if action is not None else True
            if checkpoint is None:
                warnings.append(
                    "Loop triggered without a checkpoint; chains, webs and tensions were not rewound"
                )
            world = await self.temporal.trigger_loop(reason, world, checkpoint, preserve)
            loop_triggered = True

        # 4. Validation
        report = self.validate_consistency(world)
        warnings.extend(report.warnings)

        if report.errors:
            errors.extend(report.errors)
            logger.error(
                f"[Sync] Turn {current_turn_id} rejected: {'; '.join(report.errors)}"
            )
            return SyncResult(
                world_model=original,
                warnings=warnings,
                errors=errors,
                rejected=True,
            )

        logger.info(
            f"[Sync] Turn {current_turn_id} complete: {len(maturation.matured_chains)} matured, "
            f"{len(warnings)} warning(s), {len(errors)} error(s)"
        )
        return SyncResult(
            world_model=report.world_model,
            warnings=warnings,
            errors=errors,
            narrative_hooks=hooks,
            matured_chain_ids=[c.id for c in maturation.matured_chains],
            loop_triggered=loop_triggered,
        )

    async def _apply_relationship_requests(
        self, action: PlayerAction, world: WorldModel, errors: List[str]
    ) -> WorldModel:
        for web_request in action.new_webs:
            try:
                web = await self.relationships.create_web(
                    web_request.member_ids,
                    web_request.dynamics_type,
                    world,
                    group_name=web_request.group_name,
                )
                world = self.relationships.add_web(web, world)
            except HardError as e:
                logger.warning(f"[Sync] Web request rejected: {e}")
                errors.append(str(e))

        for tension_request in action.new_tensions:
            try:
                tension = await self.relationships.create_tension(
                    tension_request.tension_type,
                    tension_request.involved_actor_ids,
                    tension_request.player_involved,
                    world,
                )
                world = self.relationships.add_tension(tension, world)
            except HardError as e:
                logger.warning(f"[Sync] Tension request rejected: {e}")
                errors.append(str(e))

        for trigger in action.jealousy_triggers:
            try:
                world = await self.relationships.trigger_jealousy(
                    trigger.jealous_actor_id,
                    trigger.target_actor_id,
                    trigger.trigger_description,
                    world,
                )
            except HardError as e:
                logger.warning(f"[Sync] Jealousy trigger rejected: {e}")
                errors.append(str(e))

        return world

    def _apply_temporal_requests(
        self, action: PlayerAction, world: WorldModel, errors: List[str]
    ) -> WorldModel:
        if action.initialize_loop:
            try:
                world = self.temporal.initialize_loop(action.initialize_loop, world)
            except HardError as e:
                errors.append(str(e))

        for memory in action.memories:
            world = self.temporal.record_memory(
                memory.memory_type, memory.content, memory.retention_strength, world
            )

        if action.stability_restoration > 0:
            try:
                world = self.temporal.restore_stability(
                    action.stability_restoration,
                    action.description or "narrative event",
                    world,
                )
            except HardError as e:
                errors.append(str(e))

        return world

    def _should_loop(
        self, action: Optional[PlayerAction], world: WorldModel, warnings: List[str]
    ) -> bool:
        predicate = self.loop_predicate
        if isinstance(predicate, dict):
            context = {
                "action": action.model_dump(mode="json") if action is not None else {},
                "world": world.model_dump(mode="json"),
            }
            try:
                return self.jsonlogic.evaluate_condition(predicate, context)
            except ValueError as e:
                warnings.append(f"Loop predicate could not be evaluated: {e}")
                return False
        return bool(predicate(action, world))

    # === VALIDATION ===

    def validate_consistency(self, world: WorldModel) -> ValidationReport:
        """
        Check referential integrity, ranges and love-triangle cardinality.

        Returns:
            ValidationReport whose world_model has every bounded field
            clamped into range
        """
        warnings: List[str] = []
        errors: List[str] = []

        chains = [self._check_chain(c, warnings) for c in world.consequence_chains]
        webs = [self._check_web(w, warnings, errors) for w in world.relationship_webs]
        tensions = [
            self._check_tension(t, warnings, errors) for t in world.romantic_tensions
        ]

        temporal_state = world.temporal_state
        if temporal_state is not None:
            level = self._bounded(
                temporal_state.temporal_stability_level,
                "Temporal stability",
                warnings,
            )
            if level != temporal_state.temporal_stability_level:
                temporal_state = temporal_state.model_copy(
                    update={"temporal_stability_level": level}
                )

        memories = []
        for memory in world.retained_memories:
            strength = self._bounded(
                memory.retention_strength, f"Memory {memory.id} retention", warnings
            )
            if strength != memory.retention_strength:
                memory = memory.model_copy(update={"retention_strength": strength})
            memories.append(memory)

        effects = []
        for effect in world.psychological_effects:
            intensity = self._bounded(
                effect.intensity, f"Effect {effect.id} intensity", warnings
            )
            if intensity != effect.intensity:
                effect = effect.model_copy(update={"intensity": intensity})
            effects.append(effect)

        clamped = world.model_copy(
            update={
                "consequence_chains": chains,
                "relationship_webs": webs,
                "romantic_tensions": tensions,
                "temporal_state": temporal_state,
                "retained_memories": memories,
                "psychological_effects": effects,
            }
        )
        for warning in warnings:
            logger.warning(f"[Sync] {warning}")
        return ValidationReport(world_model=clamped, warnings=warnings, errors=errors)

    def _bounded(self, value: float, label: str, warnings: List[str]) -> float:
        clamped = clamp(value)
        if clamped != value:
            warnings.append(
                f"{label} {value} outside [{BOUNDED_MIN}, {BOUNDED_MAX}], clamped to {clamped}"
            )
        return clamped

    def _check_actors(self, owner: str, actor_ids, warnings: List[str]) -> None:
        if self.npc_roster is None:
            return
        for actor_id in sorted(actor_ids):
            if actor_id == self.config.player_id:
                continue
            if not self.npc_roster.exists(actor_id):
                warnings.append(f"{owner} references unknown actor {actor_id}")

    def _check_chain(self, chain, warnings: List[str]):
        owner = f"Chain {chain.id}"
        if self.thread_roster is not None:
            for thread_id in sorted(chain.affected_thread_ids):
                if not self.thread_roster.exists(thread_id):
                    warnings.append(f"{owner} references unknown thread {thread_id}")
        self._check_actors(owner, chain.related_actor_ids, warnings)

        if chain.chain_level > self.config.max_chain_depth:
            warnings.append(
                f"{owner} level {chain.chain_level} exceeds max depth "
                f"{self.config.max_chain_depth}, clamped"
            )
            chain = chain.model_copy(update={"chain_level": self.config.max_chain_depth})
        return chain

    def _check_web(self, web, warnings: List[str], errors: List[str]):
        owner = f"Web {web.id}"
        self._check_actors(owner, web.member_ids, warnings)

        size = len(web.member_ids)
        if web.dynamics_type == "love_triangle" and size not in LOVE_TRIANGLE_SIZES:
            errors.append(f"{owner} is a love_triangle with {size} members")
        elif not WEB_MIN_MEMBERS <= size <= WEB_MAX_MEMBERS:
            warnings.append(f"{owner} has {size} members")

        cohesion = self._bounded(web.cohesion_level, f"{owner} cohesion", warnings)
        conflict = self._bounded(web.conflict_level, f"{owner} conflict", warnings)
        if cohesion != web.cohesion_level or conflict != web.conflict_level:
            web = web.model_copy(
                update={"cohesion_level": cohesion, "conflict_level": conflict}
            )
        return web

    def _check_tension(self, tension, warnings: List[str], errors: List[str]):
        owner = f"Tension {tension.id}"
        self._check_actors(owner, tension.involved_actor_ids, warnings)

        size = len(tension.involved_actor_ids)
        if tension.type == "love_triangle" and size not in LOVE_TRIANGLE_SIZES:
            errors.append(f"{owner} is a love_triangle with {size} actors")
        elif size not in TENSION_SIZES:
            warnings.append(f"{owner} involves {size} actors")

        level = self._bounded(tension.tension_level, f"{owner} tension", warnings)
        if level != tension.tension_level:
            tension = tension.model_copy(update={"tension_level": level})
        return tension
