"""
Consequence engine - delayed, branching effects of player choices.

A flagged choice becomes a root ConsequenceChain scheduled a few turns
ahead. When the turn counter reaches a chain's manifest_at_turn the chain
matures: it is marked inactive, may spawn weaker child chains one level
deeper, and emits relationship events for the actors it touches. Those
events are returned to the caller rather than applied here, which keeps the
turn pipeline one-directional (consequence -> relationship).

The branching math lives in module-level pure functions so it can be tested
with a seeded random.Random and no generator.
"""

import random
from typing import List, Optional, Tuple

from threadloom.config import Settings, settings
from threadloom.prompts import CHAIN_CONTEXT, MANIFESTATION_CONTEXT
from threadloom.providers.generation import ContentGenerator, generate_or_fallback
from threadloom.schemas.actions import PlayerChoice, RelationshipEvent
from threadloom.schemas.content import ChainNarrative, ManifestationNarrative
from threadloom.schemas.results import MaturationResult
from threadloom.schemas.world import ConsequenceChain, WorldModel
from threadloom.utils.logger import get_logger

logger = get_logger(__name__)


def compute_magnitude(choice: PlayerChoice, config: Settings = settings) -> float:
    """
    Deterministic root magnitude from the choice's declared inputs.

    The mean of risk and moral weight, boosted for morally complex choices
    and clamped to [0, 1].
    """
    magnitude = (choice.risk_level + choice.moral_weight) / 2
    if choice.moral_alignment == "complex":
        magnitude *= config.complex_choice_multiplier
    return round(max(0.0, min(1.0, magnitude)), 4)


def compute_delay(chain_level: int, config: Settings = settings) -> int:
    """Turns until a chain at ``chain_level`` manifests; deeper is sooner"""
    delay = config.consequence_base_delay - chain_level * config.consequence_delay_step
    return max(config.consequence_min_delay, delay)


def spawn_probability(magnitude: float, config: Settings = settings) -> float:
    """Per-child spawn chance, proportional to magnitude"""
    return max(0.0, min(1.0, magnitude * config.spawn_probability))


def spawn_count(
    magnitude: float,
    chain_level: int,
    rng: random.Random,
    config: Settings = settings,
) -> int:
    """Number of children (0..max_children_per_chain) a maturing chain spawns"""
    if chain_level >= config.max_chain_depth:
        return 0

    probability = spawn_probability(magnitude, config)
    return sum(
        1 for _ in range(config.max_children_per_chain) if rng.random() < probability
    )


def _fmt_ids(ids) -> str:
    return ", ".join(sorted(ids)) or "none"


class ConsequenceEngine:
    """Creates consequence chains and matures them as turns pass"""

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Args:
            generator: Content collaborator; None runs on fallbacks only
            config: Tunables, defaults to the global settings
            rng: Random source for spawning; inject a seeded one in tests
        """
        self.generator = generator
        self.config = config or settings
        self.rng = rng or random.Random()

    async def create_chain(
        self,
        origin_description: str,
        triggering_choice: PlayerChoice,
        world: WorldModel,
    ) -> ConsequenceChain:
        """Build a root chain for a flagged choice; does not add it to the world"""
        magnitude = compute_magnitude(triggering_choice, self.config)
        manifest_at = world.current_turn + compute_delay(0, self.config)

        context = CHAIN_CONTEXT.format(
            choice_text=triggering_choice.choice_text,
            origin_description=origin_description,
            moral_alignment=triggering_choice.moral_alignment,
            risk_level=triggering_choice.risk_level,
            moral_weight=triggering_choice.moral_weight,
            magnitude=magnitude,
            threads=_fmt_ids(triggering_choice.affected_thread_ids),
            actors=_fmt_ids(triggering_choice.related_actor_ids),
        )
        narrative = await generate_or_fallback(
            self.generator,
            context,
            ChainNarrative,
            ChainNarrative(description=origin_description),
        )

        chain = ConsequenceChain(
            origin_description=narrative.description,
            chain_level=0,
            magnitude=magnitude,
            affected_thread_ids=set(triggering_choice.affected_thread_ids),
            related_actor_ids=set(triggering_choice.related_actor_ids),
            relationship_impact=triggering_choice.relationship_impact,
            manifest_at_turn=manifest_at,
            created_at_turn=world.current_turn,
        )
        logger.info(
            f"[Consequence] Chain {chain.id} scheduled for turn {manifest_at} "
            f"(magnitude {magnitude:.2f})"
        )
        return chain

    def add_chain(self, chain: ConsequenceChain, world: WorldModel) -> WorldModel:
        return world.model_copy(
            update={"consequence_chains": [*world.consequence_chains, chain]}
        )

    async def mature_chains(
        self, current_turn: int, world: WorldModel
    ) -> MaturationResult:
        """
        Mature every active chain due on or before ``current_turn``.

        Returns:
            MaturationResult with the updated world, the chains that matured,
            any children they spawned, and the relationship events to hand to
            the relationship engine this turn
        """
        due = [
            c
            for c in world.consequence_chains
            if c.is_active and c.manifest_at_turn <= current_turn
        ]
        if not due:
            return MaturationResult(world_model=world)

        logger.info(f"[Consequence] Turn {current_turn}: {len(due)} chain(s) due")

        # Resolve all generated content before touching the world model
        matured: List[ConsequenceChain] = []
        children: List[ConsequenceChain] = []
        events: List[RelationshipEvent] = []
        for chain in due:
            done, spawned = await self._mature(chain, current_turn)
            matured.append(done)
            children.extend(spawned)
            events.extend(self._events_for(done))

        replaced = {c.id: c for c in matured}
        chains = [replaced.get(c.id, c) for c in world.consequence_chains]
        updated = world.model_copy(update={"consequence_chains": chains + children})

        return MaturationResult(
            world_model=updated,
            matured_chains=matured,
            child_chains=children,
            relationship_events=events,
        )

    async def _mature(
        self, chain: ConsequenceChain, current_turn: int
    ) -> Tuple[ConsequenceChain, List[ConsequenceChain]]:
        count = spawn_count(chain.magnitude, chain.chain_level, self.rng, self.config)

        context = MANIFESTATION_CONTEXT.format(
            current_turn=current_turn,
            origin_description=chain.origin_description,
            chain_level=chain.chain_level,
            magnitude=chain.magnitude,
            threads=_fmt_ids(chain.affected_thread_ids),
            actors=_fmt_ids(chain.related_actor_ids),
            max_children=count,
        )
        narrative = await generate_or_fallback(
            self.generator,
            context,
            ManifestationNarrative,
            ManifestationNarrative(
                manifestation=f"The consequences of '{chain.origin_description}' come to light"
            ),
        )

        done = chain.model_copy(
            update={"is_active": False, "manifestation": narrative.manifestation}
        )

        level = chain.chain_level + 1
        spawned = []
        for i in range(count):
            if i < len(narrative.child_descriptions):
                description = narrative.child_descriptions[i]
            else:
                description = f"Aftermath of: {chain.origin_description}"
            spawned.append(
                ConsequenceChain(
                    origin_description=description,
                    chain_level=level,
                    magnitude=round(chain.magnitude * self.config.consequence_decay_factor, 4),
                    affected_thread_ids=set(chain.affected_thread_ids),
                    related_actor_ids=set(chain.related_actor_ids),
                    relationship_impact=chain.relationship_impact,
                    manifest_at_turn=current_turn + compute_delay(level, self.config),
                    created_at_turn=current_turn,
                    parent_id=chain.id,
                )
            )

        logger.debug(
            f"[Consequence] Chain {chain.id} matured at level {chain.chain_level}, "
            f"spawned {len(spawned)}"
        )
        return done, spawned

    def _events_for(self, chain: ConsequenceChain) -> List[RelationshipEvent]:
        delta = round(
            chain.magnitude * chain.relationship_impact * self.config.relationship_event_scale,
            2,
        )
        if delta == 0:
            return []
        reason = chain.manifestation or chain.origin_description
        return [
            RelationshipEvent(actor_id=actor_id, delta=delta, reason=reason)
            for actor_id in sorted(chain.related_actor_ids)
        ]

    def archive_chains(
        self, world: WorldModel, before_turn: Optional[int] = None
    ) -> WorldModel:
        """Flag matured chains as archived; active chains are left alone"""
        chains = []
        for chain in world.consequence_chains:
            if (
                not chain.is_active
                and not chain.is_archived
                and (before_turn is None or chain.manifest_at_turn < before_turn)
            ):
                chain = chain.model_copy(update={"is_archived": True})
            chains.append(chain)
        return world.model_copy(update={"consequence_chains": chains})
