"""
Unit tests for the consequence engine.
"""

import random

import pytest

from threadloom.config import Settings
from threadloom.engine.consequence import (
    ConsequenceEngine,
    compute_delay,
    compute_magnitude,
    spawn_count,
    spawn_probability,
)
from threadloom.providers.generation import ContentGenerator
from threadloom.schemas import ConsequenceChain, PlayerChoice, WorldModel
from threadloom.tests.conftest import FixedRandom, mock_provider


def choice(**overrides):
    values = dict(
        choice_text="Betray the smugglers",
        risk_level=0.8,
        moral_weight=0.8,
        moral_alignment="evil",
        related_actor_ids={"mira"},
        affected_thread_ids={"harbor_heist"},
        relationship_impact=-0.5,
    )
    values.update(overrides)
    return PlayerChoice(**values)


def due_chain(**overrides):
    values = dict(
        origin_description="Betrayed the smugglers",
        magnitude=0.8,
        manifest_at_turn=3,
        created_at_turn=1,
        related_actor_ids={"mira"},
    )
    values.update(overrides)
    return ConsequenceChain(**values)


class TestBranchingMath:
    """Test the deterministic magnitude, delay and spawn helpers"""

    def test_magnitude_is_mean_of_risk_and_moral_weight(self, config):
        """High risk and high moral weight give a strong root chain"""
        assert compute_magnitude(choice(), config) == 0.8

    def test_complex_choice_is_boosted(self, config):
        """Morally complex choices weigh more"""
        assert compute_magnitude(
            choice(risk_level=0.4, moral_weight=0.4, moral_alignment="complex"), config
        ) == 0.5

    def test_magnitude_is_capped_at_one(self, config):
        c = choice(risk_level=1.0, moral_weight=1.0, moral_alignment="complex")
        assert compute_magnitude(c, config) == 1.0

    def test_delay_shrinks_with_depth_but_never_below_minimum(self, config):
        assert compute_delay(0, config) == 2
        assert compute_delay(1, config) == 1
        assert compute_delay(5, config) == config.consequence_min_delay

    def test_spawn_probability_proportional_to_magnitude(self):
        config = Settings(model_provider="none", spawn_probability=0.5)
        assert spawn_probability(0.8, config) == pytest.approx(0.4)
        assert spawn_probability(0.0, config) == 0.0

    def test_no_spawn_at_max_depth(self, spawning_config):
        """Chains at the depth bound never spawn regardless of the rng"""
        count = spawn_count(
            1.0, spawning_config.max_chain_depth, FixedRandom(0.0), spawning_config
        )
        assert count == 0

    def test_spawn_count_bounded_by_max_children(self, spawning_config):
        count = spawn_count(1.0, 0, FixedRandom(0.0), spawning_config)
        assert count == spawning_config.max_children_per_chain

    def test_spawn_count_is_reproducible_with_seed(self):
        config = Settings(model_provider="none", spawn_probability=0.5)
        first = [spawn_count(0.9, 0, random.Random(42), config) for _ in range(5)]
        second = [spawn_count(0.9, 0, random.Random(42), config) for _ in range(5)]
        assert first == second


class TestCreateChain:
    """Test root chain creation"""

    @pytest.mark.asyncio
    async def test_root_chain_scheduled_two_turns_ahead(self, consequence_engine, world):
        """A chain created on turn 1 manifests on turn 3"""
        chain = await consequence_engine.create_chain("Betrayed the smugglers", choice(), world)

        assert chain.chain_level == 0
        assert chain.magnitude == 0.8
        assert chain.manifest_at_turn == 3
        assert chain.created_at_turn == 1
        assert chain.is_active
        assert chain.related_actor_ids == {"mira"}
        assert chain.affected_thread_ids == {"harbor_heist"}
        assert chain.origin_description == "Betrayed the smugglers"

    @pytest.mark.asyncio
    async def test_create_chain_does_not_touch_world(self, consequence_engine, world):
        await consequence_engine.create_chain("x", choice(), world)
        assert world.consequence_chains == []

    @pytest.mark.asyncio
    async def test_generated_description_is_used(self, config, world):
        generator = ContentGenerator(
            provider=mock_provider([{"description": "The smugglers will remember"}]),
            config=config,
        )
        engine = ConsequenceEngine(generator=generator, config=config)

        chain = await engine.create_chain("Betrayed the smugglers", choice(), world)
        assert chain.origin_description == "The smugglers will remember"

    @pytest.mark.asyncio
    async def test_generation_failure_falls_back(self, config, world, failing_generator):
        """A broken provider never blocks chain creation"""
        engine = ConsequenceEngine(generator=failing_generator, config=config)

        chain = await engine.create_chain("Betrayed the smugglers", choice(), world)
        assert chain.origin_description == "Betrayed the smugglers"
        assert chain.manifest_at_turn == 3


class TestMatureChains:
    """Test chain maturation and branching"""

    @pytest.mark.asyncio
    async def test_nothing_due(self, consequence_engine):
        world = WorldModel(current_turn=2, consequence_chains=[due_chain()])
        result = await consequence_engine.mature_chains(2, world)

        assert result.world_model is world
        assert result.matured_chains == []
        assert result.relationship_events == []

    @pytest.mark.asyncio
    async def test_due_chain_is_deactivated(self, consequence_engine):
        original = due_chain()
        world = WorldModel(current_turn=3, consequence_chains=[original])

        result = await consequence_engine.mature_chains(3, world)

        matured = result.world_model.find_chain(original.id)
        assert not matured.is_active
        assert matured.manifestation
        assert original.is_active  # input untouched
        assert world.consequence_chains[0].is_active

    @pytest.mark.asyncio
    async def test_overdue_chain_also_matures(self, consequence_engine):
        world = WorldModel(current_turn=9, consequence_chains=[due_chain()])
        result = await consequence_engine.mature_chains(9, world)
        assert len(result.matured_chains) == 1

    @pytest.mark.asyncio
    async def test_children_decay_and_go_one_level_deeper(self, spawning_config):
        """A 0.8 chain spawns 0.48 children at decay 0.6"""
        engine = ConsequenceEngine(config=spawning_config, rng=FixedRandom(0.0))
        parent = due_chain()
        world = WorldModel(current_turn=3, consequence_chains=[parent])

        result = await engine.mature_chains(3, world)

        assert len(result.child_chains) == spawning_config.max_children_per_chain
        for child in result.child_chains:
            assert child.chain_level == 1
            assert child.magnitude == pytest.approx(0.48)
            assert child.magnitude < parent.magnitude
            assert child.parent_id == parent.id
            assert child.manifest_at_turn == 3 + compute_delay(1, spawning_config)
            assert child.related_actor_ids == parent.related_actor_ids
            assert child.is_active
        assert len(result.world_model.consequence_chains) == 3

    @pytest.mark.asyncio
    async def test_depth_bound_holds_over_many_turns(self, spawning_config):
        """Repeated maturation never produces a chain deeper than the bound"""
        engine = ConsequenceEngine(config=spawning_config, rng=FixedRandom(0.0))
        world = WorldModel(
            current_turn=0,
            consequence_chains=[due_chain(magnitude=1.0, manifest_at_turn=1)],
        )

        for turn in range(1, 12):
            world = (await engine.mature_chains(turn, world)).world_model

        assert world.active_chains() == []
        levels = {c.chain_level for c in world.consequence_chains}
        assert max(levels) == spawning_config.max_chain_depth

    @pytest.mark.asyncio
    async def test_relationship_events_emitted_per_actor(self, consequence_engine):
        chain = due_chain(
            magnitude=0.5, relationship_impact=-1.0, related_actor_ids={"mira", "jonah"}
        )
        world = WorldModel(current_turn=3, consequence_chains=[chain])

        result = await consequence_engine.mature_chains(3, world)

        assert [e.actor_id for e in result.relationship_events] == ["jonah", "mira"]
        assert all(e.delta == -10.0 for e in result.relationship_events)

    @pytest.mark.asyncio
    async def test_no_events_without_impact(self, consequence_engine):
        world = WorldModel(current_turn=3, consequence_chains=[due_chain()])
        result = await consequence_engine.mature_chains(3, world)
        assert result.relationship_events == []

    @pytest.mark.asyncio
    async def test_generated_child_descriptions(self, spawning_config):
        generator = ContentGenerator(
            provider=mock_provider(
                [
                    {
                        "manifestation": "Mira's crew burns the warehouse",
                        "child_descriptions": ["The guild takes notice"],
                    }
                ]
            ),
            config=spawning_config,
        )
        engine = ConsequenceEngine(
            generator=generator, config=spawning_config, rng=FixedRandom(0.0)
        )
        world = WorldModel(current_turn=3, consequence_chains=[due_chain()])

        result = await engine.mature_chains(3, world)

        assert result.matured_chains[0].manifestation == "Mira's crew burns the warehouse"
        descriptions = [c.origin_description for c in result.child_chains]
        assert descriptions[0] == "The guild takes notice"
        assert descriptions[1].startswith("Aftermath of:")


class TestArchiveChains:
    """Test archival of matured chains"""

    def test_only_inactive_chains_are_archived(self, consequence_engine):
        done = due_chain(is_active=False, manifest_at_turn=2)
        pending = due_chain(manifest_at_turn=8)
        world = WorldModel(consequence_chains=[done, pending])

        archived = consequence_engine.archive_chains(world)

        assert archived.find_chain(done.id).is_archived
        assert not archived.find_chain(pending.id).is_archived

    def test_before_turn_limits_archival(self, consequence_engine):
        old = due_chain(is_active=False, manifest_at_turn=2)
        recent = due_chain(is_active=False, manifest_at_turn=6)
        world = WorldModel(consequence_chains=[old, recent])

        archived = consequence_engine.archive_chains(world, before_turn=5)

        assert archived.find_chain(old.id).is_archived
        assert not archived.find_chain(recent.id).is_archived


class TestDepthBoundAcrossSeeds:
    """Test the depth bound under many random sources"""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(10))
    async def test_no_chain_deeper_than_bound(self, spawning_config, seed):
        engine = ConsequenceEngine(config=spawning_config, rng=random.Random(seed))
        world = WorldModel(
            consequence_chains=[due_chain(magnitude=1.0, manifest_at_turn=1)]
        )

        for turn in range(1, 10):
            world = (await engine.mature_chains(turn, world)).world_model

        assert all(
            c.chain_level <= spawning_config.max_chain_depth
            for c in world.consequence_chains
        )
        assert all(
            not c.is_active
            for c in world.consequence_chains
            if c.chain_level == spawning_config.max_chain_depth
        )
