"""
Unit tests for relationship webs and romantic tensions.
"""

import pytest

from threadloom.engine.relationship import RelationshipEngine, jealousy_crosses_threshold
from threadloom.errors import HardError, InvalidComposition, NoSuchTension, NoSuchWeb
from threadloom.providers.generation import ContentGenerator
from threadloom.schemas import (
    RelationshipEvent,
    RelationshipWeb,
    RomanticTension,
    WorldModel,
)
from threadloom.tests.conftest import mock_provider


def web(**overrides):
    values = dict(
        group_name="Harbor Crew",
        member_ids={"mira", "jonah"},
        dynamics_type="alliance",
        cohesion_level=70,
        conflict_level=0,
    )
    values.update(overrides)
    return RelationshipWeb(**values)


def tension(**overrides):
    values = dict(
        type="unrequited",
        involved_actor_ids={"mira", "jonah"},
        tension_level=40,
    )
    values.update(overrides)
    return RomanticTension(**values)


class TestWebs:
    """Test relationship web formation"""

    @pytest.mark.asyncio
    async def test_alliance_gets_high_starting_cohesion(self, relationship_engine, world):
        created = await relationship_engine.create_web({"mira", "jonah"}, "alliance", world)

        assert created.cohesion_level == 70
        assert created.conflict_level == 0
        assert created.group_name == "jonah and mira Alliance"
        assert world.relationship_webs == []

    @pytest.mark.asyncio
    async def test_explicit_group_name_is_kept(self, relationship_engine, world):
        created = await relationship_engine.create_web(
            {"mira", "jonah"}, "rivalry", world, group_name="Dock Feud"
        )
        assert created.group_name == "Dock Feud"
        assert created.cohesion_level == 20

    @pytest.mark.asyncio
    async def test_love_triangle_with_four_members_rejected(self, relationship_engine, world):
        with pytest.raises(InvalidComposition):
            await relationship_engine.create_web({"a", "b", "c", "d"}, "love_triangle", world)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("members", [{"a", "b"}, {"a", "b", "c"}])
    async def test_love_triangle_with_two_or_three_members(self, relationship_engine, world, members):
        created = await relationship_engine.create_web(members, "love_triangle", world)
        assert created.member_ids == members
        assert created.cohesion_level == 30

    @pytest.mark.asyncio
    @pytest.mark.parametrize("members", [{"a"}, {"a", "b", "c", "d", "e", "f", "g"}])
    async def test_web_size_bounds(self, relationship_engine, world, members):
        with pytest.raises(InvalidComposition):
            await relationship_engine.create_web(members, "alliance", world)

    @pytest.mark.asyncio
    async def test_generated_group_name(self, config, world):
        generator = ContentGenerator(
            provider=mock_provider([{"group_name": "The Tidebound"}]), config=config
        )
        engine = RelationshipEngine(generator=generator, config=config)

        created = await engine.create_web({"mira", "jonah"}, "alliance", world)
        assert created.group_name == "The Tidebound"

    def test_resolve_web_keeps_it_in_world(self, relationship_engine):
        crew = web()
        world = relationship_engine.add_web(crew, WorldModel())

        resolved = relationship_engine.resolve_web(crew.id, world)

        assert resolved.find_web(crew.id).is_resolved
        assert not world.find_web(crew.id).is_resolved

    def test_resolve_unknown_web(self, relationship_engine):
        with pytest.raises(NoSuchWeb) as excinfo:
            relationship_engine.resolve_web("web_missing", WorldModel())
        assert isinstance(excinfo.value, HardError)
        assert excinfo.value.code == "no_such_web"


class TestTensions:
    """Test romantic tension formation and resolution"""

    @pytest.mark.asyncio
    async def test_player_involvement_raises_starting_tension(self, relationship_engine, world):
        created = await relationship_engine.create_tension(
            "unrequited", {"mira", "jonah"}, True, world
        )

        assert created.tension_level == 70
        assert "Player chooses one side" in created.potential_outcomes
        assert created.complications

    @pytest.mark.asyncio
    async def test_tension_needs_two_or_three_actors(self, relationship_engine, world):
        with pytest.raises(InvalidComposition):
            await relationship_engine.create_tension(
                "love_triangle", {"a", "b", "c", "d"}, False, world
            )
        with pytest.raises(InvalidComposition):
            await relationship_engine.create_tension("unrequited", {"a"}, False, world)

    @pytest.mark.asyncio
    async def test_love_triangle_around_player(self, relationship_engine, world, config):
        """The player as target is implied, not listed"""
        created = await relationship_engine.create_love_triangle(
            "mira", "jonah", config.player_id, world
        )

        assert created.involved_actor_ids == {"mira", "jonah"}
        assert created.player_involved
        assert created.type == "love_triangle"

    @pytest.mark.asyncio
    async def test_love_triangle_between_npcs(self, relationship_engine, world):
        created = await relationship_engine.create_love_triangle("mira", "jonah", "sela", world)

        assert created.involved_actor_ids == {"mira", "jonah", "sela"}
        assert not created.player_involved

    def test_resolve_tension(self, relationship_engine):
        open_tension = tension()
        world = relationship_engine.add_tension(open_tension, WorldModel())

        resolved = relationship_engine.resolve_tension(open_tension.id, "They part as friends", world)

        result = resolved.find_tension(open_tension.id)
        assert result.is_resolved
        assert result.resolution == "They part as friends"
        assert resolved.open_tensions() == []

    def test_resolve_unknown_tension(self, relationship_engine):
        with pytest.raises(NoSuchTension):
            relationship_engine.resolve_tension("tension_missing", "done", WorldModel())


class TestRelationshipEvents:
    """Test folding relationship events into webs and tensions"""

    def test_positive_event_warms_web(self, relationship_engine):
        crew = web(conflict_level=20)
        world = WorldModel(relationship_webs=[crew])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="mira", delta=10, reason="Shared the loot")], world
        )

        result = updated.find_web(crew.id)
        assert result.cohesion_level == 80
        assert result.conflict_level == 15
        assert result.history

    def test_negative_event_adds_conflict(self, relationship_engine):
        crew = web()
        world = WorldModel(relationship_webs=[crew])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="jonah", delta=-20, reason="Lied to the crew")], world
        )

        result = updated.find_web(crew.id)
        assert result.conflict_level == 20
        assert result.cohesion_level == 60

    def test_levels_are_clamped(self, relationship_engine):
        crew = web(cohesion_level=95)
        hot = tension(tension_level=90)
        world = WorldModel(relationship_webs=[crew], romantic_tensions=[hot])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="mira", delta=40, reason="Saved a life")], world
        )

        assert updated.find_web(crew.id).cohesion_level == 100
        assert updated.find_web(crew.id).conflict_level == 0
        assert updated.find_tension(hot.id).tension_level == 100

    def test_large_delta_adds_complication(self, relationship_engine):
        open_tension = tension()
        world = WorldModel(romantic_tensions=[open_tension])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="mira", delta=15, reason="A stolen kiss")], world
        )

        result = updated.find_tension(open_tension.id)
        assert result.tension_level == 55
        assert "Escalation from: A stolen kiss" in result.complications

    def test_resolved_entries_are_skipped(self, relationship_engine):
        crew = web(is_resolved=True)
        closed = tension(is_resolved=True)
        world = WorldModel(relationship_webs=[crew], romantic_tensions=[closed])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="mira", delta=30, reason="x")], world
        )

        assert updated.find_web(crew.id).cohesion_level == 70
        assert updated.find_tension(closed.id).tension_level == 40

    def test_unrelated_actor_changes_nothing(self, relationship_engine):
        crew = web()
        world = WorldModel(relationship_webs=[crew])

        updated = relationship_engine.apply_relationship_events(
            [RelationshipEvent(actor_id="stranger", delta=30, reason="x")], world
        )
        assert updated.find_web(crew.id) == crew


class TestJealousy:
    """Test jealousy triggers and threshold crossing"""

    def test_threshold_crossing_is_one_shot(self):
        assert jealousy_crosses_threshold(50, 80, 75)
        assert not jealousy_crosses_threshold(40, 70, 75)
        assert not jealousy_crosses_threshold(80, 100, 75)

    @pytest.mark.asyncio
    async def test_below_threshold_records_complication(self, relationship_engine):
        """40 + 30 = 70 stays under the threshold of 75"""
        open_tension = tension()
        world = WorldModel(romantic_tensions=[open_tension])

        updated = await relationship_engine.trigger_jealousy(
            "mira", "jonah", "Jonah danced with Sela", world
        )

        result = updated.find_tension(open_tension.id)
        assert result.tension_level == 70
        assert result.complications[-1] == "Jonah danced with Sela"
        assert result.narrative_hooks == []
        assert len(updated.romantic_tensions) == 1

    @pytest.mark.asyncio
    async def test_crossing_threshold_emits_hook(self, relationship_engine):
        open_tension = tension(tension_level=50)
        world = WorldModel(romantic_tensions=[open_tension])

        updated = await relationship_engine.trigger_jealousy(
            "mira", "jonah", "Jonah forgot her name", world
        )

        result = updated.find_tension(open_tension.id)
        assert result.tension_level == 80
        assert len(result.narrative_hooks) == 1
        assert "mira" in result.narrative_hooks[0]

    @pytest.mark.asyncio
    async def test_no_second_hook_above_threshold(self, relationship_engine):
        open_tension = tension(tension_level=80, narrative_hooks=["earlier"])
        world = WorldModel(romantic_tensions=[open_tension])

        updated = await relationship_engine.trigger_jealousy("mira", "jonah", "Again", world)

        result = updated.find_tension(open_tension.id)
        assert result.tension_level == 100
        assert result.narrative_hooks == ["earlier"]

    @pytest.mark.asyncio
    async def test_crossing_pulls_player_into_two_actor_triangle(self, relationship_engine):
        triangle = tension(type="love_triangle", tension_level=60)
        world = WorldModel(romantic_tensions=[triangle])

        updated = await relationship_engine.trigger_jealousy("mira", "jonah", "Glances", world)

        assert updated.find_tension(triangle.id).player_involved

    @pytest.mark.asyncio
    async def test_player_counts_as_involved(self, relationship_engine, config):
        triangle = tension(type="love_triangle", player_involved=True)
        world = WorldModel(romantic_tensions=[triangle])

        updated = await relationship_engine.trigger_jealousy(
            "mira", config.player_id, "The player smiled at Jonah", world
        )
        assert updated.find_tension(triangle.id).tension_level == 70

    @pytest.mark.asyncio
    async def test_no_shared_tension(self, relationship_engine):
        world = WorldModel(romantic_tensions=[tension()])

        with pytest.raises(NoSuchTension):
            await relationship_engine.trigger_jealousy("mira", "sela", "x", world)

        assert world.romantic_tensions[0].tension_level == 40

    @pytest.mark.asyncio
    async def test_resolved_tension_is_not_shared(self, relationship_engine):
        world = WorldModel(romantic_tensions=[tension(is_resolved=True)])

        with pytest.raises(NoSuchTension):
            await relationship_engine.trigger_jealousy("mira", "jonah", "x", world)
