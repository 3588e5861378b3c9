"""
Relationship engine - relationship webs and romantic tensions.

Webs group two to six actors under one dynamic and track aggregate
cohesion and conflict. Romantic tensions follow two or three actors and
accumulate complications. Both are folded forward by relationship events
(mostly emitted by the consequence engine) and by jealousy triggers.

Nothing here is ever deleted: a web or tension that has run its course is
flagged resolved so later narrative can still refer back to it.
"""

from typing import Iterable, List, Optional, Set

from threadloom.config import Settings, settings
from threadloom.errors import InvalidComposition, NoSuchTension, NoSuchWeb
from threadloom.prompts import (
    COMPLICATIONS_CONTEXT,
    GROUP_NAME_CONTEXT,
    JEALOUSY_HOOK_CONTEXT,
)
from threadloom.providers.generation import ContentGenerator, generate_or_fallback
from threadloom.schemas.actions import RelationshipEvent
from threadloom.schemas.content import GroupName, NarrativeHook, TensionComplications
from threadloom.schemas.world import (
    DynamicsType,
    RelationshipWeb,
    RomanticTension,
    TensionType,
    WorldModel,
    clamp,
)
from threadloom.utils.logger import get_logger

logger = get_logger(__name__)

WEB_MIN_MEMBERS = 2
WEB_MAX_MEMBERS = 6
LOVE_TRIANGLE_SIZES = {2, 3}
TENSION_SIZES = {2, 3}

INITIAL_COHESION = {
    "alliance": 70,
    "mentorship": 60,
    "love_triangle": 30,
    "rivalry": 20,
}

GROUP_SUFFIX = {
    "alliance": "Alliance",
    "mentorship": "Apprenticeship",
    "love_triangle": "Triangle",
    "rivalry": "Rivalry",
}

INITIAL_TENSION = {
    "unrequited": 60,
    "love_triangle": 70,
    "rivalry_romance": 65,
}
PLAYER_TENSION_BONUS = 10

INITIAL_COMPLICATIONS = {
    "love_triangle": ["Competing for attention", "Potential jealousy conflicts"],
    "unrequited": ["One-sided feelings", "Emotional vulnerability"],
    "rivalry_romance": ["Rivalry between suitors", "Pressure to choose"],
}

POTENTIAL_OUTCOMES = {
    "love_triangle": ["One rival withdraws", "Open conflict erupts", "Compromise reached"],
    "unrequited": ["Feelings reciprocated", "Acceptance of rejection", "Persistent pursuit"],
    "rivalry_romance": ["A suitor is chosen", "Rivals reconcile", "Both are turned away"],
}
PLAYER_OUTCOMES = [
    "Player chooses one side",
    "Player rejects all advances",
    "Player tries to maintain balance",
]


def check_web_composition(member_ids: Set[str], dynamics_type: str) -> None:
    """Raise InvalidComposition if the members cannot form this web"""
    size = len(member_ids)
    if dynamics_type == "love_triangle" and size not in LOVE_TRIANGLE_SIZES:
        raise InvalidComposition(
            f"love_triangle needs 2 or 3 members, got {size}"
        )
    if not WEB_MIN_MEMBERS <= size <= WEB_MAX_MEMBERS:
        raise InvalidComposition(
            f"A relationship web needs {WEB_MIN_MEMBERS}-{WEB_MAX_MEMBERS} members, got {size}"
        )


def jealousy_crosses_threshold(before: float, after: float, threshold: float) -> bool:
    """True only on the update that carries the level over the threshold"""
    return before < threshold <= after


class RelationshipEngine:
    """Creates and updates relationship webs and romantic tensions"""

    def __init__(
        self,
        generator: Optional[ContentGenerator] = None,
        config: Optional[Settings] = None,
    ):
        self.generator = generator
        self.config = config or settings

    # === RELATIONSHIP WEBS ===

    async def create_web(
        self,
        member_ids: Iterable[str],
        dynamics_type: DynamicsType,
        world: WorldModel,
        group_name: Optional[str] = None,
    ) -> RelationshipWeb:
        """
        Build a relationship web; does not add it to the world.

        Raises:
            InvalidComposition: love_triangle outside 2-3 members, or any web
                outside 2-6 members
        """
        members = set(member_ids)
        check_web_composition(members, dynamics_type)

        if group_name is None:
            ordered = sorted(members)
            fallback = f"{' and '.join(ordered[:2])} {GROUP_SUFFIX[dynamics_type]}"
            context = GROUP_NAME_CONTEXT.format(
                dynamics_type=dynamics_type.replace("_", " "),
                members=", ".join(ordered),
            )
            generated = await generate_or_fallback(
                self.generator, context, GroupName, GroupName(group_name=fallback)
            )
            group_name = generated.group_name

        web = RelationshipWeb(
            group_name=group_name,
            member_ids=members,
            dynamics_type=dynamics_type,
            cohesion_level=INITIAL_COHESION[dynamics_type],
            conflict_level=0,
        )
        logger.info(
            f"[Relationship] Web {web.id} '{web.group_name}' formed "
            f"({dynamics_type}, {len(members)} members)"
        )
        return web

    def add_web(self, web: RelationshipWeb, world: WorldModel) -> WorldModel:
        check_web_composition(web.member_ids, web.dynamics_type)
        return world.model_copy(
            update={"relationship_webs": [*world.relationship_webs, web]}
        )

    def resolve_web(self, web_id: str, world: WorldModel) -> WorldModel:
        """Flag a web as resolved; it stays in the world for reference"""
        if world.find_web(web_id) is None:
            raise NoSuchWeb(f"No relationship web with id {web_id}")
        webs = [
            w.model_copy(update={"is_resolved": True}) if w.id == web_id else w
            for w in world.relationship_webs
        ]
        return world.model_copy(update={"relationship_webs": webs})

    # === ROMANTIC TENSIONS ===

    async def create_tension(
        self,
        tension_type: TensionType,
        involved_actor_ids: Iterable[str],
        player_involved: bool,
        world: WorldModel,
    ) -> RomanticTension:
        """
        Build a romantic tension; does not add it to the world.

        Raises:
            InvalidComposition: fewer than 2 or more than 3 actors
        """
        actors = set(involved_actor_ids)
        if len(actors) not in TENSION_SIZES:
            raise InvalidComposition(
                f"A romantic tension involves 2 or 3 actors, got {len(actors)}"
            )

        level = INITIAL_TENSION[tension_type]
        if player_involved:
            level += PLAYER_TENSION_BONUS

        context = COMPLICATIONS_CONTEXT.format(
            tension_type=tension_type,
            actors=", ".join(sorted(actors)),
            player_involved="yes" if player_involved else "no",
            tension_level=level,
        )
        complications = await generate_or_fallback(
            self.generator,
            context,
            TensionComplications,
            TensionComplications(complications=list(INITIAL_COMPLICATIONS[tension_type])),
        )

        outcomes = list(PLAYER_OUTCOMES) if player_involved else []
        outcomes.extend(POTENTIAL_OUTCOMES[tension_type])

        tension = RomanticTension(
            type=tension_type,
            involved_actor_ids=actors,
            player_involved=player_involved,
            tension_level=level,
            complications=complications.complications[: self.config.max_complications],
            potential_outcomes=outcomes,
        )
        logger.info(
            f"[Relationship] Tension {tension.id} opened ({tension_type}, level {level})"
        )
        return tension

    async def create_love_triangle(
        self, rival_a: str, rival_b: str, target_id: str, world: WorldModel
    ) -> RomanticTension:
        """Two rivals after one target; the player as target is implied, not listed"""
        player_target = target_id == self.config.player_id
        actors = [rival_a, rival_b] if player_target else [rival_a, rival_b, target_id]
        return await self.create_tension("love_triangle", actors, player_target, world)

    def add_tension(self, tension: RomanticTension, world: WorldModel) -> WorldModel:
        return world.model_copy(
            update={"romantic_tensions": [*world.romantic_tensions, tension]}
        )

    def resolve_tension(
        self, tension_id: str, resolution: str, world: WorldModel
    ) -> WorldModel:
        """Move a tension to its terminal resolved state"""
        if world.find_tension(tension_id) is None:
            raise NoSuchTension(f"No romantic tension with id {tension_id}")
        tensions = [
            t.model_copy(update={"is_resolved": True, "resolution": resolution})
            if t.id == tension_id
            else t
            for t in world.romantic_tensions
        ]
        logger.info(f"[Relationship] Tension {tension_id} resolved: {resolution}")
        return world.model_copy(update={"romantic_tensions": tensions})

    # === EVENTS ===

    def apply_relationship_events(
        self, events: List[RelationshipEvent], world: WorldModel
    ) -> WorldModel:
        """
        Fold relationship events into every web and open tension that
        includes the event's actor. All levels are clamped to [0, 100].
        """
        if not events:
            return world

        webs = list(world.relationship_webs)
        tensions = list(world.romantic_tensions)

        for event in events:
            touched = False
            for i, web in enumerate(webs):
                if web.is_resolved or event.actor_id not in web.member_ids:
                    continue
                webs[i] = self._fold_into_web(web, event)
                touched = True
            for i, tension in enumerate(tensions):
                if tension.is_resolved or event.actor_id not in tension.involved_actor_ids:
                    continue
                tensions[i] = self._fold_into_tension(tension, event)
                touched = True
            if not touched:
                logger.debug(
                    f"[Relationship] Event for {event.actor_id} matched no web or tension"
                )

        return world.model_copy(
            update={"relationship_webs": webs, "romantic_tensions": tensions}
        )

    def _fold_into_web(
        self, web: RelationshipWeb, event: RelationshipEvent
    ) -> RelationshipWeb:
        magnitude = abs(event.delta)
        if event.delta >= 0:
            cohesion = web.cohesion_level + magnitude
            conflict = web.conflict_level - magnitude / 2
        else:
            cohesion = web.cohesion_level - magnitude / 2
            conflict = web.conflict_level + magnitude

        history = web.history + [f"{event.actor_id} {event.delta:+.1f}: {event.reason}"]
        return web.model_copy(
            update={
                "cohesion_level": clamp(cohesion),
                "conflict_level": clamp(conflict),
                "history": history[-self.config.max_complications :],
            }
        )

    def _fold_into_tension(
        self, tension: RomanticTension, event: RelationshipEvent
    ) -> RomanticTension:
        complications = list(tension.complications)
        if event.delta > self.config.complication_delta_threshold:
            complications.append(f"Escalation from: {event.reason}")
        elif event.delta < -self.config.complication_delta_threshold:
            complications.append(f"Cooling down after: {event.reason}")

        return tension.model_copy(
            update={
                "tension_level": clamp(tension.tension_level + event.delta),
                "complications": complications[-self.config.max_complications :],
            }
        )

    # === JEALOUSY ===

    def find_shared_tension(
        self, actor_a: str, actor_b: str, world: WorldModel
    ) -> Optional[RomanticTension]:
        """First open tension involving both actors"""
        for tension in world.open_tensions():
            if self._involves(tension, actor_a) and self._involves(tension, actor_b):
                return tension
        return None

    def _involves(self, tension: RomanticTension, actor_id: str) -> bool:
        if actor_id in tension.involved_actor_ids:
            return True
        return actor_id == self.config.player_id and tension.player_involved

    async def trigger_jealousy(
        self,
        jealous_actor_id: str,
        target_actor_id: str,
        trigger_description: str,
        world: WorldModel,
    ) -> WorldModel:
        """
        Escalate the tension shared by two actors.

        Raises:
            NoSuchTension: no open tension involves both actors
        """
        tension = self.find_shared_tension(jealous_actor_id, target_actor_id, world)
        if tension is None:
            raise NoSuchTension(
                f"No open tension involves both {jealous_actor_id} and {target_actor_id}"
            )

        before = tension.tension_level
        after = clamp(before + self.config.jealousy_increment)
        complications = (tension.complications + [trigger_description])[
            -self.config.max_complications :
        ]
        update = {"tension_level": after, "complications": complications}

        if jealousy_crosses_threshold(before, after, self.config.jealousy_threshold):
            player = self.config.player_id
            if player in (jealous_actor_id, target_actor_id) or (
                tension.type == "love_triangle" and len(tension.involved_actor_ids) == 2
            ):
                update["player_involved"] = True

            fallback = NarrativeHook(
                hook=(
                    f"{jealous_actor_id}'s jealousy toward {target_actor_id} "
                    f"is about to boil over"
                )
            )
            context = JEALOUSY_HOOK_CONTEXT.format(
                tension_type=tension.type,
                jealous_actor=jealous_actor_id,
                target_actor=target_actor_id,
                trigger_description=trigger_description,
                tension_level=after,
                complications="; ".join(complications[-3:]),
            )
            hook = await generate_or_fallback(
                self.generator, context, NarrativeHook, fallback
            )
            update["narrative_hooks"] = tension.narrative_hooks + [hook.hook]
            logger.info(
                f"[Relationship] Tension {tension.id} crossed jealousy threshold "
                f"({before:.0f} -> {after:.0f})"
            )

        updated = tension.model_copy(update=update)
        tensions = [
            updated if t.id == tension.id else t for t in world.romantic_tensions
        ]
        return world.model_copy(update={"romantic_tensions": tensions})
