"""Action catalog - utility scoring and routines per ActionKind.

Each kind is a row in three dispatch tables: a scorer, an eligibility check
and a planner that turns the agent's current situation into a Task. Scorers
read needs only, so the relative magnitudes below are the whole priority
scheme: critical multipliers lift survival needs, Socialize is scaled by 0.6
and Wander sits at 0.2/0.4.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Callable

from tick_npc import vec
from tick_npc.collaborators import AGENT, FOOD, Entity, nearest, of_kind
from tick_npc.executor import Task
from tick_npc.types import ActionKind, Need, SpeedMode, Status, Vec2

if TYPE_CHECKING:
    from tick_npc.agent import Agent
    from tick_npc.needs import NeedsModel

FOOD_RESTORE = 30.0
FLEE_FEAR = 20.0
WANDER_MORALE = 2.0
SHELTER_FEAR = -15.0
SOCIAL_MORALE = 10.0


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


# --- Scoring ---


def _score_seek_food(needs: NeedsModel) -> float:
    utility = (100.0 - needs[Need.HUNGER]) / 100.0
    if needs.is_critical(Need.HUNGER):
        utility *= 2.0
    return utility


def _score_rest(needs: NeedsModel) -> float:
    utility = (100.0 - needs[Need.FATIGUE]) / 100.0
    if needs.is_critical(Need.FATIGUE):
        utility *= 2.0
    return utility


def _score_flee(needs: NeedsModel) -> float:
    utility = needs[Need.FEAR] / 100.0
    if needs.is_critical(Need.MORALE):
        utility += 0.3
    return utility


def _score_wander(needs: NeedsModel) -> float:
    return 0.2 if needs.any_critical() else 0.4


def _score_seek_shelter(needs: NeedsModel) -> float:
    return max((100.0 - needs[Need.HEALTH]) / 100.0, needs[Need.INFECTION] / 100.0)


def _score_socialize(needs: NeedsModel) -> float:
    utility = (100.0 - needs[Need.MORALE]) / 100.0
    if needs.is_critical(Need.MORALE):
        utility *= 1.5
    return utility * 0.6


SCORERS: dict[ActionKind, Callable[[NeedsModel], float]] = {
    ActionKind.SEEK_FOOD: _score_seek_food,
    ActionKind.REST: _score_rest,
    ActionKind.FLEE: _score_flee,
    ActionKind.WANDER: _score_wander,
    ActionKind.SEEK_SHELTER: _score_seek_shelter,
    ActionKind.SOCIALIZE: _score_socialize,
}

ELIGIBILITY: dict[ActionKind, Callable[[NeedsModel], bool]] = {
    ActionKind.SEEK_FOOD: lambda n: n[Need.HUNGER] < 80.0,
    ActionKind.REST: lambda n: n[Need.FATIGUE] < 80.0,
    ActionKind.FLEE: lambda n: n[Need.FEAR] > 30.0 or n.is_critical(Need.MORALE),
    ActionKind.WANDER: lambda n: True,
    ActionKind.SEEK_SHELTER: lambda n: n.any_critical(Need.HEALTH, Need.INFECTION),
    ActionKind.SOCIALIZE: lambda n: n[Need.MORALE] < 70.0,
}


# --- Planning ---


def _plan_seek_food(action: UtilityAction) -> Task | None:
    agent = action.agent
    cfg = agent.config.behavior
    if agent.world is None:
        # Nothing to walk to: forage in place.
        agent.degrade("no_world_query", action=action.kind)
        return Task("forage", step=_drip(agent, Need.HUNGER, cfg.forage_rate))
    food = nearest(agent.position, agent.world.entities_near(
        agent.position, cfg.detection_radius, of_kind(FOOD),
    ))
    if food is None:
        agent.degrade("no_target", action=action.kind, fallback=ActionKind.WANDER)
        return _plan_wander(action)
    action.target = food.position

    def eat() -> None:
        if vec.distance(agent.position, food.position) <= cfg.reach_distance:
            agent.needs.modify(Need.HUNGER, FOOD_RESTORE)
        else:
            agent.degrade("out_of_reach", action=action.kind, target=food.id)

    return Task("seek_food", destination=food.position, on_arrive=eat)


def _plan_rest(action: UtilityAction) -> Task:
    agent = action.agent
    cfg = agent.config.behavior
    action.target = vec.random_in_radius(agent.home, cfg.rest_radius, agent.rng)
    action.elapsed = 0.0

    def rest(dt: float) -> Status:
        if agent.needs[Need.FATIGUE] >= cfg.rest_target or action.elapsed >= cfg.rest_duration:
            return Status.SUCCESS
        agent.needs.modify(Need.FATIGUE, cfg.rest_rate * dt)
        action.elapsed += dt
        return Status.RUNNING

    return Task("rest", destination=action.target, step=rest)


def _plan_flee(action: UtilityAction) -> Task | None:
    agent = action.agent
    cfg = agent.config.behavior
    if agent.world is None:
        agent.degrade("no_world_query", action=action.kind)
        return None
    threats = agent.world.entities_near(agent.position, cfg.detection_radius, agent.is_threat)
    if not threats:
        agent.degrade("no_target", action=action.kind)
        return None
    direction = vec.away_from(agent.position, [t.position for t in threats])
    if direction == (0.0, 0.0):
        # Surrounded symmetrically; any heading will do.
        direction = vec.normalize(vec.random_in_radius((0.0, 0.0), 1.0, agent.rng))
    action.target = vec.add(agent.position, vec.scale(direction, cfg.wander_radius))
    return Task(
        "flee", destination=action.target, speed=SpeedMode.RUN,
        on_arrive=lambda: agent.needs.modify(Need.FEAR, FLEE_FEAR),
    )


def _plan_wander(action: UtilityAction) -> Task:
    agent = action.agent
    action.target = vec.random_in_radius(agent.home, agent.config.behavior.wander_radius, agent.rng)
    return Task(
        "wander", destination=action.target,
        on_arrive=lambda: agent.needs.modify(Need.MORALE, WANDER_MORALE),
    )


def _plan_seek_shelter(action: UtilityAction) -> Task:
    agent = action.agent
    action.target = agent.home
    return Task(
        "seek_shelter", destination=agent.home,
        on_arrive=lambda: agent.needs.modify(Need.FEAR, SHELTER_FEAR),
    )


def _plan_socialize(action: UtilityAction) -> Task | None:
    agent = action.agent
    if agent.world is None:
        agent.degrade("no_world_query", action=action.kind)
        return None

    def is_peer(e: Entity) -> bool:
        return e.kind == AGENT and e.id != agent.name

    peer = nearest(agent.position, agent.world.entities_near(
        agent.position, agent.config.behavior.detection_radius, is_peer,
    ))
    if peer is None:
        agent.degrade("no_target", action=action.kind)
        return None
    action.target = peer.position
    return Task(
        "socialize", destination=peer.position,
        on_arrive=lambda: agent.needs.modify(Need.MORALE, SOCIAL_MORALE),
    )


def _drip(agent: Agent, need: Need, rate: float) -> Callable[[float], Status]:
    def step(dt: float) -> Status:
        agent.needs.modify(need, rate * dt)
        return Status.RUNNING
    return step


PLANNERS: dict[ActionKind, Callable[[UtilityAction], Task | None]] = {
    ActionKind.SEEK_FOOD: _plan_seek_food,
    ActionKind.REST: _plan_rest,
    ActionKind.FLEE: _plan_flee,
    ActionKind.WANDER: _plan_wander,
    ActionKind.SEEK_SHELTER: _plan_seek_shelter,
    ActionKind.SOCIALIZE: _plan_socialize,
}


class UtilityAction:
    """One catalog entry bound to one agent.

    Holds only scratch state for the running routine (``target``,
    ``elapsed``); everything else is read from the agent.
    """

    def __init__(self, kind: ActionKind, agent: Agent) -> None:
        self.kind = kind
        self.agent = agent
        self.target: Vec2 | None = None
        self.elapsed = 0.0

    def is_valid(self) -> bool:
        return self.agent.needs is not None

    def is_eligible(self) -> bool:
        needs = self.agent.needs
        return needs is not None and ELIGIBILITY[self.kind](needs)

    def score(self) -> float:
        needs = self.agent.needs
        if needs is None:
            return 0.0
        return clamp01(SCORERS[self.kind](needs))

    def on_enter(self) -> None:
        self.target = None
        self.elapsed = 0.0

    def on_exit(self) -> None:
        self.target = None

    def plan(self) -> Task | None:
        return PLANNERS[self.kind](self)

    def __repr__(self) -> str:
        return f"UtilityAction({self.kind.value})"


def build_catalog(agent: Agent) -> dict[ActionKind, UtilityAction]:
    """One action per kind, in ActionKind order."""
    return {kind: UtilityAction(kind, agent) for kind in ActionKind}
