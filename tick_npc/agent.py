"""Agent - one NPC wiring needs, decisions, behaviors and jobs together.

Two update paths, on two clocks:

* ``tick(ctx)`` - coarse simulation step (about 1 Hz): needs decay, critical
  overrides, job timers and the decision cadence.
* ``frame(ctx)`` - fine step: movement polling and task steps for whichever
  layer currently owns the body (the job while WORKING, the executor
  otherwise).

Neither path flushes the bus; whoever drives the agent does that once per
tick (the Engine does it after every step).
"""
from __future__ import annotations

import logging
import random
from typing import Any

from tick_npc.actions import UtilityAction, build_catalog
from tick_npc.collaborators import AGENT, THREAT, Entity, FactionLookup, Mover, WorldQuery
from tick_npc.config import AgentConfig
from tick_npc.decision import DecisionEngine
from tick_npc.executor import BehaviorExecutor
from tick_npc.jobs import JobScheduler
from tick_npc.needs import NeedsModel
from tick_npc.signals import DEGRADED, SignalBus
from tick_npc.types import ActionKind, TickContext, Vec2

logger = logging.getLogger(__name__)


class Agent:
    """A single NPC and everything it exclusively owns."""

    def __init__(
        self,
        name: str,
        config: AgentConfig | None = None,
        position: Vec2 = (0.0, 0.0),
        home: Vec2 | None = None,
        mover: Mover | None = None,
        world: WorldQuery | None = None,
        factions: FactionLookup | None = None,
        faction: str = "",
        rng: random.Random | None = None,
        bus: SignalBus | None = None,
    ) -> None:
        self.name = name
        self.config = config if config is not None else AgentConfig()
        self.position = position
        self.home = home if home is not None else position
        self.mover = mover
        self.world = world
        self.factions = factions
        self.faction = faction
        self.rng = rng if rng is not None else random.Random()
        self.bus = bus if bus is not None else SignalBus()
        self.sim_time = 0.0

        self.needs: NeedsModel | None = NeedsModel(self.config.needs, self.bus, name)
        self.catalog = build_catalog(self)
        self.executor = BehaviorExecutor(self)
        self.decision = DecisionEngine(
            self.catalog,
            lambda: self.needs,
            config=self.config.decision,
            bus=self.bus,
            agent=name,
            on_transition=self._on_transition,
        )
        self.jobs = JobScheduler(self, self.config.job)

    # --- Queries ---

    @property
    def current_action(self) -> ActionKind | None:
        return self.decision.state.current_action

    def is_threat(self, entity: Entity) -> bool:
        if entity.id == self.name:
            return False
        if entity.kind == THREAT:
            return True
        if entity.kind == AGENT and self.factions is not None:
            return self.factions.is_hostile(self.faction, entity.faction)
        return False

    def as_entity(self) -> Entity:
        """Snapshot of this agent for other agents' detection queries."""
        return Entity(self.name, AGENT, self.position, self.faction)

    # --- Updates ---

    def tick(self, ctx: TickContext) -> None:
        dt = ctx.dt
        self.sim_time += dt
        if self.needs is not None:
            self.needs.tick(dt)
            self._apply_overrides()
        self.jobs.tick(dt)
        self._sync_control()
        if self.decision.due(self.sim_time):
            self.decision.decide(self.sim_time)
            if not self.executor.paused:
                self.executor.resume_if_idle()

    def frame(self, ctx: TickContext) -> None:
        if self.jobs.has_control:
            self.jobs.frame(ctx.dt)
        else:
            self.executor.step(ctx.dt)

    def degrade(self, reason: str, **data: Any) -> None:
        """Report a soft failure: log a warning and emit ``degraded``."""
        logger.warning("%s degraded: %s %s", self.name, reason, data or "")
        self.bus.publish(DEGRADED, agent=self.name, reason=reason, **data)

    # --- Internals ---

    def _apply_overrides(self) -> None:
        assert self.needs is not None
        for need, kind in self.config.decision.critical_overrides:
            if not self.needs.is_critical(need):
                continue
            if self.decision.state.override is kind:
                return
            if not self.catalog[kind].is_eligible():
                continue
            logger.info("%s: critical %s, forcing %s", self.name, need.value, kind.value)
            self.decision.force(kind, need)
            return

    def _sync_control(self) -> None:
        if self.jobs.has_control:
            if not self.executor.paused:
                self.executor.cancel("job")
                self.executor.paused = True
        elif self.executor.paused:
            self.executor.paused = False
            self.executor.resume_if_idle()

    def _on_transition(self, previous: UtilityAction | None, action: UtilityAction | None) -> None:
        self.executor.start(action)

    def __repr__(self) -> str:
        action = self.current_action.value if self.current_action else None
        return f"Agent({self.name!r}, action={action}, job={self.jobs.state.value})"
