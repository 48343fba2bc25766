"""Tests for Agent wiring: coarse tick, frames, overrides and job control."""

import dataclasses
import logging

import pytest

from tick_npc import (
    Agent,
    AgentConfig,
    Entity,
    FactionTable,
    InterruptThresholds,
    JobConfig,
    NeedsConfig,
    SimpleWorld,
    StraightLineMover,
    make_context,
)
from tick_npc.collaborators import AGENT, THREAT
from tick_npc.signals import ACTION_CHANGED, DEGRADED, TASK_CANCELLED
from tick_npc.types import ActionKind, JobKind, JobState, Need

from conftest import still_needs


def decaying(**initial):
    """Default decay rates with some starting values replaced."""
    base = NeedsConfig()
    return AgentConfig(needs=dataclasses.replace(base, **{
        name: dataclasses.replace(base.for_need(Need(name)), initial=value)
        for name, value in initial.items()
    }))


def tick(agent, dt=1.0):
    agent.tick(make_context(dt))


def frame(agent, dt=0.05):
    agent.frame(make_context(dt))


def threat_world(position=(3.0, 0.0)):
    return SimpleWorld([Entity("wolf", THREAT, position)])


class TestConstruction:
    def test_defaults(self):
        agent = Agent("ann", position=(2.0, 3.0))
        assert agent.home == (2.0, 3.0)
        assert agent.needs is not None
        assert agent.current_action is None
        assert agent.jobs.state is JobState.IDLE

    def test_as_entity(self):
        agent = Agent("ann", position=(1.0, 1.0), faction="town")
        assert agent.as_entity() == Entity("ann", AGENT, (1.0, 1.0), "town")


class TestThreats:
    def test_threat_entities(self, make_agent):
        agent = make_agent()
        assert agent.is_threat(Entity("wolf", THREAT, (0.0, 0.0)))
        assert not agent.is_threat(Entity("bob", AGENT, (0.0, 0.0), "raiders"))

    def test_factions(self, make_agent):
        agent = make_agent(factions=FactionTable([("town", "raiders")]), faction="town")
        assert agent.is_threat(Entity("rex", AGENT, (0.0, 0.0), "raiders"))
        assert not agent.is_threat(Entity("tom", AGENT, (0.0, 0.0), "town"))
        assert not agent.is_threat(Entity("ann", THREAT, (0.0, 0.0)))


class TestTick:
    def test_needs_decay(self):
        agent = Agent("ann")
        tick(agent)
        assert agent.needs[Need.HUNGER] == pytest.approx(49.5)
        assert agent.sim_time == pytest.approx(1.0)

    def test_decides_and_starts_task(self, make_agent):
        agent = make_agent(hunger=10.0)
        tick(agent)
        assert agent.current_action is ActionKind.SEEK_FOOD
        assert agent.executor.busy

    def test_decision_cadence(self, make_agent):
        agent = make_agent(hunger=60.0)
        tick(agent, 0.5)
        assert agent.current_action is ActionKind.REST
        agent.needs.set(Need.HUNGER, 10.0)
        tick(agent, 0.5)
        assert agent.current_action is ActionKind.REST
        tick(agent, 0.5)
        assert agent.current_action is ActionKind.SEEK_FOOD

    def test_replans_after_task_ends(self, make_agent):
        agent = make_agent(hunger=90.0, fatigue=90.0, morale=90.0)  # only wander qualifies
        tick(agent)
        first = agent.executor.task
        frame(agent)
        assert not agent.executor.busy
        tick(agent)
        assert agent.executor.task is not first

    def test_missing_needs_degrades(self, make_agent):
        agent = make_agent()
        agent.needs = None
        tick(agent)
        frame(agent)
        reasons = [s.data["reason"] for s in agent.bus.drain() if s.name == DEGRADED]
        assert reasons == ["no_needs"]

    def test_degrade_logs_warning(self, make_agent, caplog):
        agent = make_agent()
        with caplog.at_level(logging.WARNING, logger="tick_npc.agent"):
            agent.degrade("no_mover", task="wander")
        assert "ann degraded: no_mover" in caplog.text
        (sig,) = agent.bus.drain()
        assert sig.data == {"agent": "ann", "reason": "no_mover", "task": "wander"}


class TestFlee:
    def test_fear_85_flees_and_fear_rises(self):
        agent = Agent(
            "ann", decaying(fear=85.0), world=threat_world(),
            mover=StraightLineMover(run_speed=1000.0),
        )
        tick(agent)
        assert agent.current_action is ActionKind.FLEE
        before = agent.needs[Need.FEAR]
        frame(agent)
        assert agent.needs[Need.FEAR] > before
        assert agent.needs[Need.FEAR] == 100.0
        assert agent.position[0] < 0.0

    def test_flee_adds_twenty_net_of_decay(self):
        agent = Agent(
            "ann", decaying(fear=60.0), world=threat_world(),
            mover=StraightLineMover(run_speed=1000.0),
        )
        tick(agent)
        assert agent.current_action is ActionKind.FLEE
        frame(agent)
        assert agent.needs[Need.FEAR] == pytest.approx(60.0 + 0.2 + 20.0)


class TestCriticalOverrides:
    def test_critical_health_forces_shelter(self, make_agent):
        agent = make_agent(health=10.0, hunger=5.0)
        tick(agent)
        assert agent.current_action is ActionKind.SEEK_SHELTER
        assert agent.decision.state.override_need is Need.HEALTH

    def test_override_cancels_running_task(self, make_agent):
        agent = make_agent(
            mover=StraightLineMover(walk_speed=0.01), home=(100.0, 0.0),
            world=threat_world((0.0, 5.0)),
        )
        tick(agent)
        frame(agent)
        assert agent.executor.busy
        agent.bus.clear()
        agent.needs.set(Need.FEAR, 90.0)
        tick(agent)
        assert agent.current_action is ActionKind.FLEE
        emitted = [s.name for s in agent.bus.drain()]
        assert TASK_CANCELLED in emitted

    def test_override_reapplied_is_noop(self, make_agent):
        agent = make_agent(fear=90.0, world=threat_world())
        tick(agent)
        agent.bus.clear()
        tick(agent)
        tick(agent)
        assert [s for s in agent.bus.drain() if s.name == ACTION_CHANGED] == []

    def test_override_released_when_need_clears(self, make_agent):
        agent = make_agent(fear=90.0, hunger=5.0, world=threat_world())
        tick(agent)
        assert agent.current_action is ActionKind.FLEE
        agent.needs.set(Need.FEAR, 0.0)
        tick(agent)
        assert agent.current_action is ActionKind.SEEK_FOOD


class TestJobControl:
    def test_job_pauses_executor(self, make_agent):
        agent = make_agent(mover=StraightLineMover(walk_speed=5.0))
        agent.jobs.set_work_area((10.0, 0.0))
        agent.jobs.assign(JobKind.FARM)
        tick(agent)
        assert agent.executor.paused
        assert not agent.executor.busy
        for _ in range(40):
            frame(agent)
        assert agent.position[0] > 7.0

    def test_interrupt_hands_control_back(self, make_agent):
        agent = make_agent(hunger=50.0)
        agent.jobs.assign(JobKind.GUARD)
        tick(agent)
        assert agent.executor.paused
        agent.needs.set(Need.HUNGER, 10.0)
        tick(agent)
        assert agent.jobs.state is JobState.INTERRUPTED
        assert not agent.executor.paused
        assert agent.current_action is ActionKind.SEEK_FOOD
        assert agent.executor.busy

    def test_resume_takes_control_again(self, make_agent):
        agent = make_agent(hunger=10.0)
        agent.jobs.assign(JobKind.GUARD)
        tick(agent)
        assert agent.executor.busy
        agent.needs.set(Need.HUNGER, 60.0)
        tick(agent)
        assert agent.jobs.state is JobState.WORKING
        assert agent.executor.paused
        assert not agent.executor.busy

    def test_critical_override_takes_body_from_job(self, make_agent):
        cfg = AgentConfig(
            needs=still_needs(fear=85.0),
            job=JobConfig(interrupts=InterruptThresholds(fear_above=90.0)),
        )
        agent = make_agent(
            config=cfg, world=threat_world(),
            mover=StraightLineMover(run_speed=1000.0),
        )
        agent.jobs.assign(JobKind.FARM)
        tick(agent)
        assert agent.current_action is ActionKind.FLEE
        assert agent.jobs.state is JobState.INTERRUPTED
        assert not agent.executor.paused
        assert agent.executor.busy
        frame(agent)
        assert agent.position[0] < 0.0
        assert agent.needs[Need.FEAR] == 100.0
