"""Tests for the DecisionEngine - greedy selection, hysteresis and overrides."""

import logging

import pytest

from tick_npc import AgentConfig, DecisionConfig
from tick_npc.signals import ACTION_CHANGED, DEGRADED
from tick_npc.types import ActionKind, Need

from conftest import still_needs


def signals(agent, name):
    return [s.data for s in agent.bus.drain() if s.name == name]


class TestSelection:
    def test_greedy_example(self, make_agent):
        agent = make_agent(hunger=10.0)
        table = dict(agent.decision.scores())
        assert agent.decision.decide(1.0) is True
        assert agent.current_action is ActionKind.SEEK_FOOD
        assert agent.decision.state.last_score == 1.0
        assert table[ActionKind.WANDER] <= 0.4
        assert table[ActionKind.SOCIALIZE] == pytest.approx(0.3)

    def test_action_changed_payload(self, make_agent):
        agent = make_agent(hunger=10.0)
        agent.decision.decide(1.0)
        (changed,) = signals(agent, ACTION_CHANGED)
        assert changed == {
            "agent": "ann", "previous": None,
            "current": ActionKind.SEEK_FOOD, "score": 1.0,
        }

    def test_first_in_catalog_order_wins_fresh_tie(self, make_agent):
        agent = make_agent()  # food and rest both 0.5
        agent.decision.decide(1.0)
        assert agent.current_action is ActionKind.SEEK_FOOD

    def test_ineligible_actions_not_scored(self, make_agent):
        kinds = [k for k, _ in make_agent().decision.scores()]
        assert ActionKind.FLEE not in kinds
        assert ActionKind.SEEK_SHELTER not in kinds

    def test_nothing_above_floor(self, make_agent):
        cfg = AgentConfig(needs=still_needs(), decision=DecisionConfig(min_utility_threshold=0.95))
        agent = make_agent(config=cfg)
        assert agent.decision.decide(1.0) is False
        assert agent.current_action is None

    def test_losing_every_candidate_clears_action(self, make_agent):
        cfg = AgentConfig(
            needs=still_needs(hunger=10.0),
            decision=DecisionConfig(min_utility_threshold=0.95),
        )
        agent = make_agent(config=cfg)
        agent.decision.decide(1.0)
        assert agent.current_action is ActionKind.SEEK_FOOD
        agent.needs.set(Need.HUNGER, 95.0)
        assert agent.decision.decide(2.0) is True
        assert agent.current_action is None
        assert agent.executor.action is None


class TestHysteresis:
    def test_tie_keeps_current(self, make_agent):
        agent = make_agent(hunger=60.0)
        agent.decision.decide(1.0)
        assert agent.current_action is ActionKind.REST
        agent.needs.set(Need.HUNGER, 50.0)  # food now ties rest at 0.5
        assert agent.decision.decide(2.0) is False
        assert agent.current_action is ActionKind.REST

    def test_strictly_better_challenger_switches(self, make_agent):
        agent = make_agent(hunger=60.0)
        agent.decision.decide(1.0)
        agent.needs.set(Need.HUNGER, 49.0)
        assert agent.decision.decide(2.0) is True
        assert agent.current_action is ActionKind.SEEK_FOOD

    def test_hooks_fire_only_on_change(self, make_agent, monkeypatch):
        agent = make_agent(hunger=60.0)
        calls = []
        for kind in (ActionKind.REST, ActionKind.SEEK_FOOD):
            action = agent.catalog[kind]
            monkeypatch.setattr(action, "on_enter", lambda k=kind: calls.append(("enter", k)))
            monkeypatch.setattr(action, "on_exit", lambda k=kind: calls.append(("exit", k)))
        agent.decision.decide(1.0)
        agent.decision.decide(2.0)
        agent.needs.set(Need.HUNGER, 40.0)
        agent.decision.decide(3.0)
        assert calls == [
            ("enter", ActionKind.REST),
            ("exit", ActionKind.REST),
            ("enter", ActionKind.SEEK_FOOD),
        ]


class TestCadence:
    def test_due(self, make_agent):
        decision = make_agent().decision
        assert decision.due(0.0)
        decision.decide(1.0)
        assert not decision.due(1.5)
        assert decision.due(2.0)

    def test_custom_interval(self, make_agent):
        cfg = AgentConfig(needs=still_needs(), decision=DecisionConfig(interval=0.25))
        decision = make_agent(config=cfg).decision
        decision.decide(1.0)
        assert decision.due(1.25)


class TestMissingNeeds:
    def test_no_selection_and_degraded(self, make_agent, caplog):
        agent = make_agent(hunger=10.0)
        agent.decision.decide(1.0)
        agent.bus.clear()
        agent.needs = None
        with caplog.at_level(logging.WARNING, logger="tick_npc.decision"):
            assert agent.decision.decide(2.0) is False
        assert agent.current_action is ActionKind.SEEK_FOOD
        assert signals(agent, DEGRADED) == [{"agent": "ann", "reason": "no_needs"}]
        assert "no needs model" in caplog.text


class TestOverrides:
    def test_force_pins_until_need_clears(self, make_agent):
        agent = make_agent(fear=90.0)
        assert agent.decision.force(ActionKind.FLEE, Need.FEAR) is True
        agent.needs.set(Need.HUNGER, 5.0)  # food would now win on score
        assert agent.decision.decide(1.0) is False
        assert agent.current_action is ActionKind.FLEE
        agent.needs.set(Need.FEAR, 10.0)
        assert agent.decision.decide(2.0) is True
        assert agent.current_action is ActionKind.SEEK_FOOD
        assert agent.decision.state.override is None

    def test_force_is_idempotent(self, make_agent):
        agent = make_agent(fear=90.0)
        agent.decision.force(ActionKind.FLEE, Need.FEAR)
        agent.bus.clear()
        assert agent.decision.force(ActionKind.FLEE, Need.FEAR) is False
        assert signals(agent, ACTION_CHANGED) == []

    def test_clear(self, make_agent):
        agent = make_agent(hunger=10.0)
        agent.decision.decide(1.0)
        agent.decision.clear()
        assert agent.current_action is None


def test_log_decisions(make_agent, caplog):
    cfg = AgentConfig(needs=still_needs(), decision=DecisionConfig(log_decisions=True))
    agent = make_agent(config=cfg)
    with caplog.at_level(logging.DEBUG, logger="tick_npc.decision"):
        agent.decision.decide(1.0)
    assert "seek_food: 0.50" in caplog.text
