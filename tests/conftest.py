"""Shared factories for tick_npc tests."""
from __future__ import annotations

import random

import pytest

from tick_npc import Agent, AgentConfig, NeedConfig, NeedsConfig
from tick_npc.types import Need


def still_needs(**initial: float) -> NeedsConfig:
    """NeedsConfig with zero decay, defaults overridden by `initial`."""
    base = NeedsConfig()
    return NeedsConfig(**{
        n.value: NeedConfig(
            initial.get(n.value, base.for_need(n).initial),
            0.0,
            base.for_need(n).critical_threshold,
        )
        for n in Need
    })


@pytest.fixture
def make_agent():
    """Build an agent with frozen needs and a seeded RNG.

    Keyword arguments named after needs set starting values; everything else
    goes to the Agent constructor.
    """

    def factory(name: str = "ann", config: AgentConfig | None = None, **kwargs):
        initial = {k: kwargs.pop(k) for k in list(kwargs) if k in {n.value for n in Need}}
        if config is None:
            config = AgentConfig(needs=still_needs(**initial))
        kwargs.setdefault("rng", random.Random(7))
        return Agent(name, config, **kwargs)

    return factory
