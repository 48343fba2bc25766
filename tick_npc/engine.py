"""Engine - drives a population of agents on a frame clock and a coarse clock."""
from __future__ import annotations

import logging
import os
import random
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable

from tick_npc.agent import Agent
from tick_npc.clock import Cadence, Clock
from tick_npc.signals import SignalBus
from tick_npc.types import TickContext, UnknownAgentError

logger = logging.getLogger(__name__)

Hook = Callable[["Engine", TickContext], None]


class Engine:
    """Runs agents: ``frame`` every step, ``tick`` every `sim_interval`.

    Each step runs the coarse ticks the cadence owes first, then one frame
    for every agent, then flushes every agent bus in registration order.
    Every agent gets its own RNG derived from the engine seed and its name.
    With ``workers > 1`` agents are updated concurrently on a thread pool.
    Runs stay reproducible only while agents read nothing another agent
    writes mid-step: a world that tracks live agents (``SimpleWorld.track``)
    sees peer positions in thread order, so use one worker for such worlds.
    """

    def __init__(
        self,
        tps: int = 20,
        sim_interval: float = 1.0,
        seed: int | None = None,
        workers: int = 1,
    ) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self._clock = Clock(tps)
        self._cadence = Cadence(sim_interval)
        self._agents: dict[str, Agent] = {}
        self._start_hooks: list[Hook] = []
        self._stop_hooks: list[Hook] = []
        self._stop_requested = False
        self._workers = workers
        self._pool: ThreadPoolExecutor | None = None

        if seed is None:
            seed = int.from_bytes(os.urandom(8))
        self._seed = seed
        self._rng = random.Random(seed)

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def sim_interval(self) -> float:
        return self._cadence.interval

    # --- Population ---

    def add_agent(self, agent: Agent) -> Agent:
        if agent.name in self._agents:
            raise ValueError(f"Agent {agent.name!r} already exists")
        agent.rng = random.Random(f"{self._seed}:{agent.name}")
        self._agents[agent.name] = agent
        logger.debug("added agent %s", agent.name)
        return agent

    def remove_agent(self, name: str) -> Agent:
        try:
            agent = self._agents.pop(name)
        except KeyError:
            raise UnknownAgentError(name, f"No agent named {name!r}") from None
        agent.executor.cancel("removed")
        agent.jobs.assign(None)
        return agent

    def agent(self, name: str) -> Agent:
        try:
            return self._agents[name]
        except KeyError:
            raise UnknownAgentError(name, f"No agent named {name!r}") from None

    def agents(self) -> list[Agent]:
        return list(self._agents.values())

    def subscribe(self, signal_name: str, handler: Callable) -> None:
        """Subscribe `handler` on the bus of every agent added so far."""
        for bus in self._buses():
            bus.subscribe(signal_name, handler)

    # --- Lifecycle ---

    def on_start(self, hook: Hook) -> None:
        self._start_hooks.append(hook)

    def on_stop(self, hook: Hook) -> None:
        self._stop_hooks.append(hook)

    def _request_stop(self) -> None:
        self._stop_requested = True

    def _tick(self) -> None:
        self._clock.advance()
        ctx = self._clock.context(self._request_stop, self._rng)
        agents = list(self._agents.values())
        for _ in range(self._cadence.advance(ctx.dt)):
            sim_ctx = self._clock.context(self._request_stop, self._rng, dt=self._cadence.interval)
            self._each(agents, lambda a: a.tick(sim_ctx))
        self._each(agents, lambda a: a.frame(ctx))
        for bus in self._buses():
            bus.flush()

    def _each(self, agents: list[Agent], fn: Callable[[Agent], None]) -> None:
        if self._workers == 1 or len(agents) < 2:
            for agent in agents:
                fn(agent)
            return
        if self._pool is None:
            self._pool = ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix="tick-npc",
            )
        # list() re-raises the first worker exception here.
        list(self._pool.map(fn, agents))

    def _buses(self) -> list[SignalBus]:
        seen: dict[int, SignalBus] = {}
        for agent in self._agents.values():
            seen.setdefault(id(agent.bus), agent.bus)
        return list(seen.values())

    def step(self) -> None:
        self._stop_requested = False
        self._tick()

    def run(self, n: int) -> None:
        self._stop_requested = False
        ctx = self._clock.context(self._request_stop, self._rng)
        for hook in self._start_hooks:
            hook(self, ctx)

        for _ in range(n):
            self._tick()
            if self._stop_requested:
                break

        ctx = self._clock.context(self._request_stop, self._rng)
        for hook in self._stop_hooks:
            hook(self, ctx)

    def run_for(self, seconds: float) -> None:
        """Run as many frames as fit in `seconds` of simulated time."""
        self.run(round(seconds * self._clock.tps))

    def run_forever(self) -> None:
        self._stop_requested = False
        ctx = self._clock.context(self._request_stop, self._rng)
        for hook in self._start_hooks:
            hook(self, ctx)

        dt = self._clock.dt
        while not self._stop_requested:
            start = time.monotonic()
            self._tick()
            if self._stop_requested:
                break
            sleep_time = dt - (time.monotonic() - start)
            if sleep_time > 0:
                time.sleep(sleep_time)

        ctx = self._clock.context(self._request_stop, self._rng)
        for hook in self._stop_hooks:
            hook(self, ctx)

    def shutdown(self) -> None:
        """Release the worker pool, if one was started."""
        if self._pool is not None:
            self._pool.shutdown(wait=True)
            self._pool = None

    def __enter__(self) -> Engine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()
