"""Outpost -- three villagers, a granary and a wolf.

Demonstrates:
- Loading an agent type from TOML
- Plugging in a mover, a world query and a faction table
- Static jobs, a rotating schedule and a raider from a hostile faction
- Watching decisions and job events through the engine's signal buses

Run: python -m examples.outpost
"""

import logging
from pathlib import Path

from tick_npc import (
    Agent,
    Engine,
    Entity,
    FactionTable,
    ScheduleEntry,
    SimpleWorld,
    StraightLineMover,
    load_agent_config,
)
from tick_npc.collaborators import FOOD, RESOURCE, THREAT
from tick_npc.types import JobKind

CONFIG = Path(__file__).with_name("villager.toml")

SHOWN = {
    "action_changed",
    "job_started",
    "job_completed",
    "job_interrupted",
    "job_resumed",
    "threat_detected",
}


def describe(name: str, data: dict) -> str:
    who = data["agent"]
    if name == "action_changed":
        prev = data["previous"].value if data["previous"] else "-"
        cur = data["current"].value if data["current"] else "-"
        return f"{who:<5} {prev} -> {cur} ({data['score']:.2f})"
    if name == "threat_detected":
        return f"{who:<5} spotted {', '.join(data['threats'])}"
    return f"{who:<5} {name.replace('_', ' ')}: {data['job'].value}"


def main() -> None:
    # DEBUG shows every score table, WARNING every degraded fallback.
    logging.basicConfig(level=logging.ERROR, format="%(levelname)s %(name)s: %(message)s")
    print("=== Outpost ===\n")

    config = load_agent_config(CONFIG)
    world = SimpleWorld([
        Entity("granary", FOOD, (6.0, 2.0)),
        Entity("scrap", RESOURCE, (-4.0, 3.0)),
        Entity("wolf", THREAT, (12.0, -9.0)),
    ])
    factions = FactionTable([("town", "raiders")])
    mover = StraightLineMover(walk_speed=2.0, run_speed=5.0)

    engine = Engine(tps=20, sim_interval=1.0, seed=2024)

    def villager(name: str, x: float, y: float, faction: str = "town") -> Agent:
        agent = engine.add_agent(Agent(
            name, config, position=(x, y), mover=mover, world=world,
            factions=factions, faction=faction,
        ))
        world.track(name, agent.as_entity)
        return agent

    ada = villager("ada", 0.0, 0.0)
    ada.jobs.assign(JobKind.FARM)

    bo = villager("bo", 2.0, 1.0)
    bo.jobs.set_work_area((8.0, -4.0))
    bo.jobs.assign(JobKind.GUARD)

    cy = villager("cy", -1.0, 2.0)
    cy.jobs.set_schedule([
        ScheduleEntry(JobKind.SCAVENGE, 15.0, "morning rounds"),
        ScheduleEntry(JobKind.COOK, 20.0, "supper"),
    ])

    villager("rex", 14.0, 6.0, faction="raiders")

    def show(name: str, data: dict) -> None:
        if name in SHOWN:
            print(f"  t={engine.clock.elapsed:5.1f}  {describe(name, data)}")

    engine.subscribe("*", show)
    engine.on_start(lambda eng, ctx: print("--- dawn ---"))
    engine.on_stop(lambda eng, ctx: print(f"--- dusk after {ctx.elapsed:.0f}s ---\n"))

    engine.run_for(90.0)

    for agent in engine.agents():
        needs = ", ".join(f"{k}={v:.0f}" for k, v in agent.needs.as_dict().items())
        print(f"{agent.name:<4} {agent.jobs.state.value:<11} {needs}")


if __name__ == "__main__":
    main()
