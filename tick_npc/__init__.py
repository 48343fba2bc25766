"""tick-npc - needs-driven NPC behavior on a tick loop."""

from tick_npc.agent import Agent
from tick_npc.clock import Cadence, Clock
from tick_npc.collaborators import (
    Entity,
    FactionLookup,
    FactionTable,
    MoveHandle,
    Mover,
    SimpleWorld,
    StraightLineMover,
    WorldQuery,
)
from tick_npc.config import (
    AgentConfig,
    BehaviorConfig,
    DecisionConfig,
    InterruptThresholds,
    JobConfig,
    NeedConfig,
    NeedsConfig,
    load_agent_config,
)
from tick_npc.decision import DecisionEngine
from tick_npc.engine import Engine
from tick_npc.executor import BehaviorExecutor, Task
from tick_npc.jobs import JobScheduler, ScheduleEntry
from tick_npc.needs import NeedsModel
from tick_npc.signals import Signal, SignalBus, edge_triggered
from tick_npc.types import (
    ActionKind,
    ConfigError,
    JobKind,
    JobState,
    MoveResult,
    Need,
    SpeedMode,
    Status,
    TickContext,
    UnknownAgentError,
    make_context,
)

__all__ = [
    "Agent",
    "Engine",
    "Clock",
    "Cadence",
    "TickContext",
    "make_context",
    "NeedsModel",
    "DecisionEngine",
    "BehaviorExecutor",
    "Task",
    "JobScheduler",
    "ScheduleEntry",
    "Signal",
    "SignalBus",
    "edge_triggered",
    "AgentConfig",
    "NeedConfig",
    "NeedsConfig",
    "DecisionConfig",
    "BehaviorConfig",
    "InterruptThresholds",
    "JobConfig",
    "load_agent_config",
    "Entity",
    "Mover",
    "MoveHandle",
    "WorldQuery",
    "FactionLookup",
    "StraightLineMover",
    "SimpleWorld",
    "FactionTable",
    "Need",
    "ActionKind",
    "JobKind",
    "JobState",
    "Status",
    "MoveResult",
    "SpeedMode",
    "ConfigError",
    "UnknownAgentError",
]
