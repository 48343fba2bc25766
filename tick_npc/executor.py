"""BehaviorExecutor - runs the current action as a resumable task.

A task is an explicit state machine stepped once per frame::

    IDLE -> MOVING(destination, on_arrive) -> EXECUTING(step) -> DONE

Phases that have completed are never re-entered, so a task suspended in
MOVING for many frames resumes exactly where it was. Cancelling is immediate:
deltas already applied stay applied and nothing else of the task runs.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

from tick_npc.collaborators import MoveHandle
from tick_npc.signals import (
    TASK_BLOCKED,
    TASK_CANCELLED,
    TASK_FINISHED,
    TASK_STARTED,
)
from tick_npc.types import MoveResult, SpeedMode, Status, Vec2

if TYPE_CHECKING:
    from tick_npc.actions import UtilityAction
    from tick_npc.agent import Agent

logger = logging.getLogger(__name__)

StepFn = Callable[[float], Status]


class TaskPhase(Enum):
    IDLE = "idle"
    MOVING = "moving"
    EXECUTING = "executing"
    DONE = "done"


@dataclass
class Task:
    """One run of an action's routine.

    ``destination`` is walked to first (if set); ``on_arrive`` fires once on
    arrival; ``step`` is then called every frame until it stops returning
    RUNNING.
    """

    label: str
    destination: Vec2 | None = None
    speed: SpeedMode = SpeedMode.WALK
    on_arrive: Callable[[], None] | None = None
    step: StepFn | None = None
    phase: TaskPhase = TaskPhase.IDLE
    result: Status | None = None
    handle: MoveHandle | None = None


class BehaviorExecutor:
    """Drives the task of one agent's current action."""

    def __init__(self, agent: Agent) -> None:
        self.agent = agent
        self.action: UtilityAction | None = None
        self.task: Task | None = None
        self.paused = False

    @property
    def busy(self) -> bool:
        return self.task is not None and self.task.phase is not TaskPhase.DONE

    def start(self, action: UtilityAction | None) -> None:
        """Cancel whatever runs and begin a fresh task for `action`.

        While paused the action is only recorded; planning waits for
        ``resume_if_idle``.
        """
        self.cancel("replaced")
        self.action = action
        if action is not None and not self.paused:
            self._plan()

    def resume_if_idle(self) -> None:
        """Re-run the current action's routine if its last task has ended."""
        if self.action is not None and not self.busy:
            self._plan()

    def cancel(self, reason: str = "cancelled") -> None:
        task = self.task
        self.task = None
        if task is None or task.phase is TaskPhase.DONE:
            return
        if task.handle is not None:
            task.handle.cancel()
        logger.debug("%s: cancelled %s (%s)", self.agent.name, task.label, reason)
        self.agent.bus.publish(
            TASK_CANCELLED, agent=self.agent.name, task=task.label, reason=reason,
        )

    def step(self, dt: float) -> Status | None:
        """Advance the running task by one frame. None when nothing runs."""
        if self.paused or self.action is None or not self.action.is_valid():
            return None
        task = self.task
        if task is None or task.phase is TaskPhase.DONE:
            return None

        if task.phase is TaskPhase.IDLE:
            self._begin(task)
        if task.phase is TaskPhase.MOVING:
            self._poll_move(task, dt)
        elif task.phase is TaskPhase.EXECUTING and task.step is not None:
            status = task.step(dt)
            if status is not Status.RUNNING:
                self._finish(task, status)
        return task.result if task.result is not None else Status.RUNNING

    # --- Internals ---

    def _plan(self) -> None:
        assert self.action is not None
        task = self.action.plan()
        if task is None:
            self.task = None
            return
        self.task = task
        self.agent.bus.publish(
            TASK_STARTED, agent=self.agent.name, task=task.label,
            action=self.action.kind,
        )

    def _begin(self, task: Task) -> None:
        if task.destination is None:
            self._arrived(task)
            return
        mover = self.agent.mover
        if mover is None:
            # No navigation: act in place.
            self.agent.degrade("no_mover", task=task.label)
            self._arrived(task)
            return
        task.handle = mover.move_to(self.agent.position, task.destination, task.speed)
        task.phase = TaskPhase.MOVING

    def _poll_move(self, task: Task, dt: float) -> None:
        assert task.handle is not None
        result = task.handle.poll(dt)
        self.agent.position = task.handle.position
        if result is MoveResult.ARRIVED:
            self._arrived(task)
        elif result is MoveResult.BLOCKED:
            self.agent.bus.publish(
                TASK_BLOCKED, agent=self.agent.name, task=task.label,
                destination=task.destination,
            )
            self.agent.degrade("unreachable", task=task.label)
            self._finish(task, Status.FAILURE)

    def _arrived(self, task: Task) -> None:
        if task.on_arrive is not None:
            task.on_arrive()
        if task.step is not None:
            task.phase = TaskPhase.EXECUTING
        else:
            self._finish(task, Status.SUCCESS)

    def _finish(self, task: Task, status: Status) -> None:
        task.phase = TaskPhase.DONE
        task.result = status
        logger.debug("%s: %s -> %s", self.agent.name, task.label, status.value)
        self.agent.bus.publish(
            TASK_FINISHED, agent=self.agent.name, task=task.label, status=status,
        )
