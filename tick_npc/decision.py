"""DecisionEngine - periodic utility selection with hysteresis."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from tick_npc.config import DecisionConfig
from tick_npc.signals import ACTION_CHANGED, DEGRADED, SignalBus
from tick_npc.types import ActionKind, Need

if TYPE_CHECKING:
    from tick_npc.actions import UtilityAction
    from tick_npc.needs import NeedsModel

logger = logging.getLogger(__name__)

TransitionFn = Callable[["UtilityAction | None", "UtilityAction | None"], None]

# Cadence comparisons tolerate float accumulation in elapsed time.
_TIME_EPSILON = 1e-9


@dataclass
class DecisionState:
    current_action: ActionKind | None = None
    last_decision_time: float | None = None
    last_score: float = 0.0
    last_reason: str = ""
    override: ActionKind | None = None
    override_need: Need | None = None


class DecisionEngine:
    """Scores the catalog against one agent's needs and swaps actions.

    Selection is strictly greedy: a challenger must beat the current action's
    score, so ties never cause a switch. ``on_exit``/``on_enter`` are only
    ever called from ``_transition``.
    """

    def __init__(
        self,
        catalog: dict[ActionKind, UtilityAction],
        needs: Callable[[], NeedsModel | None],
        config: DecisionConfig | None = None,
        bus: SignalBus | None = None,
        agent: str = "",
        on_transition: TransitionFn | None = None,
    ) -> None:
        self.catalog = catalog
        self._needs = needs
        self.config = config if config is not None else DecisionConfig()
        self.bus = bus if bus is not None else SignalBus()
        self.agent = agent
        self.on_transition = on_transition
        self.state = DecisionState()

    @property
    def current(self) -> UtilityAction | None:
        kind = self.state.current_action
        return self.catalog[kind] if kind is not None else None

    def due(self, now: float) -> bool:
        last = self.state.last_decision_time
        return last is None or now - last >= self.config.interval - _TIME_EPSILON

    def scores(self) -> list[tuple[ActionKind, float]]:
        """(kind, score) for every eligible action, in catalog order."""
        return [
            (kind, action.score())
            for kind, action in self.catalog.items()
            if action.is_eligible()
        ]

    def select(self, scored: list[tuple[ActionKind, float]]) -> tuple[ActionKind | None, float]:
        floor = self.config.min_utility_threshold
        current = self.state.current_action
        best: ActionKind | None = None
        best_score = -1.0
        for kind, score in scored:
            if kind is current and score >= floor:
                best, best_score = kind, score
                break
        for kind, score in scored:
            if score >= floor and score > best_score:
                best, best_score = kind, score
        if best is None:
            return None, 0.0
        return best, best_score

    def decide(self, now: float) -> bool:
        """Run one selection pass. Returns True if the action changed."""
        self.state.last_decision_time = now
        needs = self._needs()
        if needs is None:
            logger.warning("%s: no needs model, skipping decision", self.agent)
            self.bus.publish(DEGRADED, agent=self.agent, reason="no_needs")
            return False

        if self.state.override is not None:
            if self.state.override_need is not None and needs.is_critical(self.state.override_need):
                return False
            logger.debug("%s: override %s released", self.agent, self.state.override.value)
            self.state.override = None
            self.state.override_need = None

        scored = self.scores()
        if self.config.log_decisions:
            logger.debug(
                "%s: scores %s", self.agent,
                " | ".join(f"{k.value}: {s:.2f}" for k, s in scored),
            )
        winner, score = self.select(scored)
        if winner is self.state.current_action:
            self.state.last_score = score
            return False
        reason = f"chose {winner.value if winner else 'none'} (utility {score:.2f})"
        self._transition(winner, score, reason)
        return True

    def force(self, kind: ActionKind, need: Need | None = None) -> bool:
        """Pin `kind` as the current action until `need` stops being critical.

        Re-forcing the action already pinned is a no-op.
        """
        if self.state.override is kind:
            return False
        if self._needs() is None:
            self.bus.publish(DEGRADED, agent=self.agent, reason="no_needs")
            return False
        self.state.override = kind
        self.state.override_need = need
        if self.state.current_action is kind:
            return False
        score = self.catalog[kind].score()
        cause = need.value if need is not None else "request"
        self._transition(kind, score, f"forced {kind.value} (critical {cause})")
        return True

    def clear(self) -> None:
        """Drop the current action (exit hook runs) and any override."""
        self.state.override = None
        self.state.override_need = None
        if self.state.current_action is not None:
            self._transition(None, 0.0, "cleared")

    def _transition(self, kind: ActionKind | None, score: float, reason: str) -> None:
        previous = self.current
        if previous is not None:
            previous.on_exit()
        self.state.current_action = kind
        self.state.last_score = score
        self.state.last_reason = reason
        action = self.current
        if action is not None:
            action.on_enter()
        logger.debug("%s: %s", self.agent, reason)
        self.bus.publish(
            ACTION_CHANGED, agent=self.agent,
            previous=previous.kind if previous is not None else None,
            current=kind, score=score,
        )
        if self.on_transition is not None:
            self.on_transition(previous, action)
