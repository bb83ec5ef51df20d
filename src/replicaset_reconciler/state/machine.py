"""Level-triggered reconciliation state machine.

A `Machine` is rebuilt on every invocation from a workflow definition plus the
persisted progress record. Each call to `tick` runs the current state's action
once, and only when that state is complete does it pick one outgoing transition
and persist the new resume point. Nothing survives in memory between ticks.

Callers must serialize ticks for the same managed resource; the machine does
no locking of its own.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Generic, TypeVar

from .errors import (
    DuplicateStateError,
    NoCurrentStateError,
    ProgressPersistenceError,
    UnknownStateError,
)
from .pacing import NoPacing, PacingPolicy
from .progress import ProgressRecord, ProgressSaver
from .result import Outcome

logger = logging.getLogger(__name__)

C = TypeVar("C")

Guard = Callable[[C], bool]


@dataclass(frozen=True, slots=True)
class State(Generic[C]):
    """A named unit of work.

    `action` must be safe to re-run from scratch: it runs again on every tick
    until the state is complete. `is_complete` is optional; without it the
    state is complete as soon as `action` returns.
    """

    name: str
    action: Callable[[C], Outcome]
    is_complete: Callable[[C], bool] | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("State name must be non-empty")


@dataclass(frozen=True, slots=True)
class Transition(Generic[C]):
    from_name: str
    to_name: str
    guard: Guard[C]


def from_bool(value: bool) -> Guard[object]:
    def _guard(_context: object) -> bool:
        return value

    return _guard


direct_transition: Guard[object] = from_bool(True)


class Machine(Generic[C]):
    """State registry, ordered transition graph and the single-tick engine."""

    def __init__(self, saver: ProgressSaver, *, pacing: PacingPolicy | None = None) -> None:
        self._saver = saver
        self._pacing: PacingPolicy = pacing or NoPacing()
        self._states: dict[str, State[C]] = {}
        self._transitions: dict[str, list[Transition[C]]] = {}
        self._current: State[C] | None = None

    @property
    def states(self) -> Mapping[str, State[C]]:
        return MappingProxyType(self._states)

    @property
    def current_state(self) -> State[C] | None:
        return self._current

    def transitions_from(self, state_name: str) -> list[Transition[C]]:
        return list(self._transitions.get(state_name, []))

    def _register(self, state: State[C]) -> None:
        existing = self._states.get(state.name)
        if existing is None:
            self._states[state.name] = state
            return
        if existing is not state and existing != state:
            raise DuplicateStateError(state.name)

    def add_transition(
        self,
        from_state: State[C],
        to_state: State[C],
        guard: Guard[C] = direct_transition,
    ) -> None:
        """Register both states and append a guarded edge.

        Edges from the same state are kept in registration order; the first one
        whose guard holds wins.
        """
        self._register(from_state)
        self._register(to_state)
        self._transitions.setdefault(from_state.name, []).append(
            Transition(from_name=from_state.name, to_name=to_state.name, guard=guard)
        )

    def set_state(self, state_name: str) -> None:
        state = self._states.get(state_name)
        if state is None:
            raise UnknownStateError(state_name)
        self._current = state

    def resume(self, record: ProgressRecord, *, initial_state: str) -> State[C]:
        """Select the starting state from persisted progress.

        An empty `next_state` means start from `initial_state`. A name that is
        not registered fails instead of falling back to the initial state.
        """
        starting = record.next_state or initial_state
        self.set_state(starting)
        logger.debug(
            "Resuming state machine",
            extra={"state": starting, "persisted_next_state": record.next_state},
        )
        return self._states[starting]

    def resolve_next(self, context: C) -> str:
        """Return the target of the first transition whose guard holds, or ""."""
        if self._current is None:
            raise NoCurrentStateError()
        for transition in self._transitions.get(self._current.name, []):
            if transition.guard(context):
                return transition.to_name
        return ""

    def tick(self, context: C) -> Outcome:
        """Run one unit of work and advance at most one transition.

        Action and completion-check exceptions propagate unchanged, with no
        transition and no write. A failed save raises `ProgressPersistenceError`;
        the action's side effects are not undone.
        """
        state = self._current
        if state is None:
            raise NoCurrentStateError()

        logger.info("Reconciling state", extra={"state": state.name})
        self._pacing.before_action()

        try:
            outcome = state.action(context)
        except Exception:
            logger.debug("Error reconciling state", extra={"state": state.name}, exc_info=True)
            raise

        complete = True
        if state.is_complete is not None:
            try:
                complete = state.is_complete(context)
            except Exception:
                logger.debug(
                    "Error determining if state is complete",
                    extra={"state": state.name},
                    exc_info=True,
                )
                raise

        if not complete:
            logger.debug("State is not yet complete", extra={"state": state.name})
            return outcome

        logger.debug("Completed state", extra={"state": state.name})
        next_state = self.resolve_next(context)
        if next_state:
            logger.debug(
                "Preparing transition",
                extra={"state": state.name, "next_state": next_state},
            )

        self._pacing.before_save()
        try:
            self._saver.save(next_state)
        except Exception as e:
            logger.debug(
                "Error saving next state",
                extra={"state": state.name, "next_state": next_state},
                exc_info=True,
            )
            raise ProgressPersistenceError(state.name, next_state) from e
        self._pacing.after_save()

        return outcome
