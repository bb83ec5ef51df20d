"""Error taxonomy for the reconciliation state machine."""

from __future__ import annotations


class ReconcilerError(Exception):
    """Base class for errors raised by the reconciliation engine."""


class ConfigurationError(ReconcilerError):
    """The machine cannot be built or run with the given definition or progress."""


class DuplicateStateError(ConfigurationError):
    def __init__(self, state_name: str) -> None:
        super().__init__(
            f"State {state_name!r} was registered twice with different definitions"
        )
        self.state_name = state_name


class UnknownStateError(ConfigurationError):
    def __init__(self, state_name: str) -> None:
        super().__init__(
            f"Attempted to set current state to {state_name!r}, "
            "but it was not registered with the state machine"
        )
        self.state_name = state_name


class NoCurrentStateError(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("No current state set; call set_state() or resume() before tick()")


class ProgressRecordError(ConfigurationError):
    """The persisted progress record could not be parsed."""


class ProgressPersistenceError(ReconcilerError):
    """Saving the next resume point failed after the state's action already ran."""

    def __init__(self, state_name: str, next_state: str) -> None:
        super().__init__(
            f"Failed to persist transition [{state_name}] -> [{next_state or '<initial>'}]"
        )
        self.state_name = state_name
        self.next_state = next_state
