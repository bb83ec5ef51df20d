"""Generic reconciliation state machine.

- `State` / `Transition`: named units of work and guarded edges
- `Machine`: registry, ordered transition graph and the single-tick engine
- `ProgressRecord`: the externally persisted resume point
"""

from replicaset_reconciler.state.errors import (
    ConfigurationError,
    DuplicateStateError,
    NoCurrentStateError,
    ProgressPersistenceError,
    ProgressRecordError,
    ReconcilerError,
    UnknownStateError,
)
from replicaset_reconciler.state.machine import (
    Machine,
    State,
    Transition,
    direct_transition,
    from_bool,
)
from replicaset_reconciler.state.pacing import (
    FixedDelayPacing,
    NoPacing,
    PacingPolicy,
    pacing_from_config,
)
from replicaset_reconciler.state.progress import ProgressRecord, ProgressSaver
from replicaset_reconciler.state.result import Outcome

__all__ = [
    "ConfigurationError",
    "DuplicateStateError",
    "FixedDelayPacing",
    "Machine",
    "NoCurrentStateError",
    "NoPacing",
    "Outcome",
    "PacingPolicy",
    "ProgressPersistenceError",
    "ProgressRecord",
    "ProgressRecordError",
    "ProgressSaver",
    "ReconcilerError",
    "State",
    "Transition",
    "UnknownStateError",
    "direct_transition",
    "from_bool",
    "pacing_from_config",
]
