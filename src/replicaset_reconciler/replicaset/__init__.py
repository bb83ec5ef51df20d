"""Replica set deployment pipeline built on the generic state machine."""

from replicaset_reconciler.replicaset.model import (
    REPLICA_SET_KIND,
    Phase,
    ReconcileContext,
    ReplicaSet,
    ReplicaSetSpec,
    ReplicaSetStatus,
    TLSSpec,
)
from replicaset_reconciler.replicaset.status import StepFailedError, publish_status
from replicaset_reconciler.replicaset.workflow import build_state_machine

__all__ = [
    "REPLICA_SET_KIND",
    "Phase",
    "ReconcileContext",
    "ReplicaSet",
    "ReplicaSetSpec",
    "ReplicaSetStatus",
    "StepFailedError",
    "TLSSpec",
    "build_state_machine",
    "publish_status",
]
