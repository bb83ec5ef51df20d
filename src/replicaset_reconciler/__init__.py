"""Replica set reconciler.

A level-triggered control loop that converges a replicated database deployment
toward its declared configuration, one persisted step per invocation:
- a generic state machine with guarded, ordered transitions
- progress persisted on the managed resource, so every tick can resume
- the replica set pipeline (service, TLS, automation config, stateful set, status)
"""

__version__ = "0.1.0"

from replicaset_reconciler.config import ReconcilerConfig
from replicaset_reconciler.reconciler import Reconciler

__all__ = ["__version__", "Reconciler", "ReconcilerConfig"]
