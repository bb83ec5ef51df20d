"""Single-invocation entry point used by an external scheduler."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from replicaset_reconciler.config import ReconcilerConfig
from replicaset_reconciler.replicaset.model import REPLICA_SET_KIND, ReconcileContext, ReplicaSet
from replicaset_reconciler.replicaset.status import fail_unreadable
from replicaset_reconciler.replicaset.workflow import build_state_machine
from replicaset_reconciler.resources.progress import AnnotationProgressStore, read_progress
from replicaset_reconciler.resources.store import JsonResourceStore, NotFoundError, ResourceStore
from replicaset_reconciler.state.pacing import PacingPolicy, pacing_from_config
from replicaset_reconciler.state.result import Outcome

logger = logging.getLogger(__name__)


class Reconciler:
    """Drive one replica set one step closer to its desired configuration.

    Each call to `reconcile` reads the persisted progress, rebuilds the state
    machine and ticks it exactly once. The scheduler decides when to call again
    based on the returned `Outcome`, and must not run two calls for the same
    replica set concurrently.
    """

    def __init__(
        self,
        config: ReconcilerConfig | None = None,
        resources: ResourceStore | None = None,
        *,
        pacing: PacingPolicy | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            config: Configuration object. If None, loads from environment.
            resources: Resource store. Defaults to the JSON store at `config.store.path`.
            pacing: Pacing policy. Defaults to the one described by `config.pacing`.
        """
        self.config = config or ReconcilerConfig()
        self.resources: ResourceStore = resources or JsonResourceStore(self.config.store.path)
        self.pacing: PacingPolicy = pacing or pacing_from_config(self.config.pacing)

    def reconcile(self, namespace: str, name: str) -> Outcome:
        try:
            obj = self.resources.get(REPLICA_SET_KIND, namespace, name)
        except NotFoundError:
            logger.info(
                "Replica set not found; nothing to reconcile",
                extra={"resource": f"{namespace}/{name}"},
            )
            return Outcome.done()

        try:
            replica_set = ReplicaSet.from_object(obj)
        except ValidationError as e:
            fail_unreadable(self.resources, obj, e)

        annotation_key = self.config.store.progress_annotation
        record = read_progress(obj.annotations, annotation_key)
        ctx = ReconcileContext(
            resources=self.resources,
            replica_set=replica_set,
            retry_seconds=self.config.pending_retry_seconds,
        )
        saver = AnnotationProgressStore(
            self.resources,
            kind=REPLICA_SET_KIND,
            namespace=namespace,
            name=name,
            annotation_key=annotation_key,
        )
        machine = build_state_machine(ctx, saver, record, pacing=self.pacing)
        return machine.tick(ctx)
