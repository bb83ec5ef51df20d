"""Status publication for the replica set resource."""

from __future__ import annotations

import json
import logging
from typing import Any, NoReturn

from pydantic import ValidationError

from replicaset_reconciler.resources.store import ResourceObject, ResourceStore
from replicaset_reconciler.state.errors import ReconcilerError
from replicaset_reconciler.state.result import Outcome

from .model import (
    LAST_APPLIED_VERSION_ANNOTATION,
    LAST_SUCCESSFUL_CONFIGURATION_ANNOTATION,
    REPLICA_SET_KIND,
    Phase,
    ReconcileContext,
    ReplicaSet,
    ReplicaSetStatus,
)

logger = logging.getLogger(__name__)


class StepFailedError(ReconcilerError):
    """A pipeline step failed; the resource has been marked Failed."""


def publish_status(
    ctx: ReconcileContext, *, phase: Phase, message: str = "", **fields: Any
) -> None:
    """Write phase, message and any other status fields onto the stored resource.

    The resource is re-read first so annotations written by other steps are
    kept, and the context snapshot is replaced with the stored copy.
    """
    rs = ctx.replica_set
    obj = ctx.resources.get(REPLICA_SET_KIND, rs.namespace, rs.name)
    status = ReplicaSetStatus.model_validate(obj.status).model_copy(
        update={"phase": phase.value, "message": message, **fields}
    )
    obj.status = status.model_dump(mode="json")
    stored = ctx.resources.update(obj)
    ctx.replica_set = ReplicaSet.from_object(stored)
    logger.debug(
        "Status published",
        extra={"resource": stored.key, "phase": phase.value, "status_message": message},
    )


def record_applied_configuration(ctx: ReconcileContext) -> None:
    """Annotate the resource with the version and spec that just converged."""
    rs = ctx.replica_set
    obj = ctx.resources.get(REPLICA_SET_KIND, rs.namespace, rs.name)
    obj.annotations[LAST_APPLIED_VERSION_ANNOTATION] = rs.spec.version
    obj.annotations[LAST_SUCCESSFUL_CONFIGURATION_ANNOTATION] = json.dumps(
        rs.spec.model_dump(mode="json"), sort_keys=True
    )
    ctx.replica_set = ReplicaSet.from_object(ctx.resources.update(obj))


def pending(ctx: ReconcileContext, message: str) -> Outcome:
    publish_status(ctx, phase=Phase.PENDING, message=message)
    return Outcome.retry(ctx.retry_seconds)


def fail_unreadable(
    resources: ResourceStore, obj: ResourceObject, error: ValidationError
) -> NoReturn:
    """Mark a resource whose spec or status cannot be parsed as Failed.

    No pipeline step can run without a parsed resource, so the status fields
    are written onto the raw object.
    """
    problems = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in error.errors()
    )
    message = f"error validating new spec: {problems}"
    logger.error(message, extra={"resource": obj.key})
    obj.status = {**obj.status, "phase": Phase.FAILED.value, "message": message}
    resources.update(obj)
    raise StepFailedError(message) from error


def fail(ctx: ReconcileContext, message: str) -> NoReturn:
    logger.error(message, extra={"resource": f"{ctx.replica_set.namespace}/{ctx.replica_set.name}"})
    publish_status(ctx, phase=Phase.FAILED, message=message)
    raise StepFailedError(message)
