"""Pipeline steps for deploying a replica set.

Every action is safe to re-run from scratch: objects are created-or-adopted
and then brought to the desired content. Actions take the tick's
`ReconcileContext` explicitly instead of closing over the resource.
"""

from __future__ import annotations

import logging

from replicaset_reconciler.resources.store import AlreadyExistsError, NotFoundError, ResourceObject
from replicaset_reconciler.state.machine import State
from replicaset_reconciler.state.result import Outcome

from .model import (
    AUTOMATION_CONFIG_KIND,
    MONGODB_PORT,
    ON_DELETE,
    ROLLING_UPDATE,
    SECRET_KIND,
    SERVICE_KIND,
    STATEFUL_SET_KIND,
    Phase,
    ReconcileContext,
)
from .status import fail, pending, publish_status, record_applied_configuration

logger = logging.getLogger(__name__)

START_FRESH = "StartFresh"
VALIDATE_SPEC = "ValidateSpec"
CREATE_SERVICE = "CreateService"
TLS_VALIDATION = "TLSValidation"
CREATE_TLS_RESOURCES = "CreateTLSResources"
DEPLOY_AUTOMATION_CONFIG = "DeployAutomationConfig"
DEPLOY_STATEFUL_SET = "DeployStatefulSet"
RESET_UPDATE_STRATEGY = "ResetStatefulSetUpdateStrategy"
UPDATE_STATUS = "UpdateStatus"
RECONCILIATION_END = "ReconciliationEnd"

MAX_MEMBERS = 50

ReplicaSetState = State[ReconcileContext]


def _ensure(ctx: ReconcileContext, desired: ResourceObject) -> ResourceObject:
    """Create `desired`, or adopt the existing object and bring its spec up to date."""
    try:
        created = ctx.resources.create(desired)
        logger.info("Created resource", extra={"resource": desired.key})
        return created
    except AlreadyExistsError:
        pass

    existing = ctx.resources.get(desired.kind, desired.namespace, desired.name)
    if existing.spec == desired.spec:
        return existing
    existing.spec = desired.spec
    logger.info("Updated resource", extra={"resource": desired.key})
    return ctx.resources.update(existing)


def _get_optional(ctx: ReconcileContext, kind: str, name: str) -> ResourceObject | None:
    try:
        return ctx.resources.get(kind, ctx.replica_set.namespace, name)
    except NotFoundError:
        return None


def validate_spec(ctx: ReconcileContext) -> list[str]:
    spec = ctx.replica_set.spec
    problems: list[str] = []
    if not spec.version.strip():
        problems.append("spec.version is required")
    if spec.members < 0:
        problems.append("spec.members must not be negative")
    if spec.members > MAX_MEMBERS:
        problems.append(f"spec.members must be at most {MAX_MEMBERS}")
    if spec.tls.enabled and not spec.tls.certificate_secret.strip():
        problems.append("spec.tls.certificate_secret is required when TLS is enabled")
    return problems


def needs_config_published_first(ctx: ReconcileContext) -> bool:
    """Whether the automation config must change before the stateful set does.

    Agents have to drop members (or TLS) before the pods backing them go away.
    """
    sts = _get_optional(ctx, STATEFUL_SET_KIND, ctx.replica_set.name)
    if sts is None:
        return False
    rs = ctx.replica_set
    if rs.members_this_reconciliation() < int(sts.spec.get("replicas", 0)):
        return True
    return bool(sts.spec.get("tls_enabled")) and not rs.spec.tls.enabled


def _read_certificate(ctx: ReconcileContext) -> tuple[str, str] | None:
    secret = _get_optional(ctx, SECRET_KIND, ctx.replica_set.spec.tls.certificate_secret)
    if secret is None:
        return None
    crt = str(secret.spec.get("tls.crt", ""))
    key = str(secret.spec.get("tls.key", ""))
    if not crt or not key:
        return None
    return crt, key


def _desired_stateful_set(ctx: ReconcileContext) -> ResourceObject:
    rs = ctx.replica_set
    return ResourceObject(
        kind=STATEFUL_SET_KIND,
        namespace=rs.namespace,
        name=rs.name,
        spec={
            "replicas": rs.members_this_reconciliation(),
            "version": rs.spec.version,
            "service_name": rs.service_name,
            "tls_enabled": rs.spec.tls.enabled,
            "tls_secret": rs.tls_secret_name if rs.spec.tls.enabled else "",
            # Pods are restarted by the agents one at a time during an upgrade.
            "update_strategy": ON_DELETE if rs.is_changing_version() else ROLLING_UPDATE,
        },
    )


def _stateful_set_ready(sts: ResourceObject) -> bool:
    return int(sts.status.get("ready_replicas", 0)) == int(sts.spec.get("replicas", 0))


def _ensure_automation_config(ctx: ReconcileContext) -> ResourceObject:
    rs = ctx.replica_set
    content = {
        "members": rs.hosts(),
        "mongodb_version": rs.spec.version,
        "tls_enabled": rs.spec.tls.enabled,
        "replica_set": rs.name,
    }
    current = _get_optional(ctx, AUTOMATION_CONFIG_KIND, rs.automation_config_name)
    if current is not None:
        if {k: v for k, v in current.spec.items() if k != "version"} == content:
            return current
        version = int(current.spec.get("version", 0)) + 1
    else:
        version = 1
    desired = ResourceObject(
        kind=AUTOMATION_CONFIG_KIND,
        namespace=rs.namespace,
        name=rs.automation_config_name,
        spec={**content, "version": version},
    )
    return _ensure(ctx, desired)


def _agents_reached_goal(ctx: ReconcileContext, config: ResourceObject) -> bool:
    sts = _get_optional(ctx, STATEFUL_SET_KIND, ctx.replica_set.name)
    if sts is None:
        return True
    goal = int(config.spec.get("version", 0))
    return int(sts.status.get("agent_config_version", 0)) >= goal


def new_start_fresh_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        rs = ctx.replica_set
        logger.info(
            "Reconciling replica set",
            extra={
                "resource": f"{rs.namespace}/{rs.name}",
                "spec": rs.spec.model_dump(mode="json"),
                "status": rs.status.model_dump(mode="json"),
            },
        )
        return Outcome.retry()

    return State(name=START_FRESH, action=action)


def new_validate_spec_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        logger.debug("Validating replica set spec")
        problems = validate_spec(ctx)
        if problems:
            fail(ctx, f"error validating new spec: {'; '.join(problems)}")
        return Outcome.retry()

    return State(name=VALIDATE_SPEC, action=action)


def new_create_service_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        rs = ctx.replica_set
        logger.debug("Ensuring the service exists")
        _ensure(
            ctx,
            ResourceObject(
                kind=SERVICE_KIND,
                namespace=rs.namespace,
                name=rs.service_name,
                spec={"selector": {"app": rs.service_name}, "port": MONGODB_PORT, "headless": True},
            ),
        )
        return Outcome.retry()

    def is_complete(ctx: ReconcileContext) -> bool:
        ctx.resources.get(SERVICE_KIND, ctx.replica_set.namespace, ctx.replica_set.service_name)
        return True

    return State(name=CREATE_SERVICE, action=action, is_complete=is_complete)


def new_tls_validation_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        if _read_certificate(ctx) is None:
            return pending(ctx, "TLS config is not yet valid, retrying later")
        logger.debug("Successfully validated TLS configuration")
        return Outcome.retry()

    def is_complete(ctx: ReconcileContext) -> bool:
        return _read_certificate(ctx) is not None

    return State(name=TLS_VALIDATION, action=action, is_complete=is_complete)


def new_ensure_tls_resources_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        rs = ctx.replica_set
        certificate = _read_certificate(ctx)
        if certificate is None:
            fail(
                ctx,
                f"Error ensuring TLS resources: invalid secret {rs.spec.tls.certificate_secret!r}",
            )
        crt, key = certificate
        _ensure(
            ctx,
            ResourceObject(
                kind=SECRET_KIND,
                namespace=rs.namespace,
                name=rs.tls_secret_name,
                spec={"tls.pem": f"{crt}\n{key}"},
            ),
        )
        return Outcome.retry()

    return State(name=CREATE_TLS_RESOURCES, action=action)


def new_deploy_automation_config_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        config = _ensure_automation_config(ctx)
        if not _agents_reached_goal(ctx, config):
            return pending(ctx, "Agents are not yet ready, retrying later")
        return Outcome.retry()

    def is_complete(ctx: ReconcileContext) -> bool:
        return _agents_reached_goal(ctx, _ensure_automation_config(ctx))

    return State(name=DEPLOY_AUTOMATION_CONFIG, action=action, is_complete=is_complete)


def new_deploy_stateful_set_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        sts = _ensure(ctx, _desired_stateful_set(ctx))
        if not _stateful_set_ready(sts):
            return pending(ctx, "StatefulSet is not yet ready, retrying later")
        return Outcome.retry()

    def is_complete(ctx: ReconcileContext) -> bool:
        sts = ctx.get_stateful_set()
        return _stateful_set_ready(sts) or sts.spec.get("update_strategy") == ON_DELETE

    return State(name=DEPLOY_STATEFUL_SET, action=action, is_complete=is_complete)


def new_reset_update_strategy_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        sts = ctx.get_stateful_set()
        if sts.spec.get("update_strategy") != ROLLING_UPDATE:
            sts.spec["update_strategy"] = ROLLING_UPDATE
            ctx.resources.update(sts)
        return Outcome.retry()

    def is_complete(ctx: ReconcileContext) -> bool:
        return ctx.get_stateful_set().spec.get("update_strategy") == ROLLING_UPDATE

    return State(name=RESET_UPDATE_STRATEGY, action=action, is_complete=is_complete)


def new_update_status_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        rs = ctx.replica_set
        members = rs.members_this_reconciliation()
        if members != rs.desired_members:
            publish_status(
                ctx,
                phase=Phase.PENDING,
                message=(
                    f"Performing scaling operation, currentMembers={rs.current_members}, "
                    f"desiredMembers={rs.desired_members}"
                ),
                current_members=members,
                current_stateful_set_replicas=members,
            )
            return Outcome.retry(ctx.retry_seconds)

        publish_status(
            ctx,
            phase=Phase.RUNNING,
            current_members=members,
            current_stateful_set_replicas=members,
            version=rs.spec.version,
            connection_uri=rs.connection_uri(),
        )
        record_applied_configuration(ctx)
        return Outcome.retry()

    return State(name=UPDATE_STATUS, action=action)


def new_reconciliation_end_state() -> ReplicaSetState:
    def action(ctx: ReconcileContext) -> Outcome:
        rs = ctx.replica_set
        logger.info(
            "Successfully finished reconciliation",
            extra={"resource": f"{rs.namespace}/{rs.name}", "phase": rs.status.phase},
        )
        return Outcome.done()

    return State(name=RECONCILIATION_END, action=action)
