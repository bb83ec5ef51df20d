"""The replica set deployment pipeline expressed as states and guarded transitions."""

from __future__ import annotations

from replicaset_reconciler.state.machine import Machine, direct_transition
from replicaset_reconciler.state.pacing import PacingPolicy
from replicaset_reconciler.state.progress import ProgressRecord, ProgressSaver

from .model import ReconcileContext
from .states import (
    START_FRESH,
    needs_config_published_first,
    new_create_service_state,
    new_deploy_automation_config_state,
    new_deploy_stateful_set_state,
    new_ensure_tls_resources_state,
    new_reconciliation_end_state,
    new_reset_update_strategy_state,
    new_start_fresh_state,
    new_tls_validation_state,
    new_update_status_state,
    new_validate_spec_state,
)


def tls_enabled(ctx: ReconcileContext) -> bool:
    return ctx.replica_set.spec.tls.enabled


def publish_config_first(ctx: ReconcileContext) -> bool:
    return needs_config_published_first(ctx)


def deploy_stateful_set_first(ctx: ReconcileContext) -> bool:
    return not needs_config_published_first(ctx)


def changing_version(ctx: ReconcileContext) -> bool:
    return ctx.replica_set.is_changing_version()


def still_scaling(ctx: ReconcileContext) -> bool:
    return ctx.replica_set.is_still_scaling()


def scale_in_progress(ctx: ReconcileContext) -> bool:
    return ctx.replica_set.is_scale_in_progress()


def build_state_machine(
    ctx: ReconcileContext,
    saver: ProgressSaver,
    record: ProgressRecord,
    *,
    pacing: PacingPolicy | None = None,
) -> Machine[ReconcileContext]:
    """Build the pipeline and resume it at the persisted state.

    Transition order matters: for each state the first edge whose guard holds
    is taken.
    """
    sm: Machine[ReconcileContext] = Machine(saver, pacing=pacing)

    start_fresh = new_start_fresh_state()
    validate_spec = new_validate_spec_state()
    create_service = new_create_service_state()
    tls_validation = new_tls_validation_state()
    tls_resources = new_ensure_tls_resources_state()
    deploy_config = new_deploy_automation_config_state()
    deploy_sts = new_deploy_stateful_set_state()
    reset_update_strategy = new_reset_update_strategy_state()
    update_status = new_update_status_state()
    end = new_reconciliation_end_state()

    sm.add_transition(start_fresh, validate_spec, direct_transition)
    sm.add_transition(validate_spec, create_service, direct_transition)
    sm.add_transition(validate_spec, tls_validation, tls_enabled)
    sm.add_transition(validate_spec, deploy_config, publish_config_first)
    sm.add_transition(validate_spec, deploy_sts, deploy_stateful_set_first)

    # TLS is only validated when it is enabled on the resource.
    sm.add_transition(create_service, tls_validation, tls_enabled)
    sm.add_transition(create_service, deploy_config, publish_config_first)
    sm.add_transition(create_service, deploy_sts, deploy_stateful_set_first)

    # Scaling relies on the published status being up to date with the replicas
    # deployed in this step.
    sm.add_transition(deploy_sts, update_status, still_scaling)

    sm.add_transition(tls_validation, tls_resources, direct_transition)

    sm.add_transition(tls_resources, deploy_config, publish_config_first)
    sm.add_transition(tls_resources, deploy_sts, deploy_stateful_set_first)

    sm.add_transition(deploy_sts, deploy_config, deploy_stateful_set_first)
    sm.add_transition(deploy_sts, reset_update_strategy, changing_version)
    sm.add_transition(deploy_sts, update_status, direct_transition)

    sm.add_transition(deploy_config, deploy_sts, publish_config_first)
    sm.add_transition(deploy_config, reset_update_strategy, changing_version)
    sm.add_transition(deploy_config, update_status, direct_transition)

    sm.add_transition(reset_update_strategy, update_status, direct_transition)

    # Go back to the stateful set until the published members match the spec.
    # Each scale-down step shrinks the automation config before any pod goes.
    sm.add_transition(update_status, deploy_config, publish_config_first)
    sm.add_transition(update_status, deploy_sts, scale_in_progress)
    sm.add_transition(update_status, end, direct_transition)

    sm.resume(record, initial_state=START_FRESH)
    return sm
