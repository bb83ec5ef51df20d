"""Test configuration and fixtures."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pytest

from replicaset_reconciler.config import PacingConfig, ReconcilerConfig, StoreConfig
from replicaset_reconciler.reconciler import Reconciler
from replicaset_reconciler.replicaset.model import (
    AUTOMATION_CONFIG_KIND,
    REPLICA_SET_KIND,
    STATEFUL_SET_KIND,
    ReplicaSet,
    ReplicaSetSpec,
)
from replicaset_reconciler.resources import JsonResourceStore, NotFoundError, read_progress

NAMESPACE = "db"
NAME = "rs0"


@pytest.fixture
def resources(tmp_path: Path) -> JsonResourceStore:
    """Provide a resource store backed by a temporary file."""
    return JsonResourceStore(tmp_path / ".state" / "resources.json")


@pytest.fixture
def reconciler_config(tmp_path: Path) -> ReconcilerConfig:
    """Provide a test reconciler configuration with pacing disabled."""
    return ReconcilerConfig(
        log_level="DEBUG",
        debug=True,
        pending_retry_seconds=10.0,
        pacing=PacingConfig(enabled=False),
        store=StoreConfig(path=tmp_path / ".state" / "resources.json"),
    )


@pytest.fixture
def reconciler(reconciler_config: ReconcilerConfig, resources: JsonResourceStore) -> Reconciler:
    return Reconciler(reconciler_config, resources)


@dataclass
class Cluster:
    """Drives a single replica set and plays the part of the running cluster."""

    reconciler: Reconciler
    resources: JsonResourceStore

    def create(self, **spec: Any) -> None:
        rs = ReplicaSet(
            namespace=NAMESPACE,
            name=NAME,
            spec=ReplicaSetSpec.model_validate({"members": 3, "version": "6.0", **spec}),
        )
        self.resources.create(rs.to_object())

    def update_spec(self, **spec: Any) -> None:
        obj = self.resources.get(REPLICA_SET_KIND, NAMESPACE, NAME)
        obj.spec.update(spec)
        self.resources.update(obj)

    def replica_set(self) -> ReplicaSet:
        return ReplicaSet.from_object(self.resources.get(REPLICA_SET_KIND, NAMESPACE, NAME))

    def get(self, kind: str, name: str = NAME) -> Any:
        return self.resources.get(kind, NAMESPACE, name)

    def resume_point(self) -> str:
        obj = self.resources.get(REPLICA_SET_KIND, NAMESPACE, NAME)
        key = self.reconciler.config.store.progress_annotation
        return read_progress(obj.annotations, key).next_state

    def settle(self) -> None:
        """Pods become ready and agents reach the latest automation config."""
        try:
            sts = self.resources.get(STATEFUL_SET_KIND, NAMESPACE, NAME)
        except NotFoundError:
            return
        sts.status["ready_replicas"] = sts.spec["replicas"]
        try:
            config = self.resources.get(AUTOMATION_CONFIG_KIND, NAMESPACE, f"{NAME}-config")
            sts.status["agent_config_version"] = config.spec["version"]
        except NotFoundError:
            pass
        self.resources.update(sts)

    def drive(self, *, max_ticks: int = 40) -> list[str]:
        """Tick until the reconciler reports done; return the states visited, in order."""
        visited: list[str] = []
        for _ in range(max_ticks):
            state = self.resume_point() or "StartFresh"
            if not visited or visited[-1] != state:
                visited.append(state)
            outcome = self.reconciler.reconcile(NAMESPACE, NAME)
            self.settle()
            if outcome.is_done:
                return visited
        raise AssertionError(f"reconciliation did not finish; visited={visited}")


@pytest.fixture
def cluster(reconciler: Reconciler, resources: JsonResourceStore) -> Cluster:
    return Cluster(reconciler=reconciler, resources=resources)
