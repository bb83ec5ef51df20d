"""Replica set resource model and the derived objects it manages."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field

from replicaset_reconciler.resources.store import ResourceObject, ResourceStore

REPLICA_SET_KIND = "ReplicaSet"
SERVICE_KIND = "Service"
SECRET_KIND = "Secret"
STATEFUL_SET_KIND = "StatefulSet"
AUTOMATION_CONFIG_KIND = "AutomationConfig"

ROLLING_UPDATE = "RollingUpdate"
ON_DELETE = "OnDelete"

MONGODB_PORT = 27017

LAST_APPLIED_VERSION_ANNOTATION = "replicaset.reconciler/v1.lastAppliedVersion"
LAST_SUCCESSFUL_CONFIGURATION_ANNOTATION = "replicaset.reconciler/v1.lastSuccessfulConfiguration"


class Phase(str, Enum):
    RUNNING = "Running"
    PENDING = "Pending"
    FAILED = "Failed"


class TLSSpec(BaseModel):
    enabled: bool = False
    certificate_secret: str = Field(
        default="",
        description="Secret holding 'tls.crt' and 'tls.key' for the members",
    )


class ReplicaSetSpec(BaseModel):
    members: int = 3
    version: str = ""
    tls: TLSSpec = Field(default_factory=TLSSpec)


class ReplicaSetStatus(BaseModel):
    phase: str = ""
    message: str = ""
    current_members: int = 0
    current_stateful_set_replicas: int = 0
    version: str = ""
    connection_uri: str = ""


class ReplicaSet(BaseModel):
    """Desired configuration plus last published status of one replica set."""

    namespace: str
    name: str
    annotations: dict[str, str] = Field(default_factory=dict)
    spec: ReplicaSetSpec = Field(default_factory=ReplicaSetSpec)
    status: ReplicaSetStatus = Field(default_factory=ReplicaSetStatus)

    @classmethod
    def from_object(cls, obj: ResourceObject) -> ReplicaSet:
        return cls(
            namespace=obj.namespace,
            name=obj.name,
            annotations=dict(obj.annotations),
            spec=ReplicaSetSpec.model_validate(obj.spec),
            status=ReplicaSetStatus.model_validate(obj.status),
        )

    def to_object(self) -> ResourceObject:
        return ResourceObject(
            kind=REPLICA_SET_KIND,
            namespace=self.namespace,
            name=self.name,
            annotations=dict(self.annotations),
            spec=self.spec.model_dump(mode="json"),
            status=self.status.model_dump(mode="json"),
        )

    @property
    def service_name(self) -> str:
        return f"{self.name}-svc"

    @property
    def automation_config_name(self) -> str:
        return f"{self.name}-config"

    @property
    def tls_secret_name(self) -> str:
        return f"{self.name}-server-certificate-key"

    @property
    def desired_members(self) -> int:
        return self.spec.members

    @property
    def current_members(self) -> int:
        return self.status.current_members

    def members_this_reconciliation(self) -> int:
        """Member count to deploy now: one step at a time toward the desired count.

        A deployment with no published members goes straight to the desired count.
        """
        current, desired = self.current_members, self.desired_members
        if current == 0 or current == desired:
            return desired
        return current + 1 if desired > current else current - 1

    def is_still_scaling(self) -> bool:
        """The member count deployed this reconciliation is not the final one."""
        return self.members_this_reconciliation() != self.desired_members

    def is_scale_in_progress(self) -> bool:
        """Published status has not yet caught up with the desired member count."""
        return self.current_members != 0 and self.current_members != self.desired_members

    def last_applied_version(self) -> str:
        """Version recorded by the last successful reconciliation.

        Falls back to the published status for resources reconciled before the
        annotation was written.
        """
        return self.annotations.get(LAST_APPLIED_VERSION_ANNOTATION) or self.status.version

    def is_changing_version(self) -> bool:
        last = self.last_applied_version()
        return bool(last) and last != self.spec.version

    def hosts(self) -> list[str]:
        return [
            f"{self.name}-{i}.{self.service_name}.{self.namespace}.svc.cluster.local:{MONGODB_PORT}"
            for i in range(self.members_this_reconciliation())
        ]

    def connection_uri(self) -> str:
        return f"mongodb://{','.join(self.hosts())}/?replicaSet={self.name}"


@dataclass
class ReconcileContext:
    """Explicit snapshot handed to every action, completion check and guard.

    Actions that publish status replace `replica_set` with the stored copy so
    guards evaluated afterwards see what was actually written.
    """

    resources: ResourceStore
    replica_set: ReplicaSet
    retry_seconds: float = 10.0

    def get_stateful_set(self) -> ResourceObject:
        rs = self.replica_set
        return self.resources.get(STATEFUL_SET_KIND, rs.namespace, rs.name)
