"""Declarative resource store and annotation-backed progress persistence."""

from replicaset_reconciler.resources.progress import AnnotationProgressStore, read_progress
from replicaset_reconciler.resources.store import (
    AlreadyExistsError,
    JsonResourceStore,
    NotFoundError,
    ResourceObject,
    ResourceStore,
    ResourceStoreError,
    resource_key,
)

__all__ = [
    "AlreadyExistsError",
    "AnnotationProgressStore",
    "JsonResourceStore",
    "NotFoundError",
    "ResourceObject",
    "ResourceStore",
    "ResourceStoreError",
    "read_progress",
    "resource_key",
]
