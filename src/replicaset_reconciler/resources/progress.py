"""Progress persistence on the managed resource's annotations."""

from __future__ import annotations

import logging
from collections.abc import Mapping

from replicaset_reconciler.state.progress import ProgressRecord

from .store import ResourceStore

logger = logging.getLogger(__name__)


def read_progress(annotations: Mapping[str, str], key: str) -> ProgressRecord:
    """Parse the progress record stored under `key`; a missing annotation is a fresh start."""

    return ProgressRecord.from_json(annotations.get(key))


class AnnotationProgressStore:
    """Save the next resume point as an annotation on the managed resource.

    The resource is re-read before every write so concurrent edits to its spec
    are not overwritten with a stale copy.
    """

    def __init__(
        self,
        resources: ResourceStore,
        *,
        kind: str,
        namespace: str,
        name: str,
        annotation_key: str,
    ) -> None:
        self._resources = resources
        self._kind = kind
        self._namespace = namespace
        self._name = name
        self._annotation_key = annotation_key

    def load(self) -> ProgressRecord:
        obj = self._resources.get(self._kind, self._namespace, self._name)
        return read_progress(obj.annotations, self._annotation_key)

    def save(self, next_state: str) -> None:
        obj = self._resources.get(self._kind, self._namespace, self._name)
        record = read_progress(obj.annotations, self._annotation_key).with_next_state(next_state)
        obj.annotations[self._annotation_key] = record.to_json()
        self._resources.update(obj)
        logger.debug(
            "Saved next state annotation",
            extra={"resource": obj.key, "next_state": next_state},
        )
