"""Declarative resource store.

Objects are addressed by (kind, namespace, name). `create` and `get` raise
distinguishable errors so callers can implement create-or-adopt.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ResourceObject(BaseModel):
    kind: str
    namespace: str
    name: str
    annotations: dict[str, str] = Field(default_factory=dict)
    spec: dict[str, Any] = Field(default_factory=dict)
    status: dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> str:
        return resource_key(self.kind, self.namespace, self.name)


def resource_key(kind: str, namespace: str, name: str) -> str:
    return f"{kind}/{namespace}/{name}"


class ResourceStoreError(Exception):
    """Base class for resource store failures."""


class NotFoundError(ResourceStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Resource not found: {key}")
        self.key = key


class AlreadyExistsError(ResourceStoreError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Resource already exists: {key}")
        self.key = key


class ResourceStore(Protocol):
    def get(self, kind: str, namespace: str, name: str) -> ResourceObject: ...

    def create(self, obj: ResourceObject) -> ResourceObject: ...

    def update(self, obj: ResourceObject) -> ResourceObject: ...


@dataclass
class JsonResourceStore:
    """JSON-file backed resource store.

    Each call re-reads the file, so several store instances over the same path
    observe each other's writes.
    """

    path: Path

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> dict[str, ResourceObject]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ResourceStoreError(f"Resource store file is not valid JSON: {self.path}") from e
        if not isinstance(raw, list):
            raise ResourceStoreError(f"Resource store file has unexpected shape: {self.path}")
        objects = [ResourceObject.model_validate(item) for item in raw]
        return {obj.key: obj for obj in objects}

    def _save_unlocked(self, objects: dict[str, ResourceObject]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [obj.model_dump(mode="json") for obj in objects.values()]
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def get(self, kind: str, namespace: str, name: str) -> ResourceObject:
        key = resource_key(kind, namespace, name)
        with self._lock:
            obj = self._load_unlocked().get(key)
        if obj is None:
            raise NotFoundError(key)
        return obj.model_copy(deep=True)

    def create(self, obj: ResourceObject) -> ResourceObject:
        with self._lock:
            objects = self._load_unlocked()
            if obj.key in objects:
                raise AlreadyExistsError(obj.key)
            objects[obj.key] = obj.model_copy(deep=True)
            self._save_unlocked(objects)
        logger.debug("Resource created", extra={"resource": obj.key})
        return obj.model_copy(deep=True)

    def update(self, obj: ResourceObject) -> ResourceObject:
        with self._lock:
            objects = self._load_unlocked()
            if obj.key not in objects:
                raise NotFoundError(obj.key)
            objects[obj.key] = obj.model_copy(deep=True)
            self._save_unlocked(objects)
        logger.debug("Resource updated", extra={"resource": obj.key})
        return obj.model_copy(deep=True)
