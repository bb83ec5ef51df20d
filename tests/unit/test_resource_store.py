"""Unit tests for the JSON-backed resource store."""

from __future__ import annotations

from pathlib import Path

import pytest

from replicaset_reconciler.resources import (
    AlreadyExistsError,
    JsonResourceStore,
    NotFoundError,
    ResourceObject,
    ResourceStoreError,
)


def _service() -> ResourceObject:
    return ResourceObject(kind="Service", namespace="db", name="rs0-svc", spec={"port": 27017})


def test_create_get_update(tmp_path: Path) -> None:
    store = JsonResourceStore(tmp_path / "resources.json")
    store.create(_service())

    obj = store.get("Service", "db", "rs0-svc")
    assert obj.spec == {"port": 27017}

    obj.spec["port"] = 27018
    store.update(obj)
    # A second store over the same file sees the write.
    assert JsonResourceStore(tmp_path / "resources.json").get("Service", "db", "rs0-svc").spec == {
        "port": 27018
    }


def test_returned_objects_are_copies(tmp_path: Path) -> None:
    store = JsonResourceStore(tmp_path / "resources.json")
    store.create(_service())

    obj = store.get("Service", "db", "rs0-svc")
    obj.spec["port"] = 1
    assert store.get("Service", "db", "rs0-svc").spec["port"] == 27017


def test_distinguishable_errors(tmp_path: Path) -> None:
    store = JsonResourceStore(tmp_path / "resources.json")

    with pytest.raises(NotFoundError):
        store.get("Service", "db", "rs0-svc")
    with pytest.raises(NotFoundError):
        store.update(_service())

    store.create(_service())
    with pytest.raises(AlreadyExistsError) as excinfo:
        store.create(_service())
    assert excinfo.value.key == "Service/db/rs0-svc"


def test_corrupt_file_is_an_error(tmp_path: Path) -> None:
    path = tmp_path / "resources.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ResourceStoreError):
        JsonResourceStore(path).get("Service", "db", "rs0-svc")
