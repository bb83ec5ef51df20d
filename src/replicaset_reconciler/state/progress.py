"""Persisted progress of a reconciliation.

The record is stored outside the process (as an annotation on the managed
resource) and is the only thing that carries "where was I" from one tick to
the next.
"""

from __future__ import annotations

import json
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import ProgressRecordError


class ProgressSaver(Protocol):
    """Persists the name of the state the next tick should resume at.

    Must be safe to call repeatedly with the same value.
    """

    def save(self, next_state: str) -> None: ...


class ProgressRecord(BaseModel):
    """Wire format: {"nextState": str, "stateCompletion": {str: str}}.

    An empty `next_state` means "start from the initial state".
    """

    model_config = ConfigDict(populate_by_name=True)

    next_state: str = Field(default="", alias="nextState")
    state_completion: dict[str, str] = Field(default_factory=dict, alias="stateCompletion")

    @field_validator("next_state", mode="before")
    @classmethod
    def _null_next_state(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("state_completion", mode="before")
    @classmethod
    def _null_completion(cls, value: object) -> object:
        return {} if value is None else value

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str | None) -> ProgressRecord:
        if raw is None or not raw.strip():
            return cls()
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ProgressRecordError(f"Invalid progress record: {e}") from e

    def with_next_state(self, next_state: str) -> ProgressRecord:
        return self.model_copy(update={"next_state": next_state})
