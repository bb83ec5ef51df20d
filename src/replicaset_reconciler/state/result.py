from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Outcome:
    """What the external scheduler should do after a tick.

    The engine never interprets this value; it is returned as produced by the
    state's action.
    """

    requeue: bool
    requeue_after: float = 0.0

    def __post_init__(self) -> None:
        if self.requeue_after < 0:
            raise ValueError(f"requeue_after must be >= 0, got {self.requeue_after}")

    @classmethod
    def retry(cls, delay_seconds: float = 0.0) -> Outcome:
        return cls(requeue=True, requeue_after=float(delay_seconds))

    @classmethod
    def done(cls) -> Outcome:
        return cls(requeue=False)

    @property
    def is_done(self) -> bool:
        return not self.requeue
