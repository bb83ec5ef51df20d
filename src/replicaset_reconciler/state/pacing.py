"""Pacing policies for the tick path.

A policy throttles how quickly successive ticks hit a rate-limited external
API. It has no effect on correctness; tests use `NoPacing`.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from replicaset_reconciler.config import PacingConfig


class PacingPolicy(Protocol):
    def before_action(self) -> None: ...

    def before_save(self) -> None: ...

    def after_save(self) -> None: ...


class NoPacing:
    def before_action(self) -> None:
        return None

    def before_save(self) -> None:
        return None

    def after_save(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class FixedDelayPacing:
    before_action_seconds: float = 0.0
    before_save_seconds: float = 0.0
    after_save_seconds: float = 0.0
    sleep: Callable[[float], None] = field(default=time.sleep, compare=False)

    def _pause(self, seconds: float) -> None:
        if seconds > 0:
            self.sleep(seconds)

    def before_action(self) -> None:
        self._pause(self.before_action_seconds)

    def before_save(self) -> None:
        self._pause(self.before_save_seconds)

    def after_save(self) -> None:
        self._pause(self.after_save_seconds)


def pacing_from_config(config: PacingConfig) -> PacingPolicy:
    """Build the pacing policy described by configuration."""

    if not config.enabled:
        return NoPacing()
    return FixedDelayPacing(
        before_action_seconds=config.before_action_seconds,
        before_save_seconds=config.before_save_seconds,
        after_save_seconds=config.after_save_seconds,
    )
