"""Configuration for the replica set reconciler.

Configuration is loaded from environment variables and a local `.env` file
(if present). Nested sections use their own prefixes, e.g.
`RECONCILER_PACING_ENABLED=true`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from replicaset_reconciler.logging import configure_logging


class PacingConfig(BaseSettings):
    """Delays inserted around each tick to bound the call rate on external APIs."""

    enabled: bool = Field(
        default=False,
        description="Apply the delays below (disabled means no pacing at all)",
    )
    before_action_seconds: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay before running the current state's action",
    )
    before_save_seconds: float = Field(
        default=3.0,
        ge=0.0,
        description="Delay before persisting the next resume point",
    )
    after_save_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Delay after persisting the next resume point",
    )

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_PACING_",
        env_file=".env",
        extra="ignore",
    )


class StoreConfig(BaseSettings):
    """Configuration for the local declarative resource store."""

    path: Path = Field(
        default=Path(".state/resources.json"),
        description="JSON file backing the resource store",
    )
    progress_annotation: str = Field(
        default="replicaset.reconciler/v1.stateMachine",
        min_length=1,
        description="Annotation key holding the persisted progress record",
    )

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_STORE_",
        env_file=".env",
        extra="ignore",
    )


class ReconcilerConfig(BaseSettings):
    """Main configuration for the reconciler."""

    log_level: str = Field(
        default="INFO",
        description="Root logging level",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug logging for this package",
    )
    pending_retry_seconds: float = Field(
        default=10.0,
        ge=0.0,
        description="Requeue delay while waiting on external progress (agents, pods, TLS)",
    )

    pacing: PacingConfig = Field(
        default_factory=PacingConfig,
        description="Tick pacing configuration",
    )
    store: StoreConfig = Field(
        default_factory=StoreConfig,
        description="Resource store configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, debug=self.debug)
