"""Forgetsy configuration."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

BACKENDS = ("sqlite", "memory", "redis")


class ForgetsyConfig(BaseModel):
    """Global configuration for a Forgetsy instance."""

    storage_backend: str = "sqlite"
    db_path: Path = Field(
        default_factory=lambda: Path.home() / ".forgetsy" / "forgetsy.db",
    )
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = Field(default=5.0, gt=0.0)
