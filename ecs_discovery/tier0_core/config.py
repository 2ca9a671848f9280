"""
ecs_discovery.tier0_core.config
─────────────────────────────────
Typed provider configuration with env layering. Reads from .env → environment
variables. All fields are typed via Pydantic and prefixed with ECS_.
Invalid values raise at startup, not in the middle of a poll.

Stack: pydantic-settings + python-dotenv

Example:
    ECS_CLUSTERS='["prod-web","prod-batch"]'
    ECS_EXPOSED_BY_DEFAULT=false
    ECS_REFRESH_SECONDS=30
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class ClusterSelection:
    """Normalized cluster configuration: one shape whatever style the operator used."""
    auto_discover: bool
    names: tuple[str, ...]
    legacy: bool = False


class DiscoveryConfig(BaseSettings):
    """Typed ECS provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ECS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Cluster lookup ────────────────────────────────────────────────────────
    clusters: list[str] = Field(default_factory=lambda: ["default"])
    cluster: str = Field(default="", description="deprecated - single ECS cluster name")
    auto_discover_clusters: bool = False

    # ── Policy ────────────────────────────────────────────────────────────────
    exposed_by_default: bool = True
    domain: str = ""

    # ── Polling ───────────────────────────────────────────────────────────────
    watch: bool = True
    refresh_seconds: int = 15

    # ── AWS ───────────────────────────────────────────────────────────────────
    region: str | None = None
    access_key_id: str = ""
    secret_access_key: SecretStr = SecretStr("")
    trace: bool = False
    connect_timeout: float = 10.0
    read_timeout: float = 30.0

    # ── Logging / metrics ─────────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "json"
    metrics_port: int | None = None

    @field_validator("refresh_seconds")
    @classmethod
    def validate_refresh(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"refresh_seconds must be positive, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}, got {v!r}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"json", "console"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}, got {v!r}")
        return v.lower()

    @field_validator("clusters")
    @classmethod
    def strip_clusters(cls, v: list[str]) -> list[str]:
        return [c.strip() for c in v if c and c.strip()]

    def cluster_selection(self) -> ClusterSelection:
        """
        Fold the three cluster styles into one ClusterSelection.
        Auto-discovery wins over both explicit styles; the legacy single
        field wins over the list.
        """
        if self.auto_discover_clusters:
            return ClusterSelection(auto_discover=True, names=())
        if self.cluster:
            return ClusterSelection(auto_discover=False, names=(self.cluster,), legacy=True)
        return ClusterSelection(auto_discover=False, names=tuple(self.clusters))

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key.get_secret_value())


@lru_cache(maxsize=1)
def get_config() -> DiscoveryConfig:
    """
    Return the singleton provider config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return DiscoveryConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


__all__ = ["ClusterSelection", "DiscoveryConfig", "get_config"]
