# =============================================================================
# synka_core/config.py
# Runtime Settings for the Synka sync layer
# =============================================================================
"""
Settings are resolved in this order (later wins):

1. Dataclass defaults below
2. ``secrets.toml`` (if found), sections ``[supabase]`` and ``[sync]``
3. Environment variables ``SUPABASE_URL``, ``SUPABASE_KEY``, ``SYNKA_DATA_DIR``,
   ``SYNKA_PUBLIC_SITE_URL``

Expected secrets.toml format:

    [supabase]
    url = "https://your-project.supabase.co"
    key = "your-anon-key"

    [sync]
    data_dir = "local_data"
    remote_timeout_seconds = 15
    discard_stale_responses = false

    [sync.cache_ttl_minutes]
    contacts = 60
    tags = 30
"""

from __future__ import annotations
import os
from dataclasses import dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional
import logging

import toml

from synka_core.errors import ConfigurationError

logger = logging.getLogger(__name__)


DEFAULT_DATA_DIR = Path(__file__).parent.parent / "local_data"
DEFAULT_SECRETS_PATHS = (
    Path(".streamlit") / "secrets.toml",
    Path("secrets.toml"),
)

# Minutes a primary cache entry stays fresh, per domain
DEFAULT_CACHE_TTL_MINUTES: Dict[str, int] = {
    "contacts": 60,
    "profile": 60,
    "events": 30,
    "tags": 30,
    "templates": 30,
    "signatures": 30,
}


@dataclass
class SyncSettings:
    """All knobs of the sync layer in one place."""

    data_dir: Path = DEFAULT_DATA_DIR
    database_name: str = "synka_local.db"

    # Cache lifetimes
    cache_ttl_minutes: Dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_CACHE_TTL_MINUTES)
    )
    default_cache_ttl_minutes: int = 30
    offline_ttl_days: int = 7

    # Pending interaction confirmation window
    interaction_validity_hours: int = 24

    # Connectivity probing
    check_interval_online: float = 30.0
    check_interval_offline: float = 10.0
    connection_timeout: float = 5.0

    # Remote calls. None means no timeout: a stalled call keeps loading=True.
    remote_timeout_seconds: Optional[float] = None
    # Off: last response wins. On: responses older than the applied state are dropped.
    discard_stale_responses: bool = False

    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Base of public card links ({{myCardLink}})
    public_site_url: str = "https://synka.in"

    @property
    def database_path(self) -> Path:
        return Path(self.data_dir) / self.database_name

    @property
    def offline_ttl(self) -> timedelta:
        return timedelta(days=self.offline_ttl_days)

    @property
    def interaction_validity(self) -> timedelta:
        return timedelta(hours=self.interaction_validity_hours)

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)

    def cache_ttl(self, domain: str) -> timedelta:
        """Freshness window of the primary cache for ``domain``."""
        minutes = self.cache_ttl_minutes.get(domain, self.default_cache_ttl_minutes)
        return timedelta(minutes=minutes)

    def validate(self) -> SyncSettings:
        """Raise ConfigurationError on values the sync layer cannot work with."""
        for domain, minutes in self.cache_ttl_minutes.items():
            if not isinstance(minutes, (int, float)) or minutes <= 0:
                raise ConfigurationError(
                    f"Cache TTL for '{domain}' must be a positive number of minutes",
                    config_key=f"sync.cache_ttl_minutes.{domain}",
                    expected_type="positive number",
                )
        if self.offline_ttl_days <= 0:
            raise ConfigurationError(
                "Offline TTL must be positive",
                config_key="sync.offline_ttl_days",
                expected_type="positive int",
            )
        if self.interaction_validity_hours <= 0:
            raise ConfigurationError(
                "Interaction validity window must be positive",
                config_key="sync.interaction_validity_hours",
                expected_type="positive int",
            )
        if self.remote_timeout_seconds is not None and self.remote_timeout_seconds <= 0:
            raise ConfigurationError(
                "Remote timeout must be positive or unset",
                config_key="sync.remote_timeout_seconds",
                expected_type="positive float or null",
            )
        if bool(self.supabase_url) != bool(self.supabase_key):
            raise ConfigurationError(
                "Supabase URL and key must be configured together",
                config_key="supabase",
            )
        return self


def _find_secrets_file(secrets_path: Optional[Path]) -> Optional[Path]:
    if secrets_path is not None:
        path = Path(secrets_path)
        if not path.exists():
            raise ConfigurationError(
                f"Secrets file not found: {path}",
                config_key="secrets_path",
            )
        return path

    for candidate in DEFAULT_SECRETS_PATHS:
        if candidate.exists():
            return candidate
    return None


def _apply_sync_section(settings: SyncSettings, section: Dict[str, Any]) -> None:
    known = {f.name for f in fields(SyncSettings)}
    for key, value in section.items():
        if key not in known:
            logger.warning(f"Ignoring unknown [sync] setting: {key}")
            continue
        if key == "cache_ttl_minutes":
            merged = dict(settings.cache_ttl_minutes)
            merged.update(dict(value))
            value = merged
        elif key == "data_dir":
            value = Path(value)
        setattr(settings, key, value)


def load_settings(secrets_path: Optional[Path] = None) -> SyncSettings:
    """
    Build SyncSettings from secrets.toml and the environment.

    Args:
        secrets_path: Explicit secrets file. When omitted the usual locations
            are probed and a missing file is not an error.

    Returns:
        Validated SyncSettings
    """
    settings = SyncSettings()

    path = _find_secrets_file(secrets_path)
    if path is not None:
        try:
            secrets = toml.load(path)
        except (toml.TomlDecodeError, OSError) as e:
            raise ConfigurationError(
                f"Could not parse secrets file {path}: {e}",
                config_key="secrets_path",
            ) from e

        supabase_section = secrets.get("supabase", {})
        settings.supabase_url = supabase_section.get("url", settings.supabase_url)
        settings.supabase_key = supabase_section.get("key", settings.supabase_key)
        _apply_sync_section(settings, secrets.get("sync", {}))
        logger.debug(f"Loaded settings from {path}")

    settings.supabase_url = os.getenv("SUPABASE_URL", settings.supabase_url)
    settings.supabase_key = os.getenv("SUPABASE_KEY", settings.supabase_key)
    settings.public_site_url = os.getenv("SYNKA_PUBLIC_SITE_URL", settings.public_site_url)
    data_dir = os.getenv("SYNKA_DATA_DIR")
    if data_dir:
        settings.data_dir = Path(data_dir)

    return settings.validate()
