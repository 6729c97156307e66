"""Load, validate, and hot-reload the healthday sync configuration.

The config lives in ``sync_config.yaml`` alongside this module.  At startup
it is loaded once and cached.  Call ``reload_sync_config()`` to re-read from
disk after an edit, no restart required.

Usage::

    from healthday.telemetry.config_loader import get_sync_config

    config = get_sync_config()
    for endpoint in config.active_endpoints:
        ...
    config.csv_alias("steps")   # "workout.steps"
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from healthday.telemetry.base import CATEGORIES, CATEGORY_TYPES

logger = logging.getLogger("healthday.telemetry.config")

# Path to the YAML file sitting next to this module
_CONFIG_PATH = Path(__file__).parent / "sync_config.yaml"


# ---------------------------------------------------------------------------
# Typed config sections
# ---------------------------------------------------------------------------


@dataclass
class EndpointConfig:
    """One provider collection endpoint."""

    name: str
    path: str
    category: str
    datetime_bounds: bool = False
    enabled: bool = True


@dataclass
class CodecConfig:
    """Packed-timeseries settings."""

    sleep_bin_minutes: float
    activity_class_bin_minutes: float
    met_default_bin_minutes: float


@dataclass
class ImportConfig:
    """Bulk/file import settings."""

    max_concurrent_upserts: int
    csv_aliases: dict[str, str] = field(default_factory=dict)


@dataclass
class SyncConfig:
    """Complete, validated sync configuration.

    Attributes:
        version:       Config schema version string.
        provider_name: Provenance tag written to imported records.
        base_url:      Provider API root.
        endpoints:     Endpoints in call order (including disabled ones).
        codec:         Timeseries codec settings.
        imports:       Import settings.
    """

    version: str
    provider_name: str
    base_url: str
    endpoints: list[EndpointConfig]
    codec: CodecConfig
    imports: ImportConfig
    _raw: dict = field(default_factory=dict, repr=False)

    @property
    def active_endpoints(self) -> list[EndpointConfig]:
        return [e for e in self.endpoints if e.enabled]

    def endpoint(self, name: str) -> EndpointConfig:
        """Return an endpoint by name.

        Raises:
            KeyError: If no endpoint with that name is configured.
        """
        for e in self.endpoints:
            if e.name == name:
                return e
        raise KeyError(
            f"No endpoint named '{name}'. Available: {[e.name for e in self.endpoints]}"
        )

    def csv_alias(self, column: str) -> str | None:
        """Map a CSV header to ``category.field``, or None if unknown."""
        return self.imports.csv_aliases.get(column.strip().lower())


# ---------------------------------------------------------------------------
# Loader / validation
# ---------------------------------------------------------------------------


class ConfigValidationError(ValueError):
    """Raised when sync_config.yaml fails validation."""


def _load_yaml(path: Path) -> dict:
    """Read and parse a YAML file.

    Raises:
        FileNotFoundError:     If the file does not exist.
        ConfigValidationError: If the YAML is malformed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Sync config not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            return yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigValidationError(f"YAML parse error in {path}: {exc}") from exc


def _valid_target(target: str) -> bool:
    category, _, name = target.partition(".")
    if category not in CATEGORY_TYPES:
        return False
    return name in CATEGORY_TYPES[category].__dataclass_fields__  # type: ignore[attr-defined]


def _validate_and_build(raw: dict) -> SyncConfig:
    """Validate the raw YAML dict and construct a SyncConfig.

    Raises:
        ConfigValidationError: If required fields are missing or invalid.
    """
    errors: list[str] = []

    version = str(raw.get("version", "1.0"))

    # ── Provider ──
    provider_raw = raw.get("provider") or {}
    base_url = provider_raw.get("base_url", "")
    if not base_url:
        errors.append("provider.base_url is required")

    endpoints: list[EndpointConfig] = []
    seen: set[str] = set()
    for i, ep in enumerate(provider_raw.get("endpoints") or []):
        if not isinstance(ep, dict):
            errors.append(f"provider.endpoints[{i}] must be a mapping")
            continue
        name, path, category = ep.get("name"), ep.get("path"), ep.get("category")
        if not name or not path:
            errors.append(f"provider.endpoints[{i}] needs both 'name' and 'path'")
            continue
        if category not in CATEGORIES:
            errors.append(
                f"provider.endpoints.{name}.category must be one of {list(CATEGORIES)}, "
                f"got {category!r}"
            )
            continue
        if name in seen:
            errors.append(f"Duplicate endpoint name '{name}'")
            continue
        seen.add(name)
        endpoints.append(
            EndpointConfig(
                name=name,
                path=path,
                category=category,
                datetime_bounds=bool(ep.get("datetime_bounds", False)),
                enabled=bool(ep.get("enabled", True)),
            )
        )
    if not endpoints:
        errors.append("provider.endpoints is missing or empty")

    # ── Codec ──
    codec_raw = raw.get("codec") or {}
    widths: dict[str, float] = {}
    for key in ("sleep_bin_minutes", "activity_class_bin_minutes", "met_default_bin_minutes"):
        try:
            widths[key] = float(codec_raw.get(key, 5))
        except (TypeError, ValueError):
            errors.append(f"codec.{key} must be a number, got {codec_raw.get(key)!r}")
            continue
        if widths[key] <= 0:
            errors.append(f"codec.{key} must be positive, got {widths[key]}")
    codec = CodecConfig(
        sleep_bin_minutes=widths.get("sleep_bin_minutes", 5.0),
        activity_class_bin_minutes=widths.get("activity_class_bin_minutes", 5.0),
        met_default_bin_minutes=widths.get("met_default_bin_minutes", 5.0),
    )

    # ── Import ──
    import_raw = raw.get("import") or {}
    try:
        max_concurrent = int(import_raw.get("max_concurrent_upserts", 8))
    except (TypeError, ValueError):
        errors.append("import.max_concurrent_upserts must be an integer")
        max_concurrent = 1
    if max_concurrent < 1:
        errors.append("import.max_concurrent_upserts must be >= 1")

    aliases: dict[str, str] = {}
    for column, target in (import_raw.get("csv_aliases") or {}).items():
        if not isinstance(target, str) or not _valid_target(target):
            errors.append(f"import.csv_aliases.{column} → {target!r} is not a canonical field")
            continue
        aliases[str(column).strip().lower()] = target

    if errors:
        raise ConfigValidationError(
            f"sync_config.yaml has {len(errors)} validation error(s):\n"
            + "\n".join(f"  • {e}" for e in errors)
        )

    return SyncConfig(
        version=version,
        provider_name=str(provider_raw.get("name", "provider")),
        base_url=base_url.rstrip("/"),
        endpoints=endpoints,
        codec=codec,
        imports=ImportConfig(max_concurrent_upserts=max_concurrent, csv_aliases=aliases),
        _raw=raw,
    )


def load_sync_config(path: Path | None = None) -> SyncConfig:
    """Load and validate the sync config from disk.

    Args:
        path: Override path to YAML. Uses the bundled sync_config.yaml by default.
    """
    target = path or _CONFIG_PATH
    raw = _load_yaml(target)
    config = _validate_and_build(raw)
    logger.info("Loaded sync config v%s from %s", config.version, target)
    return config


# ---------------------------------------------------------------------------
# Global singleton with hot-reload support
# ---------------------------------------------------------------------------

_config: SyncConfig | None = None
_config_lock = threading.Lock()


def get_sync_config() -> SyncConfig:
    """Return the global SyncConfig singleton, loading it on first call."""
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:  # double-checked locking
                _config = load_sync_config()
    return _config


def reload_sync_config(path: Path | None = None) -> SyncConfig:
    """Reload the sync config from disk and replace the global singleton.

    If validation fails, the old config is retained and the error is re-raised.

    Raises:
        ConfigValidationError: If the new config is invalid.
        FileNotFoundError:     If the config file is missing.
    """
    global _config
    new_config = load_sync_config(path)  # validate before acquiring lock
    with _config_lock:
        old_version = _config.version if _config else "none"
        _config = new_config
    logger.info("Reloaded sync config: %s → %s", old_version, new_config.version)
    return new_config
