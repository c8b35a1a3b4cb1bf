# watermeter/core/config.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple
import difflib
import logging
import math
import threading

import yaml

from watermeter.core.errors import ConfigError


logger = logging.getLogger(__name__)


# Keys the simulation cannot run without.
REQUIRED_FLOAT_KEYS = ("bitola_mm", "max_volume_m3", "fator_ar", "chance_falta_agua", "pressao_base_bar")
REQUIRED_INT_KEYS = (
    "delta_t_simulacao_ms",
    "intervalo_update_display_ms",
    "duracao_falta_total_ms",
    "duracao_passagem_ar_ms",
)

OPTIONAL_DEFAULTS: Dict[str, Any] = {
    "seed": None,
    "intervalo_verificacao_config_s": 5.0,
    "scheduler_overrun_policy": "catch_up",
    "snapshot_dir": "Medicoes",
    "snapshot_format": "jpeg",
    "log_file": "simulador.log",
}

OVERRUN_POLICIES = ("catch_up", "skip")
SNAPSHOT_FORMATS = ("jpeg", "jpg", "png")

CANONICAL_KEYS = REQUIRED_FLOAT_KEYS + REQUIRED_INT_KEYS + tuple(OPTIONAL_DEFAULTS)


def _as_dict(obj: Any, path: str) -> Dict[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise ConfigError(path, f"expected a mapping/object, got {type(obj).__name__}")
    return obj


def _require_num(d: Mapping[str, Any], key: str) -> float:
    v = d.get(key)
    if v is None:
        raise ConfigError(key, "required key is missing")
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ConfigError(key, f"expected a number, got {type(v).__name__}")
    if not math.isfinite(float(v)):
        raise ConfigError(key, f"must be a finite number (got {v})")
    return float(v)


def _require_int(d: Mapping[str, Any], key: str) -> int:
    v = d.get(key)
    if v is None:
        raise ConfigError(key, "required key is missing")
    if isinstance(v, bool) or not isinstance(v, int):
        # accept 250.0 but not 250.5
        if isinstance(v, float) and v.is_integer():
            return int(v)
        raise ConfigError(key, f"expected an integer, got {v!r}")
    return v


def _suggest_key(bad_key: str, allowed: Tuple[str, ...]) -> Optional[str]:
    close = difflib.get_close_matches(bad_key, allowed, n=1, cutoff=0.7)
    return close[0] if close else None


def load_yaml(path: Path) -> Dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError("yaml", f"configuration file not found: {path}") from e
    except Exception as e:
        raise ConfigError("yaml", f"failed to parse YAML: {e}") from e
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError("yaml", f"top-level YAML must be a mapping/object, got {type(raw).__name__}")
    return raw


def canonical_yaml_dump(data: Mapping[str, Any]) -> str:
    """
    Stable dump: sorted keys + deterministic formatting.
    """
    return yaml.safe_dump(
        dict(data),
        sort_keys=True,
        default_flow_style=False,
        allow_unicode=True,
        width=120,
    )


def normalize_config(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Returns a flat canonical dict:
      - optional keys filled with defaults
      - integer keys coerced from whole floats (250.0 -> 250)
    Required keys are not invented here; validate_config reports them.
    """
    raw = _as_dict(dict(raw) if isinstance(raw, Mapping) else raw, "yaml")

    normalized: Dict[str, Any] = dict(raw)
    for k, default in OPTIONAL_DEFAULTS.items():
        normalized.setdefault(k, default)

    for k in REQUIRED_INT_KEYS:
        v = normalized.get(k)
        if isinstance(v, float) and v.is_integer():
            normalized[k] = int(v)

    return normalized


def validate_config(cfg: Mapping[str, Any]) -> None:
    """
    Friendly validation. Raises ConfigError on the first problem found.
    """
    cfg = _as_dict(dict(cfg), "cfg")

    for k in cfg.keys():
        if k not in CANONICAL_KEYS:
            suggestion = _suggest_key(str(k), CANONICAL_KEYS)
            hint = f"did you mean '{suggestion}'?" if suggestion else None
            raise ConfigError(str(k), f"unknown key '{k}'", hint)

    # Presence + type
    for k in REQUIRED_FLOAT_KEYS:
        _require_num(cfg, k)
    for k in REQUIRED_INT_KEYS:
        _require_int(cfg, k)

    # Ranges
    if _require_num(cfg, "bitola_mm") <= 0:
        raise ConfigError("bitola_mm", "must be a positive number")
    if _require_num(cfg, "max_volume_m3") <= 0:
        raise ConfigError("max_volume_m3", "must be a positive number")
    if _require_num(cfg, "fator_ar") < 0:
        raise ConfigError("fator_ar", "must be >= 0")

    chance = _require_num(cfg, "chance_falta_agua")
    if not 0.0 <= chance <= 1.0:
        raise ConfigError("chance_falta_agua", f"must be within [0, 1] (got {chance})")

    if _require_int(cfg, "delta_t_simulacao_ms") <= 0:
        raise ConfigError(
            "delta_t_simulacao_ms",
            "must be a positive integer",
            hint="outage durations are converted to ticks by dividing by this value",
        )
    if _require_int(cfg, "intervalo_update_display_ms") <= 0:
        raise ConfigError("intervalo_update_display_ms", "must be a positive integer")

    for k in ("duracao_falta_total_ms", "duracao_passagem_ar_ms"):
        if _require_int(cfg, k) < 0:
            raise ConfigError(k, "must be a non-negative integer")

    seed = cfg.get("seed")
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ConfigError("seed", f"expected int or null, got {type(seed).__name__}")

    if _require_num(cfg, "intervalo_verificacao_config_s") <= 0:
        raise ConfigError("intervalo_verificacao_config_s", "must be a positive number")

    for k in ("snapshot_dir", "log_file"):
        v = cfg.get(k)
        if not isinstance(v, str) or not v.strip():
            raise ConfigError(k, f"expected a non-empty path string, got {v!r}")

    fmt = cfg.get("snapshot_format")
    if fmt not in SNAPSHOT_FORMATS:
        raise ConfigError(
            "snapshot_format",
            f"unsupported format {fmt!r}. Supported: {list(SNAPSHOT_FORMATS)}",
        )

    policy = cfg.get("scheduler_overrun_policy")
    if policy not in OVERRUN_POLICIES:
        raise ConfigError(
            "scheduler_overrun_policy",
            f"unsupported policy {policy!r}. Supported: {list(OVERRUN_POLICIES)}",
        )


# ----------------------------
# Snapshots + hot reload
# ----------------------------

@dataclass(frozen=True)
class ConfigSnapshot:
    """
    Immutable view of one successful load of the configuration file.

    mtime_ns is the modification stamp of the file the values came from
    (0 for snapshots built in memory).
    """
    values: Mapping[str, Any]
    mtime_ns: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    @staticmethod
    def from_mapping(raw: Mapping[str, Any], mtime_ns: int = 0) -> "ConfigSnapshot":
        normalized = normalize_config(raw)
        validate_config(normalized)
        return ConfigSnapshot(values=normalized, mtime_ns=mtime_ns)

    def get_float(self, key: str) -> float:
        return _require_num(self.values, key)

    def get_int(self, key: str) -> int:
        return _require_int(self.values, key)

    def get(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.values)


@dataclass
class ConfigStore:
    """
    File-backed configuration with modification-time polling.

    The first load happens in the constructor and any ConfigError propagates
    (startup is fatal without a valid file). Later reloads that fail are
    logged and the previous snapshot stays active.
    """
    path: Path
    _snapshot: ConfigSnapshot = field(init=False, repr=False)
    _lock: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)

    def __post_init__(self) -> None:
        self.path = Path(self.path)
        self._snapshot = self._load()
        logger.info("Configuration loaded from %s", self.path)

    @property
    def snapshot(self) -> ConfigSnapshot:
        return self._snapshot

    def _mtime_ns(self) -> int:
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError as e:
            raise ConfigError("yaml", f"configuration file not found: {self.path}") from e

    def _load(self) -> ConfigSnapshot:
        mtime = self._mtime_ns()
        try:
            return ConfigSnapshot.from_mapping(load_yaml(self.path), mtime_ns=mtime)
        except ConfigError as e:
            if e.source is None:
                raise e.with_source(self.path) from e
            raise

    def maybe_reload(self) -> Optional[ConfigSnapshot]:
        """
        Reload when the file's modification stamp has advanced.

        Returns the new snapshot, or None when nothing changed or the new
        contents were rejected.
        """
        with self._lock:
            try:
                mtime = self._mtime_ns()
            except ConfigError as e:
                logger.error("Configuration check failed: %s", e.message)
                return None

            if mtime <= self._snapshot.mtime_ns:
                return None

            logger.info("Change detected in %s, reloading parameters", self.path.name)
            try:
                fresh = self._load()
            except ConfigError as e:
                logger.error("Rejected configuration change, keeping previous values:\n%s", e)
                # remember the stamp so a broken file is not re-parsed every check
                self._snapshot = ConfigSnapshot(values=self._snapshot.values, mtime_ns=mtime)
                return None

            self._snapshot = fresh
            logger.info("Configuration reloaded")
            return fresh
