from __future__ import annotations
"""
nameregistry.config - configuration for the name registry

Covers:
- Storage location (KV URI)
- Operator (owner) address for the default OwnerGate
- Initial unofficial signup fees (users / applications), in base units
- Name rules (maximum UTF-8 byte length, exclusive)
- Audit output (JSON-lines events file) and logging

Environment overrides (all optional):

  NAMEREG_DB_URI=sqlite:///~/.namereg/registry.db
  NAMEREG_OWNER=0x...
  NAMEREG_USER_FEE=0
  NAMEREG_APPLICATION_FEE=0
  NAMEREG_MAX_NAME_BYTES=100
  NAMEREG_EVENTS_PATH=~/.namereg/events.jsonl
  NAMEREG_LOG_LEVEL=INFO
  NAMEREG_LOG_FORMAT=json|text

A JSON or YAML file can be supplied via
`NAMEREG_CONFIG_FILE=/path/to/config.(json|yaml|yml)`. File values override
defaults; environment overrides the file; explicit overrides passed to
`load_config()` win over everything.

Fees configured here only seed a fresh store. Once the operator changes a
fee through the engine, the persisted value is authoritative.
"""

from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
import json
import os

import yaml

from core.errors import ConfigError

from .types import normalize_address

DEFAULT_MAX_NAME_BYTES = 100
MAX_FEE = (1 << 256) - 1


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


# -------------------------- Data classes --------------------------


@dataclass(frozen=True)
class FeeDefaults:
    """Initial unofficial signup fees in base units."""
    user_fee: int = 0
    application_fee: int = 0

    def validate(self) -> None:
        for name, v in (("user_fee", self.user_fee), ("application_fee", self.application_fee)):
            if not _is_int(v) or not (0 <= v <= MAX_FEE):
                raise ConfigError(f"{name} must be an integer in [0, 2**256)", value=v)


@dataclass(frozen=True)
class NameRules:
    """Names must be strictly shorter than `max_name_bytes` (UTF-8)."""
    max_name_bytes: int = DEFAULT_MAX_NAME_BYTES

    def validate(self) -> None:
        if not _is_int(self.max_name_bytes) or self.max_name_bytes <= 0:
            raise ConfigError("max_name_bytes must be a positive integer", value=self.max_name_bytes)


@dataclass(frozen=True)
class RegistryConfig:
    db_uri: str = "memory://"
    owner: Optional[str] = None
    fees: FeeDefaults = field(default_factory=FeeDefaults)
    names: NameRules = field(default_factory=NameRules)
    events_path: Optional[str] = None
    log_level: str = "INFO"
    log_format: Optional[str] = None

    def validate(self) -> None:
        self.fees.validate()
        self.names.validate()
        if self.owner is not None:
            try:
                normalize_address(self.owner)
            except ValueError as e:
                raise ConfigError("owner is not a valid address", owner=self.owner) from e
        if self.log_format not in (None, "json", "text"):
            raise ConfigError("log_format must be 'json' or 'text'", value=self.log_format)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loading --------------------------


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError("config file not found", path=str(path))
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError("config file is not parseable", path=str(path), error=str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError("config file must hold a mapping", path=str(path))
    return data


def _env_int(name: str) -> Optional[int]:
    val = os.environ.get(name)
    if val is None or val.strip() == "":
        return None
    try:
        return int(val)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer", value=val) from e


def _env_layer() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, env in (
        ("db_uri", "NAMEREG_DB_URI"),
        ("owner", "NAMEREG_OWNER"),
        ("events_path", "NAMEREG_EVENTS_PATH"),
        ("log_level", "NAMEREG_LOG_LEVEL"),
        ("log_format", "NAMEREG_LOG_FORMAT"),
    ):
        v = os.environ.get(env)
        if v:
            out[key] = v.strip()
    for key, env in (
        ("user_fee", "NAMEREG_USER_FEE"),
        ("application_fee", "NAMEREG_APPLICATION_FEE"),
        ("max_name_bytes", "NAMEREG_MAX_NAME_BYTES"),
    ):
        v = _env_int(env)
        if v is not None:
            out[key] = v
    return out


def _apply(cfg: RegistryConfig, layer: Mapping[str, Any]) -> RegistryConfig:
    """Merge a flat (or sectioned) mapping onto `cfg`."""
    flat: Dict[str, Any] = dict(layer)
    for section in ("fees", "names"):
        sub = flat.pop(section, None) or {}
        if not isinstance(sub, Mapping):
            raise ConfigError(f"{section} must be a mapping", value=sub)
        flat.update(sub)

    fees = cfg.fees
    if "user_fee" in flat or "application_fee" in flat:
        fees = replace(
            fees,
            user_fee=flat.pop("user_fee", fees.user_fee),
            application_fee=flat.pop("application_fee", fees.application_fee),
        )
    names = cfg.names
    if "max_name_bytes" in flat:
        names = replace(names, max_name_bytes=flat.pop("max_name_bytes"))

    known = {"db_uri", "owner", "events_path", "log_level", "log_format"}
    unknown = set(flat) - known
    if unknown:
        raise ConfigError("unknown config keys", keys=sorted(unknown))
    return replace(cfg, fees=fees, names=names, **flat)


def load_config(
    path: Optional[str | Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> RegistryConfig:
    """
    Build a validated RegistryConfig from defaults < file < env < overrides.
    """
    cfg = RegistryConfig()
    file_path = path or os.environ.get("NAMEREG_CONFIG_FILE")
    if file_path:
        cfg = _apply(cfg, _read_file(Path(file_path).expanduser()))
    cfg = _apply(cfg, _env_layer())
    if overrides:
        cfg = _apply(cfg, {k: v for k, v in overrides.items() if v is not None})
    cfg.validate()
    return cfg


__all__ = [
    "DEFAULT_MAX_NAME_BYTES",
    "FeeDefaults",
    "NameRules",
    "RegistryConfig",
    "load_config",
]
