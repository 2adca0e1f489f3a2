"""Load and validate dbcleaner.yaml."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from dbcleaner.compact.plan import MappingEntry
from dbcleaner.registry import DEFAULT_DEPENDENTS, DEFAULT_OWNER, is_valid_identifier

DEFAULT_CONFIG_NAME = "dbcleaner.yaml"

# Default config values
DEFAULTS: dict[str, Any] = {
    "database": {
        "path": "characters.db",
    },
    "owner": {
        "table": DEFAULT_OWNER[0],
        "column": DEFAULT_OWNER[1],
    },
    "dependents": [{"table": t, "column": c} for t, c in DEFAULT_DEPENDENTS],
    "pre_seed": [],
    "planner": {
        "stop_at_crossover": False,
    },
    "logging": {
        "level": "INFO",
    },
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when config is invalid or missing."""


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts.

    Lists are replaced, never concatenated.
    """
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _validate_table_ref(ref: object, where: str) -> tuple[str, str]:
    if not isinstance(ref, dict):
        raise ConfigError(f"'{where}' must be a mapping with 'table' and 'column'")
    missing = {"table", "column"} - set(ref.keys())
    if missing:
        raise ConfigError(f"'{where}' missing required keys: {sorted(missing)}")
    for key in ("table", "column"):
        if not is_valid_identifier(ref[key]):
            raise ConfigError(f"'{where}.{key}' is not a valid SQL identifier: {ref[key]!r}")
    return ref["table"], ref["column"]


def _validate(config: dict) -> None:
    """Validate required fields in config."""
    database = config.get("database")
    if not isinstance(database, dict) or not isinstance(database.get("path"), str):
        raise ConfigError("'database.path' must be a string")

    owner = _validate_table_ref(config.get("owner"), "owner")

    dependents = config.get("dependents")
    if not isinstance(dependents, list):
        raise ConfigError("'dependents' must be a list")
    seen: set[tuple[str, str]] = set()
    for i, dep in enumerate(dependents):
        key = _validate_table_ref(dep, f"dependents[{i}]")
        if key == owner:
            raise ConfigError(f"'dependents[{i}]' repeats the owning column {key[0]}.{key[1]}")
        if key in seen:
            raise ConfigError(f"'dependents[{i}]' duplicates {key[0]}.{key[1]}")
        seen.add(key)

    pre_seed = config.get("pre_seed")
    if not isinstance(pre_seed, list):
        raise ConfigError("'pre_seed' must be a list")
    froms: set[int] = set()
    tos: set[int] = set()
    for i, item in enumerate(pre_seed):
        if not isinstance(item, dict):
            raise ConfigError(f"'pre_seed[{i}]' must be a mapping with 'from' and 'to'")
        src, dst = item.get("from"), item.get("to")
        if not _is_positive_int(src) or not _is_positive_int(dst):
            raise ConfigError(f"'pre_seed[{i}]' needs positive integer 'from' and 'to'")
        if src == dst:
            raise ConfigError(f"'pre_seed[{i}]' maps {src} onto itself")
        if src in froms or dst in tos:
            raise ConfigError(f"'pre_seed[{i}]' reuses an identifier of an earlier entry")
        froms.add(src)
        tos.add(dst)

    planner = config.get("planner")
    if not isinstance(planner, dict) or not isinstance(planner.get("stop_at_crossover"), bool):
        raise ConfigError("'planner.stop_at_crossover' must be true or false")

    level = config.get("logging", {}).get("level")
    if not isinstance(level, str) or level.upper() not in LOG_LEVELS:
        raise ConfigError(f"Unsupported log level '{level}'. Use one of: {', '.join(LOG_LEVELS)}.")


def load_config(config_path: Path | None = None) -> dict:
    """Load config from *config_path*.

    Falls back to ``dbcleaner.yaml`` in cwd if config_path is None. Merges
    with DEFAULTS so callers always get a full config dict.
    """
    path = Path(config_path) if config_path else Path.cwd() / DEFAULT_CONFIG_NAME

    if not path.exists():
        raise ConfigError(f"Config not found: {path}")

    with open(path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Config is not valid YAML: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__}")

    config = _deep_merge(DEFAULTS, raw)
    _validate(config)
    return config


def resolve_database_path(config: dict, base_dir: Path) -> Path:
    """Resolve ``database.path``; relative paths are taken from *base_dir*."""
    db_path = Path(config["database"]["path"]).expanduser()
    if not db_path.is_absolute():
        db_path = base_dir / db_path
    return db_path


def pre_seed_entries(config: dict) -> list[MappingEntry]:
    return [MappingEntry(item["from"], item["to"]) for item in config["pre_seed"]]


def log_level(config: dict) -> int:
    return getattr(logging, config["logging"]["level"].upper())
