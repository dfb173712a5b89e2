"""Layered YAML configuration for quotesync."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, MutableMapping, Optional, Tuple

import yaml

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = REPO_ROOT / "config"
DATA_DIR_ENV = "QUOTESYNC_DATA_DIR"
DEFAULT_DATA_DIR = "~/.quotesync"

DiagnosticLevel = Literal["info", "warning", "error"]
ConfigurationStatus = Literal["ready", "missing", "invalid"]


SchemaSpec = Dict[str, Any]

DEFAULT_REMOTE_CATEGORIES: List[str] = [
    "Motivation",
    "Design",
    "Programming",
    "Inspiration",
    "Life",
]


CONFIG_SCHEMA: SchemaSpec = {
    "runtime": {
        "type": dict,
        "schema": {
            "name": {"type": str, "default": "quotesync"},
        },
        "default": {},
    },
    "logging": {
        "type": dict,
        "schema": {
            "level": {"type": str, "default": "INFO"},
            "structured": {"type": bool, "default": True},
        },
        "default": {},
    },
    "ui": {
        "type": dict,
        "schema": {
            "verbose": {"type": bool, "default": True},
        },
        "default": {},
    },
    "store": {
        "type": dict,
        "schema": {
            "directory": {"type": str, "default": "state"},
        },
        "default": {},
    },
    "remote": {
        "type": dict,
        "schema": {
            "url": {"type": str, "default": "https://jsonplaceholder.typicode.com/posts"},
            "publish_url": {"type": str, "default": ""},
            "timeout": {"type": (int, float), "default": 10.0, "minimum": 0},
            "limit": {"type": int, "default": 5, "minimum": 0},
            "text_field": {"type": str, "default": "title"},
            "categories": {
                "type": list,
                "item_type": str,
                "default_factory": lambda: list(DEFAULT_REMOTE_CATEGORIES),
            },
        },
        "default": {},
    },
    "sync": {
        "type": dict,
        "schema": {
            "enabled": {"type": bool, "default": True},
            "interval_seconds": {"type": int, "default": 30, "minimum": 1},
            "conflict_strategy": {
                "type": str,
                "default": "manual",
                "choices": ("manual", "server", "local"),
            },
            "on_pending": {
                "type": str,
                "default": "block",
                "choices": ("block", "replace"),
            },
            "publish": {"type": bool, "default": True},
        },
        "default": {},
    },
    "import": {
        "type": dict,
        "schema": {
            "validate": {"type": bool, "default": False},
        },
        "default": {},
    },
}


@dataclass
class Diagnostic:
    """Represents a configuration validation or loading issue."""

    level: DiagnosticLevel
    message: str
    source: Optional[Path] = None


@dataclass
class ConfigurationBundle:
    """All configuration data quotesync needs at runtime."""

    data_dir: Path
    status: ConfigurationStatus
    merged: Dict[str, Any] = field(default_factory=dict)
    files_loaded: List[Path] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    log_path: Optional[Path] = None

    def section(self, name: str) -> Dict[str, Any]:
        return dict((self.merged or {}).get(name) or {})


def resolve_data_dir(
    env: Optional[Mapping[str, str]] = None,
    default: str = DEFAULT_DATA_DIR,
) -> Path:
    """Resolve the data directory from the environment."""

    env_source = env or os.environ
    raw = env_source.get(DATA_DIR_ENV, default)
    return Path(raw).expanduser()


def load_runtime_configuration(data_dir: Optional[Path] = None) -> ConfigurationBundle:
    """Merge ``config/*.yml`` defaults with ``<data_dir>/config/*.yml`` overrides.

    The returned bundle always carries a schema-complete ``merged`` mapping;
    problems are reported through ``diagnostics`` and ``status``.
    """

    resolved_dir = data_dir or resolve_data_dir()
    diagnostics: List[Diagnostic] = []

    merged, files_loaded = _load_directory_configs(DEFAULT_CONFIG_DIR, diagnostics, label="repo defaults")

    status: ConfigurationStatus = "ready"
    if not resolved_dir.exists():
        _error(diagnostics, f"Data directory '{resolved_dir}' does not exist.")
        status = "missing"
    elif not resolved_dir.is_dir():
        _error(diagnostics, f"Data path '{resolved_dir}' is not a directory.")
        status = "invalid"
    else:
        overrides, override_files = _load_directory_configs(
            resolved_dir / "config",
            diagnostics,
            label="user overrides",
            quiet_when_missing=True,
        )
        _deep_merge_dicts(merged, overrides)
        files_loaded.extend(override_files)

    _validate_section(merged, CONFIG_SCHEMA, "config", diagnostics)

    if status == "ready" and any(diag.level == "error" for diag in diagnostics):
        status = "invalid"

    return ConfigurationBundle(
        data_dir=resolved_dir,
        status=status,
        merged=merged,
        files_loaded=files_loaded,
        diagnostics=diagnostics,
    )


def _load_directory_configs(
    directory: Path,
    diagnostics: List[Diagnostic],
    label: str,
    quiet_when_missing: bool = False,
) -> Tuple[Dict[str, Any], List[Path]]:
    """Merge every ``*.yml``/``*.yaml`` file in ``directory`` in name order."""

    data: Dict[str, Any] = {}
    loaded: List[Path] = []

    if not directory.is_dir():
        if directory.exists():
            _error(diagnostics, f"Configuration path '{directory}' ({label}) is not a directory.")
        elif not quiet_when_missing:
            diagnostics.append(
                Diagnostic(
                    level="warning",
                    message=f"No configuration directory found at '{directory}' ({label}).",
                    source=directory,
                )
            )
        return data, loaded

    for yaml_file in sorted([*directory.glob("*.yml"), *directory.glob("*.yaml")]):
        try:
            content = yaml.safe_load(yaml_file.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            diagnostics.append(
                Diagnostic(level="error", message=f"Failed to parse '{yaml_file}': {exc}", source=yaml_file)
            )
            continue

        if content is not None and not isinstance(content, MutableMapping):
            diagnostics.append(
                Diagnostic(
                    level="warning",
                    message=f"Ignoring '{yaml_file}': top level is not a mapping.",
                    source=yaml_file,
                )
            )
            continue

        _deep_merge_dicts(data, content or {})
        loaded.append(yaml_file)

    return data, loaded


def _deep_merge_dicts(dest: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        if (
            key in dest
            and isinstance(dest[key], MutableMapping)
            and isinstance(value, Mapping)
        ):
            _deep_merge_dicts(dest[key], value)
        else:
            dest[key] = deepcopy(value)


def _default_from_spec(spec: SchemaSpec) -> Any:
    factory = spec.get("default_factory")
    return factory() if callable(factory) else deepcopy(spec.get("default"))


def _type_name(expected_type: Any) -> str:
    types = expected_type if isinstance(expected_type, tuple) else (expected_type,)
    return ", ".join(t.__name__ for t in types)


def _scalar_problem(spec: SchemaSpec, value: Any) -> Optional[str]:
    """Why ``value`` does not satisfy a scalar schema entry, or None."""

    expected_type = spec.get("type")
    # bool is an int subclass; reject it where a number is expected
    if expected_type and (
        not isinstance(value, expected_type)
        or (isinstance(value, bool) and expected_type is not bool)
    ):
        return f"must be of type {_type_name(expected_type)}"
    choices = spec.get("choices")
    if choices and value not in choices:
        return f"must be one of: {', '.join(choices)}"
    minimum = spec.get("minimum")
    if minimum is not None and value < minimum:
        return f"must be at least {minimum}"
    return None


def _checked_list(spec: SchemaSpec, value: List[Any], path: str, diagnostics: List[Diagnostic]) -> List[Any]:
    item_type = spec.get("item_type")
    if item_type is None:
        return value
    kept: List[Any] = []
    for idx, item in enumerate(value):
        if isinstance(item, item_type):
            kept.append(item)
        else:
            _error(diagnostics, f"'{path}[{idx}]' must be of type {item_type.__name__}.")
    return kept


def _error(diagnostics: List[Diagnostic], message: str) -> None:
    diagnostics.append(Diagnostic(level="error", message=message))


def _validate_section(
    target: Dict[str, Any],
    schema: SchemaSpec,
    path: str,
    diagnostics: List[Diagnostic],
) -> None:
    """Check ``target`` against ``schema`` in place, filling defaults.

    Invalid values are replaced by their default and reported as errors;
    unknown keys are kept and reported as warnings.
    """

    for key in target:
        if key not in schema:
            diagnostics.append(
                Diagnostic(level="warning", message=f"Unknown configuration key '{path}.{key}'.")
            )

    for key, spec in schema.items():
        child_path = f"{path}.{key}"
        expected_type = spec.get("type")

        if key not in target:
            target[key] = _default_from_spec(spec)
        elif expected_type is dict and not isinstance(target[key], dict):
            _error(diagnostics, f"'{child_path}' must be a mapping.")
            target[key] = _default_from_spec(spec) or {}
        elif expected_type is list:
            if isinstance(target[key], list):
                target[key] = _checked_list(spec, target[key], child_path, diagnostics)
            else:
                _error(diagnostics, f"'{child_path}' must be a list.")
                target[key] = _default_from_spec(spec) or []
        elif expected_type is not dict:
            problem = _scalar_problem(spec, target[key])
            if problem:
                _error(diagnostics, f"'{child_path}' {problem}.")
                target[key] = _default_from_spec(spec)

        if expected_type is dict:
            _validate_section(target[key], spec.get("schema", {}), child_path, diagnostics)


__all__ = [
    "CONFIG_SCHEMA",
    "ConfigurationBundle",
    "ConfigurationStatus",
    "DATA_DIR_ENV",
    "DEFAULT_CONFIG_DIR",
    "Diagnostic",
    "load_runtime_configuration",
    "resolve_data_dir",
]
