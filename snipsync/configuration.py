"""Workspace-aware configuration loading for snipsync.

Two YAML layers are merged: the defaults shipped in ``config/`` next to the
package, then ``<workspace>/config/*.yml``. The merged mapping is checked
against ``CONFIG_SCHEMA``; problems become diagnostics instead of exceptions
so the CLI can print all of them at once.
"""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, MutableMapping, Optional, Tuple

import yaml

REPO_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = REPO_ROOT / "config"
DEFAULT_WORKSPACE = "~/.snipsync"
WORKSPACE_ENV = "SNIPSYNC_HOME"

DiagnosticLevel = Literal["info", "warning", "error"]
ConfigurationStatus = Literal["ready", "missing", "invalid"]

SchemaSpec = Dict[str, Any]

HASH_VARIANTS = ("fast", "secure")


def _section(**fields: SchemaSpec) -> SchemaSpec:
    return {"type": dict, "schema": fields, "default": {}}


CONFIG_SCHEMA: SchemaSpec = {
    "logging": _section(
        level={"type": str, "default": "INFO"},
        structured={"type": bool, "default": True},
    ),
    "snippets": _section(
        directory={"type": str, "default": "snippets"},
        extension={"type": str, "default": ".css"},
    ),
    "github": _section(
        repo={"type": str, "default": ""},
        token_env={"type": str, "default": "SNIPSYNC_GITHUB_TOKEN"},
        api_url={"type": str, "default": "https://api.github.com"},
        branch={"type": str, "default": ""},
        timeout={"type": (int, float), "default": 30},
    ),
    "sync": _section(
        hash_variant={"type": str, "default": "fast", "choices": HASH_VARIANTS},
        force_overwrite={"type": bool, "default": False},
        cache_ttl={"type": (int, float), "default": 300},
        cache_max_items={"type": int, "default": 1000},
    ),
}


@dataclass
class Diagnostic:
    """A problem found while loading or validating configuration."""

    level: DiagnosticLevel
    message: str
    source: Optional[Path] = None


@dataclass
class ConfigurationBundle:
    """All configuration data snipsync needs at runtime."""

    workspace_dir: Path
    status: ConfigurationStatus
    merged: Dict[str, Any] = field(default_factory=dict)
    repo_defaults: Dict[str, Any] = field(default_factory=dict)
    workspace_overrides: Dict[str, Any] = field(default_factory=dict)
    files_loaded: List[Path] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    log_path: Optional[Path] = None

    @property
    def errors(self) -> List[Diagnostic]:
        return [diag for diag in self.diagnostics if diag.level == "error"]

    def snippets_dir(self) -> Path:
        """Snippet directory, relative paths resolved against the workspace."""
        raw = Path(self.merged.get("snippets", {}).get("directory", "snippets")).expanduser()
        return raw if raw.is_absolute() else self.workspace_dir / raw


def resolve_workspace_dir(
    env: Optional[Mapping[str, str]] = None,
    default: str = DEFAULT_WORKSPACE,
) -> Path:
    """Workspace from ``$SNIPSYNC_HOME``, else ``~/.snipsync``."""

    env_source = env if env is not None else os.environ
    return Path(env_source.get(WORKSPACE_ENV, default)).expanduser()


def load_runtime_configuration(workspace_dir: Optional[Path] = None) -> ConfigurationBundle:
    """Load repo defaults and workspace overrides into one validated bundle."""

    workspace = workspace_dir or resolve_workspace_dir()
    diagnostics: List[Diagnostic] = []

    defaults, files_loaded = _load_layer(DEFAULT_CONFIG_DIR, "repo defaults", diagnostics)

    overrides: Dict[str, Any] = {}
    status: ConfigurationStatus = "ready"
    if not workspace.exists():
        diagnostics.append(Diagnostic("error", f"Workspace directory '{workspace}' does not exist."))
        status = "missing"
    elif not workspace.is_dir():
        diagnostics.append(Diagnostic("error", f"Workspace path '{workspace}' is not a directory."))
        status = "invalid"
    else:
        overrides, override_files = _load_layer(workspace / "config", "workspace overrides", diagnostics)
        files_loaded.extend(override_files)

    merged = deepcopy(defaults)
    _merge_into(merged, overrides)
    _apply_schema(merged, CONFIG_SCHEMA, "config", diagnostics)

    bundle = ConfigurationBundle(
        workspace_dir=workspace,
        status=status,
        merged=merged,
        repo_defaults=defaults,
        workspace_overrides=overrides,
        files_loaded=files_loaded,
        diagnostics=diagnostics,
    )
    if bundle.status == "ready" and bundle.errors:
        bundle.status = "invalid"
    return bundle


def _load_layer(
    directory: Path,
    label: str,
    diagnostics: List[Diagnostic],
) -> Tuple[Dict[str, Any], List[Path]]:
    """Merge every YAML file in ``directory`` (sorted by name) into one mapping."""

    layer: Dict[str, Any] = {}
    loaded: List[Path] = []

    if not directory.is_dir():
        if directory.exists():
            diagnostics.append(
                Diagnostic("error", f"Configuration path '{directory}' ({label}) is not a directory.", directory)
            )
        else:
            diagnostics.append(
                Diagnostic("warning", f"No configuration directory at '{directory}' ({label}).", directory)
            )
        return layer, loaded

    paths = sorted(directory.glob("*.yml")) + sorted(directory.glob("*.yaml"))
    for path in paths:
        content = _read_mapping(path, diagnostics)
        if content is None:
            continue
        _merge_into(layer, content)
        loaded.append(path)

    if not loaded:
        diagnostics.append(Diagnostic("info", f"No YAML files under '{directory}' ({label}).", directory))
    return layer, loaded


def _read_mapping(path: Path, diagnostics: List[Diagnostic]) -> Optional[Dict[str, Any]]:
    """Parse one YAML file; ``None`` means it was unusable and a diagnostic was recorded."""

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        diagnostics.append(Diagnostic("error", f"Failed to parse '{path}': {exc}", path))
        return None

    if content is None:
        return {}
    if not isinstance(content, MutableMapping):
        diagnostics.append(Diagnostic("warning", f"Ignoring '{path}': top level is not a mapping.", path))
        return None
    return dict(content)


def _merge_into(dest: MutableMapping[str, Any], source: Mapping[str, Any]) -> None:
    for key, value in source.items():
        current = dest.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            dest[key] = deepcopy(value)


def _apply_schema(
    target: Dict[str, Any],
    schema: SchemaSpec,
    path: str,
    diagnostics: List[Diagnostic],
) -> None:
    """Fill defaults in place and replace invalid values with their defaults."""

    for key in target:
        if key not in schema:
            diagnostics.append(Diagnostic("warning", f"Unknown configuration key '{path}.{key}'."))

    for key, spec in schema.items():
        child_path = f"{path}.{key}"
        if key not in target:
            target[key] = deepcopy(spec.get("default"))
            continue

        value = target[key]
        if spec.get("type") is dict:
            if not isinstance(value, dict):
                diagnostics.append(Diagnostic("error", f"'{child_path}' must be a mapping."))
                value = target[key] = {}
            _apply_schema(value, spec.get("schema", {}), child_path, diagnostics)
            continue

        problem = _check_value(value, spec)
        if problem:
            diagnostics.append(Diagnostic("error", f"'{child_path}' {problem}."))
            target[key] = deepcopy(spec.get("default"))


def _check_value(value: Any, spec: SchemaSpec) -> Optional[str]:
    expected = spec.get("type")
    if expected is not None:
        # YAML `true` is an int to isinstance; only accept it where a bool is wanted.
        wrong_bool = isinstance(value, bool) and expected is not bool
        if wrong_bool or not isinstance(value, expected):
            names = expected if isinstance(expected, tuple) else (expected,)
            return "must be of type " + " or ".join(t.__name__ for t in names)

    choices = spec.get("choices")
    if choices and value not in choices:
        return f"must be one of {', '.join(choices)} (got '{value}')"
    return None


__all__ = [
    "CONFIG_SCHEMA",
    "ConfigurationBundle",
    "ConfigurationStatus",
    "DEFAULT_CONFIG_DIR",
    "Diagnostic",
    "load_runtime_configuration",
    "resolve_workspace_dir",
]
