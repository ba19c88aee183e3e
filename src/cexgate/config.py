"""Load gateway settings from YAML, environment and command-line overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import ValidationError

from .settings import Settings

ENV_PREFIX = "CEXGATE_"
_RESERVED_ENV = {"CONFIG", "LOG_LEVEL"}


def _assign(tree: dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    node = tree
    for part in parents:
        child = node.get(part)
        if not isinstance(child, dict):
            child = node[part] = {}
        node = child
    node[leaf] = value


def _coerce(raw: str) -> Any:
    # "5" becomes 5, "true" becomes True, "[a, b]" a list
    try:
        return yaml.safe_load(raw)
    except yaml.YAMLError:
        return raw


def _env_overrides(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> dict[str, Any]:
    """Collect ``CEXGATE_SECTION__KEY=value`` variables as dotted paths."""
    overrides: dict[str, Any] = {}
    for key, raw_value in environ.items():
        if not key.startswith(prefix):
            continue
        remainder = key[len(prefix) :]
        if remainder in _RESERVED_ENV:
            continue
        path = [p.lower() for p in remainder.split("__") if p]
        if path:
            overrides[".".join(path)] = _coerce(raw_value)
    return overrides


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Config file {path} is not valid YAML: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config root must be a mapping, got: {type(loaded)!r}")
    return loaded


def load_settings(
    config_path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """Build validated settings.

    Precedence, lowest first: config file, ``CEXGATE_*`` environment
    variables, explicit ``overrides`` keyed by dotted path
    (e.g. ``{"server.port": 8080}``). ``None`` override values are ignored.

    Raises:
        ValueError: If the file is not a mapping or validation fails
    """
    environ = os.environ if environ is None else environ
    if config_path is None:
        config_path = environ.get(f"{ENV_PREFIX}CONFIG", "config.yml")

    data = _read_config_file(Path(config_path))

    layered = dict(_env_overrides(environ))
    layered.update({k: v for k, v in (overrides or {}).items() if v is not None})
    for dotted, value in layered.items():
        _assign(data, dotted, value)

    try:
        return Settings.model_validate(data)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc
