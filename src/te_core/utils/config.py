"""Helper utilities for loading strategy configuration files.

``load_config`` turns a TOML/YAML/JSON file into a plain ``dict``; the
``section``/``value``/``enum_value`` helpers read that dict (or an attribute
style object) while coercing it into the typed strategy configs.
"""
from __future__ import annotations

import json
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Final, Mapping, TypeVar

import yaml


class ConfigError(RuntimeError):
    """Raised when a configuration file or value cannot be used."""


_E = TypeVar("_E", bound=Enum)

# 拡張子 → (パーサ, パーサが投げる例外)
_PARSERS: Final[dict[str, tuple[Callable[[str], Any], type[Exception]]]] = {
    ".toml": (tomllib.loads, tomllib.TOMLDecodeError),
    ".yaml": (yaml.safe_load, yaml.YAMLError),
    ".yml": (yaml.safe_load, yaml.YAMLError),
    ".json": (json.loads, json.JSONDecodeError),
}


def load_config(path: str | Path) -> dict[str, Any]:
    """Load a configuration file supporting TOML, YAML, or JSON formats.

    An empty YAML document yields ``{}``; any other top level that is not a
    mapping is rejected.
    """
    config_path = Path(path)
    try:
        parse, parse_error = _PARSERS[config_path.suffix.lower()]
    except KeyError:
        raise ConfigError(f"unsupported config extension: {config_path.suffix!r}") from None

    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ConfigError(f"config file not found: {config_path}") from exc

    try:
        data = parse(text)
    except parse_error as exc:
        raise ConfigError(f"cannot parse {config_path.name}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name}: top level must be a mapping, got {type(data).__name__}")
    return data


# ───────────── dict/属性 両対応の取り出しヘルパー ─────────────


def section(raw: Any, name: str) -> Any:
    """Return the ``name`` section of ``raw`` (mapping or attribute), ``{}`` if absent."""
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        sec = raw.get(name)
        return {} if sec is None else sec
    return getattr(raw, name, {})


def value(sec: Any, key: str, default: Any) -> Any:
    """Return ``sec[key]`` / ``sec.key`` or ``default`` when the key is missing or null."""
    if isinstance(sec, Mapping):
        v = sec.get(key, default)
    else:
        v = getattr(sec, key, default)
    return default if v is None else v


def enum_value(enum_cls: type[_E], raw: Any, *, field: str) -> _E:
    """Coerce ``raw`` (member, value or name, case-insensitive) into ``enum_cls``."""
    if isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip()
    for member in enum_cls:
        if text.lower() in {str(member.value).lower(), member.name.lower()}:
            return member
    allowed = ", ".join(str(m.value) for m in enum_cls)
    raise ConfigError(f"invalid value for {field}: {raw!r} (expected one of: {allowed})")


__all__ = ["ConfigError", "load_config", "section", "value", "enum_value"]
