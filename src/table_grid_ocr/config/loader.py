"""
Reading and writing configuration files.

JSON, YAML and TOML are chosen by file extension; anything else is sniffed.
String values may reference environment variables as ``${NAME}`` or
``${NAME:default}``; ``TGOCR_NAME`` is consulted before ``NAME``.
"""

import json
import os
import re
import sys
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml
from pydantic import ValidationError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .models import Config
from ..exceptions import ConfigurationError

PathLike = Union[str, Path]

ENV_PREFIX = "TGOCR_"
ENV_REFERENCE = re.compile(r"\$\{(?P<name>[^}:]+)(?::(?P<default>[^}]*))?\}")

PARSE_ERRORS = (json.JSONDecodeError, yaml.YAMLError, tomllib.TOMLDecodeError)


def _parse_yaml(text: str) -> Any:
    return yaml.safe_load(text) or {}


def _dump_json(data: Dict[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def _dump_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)


PARSERS: Dict[str, Callable[[str], Any]] = {
    ".json": json.loads,
    ".yaml": _parse_yaml,
    ".yml": _parse_yaml,
    ".toml": tomllib.loads,
}

DUMPERS: Dict[str, Callable[[Dict[str, Any]], str]] = {
    "json": _dump_json,
    "yaml": _dump_yaml,
    "yml": _dump_yaml,
}


def load_config(config_path: PathLike) -> Config:
    """
    Load and validate a configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable, malformed
            or fails validation
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}")

    parse = PARSERS.get(path.suffix.lower(), _sniff)
    try:
        data = parse(text)
    except PARSE_ERRORS as e:
        raise ConfigurationError(f"Malformed configuration file {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")
    return load_config_from_dict(expand_env(data))


def load_config_from_dict(config_data: Dict[str, Any]) -> Config:
    """Validate a configuration mapping, reporting every problem at once."""
    try:
        return Config(**config_data)
    except ValidationError as e:
        problems = [
            f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        ]
        raise ConfigurationError("Invalid configuration:\n" + "\n".join(problems))


def save_config(config: Config, output_path: PathLike, format_type: Optional[str] = None) -> None:
    """
    Write a configuration as JSON or YAML.

    Args:
        config: Configuration to write
        output_path: Destination file; parent directories are created
        format_type: ``json`` or ``yaml``; taken from the extension when omitted
    """
    path = Path(output_path)
    format_type = (format_type or path.suffix.lstrip(".")).lower()
    dump = DUMPERS.get(format_type)
    if dump is None:
        raise ConfigurationError(f"Unsupported configuration format: {format_type or path.name}")

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump(config.model_dump(mode="json")), encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot write configuration to {path}: {e}")


def get_default_config() -> Config:
    return Config()


def validate_config_file(config_path: PathLike) -> bool:
    """True when the file loads; otherwise ConfigurationError propagates."""
    load_config(config_path)
    return True


def _sniff(text: str) -> Any:
    """Parse text of unknown format: JSON object, then YAML mapping, then TOML."""
    stripped = text.strip()
    if stripped.startswith("{"):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    try:
        data = yaml.safe_load(stripped)
        if isinstance(data, dict):
            return data
    except yaml.YAMLError:
        pass
    return tomllib.loads(stripped)


def expand_env(data: Any, prefix: str = ENV_PREFIX) -> Any:
    """Replace ``${NAME}`` references in every string of a nested structure."""
    if isinstance(data, dict):
        return {key: expand_env(value, prefix) for key, value in data.items()}
    if isinstance(data, list):
        return [expand_env(item, prefix) for item in data]
    if isinstance(data, str):
        return ENV_REFERENCE.sub(lambda match: _lookup(match, prefix), data)
    return data


def _lookup(match: "re.Match[str]", prefix: str) -> str:
    name = match.group("name")
    for candidate in (prefix + name, name):
        if candidate in os.environ:
            return os.environ[candidate]
    default = match.group("default")
    # Unresolved references are left as written
    return default if default is not None else match.group(0)
