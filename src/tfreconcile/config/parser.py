"""YAML configuration loading with command-line overrides."""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from tfreconcile.utils.errors import ConfigurationError

from .models import ReconcileConfig

DEFAULT_CONFIG_FILE = "tfreconcile.yaml"


class ConfigValidationError(ConfigurationError):
    """The config file or merged settings failed validation.

    ``errors`` holds one ``{"loc": [...], "msg": ...}`` entry per pydantic
    error so the CLI can point at each bad setting.
    """

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, suggestions=["Run 'tfreconcile check --help' for the accepted values"])
        self.errors = list(errors or [])

    def __str__(self) -> str:
        lines = [self.message]
        for error in self.errors:
            where = ".".join(str(part) for part in error.get("loc", []))
            lines.append(f"  {where or '(config)'}: {error.get('msg', 'invalid value')}")
        return "\n".join(lines)


def read_config_file(config_path) -> Dict[str, Any]:
    """Read a YAML config file into a dict.

    Raises:
        ConfigValidationError: If the file is not valid YAML or not a mapping
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Failed to parse YAML: {e}")

    if not isinstance(data, dict):
        raise ConfigValidationError(f"Configuration file {path} must contain a mapping")

    # Accept dashed keys so file and flag spellings match
    return {str(key).replace("-", "_"): value for key, value in data.items()}


def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> ReconcileConfig:
    """Build the run configuration.

    Values come from defaults, then the config file, then overrides. None
    overrides are ignored so unset CLI flags keep file values.

    Args:
        config_path: Explicit config file. When None, ./tfreconcile.yaml is
            used if present.
        overrides: Values from the command line

    Returns:
        Validated ReconcileConfig

    Raises:
        ConfigValidationError: If the merged configuration is invalid
    """
    data: Dict[str, Any] = {}
    if config_path:
        data.update(read_config_file(config_path))
    elif Path(DEFAULT_CONFIG_FILE).exists():
        data.update(read_config_file(DEFAULT_CONFIG_FILE))

    for key, value in (overrides or {}).items():
        if value is not None:
            data[key] = value

    try:
        return ReconcileConfig(**data)
    except ValidationError as e:
        errors = [{"loc": list(error["loc"]), "msg": error["msg"]} for error in e.errors()]
        raise ConfigValidationError(
            f"Configuration validation failed with {len(errors)} error(s)",
            errors,
        )
