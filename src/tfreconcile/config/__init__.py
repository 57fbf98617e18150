"""Run configuration."""

from .models import ReconcileConfig
from .parser import ConfigValidationError, load_config, read_config_file

__all__ = [
    "ReconcileConfig",
    "ConfigValidationError",
    "load_config",
    "read_config_file",
]
