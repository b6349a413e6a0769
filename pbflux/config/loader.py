"""
YAML configuration loader with validation.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Union
from dataclasses import fields, is_dataclass

from loguru import logger

from .schema import (
    FluxSimulationConfig, SchemeSettings, FlowConfig,
    NumericsConfig, LoggingConfig,
)


_SECTIONS = {
    'scheme': SchemeSettings,
    'flow': FlowConfig,
    'numerics': NumericsConfig,
    'logging': LoggingConfig,
}


def _coerce_type(value, field_type):
    """Coerce value to the expected field type."""
    # Handle string representations of numbers (e.g., "1.5e-2")
    if field_type in (float, 'float') and isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return value
    if field_type in (int, 'int') and isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    if field_type in (bool, 'bool') and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', 'yes', 'on', '1'):
            return True
        if lowered in ('false', 'no', 'off', '0'):
            return False
    return value


def _dict_to_dataclass(cls, data: dict):
    """Convert a flat dictionary to a dataclass instance."""
    if not is_dataclass(cls):
        return data

    field_types = {f.name: f.type for f in fields(cls)}
    kwargs = {}

    for key, value in data.items():
        if key not in field_types:
            logger.warning(f"Ignoring unknown {cls.__name__} key: {key}")
            continue
        kwargs[key] = _coerce_type(value, field_types[key])

    return cls(**kwargs)


def load_yaml(path: Union[str, Path]) -> FluxSimulationConfig:
    """
    Load a flux configuration from a YAML file.

    Args:
        path: Path to YAML configuration file

    Returns:
        FluxSimulationConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        FluxConfigurationError: If the scheme section is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    logger.info(f"Loading configuration from: {path}")
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}

    return from_dict(data)


def from_dict(data: Dict[str, Any]) -> FluxSimulationConfig:
    """
    Create FluxSimulationConfig from a dictionary.

    Missing sections and keys take their defaults; unknown ones are skipped.
    """
    config_dict = {}
    for name, cls in _SECTIONS.items():
        if name in data and data[name] is not None:
            config_dict[name] = _dict_to_dataclass(cls, data[name])

    for name in data:
        if name not in _SECTIONS:
            logger.warning(f"Ignoring unknown configuration section: {name}")

    config = FluxSimulationConfig(**config_dict)
    config.scheme.validate()
    return config


def apply_cli_overrides(config: FluxSimulationConfig, args) -> FluxSimulationConfig:
    """
    Apply command-line argument overrides to a configuration.

    Only overrides values that were explicitly set (not None).

    Args:
        config: Base configuration
        args: argparse.Namespace with CLI arguments

    Returns:
        Updated FluxSimulationConfig
    """
    config_dict = config.to_dict()

    cli_mapping = {
        # Scheme
        'scheme': ('scheme', 'kind'),
        'n_dim': ('scheme', 'n_dim'),
        'time_integration': ('scheme', 'time_integration'),

        # Flow
        'gravity': ('flow', 'gravity'),
        'froude': ('flow', 'froude'),

        # Numerics
        'kappa_2': ('numerics', 'kappa_2'),
        'kappa_4': ('numerics', 'kappa_4'),
        'kappa_0': ('numerics', 'kappa_0'),

        # Logging
        'log_level': ('logging', 'level'),
    }

    for cli_name, config_path in cli_mapping.items():
        if hasattr(args, cli_name):
            value = getattr(args, cli_name)
            if value is not None:
                target = config_dict
                for key in config_path[:-1]:
                    target = target[key]
                target[config_path[-1]] = value

    return from_dict(config_dict)


def save_yaml(config: FluxSimulationConfig, path: Union[str, Path]) -> None:
    """Save configuration to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False)
