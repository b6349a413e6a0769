"""
Configuration module for the flux kernels.

Provides YAML-based configuration with dataclass schema.
"""

from .schema import (
    FluxSimulationConfig,
    SchemeSettings,
    FlowConfig,
    NumericsConfig,
    LoggingConfig,
    SchemeConfig,
    FluxConfigurationError,
    TIME_INTEGRATION_SCHEMES,
    SCHEME_KINDS,
)

from .loader import (
    load_yaml,
    from_dict,
    apply_cli_overrides,
    save_yaml,
)

__all__ = [
    # Schema classes
    'FluxSimulationConfig',
    'SchemeSettings',
    'FlowConfig',
    'NumericsConfig',
    'LoggingConfig',
    'SchemeConfig',
    'FluxConfigurationError',
    'TIME_INTEGRATION_SCHEMES',
    'SCHEME_KINDS',
    # Loader functions
    'load_yaml',
    'from_dict',
    'apply_cli_overrides',
    'save_yaml',
]
