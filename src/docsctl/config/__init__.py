"""Pipeline configuration loading."""

from .loader import (
    DEFAULT_CONFIG_NAME,
    BuildConfig,
    PipelineConfig,
    ProvisionConfig,
    PublishConfig,
    default_config,
    load_config,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "BuildConfig",
    "PipelineConfig",
    "ProvisionConfig",
    "PublishConfig",
    "default_config",
    "load_config",
]
