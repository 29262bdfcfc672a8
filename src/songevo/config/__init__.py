"""Configuration utilities for songevo."""
from .schema import (
    ConfigSchema,
    DecoderConfig,
    EdgeConfig,
    GenomeConfig,
    HabitatConfig,
    NodeConfig,
    OutputConfig,
    ReproductionConfig,
    StorageConfig,
    default_config_path,
    load_config,
)

__all__ = [
    "ConfigSchema",
    "DecoderConfig",
    "EdgeConfig",
    "GenomeConfig",
    "HabitatConfig",
    "NodeConfig",
    "OutputConfig",
    "ReproductionConfig",
    "StorageConfig",
    "default_config_path",
    "load_config",
]
