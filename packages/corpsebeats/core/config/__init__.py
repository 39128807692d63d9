"""Configuration management for Corpse Beats."""

from corpsebeats.core.config.loader import (
    configure_logging,
    load_app_config,
    load_config,
)
from corpsebeats.core.config.models import (
    AppConfig,
    AudioModelConfig,
    CaptionModelConfig,
    ChainConfig,
    ClientConfig,
    ExecutionMode,
    GatewayRetryConfig,
    ImageModelConfig,
    LoggingConfig,
    ModelsConfig,
    ProviderConfig,
    ServerConfig,
    VideoModelConfig,
)

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "configure_logging",
    # Models
    "AppConfig",
    "ProviderConfig",
    "ModelsConfig",
    "AudioModelConfig",
    "ImageModelConfig",
    "CaptionModelConfig",
    "VideoModelConfig",
    "GatewayRetryConfig",
    "ChainConfig",
    "ExecutionMode",
    "ClientConfig",
    "ServerConfig",
    "LoggingConfig",
]
