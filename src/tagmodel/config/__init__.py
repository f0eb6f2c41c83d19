"""Configuration — section models, TOML discovery, settings and logging."""

from tagmodel.config.logging import configure_from, configure_logging
from tagmodel.config.models import EngineConfig, LoggingConfig, TagmodelConfig
from tagmodel.config.settings import TagmodelSettings

__all__ = [
    "EngineConfig",
    "LoggingConfig",
    "TagmodelConfig",
    "TagmodelSettings",
    "configure_from",
    "configure_logging",
]
