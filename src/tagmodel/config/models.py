"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, ``[tool.tagmodel]`` only
contains overrides.  An empty table (or no file at all) yields the
defaults below.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# --- [tool.tagmodel] sections ---


class EngineConfig(BaseModel):
    """[tool.tagmodel.engine] section."""

    model_config = {"frozen": True}

    builtins_enabled: bool = True


class LoggingConfig(BaseModel):
    """[tool.tagmodel.logging] section."""

    model_config = {"frozen": True}

    verbose: bool = False
    log_json: bool = False


class TagmodelConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
