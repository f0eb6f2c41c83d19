"""Unified settings — init kwargs, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — overrides passed by the embedding application
  2. Env vars     — ``TAGMODEL_*`` prefix, ``__`` for nested sections
  3. TOML file    — ``[tool.tagmodel]`` or ``tagmodel.toml`` via walk-up
  4. Code defaults — baked into the section models

Uses Pydantic Settings v2 with a custom :class:`TomlSettingsSource` that
reuses the ``find_config`` walk-up discovery from
:mod:`tagmodel.config.discovery`.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from tagmodel.config.discovery import find_config, read_config_table
from tagmodel.config.models import EngineConfig, LoggingConfig, TagmodelConfig


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from the tagmodel table of a discovered TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            self._data = read_config_table(toml_path)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        """Return the full TOML data dict for Pydantic to merge."""
        return self._data


# Thread-local storage for TOML path during construction.
_tls = threading.local()


class TagmodelSettings(BaseSettings):
    """Unified settings for an embedding application.

    Attributes:
        config_path: The TOML file the settings were read from, if any.
        engine: Engine section (built-in fallback switch).
        logging: Logging section consumed by :func:`configure_logging`.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "TAGMODEL_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    engine: EngineConfig = Field(default_factory=EngineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def load(
        cls,
        *,
        config_path: str | Path | None = None,
        start: Path | None = None,
        **overrides: Any,
    ) -> TagmodelSettings:
        """Construct settings for the current process.

        Uses the explicit *config_path* when it names a file, otherwise
        discovers one by walking up from *start*.  *overrides* win over
        every other source.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if p.is_file():
                toml_path = p
        else:
            toml_path = find_config(start)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **overrides)
        finally:
            _tls.toml_path = None

    def to_config(self) -> TagmodelConfig:
        """Drop the resolution metadata and return the plain config tree."""
        return TagmodelConfig(engine=self.engine, logging=self.logging)
