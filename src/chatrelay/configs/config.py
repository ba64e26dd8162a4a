"""Layered application settings built on pydantic-settings.

``get_app_config()`` builds a fresh ``AppConfig`` on every call, so an
edited ConfigMap is seen by the next lifespan or request without a
restart.  Layers, first match wins:

1. Keyword arguments passed to ``AppConfig(...)``
2. ConfigMap YAML named by ``CHATRELAY_CONFIGMAP_FILE`` (skipped if absent)
3. ``CHATRELAY_*`` environment variables, ``__`` between nested keys
4. ``.env`` in the project root
5. ``configs/config.yaml``
6. Secrets directory, then field defaults

File locations are fixed at import time; their contents are not.
"""

import os
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .system import (
    AgentConfig,
    CacheConfig,
    LoggingConfig,
    RelayConfig,
    StatusConfig,
    ThirdPartyConfig,
    TracingConfig,
)

PROJECT_ROOT = Path(__file__).resolve().parents[3]
STATIC_CONFIG_FILE = PROJECT_ROOT / "configs" / "config.yaml"
DOTENV_FILE = PROJECT_ROOT / ".env"

ENV_PREFIX = "CHATRELAY_"
CONFIGMAP_ENV_VAR = f"{ENV_PREFIX}CONFIGMAP_FILE"
CONFIGMAP_CONFIG_FILE: Optional[Path] = (
    Path(os.environ[CONFIGMAP_ENV_VAR]) if os.environ.get(CONFIGMAP_ENV_VAR) else None
)


class AppConfig(BaseSettings):
    """Root settings object; one nested section per subsystem."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_nested_delimiter="__",
        env_file=DOTENV_FILE,
        env_file_encoding="utf-8",
        yaml_file=STATIC_CONFIG_FILE,
        yaml_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    third_party: ThirdPartyConfig = Field(
        default_factory=ThirdPartyConfig,
        description="Agent backend endpoints",
    )
    agent: AgentConfig = Field(
        default_factory=AgentConfig,
        description="Response generator and pipeline settings",
    )
    relay: RelayConfig = Field(
        default_factory=RelayConfig,
        description="Connection relay timing",
    )
    cache: CacheConfig = Field(
        default_factory=CacheConfig,
        description="Terminal metadata cache",
    )
    status: StatusConfig = Field(
        default_factory=StatusConfig,
        description="Aggregate status endpoint",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Log level and format",
    )
    tracing: TracingConfig = Field(
        default_factory=TracingConfig,
        description="OpenTelemetry export",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        configmap = CONFIGMAP_CONFIG_FILE
        layers: list[PydanticBaseSettingsSource] = [init_settings]
        if configmap is not None and configmap.is_file():
            layers.append(YamlConfigSettingsSource(settings_cls, yaml_file=configmap))
        layers += [
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        ]
        return tuple(layers)


def get_app_config() -> AppConfig:
    """FastAPI dependency returning freshly loaded settings.

    Tests replace it through ``app.dependency_overrides[get_app_config]``.
    """
    return AppConfig()
