"""Configuration service - manages <home>/config.yaml."""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class ProxyConfig(BaseModel):
    enable: bool = False
    url: str = Field(default="", description="e.g. http://127.0.0.1:7890")


class StorageConfig(BaseModel):
    sdk_path: str = Field(default="", description="Where SDKs are installed; empty means <home>/cache")


class AppConfig(BaseModel):
    """Host runtime configuration handed to plugins and the installer."""

    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    hook_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Seconds a plugin hook may run before it is aborted; unset means no limit",
    )

    @property
    def proxy_url(self) -> Optional[str]:
        if self.proxy.enable and self.proxy.url:
            return self.proxy.url
        return None


class ConfigService:
    """Loads and saves the YAML configuration file.

    Config format:
        proxy:
          enable: false
          url: ""
        storage:
          sdk_path: ""
        hook_timeout: 120
    """

    def __init__(self, config_file: Path):
        self.config_file = config_file
        self._config: AppConfig = self._load()

    def _load(self) -> AppConfig:
        """Load config from file, falling back to defaults."""
        if self.config_file.exists():
            try:
                with open(self.config_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f) or {}
                return AppConfig.model_validate(data)
            except (yaml.YAMLError, OSError) as e:
                logger.error(f"Error loading config {self.config_file}: {e}")
            except ValidationError as e:
                logger.error(f"Invalid config in {self.config_file}: {e}")

        return AppConfig()

    @property
    def config(self) -> AppConfig:
        return self._config

    def save(self) -> None:
        """Save config to file."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._config.model_dump(), f, sort_keys=False, allow_unicode=True)
        logger.debug(f"Saved config to {self.config_file}")

    def reload(self) -> None:
        """Reload config from disk."""
        self._config = self._load()
