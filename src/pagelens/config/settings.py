"""Configuration management for pagelens.

Loads settings from a YAML configuration file with environment variable
overrides. Supports .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config/pagelens.yaml")


class BrowserConfig(BaseModel):
    engine: Literal["chromium", "firefox", "webkit"] = Field(default="chromium")
    headless: bool = Field(default=False)
    viewport_width: int = Field(default=1920, gt=0)
    viewport_height: int = Field(default=1080, gt=0)
    default_wait_until: Literal["load", "networkidle"] = Field(default="load")
    default_timeout_ms: float = Field(default=30000, gt=0)


class RendererConfig(BaseModel):
    enabled: bool | None = Field(
        default=None,
        description="Use the external renderer; None auto-detects a bare terminal",
    )
    path: str = Field(default="awrit")
    settle_delay: float = Field(default=1.0, ge=0)


class DisplayConfig(BaseModel):
    cell_width: int = Field(default=80, gt=0)
    cell_height: int = Field(default=40, gt=0)
    chunk_size: int = Field(default=4096, gt=0)
    probe_timeout: float = Field(default=0.1, gt=0)


class WorkspaceConfig(BaseModel):
    directory: Path = Field(default=Path("."))
    state_dirname: str = Field(default=".pagelens/browser")

    @property
    def state_dir(self) -> Path:
        return self.directory / self.state_dirname

    @property
    def log_dir(self) -> Path:
        return self.state_dir / "logs"

    @property
    def screenshot_dir(self) -> Path:
        return self.state_dir / "screenshots"


class EndpointConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8765, ge=1, le=65535)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")
    format: str = Field(
        default="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    file: str | None = Field(default=None)


class Settings(BaseSettings):
    """Root configuration for the pagelens system.

    Loads from YAML file and supports environment variable overrides.
    Reads .env files automatically.
    """

    model_config = {
        "env_prefix": "PAGELENS_",
        "env_nested_delimiter": "__",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    workspace: WorkspaceConfig = Field(default_factory=WorkspaceConfig)
    endpoint: EndpointConfig = Field(default_factory=EndpointConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML arrives as init kwargs and must rank below the environment
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML + .env + environment variables.

    Priority: env vars > .env file > YAML file > defaults
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH

    yaml_data = {}
    if path.exists():
        with open(path) as f:
            yaml_data = yaml.safe_load(f) or {}
        logger.info("Loaded configuration from %s", path)
    else:
        logger.warning("Config file %s not found, using defaults + env vars", path)

    _apply_env_overrides(yaml_data)

    return Settings(**yaml_data)


def _apply_env_overrides(yaml_data: dict) -> None:
    """Apply environment variable overrides for non-prefixed vars."""
    awrit_path = os.environ.get("AWRIT_PATH", "")
    if not awrit_path:
        return
    renderer = yaml_data.setdefault("renderer", {})
    if not renderer.get("path"):
        renderer["path"] = awrit_path
