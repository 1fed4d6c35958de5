"""Host configuration.

Configuration is read from YAML or JSON. The first existing file among
``config.yaml``, ``config.yml`` and ``config.json`` in the Skadi config
directory wins; when none exists the defaults are used.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from skadi.core.errors import ConfigError
from skadi.core.logging import debug, info

CONFIG_DIR = Path.home() / ".config" / "skadi"
CONFIG_NAMES = ("config.yaml", "config.yml", "config.json")


class SkadiConfig(BaseModel):
    """Runtime settings for the host, loader and IPC client."""

    app_id: str = Field(default="dev.skadi.shell", min_length=1)
    host: str = Field(default="localhost", description="Host service address")
    port: int = Field(default=3497, ge=1, le=65535, description="Host HTTP service port")
    ipc_port: int = Field(default=3499, ge=1, le=65535, description="IPC socket port")
    request_timeout: float = Field(
        default=5.0, gt=0, description="Seconds before a socket request times out"
    )
    label: str = Field(default="main", min_length=1, description="Window label sent with exec")
    plugins_dir: Path = Field(default_factory=lambda: CONFIG_DIR / "plugins")
    scripts_dir: Path = Field(default_factory=lambda: CONFIG_DIR)

    model_config = {"extra": "forbid"}

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


def possible_configs(config_dir: Path | None = None) -> list[Path]:
    """List candidate configuration files in lookup order."""
    directory = config_dir or CONFIG_DIR
    return [directory / name for name in CONFIG_NAMES]


def load_config(path: Path | None = None) -> SkadiConfig:
    """Load configuration from a file.

    Args:
        path: Explicit configuration file. When omitted the default
            locations are searched.

    Returns:
        Validated SkadiConfig (defaults if no file was found)

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Configuration file not found: {path}", str(path))
        return _load_file(path)

    for candidate in possible_configs():
        if candidate.exists():
            return _load_file(candidate)

    debug("No configuration file found, using defaults")
    return SkadiConfig()


def _load_file(path: Path) -> SkadiConfig:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration: {e}", str(path)) from e

    try:
        if path.suffix == ".json":
            data: Any = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse configuration located at {path}: {e}", str(path)) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration at {path} must be a mapping", str(path))

    try:
        config = SkadiConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration at {path}: {e}", str(path)) from e

    info(f"Loaded configuration from {path}", app_id=config.app_id)
    return config
