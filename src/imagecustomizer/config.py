"""Configuration file loading."""

import asyncio
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from imagecustomizer.errors import ConfigError
from imagecustomizer.models.config import ImageCustomizerConfig


logger = logging.getLogger(__name__)


def _read_yaml(file_path: Path) -> Any:
    """Read and parse a YAML file."""
    yaml = YAML(typ="safe")
    return yaml.load(file_path.read_text())


class ConfigManager:
    """Loads and validates a customization config file.

    Relative paths inside the config (additional files, scripts, password
    files, SSH keys, package lists) are resolved against the directory the
    config file lives in.
    """

    def __init__(self, config_file: Union[str, Path]):
        """Initialize configuration manager."""
        self.config_file = Path(config_file).absolute()
        self.base_path = self.config_file.parent
        self.config: Optional[ImageCustomizerConfig] = None

    async def load(self) -> ImageCustomizerConfig:
        """Load the configuration file."""
        logger.info(f"Loading configuration from {self.config_file}")

        if not self.config_file.exists():
            raise ConfigError(f"config file not found: {self.config_file}")

        try:
            data = await asyncio.to_thread(_read_yaml, self.config_file)
        except (OSError, YAMLError) as e:
            logger.error(f"Failed to read {self.config_file}: {e}")
            raise ConfigError(f"failed to read config file ({self.config_file}): {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"config file ({self.config_file}) must contain a mapping")

        try:
            self.config = ImageCustomizerConfig(**data)
        except ValidationError as e:
            logger.error(f"Invalid config: {e}")
            raise ConfigError(f"invalid config file ({self.config_file}):\n{e}") from e

        logger.debug(f"Loaded config: {self.config_file}")
        return self.config


async def load_package_list(file_path: Union[str, Path]) -> List[str]:
    """Load a package list file (a mapping with a ``packages`` list)."""
    file_path = Path(file_path)
    try:
        data = await asyncio.to_thread(_read_yaml, file_path)
    except (OSError, YAMLError) as e:
        raise ConfigError(f"failed to read package list ({file_path}): {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"package list ({file_path}) must contain a mapping")

    packages = data.get("packages", [])
    if not isinstance(packages, list) or not all(isinstance(p, str) for p in packages):
        raise ConfigError(f"package list ({file_path}) must hold a list of package names")

    return packages
