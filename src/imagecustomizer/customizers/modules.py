"""Kernel module configuration."""

import asyncio
import logging
from pathlib import Path

from imagecustomizer.errors import CustomizationError
from imagecustomizer.models.system import ModulesConfig
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)

MODULES_LOAD_DIR = "/etc/modules-load.d"
MODPROBE_DIR = "/etc/modprobe.d"


def _write(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


async def load_or_disable_modules(modules: ModulesConfig, image_chroot: ImageChroot) -> None:
    """Write modules-load.d and modprobe.d directives for the configured modules."""
    for module in modules.load:
        logger.info(f"Loading kernel module ({module.name})")
        module_file = image_chroot.path(MODULES_LOAD_DIR) / f"{module.name}.conf"
        try:
            await asyncio.to_thread(_write, module_file, f"{module.name}\n")
        except OSError as e:
            logger.error(f"Failed to write {module_file}: {e}")
            raise CustomizationError(f"failed to write module load configuration: {e}") from e

        if module.options:
            options = " ".join(f"{key}={value}" for key, value in module.options.items())
            options_file = image_chroot.path(MODPROBE_DIR) / f"{module.name}-options.conf"
            try:
                await asyncio.to_thread(_write, options_file, f"options {module.name} {options}\n")
            except OSError as e:
                logger.error(f"Failed to write {options_file}: {e}")
                raise CustomizationError(f"failed to write module options configuration: {e}") from e

    for module in modules.disable:
        logger.info(f"Disabling kernel module ({module.name})")
        module_file = image_chroot.path(MODPROBE_DIR) / f"{module.name}.conf"
        try:
            await asyncio.to_thread(_write, module_file, f"blacklist {module.name}\n")
        except OSError as e:
            logger.error(f"Failed to write {module_file}: {e}")
            raise CustomizationError(f"failed to write module disable configuration: {e}") from e
