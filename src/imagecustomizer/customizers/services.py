"""Service enablement inside the image."""

import logging
import subprocess

from imagecustomizer.errors import CustomizationError
from imagecustomizer.models.system import ServicesConfig
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)


async def enable_or_disable_services(services: ServicesConfig, image_chroot: ImageChroot) -> None:
    """Enable, then disable, the configured systemd units."""
    for service in services.enable:
        logger.info(f"Enabling service ({service.name})")
        try:
            await image_chroot.run(["systemctl", "enable", service.name])
        except subprocess.CalledProcessError as e:
            logger.error(f"Failed to enable service {service.name}: {e}")
            raise CustomizationError(f"failed to enable service ({service.name}):\n{e.stderr}") from e

    for service in services.disable:
        logger.info(f"Disabling service ({service.name})")
        try:
            await image_chroot.run(["systemctl", "disable", service.name])
        except subprocess.CalledProcessError as e:
            logger.error(f"Failed to disable service {service.name}: {e}")
            raise CustomizationError(f"failed to disable service ({service.name}):\n{e.stderr}") from e
