"""Hostname customization."""

import asyncio
import logging
from typing import Optional

from imagecustomizer.errors import CustomizationError
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)

HOSTNAME_PATH = "/etc/hostname"


async def update_hostname(hostname: Optional[str], image_chroot: ImageChroot) -> None:
    """Write the image's hostname file."""
    if not hostname:
        return

    logger.info(f"Setting hostname ({hostname})")
    hostname_file = image_chroot.path(HOSTNAME_PATH)
    try:
        await asyncio.to_thread(lambda: hostname_file.parent.mkdir(parents=True, exist_ok=True))
        await asyncio.to_thread(hostname_file.write_text, hostname)
    except OSError as e:
        logger.error(f"Failed to write {hostname_file}: {e}")
        raise CustomizationError(f"failed to write hostname file: {e}") from e
