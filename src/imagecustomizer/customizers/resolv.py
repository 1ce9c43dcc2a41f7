"""Host name resolution inside the image root."""

import asyncio
import contextlib
import logging
import shutil
from pathlib import Path
from typing import AsyncIterator

from imagecustomizer.errors import ResolvConfError
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)

RESOLV_CONF_PATH = "/etc/resolv.conf"


def _remove(path: Path) -> None:
    """Remove a file, symlink or directory; a missing path is fine."""
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    else:
        path.unlink(missing_ok=True)


async def override_resolv_conf(image_chroot: ImageChroot, host_resolv_conf: Path = Path(RESOLV_CONF_PATH)) -> None:
    """Replace the image's resolv.conf with the host's.

    The image is expected to manage resolv.conf itself at boot (e.g.
    systemd-resolved), so the original is not backed up.
    """
    logger.debug("Overriding resolv.conf file")
    image_resolv_conf = image_chroot.path(RESOLV_CONF_PATH)

    try:
        await asyncio.to_thread(_remove, image_resolv_conf)
    except OSError as e:
        logger.error(f"Failed to delete {image_resolv_conf}: {e}")
        raise ResolvConfError(f"failed to delete existing resolv.conf file: {e}") from e

    try:
        await asyncio.to_thread(lambda: image_resolv_conf.parent.mkdir(parents=True, exist_ok=True))
        await asyncio.to_thread(shutil.copyfile, host_resolv_conf, image_resolv_conf)
    except OSError as e:
        logger.error(f"Failed to copy {host_resolv_conf} to {image_resolv_conf}: {e}")
        raise ResolvConfError(f"failed to override resolv.conf file with host's resolv.conf: {e}") from e


async def restore_resolv_conf(image_chroot: ImageChroot) -> None:
    """Delete the overridden resolv.conf."""
    logger.debug("Deleting overridden resolv.conf file")
    image_resolv_conf = image_chroot.path(RESOLV_CONF_PATH)

    try:
        await asyncio.to_thread(_remove, image_resolv_conf)
    except OSError as e:
        logger.error(f"Failed to delete {image_resolv_conf}: {e}")
        raise ResolvConfError(f"failed to delete overridden resolv.conf file: {e}") from e


@contextlib.asynccontextmanager
async def resolv_conf_override(
    image_chroot: ImageChroot,
    host_resolv_conf: Path = Path(RESOLV_CONF_PATH),
) -> AsyncIterator[None]:
    """Keep the host's resolv.conf in the image for the duration of the block.

    Once the override is in place it is removed on every exit path. When the
    block raises, a failure to remove it is logged and the block's exception
    propagates.
    """
    await override_resolv_conf(image_chroot, host_resolv_conf)
    try:
        yield
    except BaseException:
        try:
            await restore_resolv_conf(image_chroot)
        except ResolvConfError as e:
            logger.error(f"Failed to restore resolv.conf after error: {e}")
        raise
    else:
        await restore_resolv_conf(image_chroot)
