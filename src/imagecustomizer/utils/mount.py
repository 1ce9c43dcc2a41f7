"""Scoped bind mounts into the image root."""

import asyncio
import contextlib
import logging
import subprocess
from pathlib import Path
from typing import AsyncIterator, Union

from imagecustomizer.errors import MountError
from imagecustomizer.utils.commands import run_command


logger = logging.getLogger(__name__)


class BindMount:
    """One active bind mount.

    ``close`` is the best-effort release used when the owner is failing;
    ``clean_close`` is the verified release used on success. Both are
    idempotent.
    """

    def __init__(self, source: Union[str, Path], target: Union[str, Path]):
        """Initialize an inactive mount."""
        self.source = Path(source)
        self.target = Path(target)
        self._mounted = False
        self._created_target = False

    @classmethod
    async def create(
        cls,
        source: Union[str, Path],
        target: Union[str, Path],
        read_only: bool = True,
    ) -> "BindMount":
        """Bind-mount ``source`` at ``target`` and return the active mount."""
        mount = cls(source, target)
        await mount._mount(read_only)
        return mount

    @property
    def mounted(self) -> bool:
        """Whether the mount is still active."""
        return self._mounted

    async def _mount(self, read_only: bool) -> None:
        """Create the mount point if needed and mount."""
        if not await asyncio.to_thread(self.target.exists):
            try:
                await asyncio.to_thread(lambda: self.target.mkdir(parents=True))
            except OSError as e:
                raise MountError(f"failed to create mount point ({self.target}): {e}") from e
            self._created_target = True

        logger.debug(f"Bind mounting {self.source} at {self.target}")
        try:
            await run_command(["mount", "--bind", str(self.source), str(self.target)])
        except subprocess.CalledProcessError as e:
            await self._remove_target(strict=False)
            raise MountError(
                f"failed to bind mount ({self.source}) to ({self.target}): {e.stderr}"
            ) from e
        self._mounted = True

        if read_only:
            # A bind mount ignores "ro" on the first call, it must be remounted.
            try:
                await run_command(["mount", "-o", "remount,bind,ro", str(self.target)])
            except subprocess.CalledProcessError as e:
                await self.close()
                raise MountError(
                    f"failed to remount ({self.target}) read-only: {e.stderr}"
                ) from e

    async def close(self) -> None:
        """Release the mount, falling back to a lazy unmount."""
        if self._mounted:
            try:
                await run_command(["umount", str(self.target)])
            except subprocess.CalledProcessError as e:
                logger.warning(f"Failed to unmount {self.target}, detaching lazily: {e.stderr}")
                try:
                    await run_command(["umount", "--lazy", str(self.target)])
                except subprocess.CalledProcessError as lazy_error:
                    raise MountError(
                        f"failed to unmount ({self.target}): {lazy_error.stderr}"
                    ) from lazy_error
            self._mounted = False

        await self._remove_target(strict=False)

    async def clean_close(self) -> None:
        """Release the mount and verify it is gone."""
        if self._mounted:
            try:
                await run_command(["umount", str(self.target)])
            except subprocess.CalledProcessError as e:
                raise MountError(f"failed to unmount ({self.target}): {e.stderr}") from e
            self._mounted = False

            result = await run_command(["mountpoint", "-q", str(self.target)], check=False)
            if result.returncode == 0:
                self._mounted = True
                raise MountError(f"({self.target}) is still a mount point after unmount")

        await self._remove_target(strict=True)

    async def _remove_target(self, strict: bool) -> None:
        """Remove the mount point if this mount created it."""
        if not self._created_target:
            return

        try:
            await asyncio.to_thread(self.target.rmdir)
        except FileNotFoundError:
            pass
        except OSError as e:
            if strict:
                raise MountError(f"failed to remove mount point ({self.target}): {e}") from e
            logger.warning(f"Failed to remove mount point {self.target}: {e}")
            return
        self._created_target = False


@contextlib.asynccontextmanager
async def bind_mount(
    source: Union[str, Path],
    target: Union[str, Path],
    read_only: bool = True,
) -> AsyncIterator[BindMount]:
    """Bind-mount for the duration of the block.

    The mount is released with ``clean_close`` when the block succeeds and
    with ``close`` when it raises; in the latter case a release failure is
    logged and the original exception propagates.
    """
    mount = await BindMount.create(source, target, read_only=read_only)
    try:
        yield mount
    except BaseException:
        try:
            await mount.close()
        except MountError as e:
            logger.error(f"Failed to release mount {mount.target}: {e}")
        raise
    else:
        try:
            await mount.clean_close()
        except MountError:
            try:
                await mount.close()
            except MountError as e:
                logger.error(f"Failed to release mount {mount.target}: {e}")
            raise
