"""Image root handle used to stage files and run commands inside the image."""

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar, Union

from imagecustomizer.errors import ChrootError
from imagecustomizer.utils.commands import CommandResult, run_command


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class FileToCopy:
    """Host file to stage into the image root."""
    src: Path
    dest: str
    mode: Optional[int] = None


class ImageChroot:
    """An unpacked image root that commands can be run inside of.

    The handle is opened by the caller and stays usable after a
    customization run; nothing here unmounts or deletes the root.
    """

    def __init__(self, root_dir: Union[str, Path]):
        """Initialize the chroot handle."""
        self._root_dir = Path(root_dir).resolve()
        self._entered = False

    @property
    def root_dir(self) -> Path:
        """Absolute host path of the image root."""
        return self._root_dir

    def path(self, in_chroot_path: str) -> Path:
        """Translate an absolute in-image path to its host path."""
        return self._root_dir / in_chroot_path.lstrip("/")

    async def add_files(self, *files: FileToCopy) -> None:
        """Copy host files into the image root."""
        for file_to_copy in files:
            dest = self.path(file_to_copy.dest)
            logger.debug(f"Copying {file_to_copy.src} to {dest}")

            try:
                await asyncio.to_thread(lambda: dest.parent.mkdir(parents=True, exist_ok=True))
                await asyncio.to_thread(shutil.copy, file_to_copy.src, dest)
                if file_to_copy.mode is not None:
                    await asyncio.to_thread(os.chmod, dest, file_to_copy.mode)
            except OSError as e:
                logger.error(f"Failed to copy {file_to_copy.src} into image: {e}")
                raise ChrootError(
                    f"failed to copy file ({file_to_copy.src}) to ({file_to_copy.dest}): {e}"
                ) from e

    async def unsafe_run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Await ``fn()`` with the process root switched to the image root.

        The root is process-wide state, so this may only be used by a single
        flow of control at a time; a nested or overlapping call is refused.
        """
        if self._entered:
            raise ChrootError(f"chroot ({self._root_dir}) is already entered")

        saved_cwd = os.getcwd()
        saved_root = os.open("/", os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.chroot(self._root_dir)
            os.chdir("/")
        except OSError as e:
            os.close(saved_root)
            raise ChrootError(f"failed to enter chroot ({self._root_dir}): {e}") from e

        self._entered = True
        try:
            return await fn()
        finally:
            try:
                os.fchdir(saved_root)
                os.chroot(".")
                os.chdir(saved_cwd)
            except OSError as e:
                raise ChrootError(f"failed to leave chroot ({self._root_dir}): {e}") from e
            finally:
                os.close(saved_root)
                self._entered = False

    async def run(self, cmd: List[str], **kwargs: Any) -> CommandResult:
        """Run a command inside the image root, streaming its output."""
        kwargs.setdefault("stream", True)
        return await self.unsafe_run(lambda: run_command(cmd, **kwargs))
