"""Custom script execution inside the image."""

import logging
import subprocess
from pathlib import Path, PurePosixPath
from typing import List

from imagecustomizer.errors import ScriptError
from imagecustomizer.models.system import ScriptSpec
from imagecustomizer.utils.chroot import ImageChroot
from imagecustomizer.utils.commands import run_command
from imagecustomizer.utils.mount import bind_mount


logger = logging.getLogger(__name__)

CONFIG_DIR_MOUNT_PATH = "/_imageconfigs"
SHELL_PROGRAM = "/bin/sh"


def script_command(script: ScriptSpec) -> str:
    """Command line that runs a script from the mounted config directory."""
    script_path = PurePosixPath(CONFIG_DIR_MOUNT_PATH) / script.path
    return f"{script_path} {script.args}".rstrip()


async def run_scripts(base_path: Path, scripts: List[ScriptSpec], image_chroot: ImageChroot) -> None:
    """Run scripts in order with the config directory mounted read-only."""
    if not scripts:
        return

    # Config dir stays mounted for every script in the list.
    async with bind_mount(base_path, image_chroot.path(CONFIG_DIR_MOUNT_PATH), read_only=True):
        for script in scripts:
            command = script_command(script)
            logger.info(f"Running script ({script.path})")

            try:
                await image_chroot.unsafe_run(
                    lambda: run_command([SHELL_PROGRAM, "-c", command], stream=True)
                )
            except subprocess.CalledProcessError as e:
                logger.error(f"Script {script.path} failed with exit code {e.returncode}")
                raise ScriptError(
                    f"script ({script.path}) failed with exit code {e.returncode}:\n{e.stderr}"
                ) from e
