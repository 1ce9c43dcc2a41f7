"""Package removal, installation and update inside the image."""

import asyncio
import contextlib
import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from imagecustomizer.config import load_package_list
from imagecustomizer.errors import PackageError
from imagecustomizer.models.system import PackagesConfig
from imagecustomizer.utils.chroot import ImageChroot
from imagecustomizer.utils.mount import bind_mount


logger = logging.getLogger(__name__)

PACKAGE_MANAGER = "tdnf"
PACKAGE_CACHE_PATH = "/var/cache/tdnf"
LOCAL_REPO_PREFIX = "_localrepo"


async def _collect(names: List[str], list_files: List[str], base_path: Path) -> List[str]:
    """Inline package names followed by the ones from package list files."""
    packages = list(names)
    for list_file in list_files:
        packages += await load_package_list(Path(base_path) / list_file)
    return packages


async def _run_package_manager(image_chroot: ImageChroot, args: List[str], action: str, packages: List[str]):
    cmd = [PACKAGE_MANAGER, "-y"] + args
    try:
        await image_chroot.run(cmd)
    except subprocess.CalledProcessError as e:
        logger.error(f"Failed to {action} packages: {e}")
        raise PackageError(f"failed to {action} packages ({', '.join(packages)}):\n{e.stderr}") from e


async def add_remove_and_update_packages(
    build_dir: Path,
    base_path: Path,
    packages: PackagesConfig,
    image_chroot: ImageChroot,
    package_sources: Sequence[Path],
    use_base_repos: bool = True,
) -> None:
    """Remove, update and install packages.

    Each package source directory is exposed to the package manager as a
    local repository, and downloads are cached under ``build_dir`` so they
    do not end up in the image.
    """
    remove = await _collect(packages.remove, packages.remove_lists, base_path)
    install = await _collect(packages.install, packages.install_lists, base_path)
    update = await _collect(packages.update, packages.update_lists, base_path)

    if not (remove or install or update or packages.update_existing):
        return

    repo_options: List[str] = []
    if not use_base_repos:
        repo_options.append("--disablerepo=*")

    async with contextlib.AsyncExitStack() as stack:
        cache_dir = Path(build_dir) / "package-cache"
        try:
            await asyncio.to_thread(lambda: cache_dir.mkdir(parents=True, exist_ok=True))
        except OSError as e:
            raise PackageError(f"failed to create package cache ({cache_dir}): {e}") from e
        await stack.enter_async_context(
            bind_mount(cache_dir, image_chroot.path(PACKAGE_CACHE_PATH), read_only=False)
        )

        for index, source in enumerate(package_sources):
            repo_name = f"{LOCAL_REPO_PREFIX}{index}"
            await stack.enter_async_context(
                bind_mount(source, image_chroot.path(f"/{repo_name}"), read_only=True)
            )
            repo_options += [f"--repofrompath={repo_name},/{repo_name}", f"--enablerepo={repo_name}"]

        if remove:
            logger.info(f"Removing packages ({', '.join(remove)})")
            await _run_package_manager(image_chroot, ["remove"] + remove, "remove", remove)

        if packages.update_existing:
            logger.info("Updating existing packages")
            await _run_package_manager(image_chroot, repo_options + ["update"], "update", ["*"])

        if install:
            logger.info(f"Installing packages ({', '.join(install)})")
            await _run_package_manager(image_chroot, repo_options + ["install"] + install, "install", install)

        if update:
            logger.info(f"Updating packages ({', '.join(update)})")
            await _run_package_manager(image_chroot, repo_options + ["update"] + update, "update", update)
