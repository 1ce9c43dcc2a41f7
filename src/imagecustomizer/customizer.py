"""Customization pipeline."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union

from imagecustomizer.config import ConfigManager
from imagecustomizer.customizers.files import copy_additional_files
from imagecustomizer.customizers.hostname import update_hostname
from imagecustomizer.customizers.modules import load_or_disable_modules
from imagecustomizer.customizers.packages import add_remove_and_update_packages
from imagecustomizer.customizers.resolv import resolv_conf_override
from imagecustomizer.customizers.scripts import run_scripts
from imagecustomizer.customizers.services import enable_or_disable_services
from imagecustomizer.customizers.users import add_or_update_users
from imagecustomizer.errors import CustomizationError
from imagecustomizer.models.config import ImageCustomizerConfig
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)


async def customize(
    build_dir: Path,
    base_path: Path,
    config: ImageCustomizerConfig,
    image_chroot: ImageChroot,
    package_sources: Sequence[Path] = (),
    use_base_repos: bool = True,
) -> None:
    """Apply every customization to the image root, in a fixed order.

    Later steps rely on the earlier ones having run (scripts expect packages
    and services to be in place), so the order must not change. The first
    failure aborts the run and nothing already applied is undone. The host's
    resolv.conf is only present in the image while the steps run.
    """
    system_config = config.system_config

    async with resolv_conf_override(image_chroot):
        await add_remove_and_update_packages(
            build_dir, base_path, system_config.packages, image_chroot, package_sources, use_base_repos
        )

        await update_hostname(system_config.hostname, image_chroot)

        await copy_additional_files(base_path, system_config.additional_files, image_chroot)

        await add_or_update_users(system_config.users, base_path, image_chroot)

        await enable_or_disable_services(system_config.services, image_chroot)

        await load_or_disable_modules(system_config.modules, image_chroot)

        await run_scripts(base_path, system_config.post_install_scripts, image_chroot)

        await run_scripts(base_path, system_config.finalize_image_scripts, image_chroot)


async def customize_image(
    config_file: Union[str, Path],
    image_dir: Union[str, Path],
    build_dir: Union[str, Path],
    package_sources: Sequence[Path] = (),
    use_base_repos: bool = True,
    config: Optional[ImageCustomizerConfig] = None,
) -> None:
    """Load a config file and customize an unpacked image root with it."""
    config_manager = ConfigManager(config_file)
    if config is None:
        config = await config_manager.load()

    image_dir = Path(image_dir)
    if not image_dir.is_dir():
        raise CustomizationError(f"image root ({image_dir}) is not a directory")

    start_time = datetime.now()
    logger.info(f"Customizing image root {image_dir}")

    try:
        await customize(
            Path(build_dir),
            config_manager.base_path,
            config,
            ImageChroot(image_dir),
            [Path(source) for source in package_sources],
            use_base_repos,
        )
    except CustomizationError as e:
        logger.error(f"Customization failed: {e}")
        raise

    duration = (datetime.now() - start_time).total_seconds()
    logger.info(f"Customization completed in {duration:.2f}s")
