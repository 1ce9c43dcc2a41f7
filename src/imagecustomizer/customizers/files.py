"""Additional file provisioning."""

import logging
from pathlib import Path
from typing import Dict, List

from imagecustomizer.models.system import FileConfig
from imagecustomizer.utils.chroot import FileToCopy, ImageChroot


logger = logging.getLogger(__name__)


async def copy_additional_files(
    base_path: Path,
    additional_files: Dict[str, List[FileConfig]],
    image_chroot: ImageChroot,
) -> None:
    """Copy config-relative files into the image, one source to many destinations."""
    for source_file, file_configs in additional_files.items():
        for file_config in file_configs:
            logger.info(f"Copying file ({source_file}) to ({file_config.path})")
            await image_chroot.add_files(
                FileToCopy(
                    src=Path(base_path) / source_file,
                    dest=file_config.path,
                    mode=file_config.mode,
                )
            )
