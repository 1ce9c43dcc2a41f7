"""
imagecustomizer - chroot-scoped customization of unpacked OS image roots.

Applies network identity, packages, hostname, files, users, services,
kernel modules and scripts to an image root in a fixed order.
"""

__version__ = "1.0.0"

# Re-export key components for easier access
from imagecustomizer.customizer import customize, customize_image
from imagecustomizer.models.config import ImageCustomizerConfig
from imagecustomizer.models.system import SystemConfig
from imagecustomizer.models.user import UserSpec
from imagecustomizer.utils.chroot import ImageChroot

__all__ = [
    "ImageChroot",
    "ImageCustomizerConfig",
    "SystemConfig",
    "UserSpec",
    "customize",
    "customize_image",
]
