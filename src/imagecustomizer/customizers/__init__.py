"""Customization phases applied to an image root."""

from imagecustomizer.customizers.files import copy_additional_files
from imagecustomizer.customizers.hostname import update_hostname
from imagecustomizer.customizers.modules import load_or_disable_modules
from imagecustomizer.customizers.packages import add_remove_and_update_packages
from imagecustomizer.customizers.resolv import (
    override_resolv_conf,
    resolv_conf_override,
    restore_resolv_conf,
)
from imagecustomizer.customizers.scripts import run_scripts
from imagecustomizer.customizers.services import enable_or_disable_services
from imagecustomizer.customizers.users import add_or_update_user, add_or_update_users

__all__ = [
    "add_or_update_user",
    "add_or_update_users",
    "add_remove_and_update_packages",
    "copy_additional_files",
    "enable_or_disable_services",
    "load_or_disable_modules",
    "override_resolv_conf",
    "resolv_conf_override",
    "restore_resolv_conf",
    "run_scripts",
    "update_hostname",
]
