"""User account provisioning."""

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

from imagecustomizer.errors import UserProvisioningError
from imagecustomizer.models.user import UserSpec
from imagecustomizer.utils import accounts
from imagecustomizer.utils.chroot import ImageChroot


logger = logging.getLogger(__name__)


async def add_or_update_users(users: List[UserSpec], base_path: Path, image_chroot: ImageChroot) -> None:
    """Provision each user in order."""
    for user in users:
        await add_or_update_user(user, base_path, image_chroot)


async def _read_password(user: UserSpec, base_path: Path) -> Optional[str]:
    """Resolve the password material of a user; a password file wins.

    A single trailing newline in the password file is not part of the
    password.
    """
    if not user.password_path:
        return user.password

    if user.password is not None:
        logger.warning(f"User {user.name} sets both password and password_path, using password_path")

    password_file = Path(base_path) / user.password_path
    try:
        content = await asyncio.to_thread(password_file.read_text)
    except OSError as e:
        logger.error(f"Failed to read password file {password_file}: {e}")
        raise UserProvisioningError(f"failed to read password file ({password_file}): {e}") from e

    return content[:-1] if content.endswith("\n") else content


def _check_password(user: UserSpec, password: str) -> None:
    """Password material ends up in a single shadow field."""
    if not password or "\n" in password:
        raise UserProvisioningError(f"password of user ({user.name}) must be a single non-empty line")
    if user.password_hashed and ":" in password:
        raise UserProvisioningError(f"hashed password of user ({user.name}) contains ':'")


async def add_or_update_user(user: UserSpec, base_path: Path, image_chroot: ImageChroot) -> None:
    """Create the account, or update the password of an existing one.

    Expiry, group membership, SSH keys and startup command are applied every
    time, so re-running with the same user converges to the same state.
    """
    logger.info(f"Adding/updating user ({user.name})")

    password = await _read_password(user, base_path)

    hashed_password = password
    if password is not None:
        _check_password(user, password)
        if not user.password_hashed:
            hashed_password = await accounts.hash_password(password)

    if await accounts.user_exists(user.name, image_chroot):
        if hashed_password is not None:
            logger.debug(f"User {user.name} exists, updating password")
            await accounts.update_user_password(image_chroot.root_dir, user.name, hashed_password)
    else:
        await accounts.add_user(user.name, hashed_password, user.uid, image_chroot)

    if user.password_expires_days is not None:
        await accounts.chage(image_chroot, user.password_expires_days, user.name)

    await accounts.configure_user_group_membership(
        image_chroot, user.name, user.primary_group, user.secondary_groups
    )

    await accounts.provision_user_ssh_certs(
        image_chroot, user.name, [Path(base_path) / key for key in user.ssh_pubkey_paths]
    )

    await accounts.configure_user_startup_command(image_chroot, user.name, user.startup_command)
