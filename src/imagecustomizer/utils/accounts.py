"""Account management inside an image root.

The passwd and shadow databases are edited directly where that is a plain
field update; anything that needs the distribution's own policy (home
directory creation, group lookups) goes through the shadow-utils tools run
inside the chroot.
"""

import asyncio
import logging
import os
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional

from imagecustomizer.errors import UserProvisioningError
from imagecustomizer.utils.chroot import ImageChroot
from imagecustomizer.utils.commands import run_command


logger = logging.getLogger(__name__)

PASSWD_PATH = "etc/passwd"
SHADOW_PATH = "etc/shadow"

NO_PASSWORD_EXPIRATION = -1


def _read_entries(path: Path) -> List[List[str]]:
    """Read a colon-separated account database."""
    return [line.split(":") for line in path.read_text().splitlines() if line]


def _update_entry(path: Path, name: str, update: Callable[[List[str]], List[str]]) -> None:
    """Rewrite the entry for ``name`` in a colon-separated account database."""
    lines = path.read_text().splitlines()
    found = False
    for index, line in enumerate(lines):
        fields = line.split(":")
        if fields[0] == name:
            lines[index] = ":".join(update(fields))
            found = True
            break

    if not found:
        raise UserProvisioningError(f"user ({name}) not found in ({path})")

    path.write_text("\n".join(lines) + "\n")


def _home_dir(root_dir: Path, name: str) -> str:
    """Home directory of ``name`` as recorded in the image's passwd file."""
    for fields in _read_entries(root_dir / PASSWD_PATH):
        if fields[0] == name and len(fields) > 5 and fields[5]:
            return fields[5]
    return "/root" if name == "root" else f"/home/{name}"


async def hash_password(password: str) -> str:
    """Hash a plaintext password with SHA-512 crypt.

    openssl hashes every line of its input separately, so the password must
    be a single non-empty line.
    """
    if not password or "\n" in password:
        raise UserProvisioningError("password must be a single non-empty line")

    try:
        result = await run_command(["openssl", "passwd", "-6", "-stdin"], input=password)
    except subprocess.CalledProcessError as e:
        raise UserProvisioningError(f"failed to hash password: {e.stderr}") from e

    hashed_password = result.stdout.strip()
    if not hashed_password.startswith("$") or len(hashed_password.splitlines()) != 1:
        raise UserProvisioningError("password hashing produced unexpected output")

    return hashed_password


async def user_exists(name: str, image_chroot: ImageChroot) -> bool:
    """Check whether the account exists in the image."""
    passwd_path = image_chroot.root_dir / PASSWD_PATH
    try:
        entries = await asyncio.to_thread(_read_entries, passwd_path)
    except OSError as e:
        raise UserProvisioningError(f"failed to read ({passwd_path}): {e}") from e

    return any(fields[0] == name for fields in entries)


async def add_user(
    name: str,
    hashed_password: Optional[str],
    uid: Optional[int],
    image_chroot: ImageChroot,
) -> None:
    """Create an account with a home directory."""
    cmd = ["useradd", "-m"]
    if hashed_password:
        cmd += ["-p", hashed_password]
    if uid is not None:
        cmd += ["-u", str(uid)]
    cmd.append(name)

    try:
        await image_chroot.run(cmd)
    except subprocess.CalledProcessError as e:
        raise UserProvisioningError(f"failed to add user ({name}): {e.stderr}") from e


async def update_user_password(root_dir: Path, name: str, hashed_password: str) -> None:
    """Replace the password hash of an existing account."""
    shadow_path = Path(root_dir) / SHADOW_PATH

    def update(fields: List[str]) -> List[str]:
        fields[1] = hashed_password
        return fields

    try:
        await asyncio.to_thread(_update_entry, shadow_path, name, update)
    except OSError as e:
        raise UserProvisioningError(f"failed to update password of user ({name}): {e}") from e


async def chage(image_chroot: ImageChroot, expiry_days: int, name: str) -> None:
    """Set the password expiry of an account.

    The account expires ``expiry_days`` after its last password change;
    ``NO_PASSWORD_EXPIRATION`` clears both the maximum age and the expiry.
    """
    shadow_path = image_chroot.root_dir / SHADOW_PATH

    def update(fields: List[str]) -> List[str]:
        # name:password:lastchg:min:max:warn:inactive:expire:reserved
        fields += [""] * (9 - len(fields))
        if expiry_days == NO_PASSWORD_EXPIRATION:
            fields[4] = ""
            fields[7] = ""
        else:
            last_change = int(fields[2]) if fields[2] else int(time.time() // 86400)
            fields[2] = str(last_change)
            fields[4] = str(expiry_days)
            fields[7] = str(last_change + expiry_days)
        return fields

    try:
        await asyncio.to_thread(_update_entry, shadow_path, name, update)
    except (OSError, ValueError) as e:
        raise UserProvisioningError(f"failed to set password expiry of user ({name}): {e}") from e


async def configure_user_group_membership(
    image_chroot: ImageChroot,
    name: str,
    primary_group: Optional[str],
    secondary_groups: List[str],
) -> None:
    """Set the primary group and append the secondary groups."""
    try:
        if primary_group:
            await image_chroot.run(["usermod", "-g", primary_group, name])

        if secondary_groups:
            await image_chroot.run(["usermod", "-a", "-G", ",".join(secondary_groups), name])
    except subprocess.CalledProcessError as e:
        raise UserProvisioningError(f"failed to set groups of user ({name}): {e.stderr}") from e


async def provision_user_ssh_certs(
    image_chroot: ImageChroot,
    name: str,
    key_paths: List[Path],
) -> None:
    """Install the given public keys as the account's authorized keys."""
    if not key_paths:
        return

    root_dir = image_chroot.root_dir
    try:
        home = await asyncio.to_thread(_home_dir, root_dir, name)
        ssh_dir = Path("/") / home.lstrip("/") / ".ssh"
        host_ssh_dir = root_dir / home.lstrip("/") / ".ssh"
        authorized_keys = host_ssh_dir / "authorized_keys"

        keys = []
        for key_path in key_paths:
            logger.debug(f"Adding SSH key {key_path} for user {name}")
            content = await asyncio.to_thread(Path(key_path).read_text)
            keys.append(content if content.endswith("\n") else content + "\n")

        await asyncio.to_thread(lambda: host_ssh_dir.mkdir(parents=True, exist_ok=True))
        await asyncio.to_thread(authorized_keys.write_text, "".join(keys))
        await asyncio.to_thread(os.chmod, host_ssh_dir, 0o700)
        await asyncio.to_thread(os.chmod, authorized_keys, 0o600)
    except OSError as e:
        raise UserProvisioningError(f"failed to provision SSH keys of user ({name}): {e}") from e

    try:
        await image_chroot.run(["chown", "-R", f"{name}:", str(ssh_dir)])
    except subprocess.CalledProcessError as e:
        raise UserProvisioningError(f"failed to set owner of ({ssh_dir}): {e.stderr}") from e


async def configure_user_startup_command(
    image_chroot: ImageChroot,
    name: str,
    command: Optional[str],
) -> None:
    """Set the program started at login."""
    if not command:
        return

    passwd_path = image_chroot.root_dir / PASSWD_PATH

    def update(fields: List[str]) -> List[str]:
        fields[6] = command
        return fields

    try:
        await asyncio.to_thread(_update_entry, passwd_path, name, update)
    except (OSError, IndexError) as e:
        raise UserProvisioningError(f"failed to set startup command of user ({name}): {e}") from e
