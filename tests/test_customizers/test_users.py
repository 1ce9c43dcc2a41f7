"""Tests for user provisioning."""

import logging
import shutil

import pytest
from unittest.mock import AsyncMock, patch

from imagecustomizer.customizers.users import add_or_update_user, add_or_update_users
from imagecustomizer.errors import UserProvisioningError
from imagecustomizer.models.user import UserSpec


@pytest.fixture
def mock_hash():
    with patch("imagecustomizer.utils.accounts.hash_password", new_callable=AsyncMock) as mock:
        mock.side_effect = lambda password: f"$6$hashed${password}"
        yield mock


def shadow_fields(image_root, name):
    for line in (image_root / "etc/shadow").read_text().splitlines():
        fields = line.split(":")
        if fields[0] == name:
            return fields
    return None


@pytest.mark.asyncio
class TestAddOrUpdateUser:
    """Test add_or_update_user."""

    async def test_new_user(self, fake_chroot, config_dir, mock_hash):
        """Test a new user is created with a hashed password and uid."""
        user = UserSpec(name="alice", password="s3cret", uid=1500)

        await add_or_update_user(user, config_dir, fake_chroot)

        mock_hash.assert_awaited_once_with("s3cret")
        assert fake_chroot.commands == [
            ["useradd", "-m", "-p", "$6$hashed$s3cret", "-u", "1500", "alice"],
        ]

    async def test_prehashed_password(self, fake_chroot, config_dir, mock_hash):
        """Test a pre-hashed password is used as given."""
        user = UserSpec(name="alice", password="$6$given", password_hashed=True)

        await add_or_update_user(user, config_dir, fake_chroot)

        mock_hash.assert_not_awaited()
        assert fake_chroot.commands == [["useradd", "-m", "-p", "$6$given", "alice"]]

    async def test_existing_user_updates_password(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test an existing user only gets a new password hash."""
        user = UserSpec(name="bob", password="n3w", uid=2000)

        await add_or_update_user(user, config_dir, fake_chroot)

        assert fake_chroot.commands == []
        assert shadow_fields(image_root, "bob")[1] == "$6$hashed$n3w"

    async def test_existing_user_without_password(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test an existing user keeps its hash when no password is set."""
        await add_or_update_user(UserSpec(name="bob"), config_dir, fake_chroot)

        assert shadow_fields(image_root, "bob")[1] == "!"

    async def test_rerun_is_idempotent(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test applying the same user twice gives the same result."""
        key = config_dir / "bob.pub"
        key.write_text("ssh-ed25519 AAAA bob\n")
        user = UserSpec(
            name="bob",
            password="pw",
            password_expires_days=90,
            ssh_pubkey_paths=["bob.pub"],
            startup_command="/bin/zsh",
        )

        await add_or_update_user(user, config_dir, fake_chroot)
        shadow = (image_root / "etc/shadow").read_text()
        passwd = (image_root / "etc/passwd").read_text()
        keys = (image_root / "home/bob/.ssh/authorized_keys").read_text()

        await add_or_update_user(user, config_dir, fake_chroot)

        assert (image_root / "etc/shadow").read_text() == shadow
        assert (image_root / "etc/passwd").read_text() == passwd
        assert (image_root / "home/bob/.ssh/authorized_keys").read_text() == keys
        assert keys == "ssh-ed25519 AAAA bob\n"
        assert shadow_fields(image_root, "bob")[7] == "19090"

    async def test_groups(self, fake_chroot, config_dir, mock_hash):
        """Test group membership is applied to existing users."""
        user = UserSpec(name="bob", primary_group="users", secondary_groups=["wheel"])

        await add_or_update_user(user, config_dir, fake_chroot)

        assert fake_chroot.commands == [
            ["usermod", "-g", "users", "bob"],
            ["usermod", "-a", "-G", "wheel", "bob"],
        ]

    async def test_password_file_wins(self, fake_chroot, config_dir, mock_hash, caplog):
        """Test a password file takes precedence over an inline password."""
        (config_dir / "alice.pw").write_text("from-file")
        user = UserSpec(name="alice", password="inline", password_path="alice.pw")

        with caplog.at_level(logging.WARNING):
            await add_or_update_user(user, config_dir, fake_chroot)

        mock_hash.assert_awaited_once_with("from-file")
        assert "password_path" in caplog.text

    async def test_missing_password_file(self, fake_chroot, config_dir, mock_hash):
        """Test a missing password file is reported."""
        user = UserSpec(name="alice", password_path="missing.pw")

        with pytest.raises(UserProvisioningError):
            await add_or_update_user(user, config_dir, fake_chroot)

        assert fake_chroot.commands == []

    async def test_add_failure(self, fake_chroot, config_dir, mock_hash):
        """Test a failing useradd stops provisioning."""
        fake_chroot.failures[("useradd",)] = 1
        user = UserSpec(name="alice", secondary_groups=["wheel"])

        with pytest.raises(UserProvisioningError):
            await add_or_update_user(user, config_dir, fake_chroot)

        assert fake_chroot.commands == [["useradd", "-m", "alice"]]


@pytest.mark.asyncio
class TestAddOrUpdateUsers:
    """Test add_or_update_users."""

    async def test_users_in_order(self, fake_chroot, config_dir, mock_hash):
        """Test users are provisioned in the order given."""
        users = [UserSpec(name="carol"), UserSpec(name="dave")]

        await add_or_update_users(users, config_dir, fake_chroot)

        assert fake_chroot.commands == [
            ["useradd", "-m", "carol"],
            ["useradd", "-m", "dave"],
        ]

    async def test_no_users(self, fake_chroot, config_dir, mock_hash):
        """Test nothing happens without users."""
        await add_or_update_users([], config_dir, fake_chroot)

        assert fake_chroot.commands == []


@pytest.mark.asyncio
class TestPasswordMaterial:
    """Test password material is stored as a single shadow field."""

    async def test_trailing_newline_dropped(self, fake_chroot, config_dir, mock_hash):
        """Test one trailing newline in a password file is not hashed."""
        (config_dir / "bob.pw").write_text("s3cret\n")

        await add_or_update_user(UserSpec(name="bob", password_path="bob.pw"), config_dir, fake_chroot)

        mock_hash.assert_awaited_once_with("s3cret")

    async def test_multiline_password_file(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test a password file with several lines is rejected."""
        (config_dir / "bob.pw").write_text("line1\nline2\n")
        shadow = (image_root / "etc/shadow").read_text()

        with pytest.raises(UserProvisioningError, match="single non-empty line"):
            await add_or_update_user(UserSpec(name="bob", password_path="bob.pw"), config_dir, fake_chroot)

        mock_hash.assert_not_awaited()
        assert (image_root / "etc/shadow").read_text() == shadow

    async def test_empty_password_file(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test an empty password file never clears an account's password."""
        (config_dir / "bob.pw").write_text("\n")

        with pytest.raises(UserProvisioningError):
            await add_or_update_user(UserSpec(name="bob", password_path="bob.pw"), config_dir, fake_chroot)

        assert shadow_fields(image_root, "bob")[1] == "!"

    async def test_hashed_password_with_colon(self, fake_chroot, image_root, config_dir, mock_hash):
        """Test a pre-hashed password cannot add shadow fields."""
        user = UserSpec(name="bob", password="$6$x:0:0", password_hashed=True)

        with pytest.raises(UserProvisioningError):
            await add_or_update_user(user, config_dir, fake_chroot)

        assert shadow_fields(image_root, "bob")[1] == "!"


@pytest.mark.asyncio
@pytest.mark.skipif(shutil.which("openssl") is None, reason="openssl not installed")
class TestRealHashing:
    """Test provisioning with the real password hasher."""

    async def test_existing_user_gets_one_hash(self, fake_chroot, image_root, config_dir):
        """Test the shadow entry stays on one line with a crypt hash."""
        (config_dir / "bob.pw").write_text("s3cret\n")

        await add_or_update_user(UserSpec(name="bob", password_path="bob.pw"), config_dir, fake_chroot)

        lines = (image_root / "etc/shadow").read_text().splitlines()
        assert len(lines) == 2
        assert shadow_fields(image_root, "bob")[1].startswith("$6$")

    async def test_multiline_password_file(self, fake_chroot, image_root, config_dir):
        """Test a multi-line password file leaves the shadow file intact."""
        (config_dir / "bob.pw").write_text("line1\nline2\n")

        with pytest.raises(UserProvisioningError):
            await add_or_update_user(UserSpec(name="bob", password_path="bob.pw"), config_dir, fake_chroot)

        assert len((image_root / "etc/shadow").read_text().splitlines()) == 2
        assert shadow_fields(image_root, "bob")[1] == "!"
