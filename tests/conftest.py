"""Shared fixtures."""

import subprocess
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from imagecustomizer.utils.chroot import ImageChroot
from imagecustomizer.utils.commands import CommandResult


class FakeChroot(ImageChroot):
    """ImageChroot that records commands instead of entering the root."""

    def __init__(self, root_dir: Path):
        super().__init__(root_dir)
        self.commands: List[List[str]] = []
        self.failures: Dict[Tuple[str, ...], int] = {}
        self.unsafe_runs = 0

    async def unsafe_run(self, fn):
        self.unsafe_runs += 1
        return await fn()

    async def run(self, cmd, **kwargs):
        self.commands.append(list(cmd))
        for prefix, returncode in self.failures.items():
            if tuple(cmd[:len(prefix)]) == prefix:
                raise subprocess.CalledProcessError(returncode, cmd, output="", stderr="command failed")
        return CommandResult(returncode=0)


@pytest.fixture
def image_root(tmp_path):
    """Minimal image root with account databases."""
    root = tmp_path / "rootfs"
    (root / "etc").mkdir(parents=True)
    (root / "etc/passwd").write_text(
        "root:x:0:0:root:/root:/bin/bash\n"
        "bob:x:1000:1000::/home/bob:/bin/bash\n"
    )
    (root / "etc/shadow").write_text(
        "root:*:19000:0:99999:7:::\n"
        "bob:!:19000:0:99999:7:::\n"
    )
    return root


@pytest.fixture
def fake_chroot(image_root):
    """FakeChroot over the minimal image root."""
    return FakeChroot(image_root)


@pytest.fixture
def config_dir(tmp_path):
    """Directory the customization config lives in."""
    path = tmp_path / "config"
    path.mkdir()
    return path
