"""Tests for subprocess helpers."""

import subprocess
import sys

import pytest

from imagecustomizer.utils.commands import run_command


@pytest.mark.asyncio
class TestRunCommand:
    """Test run_command."""

    async def test_captures_output(self):
        """Test stdout is returned."""
        result = await run_command([sys.executable, "-c", "print('hello')"])

        assert result.returncode == 0
        assert result.stdout.strip() == "hello"

    async def test_failure_raises_with_output(self):
        """Test a non-zero exit raises with stderr attached."""
        script = "import sys; sys.stderr.write('broken'); sys.exit(3)"

        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            await run_command([sys.executable, "-c", script])

        assert exc_info.value.returncode == 3
        assert exc_info.value.stderr == "broken"

    async def test_no_check(self):
        """Test a non-zero exit is returned when check is off."""
        result = await run_command([sys.executable, "-c", "import sys; sys.exit(1)"], check=False)

        assert result.returncode == 1

    async def test_stream_collects_lines(self):
        """Test streamed output is still returned."""
        script = "import sys; print('one'); print('two'); sys.stderr.write('warn\\n')"

        result = await run_command([sys.executable, "-c", script], stream=True)

        assert result.stdout == "one\ntwo"
        assert result.stderr == "warn"

    async def test_stream_failure(self):
        """Test streamed failures carry the collected output."""
        script = "import sys; print('partial'); sys.exit(2)"

        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            await run_command([sys.executable, "-c", script], stream=True)

        assert exc_info.value.stdout == "partial"

    async def test_input(self):
        """Test stdin input is passed to the process."""
        script = "import sys; print(sys.stdin.read().upper())"

        result = await run_command([sys.executable, "-c", script], input="secret")
        assert result.stdout.strip() == "SECRET"

        result = await run_command([sys.executable, "-c", script], input="streamed", stream=True)
        assert result.stdout == "STREAMED"

    async def test_timeout(self):
        """Test a hung process is killed on timeout."""
        with pytest.raises(subprocess.TimeoutExpired):
            await run_command([sys.executable, "-c", "import time; time.sleep(10)"], timeout=1)
