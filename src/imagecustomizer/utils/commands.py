"""Subprocess execution helpers."""

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


async def _stream_lines(stream: asyncio.StreamReader, label: str, sink: List[str]):
    """Log each line of a stream as it arrives and keep it for the result."""
    while True:
        line = await stream.readline()
        if not line:
            break
        text = line.decode(errors="replace").rstrip("\n")
        sink.append(text)
        logger.debug(f"[{label}] {text}")


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    stream: bool = False,
    input: Optional[str] = None,
    timeout: Optional[int] = None,
    **kwargs
) -> CommandResult:
    """Run a command asynchronously.

    With ``stream`` set, stdout and stderr are logged line by line while the
    process runs instead of being returned only once it exits. Either way a
    non-zero exit raises ``subprocess.CalledProcessError`` carrying the
    collected output when ``check`` is true.
    """
    logger.debug(f"Running command: {' '.join(cmd)}")

    pipe_output = capture_output or stream
    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input is not None else None,
        stdout=asyncio.subprocess.PIPE if pipe_output else None,
        stderr=asyncio.subprocess.PIPE if pipe_output else None,
        **kwargs
    )

    try:
        if stream:
            stdout_lines: List[str] = []
            stderr_lines: List[str] = []
            if input is not None:
                process.stdin.write(input.encode())
                await process.stdin.drain()
                process.stdin.close()
            await asyncio.wait_for(
                asyncio.gather(
                    _stream_lines(process.stdout, cmd[0], stdout_lines),
                    _stream_lines(process.stderr, cmd[0], stderr_lines),
                    process.wait(),
                ),
                timeout=timeout
            )
            stdout = "\n".join(stdout_lines)
            stderr = "\n".join(stderr_lines)
        else:
            out, err = await asyncio.wait_for(
                process.communicate(input.encode() if input is not None else None),
                timeout=timeout
            )
            stdout = out.decode() if out else ""
            stderr = err.decode() if err else ""
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout,
        stderr=stderr,
    )

    if check and process.returncode != 0:
        error = subprocess.CalledProcessError(
            process.returncode, cmd
        )
        error.stdout = result.stdout
        error.stderr = result.stderr
        raise error

    return result
