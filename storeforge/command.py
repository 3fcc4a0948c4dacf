"""Library for issuing commands using asyncio and returning the result."""

import asyncio
import logging
import shlex
import subprocess
from dataclasses import dataclass
import os

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

_CONCURRENCY = 20
_SEM = asyncio.Semaphore(_CONCURRENCY)
_TIMEOUT = 120.0


# No public API
__all__: list[str] = []


@dataclass
class Command:
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments."""

    exc: type[CommandException] = CommandException
    """Exception to throw in case of an error."""

    timeout: float = _TIMEOUT
    """Seconds to wait for the command before killing it."""

    retcodes: list[int] | None = None
    """Non-zero error codes that are allowed to indicate success."""

    env: dict[str, str] | None = None
    """Environment variables for the subprocess."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        return self.string

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the command, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        env = {
            **os.environ,
            **(self.env if self.env else {}),
        }
        proc = await asyncio.create_subprocess_exec(
            *self.cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            env=env,
        )
        try:
            out, err = await asyncio.wait_for(proc.communicate(stdin), self.timeout)
        except asyncio.TimeoutError as err:
            _kill(proc)
            raise self.exc(
                f"Command '{self}' timed out after {self.timeout:g}s"
            ) from err
        except asyncio.CancelledError:
            _kill(proc)
            raise
        if proc.returncode:
            if self.retcodes and proc.returncode in self.retcodes:
                return out
            stdout = out.decode("utf-8", errors="replace") if out else ""
            stderr = err.decode("utf-8", errors="replace") if err else ""
            errors = [f"Command '{self}' failed with return code {proc.returncode}"]
            if stdout:
                errors.append(stdout)
            if stderr:
                errors.append(stderr)
            _LOGGER.debug("\n".join(errors))
            raise self.exc(
                "\n".join(errors),
                returncode=proc.returncode,
                stdout=stdout,
                stderr=stderr,
            )
        return out


def _kill(proc: asyncio.subprocess.Process) -> None:
    """Kill a child process that is still running."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass


async def run(cmd: Command, stdin: bytes | None = None) -> str:
    """Run the specified command and return stdout."""
    async with _SEM:
        out = await cmd.run(stdin)
    return out.decode("utf-8") if out else ""
