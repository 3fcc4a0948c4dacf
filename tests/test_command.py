"""Tests for command library."""

import pytest

from storeforge.command import Command, run
from storeforge.exceptions import CommandException, HelmException


async def test_command() -> None:
    """Test stdout parsing of a command."""
    result = await run(Command(["echo", "Hello"]))
    assert result == "Hello\n"


async def test_arguments_are_not_shell_interpreted() -> None:
    """Test that arguments reach the program unchanged."""
    result = await run(Command(["echo", "$(whoami); rm -rf /"]))
    assert result == "$(whoami); rm -rf /\n"


async def test_stdin() -> None:
    """Test that stdin is streamed to the command byte for byte."""
    payload = b"<?php echo \"it's $x\\n\"; ?>\n"
    result = await run(Command(["cat"]), stdin=payload)
    assert result.encode() == payload


async def test_failed_command() -> None:
    """Test a failing command."""
    with pytest.raises(CommandException, match="return code 1") as exc_info:
        await run(Command(["/bin/false"]))
    assert exc_info.value.returncode == 1


async def test_failed_command_stderr() -> None:
    """Test that stderr is captured and the exception type is respected."""
    cmd = Command(["sh", "-c", "echo oops >&2; exit 3"], exc=HelmException)
    with pytest.raises(HelmException, match="oops") as exc_info:
        await run(cmd)
    assert exc_info.value.returncode == 3
    assert exc_info.value.stderr == "oops\n"


async def test_allowed_return_code() -> None:
    """Test that listed return codes count as success."""
    result = await run(Command(["sh", "-c", "echo diff; exit 1"], retcodes=[1]))
    assert result == "diff\n"


async def test_timeout() -> None:
    """Test a command that exceeds its timeout."""
    with pytest.raises(CommandException, match="timed out after 0.2s"):
        await run(Command(["sleep", "5"], timeout=0.2))
