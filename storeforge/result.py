"""Outcome of an operation against the cluster."""

from dataclasses import dataclass


@dataclass
class Result:
    """Success flag and captured output or error message of an operation.

    Failures of external commands are reported with a Result rather than an
    exception once they cross the helm or bootstrap boundary.
    """

    success: bool
    output: str = ""
    error: str | None = None

    def __str__(self) -> str:
        """Return a string representation of the result."""
        if self.success:
            return "ok"
        return f"failed: {self.error or 'Unknown error'}"
