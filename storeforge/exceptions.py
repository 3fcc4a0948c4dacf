"""Exceptions related to storeforge."""

__all__ = [
    "StoreForgeException",
    "ValidationError",
    "DuplicateStoreError",
    "CommandException",
    "InfrastructureError",
    "HelmException",
    "KubectlException",
    "BootstrapException",
    "DependencyTimeoutError",
    "PartialTeardownError",
]


class StoreForgeException(Exception):
    """Generic base exception used for this library."""


class ValidationError(StoreForgeException):
    """Raised when a store request is invalid and can be fixed by the user."""


class DuplicateStoreError(ValidationError):
    """Raised when a store with the same identity exists or is in flight."""

    def __init__(self, name: str) -> None:
        super().__init__(f'Store "{name}" already exists')
        self.name = name


class CommandException(StoreForgeException):
    """Raised when there is a failure running a subcommand."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


InfrastructureError = CommandException


class HelmException(CommandException):
    """Raised when there is a failure running a helm command."""


class KubectlException(CommandException):
    """Raised when there is a failure running a kubectl command."""


class BootstrapException(StoreForgeException):
    """Raised when a stage of the in-workload bootstrap fails."""

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage


class DependencyTimeoutError(BootstrapException):
    """Raised when a dependency never became ready within the retry bound."""


class PartialTeardownError(StoreForgeException):
    """Raised when only part of a store teardown succeeded."""

    def __init__(self, name: str, errors: list[str]) -> None:
        super().__init__(
            f'Teardown of store "{name}" incomplete: ' + "; ".join(errors)
        )
        self.name = name
        self.errors = errors
