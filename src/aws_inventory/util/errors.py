from __future__ import annotations

from enum import IntEnum
from typing import Optional


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    AUTH_ERROR = 3
    AWS_ERROR = 4
    RUNTIME_ERROR = 5


class InventoryError(Exception):
    """Base error for inventory pipeline."""


class ConfigError(InventoryError):
    """Raised for configuration or argument issues."""


class PartitionError(ConfigError):
    """Raised when a requested region is not known to the account."""


class AuthResolutionError(InventoryError):
    """Raised when the AWS CLI or its credentials cannot be used."""


class ExportError(InventoryError):
    """Raised when exporting artifacts fails."""


class OperationError(InventoryError):
    """
    Raised when a single AWS CLI operation fails for any reason: the process could
    not be started, timed out, exited non-zero, or printed output that is not JSON.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        returncode: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, AuthResolutionError):
        return int(ExitCode.AUTH_ERROR)
    if isinstance(exc, OperationError):
        return int(ExitCode.AWS_ERROR)
    if isinstance(exc, (ExportError, InventoryError)):
        return int(ExitCode.RUNTIME_ERROR)
    return 1
