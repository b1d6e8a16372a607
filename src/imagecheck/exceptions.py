"""Exceptions module. Defines custom exceptions for the probe."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RuntimeOutcome


class ImageCheckException(Exception):
    """Base exception for infrastructure failures that abort a probe."""


class ContainerRuntimeError(ImageCheckException):
    """The container runtime rejected a call or could not be invoked."""

    def __init__(self, message: str, outcome: "RuntimeOutcome | None" = None) -> None:
        super().__init__(message)
        self.outcome = outcome


class OperationCancelled(ContainerRuntimeError):
    """A blocking runtime call was cancelled before it finished."""


class StateParseError(ImageCheckException):
    """Container state output did not match "<running> <exit code>"."""


class ContainerExitedError(ImageCheckException):
    """The container was not running after the settle period."""


class RuntimeNotFoundError(ImageCheckException):
    """No container runtime binary could be found."""
