"""Exception hierarchy for interface reconciliation."""
from typing import Optional


class IfcraftError(Exception):
    """Base class for all reconciliation failures."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ValidationError(IfcraftError):
    """Malformed interface parameters, detected before any I/O."""

    def __init__(self, name: str, errors: list[str]) -> None:
        self.name = name
        self.errors = list(errors)
        super().__init__(
            f"Invalid parameters for interface {name or '<unnamed>'}: "
            + "; ".join(self.errors)
        )


class WriteError(IfcraftError, IOError):
    """The interface file could not be written or renamed into place."""


class ActivationError(IfcraftError):
    """An external tool returned non-zero or timed out."""

    def __init__(
        self,
        message: str,
        returncode: Optional[int] = None,
        output: str = "",
    ) -> None:
        self.returncode = returncode
        self.output = output
        if output:
            message = f"{message}: {output.strip()}"
        super().__init__(message)


class PackageError(ActivationError):
    """A package required before activation could not be installed."""


class CleanupError(IfcraftError):
    """Stale connection entries could not be removed."""
