"""Error types raised by the reconciliation core."""

from typing import Any, List, Optional


class VAppSyncError(Exception):
    """Base class for all vappsync errors."""


class NotFoundError(VAppSyncError):
    """A named inventory object could not be resolved."""

    def __init__(self, kind: str, name: str, detail: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.detail = detail
        message = f"Cannot find {kind} '{name}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ConfigurationError(VAppSyncError):
    """Declared input is missing, unsupported or contradictory."""


class AmbiguousConfigError(ConfigurationError):
    """Mutually exclusive placement hints were declared together."""


class RemoteTaskFault(VAppSyncError):
    """A submitted remote task finished with a fault."""

    def __init__(self, operation: str, fault: Any):
        self.operation = operation
        self.fault = fault
        super().__init__(f"{operation} failed: {fault}")

    @property
    def is_invalid_power_state(self) -> bool:
        """True when the fault only says the target is already in the requested power state."""
        checker = getattr(self.fault, "is_invalid_power_state", None)
        return bool(checker)


class PartialApplicationError(VAppSyncError):
    """A multi-step remote sequence failed after some steps took effect.

    The steps listed in ``completed`` are real and observable on the remote
    side. Retrying the whole cycle is safe: the operation journal records how
    far each entity got, so the retry resumes instead of starting over.
    """

    def __init__(self, operation: str, completed: List[str], cause: BaseException):
        self.operation = operation
        self.completed = list(completed)
        self.cause = cause
        done = ", ".join(self.completed) if self.completed else "nothing"
        super().__init__(
            f"{operation} partially applied (completed: {done}); "
            f"retry the whole cycle. Cause: {cause}"
        )
