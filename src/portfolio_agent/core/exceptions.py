class RefinementError(RuntimeError):
    """Base class for every error raised by the refinement state machine."""


class AlreadyInitializedError(RefinementError):
    """Raised when `initialize` is called on an existing strategy state."""


class NotInitializedError(RefinementError):
    """Raised when an operation needs the strategy state before it exists."""


class UnauthorizedError(RefinementError):
    """Raised on a missing/invalid proof or when the caller is not the admin."""


class CooldownActiveError(RefinementError):
    """Raised when `refine` is called before the cooldown window has elapsed."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(f"Cooldown active: {remaining_seconds} seconds remaining")
        self.remaining_seconds = remaining_seconds


class InvalidInitialStateError(RefinementError, ValueError):
    """Raised when initial score or trade count is outside its valid range."""
