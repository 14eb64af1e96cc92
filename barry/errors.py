"""Error types shared across the framework."""

from __future__ import annotations

NOT_FOUND_MESSAGE = "barry: not found"


class NotFoundError(Exception):
    """Raised by server logic when the requested resource does not exist."""

    def __init__(self, message: str = NOT_FOUND_MESSAGE) -> None:
        super().__init__(message)


def is_not_found_error(err: BaseException | None) -> bool:
    """Return True if ``err`` signals a missing resource."""
    if err is None:
        return False
    return isinstance(err, NotFoundError) or str(err) == NOT_FOUND_MESSAGE