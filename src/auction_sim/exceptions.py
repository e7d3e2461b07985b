"""
Domain exceptions.

Domain code raises these; the event dispatcher converts them into
recipient-scoped error notices (or ignores state conflicts).
"""

from __future__ import annotations


class AuctionError(Exception):
    """Base class for every rejected request."""

    def __init__(self, message: str = "") -> None:
        self.message = message or self.__class__.__doc__ or self.__class__.__name__
        super().__init__(self.message)


class AuthorizationError(AuctionError):
    """Not authorized."""


class ValidationError(AuctionError):
    """Invalid request."""


class NotFoundError(AuctionError):
    """Not found."""


class StateConflictError(AuctionError):
    """Action does not match the current phase; expected UI/server race."""


# ============ Room ============

class RoomNotFound(NotFoundError):
    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Room {code} not found")


class RoomAlreadyExists(ValidationError):
    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__(f"Room {code} already exists")


class BadSecret(AuthorizationError):
    """Invalid credentials."""


# ============ Team ============

class TeamNotFound(NotFoundError):
    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Team {key} not found")
