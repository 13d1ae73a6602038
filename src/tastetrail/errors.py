"""Domain exceptions raised by the shopping-list and meal-plan services."""


class TasteTrailError(Exception):
    """Base exception for domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TasteTrailError):
    """Raised when caller input is unusable, e.g. no recipes selected."""


class NotFoundError(TasteTrailError):
    """Raised when a requested resource does not exist."""


class ForbiddenError(TasteTrailError):
    """Raised when a user acts on a resource owned by someone else."""


class OutOfRangeError(TasteTrailError):
    """Raised when an item index is not a valid position in a list."""
