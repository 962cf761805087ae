"""
Custom domain exceptions for the metrics module.
"""
from src.common.exceptions import AppError


class InvalidDateRangeError(AppError):
    """Raised when an analytics date range is inverted."""

    def __init__(self, message: str = "start_date must not be after end_date"):
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message
