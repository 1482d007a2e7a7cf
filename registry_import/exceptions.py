"""
This module defines custom exceptions for the registry import engine.
"""


class DecodeError(Exception):
    """Raised when a registry file is unreadable in every supported encoding."""

    pass


class RowFormatError(Exception):
    """Raised when a tokenized row is too short for its registry schema."""

    def __init__(self, message: str, row_number: int, fields: list):
        super().__init__(message)
        self.row_number = row_number
        self.fields = fields


class ValidationError(Exception):
    """Raised when a manual correction is still missing required fields."""

    pass


class NotFoundError(Exception):
    """Raised when an invalid row is no longer in the correction queue."""

    pass


class StoreUnavailableError(Exception):
    """Raised when the address store cannot be listed or written to."""

    pass


class ImportInProgressError(Exception):
    """Raised when an import is started while another one is still running."""

    pass
