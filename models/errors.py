"""
models/errors.py
----------------
Validation error raised for invalid user input.
"""

from typing import Optional


class ValidationError(ValueError):
    """
    A field-level input error.

    Attributes:
        field: Name of the offending field, if a single one is to blame.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field
