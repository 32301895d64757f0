"""
Decode errors.

Only ContainerError aborts a whole session. The other errors are fatal to
the stream that raised them and are recorded as a StreamFailure on the
Track Model. Non-fatal findings are ConsistencyWarning records
(see tracksalvage.models.track), never exceptions.
"""

from typing import Optional


class DecodeError(Exception):
    """Base class for all decode failures."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.line_number = line_number

    def __str__(self) -> str:
        if self.line_number is None:
            return self.message
        return f"line {self.line_number}: {self.message}"


class ContainerError(DecodeError):
    """Archive unreadable, ambiguous, or missing a required member."""


class RecordFormatError(DecodeError):
    """A line does not match the schema of its record kind."""

    def __init__(self, message: str, line_number: Optional[int] = None, line: Optional[str] = None):
        super().__init__(message, line_number)
        self.line = line


class SequencingError(DecodeError):
    """A delta record arrived before any anchor record in its stream."""
