"""Exception hierarchy shared across songevo."""
from __future__ import annotations


class SongEvoError(Exception):
    """Base class for songevo errors."""


class GenomeFormatError(SongEvoError, ValueError):
    """Raised when a binary genome payload is truncated or corrupt."""


class HabitatError(SongEvoError):
    """Raised for unknown nodes or an invalid habitat topology."""


class StorageError(SongEvoError):
    """Raised when the backing store cannot be read or written."""


class CycleInProgressError(SongEvoError):
    """Raised when a reproduction cycle is requested while one is running."""


class ProposalError(SongEvoError):
    """Raised when accepting a proposed genome that does not exist."""


class RatingError(SongEvoError, ValueError):
    """Raised for a rating other than 0 (dislike) or 1 (like)."""
