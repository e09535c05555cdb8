"""
Core types for the file database.

This module defines the data structures shared across the package:
- Enums for the duplicate-key policy and the listing mode
- Frozen dataclasses for listing results (StoredBlob, Listing)
- Helper functions for converting time stamps to and from unix seconds
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum

# Rows older than this, measured from the moment a handle is released, are purged.
RETENTION_HORIZON = timedelta(days=365)


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def to_unix_seconds(time_stamp: datetime) -> int:
    """Convert a datetime to whole unix seconds.

    Sub-second precision is discarded. Naive datetimes are taken to be UTC.

    Args:
        time_stamp: The datetime to convert.

    Returns:
        Seconds since the unix epoch.
    """
    if time_stamp.tzinfo is None:
        time_stamp = time_stamp.replace(tzinfo=timezone.utc)
    return int(time_stamp.replace(microsecond=0).timestamp())


def from_unix_seconds(seconds: int) -> datetime:
    """Convert unix seconds back to a naive UTC datetime."""
    return datetime(1970, 1, 1) + timedelta(seconds=seconds)


class DuplicatePolicy(str, Enum):
    """What add_file does when the (key, time stamp) pair already exists."""

    REJECT = "reject"
    REPLACE = "replace"


class ListingMode(str, Enum):
    """How a listing treats rows whose key or time stamp cannot be decoded."""

    BEST_EFFORT = "best_effort"
    STRICT = "strict"


@dataclass(frozen=True)
class StoredBlob:
    """Identity of one stored file: its key and second-resolution time stamp."""

    key: str
    time_stamp: datetime

    def as_tuple(self) -> tuple[str, datetime]:
        """Return the (key, time_stamp) pair."""
        return (self.key, self.time_stamp)


@dataclass(frozen=True)
class Listing:
    """Result of a scan over all stored files.

    Attributes:
        entries: The decodable rows, in the order the database yielded them.
        skipped: Number of rows left out because they could not be decoded.
    """

    entries: list[StoredBlob] = field(default_factory=list)
    skipped: int = 0

    @property
    def complete(self) -> bool:
        """True when no row was skipped."""
        return self.skipped == 0

    def pairs(self) -> list[tuple[str, datetime]]:
        """Return the entries as (key, time_stamp) tuples."""
        return [entry.as_tuple() for entry in self.entries]
