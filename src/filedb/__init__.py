"""
A layer on top of SQLite that stores files by key and time stamp.

- Keys are typically file names without leading directories, but any text
  works. Keys do not need to be unique.
- Time stamps are never generated here; the caller provides them.
- The key and time stamp together are unique: they are the primary key.
- Contents are stored zlib-compressed.
"""

from filedb.exceptions import (
    ErrorKind,
    FileDBError,
    GeneralError,
    InternalError,
    NoMatchError,
    TimeStampNotAvailableError,
)
from filedb.store import FileDB
from filedb.types import (
    RETENTION_HORIZON,
    DuplicatePolicy,
    Listing,
    ListingMode,
    StoredBlob,
)

__all__ = [
    "FileDB",
    "DuplicatePolicy",
    "Listing",
    "ListingMode",
    "StoredBlob",
    "RETENTION_HORIZON",
    "ErrorKind",
    "FileDBError",
    "GeneralError",
    "InternalError",
    "NoMatchError",
    "TimeStampNotAvailableError",
]
