"""
FileDB: SQLite storage for files addressed by key and time stamp.

Each row holds one file:
- Key (typically a file name, not unique on its own)
- Time stamp (caller supplied, stored as whole unix seconds)
- Data (zlib-compressed contents, or NULL)

The (key, time stamp) pair is the primary key. When a handle is released,
rows older than the retention horizon are purged.
"""

from __future__ import annotations

import sqlite3
import weakref
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import TypeVar

from filedb import codec
from filedb.config import Settings, get_settings
from filedb.exceptions import (
    GeneralError,
    InternalError,
    NoMatchError,
    TimeStampNotAvailableError,
)
from filedb.logging import get_logger, log_context, setup_logging_from_settings
from filedb.types import (
    RETENTION_HORIZON,
    DuplicatePolicy,
    Listing,
    ListingMode,
    StoredBlob,
    from_unix_seconds,
    to_unix_seconds,
    utc_now,
)

logger = get_logger(__name__)

E = TypeVar("E", bound=Enum)

DB_INIT_QUERY = """
    CREATE TABLE IF NOT EXISTS files (
        key TEXT NOT NULL,
        time_stamp INTEGER NOT NULL,
        data BLOB,
        PRIMARY KEY (key, time_stamp)
    )
"""
DB_INSERT_FILE_QUERY = "INSERT INTO files (key, time_stamp, data) VALUES (?, ?, ?)"
DB_REPLACE_FILE_QUERY = (
    "INSERT OR REPLACE INTO files (key, time_stamp, data) VALUES (?, ?, ?)"
)
DB_RETRIEVE_FILE_QUERY = "SELECT data FROM files WHERE key = ? AND time_stamp = ?"
DB_RETRIEVE_LATEST_QUERY = """
    SELECT time_stamp, data FROM files
    WHERE key = ?
    ORDER BY time_stamp DESC
    LIMIT 1
"""
# Keys come back as raw bytes and are decoded row by row.
DB_LIST_QUERY = "SELECT typeof(key), CAST(key AS BLOB), time_stamp FROM files"
DB_CLEANUP_QUERY = "DELETE FROM files WHERE time_stamp < ?"
DB_ENCODING_QUERY = "PRAGMA encoding"

# PRAGMA encoding names mapped to Python codecs.
TEXT_ENCODINGS = {
    "UTF-8": "utf-8",
    "UTF-16le": "utf-16-le",
    "UTF-16be": "utf-16-be",
}


def _release(conn: sqlite3.Connection, store: str) -> None:
    """Run the retention sweep and close the connection.

    Never raises; failures are logged at debug level.
    """
    earliest = to_unix_seconds(utc_now() - RETENTION_HORIZON)
    with log_context(store=store, operation="release"):
        try:
            with conn:
                cursor = conn.execute(DB_CLEANUP_QUERY, (earliest,))
            logger.debug("Retention sweep complete", purged=cursor.rowcount, earliest=earliest)
        except sqlite3.Error as e:
            logger.debug("Retention sweep failed", error=str(e))
        try:
            conn.close()
        except sqlite3.Error as e:
            logger.debug("Closing connection failed", error=str(e))


def _decode_time_stamp(value: object) -> datetime:
    if not isinstance(value, int):
        raise TypeError(f"time stamp stored as {type(value).__name__}, expected integer")
    return from_unix_seconds(value)


def _decode_listing_row(
    row: tuple[str, bytes | None, object], encoding: str
) -> StoredBlob:
    key_type, raw_key, time_stamp = row
    if key_type != "text" or raw_key is None:
        raise TypeError(f"key stored as {key_type}, expected text")
    return StoredBlob(key=raw_key.decode(encoding), time_stamp=_decode_time_stamp(time_stamp))


class FileDB:
    """A handle to a file database on the local file system.

    Contents are stored zlib-compressed in the rows of a single SQLite table.
    This is meant for modest files, not for large ones.

    A handle owns its connection. It is released exactly once: by close(),
    by leaving a ``with`` block, or when the handle is garbage collected or
    the interpreter exits. Not safe for concurrent use from several threads
    without external locking.
    """

    def __init__(
        self,
        path: Path | str,
        settings: Settings | None = None,
        duplicate_policy: DuplicatePolicy | None = None,
    ) -> None:
        """Open the database at ``path``, creating it if it is absent.

        Prefer FileDB.connect().

        Raises:
            InternalError: If the file cannot be opened or the schema created.
            GeneralError: If the duplicate policy is unknown or the database
                uses a text encoding other than UTF-8 or UTF-16.
        """
        self._settings = settings or get_settings()
        setup_logging_from_settings(self._settings)
        self._path = Path(path)
        self.duplicate_policy = _coerce(
            DuplicatePolicy,
            duplicate_policy or self._settings.DUPLICATE_POLICY,
            "duplicate_policy",
        )
        self.compression_level = self._settings.COMPRESSION_LEVEL

        conn: sqlite3.Connection | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self._path),
                timeout=self._settings.SQLITE_TIMEOUT,
                isolation_level="DEFERRED",
                check_same_thread=False,
            )
            with conn:
                conn.execute(DB_INIT_QUERY)
            (encoding_name,) = conn.execute(DB_ENCODING_QUERY).fetchone()
        except (sqlite3.Error, OSError) as e:
            if conn is not None:
                conn.close()
            raise InternalError.wrap(e, path=str(self._path)) from e

        if encoding_name not in TEXT_ENCODINGS:
            conn.close()
            raise GeneralError(
                "Unsupported database text encoding",
                context={"path": str(self._path), "encoding": encoding_name},
            )
        self.text_encoding = TEXT_ENCODINGS[encoding_name]

        self._conn = conn
        self._finalizer = weakref.finalize(self, _release, conn, str(self._path))
        logger.info(
            "File database opened",
            path=str(self._path),
            duplicate_policy=self.duplicate_policy.value,
        )

    @classmethod
    def connect(
        cls,
        path: Path | str | None = None,
        settings: Settings | None = None,
        duplicate_policy: DuplicatePolicy | None = None,
    ) -> FileDB:
        """Connect to a file database stored at the provided path.

        Args:
            path: Database file. Defaults to the FILEDB_DB_PATH setting.
            settings: Settings to use instead of the environment ones.
            duplicate_policy: Overrides the FILEDB_DUPLICATE_POLICY setting.

        Returns:
            An open handle.

        Raises:
            InternalError: If the file cannot be opened or the schema created.
            GeneralError: If the duplicate policy is unknown or the database
                uses a text encoding other than UTF-8 or UTF-16.
        """
        settings = settings or get_settings()
        return cls(path if path is not None else settings.DB_PATH, settings, duplicate_policy)

    @property
    def path(self) -> Path:
        """Path of the database file."""
        return self._path

    @property
    def closed(self) -> bool:
        """True once the handle has been released."""
        return not self._finalizer.alive

    def _get_conn(self) -> sqlite3.Connection:
        if self.closed:
            raise GeneralError("FileDB is closed", context={"path": str(self._path)})
        return self._conn

    def close(self) -> None:
        """Purge rows past the retention horizon and close the connection.

        Failures of the purge are logged and ignored. Calling close() on a
        closed handle does nothing.
        """
        self._finalizer()

    def __enter__(self) -> FileDB:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"FileDB({str(self._path)!r}, {state})"

    def add_file(self, key: str, time_stamp: datetime, data: bytes | None) -> None:
        """Add a file to the database.

        Args:
            key: Typically a file name, but any text works. It does not need
                to be unique for each file in the database.
            time_stamp: The time stamp to associate with this entry. Only
                whole seconds are kept. This library never generates time
                stamps; how they are chosen is up to the caller.
            data: The file contents. ``None`` stores NULL, which
                retrieve_file() gives back as ``None``.

        Raises:
            GeneralError: If an argument has the wrong type or the handle is closed.
            InternalError: If compression or the insert fails, including a
                duplicate (key, time stamp) under the reject policy.
        """
        conn = self._get_conn()
        _check_key(key)
        seconds = _seconds(time_stamp)
        if data is not None and not isinstance(data, (bytes, bytearray, memoryview)):
            raise GeneralError(
                "File data must be bytes or None",
                context={"type": type(data).__name__},
            )

        compressed = None if data is None else codec.compress(bytes(data), self.compression_level)
        query = (
            DB_REPLACE_FILE_QUERY
            if self.duplicate_policy is DuplicatePolicy.REPLACE
            else DB_INSERT_FILE_QUERY
        )

        with log_context(store=str(self._path), operation="add_file"):
            try:
                with conn:
                    conn.execute(query, (key, seconds, compressed))
            except sqlite3.Error as e:
                raise InternalError.wrap(e, key=key, time_stamp=seconds) from e

            logger.debug(
                "Stored file",
                key=key,
                time_stamp=seconds,
                size=None if data is None else len(data),
                compressed_size=None if compressed is None else len(compressed),
            )

    def retrieve_file(self, key: str, time_stamp: datetime) -> bytes | None:
        """Retrieve a file from the database.

        Args:
            key: The key the file was stored under.
            time_stamp: The time stamp it was stored with. Sub-second
                precision is ignored.

        Returns:
            The file contents, or ``None`` if the stored entry is NULL.

        Raises:
            TimeStampNotAvailableError: If no file matches the key and time stamp.
            InternalError: If the query fails or the stored data is corrupt.
            GeneralError: If an argument has the wrong type or the handle is closed.
        """
        conn = self._get_conn()
        _check_key(key)
        seconds = _seconds(time_stamp)

        with log_context(store=str(self._path), operation="retrieve_file"):
            try:
                row = conn.execute(DB_RETRIEVE_FILE_QUERY, (key, seconds)).fetchone()
            except sqlite3.Error as e:
                raise InternalError.wrap(e, key=key, time_stamp=seconds) from e

            if row is None:
                raise TimeStampNotAvailableError(key, time_stamp)

            return self._inflate(row[0], key, seconds)

    def retrieve_latest(self, key: str) -> tuple[datetime, bytes | None]:
        """Retrieve the newest file stored under a key.

        Returns:
            Tuple of (time_stamp, contents). Contents are ``None`` if the
            stored entry is NULL.

        Raises:
            NoMatchError: If nothing is stored under the key.
            InternalError: If the query fails or the stored data is corrupt.
        """
        conn = self._get_conn()
        _check_key(key)

        with log_context(store=str(self._path), operation="retrieve_latest"):
            try:
                row = conn.execute(DB_RETRIEVE_LATEST_QUERY, (key,)).fetchone()
            except sqlite3.Error as e:
                raise InternalError.wrap(e, key=key) from e

            if row is None:
                raise NoMatchError(key)

            seconds, value = row
            try:
                time_stamp = _decode_time_stamp(seconds)
            except (TypeError, OverflowError) as e:
                raise InternalError.wrap(e, key=key) from e

            return time_stamp, self._inflate(value, key, seconds)

    def list_all(
        self, mode: ListingMode = ListingMode.BEST_EFFORT
    ) -> list[tuple[str, datetime]]:
        """List all files in the database.

        The order is whatever SQLite yields; do not rely on it. In best-effort
        mode rows that cannot be decoded are left out (see scan()).

        Returns:
            List of (key, time_stamp) tuples.
        """
        return self.scan(mode).pairs()

    def scan(self, mode: ListingMode = ListingMode.BEST_EFFORT) -> Listing:
        """Enumerate the keys and time stamps of all stored files.

        A row is undecodable when another client wrote a key that is not
        valid text or a time stamp that is not an integer.

        Args:
            mode: BEST_EFFORT skips undecodable rows and counts them; STRICT
                raises on the first one.

        Returns:
            Listing with the decoded entries and the number skipped.

        Raises:
            InternalError: If the query fails, or in STRICT mode on an
                undecodable row.
            GeneralError: If the mode is unknown or the handle is closed.
        """
        conn = self._get_conn()
        mode = _coerce(ListingMode, mode, "mode")
        entries: list[StoredBlob] = []
        skipped = 0

        with log_context(store=str(self._path), operation="scan"):
            try:
                rows = conn.execute(DB_LIST_QUERY).fetchall()
            except sqlite3.Error as e:
                raise InternalError.wrap(e) from e

            for row in rows:
                try:
                    entries.append(_decode_listing_row(row, self.text_encoding))
                except (TypeError, ValueError, OverflowError) as e:
                    if mode is ListingMode.STRICT:
                        raise InternalError.wrap(e, row=repr(row)) from e
                    skipped += 1
                    logger.warning("Skipped undecodable row", row=repr(row), error=str(e))

            if skipped:
                logger.warning("Listing incomplete", listed=len(entries), skipped=skipped)

        return Listing(entries=entries, skipped=skipped)

    def _inflate(self, value: object, key: str, seconds: int) -> bytes | None:
        if value is None:
            return None
        if not isinstance(value, bytes):
            err = TypeError(f"data stored as {type(value).__name__}, expected blob")
            raise InternalError.wrap(err, key=key, time_stamp=seconds) from err
        return codec.decompress(value)


def _check_key(key: object) -> None:
    if not isinstance(key, str):
        raise GeneralError("Key must be a string", context={"type": type(key).__name__})
    try:
        key.encode("utf-8")
    except UnicodeEncodeError as e:
        raise GeneralError(
            "Key must be valid text", context={"key": key, "reason": e.reason}
        ) from e


def _coerce(enum_type: type[E], value: object, name: str) -> E:
    try:
        return enum_type(value)
    except ValueError as e:
        raise GeneralError(
            f"Invalid {name}",
            context={"value": value, "expected": [member.value for member in enum_type]},
        ) from e


def _seconds(time_stamp: object) -> int:
    if not isinstance(time_stamp, datetime):
        raise GeneralError(
            "Time stamp must be a datetime",
            context={"type": type(time_stamp).__name__},
        )
    return to_unix_seconds(time_stamp)
