"""Tests for the exception hierarchy."""

from __future__ import annotations

import sqlite3
from datetime import datetime

import pytest

from filedb.exceptions import (
    ErrorKind,
    FileDBError,
    GeneralError,
    InternalError,
    NoMatchError,
    TimeStampNotAvailableError,
)


class TestFileDBError:
    """Tests for the base exception."""

    def test_str_without_context(self):
        err = GeneralError("FileDB is closed")
        assert str(err) == "FileDB is closed"
        assert err.context == {}

    def test_str_with_context(self):
        err = GeneralError("Key must be a string", context={"type": "int"})
        assert str(err) == "Key must be a string (type='int')"

    def test_repr(self):
        err = GeneralError("bad", context={"a": 1})
        assert repr(err) == "GeneralError('bad', context={'a': 1})"

    def test_all_errors_share_base(self):
        """Every error can be caught as FileDBError."""
        errors = [
            GeneralError("x"),
            InternalError(ValueError("y")),
            NoMatchError("k"),
            TimeStampNotAvailableError("k", datetime(2023, 1, 1)),
        ]
        for err in errors:
            assert isinstance(err, FileDBError)

    def test_kinds_are_distinct(self):
        kinds = {
            GeneralError.kind,
            InternalError.kind,
            NoMatchError.kind,
            TimeStampNotAvailableError.kind,
        }
        assert kinds == set(ErrorKind)


class TestInternalError:
    """Tests for wrapping foreign errors."""

    def test_wrap_keeps_original(self):
        original = sqlite3.OperationalError("database is locked")
        err = InternalError.wrap(original, key="a.txt")

        assert err.error is original
        assert err.message == "database is locked"
        assert err.context == {"error_type": "OperationalError", "key": "a.txt"}

    def test_message_falls_back_to_type_name(self):
        err = InternalError(OSError())
        assert err.message == "OSError"

    def test_chaining(self):
        original = ValueError("inner")
        with pytest.raises(InternalError) as exc_info:
            try:
                raise original
            except ValueError as e:
                raise InternalError.wrap(e) from e

        assert exc_info.value.__cause__ is original


class TestLookupErrors:
    """Tests for the not-found errors."""

    def test_time_stamp_not_available(self):
        time_stamp = datetime(2023, 1, 2)
        err = TimeStampNotAvailableError("report.txt", time_stamp)

        assert err.key == "report.txt"
        assert err.time_stamp == time_stamp
        assert str(err) == (
            "No data available for key report.txt and time stamp 2023-01-02 00:00:00"
        )

    def test_no_match(self):
        err = NoMatchError("report.txt")

        assert err.key == "report.txt"
        assert str(err) == "No match found for key report.txt"
