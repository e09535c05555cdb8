"""Deflate compression for stored payloads.

Payloads are written as zlib streams (RFC 1950). Every value in the ``data``
column goes through compress() on the way in and decompress() on the way out.
"""

from __future__ import annotations

import zlib

from filedb.exceptions import InternalError

DEFAULT_COMPRESSION_LEVEL = 6


def compress(data: bytes, level: int = DEFAULT_COMPRESSION_LEVEL) -> bytes:
    """Compress a payload.

    Args:
        data: Raw payload bytes, possibly empty.
        level: zlib compression level, -1 through 9.

    Returns:
        The complete zlib stream.

    Raises:
        InternalError: If the encoder rejects the input or level.
    """
    try:
        encoder = zlib.compressobj(level)
        return encoder.compress(data) + encoder.flush()
    except (zlib.error, ValueError) as e:
        raise InternalError.wrap(e, stage="compress") from e


def decompress(data: bytes) -> bytes:
    """Decompress a stored payload.

    Raises:
        InternalError: If the stream is corrupt, truncated or followed by
            trailing garbage.
    """
    decoder = zlib.decompressobj()
    try:
        payload = decoder.decompress(data) + decoder.flush()
    except zlib.error as e:
        raise InternalError.wrap(e, stage="decompress") from e

    if not decoder.eof:
        err = zlib.error("incomplete or truncated stream")
        raise InternalError.wrap(err, stage="decompress") from err
    if decoder.unused_data:
        err = zlib.error(f"{len(decoder.unused_data)} trailing bytes after stream")
        raise InternalError.wrap(err, stage="decompress") from err

    return payload
