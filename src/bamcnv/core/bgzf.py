"""Streaming reader for BGZF block-compressed data.

A BGZF file is a series of gzip members, each carrying a ``BC`` extra
subfield with the total compressed size of the block. Blocks are inflated
lazily, one at a time, only when a read needs more bytes than are buffered,
so peak memory stays bounded for large inputs.
"""

from __future__ import annotations

import logging
import struct
import zlib

from ..constants import (
    BGZF_FIXED_HEADER_SIZE,
    BGZF_FOOTER_SIZE,
    BGZF_SUBFIELD_ID,
    BUFFER_TRIM_THRESHOLD,
    GZIP_DEFLATE_METHOD,
    GZIP_FLAG_EXTRA,
    GZIP_MAGIC,
)
from ..errors import FormatError

logger = logging.getLogger(__name__)


class BGZFReader:
    """Sequential reader over an in-memory BGZF buffer.

    Args:
        data: The complete compressed file contents.

    Raises:
        FormatError: If the buffer does not start with a gzip block.
    """

    def __init__(self, data: bytes | bytearray | memoryview):
        self._data = memoryview(data).cast("B")
        if len(self._data) < len(GZIP_MAGIC) or bytes(self._data[:2]) != GZIP_MAGIC:
            raise FormatError("Not a BGZF stream: missing gzip magic at offset 0")

        self._compressed_pos = 0
        self._buffer = bytearray()
        self._offset = 0
        self.blocks_read = 0

    @property
    def buffered(self) -> int:
        """Number of inflated bytes not yet consumed."""
        return len(self._buffer) - self._offset

    def _block_size(self, start: int) -> tuple[int, int]:
        """Parse the gzip header at ``start``.

        Returns:
            Tuple of (total block size, header size including extra fields).
        """
        data = self._data
        if start + BGZF_FIXED_HEADER_SIZE > len(data):
            raise FormatError(f"Truncated BGZF block header at offset {start}")

        if bytes(data[start : start + 2]) != GZIP_MAGIC:
            raise FormatError(f"Invalid gzip magic in BGZF block at offset {start}")

        method, flags = data[start + 2], data[start + 3]
        if method != GZIP_DEFLATE_METHOD or not flags & GZIP_FLAG_EXTRA:
            raise FormatError(f"BGZF block at offset {start} lacks the extra header field")

        (xlen,) = struct.unpack_from("<H", data, start + 10)
        header_size = BGZF_FIXED_HEADER_SIZE + xlen
        if start + header_size > len(data):
            raise FormatError(f"Truncated BGZF block header at offset {start}")

        # Walk the extra subfields looking for BC (BSIZE = total block size - 1)
        pos = start + BGZF_FIXED_HEADER_SIZE
        end = start + header_size
        while pos + 4 <= end:
            subfield_id = bytes(data[pos : pos + 2])
            (slen,) = struct.unpack_from("<H", data, pos + 2)
            if subfield_id == BGZF_SUBFIELD_ID and slen == 2:
                (bsize,) = struct.unpack_from("<H", data, pos + 4)
                return bsize + 1, header_size
            pos += 4 + slen

        raise FormatError(f"BGZF block at offset {start} has no BC size subfield")

    def _inflate_next_block(self) -> bool:
        """Inflate one block into the buffer.

        Returns:
            False when no compressed blocks remain.

        Raises:
            FormatError: If the block is truncated or corrupt.
        """
        start = self._compressed_pos
        if start >= len(self._data):
            return False

        block_size, header_size = self._block_size(start)
        if block_size < header_size + BGZF_FOOTER_SIZE:
            raise FormatError(f"BGZF block at offset {start} declares an impossible size")
        if start + block_size > len(self._data):
            raise FormatError(
                f"Truncated BGZF block at offset {start}: "
                f"needs {block_size} bytes, {len(self._data) - start} available"
            )

        payload = self._data[start + header_size : start + block_size - BGZF_FOOTER_SIZE]
        crc, isize = struct.unpack_from("<II", self._data, start + block_size - BGZF_FOOTER_SIZE)

        try:
            inflated = zlib.decompress(payload, -zlib.MAX_WBITS)
        except zlib.error as e:
            raise FormatError(f"Corrupt BGZF block at offset {start}: {e}") from e

        if len(inflated) != isize or zlib.crc32(inflated) != crc:
            raise FormatError(f"Corrupt BGZF block at offset {start}: footer mismatch")

        self._compressed_pos = start + block_size
        self._buffer += inflated
        self.blocks_read += 1
        return True

    def read_bytes(self, n: int) -> bytes | None:
        """Read ``n`` bytes from the uncompressed stream.

        Returns:
            The bytes, or None if the remaining blocks cannot satisfy the
            request. None means "no more data", not an error.
        """
        while self.buffered < n:
            if not self._inflate_next_block():
                return None

        start = self._offset
        chunk = bytes(self._buffer[start : start + n])
        self._offset += n

        if self._offset > BUFFER_TRIM_THRESHOLD:
            del self._buffer[: self._offset]
            self._offset = 0

        return chunk
