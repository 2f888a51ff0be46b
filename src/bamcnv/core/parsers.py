"""BAM header and alignment record parsing on top of the BGZF stream reader."""

from __future__ import annotations

import enum
import struct
from collections.abc import Iterator
from dataclasses import dataclass

from ..constants import (
    BAM_CORE_SIZE,
    BAM_MAGIC,
    FLAG_DUPLICATE,
    FLAG_SECONDARY,
    FLAG_UNMAPPED,
    SEQ_ALPHABET,
)
from ..errors import FormatError
from .bgzf import BGZFReader

_INT32 = struct.Struct("<i")
_UINT32 = struct.Struct("<I")
# refID, pos, bin_mq_nl, flag_nc, l_seq (mate fields and template length are unused)
_CORE = struct.Struct("<iiIII12x")

# Every packed byte decodes to two bases: high nibble first, low nibble second
_BASE_PAIRS = [SEQ_ALPHABET[b >> 4] + SEQ_ALPHABET[b & 0xF] for b in range(256)]


@dataclass(frozen=True)
class ReferenceSequence:
    """A contig declared in the BAM header."""

    name: str
    length: int


@dataclass
class AlignmentRecord:
    """A single alignment record, decoded only as far as depth analysis needs."""

    reference_index: int  # -1 when the read is unplaced
    position: int  # 0-based leftmost coordinate
    mapping_quality: int
    flags: int
    sequence: str
    base_qualities: bytes

    @property
    def is_unmapped(self) -> bool:
        return bool(self.flags & FLAG_UNMAPPED)

    @property
    def is_duplicate(self) -> bool:
        return bool(self.flags & FLAG_DUPLICATE)

    @property
    def is_secondary(self) -> bool:
        return bool(self.flags & FLAG_SECONDARY)


class ReaderState(enum.Enum):
    UNOPENED = "unopened"
    HEADER_READ = "header_read"
    STREAMING = "streaming"
    EXHAUSTED = "exhausted"


def decode_sequence(packed: bytes, length: int) -> str:
    """Decode a 4-bit packed BAM sequence into bases.

    Args:
        packed: ``(length + 1) // 2`` bytes, two bases per byte.
        length: Number of bases encoded.

    Returns:
        The sequence over ``=ACMGRSVTWYHKDBN``.
    """
    return "".join(_BASE_PAIRS[b] for b in packed)[:length]


class BamReader:
    """Lazy reader over the records of one BAM byte buffer.

    One reader is owned by exactly one analysis invocation; nothing is shared
    between readers, so separate invocations may run concurrently.
    """

    def __init__(self, data: bytes | bytearray | memoryview):
        self._stream = BGZFReader(data)
        self.state = ReaderState.UNOPENED
        self._references: list[ReferenceSequence] = []

    @property
    def references(self) -> list[ReferenceSequence]:
        return list(self._references)

    def _read_exact(self, n: int, what: str) -> bytes:
        data = self._stream.read_bytes(n)
        if data is None:
            raise FormatError(f"Truncated BAM stream while reading {what}")
        return data

    def _read_uint32(self, what: str) -> int:
        return _UINT32.unpack(self._read_exact(4, what))[0]

    def read_header(self) -> list[ReferenceSequence]:
        """Read the BAM header and reference dictionary.

        Returns:
            The reference sequences in header order.

        Raises:
            FormatError: If the BAM magic is missing or the header is truncated.
        """
        magic = self._stream.read_bytes(len(BAM_MAGIC))
        if magic != BAM_MAGIC:
            raise FormatError(f"Not a valid BAM file (magic: {magic!r})")

        # The SAM text header is not needed for depth analysis
        l_text = self._read_uint32("header text length")
        self._read_exact(l_text, "header text")

        n_ref = self._read_uint32("reference count")
        references = []
        for _ in range(n_ref):
            l_name = self._read_uint32("reference name length")
            raw_name = self._read_exact(l_name, "reference name")
            l_ref = self._read_uint32("reference length")
            name = raw_name.rstrip(b"\x00").decode("utf-8", errors="replace")
            references.append(ReferenceSequence(name=name, length=l_ref))

        self._references = references
        self.state = ReaderState.HEADER_READ
        return self.references

    def read_alignment(self) -> AlignmentRecord | None:
        """Read the next alignment record.

        Returns:
            The record, or None once the stream is cleanly exhausted.

        Raises:
            RuntimeError: If called before ``read_header``.
            FormatError: If a record is cut short or internally inconsistent.
        """
        if self.state is ReaderState.UNOPENED:
            raise RuntimeError("read_header() must be called before read_alignment()")
        if self.state is ReaderState.EXHAUSTED:
            return None

        prefix = self._stream.read_bytes(4)
        if prefix is None:
            if self._stream.buffered:
                raise FormatError("Truncated BAM stream inside an alignment length prefix")
            self.state = ReaderState.EXHAUSTED
            return None

        self.state = ReaderState.STREAMING
        (block_size,) = _INT32.unpack(prefix)
        if block_size < BAM_CORE_SIZE:
            raise FormatError(f"Alignment record too short ({block_size} bytes)")

        block = self._read_exact(block_size, "alignment record")
        ref_id, pos, bin_mq_nl, flag_nc, l_seq = _CORE.unpack_from(block)

        l_read_name = bin_mq_nl & 0xFF
        mapq = (bin_mq_nl >> 8) & 0xFF
        flag = flag_nc >> 16
        n_cigar_op = flag_nc & 0xFFFF

        # Read name and CIGAR are skipped; quality follows the packed sequence
        seq_start = BAM_CORE_SIZE + l_read_name + n_cigar_op * 4
        qual_start = seq_start + (l_seq + 1) // 2
        qual_end = qual_start + l_seq
        if qual_end > block_size:
            raise FormatError(
                f"Alignment record fields ({qual_end} bytes) overrun its length ({block_size})"
            )

        # Anything after the qualities is optional tag data, already consumed with the block
        return AlignmentRecord(
            reference_index=ref_id,
            position=pos,
            mapping_quality=mapq,
            flags=flag,
            sequence=decode_sequence(block[seq_start:qual_start], l_seq),
            base_qualities=block[qual_start:qual_end],
        )

    def alignments(self) -> Iterator[AlignmentRecord]:
        """Iterate over the remaining alignment records."""
        while True:
            record = self.read_alignment()
            if record is None:
                return
            yield record
