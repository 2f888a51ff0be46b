"""Core BAM decoding and coverage modules."""

from .bgzf import BGZFReader
from .coverage import (
    CoverageStats,
    CoverageWindow,
    build_windows,
    classify_coverage,
    compute_coverage,
    compute_coverage_stats,
    merge_windows,
    normalize_windows,
)
from .parsers import AlignmentRecord, BamReader, ReaderState, ReferenceSequence, decode_sequence

__all__ = [
    "AlignmentRecord",
    "BGZFReader",
    "BamReader",
    "CoverageStats",
    "CoverageWindow",
    "ReaderState",
    "ReferenceSequence",
    "build_windows",
    "classify_coverage",
    "compute_coverage",
    "compute_coverage_stats",
    "decode_sequence",
    "merge_windows",
    "normalize_windows",
]
