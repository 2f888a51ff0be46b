"""Windowed read-depth aggregation over a stream of alignment records."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import (
    LOW_COVERAGE_MAX_MEDIAN,
    MEDIUM_COVERAGE_MAX_MEDIAN,
    PROGRESS_REPORT_INTERVAL,
)
from ..errors import EmptyResultError
from .parsers import BamReader

logger = logging.getLogger(__name__)


@dataclass
class CoverageWindow:
    """Read count for one fixed-width genomic window."""

    chromosome: str
    start: int
    end: int  # exclusive, always start + window_size
    raw_coverage: int
    normalized_coverage: float = 0.0


@dataclass(frozen=True)
class CoverageStats:
    """Summary of non-zero window coverage used to pick CNV thresholds."""

    median: float
    mean: float
    coverage_class: str


def compute_coverage(
    reader: BamReader,
    window_size: int,
    chromosomes: Iterable[str] | None = None,
) -> tuple[dict[str, np.ndarray], int]:
    """Count retained reads per window in a single pass over the records.

    Memory is proportional to genome length / window size, never to the
    number of records.

    Args:
        reader: An unopened reader; the header is read here.
        window_size: Window width in bp.
        chromosomes: Optional set of reference names to keep.

    Returns:
        Tuple of (per-chromosome count arrays in header order, records scanned).
    """
    references = reader.read_header()
    chrom_filter = set(chromosomes) if chromosomes else None

    coverage: dict[str, np.ndarray] = {}
    # Header index -> count array, None for filtered references
    slots: list[np.ndarray | None] = []
    for ref in references:
        if chrom_filter and ref.name not in chrom_filter:
            slots.append(None)
            continue
        counts = np.zeros(math.ceil(ref.length / window_size), dtype=np.int64)
        coverage[ref.name] = counts
        slots.append(counts)

    if not coverage:
        logger.warning("No matching chromosomes found in BAM header")
        return coverage, 0

    read_count = 0
    for record in reader.alignments():
        read_count += 1
        if read_count % PROGRESS_REPORT_INTERVAL == 0:
            logger.debug("Processed %d reads", read_count)

        if record.is_unmapped or record.is_duplicate or record.is_secondary:
            continue

        if not 0 <= record.reference_index < len(slots):
            continue
        counts = slots[record.reference_index]
        if counts is None:
            continue

        window_idx = record.position // window_size
        if 0 <= window_idx < len(counts):
            counts[window_idx] += 1

    logger.info("Processed %d total reads across %d chromosomes", read_count, len(coverage))
    return coverage, read_count


def build_windows(coverage: dict[str, np.ndarray], window_size: int) -> list[CoverageWindow]:
    """Expand per-chromosome count arrays into windows, zero windows included."""
    return [
        CoverageWindow(
            chromosome=chrom,
            start=i * window_size,
            end=(i + 1) * window_size,
            raw_coverage=int(depth),
        )
        for chrom, counts in coverage.items()
        for i, depth in enumerate(counts)
    ]


def merge_windows(
    window_lists: Iterable[Sequence[CoverageWindow]],
    chromosome_order: Sequence[str],
) -> list[CoverageWindow]:
    """Combine windows from independent partial runs.

    Windows sharing ``(chromosome, start)`` have their raw counts summed.
    The result is ordered by ``chromosome_order`` then start, so downstream
    region merging never depends on the order partials finished in.
    Normalized values are reset; they must be recomputed from the merged median.
    """
    merged: dict[tuple[str, int], CoverageWindow] = {}
    for windows in window_lists:
        for w in windows:
            key = (w.chromosome, w.start)
            existing = merged.get(key)
            if existing is None:
                merged[key] = CoverageWindow(w.chromosome, w.start, w.end, w.raw_coverage)
            else:
                existing.raw_coverage += w.raw_coverage

    rank = {name: i for i, name in enumerate(chromosome_order)}
    return sorted(
        merged.values(),
        key=lambda w: (rank.get(w.chromosome, len(rank)), w.chromosome, w.start),
    )


def classify_coverage(median: float) -> str:
    """Map median raw window coverage to a coverage class."""
    if median < LOW_COVERAGE_MAX_MEDIAN:
        return "low"
    if median < MEDIUM_COVERAGE_MAX_MEDIAN:
        return "medium"
    return "high"


def compute_coverage_stats(windows: Sequence[CoverageWindow]) -> CoverageStats:
    """Median and mean over windows with non-zero coverage.

    Raises:
        EmptyResultError: If no window has any coverage.
    """
    covered = [w.raw_coverage for w in windows if w.raw_coverage > 0]
    if not covered:
        raise EmptyResultError("No coverage data found")

    median = float(np.median(covered))
    mean = float(np.mean(covered))
    logger.info("Coverage stats: median=%.1fx, mean=%.1fx", median, mean)
    return CoverageStats(median=median, mean=mean, coverage_class=classify_coverage(median))


def normalize_windows(windows: Sequence[CoverageWindow], median: float) -> None:
    """Set each window's normalized coverage to raw / median in place."""
    for w in windows:
        w.normalized_coverage = w.raw_coverage / median if median > 0 else 0.0
