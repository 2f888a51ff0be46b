"""Pileup-based single-nucleotide variant calling.

Reads are collected for every target chromosome in one pass over the file,
then piled up chromosome by chromosome in fixed-size genomic windows so only
one window of base counts is held in memory at a time.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np

from ..constants import (
    ASSUMED_BASE_ERROR_RATE,
    CALLABLE_ALT_BASES,
    DEFAULT_PILEUP_WINDOW_SIZE,
    MAX_VARIANT_QUALITY,
    MIN_ERROR_PROBABILITY,
    PILEUP_BASES,
    PROGRESS_REPORT_INTERVAL,
    VARIANT_TYPE_SNV,
)
from ..core.parsers import BamReader, ReferenceSequence

logger = logging.getLogger(__name__)

# Byte value -> pileup column, or len(PILEUP_BASES) for bases that are not counted
_SKIP = len(PILEUP_BASES)
_BASE_CODES = np.full(256, _SKIP, dtype=np.uint8)
for _i, _base in enumerate(PILEUP_BASES):
    _BASE_CODES[ord(_base)] = _i
    _BASE_CODES[ord(_base.lower())] = _i


@dataclass
class Variant:
    """A single-nucleotide variant call at a 1-based position."""

    chromosome: str
    position: int
    reference_allele: str
    alternate_allele: str
    quality_score: float
    total_depth: int
    reference_count: int
    alternate_count: int
    allele_frequency: float
    type: str = VARIANT_TYPE_SNV


@dataclass
class PileupRead:
    """The parts of a retained read the pileup needs."""

    position: int
    base_codes: np.ndarray  # pileup column per base
    base_qualities: np.ndarray

    @property
    def end(self) -> int:
        return self.position + len(self.base_codes)


def variant_quality(alt_count: int, error_rate: float = ASSUMED_BASE_ERROR_RATE) -> float:
    """Phred-like score for seeing ``alt_count`` errors at one position by chance.

    This is a fixed-error-rate heuristic, not a calibrated genotype quality.
    """
    error_prob = error_rate**alt_count
    return min(-10 * math.log10(max(error_prob, MIN_ERROR_PROBABILITY)), MAX_VARIANT_QUALITY)


def collect_reads(
    reader: BamReader,
    target_refs: Sequence[int],
    min_mapping_quality: int,
) -> dict[int, list[PileupRead]]:
    """Keep usable reads for every target reference in one linear pass.

    Args:
        reader: Reader whose header has already been read.
        target_refs: Header indices of the chromosomes to keep.
        min_mapping_quality: Reads below this mapping quality are dropped.

    Returns:
        Dict mapping reference index to its retained reads, in file order.
    """
    chrom_reads: dict[int, list[PileupRead]] = {ref_id: [] for ref_id in target_refs}

    read_count = 0
    kept_count = 0
    for record in reader.alignments():
        read_count += 1
        if read_count % PROGRESS_REPORT_INTERVAL == 0:
            logger.debug("Scanned %d reads, kept %d", read_count, kept_count)

        bucket = chrom_reads.get(record.reference_index)
        if bucket is None:
            continue
        if record.is_unmapped or record.is_duplicate or record.is_secondary:
            continue
        if record.mapping_quality < min_mapping_quality:
            continue
        if not record.sequence:
            continue

        bucket.append(
            PileupRead(
                position=record.position,
                base_codes=_BASE_CODES[np.frombuffer(record.sequence.encode("ascii"), np.uint8)],
                base_qualities=np.frombuffer(record.base_qualities, dtype=np.uint8),
            )
        )
        kept_count += 1

    logger.info("Scanned %d total reads, kept %d high-quality reads", read_count, kept_count)
    return chrom_reads


def build_pileup(
    reads: Iterable[PileupRead],
    window_start: int,
    window_end: int,
    min_base_quality: int,
) -> np.ndarray:
    """Count A/C/G/T/N per position in ``[window_start, window_end)``.

    Returns:
        Array of shape ``(window_end - window_start, 5)``.
    """
    counts = np.zeros((window_end - window_start, len(PILEUP_BASES)), dtype=np.int64)

    for read in reads:
        lo = max(window_start, read.position)
        hi = min(window_end, read.end)
        if lo >= hi:
            continue

        codes = read.base_codes[lo - read.position : hi - read.position]
        quals = read.base_qualities[lo - read.position : hi - read.position]
        offsets = np.arange(lo - window_start, hi - window_start)

        keep = (codes != _SKIP) & (quals >= min_base_quality)
        np.add.at(counts, (offsets[keep], codes[keep]), 1)

    return counts


def call_pileup_window(
    counts: np.ndarray,
    chrom_name: str,
    window_start: int,
    min_depth: int,
    min_variant_reads: int,
    min_allele_freq: float,
) -> list[Variant]:
    """Emit variants from one window of base counts."""
    variants: list[Variant] = []
    depths = counts.sum(axis=1)

    for offset in np.flatnonzero(depths >= min_depth):
        bases = counts[offset]
        total_depth = int(depths[offset])

        # Majority base stands in for the reference; ties go to the earlier column
        ref_idx = int(np.argmax(bases))
        ref_base = PILEUP_BASES[ref_idx]
        ref_count = int(bases[ref_idx])

        for alt_base in CALLABLE_ALT_BASES:
            if alt_base == ref_base:
                continue

            alt_count = int(bases[PILEUP_BASES.index(alt_base)])
            if alt_count < min_variant_reads:
                continue

            allele_freq = alt_count / total_depth
            if allele_freq < min_allele_freq:
                continue

            variants.append(
                Variant(
                    chromosome=chrom_name,
                    position=window_start + int(offset) + 1,
                    reference_allele=ref_base,
                    alternate_allele=alt_base,
                    quality_score=float(variant_quality(alt_count)),
                    total_depth=total_depth,
                    reference_count=ref_count,
                    alternate_count=alt_count,
                    allele_frequency=float(allele_freq),
                )
            )

    return variants


def call_variants_from_pileup(
    reads: Sequence[PileupRead],
    reference: ReferenceSequence,
    min_depth: int,
    min_base_quality: int,
    min_variant_reads: int,
    min_allele_freq: float,
    window_size: int = DEFAULT_PILEUP_WINDOW_SIZE,
) -> list[Variant]:
    """Pile up one chromosome's reads window by window and call variants.

    Each base lands in exactly one window, so the calls do not depend on
    ``window_size``.
    """
    if reference.length <= 0 or not reads:
        return []

    num_windows = math.ceil(reference.length / window_size)
    logger.debug(
        "Processing %s in %d windows (%dbp each)", reference.name, num_windows, window_size
    )

    # Bucket reads by every window they touch instead of rescanning all reads per window
    by_window: dict[int, list[PileupRead]] = {}
    for read in reads:
        first = max(read.position, 0) // window_size
        last = min(read.end - 1, reference.length - 1) // window_size
        for window_idx in range(first, last + 1):
            by_window.setdefault(window_idx, []).append(read)

    variants: list[Variant] = []
    for window_idx in sorted(by_window):
        window_start = window_idx * window_size
        window_end = min(window_start + window_size, reference.length)
        counts = build_pileup(by_window[window_idx], window_start, window_end, min_base_quality)
        variants.extend(
            call_pileup_window(
                counts,
                reference.name,
                window_start,
                min_depth,
                min_variant_reads,
                min_allele_freq,
            )
        )

    logger.info("Found %d variants in %s", len(variants), reference.name)
    return variants


def call_variants(
    reader: BamReader,
    target_chromosomes: Iterable[str] | None,
    min_depth: int,
    min_base_quality: int,
    min_mapping_quality: int,
    min_variant_reads: int,
    min_allele_freq: float,
    pileup_window_size: int = DEFAULT_PILEUP_WINDOW_SIZE,
) -> tuple[list[Variant], list[str]]:
    """Call SNVs across the target chromosomes of one BAM stream.

    Args:
        reader: An unopened reader; the header is read here.
        target_chromosomes: Reference names to call on, or None for all.

    Returns:
        Tuple of (variants sorted by chromosome then position, chromosomes processed).
    """
    references = reader.read_header()
    chrom_filter = set(target_chromosomes) if target_chromosomes else None

    target_refs = [
        (ref_id, ref)
        for ref_id, ref in enumerate(references)
        if not chrom_filter or ref.name in chrom_filter
    ]
    logger.info("Processing %d chromosomes/contigs", len(target_refs))

    chrom_reads = collect_reads(reader, [ref_id for ref_id, _ in target_refs], min_mapping_quality)

    variants: list[Variant] = []
    for ref_id, ref in target_refs:
        reads = chrom_reads.get(ref_id, [])
        if not reads:
            logger.debug("No reads found for %s", ref.name)
            continue
        variants.extend(
            call_variants_from_pileup(
                reads,
                ref,
                min_depth,
                min_base_quality,
                min_variant_reads,
                min_allele_freq,
                window_size=pileup_window_size,
            )
        )

    variants.sort(key=lambda v: (v.chromosome, v.position))
    return variants, [ref.name for _, ref in target_refs]
