"""Top-level analysis entry points.

Each entry point is a pure function of ``(byte buffer, options)``: it owns its
reader for the duration of the call and keeps no module-level state, so any
number of invocations may run side by side. Options are validated before
any byte of the input is parsed.
"""

from __future__ import annotations

import logging
import multiprocessing
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from typing import Literal, Union

from .analysis.cnv import CnvRegion, CnvThresholds, adaptive_thresholds, detect_cnvs
from .analysis.variants import Variant
from .analysis.variants import call_variants as _call_variants
from .constants import (
    CNV_MODES,
    DEFAULT_AMP_THRESHOLD,
    DEFAULT_CNV_MODE,
    DEFAULT_DEL_THRESHOLD,
    DEFAULT_MIN_ALLELE_FREQ,
    DEFAULT_MIN_BASE_QUALITY,
    DEFAULT_MIN_DEPTH,
    DEFAULT_MIN_MAPPING_QUALITY,
    DEFAULT_MIN_VARIANT_READS,
    DEFAULT_MIN_WINDOWS,
    DEFAULT_PILEUP_WINDOW_SIZE,
    DEFAULT_WINDOW_SIZE,
    MANUAL_CONFIDENCE_CLASS,
)
from .core.coverage import (
    CoverageStats,
    CoverageWindow,
    build_windows,
    compute_coverage,
    compute_coverage_stats,
    merge_windows,
    normalize_windows,
)
from .core.parsers import BamReader, ReferenceSequence
from .errors import BAMCNVError, ConfigurationError

logger = logging.getLogger(__name__)

BamData = Union[bytes, bytearray, memoryview]


# -- Options -------------------------------------------------------------------


@dataclass(frozen=True)
class CoverageOptions:
    """Options for a coverage + CNV run."""

    window_size: int = DEFAULT_WINDOW_SIZE
    chromosomes: frozenset[str] | None = None
    mode: str = DEFAULT_CNV_MODE
    amp_threshold: float | None = None
    del_threshold: float | None = None
    min_windows: int | None = None

    def validate(self) -> None:
        """Raise ConfigurationError for out-of-range options."""
        if self.window_size < 1:
            raise ConfigurationError(f"window_size must be at least 1, got {self.window_size}")
        if self.mode not in CNV_MODES:
            raise ConfigurationError(f"mode must be one of {CNV_MODES}, got '{self.mode}'")
        if self.mode == "manual":
            thresholds = self.manual_thresholds()
            if thresholds.amp_threshold <= 1.0:
                raise ConfigurationError(
                    f"amp_threshold must be greater than 1.0, got {thresholds.amp_threshold}"
                )
            if not 0 < thresholds.del_threshold < 1.0:
                raise ConfigurationError(
                    f"del_threshold must be between 0 and 1.0, got {thresholds.del_threshold}"
                )
            if thresholds.min_windows < 1:
                raise ConfigurationError(
                    f"min_windows must be at least 1, got {thresholds.min_windows}"
                )

    def manual_thresholds(self) -> CnvThresholds:
        return CnvThresholds(
            amp_threshold=(
                self.amp_threshold if self.amp_threshold is not None else DEFAULT_AMP_THRESHOLD
            ),
            del_threshold=(
                self.del_threshold if self.del_threshold is not None else DEFAULT_DEL_THRESHOLD
            ),
            min_windows=self.min_windows if self.min_windows is not None else DEFAULT_MIN_WINDOWS,
        )


@dataclass(frozen=True)
class VariantOptions:
    """Filters for a variant-calling run."""

    chromosomes: frozenset[str] | None = None
    min_depth: int = DEFAULT_MIN_DEPTH
    min_base_quality: int = DEFAULT_MIN_BASE_QUALITY
    min_mapping_quality: int = DEFAULT_MIN_MAPPING_QUALITY
    min_variant_reads: int = DEFAULT_MIN_VARIANT_READS
    min_allele_freq: float = DEFAULT_MIN_ALLELE_FREQ
    pileup_window_size: int = DEFAULT_PILEUP_WINDOW_SIZE

    def validate(self) -> None:
        """Raise ConfigurationError for out-of-range options."""
        if self.min_depth < 1:
            raise ConfigurationError(f"min_depth must be at least 1, got {self.min_depth}")
        if not 0 <= self.min_base_quality <= 255:
            raise ConfigurationError(
                f"min_base_quality must be between 0 and 255, got {self.min_base_quality}"
            )
        if not 0 <= self.min_mapping_quality <= 255:
            raise ConfigurationError(
                f"min_mapping_quality must be between 0 and 255, got {self.min_mapping_quality}"
            )
        if self.min_variant_reads < 1:
            raise ConfigurationError(
                f"min_variant_reads must be at least 1, got {self.min_variant_reads}"
            )
        if not 0 <= self.min_allele_freq <= 1:
            raise ConfigurationError(
                f"min_allele_freq must be between 0 and 1, got {self.min_allele_freq}"
            )
        if self.pileup_window_size < 1:
            raise ConfigurationError(
                f"pileup_window_size must be at least 1, got {self.pileup_window_size}"
            )

    def filters(self) -> dict:
        return {
            "min_depth": self.min_depth,
            "min_base_quality": self.min_base_quality,
            "min_mapping_quality": self.min_mapping_quality,
            "min_variant_reads": self.min_variant_reads,
            "min_allele_freq": self.min_allele_freq,
        }


# -- Results -------------------------------------------------------------------


@dataclass
class CoverageCounts:
    """Raw window counts from one (possibly partial) pass over a BAM."""

    window_size: int
    chromosomes: list[str]
    windows: list[CoverageWindow]
    total_reads: int


@dataclass
class CoverageResult:
    total_reads: int
    windows: list[CoverageWindow]
    cnv_regions: list[CnvRegion]
    window_size: int
    chromosomes_processed: list[str]
    coverage_stats: CoverageStats
    mode: str
    thresholds: CnvThresholds
    kind: Literal["coverage"] = "coverage"


@dataclass
class VariantResult:
    variants: list[Variant]
    filters_applied: dict
    chromosomes_processed: list[str]
    kind: Literal["variants"] = "variants"

    @property
    def total_variants(self) -> int:
        return len(self.variants)


@dataclass
class ErrorResult:
    error_type: str
    message: str
    kind: Literal["error"] = "error"


AnalysisResult = Union[CoverageResult, VariantResult, ErrorResult]


# -- Entry points --------------------------------------------------------------


def list_references(data: BamData) -> list[ReferenceSequence]:
    """Read only the BAM header and return its reference sequences."""
    return BamReader(data).read_header()


def count_coverage(
    data: BamData,
    window_size: int,
    chromosomes: frozenset[str] | None = None,
) -> CoverageCounts:
    """Count reads per window without normalizing or calling CNVs.

    This is the unit of work that may be run per chromosome partition and
    merged afterwards with ``summarize_coverage``.
    """
    coverage, total_reads = compute_coverage(BamReader(data), window_size, chromosomes)
    return CoverageCounts(
        window_size=window_size,
        chromosomes=list(coverage),
        windows=build_windows(coverage, window_size),
        total_reads=total_reads,
    )


def summarize_coverage(
    counts: Sequence[CoverageCounts],
    options: CoverageOptions,
    chromosome_order: Sequence[str] | None = None,
) -> CoverageResult:
    """Merge partial counts, normalize on the global median and call CNVs.

    Thresholds depend on the global median, so CNVs are always called once,
    on the merged window set.

    Raises:
        EmptyResultError: If the merged windows hold no coverage.
    """
    chromosomes: list[str] = []
    for partial in counts:
        chromosomes.extend(c for c in partial.chromosomes if c not in chromosomes)
    order = list(chromosome_order) if chromosome_order is not None else chromosomes
    chromosomes.sort(key=lambda c: order.index(c) if c in order else len(order))

    if len(counts) == 1:
        windows = counts[0].windows
    else:
        windows = merge_windows((partial.windows for partial in counts), order)

    stats = compute_coverage_stats(windows)
    normalize_windows(windows, stats.median)

    if options.mode == "manual":
        thresholds = options.manual_thresholds()
        confidence_class = MANUAL_CONFIDENCE_CLASS
    else:
        thresholds = adaptive_thresholds(stats.coverage_class)
        confidence_class = stats.coverage_class
    logger.info(
        "Using %s thresholds (%s coverage): amp=%s, del=%s, min_windows=%d",
        options.mode,
        stats.coverage_class,
        thresholds.amp_threshold,
        thresholds.del_threshold,
        thresholds.min_windows,
    )

    return CoverageResult(
        # Every chromosome partition streams the whole file
        total_reads=max((partial.total_reads for partial in counts), default=0),
        windows=windows,
        cnv_regions=detect_cnvs(windows, thresholds, confidence_class),
        window_size=options.window_size,
        chromosomes_processed=chromosomes,
        coverage_stats=stats,
        mode=options.mode,
        thresholds=thresholds,
    )


def analyze_coverage(data: BamData, options: CoverageOptions | None = None) -> CoverageResult:
    """Compute windowed coverage and call CNVs.

    Raises:
        ConfigurationError: If the options are invalid.
        FormatError: If the input is not a well-formed BAM.
        EmptyResultError: If no retained read falls in any window.
    """
    options = options or CoverageOptions()
    options.validate()
    counts = count_coverage(data, options.window_size, options.chromosomes)
    return summarize_coverage([counts], options)


def partition_chromosomes(names: Sequence[str], partitions: int) -> list[frozenset[str]]:
    """Deal reference names round-robin into at most ``partitions`` groups."""
    groups: list[list[str]] = [[] for _ in range(min(partitions, len(names)))]
    for i, name in enumerate(names):
        groups[i % len(groups)].append(name)
    return [frozenset(group) for group in groups]


def analyze_coverage_parallel(
    data: BamData,
    options: CoverageOptions | None = None,
    workers: int = 2,
) -> CoverageResult:
    """Coverage + CNV analysis with chromosome partitions counted in parallel.

    Produces the same result as ``analyze_coverage``: partial window counts
    are merged and CNVs are called once on the merged set.

    Raises:
        ConfigurationError: If the options are invalid or ``workers`` is below 1.
    """
    options = options or CoverageOptions()
    options.validate()
    if workers < 1:
        raise ConfigurationError(f"workers must be at least 1, got {workers}")

    names = [ref.name for ref in list_references(data)]
    if options.chromosomes:
        names = [name for name in names if name in options.chromosomes]

    partitions = partition_chromosomes(names, workers)
    if len(partitions) <= 1:
        return analyze_coverage(data, options)

    payload = bytes(data)
    logger.info("Counting coverage in %d partitions", len(partitions))
    # Never fork: the caller may be multi-threaded
    with ProcessPoolExecutor(
        max_workers=len(partitions), mp_context=multiprocessing.get_context("spawn")
    ) as executor:
        futures = [
            executor.submit(count_coverage, payload, options.window_size, partition)
            for partition in partitions
        ]
        counts = [future.result() for future in futures]

    return summarize_coverage(counts, options, chromosome_order=names)


def call_variants(data: BamData, options: VariantOptions | None = None) -> VariantResult:
    """Call single-nucleotide variants from a pileup of the input reads.

    Raises:
        ConfigurationError: If the options are invalid.
        FormatError: If the input is not a well-formed BAM.
    """
    options = options or VariantOptions()
    options.validate()

    variants, chromosomes = _call_variants(
        BamReader(data),
        options.chromosomes,
        min_depth=options.min_depth,
        min_base_quality=options.min_base_quality,
        min_mapping_quality=options.min_mapping_quality,
        min_variant_reads=options.min_variant_reads,
        min_allele_freq=options.min_allele_freq,
        pileup_window_size=options.pileup_window_size,
    )
    logger.info("Variant calling complete: %d variants found", len(variants))
    return VariantResult(
        variants=variants,
        filters_applied=options.filters(),
        chromosomes_processed=chromosomes,
    )


def run_analysis(
    data: BamData,
    options: CoverageOptions | VariantOptions,
    workers: int = 1,
) -> AnalysisResult:
    """Run the analysis selected by the options type and tag the outcome.

    Analysis errors become an ``ErrorResult`` so that "empty but valid" and
    "failed" never share a shape.
    """
    try:
        if isinstance(options, VariantOptions):
            return call_variants(data, options)
        if workers != 1:
            return analyze_coverage_parallel(data, options, workers=workers)
        return analyze_coverage(data, options)
    except BAMCNVError as e:
        return ErrorResult(error_type=type(e).__name__, message=str(e))
