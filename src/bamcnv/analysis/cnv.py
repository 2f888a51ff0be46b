"""Copy-number variation calling from normalized window coverage.

Windows are classified against amplification/deletion ratios, runs of
same-type windows on one chromosome are merged into regions, and regions
shorter than the minimum run length are dropped outright.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ..constants import (
    ADAPTIVE_THRESHOLDS,
    AMPLIFICATION,
    CONFIDENCE_BANDS,
    DELETION,
    DIPLOID_COPY_NUMBER,
)
from ..core.coverage import CoverageWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CnvThresholds:
    """Ratios and run length used to call CNV regions."""

    amp_threshold: float
    del_threshold: float
    min_windows: int


@dataclass
class CnvRegion:
    """A called run of amplified or deleted windows."""

    chromosome: str
    start: int
    end: int
    type: str
    windows: list[CoverageWindow] = field(default_factory=list)
    average_coverage: float = 0.0
    average_normalized: float = 0.0
    copy_number_estimate: float = 0.0
    confidence: str = "low"

    @property
    def length(self) -> int:
        return self.end - self.start

    @property
    def num_windows(self) -> int:
        return len(self.windows)


def adaptive_thresholds(coverage_class: str) -> CnvThresholds:
    """Thresholds for a coverage class.

    Lower coverage gets wider ratios but needs longer runs.
    """
    amp, dele, min_windows = ADAPTIVE_THRESHOLDS[coverage_class]
    return CnvThresholds(amp_threshold=amp, del_threshold=dele, min_windows=min_windows)


def classify_window(normalized: float, thresholds: CnvThresholds) -> str | None:
    """Return the CNV type for a window, or None if it is neutral."""
    if normalized >= thresholds.amp_threshold:
        return AMPLIFICATION
    # Zero-coverage windows are gaps (e.g. unassembled sequence), not deletions
    if 0 < normalized <= thresholds.del_threshold:
        return DELETION
    return None


def compute_confidence(num_windows: int, std_normalized: float, confidence_class: str) -> str:
    """Score a region from its length and the spread of its normalized coverage."""
    (high_windows, high_std), (medium_windows, medium_std) = CONFIDENCE_BANDS[confidence_class]
    if num_windows >= high_windows and std_normalized < high_std:
        return "high"
    if num_windows >= medium_windows and std_normalized < medium_std:
        return "medium"
    return "low"


def summarize_region(region: CnvRegion, confidence_class: str) -> CnvRegion:
    """Fill in averages, copy number and confidence for a closed region."""
    raw = np.array([w.raw_coverage for w in region.windows], dtype=float)
    normalized = np.array([w.normalized_coverage for w in region.windows], dtype=float)

    region.average_coverage = float(np.mean(raw))
    region.average_normalized = float(np.mean(normalized))
    region.copy_number_estimate = region.average_normalized * DIPLOID_COPY_NUMBER
    region.confidence = compute_confidence(
        len(region.windows), float(np.std(normalized)), confidence_class
    )
    return region


def detect_cnvs(
    windows: Sequence[CoverageWindow],
    thresholds: CnvThresholds,
    confidence_class: str,
) -> list[CnvRegion]:
    """Merge classified windows into CNV regions.

    Args:
        windows: Normalized windows in chromosome-then-position order.
        thresholds: Amplification/deletion ratios and minimum run length.
        confidence_class: Coverage class whose confidence bands score regions.

    Returns:
        Regions with at least ``thresholds.min_windows`` windows, in scan order.
    """
    cnvs: list[CnvRegion] = []
    current: CnvRegion | None = None

    def close() -> None:
        if current is not None and len(current.windows) >= thresholds.min_windows:
            cnvs.append(summarize_region(current, confidence_class))

    for window in windows:
        cnv_type = classify_window(window.normalized_coverage, thresholds)

        if cnv_type is None:
            close()
            current = None
            continue

        if (
            current is not None
            and current.type == cnv_type
            and current.chromosome == window.chromosome
        ):
            current.end = window.end
            current.windows.append(window)
            continue

        close()
        current = CnvRegion(
            chromosome=window.chromosome,
            start=window.start,
            end=window.end,
            type=cnv_type,
            windows=[window],
        )

    close()

    logger.info(
        "Detected %d CNVs (amp>=%s, del<=%s, min_windows=%d)",
        len(cnvs),
        thresholds.amp_threshold,
        thresholds.del_threshold,
        thresholds.min_windows,
    )
    return cnvs
