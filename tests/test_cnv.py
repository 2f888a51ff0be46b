"""Unit tests for bamcnv.analysis.cnv module."""

import pytest

from bamcnv.analysis.cnv import (
    CnvThresholds,
    adaptive_thresholds,
    classify_window,
    compute_confidence,
    detect_cnvs,
)
from bamcnv.core.coverage import CoverageWindow

MEDIUM = CnvThresholds(amp_threshold=1.5, del_threshold=0.5, min_windows=3)


def _windows(chrom, normalized, window_size=100, raw_scale=20):
    """Windows with the given normalized values and raw = normalized * raw_scale."""
    return [
        CoverageWindow(
            chromosome=chrom,
            start=i * window_size,
            end=(i + 1) * window_size,
            raw_coverage=int(round(n * raw_scale)),
            normalized_coverage=n,
        )
        for i, n in enumerate(normalized)
    ]


class TestThresholds:
    """Tests for adaptive threshold selection."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "coverage_class,expected",
        [
            ("low", (2.0, 0.3, 5)),
            ("medium", (1.5, 0.5, 3)),
            ("high", (1.3, 0.7, 2)),
        ],
    )
    def test_adaptive_bands(self, coverage_class, expected):
        t = adaptive_thresholds(coverage_class)
        assert (t.amp_threshold, t.del_threshold, t.min_windows) == expected


class TestClassifyWindow:
    """Tests for classify_window."""

    @pytest.mark.unit
    def test_amplification_is_inclusive(self):
        assert classify_window(1.5, MEDIUM) == "amplification"

    @pytest.mark.unit
    def test_deletion_is_inclusive(self):
        assert classify_window(0.5, MEDIUM) == "deletion"

    @pytest.mark.unit
    def test_zero_is_not_deletion(self):
        assert classify_window(0.0, MEDIUM) is None

    @pytest.mark.unit
    def test_neutral(self):
        assert classify_window(1.0, MEDIUM) is None
        assert classify_window(1.49, MEDIUM) is None
        assert classify_window(0.51, MEDIUM) is None


class TestComputeConfidence:
    """Tests for confidence scoring."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "num_windows,std,confidence_class,expected",
        [
            (10, 0.2, "low", "high"),
            (9, 0.2, "low", "medium"),
            (5, 0.49, "low", "medium"),
            (4, 0.1, "low", "low"),
            (7, 0.29, "medium", "high"),
            (7, 0.3, "medium", "medium"),
            (3, 0.5, "medium", "low"),
            (5, 0.39, "high", "high"),
            (2, 0.59, "high", "medium"),
            (1, 0.0, "high", "low"),
        ],
    )
    def test_bands(self, num_windows, std, confidence_class, expected):
        assert compute_confidence(num_windows, std, confidence_class) == expected


class TestDetectCnvs:
    """Tests for detect_cnvs region merging."""

    @pytest.mark.unit
    def test_uniform_coverage_yields_nothing(self):
        assert detect_cnvs(_windows("chr1", [1.0] * 20), MEDIUM, "medium") == []

    @pytest.mark.unit
    def test_single_amplification(self):
        windows = _windows("chr1", [1.0, 1.0, 2.0, 2.0, 2.0, 2.0, 1.0])
        cnvs = detect_cnvs(windows, MEDIUM, "medium")
        assert len(cnvs) == 1
        region = cnvs[0]
        assert region.type == "amplification"
        assert (region.start, region.end) == (200, 600)
        assert region.length == 400
        assert region.num_windows == 4
        assert region.average_normalized == pytest.approx(2.0)
        assert region.average_coverage == pytest.approx(40.0)
        assert region.copy_number_estimate == pytest.approx(4.0)
        assert region.confidence == "medium"

    @pytest.mark.unit
    def test_deletion_copy_number(self):
        cnvs = detect_cnvs(_windows("chr1", [0.5, 0.5, 0.5]), MEDIUM, "medium")
        assert len(cnvs) == 1
        assert cnvs[0].type == "deletion"
        assert cnvs[0].copy_number_estimate == pytest.approx(1.0)

    @pytest.mark.unit
    def test_short_run_dropped(self):
        windows = _windows("chr1", [1.0, 2.0, 2.0, 1.0])
        assert detect_cnvs(windows, MEDIUM, "medium") == []

    @pytest.mark.unit
    def test_neutral_window_resets_run(self):
        # Two runs of two separated by a neutral window never combine into four
        windows = _windows("chr1", [2.0, 2.0, 1.0, 2.0, 2.0])
        assert detect_cnvs(windows, MEDIUM, "medium") == []

    @pytest.mark.unit
    def test_zero_window_breaks_deletion(self):
        windows = _windows("chr1", [0.3, 0.3, 0.0, 0.3, 0.3])
        assert detect_cnvs(windows, MEDIUM, "medium") == []

    @pytest.mark.unit
    def test_type_change_splits_regions(self):
        windows = _windows("chr1", [2.0, 2.0, 2.0, 0.3, 0.3, 0.3])
        cnvs = detect_cnvs(windows, MEDIUM, "medium")
        assert [(r.type, r.start, r.end) for r in cnvs] == [
            ("amplification", 0, 300),
            ("deletion", 300, 600),
        ]

    @pytest.mark.unit
    def test_regions_never_span_chromosomes(self):
        windows = _windows("chr1", [1.0, 2.0, 2.0]) + _windows("chr2", [2.0, 2.0, 1.0])
        assert detect_cnvs(windows, MEDIUM, "medium") == []

        windows = _windows("chr1", [2.0] * 3) + _windows("chr2", [2.0] * 3)
        cnvs = detect_cnvs(windows, MEDIUM, "medium")
        assert [(r.chromosome, r.start, r.end) for r in cnvs] == [("chr1", 0, 300), ("chr2", 0, 300)]

    @pytest.mark.unit
    def test_run_at_end_is_closed(self):
        cnvs = detect_cnvs(_windows("chr1", [1.0, 2.0, 2.0, 2.0]), MEDIUM, "medium")
        assert len(cnvs) == 1
        assert cnvs[0].end == 400

    @pytest.mark.unit
    def test_min_windows_respected(self):
        normalized = [2.0, 2.0, 1.0, 2.0, 2.0, 2.0, 1.0, 0.2, 1.0, 0.2, 0.2, 0.2, 0.2]
        for min_windows in (1, 2, 3, 4):
            thresholds = CnvThresholds(1.5, 0.5, min_windows)
            cnvs = detect_cnvs(_windows("chr1", normalized), thresholds, "medium")
            assert all(r.num_windows >= min_windows for r in cnvs)

    @pytest.mark.unit
    def test_deterministic(self):
        normalized = [1.0, 2.0, 2.5, 1.9, 1.0, 0.4, 0.3, 0.45, 1.0]
        first = detect_cnvs(_windows("chr1", normalized), MEDIUM, "medium")
        second = detect_cnvs(_windows("chr1", normalized), MEDIUM, "medium")
        assert [(r.start, r.end, r.type, r.confidence) for r in first] == [
            (r.start, r.end, r.type, r.confidence) for r in second
        ]
