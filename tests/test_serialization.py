"""Unit tests for bamcnv.core.serialization module."""

import json

import pytest

from bamcnv.analysis.variants import Variant
from bamcnv.core.serialization import serialize_result, serialize_variant
from bamcnv.pipeline import (
    CoverageOptions,
    ErrorResult,
    VariantResult,
    analyze_coverage,
)


class TestSerializeCoverage:
    """Tests for coverage result payloads."""

    @pytest.mark.integration
    def test_coverage_payload(self, amplification_bam_bytes):
        result = analyze_coverage(amplification_bam_bytes, CoverageOptions())
        payload = serialize_result(result)

        assert payload["kind"] == "coverage"
        assert payload["total_reads"] == 2400
        assert payload["window_size"] == 10_000
        assert payload["chromosomes_processed"] == ["chr1", "chr2"]
        assert payload["coverage_stats"] == {"median": 30.0, "mean": 40.0, "class": "high"}
        assert payload["thresholds_used"] == {
            "mode": "adaptive",
            "amp_threshold": 1.3,
            "del_threshold": 0.7,
            "min_windows": 2,
        }
        assert len(payload["windows"]) == 60
        region = payload["cnv_regions"][0]
        assert region["length"] == 100_000
        assert region["num_windows"] == 10
        assert len(region["windows"]) == 10
        json.dumps(payload)

    @pytest.mark.integration
    def test_compact_omits_region_windows(self, amplification_bam_bytes):
        result = analyze_coverage(amplification_bam_bytes, CoverageOptions())
        region = serialize_result(result, compact=True)["cnv_regions"][0]
        assert "windows" not in region
        assert region["num_windows"] == 10


class TestSerializeVariants:
    """Tests for variant result payloads."""

    @pytest.mark.unit
    def test_variant_fields(self):
        v = Variant("chr1", 106, "A", "G", 100.0, 20, 15, 5, 0.25)
        assert serialize_variant(v) == {
            "chromosome": "chr1",
            "position": 106,
            "reference_allele": "A",
            "alternate_allele": "G",
            "quality_score": 100.0,
            "type": "SNV",
            "total_depth": 20,
            "reference_count": 15,
            "alternate_count": 5,
            "allele_frequency": 0.25,
        }

    @pytest.mark.unit
    def test_empty_variant_result(self):
        payload = serialize_result(
            VariantResult(variants=[], filters_applied={"min_depth": 10}, chromosomes_processed=[])
        )
        assert payload == {
            "kind": "variants",
            "variants": [],
            "total_variants": 0,
            "filters_applied": {"min_depth": 10},
            "chromosomes_processed": [],
        }


class TestSerializeError:
    """Tests for error payloads."""

    @pytest.mark.unit
    def test_error_payload(self):
        payload = serialize_result(ErrorResult("FormatError", "Not a BGZF stream"))
        assert payload == {
            "kind": "error",
            "error_type": "FormatError",
            "message": "Not a BGZF stream",
        }

    @pytest.mark.unit
    def test_unknown_result_type(self):
        with pytest.raises(TypeError):
            serialize_result({"kind": "coverage"})
