"""Analysis result serialization for BAMCNV tool responses.

Converts tagged pipeline results into JSON-compatible dicts. Every payload
carries a ``kind`` field ("coverage", "variants" or "error") so consumers
never have to infer the result type from which keys happen to be present.
"""

from __future__ import annotations

from typing import Any

from ..analysis.cnv import CnvRegion
from ..analysis.variants import Variant
from ..pipeline import AnalysisResult, CoverageResult, ErrorResult, VariantResult
from .coverage import CoverageWindow


def serialize_window(w: CoverageWindow) -> dict:
    return {
        "chromosome": w.chromosome,
        "start": w.start,
        "end": w.end,
        "raw_coverage": w.raw_coverage,
        "normalized_coverage": w.normalized_coverage,
    }


def serialize_cnv_region(region: CnvRegion, include_windows: bool = True) -> dict:
    """Serialize a CNV region, optionally omitting its constituent windows."""
    d: dict[str, Any] = {
        "chromosome": region.chromosome,
        "start": region.start,
        "end": region.end,
        "length": region.length,
        "type": region.type,
        "num_windows": region.num_windows,
        "average_coverage": region.average_coverage,
        "average_normalized": region.average_normalized,
        "copy_number_estimate": region.copy_number_estimate,
        "confidence": region.confidence,
    }
    if include_windows:
        d["windows"] = [serialize_window(w) for w in region.windows]
    return d


def serialize_variant(v: Variant) -> dict:
    return {
        "chromosome": v.chromosome,
        "position": v.position,
        "reference_allele": v.reference_allele,
        "alternate_allele": v.alternate_allele,
        "quality_score": v.quality_score,
        "type": v.type,
        "total_depth": v.total_depth,
        "reference_count": v.reference_count,
        "alternate_count": v.alternate_count,
        "allele_frequency": v.allele_frequency,
    }


def _serialize_coverage(result: CoverageResult, compact: bool) -> dict:
    return {
        "kind": result.kind,
        "total_reads": result.total_reads,
        "window_size": result.window_size,
        "chromosomes_processed": result.chromosomes_processed,
        "coverage_stats": {
            "median": result.coverage_stats.median,
            "mean": result.coverage_stats.mean,
            "class": result.coverage_stats.coverage_class,
        },
        "thresholds_used": {
            "mode": result.mode,
            "amp_threshold": result.thresholds.amp_threshold,
            "del_threshold": result.thresholds.del_threshold,
            "min_windows": result.thresholds.min_windows,
        },
        "windows": [serialize_window(w) for w in result.windows],
        "cnv_regions": [
            serialize_cnv_region(r, include_windows=not compact) for r in result.cnv_regions
        ],
    }


def serialize_result(result: AnalysisResult, compact: bool = False) -> dict:
    """Serialize a pipeline result to a JSON-compatible dict.

    Args:
        result: Any tagged pipeline result.
        compact: If True, omit the per-region window lists (the flat
                 ``windows`` list already carries every window).
    """
    if isinstance(result, CoverageResult):
        return _serialize_coverage(result, compact)

    if isinstance(result, VariantResult):
        return {
            "kind": result.kind,
            "variants": [serialize_variant(v) for v in result.variants],
            "total_variants": result.total_variants,
            "filters_applied": result.filters_applied,
            "chromosomes_processed": result.chromosomes_processed,
        }

    if isinstance(result, ErrorResult):
        return {
            "kind": result.kind,
            "error_type": result.error_type,
            "message": result.message,
        }

    raise TypeError(f"Unsupported result type: {type(result).__name__}")
