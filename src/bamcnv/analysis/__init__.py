"""CNV and SNV calling modules."""

from .cnv import (
    CnvRegion,
    CnvThresholds,
    adaptive_thresholds,
    classify_window,
    compute_confidence,
    detect_cnvs,
)
from .variants import Variant, call_variants, variant_quality

__all__ = [
    "CnvRegion",
    "CnvThresholds",
    "Variant",
    "adaptive_thresholds",
    "call_variants",
    "classify_window",
    "compute_confidence",
    "detect_cnvs",
    "variant_quality",
]
