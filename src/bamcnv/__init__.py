"""BAMCNV: coverage-based CNV and pileup SNV calling from BAM files."""

from .errors import BAMCNVError, ConfigurationError, EmptyResultError, FormatError
from .pipeline import (
    CoverageOptions,
    CoverageResult,
    ErrorResult,
    VariantOptions,
    VariantResult,
    analyze_coverage,
    analyze_coverage_parallel,
    call_variants,
    list_references,
    run_analysis,
)

__version__ = "0.1.0"

__all__ = [
    "BAMCNVError",
    "ConfigurationError",
    "CoverageOptions",
    "CoverageResult",
    "EmptyResultError",
    "ErrorResult",
    "FormatError",
    "VariantOptions",
    "VariantResult",
    "analyze_coverage",
    "analyze_coverage_parallel",
    "call_variants",
    "list_references",
    "run_analysis",
]
