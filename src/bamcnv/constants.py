"""Shared constants for BAMCNV format parsing, analysis defaults and thresholds.

This module is the single source of truth for default values that are consumed
across configuration loading, the analysis pipeline, and the server tools.
"""

from __future__ import annotations

# Paths and networking defaults
DEFAULT_HOST = "0.0.0.0"  # noqa: S104
DEFAULT_PORT = 8000
DEFAULT_TRANSPORT = "stdio"
VALID_TRANSPORTS = ("stdio", "sse", "streamable-http")
DEFAULT_LOG_LEVEL = "WARNING"
REMOTE_FILE_SCHEMES = ("http://", "https://")

# Limits for server-side analysis calls
ANALYSIS_TIMEOUT_SECONDS = 300.0
REMOTE_FETCH_TIMEOUT_SECONDS = 120.0
MAX_REMOTE_REDIRECTS = 5
DEFAULT_MAX_FILE_BYTES = 2 * 1024**3  # 2 GiB
DEFAULT_WORKERS = 1

# BGZF block layout
GZIP_MAGIC = b"\x1f\x8b"
GZIP_DEFLATE_METHOD = 8
GZIP_FLAG_EXTRA = 0x04
BGZF_FIXED_HEADER_SIZE = 12  # up to and including XLEN
BGZF_FOOTER_SIZE = 8  # CRC32 + ISIZE
BGZF_SUBFIELD_ID = b"BC"
# Consumed bytes are dropped from the front of the inflate buffer past this offset
BUFFER_TRIM_THRESHOLD = 1_048_576

# BAM record layout
BAM_MAGIC = b"BAM\x01"
BAM_CORE_SIZE = 32
SEQ_ALPHABET = "=ACMGRSVTWYHKDBN"

# SAM flag bits
FLAG_UNMAPPED = 0x4
FLAG_SECONDARY = 0x100
FLAG_DUPLICATE = 0x400

# Coverage defaults
DEFAULT_WINDOW_SIZE = 10_000
PROGRESS_REPORT_INTERVAL = 100_000

# CNV calling
CNV_MODES = ("adaptive", "manual")
DEFAULT_CNV_MODE = "adaptive"
AMPLIFICATION = "amplification"
DELETION = "deletion"
DIPLOID_COPY_NUMBER = 2

# Median raw coverage upper bounds (exclusive) for the low and medium classes
LOW_COVERAGE_MAX_MEDIAN = 15
MEDIUM_COVERAGE_MAX_MEDIAN = 30

# (amplification ratio, deletion ratio, minimum windows) per coverage class
ADAPTIVE_THRESHOLDS = {
    "low": (2.0, 0.3, 5),
    "medium": (1.5, 0.5, 3),
    "high": (1.3, 0.7, 2),
}

# ((high min windows, high max std), (medium min windows, medium max std))
CONFIDENCE_BANDS = {
    "low": ((10, 0.3), (5, 0.5)),
    "medium": ((7, 0.3), (3, 0.5)),
    "high": ((5, 0.4), (2, 0.6)),
}

# Manual-mode defaults and the confidence bands manual calls are scored with
DEFAULT_AMP_THRESHOLD = 1.5
DEFAULT_DEL_THRESHOLD = 0.5
DEFAULT_MIN_WINDOWS = 3
MANUAL_CONFIDENCE_CLASS = "medium"

# Variant calling defaults
DEFAULT_MIN_DEPTH = 10
DEFAULT_MIN_BASE_QUALITY = 20
DEFAULT_MIN_MAPPING_QUALITY = 20
DEFAULT_MIN_VARIANT_READS = 3
DEFAULT_MIN_ALLELE_FREQ = 0.05
DEFAULT_PILEUP_WINDOW_SIZE = 1_000_000

# Pileup base columns; anything else in a read is not counted
PILEUP_BASES = "ACGTN"
CALLABLE_ALT_BASES = "ACGT"

# Phred-like variant quality heuristic
ASSUMED_BASE_ERROR_RATE = 0.01
MIN_ERROR_PROBABILITY = 1e-100
MAX_VARIANT_QUALITY = 999.0
VARIANT_TYPE_SNV = "SNV"
