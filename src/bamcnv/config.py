"""Configuration for the BAMCNV server, loaded from environment variables."""

import os
from dataclasses import dataclass

from .constants import (
    ANALYSIS_TIMEOUT_SECONDS,
    CNV_MODES,
    DEFAULT_CNV_MODE,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_MIN_ALLELE_FREQ,
    DEFAULT_MIN_BASE_QUALITY,
    DEFAULT_MIN_DEPTH,
    DEFAULT_MIN_MAPPING_QUALITY,
    DEFAULT_MIN_VARIANT_READS,
    DEFAULT_PILEUP_WINDOW_SIZE,
    DEFAULT_PORT,
    DEFAULT_TRANSPORT,
    DEFAULT_WINDOW_SIZE,
    DEFAULT_WORKERS,
    VALID_TRANSPORTS,
)
from .errors import ConfigurationError

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _split_list(raw: str) -> list[str] | None:
    return [item.strip() for item in raw.split(",") if item.strip()] or None


@dataclass
class BAMCNVConfig:
    """Server configuration loaded from environment variables."""

    # Coverage / CNV defaults
    window_size: int = DEFAULT_WINDOW_SIZE
    cnv_mode: str = DEFAULT_CNV_MODE

    # Variant calling defaults
    min_depth: int = DEFAULT_MIN_DEPTH
    min_base_quality: int = DEFAULT_MIN_BASE_QUALITY
    min_mapping_quality: int = DEFAULT_MIN_MAPPING_QUALITY
    min_variant_reads: int = DEFAULT_MIN_VARIANT_READS
    min_allele_freq: float = DEFAULT_MIN_ALLELE_FREQ
    pileup_window_size: int = DEFAULT_PILEUP_WINDOW_SIZE

    # Execution limits
    workers: int = DEFAULT_WORKERS
    analysis_timeout: float = ANALYSIS_TIMEOUT_SECONDS
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES

    # Transport settings
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    # Security settings
    allowed_directories: list[str] | None = None
    allow_remote_files: bool = False
    allowed_remote_hosts: list[str] | None = None

    def __post_init__(self) -> None:
        """Validate config values."""
        if self.window_size < 1:
            raise ConfigurationError(f"window_size must be at least 1, got {self.window_size}")

        if self.cnv_mode not in CNV_MODES:
            raise ConfigurationError(f"cnv_mode must be one of {CNV_MODES}, got '{self.cnv_mode}'")

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

        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")

        if self.analysis_timeout <= 0:
            raise ConfigurationError(
                f"analysis_timeout must be positive, got {self.analysis_timeout}"
            )

        if self.max_file_bytes < 1:
            raise ConfigurationError(f"max_file_bytes must be at least 1, got {self.max_file_bytes}")

        if self.transport not in VALID_TRANSPORTS:
            raise ConfigurationError(
                f"transport must be one of {VALID_TRANSPORTS}, got '{self.transport}'"
            )

        if not 1 <= self.port <= 65535:
            raise ConfigurationError(f"port must be between 1 and 65535, got {self.port}")

        self.log_level = self.log_level.upper()
        if self.log_level not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'"
            )

    @classmethod
    def from_env(cls) -> "BAMCNVConfig":
        """Create config from environment variables."""
        env = os.environ

        try:
            return cls(
                window_size=int(env.get("BAMCNV_WINDOW_SIZE", str(DEFAULT_WINDOW_SIZE))),
                cnv_mode=env.get("BAMCNV_CNV_MODE", DEFAULT_CNV_MODE),
                min_depth=int(env.get("BAMCNV_MIN_DEPTH", str(DEFAULT_MIN_DEPTH))),
                min_base_quality=int(
                    env.get("BAMCNV_MIN_BASE_QUALITY", str(DEFAULT_MIN_BASE_QUALITY))
                ),
                min_mapping_quality=int(
                    env.get("BAMCNV_MIN_MAPPING_QUALITY", str(DEFAULT_MIN_MAPPING_QUALITY))
                ),
                min_variant_reads=int(
                    env.get("BAMCNV_MIN_VARIANT_READS", str(DEFAULT_MIN_VARIANT_READS))
                ),
                min_allele_freq=float(
                    env.get("BAMCNV_MIN_ALLELE_FREQ", str(DEFAULT_MIN_ALLELE_FREQ))
                ),
                pileup_window_size=int(
                    env.get("BAMCNV_PILEUP_WINDOW_SIZE", str(DEFAULT_PILEUP_WINDOW_SIZE))
                ),
                workers=int(env.get("BAMCNV_WORKERS", str(DEFAULT_WORKERS))),
                analysis_timeout=float(
                    env.get("BAMCNV_ANALYSIS_TIMEOUT", str(ANALYSIS_TIMEOUT_SECONDS))
                ),
                max_file_bytes=int(env.get("BAMCNV_MAX_FILE_BYTES", str(DEFAULT_MAX_FILE_BYTES))),
                transport=env.get("BAMCNV_TRANSPORT", DEFAULT_TRANSPORT),
                host=env.get("BAMCNV_HOST", DEFAULT_HOST),
                port=int(env.get("BAMCNV_PORT", str(DEFAULT_PORT))),
                log_level=env.get("BAMCNV_LOG_LEVEL", DEFAULT_LOG_LEVEL),
                allowed_directories=_split_list(env.get("BAMCNV_ALLOWED_DIRECTORIES", "")),
                allow_remote_files=env.get("BAMCNV_ALLOW_REMOTE_FILES", "false").lower()
                == "true",
                allowed_remote_hosts=_split_list(env.get("BAMCNV_ALLOWED_REMOTE_HOSTS", "")),
            )
        except ValueError as e:
            if isinstance(e, ConfigurationError):
                raise
            raise ConfigurationError(f"Invalid BAMCNV_* environment value: {e}") from e
