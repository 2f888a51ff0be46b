"""Unit tests for bamcnv.config module."""

import pytest

from bamcnv.config import BAMCNVConfig
from bamcnv.constants import (
    ANALYSIS_TIMEOUT_SECONDS,
    DEFAULT_HOST,
    DEFAULT_MIN_ALLELE_FREQ,
    DEFAULT_MIN_BASE_QUALITY,
    DEFAULT_MIN_DEPTH,
    DEFAULT_MIN_MAPPING_QUALITY,
    DEFAULT_MIN_VARIANT_READS,
    DEFAULT_PILEUP_WINDOW_SIZE,
    DEFAULT_PORT,
    DEFAULT_WINDOW_SIZE,
)
from bamcnv.errors import ConfigurationError


class TestBAMCNVConfig:
    """Tests for BAMCNVConfig dataclass."""

    @pytest.mark.unit
    def test_default_values(self):
        """Config defaults should match documented values."""
        config = BAMCNVConfig()
        assert config.window_size == DEFAULT_WINDOW_SIZE
        assert config.cnv_mode == "adaptive"
        assert config.min_depth == DEFAULT_MIN_DEPTH == 10
        assert config.min_base_quality == DEFAULT_MIN_BASE_QUALITY == 20
        assert config.min_mapping_quality == DEFAULT_MIN_MAPPING_QUALITY == 20
        assert config.min_variant_reads == DEFAULT_MIN_VARIANT_READS == 3
        assert config.min_allele_freq == DEFAULT_MIN_ALLELE_FREQ == 0.05
        assert config.pileup_window_size == DEFAULT_PILEUP_WINDOW_SIZE
        assert config.workers == 1
        assert config.analysis_timeout == ANALYSIS_TIMEOUT_SECONDS
        assert config.transport == "stdio"
        assert config.host == DEFAULT_HOST
        assert config.port == DEFAULT_PORT
        assert config.log_level == "WARNING"
        assert config.allow_remote_files is False

    @pytest.mark.unit
    def test_from_env_defaults(self):
        """from_env with no env vars should return defaults."""
        assert BAMCNVConfig.from_env() == BAMCNVConfig()

    @pytest.mark.unit
    def test_from_env_custom(self, monkeypatch):
        """from_env should read environment variables."""
        monkeypatch.setenv("BAMCNV_WINDOW_SIZE", "5000")
        monkeypatch.setenv("BAMCNV_CNV_MODE", "manual")
        monkeypatch.setenv("BAMCNV_MIN_DEPTH", "20")
        monkeypatch.setenv("BAMCNV_MIN_BASE_QUALITY", "25")
        monkeypatch.setenv("BAMCNV_MIN_MAPPING_QUALITY", "30")
        monkeypatch.setenv("BAMCNV_MIN_VARIANT_READS", "4")
        monkeypatch.setenv("BAMCNV_MIN_ALLELE_FREQ", "0.1")
        monkeypatch.setenv("BAMCNV_PILEUP_WINDOW_SIZE", "50000")
        monkeypatch.setenv("BAMCNV_WORKERS", "4")
        monkeypatch.setenv("BAMCNV_ANALYSIS_TIMEOUT", "60")
        monkeypatch.setenv("BAMCNV_MAX_FILE_BYTES", "1000")
        monkeypatch.setenv("BAMCNV_LOG_LEVEL", "debug")

        config = BAMCNVConfig.from_env()
        assert config.window_size == 5000
        assert config.cnv_mode == "manual"
        assert config.min_depth == 20
        assert config.min_base_quality == 25
        assert config.min_mapping_quality == 30
        assert config.min_variant_reads == 4
        assert config.min_allele_freq == 0.1
        assert config.pileup_window_size == 50000
        assert config.workers == 4
        assert config.analysis_timeout == 60.0
        assert config.max_file_bytes == 1000
        assert config.log_level == "DEBUG"

    @pytest.mark.unit
    def test_from_env_transport_fields(self, monkeypatch):
        """from_env should read transport-related env vars."""
        monkeypatch.setenv("BAMCNV_TRANSPORT", "sse")
        monkeypatch.setenv("BAMCNV_HOST", "127.0.0.1")
        monkeypatch.setenv("BAMCNV_PORT", "9000")

        config = BAMCNVConfig.from_env()
        assert config.transport == "sse"
        assert config.host == "127.0.0.1"
        assert config.port == 9000

    @pytest.mark.unit
    def test_from_env_security_fields(self, monkeypatch):
        monkeypatch.setenv("BAMCNV_ALLOWED_DIRECTORIES", "/data, /scratch ,")
        monkeypatch.setenv("BAMCNV_ALLOW_REMOTE_FILES", "TRUE")
        monkeypatch.setenv("BAMCNV_ALLOWED_REMOTE_HOSTS", "s3.amazonaws.com")

        config = BAMCNVConfig.from_env()
        assert config.allowed_directories == ["/data", "/scratch"]
        assert config.allow_remote_files is True
        assert config.allowed_remote_hosts == ["s3.amazonaws.com"]

    @pytest.mark.unit
    def test_from_env_unparseable_number(self, monkeypatch):
        monkeypatch.setenv("BAMCNV_WINDOW_SIZE", "ten thousand")
        with pytest.raises(ConfigurationError, match="Invalid BAMCNV_"):
            BAMCNVConfig.from_env()

    @pytest.mark.unit
    def test_from_env_invalid_value(self, monkeypatch):
        monkeypatch.setenv("BAMCNV_CNV_MODE", "magic")
        with pytest.raises(ConfigurationError, match="cnv_mode must be one of"):
            BAMCNVConfig.from_env()


class TestConfigValidation:
    """Tests for config validation in __post_init__."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "kwargs,message",
        [
            ({"window_size": 0}, "window_size must be at least 1"),
            ({"cnv_mode": "auto"}, "cnv_mode must be one of"),
            ({"min_depth": 0}, "min_depth must be at least 1"),
            ({"min_base_quality": 256}, "min_base_quality must be between 0 and 255"),
            ({"min_mapping_quality": -1}, "min_mapping_quality must be between 0 and 255"),
            ({"min_variant_reads": 0}, "min_variant_reads must be at least 1"),
            ({"min_allele_freq": 1.5}, "min_allele_freq must be between 0 and 1"),
            ({"pileup_window_size": 0}, "pileup_window_size must be at least 1"),
            ({"workers": 0}, "workers must be at least 1"),
            ({"analysis_timeout": 0}, "analysis_timeout must be positive"),
            ({"max_file_bytes": 0}, "max_file_bytes must be at least 1"),
            ({"transport": "websocket"}, "transport must be one of"),
            ({"port": 0}, "port must be between 1 and 65535"),
            ({"port": 65536}, "port must be between 1 and 65535"),
            ({"log_level": "verbose"}, "log_level must be one of"),
        ],
    )
    def test_invalid_values(self, kwargs, message):
        with pytest.raises(ConfigurationError, match=message):
            BAMCNVConfig(**kwargs)

    @pytest.mark.unit
    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            BAMCNVConfig(min_depth=0)

    @pytest.mark.unit
    def test_boundaries_valid(self):
        config = BAMCNVConfig(min_allele_freq=0.0, min_mapping_quality=255, port=65535)
        assert config.min_allele_freq == 0.0
        assert config.min_mapping_quality == 255

    @pytest.mark.unit
    def test_valid_transports(self):
        for transport in ("stdio", "sse", "streamable-http"):
            assert BAMCNVConfig(transport=transport).transport == transport
