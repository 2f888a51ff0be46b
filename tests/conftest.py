"""Shared test fixtures for BAMCNV tests."""

import os

import pytest

from bamcnv.config import BAMCNVConfig
from tests.create_fixtures import (
    AMPLIFICATION_REFERENCES,
    ReadSpec,
    amplification_reads,
    encode_bam,
    snv_reads,
    tiled_reads,
    write_bam,
)


@pytest.fixture
def config():
    """Default test config."""
    return BAMCNVConfig()


@pytest.fixture(autouse=True)
def _clear_bamcnv_env(monkeypatch):
    """Keep host environment variables out of config defaults."""
    for key in list(os.environ.keys()):
        if key.startswith("BAMCNV_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def make_bam(tmp_path):
    """Factory writing a pysam BAM into tmp_path and returning its path."""
    counter = {"n": 0}

    def _make(references, reads) -> str:
        counter["n"] += 1
        return write_bam(str(tmp_path / f"test{counter['n']}.bam"), references, reads)

    return _make


@pytest.fixture
def amplification_bam_path(make_bam):
    """chr1/chr2, 300kb each, with a 3x amplification at chr2:100000-200000."""
    return make_bam(AMPLIFICATION_REFERENCES, amplification_reads())


@pytest.fixture
def amplification_bam_bytes(amplification_bam_path):
    with open(amplification_bam_path, "rb") as f:
        return f.read()


@pytest.fixture
def uniform_bam_bytes():
    """Two chromosomes at an even depth of 20 reads per window."""
    reads = tiled_reads(0, 0, 100_000, 10_000, 20) + tiled_reads(1, 0, 100_000, 10_000, 20)
    return encode_bam([("chr1", 100_000), ("chr2", 100_000)], reads)


@pytest.fixture
def snv_bam_path(make_bam):
    """20 reads over chr1:100-110, 15 carrying A and 5 carrying G at position 106."""
    return make_bam([("chr1", 1000)], snv_reads())


@pytest.fixture
def snv_bam_bytes(snv_bam_path):
    with open(snv_bam_path, "rb") as f:
        return f.read()


@pytest.fixture
def header_only_bam_bytes():
    """A valid BAM with references but no alignment records."""
    return encode_bam([("chr1", 1000)], [])


@pytest.fixture
def simple_read():
    return ReadSpec(ref_id=0, pos=10, seq="ACGTN", qual=30, mapq=50)
