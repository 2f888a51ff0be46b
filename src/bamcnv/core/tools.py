"""MCP tool handlers for BAMCNV."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import httpx

from ..config import BAMCNVConfig
from ..constants import (
    MAX_REMOTE_REDIRECTS,
    REMOTE_FETCH_TIMEOUT_SECONDS,
    REMOTE_FILE_SCHEMES,
)
from ..errors import BAMCNVError
from ..pipeline import (
    AnalysisResult,
    CoverageOptions,
    ErrorResult,
    VariantOptions,
    list_references,
    run_analysis,
)
from .serialization import serialize_result
from .validation import resolve_redirect, validate_chromosomes, validate_path

logger = logging.getLogger(__name__)


def _text_content(payload: Any) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


async def _fetch_remote_bam(url: str, config: BAMCNVConfig) -> bytes:
    """Download a remote BAM, refusing bodies larger than the configured limit.

    Redirects are followed by hand so that every target passes the same
    SSRF checks as the original URL.
    """
    logger.info("Downloading remote BAM: %s", url)
    async with httpx.AsyncClient(
        timeout=REMOTE_FETCH_TIMEOUT_SECONDS, follow_redirects=False
    ) as client:
        for _ in range(MAX_REMOTE_REDIRECTS + 1):
            async with client.stream("GET", url) as resp:
                if resp.is_redirect:
                    url = resolve_redirect(url, resp.headers.get("location"), config)
                    logger.debug("Following redirect to %s", url)
                    continue

                if resp.status_code != 200:
                    raise ValueError(f"Failed to fetch remote BAM ({resp.status_code}): {url}")

                chunks = bytearray()
                async for chunk in resp.aiter_bytes():
                    chunks += chunk
                    if len(chunks) > config.max_file_bytes:
                        raise ValueError(
                            f"Remote BAM exceeds maximum size of {config.max_file_bytes:,} bytes"
                        )
                break
        else:
            raise ValueError(
                f"Too many redirects (max {MAX_REMOTE_REDIRECTS}) fetching remote BAM"
            )

    logger.info("Downloaded %d bytes from %s", len(chunks), url)
    return bytes(chunks)


async def load_bam_bytes(file_path: str, config: BAMCNVConfig) -> bytes:
    """Validate a path or URL and return the raw BAM bytes.

    Raises:
        ValueError: If the path is not allowed, missing, or too large.
    """
    validate_path(file_path, config)

    if file_path.startswith(REMOTE_FILE_SCHEMES):
        try:
            return await _fetch_remote_bam(file_path, config)
        except httpx.HTTPError as e:
            raise ValueError(f"Failed to fetch remote BAM: {e}") from e

    path = Path(file_path)
    if not path.is_file():
        raise ValueError(f"BAM file not found: {file_path}")
    size = path.stat().st_size
    if size > config.max_file_bytes:
        raise ValueError(
            f"BAM file is {size:,} bytes, exceeding maximum of {config.max_file_bytes:,}"
        )
    return await asyncio.to_thread(path.read_bytes)


async def _run_with_timeout(
    data: bytes,
    options: CoverageOptions | VariantOptions,
    config: BAMCNVConfig,
) -> AnalysisResult:
    """Run one analysis off the event loop.

    A timed-out run is reported as an error result; the worker thread is
    left to finish on its own since a run cannot be interrupted midway.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(run_analysis, data, options, config.workers),
            timeout=config.analysis_timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Analysis timed out after %.0fs", config.analysis_timeout)
        return ErrorResult(
            error_type="TimeoutError",
            message=f"Analysis exceeded {config.analysis_timeout:.0f}s timeout",
        )


# -- Tool Handlers -----------------------------------------------------------


async def handle_analyze_cnv(args: dict[str, Any], config: BAMCNVConfig) -> dict:
    """Compute windowed coverage and call CNVs for a BAM file."""
    mode = args.get("mode", config.cnv_mode)
    options = CoverageOptions(
        window_size=args.get("window_size", config.window_size),
        chromosomes=validate_chromosomes(args.get("chromosomes")),
        mode=mode,
        amp_threshold=args.get("amp_threshold"),
        del_threshold=args.get("del_threshold"),
        min_windows=args.get("min_windows"),
    )

    # Bad options are reported before the file is even read
    try:
        options.validate()
    except BAMCNVError as e:
        return _text_content(serialize_result(ErrorResult(type(e).__name__, str(e))))

    data = await load_bam_bytes(args["file_path"], config)
    result = await _run_with_timeout(data, options, config)
    return _text_content(serialize_result(result, compact=args.get("compact", True)))


async def handle_call_variants(args: dict[str, Any], config: BAMCNVConfig) -> dict:
    """Call SNVs from a pileup of a BAM file."""
    options = VariantOptions(
        chromosomes=validate_chromosomes(args.get("chromosomes")),
        min_depth=args.get("min_depth", config.min_depth),
        min_base_quality=args.get("min_base_quality", config.min_base_quality),
        min_mapping_quality=args.get("min_mapping_quality", config.min_mapping_quality),
        min_variant_reads=args.get("min_variant_reads", config.min_variant_reads),
        min_allele_freq=args.get("min_allele_freq", config.min_allele_freq),
        pileup_window_size=config.pileup_window_size,
    )

    try:
        options.validate()
    except BAMCNVError as e:
        return _text_content(serialize_result(ErrorResult(type(e).__name__, str(e))))

    data = await load_bam_bytes(args["file_path"], config)
    result = await _run_with_timeout(data, options, config)
    return _text_content(serialize_result(result))


async def handle_list_contigs(args: dict[str, Any], config: BAMCNVConfig) -> dict:
    """List the reference sequences declared in a BAM header."""
    data = await load_bam_bytes(args["file_path"], config)

    try:
        references = await asyncio.to_thread(list_references, data)
    except BAMCNVError as e:
        return _text_content(serialize_result(ErrorResult(type(e).__name__, str(e))))

    return _text_content(
        {
            "kind": "contigs",
            "contigs": [{"name": ref.name, "length": ref.length} for ref in references],
        }
    )
