"""MCP server setup for BAMCNV using FastMCP."""

from __future__ import annotations

from mcp.server.fastmcp import FastMCP

from .config import BAMCNVConfig
from .core.tools import handle_analyze_cnv, handle_call_variants, handle_list_contigs


def create_server(config: BAMCNVConfig | None = None) -> FastMCP:
    """Create and configure the BAMCNV MCP server."""
    if config is None:
        config = BAMCNVConfig.from_env()

    mcp = FastMCP(name="bamcnv", host=config.host, port=config.port)

    # -- Tools ---------------------------------------------------------------
    # Thin wrappers delegate to the handlers in core/tools.py.
    # FastMCP derives the JSON-Schema from the function signature.

    @mcp.tool(
        description=(
            "Compute windowed read coverage across a BAM file and call copy-number "
            "amplifications and deletions relative to the median coverage"
        ),
    )
    async def analyze_cnv(
        file_path: str,
        window_size: int | None = None,
        chromosomes: list[str] | None = None,
        mode: str | None = None,
        amp_threshold: float | None = None,
        del_threshold: float | None = None,
        min_windows: int | None = None,
        compact: bool = True,
    ) -> str:
        args: dict = {"file_path": file_path, "compact": compact}
        if window_size is not None:
            args["window_size"] = window_size
        if chromosomes is not None:
            args["chromosomes"] = chromosomes
        if mode is not None:
            args["mode"] = mode
        if amp_threshold is not None:
            args["amp_threshold"] = amp_threshold
        if del_threshold is not None:
            args["del_threshold"] = del_threshold
        if min_windows is not None:
            args["min_windows"] = min_windows
        result = await handle_analyze_cnv(args, config)
        return str(result["content"][0]["text"])

    @mcp.tool(description="Call single-nucleotide variants from a pileup of a BAM file")
    async def call_variants(
        file_path: str,
        chromosomes: list[str] | None = None,
        min_depth: int | None = None,
        min_base_quality: int | None = None,
        min_mapping_quality: int | None = None,
        min_variant_reads: int | None = None,
        min_allele_freq: float | None = None,
    ) -> str:
        args: dict = {"file_path": file_path}
        if chromosomes is not None:
            args["chromosomes"] = chromosomes
        if min_depth is not None:
            args["min_depth"] = min_depth
        if min_base_quality is not None:
            args["min_base_quality"] = min_base_quality
        if min_mapping_quality is not None:
            args["min_mapping_quality"] = min_mapping_quality
        if min_variant_reads is not None:
            args["min_variant_reads"] = min_variant_reads
        if min_allele_freq is not None:
            args["min_allele_freq"] = min_allele_freq
        result = await handle_call_variants(args, config)
        return str(result["content"][0]["text"])

    @mcp.tool(description="List all contigs/chromosomes in a BAM file")
    async def list_contigs(file_path: str) -> str:
        result = await handle_list_contigs({"file_path": file_path}, config)
        return str(result["content"][0]["text"])

    return mcp
