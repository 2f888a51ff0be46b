"""Entry point for running BAMCNV as a module: python -m bamcnv."""

import logging
import sys
from typing import Literal

from .config import BAMCNVConfig
from .errors import ConfigurationError
from .server import create_server

Transport = Literal["stdio", "sse", "streamable-http"]

logger = logging.getLogger(__name__)


def _setup_logging(level: str) -> None:
    # stdout carries the stdio transport, so logs always go to stderr
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """Run the BAMCNV MCP server."""
    try:
        config = BAMCNVConfig.from_env()
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    _setup_logging(config.log_level)

    transport: Transport = config.transport  # type: ignore[assignment]
    server = create_server(config)
    logger.info("Starting BAMCNV server (transport=%s)", transport)

    if transport == "stdio":
        server.run(transport="stdio")
    else:
        import anyio
        import uvicorn

        app = server.sse_app() if transport == "sse" else server.streamable_http_app()

        async def _serve() -> None:
            uvi_config = uvicorn.Config(
                app,
                host=config.host,
                port=config.port,
                log_level=config.log_level.lower(),
            )
            uvi_server = uvicorn.Server(uvi_config)
            await uvi_server.serve()

        anyio.run(_serve)


if __name__ == "__main__":
    main()
