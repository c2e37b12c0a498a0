#!/usr/bin/env python3
"""Main entry point for the Career Intelligence MCP Server."""

import asyncio
import argparse
import json
import logging
import os
import sys
from typing import Optional
import structlog
from structlog.contextvars import clear_contextvars

from .config import load_config, create_sample_config
from .protocol.server import MCPServer


def setup_logging(level: str = "info", debug: bool = False) -> None:
    """Setup structured logging."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if debug:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stdout carries the stdio transport
    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)


async def run_server(config_file: Optional[str] = None, transport: Optional[str] = None) -> None:
    """Run the MCP server."""
    # Load configuration
    config = load_config(config_file)
    if transport:
        config.transport.type = transport

    # Setup logging
    setup_logging(config.log_level, config.debug)
    logger = structlog.get_logger()

    logger.info(
        "Starting MCP server",
        server_name=config.server_name,
        version=config.server_version,
        transport_type=config.transport.type,
        require_initialization=config.require_initialization,
    )

    try:
        server = MCPServer(config)
        await server.run_forever()

    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down")
    except Exception as e:
        logger.error("Server error", error=str(e), exc_info=True)
        sys.exit(1)
    finally:
        clear_contextvars()
        logger.info("MCP server stopped")


def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Career Intelligence MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with stdio transport (default)
  career-mcp

  # Run with custom config file
  career-mcp --config config.json

  # Generate sample config
  career-mcp --sample-config

  # Run with WebSocket transport
  TRANSPORT_TYPE=websocket TRANSPORT_PORT=3000 career-mcp

  # Point the tools at your Notion databases
  NOTION_API_TOKEN=secret_... NOTION_INITIATIVES_DB_ID=... career-mcp
"""
    )

    parser.add_argument(
        "--config",
        "-c",
        help="Configuration file path (JSON format)"
    )
    parser.add_argument(
        "--transport",
        "-t",
        choices=["stdio", "websocket"],
        help="Transport to serve (overrides configuration)"
    )
    parser.add_argument(
        "--sample-config",
        action="store_true",
        help="Generate sample configuration and exit"
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Validate configuration and exit"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    if args.sample_config:
        # Generate sample configuration
        sample_config = create_sample_config()
        print(json.dumps(sample_config, indent=2))
        return

    if args.validate_config:
        # Validate configuration
        try:
            config = load_config(args.config)
            print("Configuration is valid")
            print(json.dumps(config.to_dict(), indent=2))
        except Exception as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    # Set debug from command line if specified
    if args.debug:
        os.environ["DEBUG"] = "true"
        os.environ["LOG_LEVEL"] = "debug"

    # Run the server
    try:
        asyncio.run(run_server(args.config, args.transport))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
