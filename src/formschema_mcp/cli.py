"""Command-line entrypoint for the formschema-mcp FastMCP server."""

from __future__ import annotations

import traceback

from fastmcp.utilities.logging import get_logger

from formschema_mcp.server import mcp

_logger = get_logger(__name__)


def main() -> None:
    """Start the formschema-mcp FastMCP server via CLI."""
    try:
        mcp.run()
    except KeyboardInterrupt:
        _logger.info("Interrupted by user. Exiting cleanly.")
    except Exception:  # noqa: BLE001
        traceback.print_exc(limit=1)


if __name__ == "__main__":
    main()
