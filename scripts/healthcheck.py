"""Container healthcheck for the formschema-mcp HTTP transport.

Requests the server's /health route and exits 0 when it reports healthy.
Set FORMSCHEMA_MCP_HEALTH_URL to probe a different address.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Final
from urllib.error import URLError
from urllib.request import Request, urlopen

DEFAULT_URL: Final[str] = "http://127.0.0.1:8000/health"


def main() -> int:
    url = os.getenv("FORMSCHEMA_MCP_HEALTH_URL", DEFAULT_URL)
    req = Request(url, headers={"User-Agent": "formschema-mcp/healthcheck"})  # noqa: S310
    try:
        with urlopen(req, timeout=4) as resp:  # noqa: S310 - operator-supplied URL
            if resp.status != 200:
                print(f"unexpected status: {resp.status}", file=sys.stderr)
                return 1
            data = json.loads(resp.read().decode("utf-8"))
    except (URLError, OSError, ValueError) as exc:
        print(f"healthcheck error: {exc}", file=sys.stderr)
        return 1
    if data.get("status") != "healthy":
        print(f"payload not healthy: {data}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - used by Docker
    raise SystemExit(main())
