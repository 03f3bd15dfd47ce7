"""
Content Hub Web Server Entry Point.

Builds the application through :func:`contenthub.web.create_app` and
serves it with uvicorn.  The database, session registry and service
container are wired inside the app factory; nothing lives at module
level.

Usage::

    python main.py
"""

from __future__ import annotations

import os
import sys

import uvicorn

from contenthub.config import get_config
from contenthub.logger import StructuredLogger, get_logger
from contenthub.services.analytics import LoggingAnalyticsSink
from contenthub.web import create_app


def main() -> None:
    """Application entry point: wire dependencies and start serving."""
    logger: StructuredLogger = get_logger("main")
    logger.info("Starting Content Hub...")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Analytics sink (ad impressions are logged until a provider is set)
    # ------------------------------------------------------------------
    sink = LoggingAnalyticsSink(get_logger("analytics"))

    # ------------------------------------------------------------------
    # 3. Application (database, services and routers)
    # ------------------------------------------------------------------
    app = create_app(config=config, analytics_sink=sink)

    # ------------------------------------------------------------------
    # 4. Serve (blocks until interrupted)
    # ------------------------------------------------------------------
    host = os.environ.get("HOST", "127.0.0.1")
    port = int(os.environ.get("PORT", "8000"))
    logger.info("Serving %s on http://%s:%d", config.SITE_NAME, host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
    except Exception as exc:
        sys.stderr.write(f"FATAL: {type(exc).__name__}: {exc}\n")
        sys.exit(1)
