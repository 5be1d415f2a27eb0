"""Start the Schnapsen AI agent service."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from schnapsenai.ops.cli import build_broker, build_dispatcher, load_spec
from schnapsenai.ops.config import AgentSettings, configure_logging
from schnapsenai.server.agent_api import create_app

logger = logging.getLogger(__name__)


def main() -> None:
    """Run the agent service with uvicorn."""
    settings = AgentSettings.from_env()
    parser = argparse.ArgumentParser(description="Run the Schnapsen AI agent service.")
    parser.add_argument("--spec", type=Path, default=None, help="Roster file (JSON/YAML)")
    parser.add_argument(
        "--host", default=settings.host, help=f"Bind address (default: {settings.host})"
    )
    parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port number (default: {settings.port})"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    configure_logging(args.debug or settings.debug)
    spec = load_spec(args.spec) if args.spec else None
    dispatcher = build_dispatcher(settings, spec=spec)
    broker = build_broker(settings)
    if broker is None:
        logger.info("AMQP_URL not set; accepting tasks over HTTP only")
    app = create_app(dispatcher, broker=broker)

    import uvicorn

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
