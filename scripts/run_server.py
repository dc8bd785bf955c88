#!/usr/bin/env python3
"""
Launch the Doc Up HTTP service.

Settings come from --config (JSON, Mattermost plugin-settings names)
and DOCUP_* environment variables. The server refuses to start if
the configuration doesn't validate.
"""

import argparse
import logging
import os

from rich.logging import RichHandler


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )


def run_rest(config_path: str = None, host: str = "0.0.0.0", port: int = 8066, log_level: str = "info"):
    """Activate the plugin and serve it over HTTP."""
    import uvicorn
    from docup.config import Configuration, ConfigurationError
    from docup.plugin import Plugin
    from docup.rest import create_rest_app

    try:
        plugin = Plugin(Configuration.load(config_path))
        plugin.activate()
    except ConfigurationError as exc:
        raise SystemExit(f"Activation failed: {exc}") from exc

    app = create_rest_app(plugin)
    print(f"Doc Up listening on http://{host}:{port}")
    uvicorn.run(app, host=host, port=port, log_level=log_level, log_config=None)


def main():
    parser = argparse.ArgumentParser(description="Doc Up server")
    parser.add_argument(
        "--config", "-c",
        default=os.environ.get("DOCUP_CONFIG"),
        help="Path to JSON settings file (or set DOCUP_CONFIG env var)",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, default=8066, help="Bind port (default: 8066)")
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="info",
        help="Log level (default: info)",
    )
    args = parser.parse_args()

    setup_logging(args.log_level)
    run_rest(args.config, args.host, args.port, args.log_level)


if __name__ == "__main__":
    main()
