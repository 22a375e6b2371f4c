"""Command-line interface for pagelens.

Provides the main entry point for probing the terminal, taking a
one-off screenshot of a page, or serving the browser tools over HTTP.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="pagelens",
        description="Drive a browser and view it from the terminal",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/pagelens.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("probe", help="Detect the terminal's image protocol")

    shot_parser = subparsers.add_parser("screenshot", help="Open a page and show a screenshot")
    shot_parser.add_argument("url", type=str, help="The URL to open")
    shot_parser.add_argument(
        "--full-page", action="store_true",
        help="Capture the full scrollable page",
    )
    shot_parser.add_argument(
        "--wait-until", choices=["load", "networkidle"], default=None,
        help="Wait strategy for navigation (default from config)",
    )
    shot_parser.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Also save the PNG to this file",
    )

    subparsers.add_parser("serve", help="Start the HTTP tool endpoint")

    return parser.parse_args(argv)


def _probe(settings) -> int:
    """Print the detected capability. Exit code 1 when none is supported."""
    from pagelens.terminal.probe import CapabilityProbe, recommended_terminals_text

    capability = CapabilityProbe(timeout=settings.display.probe_timeout).detect()
    print(f"Graphics protocol: {capability.protocol.value}")
    if not capability.supported:
        print(capability.reason)
        print()
        print(recommended_terminals_text())
        return 1
    return 0


async def _screenshot(settings, args) -> None:
    """Navigate to a URL, capture it, and display the frame."""
    from pagelens.domain.models import Frame
    from pagelens.tools import create_tools

    # One-off capture: no interactive mirror
    settings.renderer.enabled = False
    tools = create_tools(settings)
    await tools.startup()
    try:
        print(await tools.navigate(args.url, args.wait_until), file=sys.stderr)
        data = await tools.session.screenshot(args.full_page)
        if args.output is not None:
            args.output.write_bytes(data)
            print(f"Saved screenshot to {args.output}", file=sys.stderr)
        result = tools.display.show(
            Frame(data=data, width=settings.display.cell_width, height=settings.display.cell_height)
        )
        print(result.message, file=sys.stderr)
    finally:
        await tools.shutdown()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the pagelens CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from pagelens.config.settings import load_settings
    from pagelens.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    if args.command == "probe":
        sys.exit(_probe(settings))

    elif args.command == "screenshot":
        logger.info("Capturing %s", args.url)
        asyncio.run(_screenshot(settings, args))

    elif args.command == "serve":
        logger.info("Starting endpoint server")
        from pagelens.endpoint.server import create_app
        from pagelens.tools import create_tools
        import uvicorn

        app = create_app(create_tools(settings))
        uvicorn.run(
            app,
            host=settings.endpoint.host,
            port=settings.endpoint.port,
        )


if __name__ == "__main__":
    main()
