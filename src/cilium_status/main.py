"""CLI entrypoint for cilium-status."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler

from cilium_status import __version__
from cilium_status.config import get_settings
from cilium_status.runner import print_result, run_status


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Display the status of Cilium agents and control-plane components.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace Cilium is installed in (default: from env or 'kube-system')",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    parser.add_argument(
        "--output",
        "-o",
        choices=["text", "summary", "json"],
        default=None,
        help="Output format (default: from env or 'text')",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Do not colorize the text report",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Max number of agent pods queried concurrently",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for cilium-status CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger = logging.getLogger("cilium_status")
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    try:
        settings = get_settings()
        if args.namespace:
            settings.namespace = args.namespace
        if args.kubeconfig:
            settings.kubeconfig = args.kubeconfig
        if args.context:
            settings.context = args.context
        if args.output:
            settings.output = args.output
        if args.no_color:
            settings.color = False
        if args.workers is not None:
            settings.workers = args.workers

        result = run_status(settings)
        print_result(result)
        return 0 if result.healthy else 1
    except Exception as e:
        logging.exception("Status collection failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
