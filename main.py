#!/usr/bin/env python3
"""SuperMind -- CLI entry point for a single report request.

Usage:
    python main.py "Summarise last quarter's engagement" --format PDF
    python main.py "Top channels by reach" --format HTML --output-dir out --json
    python main.py --help

The question is sent to the AI flow once, visualization blocks are pulled
out of the answer and the rest is rendered in the requested format.  The
artifact is written to ``<output-dir>/report.<ext>``.  Connection settings
come from ``config/global_config.yml`` and a ``.env`` file in the project
root (copy ``.env.example`` to ``.env``).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Early setup: configure logging before any supermind imports
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("supermind.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SuperMind -- AI report generator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  python main.py "Weekly engagement summary" --format PDF
  python main.py "Compare reach by channel" --format DOCX --charts
  python main.py "Audience growth" --format MARKDOWN --json
""",
    )
    parser.add_argument("query", help="Question to send to the report flow")
    parser.add_argument(
        "--format", dest="fmt", default="MARKDOWN",
        help="PDF, DOCX, HTML or MARKDOWN (default: MARKDOWN)",
    )
    parser.add_argument(
        "--output-dir", type=str, default="output",
        help="Directory for the rendered artifact (default: output/)",
    )
    parser.add_argument("--user", default="local", help="User id for the session")
    parser.add_argument("--project", default="default", help="Project id for the session")
    parser.add_argument(
        "--upstream", choices=("gateway", "langflow"), default=None,
        help="Flow client to use (default: from config)",
    )
    parser.add_argument(
        "--charts", action="store_true",
        help="Draw extracted visualizations into PDF/DOCX output (default: embed_charts in config)",
    )
    parser.add_argument(
        "--json", action="store_true",
        help="Print the result envelope as JSON",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run one exchange and write its artifact."""
    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("=" * 60)
    logger.info("SUPERMIND -- Report request")
    logger.info("=" * 60)

    from supermind.chat_service import ChatService
    from supermind.clients import create_flow_client
    from supermind.datatypes import ReportFormat
    from supermind.report.renderer import suggest_filename

    try:
        client = create_flow_client(args.upstream)
    except SystemExit as exc:
        logger.error("Failed to load connection settings: %s", exc)
        logger.error("Create a .env file from .env.example")
        return 1
    except ValueError as exc:
        logger.error("%s", exc)
        return 1

    service = ChatService(client, embed_charts=True if args.charts else None)
    fmt = ReportFormat.parse(args.fmt)
    logger.info("Format: %s", fmt.value)

    reply = service.send(args.user, args.project, args.query, fmt)
    result = reply.result

    if args.json:
        print(reply.to_json(indent=2))

    if result.is_error:
        logger.error("Report failed: %s", result.error_message)
        return 1

    out_dir = Path(args.output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    out_path = out_dir / suggest_filename(result.format)
    if result.binary_content is not None:
        out_path.write_bytes(result.binary_content)
    else:
        out_path.write_text(result.text_content, encoding="utf-8")

    logger.info("Report saved: %s", out_path)
    if result.visualizations:
        for spec in result.visualizations:
            logger.info("Visualization: %s (%s)", spec.title, spec.chart_kind.value)
    return 0


if __name__ == "__main__":
    sys.exit(main())
