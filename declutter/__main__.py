"""CLI entry point: python -m declutter FILE [options]"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

from declutter.errors import DeclutterError
from declutter.extractors.markdown import render_markdown_document
from declutter.items import Response
from declutter.profiles import profile_options
from declutter.query import extract
from declutter.settings import LOG_FORMAT, LOG_LEVEL, ExtractionConfig

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="declutter",
        description=(
            "Extract clean, readable article content from an HTML file.\n"
            "Reads FILE (or stdin with '-'); no network access."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("file", metavar="FILE",
                        help="HTML file to read, or '-' for stdin")
    parser.add_argument("--url", default=None, metavar="URL",
                        help="Original page URL (strategy selection, link resolution)")
    parser.add_argument("--profile", default=None, metavar="YAML",
                        help="YAML site profile with per-domain options")
    parser.add_argument("--min-words", type=int, default=None, metavar="N",
                        help="Retry with relaxed rules below N words (default: 200)")
    parser.add_argument("--max-words", type=int, default=None, metavar="N",
                        help="Cap the extracted content at about N words")
    parser.add_argument("--no-images", action="store_true", default=False,
                        help="Drop images and other media from the content")
    parser.add_argument("--no-links", action="store_true", default=False,
                        help="Unwrap links, keeping their text")
    parser.add_argument("--keep-clutter", action="store_true", default=False,
                        help="Disable the exact and partial clutter-removal rules")
    parser.add_argument("--remove", action="append", default=[], metavar="SELECTOR",
                        help="Extra removal selector (repeatable)")
    parser.add_argument("--preserve", action="append", default=[], metavar="SELECTOR",
                        help="Selector that overrides removal (repeatable)")
    parser.add_argument("--debug", action="store_true", default=False,
                        help="Keep wrappers and empty elements; log strategy decisions")
    output = parser.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", default=False,
                        help="Print the full response as JSON")
    output.add_argument("--markdown", action="store_true", default=False,
                        help="Print the content as a Markdown document")
    output.add_argument("--text", action="store_true", default=False,
                        help="Print the plain-text content only")
    parser.add_argument("--log-level", default=LOG_LEVEL,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        metavar="{DEBUG,INFO,WARNING,ERROR}",
                        help=f"Logging level (default: {LOG_LEVEL})")
    return parser


def _read_input(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8", errors="replace")


def _config_from_args(args: argparse.Namespace) -> ExtractionConfig:
    options: dict[str, Any] = {}
    if args.profile:
        options.update(profile_options(args.profile, args.url))
    if args.min_words is not None:
        options["min_content_length"] = args.min_words
    if args.max_words is not None:
        options["max_content_length"] = args.max_words
    if args.no_images:
        options["include_images"] = False
    if args.no_links:
        options["include_links"] = False
    if args.keep_clutter:
        options["remove_exact_selectors"] = False
        options["remove_partial_selectors"] = False
    if args.remove:
        options["remove_selectors"] = set(options.get("remove_selectors") or ()) | set(args.remove)
    if args.preserve:
        options["preserve_selectors"] = (
            set(options.get("preserve_selectors") or ()) | set(args.preserve)
        )
    if args.debug:
        options["debug"] = True
    if args.markdown:
        options["markdown"] = True
    return ExtractionConfig.model_validate(options)


def _print_summary(console: Console, response: Response) -> None:
    meta = response.metadata
    console.print(
        Panel.fit(
            f"[bold cyan]{response.title or '(untitled)'}[/bold cyan]\n"
            f"Author:     [green]{response.author or '-'}[/green]\n"
            f"Published:  [yellow]{response.published or '-'}[/yellow]\n"
            f"Site:       {response.site_name or meta.domain or '-'}\n"
            f"Language:   {response.language or '-'}\n"
            f"Extractor:  {response.extractor_used}"
            f"{' (relaxed retry)' if meta.retried else ''}",
            border_style="cyan",
            title="[bold]Article[/bold]",
        ),
    )

    tbl = Table(box=box.SIMPLE_HEAVY, show_header=False)
    tbl.add_column("Field", style="bold")
    tbl.add_column("Value")
    tbl.add_row("Words", f"{meta.word_count:,}")
    tbl.add_row("Reading time", f"{meta.reading_time_minutes} min")
    tbl.add_row("Canonical URL", meta.canonical_url or "-")
    tbl.add_row("Thumbnail", meta.thumbnail or "-")
    tbl.add_row("Structured data", f"{len(meta.schemas)} node(s)")
    tbl.add_row("Meta tags", str(len(response.meta_tags)))
    console.print(tbl)

    console.print(Rule("[bold cyan]Excerpt[/bold cyan]"))
    console.print(response.excerpt or response.text_content[:300])


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, stream=sys.stderr)

    try:
        html = _read_input(args.file)
    except OSError as exc:
        print(f"ERROR: Could not read {args.file}: {exc}", file=sys.stderr)
        return 1

    try:
        config = _config_from_args(args)
    except (OSError, ValueError) as exc:
        print(f"ERROR: Invalid options: {exc}", file=sys.stderr)
        return 1

    try:
        response = extract(html, url=args.url, config=config)
    except DeclutterError as exc:
        logger.error("Extraction failed: %s", exc)
        return 1

    if args.json:
        print(json.dumps(response.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False))
    elif args.markdown:
        print(render_markdown_document(response))
    elif args.text:
        print(response.text_content)
    else:
        _print_summary(Console(), response)
    return 0


if __name__ == "__main__":
    sys.exit(main())
