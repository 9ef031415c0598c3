#!/usr/bin/env python3
"""
Command-line entry point for image-stream-gang.

Downloads every URL batch from a manifest (or the built-in sample batches),
applies the requested filters to each image and prints a summary table.
"""
import sys
import argparse
import logging
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import PipelineConfig, DEFAULT_FILTERS, DEFAULT_OUTPUT_DIR, DEFAULT_TIMEOUT, default_worker_count
from .core.filters import TRANSFORMS, parse_filter_specs
from .core.stream import StreamStats, run_stream
from .core.url_source import DEFAULT_URL_BATCHES, chunked, iter_manifest_batches
from .utils.log_utils import get_logger, configure_logging

logger = get_logger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Download image batches and apply filters concurrently')
    parser.add_argument('--manifest',
                      type=Path,
                      help='Text file of URLs, one per line; blank lines separate batches (default: built-in samples)')
    parser.add_argument('--batch-size',
                      type=int,
                      help='Regroup the URLs into batches of this size')
    parser.add_argument('--filters',
                      default=DEFAULT_FILTERS,
                      help=f"Comma-separated filters, e.g. 'grayscale,blur:radius=4'. "
                           f"Available: {', '.join(sorted(TRANSFORMS))} (default: {DEFAULT_FILTERS})")
    parser.add_argument('--output-dir',
                      type=Path,
                      default=DEFAULT_OUTPUT_DIR,
                      help=f'Directory for filtered images (default: {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--workers',
                      type=int,
                      default=default_worker_count(),
                      help='Worker pool size shared by downloads and filters')
    parser.add_argument('--timeout',
                      type=float,
                      default=DEFAULT_TIMEOUT,
                      help=f'HTTP timeout per download in seconds (default: {DEFAULT_TIMEOUT:g})')
    parser.add_argument('--clear',
                      action='store_true',
                      help='Delete previously filtered images before running')
    parser.add_argument('--debug',
                      action='store_true',
                      help='Enable debug logging')
    return parser.parse_args(argv)


def print_summary(stats: StreamStats, console: Console) -> None:
    """Print totals and any failures as rich tables."""
    table = Table(title="Image stream summary")
    table.add_column("Batches", justify="right")
    table.add_column("URLs", justify="right")
    table.add_column("Cached", justify="right")
    table.add_column("Fetched", justify="right")
    table.add_column("Filtered", justify="right")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Time", justify="right")
    table.add_row(
        str(stats.batches), str(stats.urls), str(stats.cached), str(stats.fetched),
        str(stats.filtered), str(len(stats.failures)), f"{stats.elapsed:.2f}s",
    )
    console.print(table)

    if stats.failures:
        failures = Table(title="Failures", title_style="red")
        failures.add_column("Stage")
        failures.add_column("URL", overflow="fold")
        failures.add_column("Filter")
        failures.add_column("Reason", overflow="fold")
        for failure in stats.failures:
            reason = getattr(failure.error, "reason", str(failure.error))
            failures.add_row(failure.stage, failure.url, failure.filter_name or "-", reason)
        console.print(failures)


def main(argv=None):
    args = parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO)

    try:
        config = PipelineConfig(
            output_dir=args.output_dir,
            filters=args.filters,
            max_workers=args.workers,
            timeout=args.timeout,
            manifest=args.manifest,
            batch_size=args.batch_size,
            clear=args.clear,
        )
        filters = parse_filter_specs(config.filters)
    except ValueError as e:
        logger.error(f"Error: {e}")
        sys.exit(2)

    if not filters:
        logger.error("Error: no filters given.")
        sys.exit(2)

    if config.manifest is not None:
        if not config.manifest.is_file():
            logger.error(f"Error: manifest '{config.manifest}' does not exist.")
            sys.exit(1)
        batches = iter_manifest_batches(config.manifest, config.batch_size)
    elif config.batch_size:
        batches = chunked((url for batch in DEFAULT_URL_BATCHES for url in batch), config.batch_size)
    else:
        batches = iter(DEFAULT_URL_BATCHES)

    logger.info(f"Using filter(s): {', '.join(f.name for f in filters)} with {config.max_workers} workers")
    console = Console()
    stats = run_stream(
        config,
        batches,
        filters,
        on_complete=lambda: logger.info(f"All batches processed; results in {config.output_dir}"),
    )
    print_summary(stats, console)
    return 0 if not stats.failures else 1


if __name__ == "__main__":
    sys.exit(main())
