# === FILE: site_lens/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of SiteLens.

Commands:
  crawl     Crawl a site, optionally search it, print or save the report
  config    Show the effective configuration

Common options:
  --config PATH       YAML/JSON config (default: configs/default.yaml if present)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (console only when omitted)
  --log-format FORMAT Logging format string

crawl options:
  SEED                Seed URL (overrides seed_url from the config)
  --max-depth INT     Max hop count from the seed
  --max-pages INT     Max number of pages
  --concurrency INT   Number of fetch workers
  --backend NAME      http | webdriver
  --render-endpoint   WebDriver server URL
  --crawl-timeout SEC Stop the crawl after SEC seconds, keep partial results
  --query, -q TEXT    Search the crawled text (repeatable)
  --json PATH         Save the JSON report to a file
  --html PATH         Save the HTML report to a file
  --pretty            Indent JSON output

Example:
  site-lens crawl https://example.com --max-depth 2 -q "pricing" --pretty
"""
import asyncio
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_lens import __version__
from site_lens.aggregator import build_report
from site_lens.config import load_config
from site_lens.engine import start_crawl
from site_lens.errors import CrawlError
from site_lens.logger import DEFAULT_FORMAT, init_logging, logger
from site_lens.report.html_report import render_html
from site_lens.report.json_report import render_json

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg="red", err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, "--version", "-v", message="SiteLens, version %(version)s")
@click.option(
    "--config", "-c", "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to a YAML/JSON configuration file.",
)
@click.option(
    "--log-level", "log_level",
    default="WARNING", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level",
)
@click.option(
    "--log-file", "log_file",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Log file (console only when omitted)",
)
@click.option(
    "--log-format", "log_format",
    default=DEFAULT_FORMAT,
    show_default=True,
    help="Logging format string",
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """SiteLens: crawl a site and search its text."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format,
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _load(ctx, **overrides):
    try:
        return load_config(ctx.obj["config_path"], overrides)
    except (ValidationError, ValueError, TypeError, OSError) as e:
        print_error(f"Configuration error: {e}")


@cli.command("crawl", context_settings=CONTEXT_SETTINGS)
@click.argument("seed", required=False)
@click.option("--max-depth", "max_depth", type=click.IntRange(min=0), default=None, help="Max hop count from the seed")
@click.option("--max-pages", "max_pages", type=click.IntRange(min=1), default=None, help="Max number of pages")
@click.option("--concurrency", type=click.IntRange(min=1), default=None, help="Number of fetch workers")
@click.option("--backend", "render_backend", type=click.Choice(["http", "webdriver"]), default=None, help="Render backend")
@click.option("--render-endpoint", "render_endpoint", default=None, help="WebDriver server URL")
@click.option("--crawl-timeout", "crawl_timeout", type=float, default=None, help="Crawl deadline (seconds)")
@click.option("--query", "-q", "queries", multiple=True, help="Keyword query to run after the crawl")
@click.option(
    "--json", "-j", "json_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Save the JSON report to a file",
)
@click.option(
    "--html", "html_output",
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help="Save the HTML report to a file",
)
@click.option("--pretty", is_flag=True, help="Indent JSON output")
@click.pass_context
def crawl(ctx, seed, max_depth, max_pages, concurrency, render_backend, render_endpoint,
          crawl_timeout, queries, json_output, html_output, pretty):
    """Crawl a site starting at SEED and report pages and search hits."""
    cfg = _load(
        ctx,
        seed_url=seed,
        max_depth=max_depth,
        max_pages=max_pages,
        concurrency=concurrency,
        render_backend=render_backend,
        render_endpoint=render_endpoint,
        crawl_timeout=crawl_timeout,
    )
    logger.info("Crawling %s", cfg.seed_url)
    try:
        engine = asyncio.run(start_crawl(cfg))
    except CrawlError as e:
        print_error(f"Crawl failed: {e}")

    report = build_report(engine, queries)

    if not json_output and not html_output:
        click.echo(report.json(pretty=pretty))
        return

    if json_output:
        try:
            click.echo(f"JSON report: {render_json(report, json_output, pretty=pretty)}")
        except OSError as e:
            print_error(f"Could not save JSON report: {e}")

    if html_output:
        try:
            click.echo(f"HTML report: {render_html(report, html_output)}")
        except OSError as e:
            print_error(f"Could not save HTML report: {e}")


@cli.command("config", context_settings=CONTEXT_SETTINGS)
@click.argument("seed", required=False)
@click.pass_context
def show_config(ctx, seed):
    """Show the effective configuration as JSON."""
    cfg = _load(ctx, seed_url=seed)
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
