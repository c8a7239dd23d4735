# site_lens/__init__.py
"""
SiteLens package initializer.
Defines package version and exposes the CLI and the crawl entry points.
"""
__version__ = "0.1.0"

from site_lens.cli import cli  # noqa: E402
from site_lens.engine import Engine, start_crawl  # noqa: E402

__all__ = ["__version__", "cli", "Engine", "start_crawl"]
