# === FILE: site_lens/config.py ===
"""
Loading and validation of the SiteLens crawl configuration.
Pydantic describes the schema; YAML and JSON files are both accepted.
"""
from __future__ import annotations

import json
import os
import errno
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    model_validator,
)

__all__ = ["CrawlConfig", "load_config", "DEFAULT_CONFIG_PATH"]

WEBDRIVER_ENDPOINT = "http://localhost:4444"


class CrawlConfig(BaseModel):
    """Configuration of one crawl run."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    seed_url: HttpUrl = Field(..., description="URL the crawl starts from; defines the origin.")
    max_depth: Optional[int] = Field(None, ge=0, description="Max hop count from the seed.")
    max_pages: Optional[int] = Field(None, ge=1, description="Max number of URLs admitted for fetch.")
    concurrency: int = Field(4, ge=1, description="Number of fetch workers.")

    render_backend: Literal["http", "webdriver"] = Field(
        "http", description="Plain HTTP fetch or a WebDriver browser session."
    )
    render_endpoint: HttpUrl = Field(
        WEBDRIVER_ENDPOINT,
        validate_default=True,
        description="WebDriver server URL (webdriver backend only).",
    )
    render_concurrency: Optional[int] = Field(
        None, ge=1, description="Concurrent render calls; defaults per backend."
    )
    browser_name: Optional[str] = Field(None, description="WebDriver browserName capability.")

    fetch_timeout: float = Field(10.0, gt=0, description="Timeout of one render call (seconds).")
    retry_times: int = Field(0, ge=0, description="HTTP retries on 429/5xx within one fetch.")
    user_agent: str = Field("SiteLensBot/1.0", min_length=1, description="User-Agent header.")
    crawl_timeout: Optional[float] = Field(None, gt=0, description="Deadline of the whole crawl.")
    shutdown_grace: float = Field(5.0, ge=0, description="Time in-flight fetches get after cancel.")

    snippet_context: int = Field(40, ge=0, description="Characters of context around a match.")
    max_snippets: int = Field(3, ge=1, description="Snippets returned per search result.")

    @model_validator(mode="after")
    def _check_seed_scheme(self) -> CrawlConfig:
        if not self.seed_url.host:
            raise ValueError("seed_url must have a host")
        return self

    @property
    def effective_render_concurrency(self) -> int:
        if self.render_concurrency is not None:
            return self.render_concurrency
        return 1 if self.render_backend == "webdriver" else self.concurrency


DEFAULT_CONFIG_PATH = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def _read_file(path_obj: Path) -> dict[str, Any]:
    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        return _read_yaml(path_obj)
    if suffix == ".json":
        return _read_json(path_obj)
    raise ValueError(f"Unsupported config format: {suffix}")


def load_config(
    path: Union[str, Path, None] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> CrawlConfig:
    """
    Read YAML or JSON, apply *overrides* and return a validated CrawlConfig.

    Without *path* the default ``configs/default.yaml`` is used when it exists,
    otherwise the configuration comes from *overrides* alone. An explicit path
    that does not exist raises FileNotFoundError; ``None`` values in
    *overrides* are ignored so CLI options left unset keep file values.
    """
    data: Dict[str, Any]
    if path is None:
        data = _read_file(DEFAULT_CONFIG_PATH) if DEFAULT_CONFIG_PATH.is_file() else {}
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))
        data = _read_file(path_obj)

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    return CrawlConfig(**data)
