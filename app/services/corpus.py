"""Lookup of previously captured crawl corpora.

A corpus is a JSON document written by an external crawler.  Routers depend
on the :class:`CorpusRepository` protocol; the directory-backed
implementation is wired in through :func:`get_corpus_repository`.
"""

import json
import logging
from pathlib import Path
from typing import List, Protocol

from fastapi import Depends
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.models.corpus import CorpusPage, CrawlCorpus
from app.services.normalizer import site_host

logger = logging.getLogger(__name__)


class CorpusNotFoundError(LookupError):
    """No corpus (or no page within a corpus) matches the request."""


class CorpusError(RuntimeError):
    """A corpus file exists but could not be read or parsed."""


class CorpusRepository(Protocol):
    def find_corpus(self, site_identifier: str | None) -> CrawlCorpus:
        ...

    def find_page(self, url: str) -> CorpusPage:
        ...


def corpus_file_key(site_identifier: str) -> str:
    """Return the filename fragment for a site: ``https://www.example.com/`` → ``www_example_com``."""
    return site_host(site_identifier).replace(".", "_")


class DirectoryCorpusRepository:
    """Reads ``crawl_*.json`` corpus files from a single directory."""

    def __init__(self, directory: Path, pattern: str = "crawl_*.json") -> None:
        self.directory = Path(directory)
        self.pattern = pattern

    def _files(self) -> List[Path]:
        if not self.directory.is_dir():
            return []
        return sorted(path for path in self.directory.glob(self.pattern) if path.is_file())

    def _match(self, site_identifier: str | None) -> Path:
        files = self._files()
        key = corpus_file_key(site_identifier) if site_identifier and site_identifier.strip() else ""
        for path in files:
            if not key or key in path.name:
                return path
        raise CorpusNotFoundError(
            f"No crawl data found for '{site_identifier}'." if key else "No crawl data found."
        )

    def _load(self, path: Path) -> CrawlCorpus:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            return CrawlCorpus.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.error("Failed to parse crawl corpus %s: %s", path.name, exc)
            raise CorpusError(f"Failed to parse crawl data in {path.name}: {exc}") from exc

    def find_corpus(self, site_identifier: str | None) -> CrawlCorpus:
        """Return the first corpus whose filename contains the site's normalised host."""
        path = self._match(site_identifier)
        logger.info("Using crawl corpus %s", path.name, extra={"site": site_identifier})
        return self._load(path)

    def find_page(self, url: str) -> CorpusPage:
        """Return the page captured at exactly *url*."""
        corpus = self.find_corpus(url)
        for page in corpus.pages:
            if page.url == url and page.content:
                return page
        raise CorpusNotFoundError("Page not found in crawl data.")


def get_corpus_repository(settings: Settings = Depends(get_settings)) -> CorpusRepository:
    return DirectoryCorpusRepository(settings.corpus_dir, settings.corpus_pattern)
