import json
from pathlib import Path

import pytest

from app.main import app
from app.services.corpus import DirectoryCorpusRepository, get_corpus_repository


def _write_corpus(directory: Path, name: str, url_crawled: str, pages: list) -> Path:
    """Write a crawl corpus file the way the external crawler does."""
    path = directory / name
    path.write_text(
        json.dumps(
            {
                "success": True,
                "total_pages": len(pages),
                "url_crawled": url_crawled,
                "pages": pages,
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def write_corpus():
    return _write_corpus


@pytest.fixture
def corpus_dir(tmp_path):
    """Point the app's corpus repository at an empty temporary directory."""
    app.dependency_overrides[get_corpus_repository] = lambda: DirectoryCorpusRepository(tmp_path)
    yield tmp_path
    app.dependency_overrides.pop(get_corpus_repository, None)
