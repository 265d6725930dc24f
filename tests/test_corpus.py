"""Tests for app.services.corpus.DirectoryCorpusRepository."""

import pytest

from app.services.corpus import (
    CorpusError,
    CorpusNotFoundError,
    DirectoryCorpusRepository,
    corpus_file_key,
)


class TestCorpusFileKey:
    def test_normalisation(self):
        assert corpus_file_key("example.com") == "example_com"
        assert corpus_file_key("https://www.Example.com/") == "www_example_com"
        assert corpus_file_key("http://docs.example.com/guide/intro") == "docs_example_com"


class TestFindCorpus:
    def test_matches_by_domain(self, tmp_path, write_corpus):
        write_corpus(tmp_path, "crawl_other_org.json", "https://other.org", [])
        write_corpus(tmp_path, "crawl_example_com.json", "https://example.com", [])
        repo = DirectoryCorpusRepository(tmp_path)
        assert repo.find_corpus("https://example.com/").url_crawled == "https://example.com"
        assert repo.find_corpus("other.org").url_crawled == "https://other.org"

    def test_no_identifier_uses_first_corpus(self, tmp_path, write_corpus):
        write_corpus(tmp_path, "crawl_b_com.json", "https://b.com", [])
        write_corpus(tmp_path, "crawl_a_com.json", "https://a.com", [])
        repo = DirectoryCorpusRepository(tmp_path)
        assert repo.find_corpus(None).url_crawled == "https://a.com"
        assert repo.find_corpus("").url_crawled == "https://a.com"

    def test_not_found(self, tmp_path, write_corpus):
        write_corpus(tmp_path, "crawl_example_com.json", "https://example.com", [])
        with pytest.raises(CorpusNotFoundError):
            DirectoryCorpusRepository(tmp_path).find_corpus("unknown.net")

    def test_files_outside_pattern_ignored(self, tmp_path, write_corpus):
        write_corpus(tmp_path, "example_com.json", "https://example.com", [])
        with pytest.raises(CorpusNotFoundError):
            DirectoryCorpusRepository(tmp_path).find_corpus("example.com")

    def test_missing_directory(self, tmp_path):
        with pytest.raises(CorpusNotFoundError):
            DirectoryCorpusRepository(tmp_path / "absent").find_corpus("example.com")

    def test_malformed_json(self, tmp_path):
        (tmp_path / "crawl_example_com.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(CorpusError) as exc_info:
            DirectoryCorpusRepository(tmp_path).find_corpus("example.com")
        assert "crawl_example_com.json" in str(exc_info.value)

    def test_schema_mismatch(self, tmp_path):
        (tmp_path / "crawl_example_com.json").write_text('{"pages": "nope"}', encoding="utf-8")
        with pytest.raises(CorpusError):
            DirectoryCorpusRepository(tmp_path).find_corpus("example.com")


class TestFindPage:
    def test_exact_url_match(self, tmp_path, write_corpus):
        write_corpus(
            tmp_path,
            "crawl_example_com.json",
            "https://example.com",
            [
                {"url": "https://example.com/a", "markdown": "# A page"},
                {"url": "https://example.com/b", "markdown": "# B page", "depth": 1},
            ],
        )
        page = DirectoryCorpusRepository(tmp_path).find_page("https://example.com/b")
        assert page.content == "# B page"
        assert page.depth == 1

    def test_no_fuzzy_matching(self, tmp_path, write_corpus):
        write_corpus(
            tmp_path,
            "crawl_example_com.json",
            "https://example.com",
            [{"url": "https://example.com/a", "markdown": "# A page"}],
        )
        with pytest.raises(CorpusNotFoundError):
            DirectoryCorpusRepository(tmp_path).find_page("https://example.com/a/")

    def test_page_without_content_is_not_found(self, tmp_path, write_corpus):
        write_corpus(
            tmp_path,
            "crawl_example_com.json",
            "https://example.com",
            [{"url": "https://example.com/a", "markdown": ""}],
        )
        with pytest.raises(CorpusNotFoundError):
            DirectoryCorpusRepository(tmp_path).find_page("https://example.com/a")
