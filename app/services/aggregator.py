"""Crawl aggregation: outlines every page of a corpus and rolls them up per site."""

import logging
import math
from typing import Dict, List

from app.models.corpus import CorpusPage, CrawlCorpus
from app.models.page import ExtractedPage, Issue
from app.models.site import Section, SiteAnalysis, SiteStats
from app.services.corpus import CorpusError
from app.services.extractor import (
    count_images,
    extract_html_page,
    extract_markdown_page,
    looks_like_html,
)
from app.services.issues import annotate, with_issues
from app.services.normalizer import humanize, resolve_url, section_key

logger = logging.getLogger(__name__)

# Pages with this much content or less are redirects, stubs or errors
MIN_CONTENT_LENGTH = 10


def _corpus_overrides(raw: CorpusPage) -> dict:
    """Return the metrics the crawler already computed, keyed by ExtractedPage field."""
    updates: dict = {}
    if raw.title and raw.title.strip():
        updates["title"] = raw.title.strip()
    if raw.description is not None:
        updates["description"] = raw.description.strip()
    if raw.headings is not None:
        updates["headings"] = list(raw.headings)
    if raw.word_count is not None:
        updates["word_count"] = raw.word_count
    if raw.internal_link_count is not None:
        updates["internal_links"] = raw.internal_link_count
    if raw.external_link_count is not None:
        updates["external_links"] = raw.external_link_count
    if raw.images is not None:
        images = count_images(image.alt for image in raw.images)
        updates["image_count"] = images.total
        updates["images_without_alt"] = images.without_alt
    if raw.image_count is not None:
        updates["image_count"] = raw.image_count
    return updates


def extract_corpus_page(raw: CorpusPage, url: str) -> ExtractedPage:
    """Extract *raw* and evaluate its issues, preferring corpus-provided metrics."""
    if looks_like_html(raw.content):
        page = extract_html_page(raw.content, url)
        # Document flags are only judged on live pages
        page = page.model_copy(update={"has_viewport": None, "has_og_image": None})
    else:
        page = extract_markdown_page(raw.content, url)
    return with_issues(page.model_copy(update=_corpus_overrides(raw)))


def site_stats(pages: List[ExtractedPage]) -> SiteStats:
    total_words = sum(page.word_count for page in pages)
    # Round half up, like a human reading "12.5 words" would
    average = math.floor(total_words / len(pages) + 0.5) if pages else 0
    return SiteStats(
        total_pages=len(pages),
        total_words=total_words,
        avg_words_per_page=average,
        total_images=sum(page.image_count for page in pages),
        images_without_alt=sum(page.images_without_alt for page in pages),
        total_issues=sum(len(page.issues) for page in pages),
    )


def site_issues(pages: List[ExtractedPage]) -> List[Issue]:
    """Concatenate every page's issues, in page order, tagged with the page title."""
    issues: List[Issue] = []
    for page in pages:
        issues.extend(annotate(page.issues, page.title))
    return issues


def group_sections(pages: List[ExtractedPage]) -> List[Section]:
    """Group *pages* by first path segment, largest section first.

    Ties keep the order in which sections were first seen.
    """
    groups: Dict[str, List[ExtractedPage]] = {}
    for page in pages:
        group = groups.setdefault(section_key(page.url), [])
        if not any(existing.url == page.url for existing in group):
            group.append(page)

    sections = [
        Section(name=name, label=humanize(name), pages=group_pages)
        for name, group_pages in groups.items()
    ]
    return sorted(sections, key=lambda section: len(section.pages), reverse=True)


def aggregate(corpus: CrawlCorpus) -> SiteAnalysis:
    """Build the :class:`SiteAnalysis` of a crawl corpus.

    ``total_pages`` counts every content page the crawler captured, repeats
    included; sections and ``stats`` cover each URL once, first occurrence
    winning.

    Raises:
        CorpusError: a page URL in the corpus cannot be parsed.
    """
    pages: List[ExtractedPage] = []
    seen: set = set()
    content_pages = 0

    for raw in corpus.pages:
        if len(raw.content) <= MIN_CONTENT_LENGTH:
            logger.debug("Aggregator: skipping thin page %s", raw.url)
            continue
        content_pages += 1
        try:
            url = resolve_url(corpus.url_crawled, raw.url)
            if url in seen:
                continue
            seen.add(url)
            pages.append(extract_corpus_page(raw, url))
        except ValueError as exc:
            raise CorpusError(f"Invalid page URL in crawl data: {raw.url} ({exc})") from exc

    logger.info(
        "Aggregated crawl corpus",
        extra={"site": corpus.url_crawled, "pages": content_pages, "unique_pages": len(pages)},
    )
    return SiteAnalysis(
        url=corpus.url_crawled,
        total_pages=content_pages,
        sections=group_sections(pages),
        stats=site_stats(pages),
        issues=site_issues(pages),
    )
