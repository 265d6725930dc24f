from typing import List, Literal

from app.models.page import CamelModel, ExtractedPage, Issue


class Section(CamelModel):
    """Pages sharing the first segment of their URL path."""

    name: str
    label: str
    pages: List[ExtractedPage]


class SiteStats(CamelModel):
    total_pages: int = 0
    total_words: int = 0
    avg_words_per_page: int = 0
    total_images: int = 0
    images_without_alt: int = 0
    total_issues: int = 0


class SiteAnalysis(CamelModel):
    url: str
    total_pages: int
    sections: List[Section]
    stats: SiteStats
    issues: List[Issue]
    source: Literal["corpus"] = "corpus"


class PageAnalysis(ExtractedPage):
    """Single-page analysis shaped like one entry of a :class:`SiteAnalysis`."""

    stats: SiteStats
    source: Literal["live"] = "live"
