"""Crawl corpus schema as written by the external crawler (snake_case keys)."""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.models.page import Heading, ImageRef


class CorpusPage(BaseModel):
    """One raw page of a crawl; optional metrics are used instead of re-deriving them.

    ``heading_count`` is accepted but ignored, like any other unknown key;
    pages carry their headings, not a count.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str
    # The crawler writes Markdown under "markdown"; HTML captures use "content".
    content: str = Field(default="", validation_alias=AliasChoices("content", "markdown"))
    depth: int = 0

    title: Optional[str] = None
    description: Optional[str] = None
    word_count: Optional[int] = None
    internal_link_count: Optional[int] = None
    external_link_count: Optional[int] = None
    image_count: Optional[int] = None
    images: Optional[List[ImageRef]] = None
    headings: Optional[List[Heading]] = None


class CrawlCorpus(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    success: bool = True
    total_pages: int = 0
    url_crawled: str
    pages: List[CorpusPage] = []
