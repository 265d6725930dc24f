from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

Severity = Literal["critical", "warning", "info"]


class CamelModel(BaseModel):
    """Immutable model serialised with camelCase keys (``wordCount``, ``imagesWithoutAlt``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Heading(CamelModel):
    tag: str
    text: str
    level: int
    id: Optional[str] = None
    """Scroll-anchor identifier (``h-<index>``); only set for live-page analysis."""


class Issue(CamelModel):
    severity: Severity
    message: str
    page: Optional[str] = None


class ImageRef(CamelModel):
    src: str = ""
    alt: str = ""


class ExtractedPage(CamelModel):
    """Normalised outline of a single page."""

    url: str
    path: str
    title: str
    description: str = ""
    headings: List[Heading] = []
    snippet: str = ""
    word_count: int = 0
    image_count: int = 0
    images_without_alt: int = 0
    internal_links: int = 0
    external_links: int = 0
    # Document-level flags; None for archived Markdown pages, where they cannot be known.
    has_viewport: Optional[bool] = None
    has_og_image: Optional[bool] = None
    issues: List[Issue] = []
