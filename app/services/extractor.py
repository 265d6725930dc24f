"""Text feature extraction from raw HTML or archived Markdown.

Every rule lives behind its own named function so that call sites depend on
the contract (ordered headings, non-empty title, best-effort counts) rather
than on how a document is parsed.  HTML goes through BeautifulSoup with the
lxml parser, which never raises on malformed markup; Markdown is scanned
line by line with regular expressions.

None of these functions perform I/O and none of them raise for bad input:
degraded documents produce empty strings and zero counts.
"""

import re
from typing import Iterable, List, Literal, NamedTuple, Tuple

from bs4 import BeautifulSoup
from bs4.element import PreformattedString, Tag
from markdownify import markdownify

from app.models.page import ExtractedPage, Heading
from app.services.normalizer import origin_of, title_from_url, url_path

Mode = Literal["html", "markdown"]

SNIPPET_MAX_CHARS = 150
_SNIPPET_MIN_CHARS = 20

_HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
_DESCRIPTION_KEYS = {"description", "og:description"}

# Subtrees whose text is never visible page content
_NON_TEXT_TAGS = ["script", "style", "noscript", "template"]

_MD_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$", re.MULTILINE)
_MD_H1_RE = re.compile(r"^#\s+(.+)$", re.MULTILINE)
_MD_H2_RE = re.compile(r"^##\s+(.+)$", re.MULTILINE)
_MD_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\(([^)]*)\)")
# A link is bracketed text plus a target that is not preceded by "!" (images)
_MD_LINK_RE = re.compile(r"(?<!!)\[([^\]]*)\]\(([^)]*)\)")
_MD_HEADING_LINK_RE = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_MD_LINE_MARKER_RE = re.compile(r"^\s*(?:#{1,6}|[-*+]|>|\d+\.)\s+", re.MULTILINE)
_MD_INLINE_MARKER_RE = re.compile(r"\*\*|__|[*`]")
_WORD_RE = re.compile(r"\w")

_HTML_DOCUMENT_RE = re.compile(r"^\s*(?:<!doctype\s+html|<html[\s>]|<head[\s>]|<body[\s>])", re.IGNORECASE)


class LinkCounts(NamedTuple):
    internal: int
    external: int


class ImageCounts(NamedTuple):
    total: int
    without_alt: int


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _parse(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "lxml")


def looks_like_html(content: str) -> bool:
    """Return True when *content* is an HTML document rather than Markdown."""
    return bool(_HTML_DOCUMENT_RE.match(content or ""))


# ---------------------------------------------------------------------------
# Headings
# ---------------------------------------------------------------------------

def _html_headings(soup: BeautifulSoup) -> List[Heading]:
    headings: List[Heading] = []
    for element in soup.find_all(_HEADING_TAGS):
        text = _collapse(element.get_text())
        if not text:
            continue
        tag = element.name.lower()
        headings.append(
            Heading(tag=tag, text=text, level=int(tag[1]), id=f"h-{len(headings)}")
        )
    return headings


def _clean_markdown_heading(text: str) -> str:
    text = text.replace("**", "")
    return _MD_HEADING_LINK_RE.sub(r"\1", text).strip()


def _markdown_headings(markdown: str) -> List[Heading]:
    headings: List[Heading] = []
    for match in _MD_HEADING_RE.finditer(markdown or ""):
        text = _clean_markdown_heading(match.group(2))
        # Single characters come from malformed "#" lines, not real headings
        if len(text) > 1:
            level = len(match.group(1))
            headings.append(Heading(tag=f"h{level}", text=text, level=level))
    return headings


def extract_headings(text: str, mode: Mode = "html") -> List[Heading]:
    """Return the headings of *text* in document order.

    HTML headings carry a positional scroll-anchor ``id`` (``h-0``, ``h-1``, …).
    """
    if mode == "markdown":
        return _markdown_headings(text)
    return _html_headings(_parse(text))


# ---------------------------------------------------------------------------
# Title / description / snippet
# ---------------------------------------------------------------------------

def _html_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    return _collapse(title_tag.get_text()) if title_tag else ""


def _markdown_title(markdown: str) -> str:
    for pattern in (_MD_H1_RE, _MD_H2_RE):
        match = pattern.search(markdown or "")
        if match:
            title = match.group(1).replace("**", "").strip()
            if title:
                return title
    return ""


def extract_title(text: str, url: str, mode: Mode = "html") -> str:
    """Return the page title, falling back to a humanised last URL path segment."""
    if mode == "markdown":
        title = _markdown_title(text)
    else:
        title = _html_title(_parse(text))
    return title or title_from_url(url)


def _html_description(soup: BeautifulSoup) -> str:
    # A tag written as name/property="description" ... content="..." wins over
    # any tag with the reversed attribute order, wherever the latter appears.
    reversed_match = None
    for meta in soup.find_all("meta"):
        if "content" not in meta.attrs:
            continue
        key_attr = next(
            (
                attr
                for attr in ("name", "property")
                if str(meta.get(attr, "")).strip().lower() in _DESCRIPTION_KEYS
            ),
            None,
        )
        if key_attr is None:
            continue
        content = str(meta["content"]).strip()
        attr_order = list(meta.attrs)
        if attr_order.index(key_attr) < attr_order.index("content"):
            return content
        if reversed_match is None:
            reversed_match = content
    return reversed_match or ""


def extract_description(html: str) -> str:
    """Return the meta description (or og:description) content, or ``""``."""
    return _html_description(_parse(html))


def extract_snippet(markdown: str) -> str:
    """Return the first prose line of *markdown*, truncated to 150 characters."""
    for line in (markdown or "").split("\n"):
        stripped = line.strip()
        if len(stripped) <= _SNIPPET_MIN_CHARS:
            continue
        if stripped.startswith(("#", "![", "[")):
            continue
        return stripped[:SNIPPET_MAX_CHARS]
    return ""


# ---------------------------------------------------------------------------
# Links / images / words
# ---------------------------------------------------------------------------

def count_links(hrefs: Iterable[str], page_url: str) -> LinkCounts:
    """Classify *hrefs* by how they are written, without resolving them.

    Hrefs starting with ``/`` (``//host`` included) or with the page's own
    origin are internal; any other ``http(s)`` href is external.  Fragment,
    ``javascript:`` and other-scheme hrefs (``mailto:``, ``tel:``, bare
    relative paths) count as neither.
    """
    origin = origin_of(page_url)
    internal = external = 0
    for raw_href in hrefs:
        href = (raw_href or "").strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            continue
        if href.startswith("/") or href.startswith(origin):
            internal += 1
        elif href.lower().startswith(("http://", "https://")):
            external += 1
    return LinkCounts(internal, external)


def count_images(alts: Iterable[str | None]) -> ImageCounts:
    """Count images and those whose alt text is absent or blank."""
    total = without_alt = 0
    for alt in alts:
        total += 1
        if alt is None or not str(alt).strip():
            without_alt += 1
    return ImageCounts(total, without_alt)


def _text_root(html: str) -> Tag:
    """Return the <body> of *html* with script/style/template subtrees removed."""
    soup = _parse(html)
    for tag in soup.find_all(_NON_TEXT_TAGS):
        tag.decompose()
    return soup.body or soup


def _word_count(root: Tag) -> int:
    words = 0
    for string in root.find_all(string=True):
        # Comments, doctypes and CDATA are not visible text
        if isinstance(string, PreformattedString):
            continue
        words += len(string.split())
    return words


def word_count_html(html: str) -> int:
    """Count whitespace-separated words in the visible text of the document body."""
    return _word_count(_text_root(html))


def word_count_markdown(markdown: str) -> int:
    """Count words in *markdown* once image markup, link targets and markers are removed."""
    text = _MD_IMAGE_RE.sub(" ", markdown or "")
    text = _MD_LINK_RE.sub(r"\1", text)
    text = _MD_LINE_MARKER_RE.sub("", text)
    text = _MD_INLINE_MARKER_RE.sub("", text)
    return sum(1 for token in text.split() if _WORD_RE.search(token))


def markdown_links(markdown: str) -> List[str]:
    """Return the target of every non-image Markdown link, titles dropped."""
    hrefs: List[str] = []
    for match in _MD_LINK_RE.finditer(markdown or ""):
        target = match.group(2).split()
        hrefs.append(target[0] if target else "")
    return hrefs


def markdown_images(markdown: str) -> List[Tuple[str, str]]:
    """Return ``(src, alt)`` pairs for every Markdown image."""
    return [(match.group(2).strip(), match.group(1)) for match in _MD_IMAGE_RE.finditer(markdown or "")]


# ---------------------------------------------------------------------------
# Document-level flags
# ---------------------------------------------------------------------------

def _has_meta(soup: BeautifulSoup, key: str) -> bool:
    for meta in soup.find_all("meta"):
        for attr in ("name", "property"):
            if str(meta.get(attr, "")).strip().lower() == key:
                return True
    return False


def has_viewport(html: str) -> bool:
    return _has_meta(_parse(html), "viewport")


def has_og_image(html: str) -> bool:
    return _has_meta(_parse(html), "og:image")


# ---------------------------------------------------------------------------
# Page assembly
# ---------------------------------------------------------------------------

def extract_html_page(html: str, url: str) -> ExtractedPage:
    """Extract an :class:`ExtractedPage` (without issues) from a live HTML document."""
    # Metadata, links and images come from the full tree; text statistics
    # from a copy stripped of non-visible subtrees.
    soup = _parse(html)
    text_root = _text_root(html)

    links = count_links((str(a["href"]) for a in soup.find_all("a", href=True)), url)
    images = count_images(img.get("alt") for img in soup.find_all("img"))
    snippet = extract_snippet(markdownify(str(text_root), heading_style="ATX"))

    return ExtractedPage(
        url=url,
        path=url_path(url),
        title=_html_title(soup) or title_from_url(url),
        description=_html_description(soup),
        headings=_html_headings(soup),
        snippet=snippet,
        word_count=_word_count(text_root),
        image_count=images.total,
        images_without_alt=images.without_alt,
        internal_links=links.internal,
        external_links=links.external,
        has_viewport=_has_meta(soup, "viewport"),
        has_og_image=_has_meta(soup, "og:image"),
    )


def extract_markdown_page(markdown: str, url: str) -> ExtractedPage:
    """Extract an :class:`ExtractedPage` (without issues) from archived Markdown."""
    links = count_links(markdown_links(markdown), url)
    images = count_images(alt for _src, alt in markdown_images(markdown))

    return ExtractedPage(
        url=url,
        path=url_path(url),
        title=extract_title(markdown, url, mode="markdown"),
        description="",
        headings=_markdown_headings(markdown),
        snippet=extract_snippet(markdown),
        word_count=word_count_markdown(markdown),
        image_count=images.total,
        images_without_alt=images.without_alt,
        internal_links=links.internal,
        external_links=links.external,
    )
