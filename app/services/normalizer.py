"""URL normalisation helpers: paths, origins, section keys and humanised labels."""

import re
from urllib.parse import urljoin, urlparse

_WORD_START_RE = re.compile(r"\b\w")


def humanize(value: str) -> str:
    """Turn a slug such as ``getting-started`` into ``Getting Started``."""
    return _WORD_START_RE.sub(lambda m: m.group(0).upper(), value.replace("-", " "))


def url_path(url: str) -> str:
    """Return the path component of *url*, ``/`` for a bare origin."""
    return urlparse(url).path or "/"


def path_segments(url: str) -> list[str]:
    return [segment for segment in url_path(url).split("/") if segment]


def section_key(url: str) -> str:
    """Return the first path segment of *url*, or ``home`` for root-level pages."""
    segments = path_segments(url)
    return segments[0] if segments else "home"


def title_from_url(url: str) -> str:
    """Derive a readable title from the last non-empty path segment of *url*."""
    segments = path_segments(url)
    return humanize(segments[-1]) if segments else "Home"


def origin_of(url: str) -> str:
    """Return ``scheme://host[:port]`` for *url*."""
    parsed = urlparse(url)
    return f"{parsed.scheme}://{parsed.netloc}"


def resolve_url(base_url: str, href: str) -> str:
    """Return an absolute URL, resolving *href* against *base_url*."""
    return urljoin(base_url, href)


def site_host(identifier: str) -> str:
    """Reduce a domain or URL such as ``https://example.com/docs/`` to ``example.com``."""
    value = identifier.strip()
    if "://" not in value:
        value = "//" + value
    return urlparse(value).netloc.lower()


def ensure_scheme(identifier: str) -> str:
    """Prefix a bare domain with ``https://`` so it can be fetched."""
    value = identifier.strip()
    if re.match(r"^[a-z][a-z0-9+.\-]*://", value, re.IGNORECASE):
        return value
    return "https://" + value
