import asyncio
import ipaddress
import re
import socket
from typing import NamedTuple, Optional
from urllib.parse import urljoin, urlparse

import httpx

from app.config import Settings, get_settings

ALLOWED_SCHEMES = {"http", "https"}

_CHARSET_RE = re.compile(r"charset=[\"']?([\w\-]+)", re.IGNORECASE)


class FetchedResource(NamedTuple):
    """An upstream response body together with what is needed to pass it through."""

    url: str  # final URL after redirects
    status_code: int
    content_type: str
    body: bytes

    @property
    def is_html(self) -> bool:
        return "text/html" in self.content_type.lower()

    def text(self) -> str:
        match = _CHARSET_RE.search(self.content_type)
        encoding = match.group(1) if match else "utf-8"
        try:
            return self.body.decode(encoding, errors="replace")
        except LookupError:
            return self.body.decode("utf-8", errors="replace")


async def _is_private_address(hostname: str) -> bool:
    """Return True if *hostname* resolves to a private, loopback, or link-local address.

    Resolution runs through the event loop's resolver so a slow DNS lookup
    never blocks other requests.
    """
    try:
        infos = await asyncio.get_running_loop().getaddrinfo(hostname, None)
    except socket.gaierror:
        return False

    for info in infos:
        # Strip IPv6 zone IDs (e.g. "::1%eth0" → "::1")
        raw_ip = info[4][0].split("%")[0]
        try:
            addr = ipaddress.ip_address(raw_ip)
        except ValueError:
            continue
        if addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved:
            return True
    return False


async def validate_url(url: str, settings: Optional[Settings] = None) -> None:
    """Raise ValueError if *url* is missing, malformed, or fails SSRF / scheme validation."""
    settings = settings or get_settings()
    if not url or not url.strip():
        raise ValueError("Missing url.")

    parsed = urlparse(url.strip())
    if parsed.scheme not in ALLOWED_SCHEMES:
        raise ValueError(f"Scheme '{parsed.scheme}' is not allowed. Use http or https.")

    try:
        hostname = parsed.hostname
    except ValueError:
        hostname = None
    if not hostname:
        raise ValueError("URL must have a valid hostname.")

    if settings.block_private_addresses and await _is_private_address(hostname):
        raise ValueError("Requests to private/internal addresses are not allowed.")


def _client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=settings.fetch_timeout,
        headers={
            "User-Agent": settings.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        },
    )


async def _get(url: str, settings: Settings, raise_for_status: bool) -> FetchedResource:
    await validate_url(url, settings)
    # Redirects are followed manually so that every destination is validated
    # against the SSRF rules before the next request is made.
    current_url = url
    async with _client(settings) as client:
        for _ in range(settings.max_redirects + 1):
            async with client.stream("GET", current_url) as response:
                if response.is_redirect:
                    location = response.headers.get("location", "")
                    next_url = urljoin(current_url, location)
                    await validate_url(next_url, settings)
                    current_url = next_url
                    continue

                if raise_for_status:
                    response.raise_for_status()

                content_length = response.headers.get("content-length")
                if content_length and content_length.isdigit() and int(content_length) > settings.max_content_size:
                    raise RuntimeError("Response body exceeds the maximum allowed size.")

                chunks = []
                total = 0
                async for chunk in response.aiter_bytes():
                    total += len(chunk)
                    if total > settings.max_content_size:
                        raise RuntimeError("Response body exceeds the maximum allowed size.")
                    chunks.append(chunk)

                return FetchedResource(
                    url=str(response.url),
                    status_code=response.status_code,
                    content_type=response.headers.get("content-type", ""),
                    body=b"".join(chunks),
                )

    raise RuntimeError("Too many redirects.")


async def fetch_resource(
    url: str,
    settings: Optional[Settings] = None,
    *,
    raise_for_status: bool = False,
) -> FetchedResource:
    """Fetch *url*, following redirects, and return the raw upstream response.

    The whole exchange (address resolution, redirects and body included)
    is bounded by ``settings.fetch_timeout``; cancelling the calling task
    closes the connection.

    Raises:
        ValueError: if the URL (or a redirect target) fails validation.
        httpx.TimeoutException: when the time bound is exceeded.
        httpx.HTTPStatusError: on a 4xx/5xx response when *raise_for_status* is set.
        httpx.HTTPError: on other network errors.
        RuntimeError: if the body is too large or redirects loop.
    """
    settings = settings or get_settings()
    try:
        return await asyncio.wait_for(
            _get(url.strip(), settings, raise_for_status), timeout=settings.fetch_timeout
        )
    except asyncio.TimeoutError as exc:
        raise httpx.TimeoutException(
            f"Timed out after {settings.fetch_timeout:g} seconds."
        ) from exc


async def fetch_url(url: str, settings: Optional[Settings] = None) -> str:
    """Fetch *url* and return its body as text; non-2xx responses raise ``HTTPStatusError``."""
    resource = await fetch_resource(url, settings, raise_for_status=True)
    return resource.text()
