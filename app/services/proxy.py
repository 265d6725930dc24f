"""Rendering proxy: turns a live or archived page into a document safe to embed.

Live HTML gets a ``<base>`` tag pointing at the original origin, so that
stylesheets, images and scripts load from the site itself, plus a click
interceptor that keeps anchor navigation inside the proxy.  Everything that
is not HTML passes through untouched.
"""

import html
import json
import logging
import re
from typing import NamedTuple, Optional, Union

from app.config import Settings, get_settings
from app.services.corpus import CorpusRepository
from app.services.extractor import looks_like_html
from app.services.fetcher import fetch_resource
from app.services.markdown_renderer import SCROLL_ANCHOR_SCRIPT, render_document
from app.services.normalizer import origin_of

logger = logging.getLogger(__name__)

HTML_MEDIA_TYPE = "text/html; charset=utf-8"
_DEFAULT_MEDIA_TYPE = "application/octet-stream"

_HEAD_OPEN_RE = re.compile(r"<head(\s[^>]*)?>", re.IGNORECASE)

_NAVIGATION_SCRIPT = """<script>
(function(){
  var base = %(base)s;
  var proxy = %(proxy)s;
  document.addEventListener('click', function(e){
    if (e.defaultPrevented || e.button !== 0) return;
    if (e.metaKey || e.ctrlKey || e.shiftKey || e.altKey) return;
    var el = e.target && e.target.closest ? e.target.closest('a[href]') : null;
    if (!el) return;
    var href = (el.getAttribute('href') || '').trim();
    var lower = href.toLowerCase();
    if (!href || lower.charAt(0) === '#' || lower.indexOf('javascript:') === 0 ||
        lower.indexOf('mailto:') === 0 || lower.indexOf('tel:') === 0 ||
        href.indexOf(proxy) === 0) return;
    var target;
    try { target = new URL(href, base).href; } catch (err) { return; }
    if (!/^https?:/i.test(target)) return;
    e.preventDefault();
    window.parent.postMessage({type: 'navigationStarted'}, '*');
    window.location.href = proxy + encodeURIComponent(target);
  });
})();
</script>"""

_ERROR_DOCUMENT = """<!DOCTYPE html>
<html lang="en">
<head><meta charset="utf-8"><title>Could not load this website</title></head>
<body style="font-family:sans-serif;margin:0;padding:2rem;background:#111;color:#888">
  <p style="margin:0">Could not load this website.</p>
  <p style="font-size:0.8rem;margin-top:0.5rem;opacity:0.6">%s</p>
</body>
</html>
"""


class RenderedPage(NamedTuple):
    body: Union[str, bytes]
    media_type: str
    status_code: int = 200


def _js_literal(value: str) -> str:
    # "<" is escaped so a value can never close the surrounding <script>
    return json.dumps(value).replace("<", "\\u003c")


def base_tag(page_url: str) -> str:
    return f'<base href="{html.escape(origin_of(page_url) + "/", quote=True)}">'


def navigation_script(page_url: str, proxy_path: str) -> str:
    """Return the script that reroutes left-clicks on links through *proxy_path*."""
    return _NAVIGATION_SCRIPT % {
        "base": _js_literal(page_url),
        "proxy": _js_literal(f"{proxy_path}?url="),
    }


def inject_into_head(document: str, injection: str) -> str:
    """Insert *injection* as the first child of ``<head>``, or prepend it when there is none."""
    match = _HEAD_OPEN_RE.search(document)
    if not match:
        return injection + document
    return document[: match.end()] + injection + document[match.end() :]


def rewrite_html(document: str, page_url: str, proxy_path: Optional[str] = None) -> str:
    """Rewrite an upstream HTML document for embedding.

    With *proxy_path* set, link clicks are intercepted and sent back through
    the proxy; without it (archived pages) links behave normally.
    """
    parts = [base_tag(page_url)]
    if proxy_path:
        parts.append(navigation_script(page_url, proxy_path))
    parts.append(SCROLL_ANCHOR_SCRIPT)
    return inject_into_head(document, "\n".join(parts))


def error_document(message: str, status_code: int = 502) -> RenderedPage:
    """Return a minimal, renderable error page."""
    return RenderedPage(_ERROR_DOCUMENT % html.escape(message), HTML_MEDIA_TYPE, status_code)


async def render_live(url: str, settings: Optional[Settings] = None) -> RenderedPage:
    """Fetch *url* and return it ready for the sandboxed viewport.

    Raises the fetcher's exceptions; the router turns them into error pages.
    """
    settings = settings or get_settings()
    resource = await fetch_resource(url, settings)

    if not resource.is_html:
        logger.debug("Proxy: passing through %s (%s)", resource.url, resource.content_type)
        return RenderedPage(
            resource.body,
            resource.content_type or _DEFAULT_MEDIA_TYPE,
            resource.status_code,
        )

    document = rewrite_html(resource.text(), resource.url, settings.proxy_path)
    return RenderedPage(document, HTML_MEDIA_TYPE)


def render_archived(url: str, repository: CorpusRepository) -> RenderedPage:
    """Render the page captured at *url* in the crawl corpus.

    Archived pages keep the base URL and scroll anchors but no navigation
    interception: only what was captured can be shown.
    """
    if not url or not url.strip():
        raise ValueError("Missing url.")
    page = repository.find_page(url.strip())
    if looks_like_html(page.content):
        document = rewrite_html(page.content, url)
    else:
        document = render_document(page.content, url)
    return RenderedPage(document, HTML_MEDIA_TYPE)
