"""Single live page analysis."""

import logging
from typing import Optional

from app.config import Settings
from app.models.site import PageAnalysis
from app.services.aggregator import site_stats
from app.services.extractor import extract_html_page
from app.services.fetcher import fetch_url
from app.services.issues import annotate, with_issues

logger = logging.getLogger(__name__)


async def analyse_page(url: str, settings: Optional[Settings] = None) -> PageAnalysis:
    """Fetch *url* and outline it, including the live-only viewport and og:image checks.

    Raises whatever :func:`fetch_url` raises; no partial result is returned.
    """
    url = url.strip()
    html = await fetch_url(url, settings)

    page = with_issues(extract_html_page(html, url))
    logger.info(
        "Analysed live page",
        extra={"url": url, "headings": len(page.headings), "issues": len(page.issues)},
    )

    fields = page.model_dump()
    fields["issues"] = annotate(page.issues, page.title)
    return PageAnalysis(**fields, stats=site_stats([page]))
