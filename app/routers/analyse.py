import logging
from typing import Union

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, get_settings
from app.models.request import AnalyseRequest, CrawlAnalysisRequest, SiteAnalysisRequest
from app.models.site import PageAnalysis, SiteAnalysis
from app.services.aggregator import aggregate
from app.services.analyzer import analyse_page
from app.services.corpus import (
    CorpusError,
    CorpusNotFoundError,
    CorpusRepository,
    get_corpus_repository,
)
from app.services.strategy import analyse_site

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter(tags=["Analysis"])

# Failures with a defined HTTP outcome; anything else reaches the global handler
_SERVICE_ERRORS = (CorpusNotFoundError, CorpusError, ValueError, httpx.HTTPError, RuntimeError)


@router.post(
    "/analyse",
    response_model=PageAnalysis,
    response_model_exclude_none=True,
    summary="Outline a single live page",
)
@limiter.limit("10/minute")
async def analyse(
    request: Request,
    body: AnalyseRequest,
    settings: Settings = Depends(get_settings),
) -> PageAnalysis:
    """Fetch *url* and return its title, headings (with scroll anchors), counts and issues."""
    logger.info("Analyse request received", extra={"url": body.url})
    try:
        return await analyse_page(body.url, settings)
    except _SERVICE_ERRORS as exc:
        raise _to_http_error(exc, body.url) from exc


@router.post(
    "/analyse-crawl",
    response_model=SiteAnalysis,
    response_model_exclude_none=True,
    summary="Outline a site from its crawl corpus",
)
@limiter.limit("20/minute")
async def analyse_crawl(
    request: Request,
    body: CrawlAnalysisRequest,
    repository: CorpusRepository = Depends(get_corpus_repository),
) -> SiteAnalysis:
    """Group every captured page into sections and roll up site-wide issues."""
    logger.info("Crawl analysis request received", extra={"site": body.domain})
    try:
        return aggregate(repository.find_corpus(body.domain))
    except _SERVICE_ERRORS as exc:
        raise _to_http_error(exc, body.domain or "") from exc


@router.post(
    "/analysis",
    response_model=Union[SiteAnalysis, PageAnalysis],
    response_model_exclude_none=True,
    summary="Outline a site, falling back to its live page",
    description=(
        "Uses the crawl corpus of *site* when one exists.  Otherwise, unless "
        "`live_fallback` is false, analyses the single live page and returns "
        "it in the same shape as one page of a site analysis."
    ),
)
@limiter.limit("10/minute")
async def analysis(
    request: Request,
    body: SiteAnalysisRequest,
    repository: CorpusRepository = Depends(get_corpus_repository),
    settings: Settings = Depends(get_settings),
) -> Union[SiteAnalysis, PageAnalysis]:
    logger.info(
        "Site analysis request received",
        extra={"site": body.site, "live_fallback": body.live_fallback},
    )
    try:
        strategy, result = await analyse_site(body.site, repository, body.live_fallback, settings)
    except _SERVICE_ERRORS as exc:
        raise _to_http_error(exc, body.site) from exc
    logger.info("Site analysis for %s served from %s", body.site, strategy)
    return result


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _to_http_error(exc: Exception, target: str) -> HTTPException:
    """Translate a service failure into the HTTP outcome the caller sees."""
    if isinstance(exc, CorpusNotFoundError):
        logger.info("No crawl data for %s", target)
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, CorpusError):
        return HTTPException(status_code=500, detail=str(exc))
    if isinstance(exc, ValueError):
        logger.warning("Invalid or blocked URL: %s – %s", target, exc)
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, httpx.TimeoutException):
        logger.error("Timeout fetching URL: %s", target)
        return HTTPException(status_code=502, detail="The target URL timed out.")
    if isinstance(exc, httpx.HTTPStatusError):
        logger.error("HTTP error fetching URL %s: %s", target, exc)
        return HTTPException(
            status_code=502, detail=f"Target URL returned HTTP {exc.response.status_code}."
        )
    logger.error("Error fetching URL %s: %s", target, exc)
    return HTTPException(status_code=502, detail=str(exc) or exc.__class__.__name__)
