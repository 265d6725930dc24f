import logging

import httpx
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from app.config import Settings, get_settings
from app.routers.analyse import limiter
from app.services.corpus import (
    CorpusError,
    CorpusNotFoundError,
    CorpusRepository,
    get_corpus_repository,
)
from app.services.proxy import RenderedPage, error_document, render_archived, render_live

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Rendering"])


@router.get(
    "/proxy",
    summary="Render a live page for the embedded viewport",
    description=(
        "Fetches *url* and returns HTML rewritten with a `<base>` tag and a "
        "click interceptor that routes link navigation back through this "
        "endpoint.  Non-HTML resources are passed through unchanged.  Every "
        "failure is answered with a small HTML error page."
    ),
)
@limiter.limit("60/minute")
async def proxy(
    request: Request,
    url: str = Query(default="", description="Absolute http(s) URL to render."),
    settings: Settings = Depends(get_settings),
) -> Response:
    try:
        rendered = await render_live(url, settings)
    except ValueError as exc:
        logger.warning("Proxy: invalid or blocked URL %s – %s", url, exc)
        rendered = error_document(str(exc), status_code=400)
    except httpx.TimeoutException:
        logger.error("Proxy: timeout fetching %s", url)
        rendered = error_document("The target URL timed out.")
    except (httpx.HTTPError, RuntimeError) as exc:
        logger.error("Proxy: error fetching %s: %s", url, exc)
        rendered = error_document(str(exc) or exc.__class__.__name__)
    except Exception as exc:
        # The viewport must always receive something it can display
        logger.exception("Proxy: unexpected error for %s", url)
        rendered = error_document(str(exc) or "Unexpected error.", status_code=500)
    return _to_response(rendered)


@router.get(
    "/crawl-page",
    summary="Render an archived page from the crawl corpus",
)
@limiter.limit("60/minute")
async def crawl_page(
    request: Request,
    url: str = Query(default="", description="Exact URL of the captured page."),
    repository: CorpusRepository = Depends(get_corpus_repository),
) -> Response:
    try:
        rendered = render_archived(url, repository)
    except ValueError as exc:
        rendered = error_document(str(exc), status_code=400)
    except CorpusNotFoundError as exc:
        logger.info("Archived page not found: %s", url)
        rendered = error_document(str(exc), status_code=404)
    except CorpusError as exc:
        rendered = error_document(str(exc), status_code=500)
    return _to_response(rendered)


def _to_response(rendered: RenderedPage) -> Response:
    # Content-Type is set verbatim so passthrough resources keep the upstream value
    return Response(
        content=rendered.body,
        status_code=rendered.status_code,
        headers={"Content-Type": rendered.media_type},
    )
