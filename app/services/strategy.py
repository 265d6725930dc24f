"""Site analysis orchestration: crawl corpus first, live page as fallback."""

import logging
from typing import Literal, Optional, Tuple, Union

from app.config import Settings
from app.models.site import PageAnalysis, SiteAnalysis
from app.services.aggregator import aggregate
from app.services.analyzer import analyse_page
from app.services.corpus import CorpusNotFoundError, CorpusRepository
from app.services.normalizer import ensure_scheme

logger = logging.getLogger(__name__)

Strategy = Literal["corpus", "live"]


async def analyse_site(
    site: str,
    repository: CorpusRepository,
    live_fallback: bool = True,
    settings: Optional[Settings] = None,
) -> Tuple[Strategy, Union[SiteAnalysis, PageAnalysis]]:
    """Analyse *site* from its crawl corpus, or from the live page if none exists.

    Detection order:
    1. Crawl corpus matching the site's host
    2. Live analysis of the single URL (when *live_fallback* is set)

    Raises:
        CorpusNotFoundError: no corpus matches and *live_fallback* is off.
        CorpusError: a matching corpus could not be parsed.
    """
    # ── 1. Crawl corpus ───────────────────────────────────────────────────────
    try:
        corpus = repository.find_corpus(site)
    except CorpusNotFoundError:
        if not live_fallback:
            raise
        logger.info("Strategy: no crawl corpus for %s – analysing live page", site)
    else:
        logger.info("Strategy: crawl corpus found for %s", site)
        return "corpus", aggregate(corpus)

    # ── 2. Live page (fallback) ───────────────────────────────────────────────
    return "live", await analyse_page(ensure_scheme(site), settings)
