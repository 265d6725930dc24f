from typing import Optional

from pydantic import BaseModel, Field


class AnalyseRequest(BaseModel):
    url: str = Field(description="Absolute http(s) URL of the page to analyse.")


class CrawlAnalysisRequest(BaseModel):
    domain: Optional[str] = Field(
        default=None,
        description="Domain or URL identifying the crawl corpus. Omit to use the first corpus found.",
    )


class SiteAnalysisRequest(BaseModel):
    site: str = Field(description="Domain or URL of the site to analyse.")
    live_fallback: bool = True
    """Analyse the single live page when no crawl corpus matches *site*.

    When ``False`` a missing corpus is reported as 404 instead.
    """
