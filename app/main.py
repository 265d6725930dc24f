import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.config import get_settings
from app.routers.analyse import limiter, router as analyse_router
from app.routers.render import router as render_router

_JSON_FORMAT = '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}'


def configure_logging(level: str) -> None:
    """Send every logger to stderr as one JSON object per line."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"format": _JSON_FORMAT}},
            "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "json"}},
            "root": {"level": level.upper(), "handlers": ["console"]},
        }
    )


configure_logging(get_settings().log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info(
        "SiteLens starting: corpus %s/%s, fetch timeout %ss",
        settings.corpus_dir,
        settings.corpus_pattern,
        settings.fetch_timeout,
    )
    yield


app = FastAPI(
    title="SiteLens – Site Outline & Preview API",
    description=(
        "Outlines a live page or a crawled site (headings, counts, SEO and "
        "accessibility issues) and renders pages for a sandboxed viewport."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(analyse_router)
app.include_router(render_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"message": "Hello from SiteLens"}
