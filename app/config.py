"""Runtime settings, overridable through ``SITELENS_*`` environment variables or ``.env``."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SITELENS_",
        env_file=".env",
        extra="ignore",
    )

    corpus_dir: Path = Field(
        default=Path("."),
        description="Directory scanned for crawl corpus JSON files.",
    )
    corpus_pattern: str = "crawl_*.json"

    fetch_timeout: float = Field(default=15.0, gt=0, description="Whole-request bound in seconds.")
    max_content_size: int = 10 * 1024 * 1024  # 10 MB
    max_redirects: int = 10
    user_agent: str = _BROWSER_USER_AGENT
    block_private_addresses: bool = True

    proxy_path: str = "/proxy"
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
