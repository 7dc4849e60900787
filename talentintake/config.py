"""
Runtime settings read from the environment (after .env is loaded).
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .env import load_env


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    return float(raw) if raw not in (None, "") else default


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    return int(raw) if raw not in (None, "") else default


@dataclass
class Settings:
    db_path: Path = Path("data/candidates.db")

    # Enrichment provider
    enrichment_profile_url: str = "http://localhost:8000/profile"
    enrichment_search_url: str = "http://localhost:8000/search"
    enrichment_api_token: Optional[str] = None
    enrichment_timeout: float = 15.0
    enrichment_min_interval: float = 2.0
    enrichment_cache_ttl: float = 3600.0
    enrichment_max_retries: int = 2
    enrichment_failure_threshold: int = 5

    # Analysis provider
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_base_url: Optional[str] = None
    analysis_timeout: float = 30.0

    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build Settings from environment variables, loading .env first."""
    load_env()
    defaults = Settings()
    return Settings(
        db_path=Path(os.getenv("INTAKE_DB_PATH", str(defaults.db_path))),
        enrichment_profile_url=os.getenv("ENRICHMENT_PROFILE_URL", defaults.enrichment_profile_url),
        enrichment_search_url=os.getenv("ENRICHMENT_SEARCH_URL", defaults.enrichment_search_url),
        enrichment_api_token=os.getenv("ENRICHMENT_API_TOKEN") or None,
        enrichment_timeout=_float("ENRICHMENT_TIMEOUT", defaults.enrichment_timeout),
        enrichment_min_interval=_float("ENRICHMENT_MIN_INTERVAL", defaults.enrichment_min_interval),
        enrichment_cache_ttl=_float("ENRICHMENT_CACHE_TTL", defaults.enrichment_cache_ttl),
        enrichment_max_retries=_int("ENRICHMENT_MAX_RETRIES", defaults.enrichment_max_retries),
        enrichment_failure_threshold=_int(
            "ENRICHMENT_FAILURE_THRESHOLD", defaults.enrichment_failure_threshold
        ),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_model=os.getenv("OPENAI_MODEL", defaults.openai_model),
        openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
        analysis_timeout=_float("ANALYSIS_TIMEOUT", defaults.analysis_timeout),
        log_level=os.getenv("LOG_LEVEL", defaults.log_level),
    )
