"""
Enrichment gateway: one entry point for profile lookups.

The back-end is picked from the criteria alone: a profile handle means a
direct scrape, no handle means search first. Rate limiting, caching and the
circuit breaker come from the EnrichmentContext passed in by the caller.
"""

from typing import Optional

from ..errors import AuthorizationError, IntakeError, NotFoundError, ServiceUnavailableError
from ..logger import get_logger
from ..models import EnrichedProfile, LookupCriteria
from ..normalize import normalize_profile_handle
from ..retry import CircuitBreaker
from .common import EnrichmentContext
from .profiles import ProfileScraperBackend
from .search import ProfileSearchBackend
from .validation import LOW_CONFIDENCE, assess_profile_match

logger = get_logger()


def uses_handle(criteria: LookupCriteria) -> bool:
    return normalize_profile_handle(criteria.profile_handle) is not None


class EnrichmentGateway:
    def __init__(self, context: EnrichmentContext, by_handle, by_search):
        self.context = context
        self.by_handle = by_handle
        self.by_search = by_search

    def backend_for(self, criteria: LookupCriteria):
        return self.by_handle if uses_handle(criteria) else self.by_search

    def lookup(self, criteria: LookupCriteria, use_cache: bool = True) -> Optional[EnrichedProfile]:
        """
        Fetch a profile for the criteria.

        Returns None when the provider has no matching profile.

        Raises:
            RateLimitError, AuthorizationError, ServiceUnavailableError
        """
        key = criteria.cache_key()
        if use_cache:
            cached = self.context.cached(key)
            if cached is not None:
                logger.debug("Enrichment cache hit", key=key)
                return cached

        backend = self.backend_for(criteria)
        logger.record_lookup_attempt(backend.name)
        self.context.wait_turn()
        try:
            profile = self.context.breaker.call(backend.lookup, criteria)
        except NotFoundError as e:
            logger.record_lookup_failure(backend.name, NotFoundError.kind)
            logger.info("No profile found", name=criteria.name, provider=backend.name, reason=str(e))
            return None
        except AuthorizationError as e:
            logger.record_lookup_failure(backend.name, e.kind)
            logger.critical("Enrichment credentials rejected", provider=backend.name, status=e.status)
            raise
        except IntakeError as e:
            logger.record_lookup_failure(backend.name, e.kind)
            logger.warning("Enrichment lookup failed", name=criteria.name, provider=backend.name, error=e.message)
            raise

        profile.match_confidence = assess_profile_match(criteria, profile)
        if profile.match_confidence < LOW_CONFIDENCE:
            logger.warning(
                "Enriched profile may belong to someone else",
                name=criteria.name,
                profile_name=profile.name,
                confidence=profile.match_confidence,
            )
        logger.record_lookup_success(backend.name)
        self.context.remember(key, profile)
        return profile


def build_gateway(settings) -> EnrichmentGateway:
    """Gateway wired to the HTTP back-ends configured in settings."""
    context = EnrichmentContext(
        min_interval=settings.enrichment_min_interval,
        cache_ttl=settings.enrichment_cache_ttl,
        breaker=CircuitBreaker(
            name="enrichment",
            failure_threshold=settings.enrichment_failure_threshold,
            expected_exception=ServiceUnavailableError,
        ),
    )
    http = dict(
        token=settings.enrichment_api_token,
        timeout=settings.enrichment_timeout,
        max_retries=settings.enrichment_max_retries,
    )
    by_handle = ProfileScraperBackend(settings.enrichment_profile_url, **http)
    by_search = ProfileSearchBackend(
        settings.enrichment_search_url,
        profiles=ProfileScraperBackend(settings.enrichment_profile_url, **http),
        **http,
    )
    return EnrichmentGateway(context, by_handle, by_search)
