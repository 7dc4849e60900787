from .common import EnrichmentContext
from .gateway import EnrichmentGateway, build_gateway, uses_handle
from .profiles import ProfileScraperBackend
from .search import ProfileSearchBackend

__all__ = [
    "EnrichmentContext",
    "EnrichmentGateway",
    "ProfileScraperBackend",
    "ProfileSearchBackend",
    "build_gateway",
    "uses_handle",
]
