# State board license lookup engine
from scrapers.base import StateScraper
from scrapers.models import (
    FailureKind,
    LicenseResult,
    LicenseStatus,
    LookupRequest,
    ScraperConfig,
)
from scrapers.registry import (
    SUPPORTED_STATES,
    get_available_states,
    get_scraper,
    get_states_by_region,
    has_scraper_for_state,
    lookup_timeout,
    verify_license,
)

__all__ = [
    "FailureKind",
    "LicenseResult",
    "LicenseStatus",
    "LookupRequest",
    "ScraperConfig",
    "StateScraper",
    "SUPPORTED_STATES",
    "get_available_states",
    "get_scraper",
    "get_states_by_region",
    "has_scraper_for_state",
    "lookup_timeout",
    "verify_license",
]
