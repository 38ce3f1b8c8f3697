# Scraper registry — maps state codes to their board scrapers
# and is the single entry point for one license lookup.

import logging
from typing import Optional

from scrapers.base import StateScraper
from scrapers.jurisdictions import JURISDICTIONS, REGIONS
from scrapers.models import FailureKind, LicenseResult, LookupRequest
from scrapers.states import ArizonaScraper, TexasScraper

logger = logging.getLogger(__name__)

# States whose lookup needs bespoke steps; the rest use StateScraper as-is
_OVERRIDES: dict[str, type[StateScraper]] = {
    "AZ": ArizonaScraper,
    "TX": TexasScraper,
}

_SCRAPER_MAP: dict[str, StateScraper] = {
    code: _OVERRIDES.get(code, StateScraper)(config)
    for code, config in JURISDICTIONS.items()
}

SUPPORTED_STATES = frozenset(_SCRAPER_MAP)


def get_available_states() -> list[str]:
    return sorted(_SCRAPER_MAP)


def has_scraper_for_state(state_code: str) -> bool:
    return (state_code or "").upper().strip() in _SCRAPER_MAP


def get_scraper(state_code: str) -> Optional[StateScraper]:
    """Get the scraper for a state, or None if the state isn't covered."""
    return _SCRAPER_MAP.get((state_code or "").upper().strip())


def get_states_by_region() -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {region: [] for region in REGIONS}
    for code, scraper in _SCRAPER_MAP.items():
        grouped.setdefault(scraper.config.region or "Other", []).append(code)
    return {region: sorted(codes) for region, codes in grouped.items() if codes}


def lookup_timeout(state_code: str) -> Optional[float]:
    """Adapter timeout in seconds, or None for an uncovered state."""
    scraper = get_scraper(state_code)
    return scraper.config.timeout_ms / 1000 if scraper else None


async def verify_license(request: LookupRequest) -> LicenseResult:
    """Verify one license against its state board. Never raises."""
    state = (request.state or "").upper().strip()
    scraper = get_scraper(state)

    if scraper is None:
        logger.info(f"No scraper for {state or '(blank)'}")
        return LicenseResult.failure(
            FailureKind.NO_SCRAPER,
            f"No scraper available for state: {request.state}. "
            f"Available states: {', '.join(get_available_states())}",
            request.license_number,
        )

    if not scraper.config.supports(request.credential_type):
        supported = ", ".join(sorted(scraper.config.credential_types))
        return LicenseResult.failure(
            FailureKind.UNSUPPORTED_CREDENTIAL,
            f"Credential type {request.credential_type} not supported for {state}. "
            f"Supported types: {supported}",
            request.license_number,
        )

    try:
        return await scraper.verify(request)
    except Exception as e:
        logger.exception(f"{state}: verification failed for {request.license_number}")
        return LicenseResult.failure(
            FailureKind.VERIFICATION_FAILED,
            str(e) or type(e).__name__,
            request.license_number,
        )
