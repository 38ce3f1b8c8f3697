# Generic state board scraper — one adapter driven by a per-state config table
from __future__ import annotations

import logging
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scrapers.browser import browser_session
from scrapers.extractor import extract, page_text, pick
from scrapers.locator import locate
from scrapers.models import (
    FailureKind,
    LicenseResult,
    LicenseStatus,
    LookupRequest,
    ScraperConfig,
)
from scrapers.normalize import has_discipline, normalize_status, parse_date

logger = logging.getLogger(__name__)

# Phrases a board uses to say "no such license". Checked against visible text.
DEFAULT_NO_RESULTS = (
    r"no\s*records?\s*(?:were\s*)?found",
    r"no\s*results?\s*(?:were\s*)?(?:found|returned)",
    r"no\s*matching",
    r"\b0\s*(?:results?|records?)\b",
    r"your\s*search\s*returned\s*no",
    r"(?:license|record|credential)\s*was\s*not\s*found",
    r"no\s*licen[sc]e[sd]?\s*(?:were\s*)?found",
    r"could\s*not\s*find",
)

STATUS_LABELS = ("Status", "License Status", "Credential Status", "Registration Status")
EXPIRATION_LABELS = (
    "Expiration", "Expiration Date", "Expires", "Exp Date",
    "Registration Expiration", "Registered through",
)
NAME_LABELS = ("Name", "Provider Name", "Licensee", "Licensee Name", "Full Name")
ISSUE_LABELS = ("Issue Date", "Original Issue Date", "Issued", "Date Issued")
TYPE_LABELS = ("License Type", "Credential Type", "Credential", "Profession", "Type")

# Whole-page fallback when no status label was extracted. Narrower than the
# label normalizer: "valid"/"current" appear in too much boilerplate.
_TEXT_STATUS = [
    (LicenseStatus.ACTIVE, re.compile(r"\bactive\b", re.IGNORECASE)),
    (LicenseStatus.EXPIRED, re.compile(r"\bexpired\b", re.IGNORECASE)),
    (LicenseStatus.INACTIVE, re.compile(r"\binactive\b", re.IGNORECASE)),
    (LicenseStatus.SUSPENDED, re.compile(r"\bsuspended\b", re.IGNORECASE)),
    (LicenseStatus.REVOKED, re.compile(r"\brevoked\b", re.IGNORECASE)),
]

TYPE_DELAY_MS = 50
SETTLE_TIMEOUT_MS = 30000
SETTLE_PAUSE_MS = 2000


class StateScraper:
    """Drives one state board's lookup page. Subclass only for bespoke steps.

    ``verify`` never raises for anything the page does: browser automation
    errors come back as ``scraper_error`` results. Anything else propagates
    to the dispatcher, which wraps it as ``verification_failed``.
    """

    def __init__(self, config: ScraperConfig):
        self.config = config
        self._no_results = [
            re.compile(p, re.IGNORECASE)
            for p in DEFAULT_NO_RESULTS + tuple(config.no_results_patterns)
        ]

    @property
    def state_code(self) -> str:
        return self.config.state

    # ------------------------------------------------------------------ #
    #  Hooks for jurisdiction overrides                                    #
    # ------------------------------------------------------------------ #

    def check_routing(self, request: LookupRequest) -> Optional[LicenseResult]:
        """Reject requests this board cannot answer, before any navigation."""
        if not self.config.supports(request.credential_type):
            supported = ", ".join(sorted(self.config.credential_types))
            return LicenseResult.failure(
                FailureKind.UNSUPPORTED_CREDENTIAL,
                f"Credential type {request.credential_type} not supported for "
                f"{self.state_code}. Supported types: {supported}",
                request.license_number,
            )
        return None

    def lookup_url_for(self, request: LookupRequest) -> str:
        return self.config.lookup_url

    async def prepare_form(self, page: Page, request: LookupRequest) -> None:
        """Bring the search form into a fillable state."""
        if self.config.profession_selectors:
            await self._select_profession(page)

    # ------------------------------------------------------------------ #
    #  Lookup                                                              #
    # ------------------------------------------------------------------ #

    async def verify(self, request: LookupRequest) -> LicenseResult:
        rejected = self.check_routing(request)
        if rejected is not None:
            logger.info(f"{self.state_code}: {rejected.failure_detail}")
            return rejected

        logger.info(f"{self.state_code}: starting lookup for license {request.license_number}")
        try:
            async with browser_session(self.config.timeout_ms) as page:
                return await self._lookup(page, request)
        except PlaywrightError as e:
            logger.error(f"{self.state_code}: browser automation failed: {e}")
            return LicenseResult.failure(
                FailureKind.SCRAPER_ERROR, str(e), request.license_number
            )

    async def _lookup(self, page: Page, request: LookupRequest) -> LicenseResult:
        await page.goto(
            self.lookup_url_for(request),
            wait_until="networkidle",
            timeout=self.config.timeout_ms,
        )
        await self.prepare_form(page, request)

        license_input = await locate(page, self.config.license_selectors)
        if license_input is None:
            logger.warning(
                f"{self.state_code}: no license field matched "
                f"{list(self.config.license_selectors)}"
            )
            return LicenseResult.failure(
                FailureKind.SCRAPER_ERROR,
                "Could not find license number field on the page",
                request.license_number,
            )

        await license_input.fill("")
        await license_input.press_sequentially(request.license_number, delay=TYPE_DELAY_MS)

        if request.last_name:
            last_name_input = await locate(page, self.config.last_name_selectors)
            if last_name_input is not None:
                await last_name_input.fill("")
                await last_name_input.press_sequentially(request.last_name, delay=TYPE_DELAY_MS)
                logger.debug(f"{self.state_code}: entered last name")
            else:
                logger.debug(f"{self.state_code}: no last name field, searching by number only")

        submit = await locate(page, self.config.submit_selectors)
        if submit is not None:
            await submit.click()
        else:
            logger.debug(f"{self.state_code}: no submit control, pressing Enter")
            await license_input.press("Enter")
        await self._settle(page)

        text = await page_text(page)
        if self.is_no_results(text):
            logger.info(f"{self.state_code}: no record for license {request.license_number}")
            return LicenseResult.failure(
                FailureKind.NOT_FOUND,
                "No license found matching the search criteria",
                request.license_number,
            )

        if self.config.detail_link_selectors:
            link = await locate(page, self.config.detail_link_selectors)
            if link is not None:
                await link.click()
                await self._settle(page)
                text = await page_text(page)

        fields = await extract(page)
        try:
            return self.build_result(request, fields, text)
        except Exception as e:
            logger.error(f"{self.state_code}: parse error: {e}")
            return LicenseResult.failure(
                FailureKind.PARSE_ERROR, str(e) or "Failed to parse results", request.license_number
            )

    # ------------------------------------------------------------------ #
    #  Interpretation                                                      #
    # ------------------------------------------------------------------ #

    def is_no_results(self, text: str) -> bool:
        return any(p.search(text or "") for p in self._no_results)

    def resolve_status(self, raw: Optional[str], text: str) -> LicenseStatus:
        """Status from the extracted label first, then board wording, then the page."""
        status = normalize_status(raw)
        if status is LicenseStatus.UNKNOWN and raw:
            status = self._aliased(raw)
        if status is LicenseStatus.UNKNOWN:
            for candidate, pattern in _TEXT_STATUS:
                if pattern.search(text or ""):
                    return candidate
            status = self._aliased(text)
        return status

    def _aliased(self, raw: Optional[str]) -> LicenseStatus:
        for word, canonical in self.config.status_aliases:
            if re.search(rf"\b{re.escape(word)}\b", raw or "", re.IGNORECASE):
                return normalize_status(canonical)
        return LicenseStatus.UNKNOWN

    def build_result(
        self, request: LookupRequest, fields: dict[str, str], text: str
    ) -> LicenseResult:
        status = self.resolve_status(pick(fields, *STATUS_LABELS), text)
        expiration = parse_date(pick(fields, *EXPIRATION_LABELS))
        name = pick(fields, *NAME_LABELS)

        if status is LicenseStatus.UNKNOWN and expiration is None and not name:
            return LicenseResult.failure(
                FailureKind.PARSE_ERROR,
                f"No status, expiration or name on results page "
                f"({len(fields)} field(s) extracted)",
                request.license_number,
            )

        logger.info(
            f"{self.state_code}: license {request.license_number} -> "
            f"{status.value}, expires {expiration or 'unknown'}"
        )
        return LicenseResult(
            success=True,
            license_number=request.license_number,
            license_holder_name=name,
            status=status,
            expiration_date=expiration,
            issue_date=parse_date(pick(fields, *ISSUE_LABELS)),
            license_type=pick(fields, *TYPE_LABELS),
            unencumbered=not has_discipline(text, self.config.discipline_keywords),
            raw_fields=dict(fields),
        )

    # ------------------------------------------------------------------ #
    #  Page helpers                                                        #
    # ------------------------------------------------------------------ #

    async def _settle(self, page: Page) -> None:
        try:
            await page.wait_for_load_state("networkidle", timeout=SETTLE_TIMEOUT_MS)
        except PlaywrightTimeoutError:
            # SPAs that never go idle; carry on with whatever rendered
            pass
        await page.wait_for_timeout(SETTLE_PAUSE_MS)

    async def _select_profession(self, page: Page) -> None:
        dropdown = await locate(page, self.config.profession_selectors)
        if dropdown is None:
            return
        options = await dropdown.locator("option").all_inner_texts()
        keyword = self.config.profession_keyword.lower()
        choice = next((o.strip() for o in options if keyword in o.lower()), None)
        if choice:
            await dropdown.select_option(label=choice)
            logger.debug(f"{self.state_code}: selected board {choice!r}")
            await self._settle(page)
