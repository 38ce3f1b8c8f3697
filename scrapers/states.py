# Boards whose lookup needs more than the generic flow
import logging
from typing import Optional

from playwright.async_api import Page

from scrapers.base import StateScraper
from scrapers.locator import locate
from scrapers.models import FailureKind, LicenseResult, LookupRequest

logger = logging.getLogger(__name__)


class ArizonaScraper(StateScraper):
    """Arizona board lookup. Only covers the CNA-family registry.

    Arizona RN/LPN/APRN licensure is published through Nursys, which this
    engine does not drive.
    """

    NURSYS_ROUTED = frozenset({"RN", "LPN", "APRN", "NP", "CNS", "CNM", "CRNA"})
    LICENSE_TAB = ('a[href="#licenseNumberTab"]', 'a[data-toggle="tab"]:has-text("License")')
    TYPE_SELECT = "#LicenseSearch_LicenseSearchInput_LicenseTypeId"

    def check_routing(self, request: LookupRequest) -> Optional[LicenseResult]:
        if request.credential_type.upper() in self.NURSYS_ROUTED:
            return LicenseResult.failure(
                FailureKind.UNSUPPORTED_CREDENTIAL,
                f"Arizona {request.credential_type} licenses must be verified via "
                f"Nursys (https://www.nursys.com)",
                request.license_number,
            )
        return super().check_routing(request)

    async def prepare_form(self, page: Page, request: LookupRequest) -> None:
        tab = await locate(page, self.LICENSE_TAB)
        if tab is None:
            tabs = page.locator(".nav-tabs a, .nav-link")
            if await tabs.count() >= 2:
                tab = tabs.nth(1)
        if tab is not None:
            await tab.click()
            await page.wait_for_timeout(500)

        type_select = await locate(page, (self.TYPE_SELECT,))
        if type_select is None:
            return
        wanted = request.credential_type.upper()
        options = await type_select.locator("option").all_inner_texts()
        match = next((o.strip() for o in options if wanted in o.upper()), None)
        if match:
            await type_select.select_option(label=match)
            logger.debug(f"AZ: selected license type {match!r}")


class TexasScraper(StateScraper):
    """Texas keeps separate lookup pages for RNs and vocational nurses."""

    LVN_LOOKUP_URL = "https://www.bon.texas.gov/forms/lvnlookup.asp"

    def lookup_url_for(self, request: LookupRequest) -> str:
        if request.credential_type.upper() in ("LVN", "LPN"):
            return self.LVN_LOOKUP_URL
        return self.config.lookup_url
