"""Board scrapers driven against fake pages. No browser is launched."""
from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

from playwright.async_api import Error as PlaywrightError

from scrapers import FailureKind, LicenseStatus, LookupRequest, get_scraper
from scrapers.states import TexasScraper
from tests.conftest import FakeElement, FakePage, session_for

WA_LICENSE = 'input[name*="credential" i]'
WA_LAST_NAME = 'input[name*="lastName" i]'
GENERIC_LICENSE = 'input[name*="license" i]'
SUBMIT = 'input[type="submit"]'

RESULT_HTML = """
<table>
  <tr><td>Name</td><td>JANE DOE</td></tr>
  <tr><td>License Type</td><td>Registered Nurse</td></tr>
  <tr><td>Status</td><td>Active</td></tr>
  <tr><td>Expiration Date</td><td>12/31/2027</td></tr>
  <tr><td>Issue Date</td><td>01/15/2015</td></tr>
</table>
"""
RESULT_TEXT = (
    "Name: JANE DOE\nLicense Type: Registered Nurse\nStatus: Active\n"
    "Expiration Date: 12/31/2027\nIssue Date: 01/15/2015"
)


def search_page(license_selector: str, html: str, text: str, with_submit: bool = True):
    """A search form whose submit swaps in the given results page."""
    page = FakePage()
    show = lambda: page.show(html, text)  # noqa: E731
    license_input = FakeElement(on_click=None if with_submit else show)
    page.elements[license_selector] = [license_input]
    if with_submit:
        page.elements[SUBMIT] = [FakeElement(on_click=show)]
    return page, license_input


def wa_request(**overrides) -> LookupRequest:
    values = dict(license_number="RN60123456", state="WA", credential_type="RN")
    values.update(overrides)
    return LookupRequest(**values)


class TestGenericLookup:
    async def test_active_license(self) -> None:
        page, license_input = search_page(WA_LICENSE, RESULT_HTML, RESULT_TEXT)
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())

        assert result.success
        assert result.status is LicenseStatus.ACTIVE
        assert result.expiration_date == date(2027, 12, 31)
        assert result.issue_date == date(2015, 1, 15)
        assert result.license_holder_name == "JANE DOE"
        assert result.license_type == "Registered Nurse"
        assert result.unencumbered is True
        assert result.raw_fields["Status"] == "Active"
        assert license_input.value == "RN60123456"
        assert page.visited == ["https://fortress.wa.gov/doh/providercredentialsearch"]

    async def test_last_name_entered_when_field_exists(self) -> None:
        page, _ = search_page(WA_LICENSE, RESULT_HTML, RESULT_TEXT)
        last_name = FakeElement()
        page.elements[WA_LAST_NAME] = [last_name]
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request(last_name="Doe"))
        assert result.success
        assert last_name.value == "Doe"

    async def test_discipline_marks_encumbered(self) -> None:
        text = RESULT_TEXT + "\nBoard Order issued 03/02/2021"
        page, _ = search_page(WA_LICENSE, RESULT_HTML, text)
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())
        assert result.success
        assert result.unencumbered is False

    async def test_no_results(self) -> None:
        page, _ = search_page(WA_LICENSE, "<p>Your search returned no results.</p>",
                              "Your search returned no results.")
        with patch("scrapers.base.browser_session", session_for(page)), \
                patch("scrapers.base.extract") as extract_mock:
            result = await get_scraper("WA").verify(wa_request())
        extract_mock.assert_not_called()
        assert not result.success
        assert result.failure_kind is FailureKind.NOT_FOUND
        assert result.failure_detail == "No license found matching the search criteria"
        assert result.license_number == "RN60123456"

    async def test_enter_submits_when_no_button(self) -> None:
        page, license_input = search_page(
            WA_LICENSE, "<p>No records found</p>", "No records found", with_submit=False
        )
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())
        assert license_input.pressed == ["Enter"]
        assert result.failure_kind is FailureKind.NOT_FOUND

    async def test_missing_license_field(self) -> None:
        page = FakePage()
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())
        assert result.failure_kind is FailureKind.SCRAPER_ERROR
        assert result.failure_detail == "Could not find license number field on the page"

    async def test_navigation_error(self) -> None:
        page = FakePage(goto_error=PlaywrightError("net::ERR_NAME_NOT_RESOLVED"))
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())
        assert result.failure_kind is FailureKind.SCRAPER_ERROR
        assert "ERR_NAME_NOT_RESOLVED" in result.failure_detail

    async def test_unreadable_results_page(self) -> None:
        page, _ = search_page(WA_LICENSE, "<p>Please try again later.</p>",
                              "Please try again later.")
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("WA").verify(wa_request())
        assert result.failure_kind is FailureKind.PARSE_ERROR
        assert result.failure_detail.startswith("No status, expiration or name")

    async def test_unsupported_credential_never_opens_browser(self) -> None:
        session = MagicMock(side_effect=AssertionError("browser launched"))
        with patch("scrapers.base.browser_session", session):
            result = await get_scraper("WA").verify(wa_request(credential_type="DDS"))
        assert result.failure_kind is FailureKind.UNSUPPORTED_CREDENTIAL
        session.assert_not_called()


class TestJurisdictionDifferences:
    async def test_board_specific_status_wording(self) -> None:
        html = RESULT_HTML.replace("<td>Active</td>", "<td>Clear</td>")
        text = RESULT_TEXT.replace("Status: Active", "Status: Clear")
        page, _ = search_page(GENERIC_LICENSE, html, text)
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("CA").verify(
                LookupRequest("95012345", "CA", "RN")
            )
        assert result.status is LicenseStatus.ACTIVE

    async def test_profession_dropdown_and_detail_link(self) -> None:
        page = FakePage()
        dropdown = FakeElement(options=(" -- Select -- ", "Architects", "Nursing Board"))
        detail = FakeElement(on_click=lambda: page.show(RESULT_HTML, RESULT_TEXT))
        page.elements = {
            'select[name*="profession" i]': [dropdown],
            GENERIC_LICENSE: [FakeElement()],
            SUBMIT: [FakeElement(on_click=lambda: page.show(
                "<table><tr><td>JANE DOE</td><td>view</td></tr></table>",
                "JANE DOE view",
            ))],
            'a[href*="detail" i]': [detail],
        }
        with patch("scrapers.base.browser_session", session_for(page)):
            result = await get_scraper("AK").verify(LookupRequest("RNR12345", "AK", "RN"))

        assert dropdown.selected == "Nursing Board"
        assert detail.clicked == 1
        assert result.success
        assert result.expiration_date == date(2027, 12, 31)

    async def test_arizona_routes_nurses_to_nursys(self) -> None:
        session = MagicMock(side_effect=AssertionError("browser launched"))
        with patch("scrapers.base.browser_session", session):
            result = await get_scraper("AZ").verify(LookupRequest("RN123", "AZ", "RN"))
        assert result.failure_kind is FailureKind.UNSUPPORTED_CREDENTIAL
        assert "Nursys" in result.failure_detail
        session.assert_not_called()

    async def test_texas_vocational_nurses_use_lvn_page(self) -> None:
        page = FakePage()
        with patch("scrapers.base.browser_session", session_for(page)):
            await get_scraper("TX").verify(LookupRequest("123456", "TX", "LVN"))
            await get_scraper("TX").verify(LookupRequest("654321", "TX", "RN"))
        assert page.visited == [
            TexasScraper.LVN_LOOKUP_URL,
            "https://www.bon.texas.gov/forms/rnlookup.asp",
        ]
