"""Dispatch of lookups to state scrapers."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

from scrapers import (
    FailureKind,
    LookupRequest,
    get_available_states,
    get_scraper,
    get_states_by_region,
    has_scraper_for_state,
    lookup_timeout,
    verify_license,
)


class TestCoverage:
    def test_available_states_sorted(self) -> None:
        states = get_available_states()
        assert states == sorted(states)
        assert {"WA", "CA", "TX", "AZ", "FL", "NY"} <= set(states)

    def test_state_lookup_is_case_insensitive(self) -> None:
        assert has_scraper_for_state(" wa ")
        assert get_scraper("wa") is get_scraper("WA")
        assert get_scraper("ZZ") is None

    def test_regions(self) -> None:
        regions = get_states_by_region()
        assert "WA" in regions["Pacific Northwest"]
        assert "TX" in regions["Southwest"]
        assert all(codes == sorted(codes) for codes in regions.values())

    def test_lookup_timeout(self) -> None:
        assert lookup_timeout("WA") == get_scraper("WA").config.timeout_ms / 1000
        assert lookup_timeout("ZZ") is None


class TestVerifyLicense:
    async def test_uncovered_state(self) -> None:
        session = MagicMock(side_effect=AssertionError("browser launched"))
        with patch("scrapers.base.browser_session", session):
            result = await verify_license(LookupRequest("123", "ZZ", "RN"))
        assert result.failure_kind is FailureKind.NO_SCRAPER
        assert result.failure_detail.startswith("No scraper available for state: ZZ")
        assert "WA" in result.failure_detail
        session.assert_not_called()

    async def test_unsupported_credential(self) -> None:
        result = await verify_license(LookupRequest("123", "CA", "CNA"))
        assert result.failure_kind is FailureKind.UNSUPPORTED_CREDENTIAL
        assert "Supported types" in result.failure_detail

    async def test_unexpected_exception_is_wrapped(self) -> None:
        scraper = get_scraper("WA")
        with patch.object(scraper, "verify", AsyncMock(side_effect=RuntimeError("boom"))):
            result = await verify_license(LookupRequest("123", "WA", "RN"))
        assert not result.success
        assert result.failure_kind is FailureKind.VERIFICATION_FAILED
        assert result.failure_detail == "boom"
        assert result.license_number == "123"

    async def test_exception_without_message_uses_type_name(self) -> None:
        scraper = get_scraper("WA")
        with patch.object(scraper, "verify", AsyncMock(side_effect=KeyError())):
            result = await verify_license(LookupRequest("123", "WA", "RN"))
        assert result.failure_detail == "KeyError"
