# Shared types for state board license lookups
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional


class LicenseStatus(str, Enum):
    """Canonical license status, independent of how a board words it."""

    ACTIVE = "active"
    EXPIRED = "expired"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"
    REVOKED = "revoked"
    UNKNOWN = "unknown"


class FailureKind(str, Enum):
    NO_SCRAPER = "no_scraper"                    # jurisdiction not implemented
    UNSUPPORTED_CREDENTIAL = "unsupported_credential"
    SCRAPER_ERROR = "scraper_error"              # could not drive the page
    NOT_FOUND = "not_found"                      # board reported no match
    PARSE_ERROR = "parse_error"                  # page loaded, nothing usable
    VERIFICATION_FAILED = "verification_failed"  # anything unexpected


# Outcomes caused by automation rather than by the board's answer.
AUTOMATION_FAILURES = frozenset(
    {FailureKind.SCRAPER_ERROR, FailureKind.PARSE_ERROR, FailureKind.VERIFICATION_FAILED}
)


@dataclass(frozen=True)
class LookupRequest:
    """One verification attempt against a state board."""

    license_number: str
    state: str
    credential_type: str
    last_name: Optional[str] = None
    first_name: Optional[str] = None


@dataclass(frozen=True)
class LicenseResult:
    """Standardized result from any state board lookup."""

    success: bool = False
    license_number: str = ""
    license_holder_name: Optional[str] = None
    status: LicenseStatus = LicenseStatus.UNKNOWN
    expiration_date: Optional[date] = None
    issue_date: Optional[date] = None
    license_type: Optional[str] = None
    unencumbered: Optional[bool] = None
    raw_fields: dict[str, str] = field(default_factory=dict)
    failure_kind: Optional[FailureKind] = None
    failure_detail: Optional[str] = None

    @classmethod
    def failure(
        cls, kind: FailureKind, detail: str, license_number: str = ""
    ) -> "LicenseResult":
        return cls(
            success=False,
            license_number=license_number,
            failure_kind=kind,
            failure_detail=detail,
        )

    @property
    def is_automation_failure(self) -> bool:
        return self.failure_kind in AUTOMATION_FAILURES

    def to_dict(self) -> dict:
        """JSON-safe form for storage and display."""
        return {
            "success": self.success,
            "license_number": self.license_number,
            "license_holder_name": self.license_holder_name,
            "status": self.status.value,
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
            "issue_date": self.issue_date.isoformat() if self.issue_date else None,
            "license_type": self.license_type,
            "unencumbered": self.unencumbered,
            "raw_fields": dict(self.raw_fields),
            "failure_kind": self.failure_kind.value if self.failure_kind else None,
            "failure_detail": self.failure_detail,
        }


@dataclass(frozen=True)
class ScraperConfig:
    """Static description of one state board lookup site.

    Selector lists are tried in order by the field locator; the first
    visible match wins.
    """

    state: str
    state_name: str
    credential_types: frozenset[str]
    lookup_url: str
    timeout_ms: int = 45000
    region: str = ""
    license_selectors: tuple[str, ...] = ()
    last_name_selectors: tuple[str, ...] = ()
    submit_selectors: tuple[str, ...] = ()
    no_results_patterns: tuple[str, ...] = ()
    detail_link_selectors: tuple[str, ...] = ()
    profession_selectors: tuple[str, ...] = ()
    profession_keyword: str = "nurs"
    status_aliases: tuple[tuple[str, str], ...] = ()  # (board word, canonical word)
    discipline_keywords: tuple[str, ...] = ()

    def supports(self, credential_type: str) -> bool:
        return credential_type.upper().strip() in self.credential_types
