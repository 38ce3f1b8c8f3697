# Mapping lookup results onto the dashboard's license / verification vocabulary
import json
from datetime import date, datetime, timezone
from typing import Any, Optional

from scrapers import FailureKind, LicenseResult, LicenseStatus

# Board status -> dashboard license status
_LICENSE_STATUS = {
    LicenseStatus.ACTIVE: "active",
    LicenseStatus.EXPIRED: "expired",
    LicenseStatus.INACTIVE: "expired",
    LicenseStatus.SUSPENDED: "flagged",
    LicenseStatus.REVOKED: "flagged",
}


def map_license_status(status: LicenseStatus) -> str:
    return _LICENSE_STATUS.get(status, "needs_manual")


def map_verification_result(result: LicenseResult) -> str:
    """Value for the verifications.result column."""
    if not result.success:
        return "not_found" if result.failure_kind is FailureKind.NOT_FOUND else "error"
    if result.status is LicenseStatus.ACTIVE:
        return "verified"
    if result.status is LicenseStatus.EXPIRED:
        return "expired"
    return "pending"


def is_clean(result: LicenseResult, today: Optional[date] = None) -> bool:
    """True when no human needs to look at this license.

    Active, no discipline signal, and an established expiration that has
    not passed. A missing expiration is "not established", so it is not clean.
    """
    return (
        result.success
        and result.status is LicenseStatus.ACTIVE
        and result.unencumbered is True
        and result.expiration_date is not None
        and result.expiration_date >= (today or date.today())
    )


def license_updates(result: LicenseResult, state: str) -> dict[str, Any]:
    """Fields to write back to the license after a successful lookup."""
    now = datetime.now(timezone.utc).isoformat()
    updates: dict[str, Any] = {
        "last_verified_at": now,
        "status": map_license_status(result.status),
        "synced_data": _synced_json(result, state, now),
        "synced_at": now,
    }
    if result.expiration_date:
        updates["expiration_date"] = result.expiration_date.isoformat()
    if result.license_holder_name:
        updates["licensee_name"] = result.license_holder_name
    return updates


def _synced_json(result: LicenseResult, state: str, synced_at: str) -> str:
    data = result.to_dict()
    data.update(source=state, synced_at=synced_at)
    return json.dumps(data)


def describe_failure(result: LicenseResult) -> str:
    kind = result.failure_kind.value if result.failure_kind else "unknown"
    return f"{kind}: {result.failure_detail or 'no detail'}"
