# Per-state lookup site table
#
# Everything that differs between boards and is pure data lives here:
# URL, credential set, and the ordered selector strategies for each field.
# Boards that need extra steps get a subclass in scrapers/states.py.

from scrapers.locator import by_id, by_name, by_placeholder, by_text, by_type, by_value
from scrapers.models import ScraperConfig

# Most boards render plain ASP.NET / Bootstrap forms; these cover them.
COMMON_LAST_NAME = (
    by_name("lastName"),
    by_name("last_name"),
    by_name("last"),
    by_id("lastName"),
    by_id("last"),
    "#txtLastName",
    "#LastName",
)

COMMON_SUBMIT = (
    by_type("submit"),
    'button[type="submit"]',
    by_value("Search"),
    by_value("Verify"),
    by_text("Search"),
    by_text("Verify"),
    "#btnSearch",
    "#btnVerify",
    ".search-button",
    ".btn-search",
    "button.btn-primary",
)

GENERIC_LICENSE = (
    by_name("license"),
    by_name("credential"),
    by_name("number"),
    by_id("license"),
    by_id("credential"),
    by_placeholder("license"),
    by_placeholder("number"),
    "#txtLicenseNumber",
    "#LicenseNumber",
    by_type("text"),
)

DETAIL_LINKS = (
    'a[href*="detail" i]',
    'a[href*="view" i]',
    ".result-row a",
    "table tbody tr a",
)

NURSING_BOARD_DROPDOWNS = (
    by_name("profession", "select"),
    by_name("board", "select"),
    by_id("profession", "select"),
    by_id("board", "select"),
    "#ddlProfession",
    "#ddlBoard",
)

JURISDICTIONS: dict[str, ScraperConfig] = {
    # ── Pacific Northwest ──
    "WA": ScraperConfig(
        state="WA",
        state_name="Washington",
        region="Pacific Northwest",
        credential_types=frozenset({"RN", "LPN", "CNA", "ARNP", "LNA"}),
        lookup_url="https://fortress.wa.gov/doh/providercredentialsearch",
        license_selectors=(
            by_name("credential"),
            by_name("licenseNumber"),
            by_id("credential"),
            by_id("license"),
            by_placeholder("credential"),
            by_placeholder("license"),
            "#txtCredential",
            "#CredentialNumber",
            by_type("text"),
        ),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT,
    ),
    "OR": ScraperConfig(
        state="OR",
        state_name="Oregon",
        region="Pacific Northwest",
        credential_types=frozenset({"RN", "LPN", "CNA", "NP", "CNS", "CRNA", "CNM"}),
        lookup_url="https://osbn.oregon.gov/OSBNVerification/",
        license_selectors=(
            by_name("licenseNumber"),
            by_name("license"),
            by_id("license"),
            by_id("credential"),
            by_placeholder("license"),
            "#LicenseNumber",
            by_type("text"),
        ),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT,
        no_results_patterns=(r"no\s*license",),
    ),
    "ID": ScraperConfig(
        state="ID",
        state_name="Idaho",
        region="Pacific Northwest",
        credential_types=frozenset({"RN", "LPN", "CNA", "APRN", "MA-C"}),
        lookup_url="https://ibn.idaho.gov/IBNPortal/LicenseVerification.aspx",
        license_selectors=(
            by_name("LicenseNumber"),
            by_name("license"),
            by_id("LicenseNumber"),
            by_id("license"),
            by_id("credential"),
            by_placeholder("license"),
            "#txtLicenseNumber",
            by_type("text"),
        ),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT + (by_value("Find"),),
    ),
    "AK": ScraperConfig(
        state="AK",
        state_name="Alaska",
        region="Pacific Northwest",
        credential_types=frozenset({"RN", "LPN", "CNA", "APRN", "NP"}),
        lookup_url="https://www.commerce.alaska.gov/cbp/main/search/professional",
        license_selectors=GENERIC_LICENSE,
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT + ('a.btn[href*="search" i]',),
        profession_selectors=NURSING_BOARD_DROPDOWNS,
        detail_link_selectors=DETAIL_LINKS,
    ),
    "MT": ScraperConfig(
        state="MT",
        state_name="Montana",
        region="Pacific Northwest",
        credential_types=frozenset({"RN", "LPN", "CNA", "APRN", "NP"}),
        lookup_url="https://ebiz.mt.gov/publicportal/mt/dlibsdlv/licenseesearch.aspx",
        license_selectors=GENERIC_LICENSE,
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT + (by_value("Find"), 'a.btn[href*="search" i]'),
        profession_selectors=NURSING_BOARD_DROPDOWNS + (by_name("license", "select"),),
        detail_link_selectors=DETAIL_LINKS,
    ),
    # ── Southwest ──
    "AZ": ScraperConfig(
        state="AZ",
        state_name="Arizona",
        region="Southwest",
        credential_types=frozenset({"CNA", "LNA", "UCNA", "CMA", "LHA", "SN"}),
        lookup_url="https://azbn.boardsofnursing.org/licenselookup",
        license_selectors=(
            "#LicenseSearch_LicenseSearchInput_LicenseNumber",
            by_id("LicenseNumber"),
            by_name("LicenseNumber"),
        ),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=('button[type="submit"]', by_type("submit"), by_text("Search"), ".btn-primary"),
        detail_link_selectors=(".search-result a", ".result-row a", "tr[data-id] a", ".card a"),
    ),
    "CA": ScraperConfig(
        state="CA",
        state_name="California",
        region="Southwest",
        # CNAs are certified by CDPH, not the Board of Registered Nursing
        credential_types=frozenset({"RN", "NP", "CNM", "CRNA", "CNS", "PHN"}),
        lookup_url="https://www.rn.ca.gov/verification.shtml",
        license_selectors=GENERIC_LICENSE + (by_type("search"),),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT + (by_value("Look"), "#search"),
        no_results_patterns=(r"no\s*license", r"no\s*data"),
        detail_link_selectors=DETAIL_LINKS,
        status_aliases=(("clear", "active"), ("delinquent", "inactive")),
    ),
    "TX": ScraperConfig(
        state="TX",
        state_name="Texas",
        region="Southwest",
        credential_types=frozenset({"RN", "LVN", "LPN", "APRN"}),
        lookup_url="https://www.bon.texas.gov/forms/rnlookup.asp",
        license_selectors=(
            'input[name="lic_no"]',
            by_name("license"),
            by_id("lic"),
            by_type("text"),
        ),
        last_name_selectors=('input[name="lname"]',) + COMMON_LAST_NAME,
        submit_selectors=COMMON_SUBMIT,
    ),
    # ── Southeast ──
    "FL": ScraperConfig(
        state="FL",
        state_name="Florida",
        region="Southeast",
        credential_types=frozenset({"RN", "LPN", "ARNP", "APRN", "CNA"}),
        lookup_url="https://mqa-internet.doh.state.fl.us/MQASearchServices/Home",
        license_selectors=(
            by_name("LicenseNumber"),
            by_id("License"),
            by_placeholder("license"),
            "#LicenseNumber",
            by_type("text"),
        ),
        last_name_selectors=COMMON_LAST_NAME,
        submit_selectors=('button[type="submit"]', by_type("submit"), by_text("Search"), ".btn-primary", "#searchBtn"),
        status_aliases=(("clear", "active"), ("delinquent", "expired")),
        discipline_keywords=("emergency order",),
    ),
    "NC": ScraperConfig(
        state="NC",
        state_name="North Carolina",
        region="Southeast",
        credential_types=frozenset({"RN", "LPN", "APRN", "NP"}),
        lookup_url="https://portal.ncbon.com/LicenseVerification/Search.aspx",
        license_selectors=(by_id("License"), by_name("license"), by_type("text")),
        last_name_selectors=(by_id("Last"), by_name("last")),
        submit_selectors=(by_type("submit"), 'button[type="submit"]', by_value("Search")),
    ),
    # ── Northeast ──
    "NY": ScraperConfig(
        state="NY",
        state_name="New York",
        region="Northeast",
        credential_types=frozenset({"RN", "LPN", "NP", "APRN"}),
        lookup_url="http://www.op.nysed.gov/opsearches.htm",
        license_selectors=(
            'input[name="LicNo"]',
            by_name("licenseNo"),
            by_name("license"),
            by_id("lic"),
            by_type("text"),
        ),
        last_name_selectors=('input[name="LastName"]', 'input[name="lname"]', by_id("last")),
        submit_selectors=(by_type("submit"), 'button[type="submit"]', by_value("Search")),
        status_aliases=(("registered", "active"),),
        discipline_keywords=("misconduct",),
    ),
}

REGIONS = ("Pacific Northwest", "Southwest", "Southeast", "Northeast")
