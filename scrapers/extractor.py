# Result extractor — layered label/value scraping of a rendered results page
#
# Four strategies run in fixed order against the same map. A strategy only
# fills labels that are still missing, so a precise early match (a table
# cell) is never overwritten by a noisier later one (a line of free text).

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag
from playwright.async_api import Page

logger = logging.getLogger(__name__)

_LABEL_TAIL_RE = re.compile(r"[:\s]+$")
_SPACE_RE = re.compile(r"\s+")
_COLON_VALUE_RE = re.compile(r":\s*(.+)$")

BLOCK_CONTAINERS = ".field, .form-group, .detail-row, .info-row, .license-detail"
BLOCK_LABELS = "label, .label, .field-label, strong, b"
BLOCK_VALUES = ".value, .field-value, span:not(.label):not(.field-label)"

# Free-text labels, checked against every line of visible text.
LINE_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"status", re.IGNORECASE), "Status"),
    (re.compile(r"expir", re.IGNORECASE), "Expiration"),
    (re.compile(r"\bname\b", re.IGNORECASE), "Name"),
    (re.compile(r"license\s*(?:number|#|no\b)", re.IGNORECASE), "License Number"),
    (re.compile(r"credential", re.IGNORECASE), "Credential"),
    (re.compile(r"issue", re.IGNORECASE), "Issue Date"),
    (re.compile(r"disciplin|action", re.IGNORECASE), "Discipline"),
    (re.compile(r"\btype\b", re.IGNORECASE), "License Type"),
]


def _clean(text: Optional[str]) -> str:
    return _SPACE_RE.sub(" ", text or "").strip()


def _label(text: Optional[str]) -> str:
    return _LABEL_TAIL_RE.sub("", _clean(text))


def _put(fields: dict[str, str], label: str, value: str) -> bool:
    """First writer wins."""
    if not label or not value or label in fields:
        return False
    fields[label] = value
    return True


def _strip_invisible(soup: BeautifulSoup) -> None:
    for el in soup(["script", "style", "noscript", "template", "head"]):
        el.decompose()
    for el in soup.select('[hidden], [style*="display:none" i], [style*="display: none" i]'):
        el.decompose()


def scan_tables(soup: BeautifulSoup, fields: dict[str, str]) -> None:
    for row in soup.find_all("tr"):
        cells = row.find_all(["td", "th"], recursive=False)
        if len(cells) < 2:
            continue
        label = _label(cells[0].get_text(" "))
        value = _clean(cells[1].get_text(" "))
        if label != value:
            _put(fields, label, value)


def scan_definition_lists(soup: BeautifulSoup, fields: dict[str, str]) -> None:
    for dt in soup.find_all("dt"):
        dd = dt.find_next_sibling()
        if dd is None or dd.name != "dd":
            continue
        _put(fields, _label(dt.get_text(" ")), _clean(dd.get_text(" ")))


def scan_labeled_blocks(soup: BeautifulSoup, fields: dict[str, str]) -> None:
    for block in soup.select(BLOCK_CONTAINERS):
        label_el = block.select_one(BLOCK_LABELS)
        if label_el is None:
            continue
        value_el = block.select_one(BLOCK_VALUES)
        if value_el is None or value_el is label_el or label_el in value_el.parents:
            # Bootstrap form-groups: <label/> followed by a value <div/>
            value_el = label_el.find_next_sibling()
        if not isinstance(value_el, Tag):
            continue
        _put(fields, _label(label_el.get_text(" ")), _clean(value_el.get_text(" ")))


def scan_text_lines(text: str, fields: dict[str, str]) -> None:
    lines = [line.strip() for line in (text or "").splitlines()]
    lines = [line for line in lines if line]

    for i, line in enumerate(lines):
        # A line labels one field: "License Status: Expired" is not an expiration
        key = next((k for pattern, k in LINE_PATTERNS if pattern.search(line)), None)
        if key is None or key in fields:
            continue
        m = _COLON_VALUE_RE.search(line)
        if m:
            _put(fields, key, _clean(m.group(1)))
        elif i + 1 < len(lines):
            _put(fields, key, lines[i + 1])


def extract_fields(html: str, text: str) -> dict[str, str]:
    """Merge every strategy's findings into one insertion-ordered map."""
    soup = BeautifulSoup(html or "", "html.parser")
    _strip_invisible(soup)

    fields: dict[str, str] = {}
    scan_tables(soup, fields)
    scan_definition_lists(soup, fields)
    scan_labeled_blocks(soup, fields)
    scan_text_lines(text, fields)
    return fields


async def page_text(page: Page) -> str:
    """Visible text of the page body."""
    return await page.inner_text("body")


async def extract(page: Page) -> dict[str, str]:
    html = await page.content()
    text = await page_text(page)
    fields = extract_fields(html, text)
    logger.debug(f"Extracted {len(fields)} field(s): {list(fields)}")
    return fields


def pick(fields: dict[str, str], *labels: str) -> Optional[str]:
    """First value whose label matches one of ``labels``, case-insensitively."""
    lowered = {k.lower(): v for k, v in reversed(list(fields.items()))}
    for label in labels:
        value = lowered.get(label.lower())
        if value:
            return value
    return None
