# Field locator — finds form controls on pages with no stable markup contract
#
# A strategy is a CSS selector. The helpers below build the case-insensitive
# attribute selectors the jurisdiction tables are written in.

import logging
from typing import Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

logger = logging.getLogger(__name__)

# Candidates checked per strategy before moving on
MAX_CANDIDATES = 12


def by_name(fragment: str, tag: str = "input") -> str:
    return f'{tag}[name*="{fragment}" i]'


def by_id(fragment: str, tag: str = "input") -> str:
    return f'{tag}[id*="{fragment}" i]'


def by_placeholder(fragment: str, tag: str = "input") -> str:
    return f'{tag}[placeholder*="{fragment}" i]'


def by_type(input_type: str) -> str:
    return f'input[type="{input_type}"]'


def by_value(fragment: str, tag: str = "input") -> str:
    return f'{tag}[value*="{fragment}" i]'


def by_text(text: str, tag: str = "button") -> str:
    return f'{tag}:has-text("{text}")'


async def locate(page: Page, strategies: Sequence[str]) -> Optional[Locator]:
    """Return the first visible element matched by the strategies, in order.

    Returns None when nothing visible matches. Callers report that as a
    lookup failure; it is never raised.
    """
    for selector in strategies:
        try:
            matches = page.locator(selector)
            count = await matches.count()
            for i in range(min(count, MAX_CANDIDATES)):
                candidate = matches.nth(i)
                if await candidate.is_visible():
                    logger.debug(f"Located {selector!r} (match {i + 1} of {count})")
                    return candidate
        except PlaywrightError as e:
            logger.debug(f"Selector {selector!r} rejected: {e}")
            continue
    return None
