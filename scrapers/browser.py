# Headless browser sessions — one exclusive Chromium per lookup
#
# Sessions are never pooled: typed form state and cookies from one lookup
# must not leak into the next.

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Page, async_playwright

from config import settings

logger = logging.getLogger(__name__)

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]


@asynccontextmanager
async def browser_session(timeout_ms: int) -> AsyncIterator[Page]:
    """Launch a private browser, yield a page, always tear it down."""
    async with async_playwright() as pw:
        browser = await pw.chromium.launch(
            headless=settings.BROWSER_HEADLESS, args=LAUNCH_ARGS
        )
        try:
            context = await browser.new_context(
                user_agent=settings.BROWSER_USER_AGENT,
                viewport={"width": 1400, "height": 900},
            )

            # Images, media and fonts never carry license data
            async def _route(route, request):
                if request.resource_type in ("image", "media", "font"):
                    await route.abort()
                else:
                    await route.continue_()

            await context.route("**/*", _route)
            page = await context.new_page()
            page.set_default_timeout(timeout_ms)
            yield page
        finally:
            await browser.close()
            logger.debug("Browser session closed")
