"""Shared fixtures: a throwaway database and an in-process Playwright page."""
from __future__ import annotations

import os

# Settings are read at import time; required keys must exist first
os.environ.setdefault("DISCORD_TOKEN", "test-token")
os.environ.setdefault("GUILD_ID", "1")

from contextlib import asynccontextmanager
from datetime import date, timedelta
from typing import Callable, Optional

import aiosqlite
import pytest
from playwright.async_api import Error as PlaywrightError

from db import LicenseDB


# ---------------------------------------------------------------------------
# Fake Playwright page
# ---------------------------------------------------------------------------
class FakeElement:
    """One matched DOM element. Records what the scraper did to it."""

    def __init__(
        self,
        visible: bool = True,
        on_click: Optional[Callable[[], None]] = None,
        options: tuple[str, ...] = (),
    ):
        self.visible = visible
        self.on_click = on_click
        self.options = list(options)
        self.value = ""
        self.clicked = 0
        self.pressed: list[str] = []
        self.selected: Optional[str] = None

    async def is_visible(self) -> bool:
        return self.visible

    async def fill(self, value: str) -> None:
        self.value = value

    async def press_sequentially(self, text: str, delay: float = 0) -> None:
        self.value += text

    async def press(self, key: str) -> None:
        self.pressed.append(key)
        if key == "Enter" and self.on_click:
            self.on_click()

    async def click(self) -> None:
        self.clicked += 1
        if self.on_click:
            self.on_click()

    async def select_option(self, label: str) -> None:
        self.selected = label

    def locator(self, selector: str) -> "FakeOptions":
        return FakeOptions(self.options)


class FakeOptions:
    def __init__(self, options: list[str]):
        self._options = options

    async def all_inner_texts(self) -> list[str]:
        return list(self._options)


class FakeLocator:
    def __init__(self, elements: list[FakeElement], error: Optional[str] = None):
        self._elements = elements
        self._error = error

    async def count(self) -> int:
        if self._error:
            raise PlaywrightError(self._error)
        return len(self._elements)

    def nth(self, i: int) -> FakeElement:
        return self._elements[i]


class FakePage:
    """Selector-keyed stand-in for ``playwright.async_api.Page``.

    Only exact selector strings registered in ``elements`` match anything.
    """

    def __init__(
        self,
        elements: Optional[dict[str, list[FakeElement]]] = None,
        html: str = "<html><body></body></html>",
        text: str = "",
        goto_error: Optional[Exception] = None,
        broken_selectors: tuple[str, ...] = (),
    ):
        self.elements = elements or {}
        self.html = html
        self.text = text
        self.goto_error = goto_error
        self.broken_selectors = broken_selectors
        self.visited: list[str] = []

    def show(self, html: str, text: str) -> None:
        self.html = html
        self.text = text

    def locator(self, selector: str) -> FakeLocator:
        if selector in self.broken_selectors:
            return FakeLocator([], error=f"Unsupported selector: {selector}")
        return FakeLocator(self.elements.get(selector, []))

    async def goto(self, url: str, **kwargs) -> None:
        self.visited.append(url)
        if self.goto_error:
            raise self.goto_error

    async def wait_for_load_state(self, state: str = "load", **kwargs) -> None:
        return None

    async def wait_for_timeout(self, ms: float) -> None:
        return None

    async def inner_text(self, selector: str) -> str:
        return self.text

    async def content(self) -> str:
        return self.html


def session_for(page: FakePage):
    """Drop-in replacement for ``scrapers.base.browser_session``."""

    @asynccontextmanager
    async def _session(timeout_ms: int):
        yield page

    return _session


@pytest.fixture
def fake_session():
    return session_for


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
async def db(tmp_path) -> LicenseDB:
    database = LicenseDB(str(tmp_path / "compliance.db"))
    await database.init()
    return database


@pytest.fixture
def seed(db):
    """Insert a person + license; returns the license id."""

    async def _seed(
        license_id: str,
        state: str = "WA",
        credential_type: str = "RN",
        license_number: Optional[str] = None,
        status: str = "active",
        expires_in_days: Optional[int] = 365,
        enrolled: bool = False,
        archived: bool = False,
    ) -> str:
        expiration = (
            (date.today() + timedelta(days=expires_in_days)).isoformat()
            if expires_in_days is not None
            else None
        )
        async with aiosqlite.connect(db._path()) as conn:
            await conn.execute(
                "INSERT OR IGNORE INTO people (id, first_name, last_name) VALUES (?, ?, ?)",
                (f"p-{license_id}", "Jane", "Doe"),
            )
            await conn.execute(
                """INSERT INTO licenses
                   (id, person_id, state, license_number, credential_type,
                    status, expiration_date, archived)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (license_id, f"p-{license_id}", state, license_number or f"N{license_id}",
                 credential_type, status, expiration, int(archived)),
            )
            if enrolled:
                await conn.execute(
                    "INSERT INTO nursys_enrollments (id, license_id, active) VALUES (?, ?, 1)",
                    (f"e-{license_id}", license_id),
                )
            await conn.commit()
        return license_id

    return _seed


@pytest.fixture
def count_rows(db):
    async def _count(table: str, where: str = "", params: tuple = ()) -> int:
        sql = f"SELECT COUNT(*) FROM {table}" + (f" WHERE {where}" if where else "")
        async with aiosqlite.connect(db._path()) as conn:
            async with conn.execute(sql, params) as cursor:
                row = await cursor.fetchone()
                return row[0]

    return _count
