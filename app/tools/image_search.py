from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol
from urllib.parse import quote_plus, urlparse

from loguru import logger

from app.config import settings

# Runs in the page: report every image's source and rendered size.
IMAGE_GEOMETRY_JS = """
imgs => imgs.map(img => ({
    src: img.currentSrc || img.src || "",
    width: img.width || 0,
    height: img.height || 0,
}))
"""


@dataclass(frozen=True, slots=True)
class ImageCandidate:
    src: str
    width: int
    height: int


class ImageSearchSession(Protocol):
    async def find_image(self, search_query: str) -> str | None: ...


def is_usable_image_source(src: str) -> bool:
    """http(s) URLs and inline data:image thumbnails; anything else is discarded."""
    if src.startswith("data:image/"):
        return True
    try:
        parsed = urlparse(src)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def build_search_query(title: str, artist: str, keywords: str | None = None) -> str:
    extra = settings.image_search_keywords if keywords is None else keywords
    return " ".join(part for part in (title.strip(), artist.strip(), extra.strip()) if part)


def build_search_url(search_query: str, template: str | None = None) -> str:
    return (template or settings.image_search_url_template).format(query=quote_plus(search_query))


def select_image_url(
    images: list[ImageCandidate],
    *,
    min_dimension: int | None = None,
    result_index: int | None = None,
) -> str | None:
    """Pick an artwork image from the page's images.

    Icons and logos are dropped by size; the configured index then skips the
    slot the search provider tends to fill with its own logo. This is a
    provider-specific heuristic and may pick the wrong image elsewhere.
    """
    floor = settings.image_min_dimension if min_dimension is None else min_dimension
    index = settings.image_result_index if result_index is None else result_index

    sized = [img for img in images if img.width > floor and img.height > floor]
    if index >= len(sized):
        return None
    src = sized[index].src
    return src or None


def _to_candidates(raw: Any) -> list[ImageCandidate]:
    if not isinstance(raw, list):
        return []
    candidates: list[ImageCandidate] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            width = int(item.get("width") or 0)
            height = int(item.get("height") or 0)
        except (TypeError, ValueError):
            continue
        candidates.append(ImageCandidate(src=str(item.get("src") or ""), width=width, height=height))
    return candidates


class PlaywrightImageSearch:
    """Image lookups that share one browser, with one page per lookup."""

    def __init__(
        self,
        browser: Any,
        *,
        navigation_timeout_ms: int | None = None,
        selector_timeout_ms: int | None = None,
    ):
        self._browser = browser
        self.navigation_timeout_ms = navigation_timeout_ms or settings.image_search_navigation_timeout_ms
        self.selector_timeout_ms = selector_timeout_ms or settings.image_search_selector_timeout_ms

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Any]:
        page = await self._browser.new_page()
        try:
            yield page
        finally:
            await page.close()

    async def find_image(self, search_query: str) -> str | None:
        url = build_search_url(search_query)
        async with self.page() as page:
            await page.goto(url, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
            await page.wait_for_selector("img", timeout=self.selector_timeout_ms)
            raw = await page.eval_on_selector_all("img", IMAGE_GEOMETRY_JS)

        image_url = select_image_url(_to_candidates(raw))
        if image_url and not is_usable_image_source(image_url):
            logger.debug(f"Discarding unusable image source for '{search_query}': {image_url[:80]}")
            return None
        return image_url


@asynccontextmanager
async def open_image_search(headless: bool | None = None) -> AsyncIterator[PlaywrightImageSearch]:
    """Launch one Chromium browser for a batch of lookups and always close it."""
    try:
        from playwright.async_api import async_playwright
    except ImportError as exc:  # pragma: no cover - depends on installed browser tooling
        raise RuntimeError("Playwright is not installed") from exc

    async with async_playwright() as playwright:  # pragma: no cover - integration behavior
        browser = await playwright.chromium.launch(
            headless=settings.browser_headless if headless is None else headless
        )
        try:
            yield PlaywrightImageSearch(browser)
        finally:
            await browser.close()
