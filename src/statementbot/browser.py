"""Lifecycle controller for a single Playwright browser page.

A :class:`BrowserSession` moves through ``new -> starting -> started -> closed``.
Closing sets :attr:`BrowserSession.closed_event` exactly once; every pending
selector wait and every background watcher observes it and gives up instead
of hanging until the remote page disappears. Waits never time out on their
own, so closing the session is the only way to abandon one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, ClassVar, NamedTuple, Optional, TypeVar, Union

from playwright.async_api import Browser, Download, ElementHandle, Page

from .errors import MatchCountError, SessionClosedError, StateError

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_ELEMENT_WITH_TEXT_JS = """
([selector, text]) => {
  const wanted = text.trim().toLowerCase();
  for (const element of document.querySelectorAll(selector)) {
    if (typeof element.textContent === "string"
        && element.textContent.trim().toLowerCase() === wanted) {
      return true;
    }
  }
  return false;
}
"""


class ElementText(NamedTuple):
    element: ElementHandle
    text: str


# ---------------------------------------------------------------------------
# Lifecycle states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _New:
    name: ClassVar[str] = "new"


@dataclass(frozen=True)
class _Starting:
    name: ClassVar[str] = "starting"
    page_task: asyncio.Future


@dataclass(frozen=True)
class _Started:
    name: ClassVar[str] = "started"
    page: Page


@dataclass(frozen=True)
class _Closed:
    name: ClassVar[str] = "closed"
    teardown: Optional[asyncio.Future]


_State = Union[_New, _Starting, _Started, _Closed]


class BrowserSession:
    """Owns one browser page from creation to teardown."""

    def __init__(self, download_dir: Optional[Path] = None) -> None:
        self.download_dir = download_dir
        self.closed_event = asyncio.Event()
        self._state: _State = _New()
        self._watchers: set[asyncio.Future] = set()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> str:
        return self._state.name

    @property
    def page(self) -> Page:
        if not isinstance(self._state, _Started):
            raise StateError("The browser page", _Started.name, self._state.name)
        return self._state.page

    async def start(self, browser: Browser) -> None:
        """Create the page this session controls."""
        if not isinstance(self._state, _New):
            raise StateError("start()", _New.name, self._state.name)

        page_task = asyncio.ensure_future(browser.new_page(no_viewport=True))
        starting = _Starting(page_task=page_task)
        self._state = starting
        page = await page_task

        if self._state is not starting:
            # close() took ownership of the page while it was being created
            raise SessionClosedError("browser session was closed while its page was being created")

        self._state = _Started(page=page)
        if self.download_dir is not None:
            page.on("download", self._on_download)
        logger.info("Browser page created")

    async def close(self) -> None:
        """Close the page (if any); safe to call in any state, any number of times."""
        self._state = self._transition_to_closed()
        if self._state.teardown is not None:
            await asyncio.shield(self._state.teardown)

    def _transition_to_closed(self) -> _Closed:
        self.closed_event.set()

        state = self._state
        if isinstance(state, _New):
            return _Closed(teardown=None)
        if isinstance(state, _Starting):
            return _Closed(teardown=asyncio.ensure_future(_close_pending_page(state.page_task)))
        if isinstance(state, _Started):
            return _Closed(teardown=asyncio.ensure_future(_close_page(state.page)))
        return state

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def navigate(self, url: str) -> None:
        """Go to *url* and wait for the load event and network idle."""
        page = self.page
        logger.info("Navigating browser to URL: %s", url)
        await page.goto(url, timeout=0, wait_until="load")
        await page.wait_for_load_state("networkidle", timeout=0)

    async def wait_until_visible(self, selector: str) -> None:
        page = self.page
        logger.info('Waiting for element "%s" to become visible', selector)
        await self._until_closed(page.wait_for_selector(selector, state="visible", timeout=0))
        logger.info('Element "%s" is now visible; continuing.', selector)

    async def wait_until_visible_by_id(self, element_id: str) -> None:
        await self.wait_until_visible(_selector_for_id(element_id))

    async def wait_for_element_with_text(self, selector: str, text: str) -> None:
        """Wait until some element matching *selector* has the text *text*.

        The comparison ignores surrounding whitespace and case. Visibility is
        not considered.
        """
        page = self.page
        logger.info('Waiting for element matching selector "%s" with text content: "%s"', selector, text)
        await self._until_closed(
            page.wait_for_function(_ELEMENT_WITH_TEXT_JS, arg=[selector, text], timeout=0)
        )

    async def type_into(self, element_id: str, text: str, *, sensitive: bool = False) -> None:
        """Type *text* into the element with ID *element_id*.

        When *sensitive* is set the text is replaced by a placeholder in the
        log; the real text is still typed.
        """
        page = self.page
        shown = "<redacted>" if sensitive else text
        logger.info('Typing text "%s" into element with ID "%s"', shown, element_id)
        field = page.locator(_selector_for_id(element_id))
        count = await field.count()
        if count != 1:
            raise MatchCountError(
                f'Typing text "{shown}" into element with ID "{element_id}"', count
            )
        await field.press_sequentially(text)

    async def click_button_with_text(
        self,
        text: str,
        *,
        wait_for_visible: bool = False,
        wait_for_navigation: bool = False,
        wait_for_network_idle: bool = False,
    ) -> None:
        await self.click_matching_text(
            "button",
            text,
            wait_for_visible=wait_for_visible,
            wait_for_navigation=wait_for_navigation,
            wait_for_network_idle=wait_for_network_idle,
        )

    async def click_matching_text(
        self,
        selector: str,
        text: str,
        *,
        wait_for_visible: bool = False,
        wait_for_navigation: bool = False,
        wait_for_network_idle: bool = False,
    ) -> None:
        """Click the one visible element matching *selector* whose text is *text*.

        Text is compared after stripping whitespace and case-folding. Zero or
        several matches raise :class:`MatchCountError`. The click and the
        requested waits are started together, so a navigation triggered by
        the click cannot be missed.
        """
        page = self.page
        if wait_for_visible:
            await self.wait_for_element_with_text(selector, text)

        description = f'Clicking element matching selector "{selector}" and text content "{text}"'
        logger.info(description)

        wanted = _normalize(text)
        matches: list[ElementHandle] = []
        for element in await page.query_selector_all(selector):
            if not await element.is_visible():
                continue
            content = await element.text_content()
            if content is not None and _normalize(content) == wanted:
                matches.append(element)
        if len(matches) != 1:
            raise MatchCountError(description, len(matches))

        waits: list[asyncio.Future] = []
        if wait_for_navigation:
            waits.append(asyncio.ensure_future(self._until_closed(_wait_for_navigation(page))))
        if wait_for_network_idle:
            waits.append(
                asyncio.ensure_future(
                    self._until_closed(page.wait_for_load_state("networkidle", timeout=0))
                )
            )
        try:
            await asyncio.gather(*waits, matches[0].click())
        finally:
            for wait in waits:
                if not wait.done():
                    wait.cancel()

    async def click_matching_selector(self, selector: str) -> None:
        """Click the one visible element matching *selector*."""
        page = self.page
        description = f'Clicking element matching selector "{selector}"'
        logger.info(description)
        visible = [e for e in await page.query_selector_all(selector) if await e.is_visible()]
        if len(visible) != 1:
            raise MatchCountError(description, len(visible))
        await visible[0].click()

    async def collect_text_by_selector(self, selector: str) -> list[ElementText]:
        """Return every element matching *selector* with its text, in document order."""
        page = self.page
        return [
            ElementText(element, (await element.text_content()) or "")
            for element in await page.query_selector_all(selector)
        ]

    # ------------------------------------------------------------------
    # Background watchers
    # ------------------------------------------------------------------

    def watch_and_click_if_visible(self, selector: str, description: Optional[str] = None) -> asyncio.Future:
        """Click *selector* once, whenever it becomes visible.

        Runs in the background. Failures are logged, never raised; the watcher
        gives up when the session closes.
        """
        page = self.page
        label = description or selector
        logger.info('Waiting for element "%s" to become visible', label)
        task = asyncio.ensure_future(self._click_when_visible(page, selector, label))
        self._watchers.add(task)
        task.add_done_callback(self._watchers.discard)
        return task

    async def _click_when_visible(self, page: Page, selector: str, label: str) -> None:
        try:
            element = await self._until_closed(
                page.wait_for_selector(selector, state="visible", timeout=0)
            )
            if element is None:
                raise LookupError(f'no element matched "{selector}"')
            logger.info('Clicking element "%s"', label)
            await element.click()
        except Exception as exc:
            logger.warning('Waiting for or clicking element "%s" FAILED: %s', label, exc)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _until_closed(self, awaitable: Awaitable[_T]) -> _T:
        """Await *awaitable*, abandoning it if the session closes first."""
        work = asyncio.ensure_future(awaitable)
        closed = asyncio.ensure_future(self.closed_event.wait())
        try:
            done, _ = await asyncio.wait({work, closed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closed.cancel()
            if not work.done():
                work.cancel()
        if work in done:
            return work.result()
        raise SessionClosedError("browser session was closed while waiting")

    async def _on_download(self, download: Download) -> None:
        assert self.download_dir is not None
        target = self.download_dir / download.suggested_filename
        logger.info('Downloading "%s" to local file: "%s"', download.url, target)
        try:
            await download.save_as(target)
        except Exception as exc:
            logger.warning('Downloading "%s" FAILED: %s', download.url, exc)
            return
        logger.info("Download completed: %s", target)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _selector_for_id(element_id: str) -> str:
    return f"#{element_id}"


def _normalize(text: str) -> str:
    return text.strip().casefold()


async def _wait_for_navigation(page: Page) -> None:
    await page.wait_for_event(
        "framenavigated", predicate=lambda frame: frame == page.main_frame, timeout=0
    )
    await page.wait_for_load_state("load", timeout=0)
    await page.wait_for_load_state("networkidle", timeout=0)


async def _close_page(page: Page) -> None:
    url = page.url
    logger.info("Closing browser page: %s", url)
    try:
        await page.close()
    except Exception as exc:
        logger.warning('Closing browser page "%s" failed: %s', url, exc)
        return
    logger.info('Closing browser page "%s" done', url)


async def _close_pending_page(page_task: asyncio.Future) -> None:
    await asyncio.wait({page_task})
    if page_task.cancelled() or page_task.exception() is not None:
        # Creating the page failed; there is nothing to close
        return
    await _close_page(page_task.result())
