"""Playwright-powered automation endpoint.

Playwright has no native notion of window handles, so every page of the
browser context is registered under a generated handle. Dialogs are held
open by a listener until a command accepts or dismisses them, mirroring the
WebDriver behaviour the session controller expects.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from playwright.sync_api import (
    Browser,
    BrowserContext,
    Dialog,
    ElementHandle,
    Error,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    sync_playwright,
)

from ..config import ProfileConfig
from ..errors import (
    ConstructionError,
    EndpointError,
    EndpointTimeoutError,
    FailureKind,
    NoSuchSessionError,
    StaleWindowError,
    TransientTransportError,
    classify_failure,
)
from ..locator import xpath_literal
from ..models import BrowserKind, LocatorSpec, LocatorStrategy, capabilities_for
from .base import AutomationEndpoint, Probe, RemoteElement, RemoteSession

LOGGER = logging.getLogger(__name__)

_CLOSED_MARKERS = ("has been closed", "Target closed")

_ENGINES = {
    BrowserKind.CHROME: ("chromium", None),
    BrowserKind.CHROME_HEADLESS: ("chromium", None),
    BrowserKind.CHROME_EMBEDDED: ("chromium", None),
    BrowserKind.EDGE_CHROME: ("chromium", "msedge"),
    BrowserKind.FIREFOX: ("firefox", None),
    BrowserKind.FIREFOX_HEADLESS: ("firefox", None),
    BrowserKind.SAFARI: ("webkit", None),
    BrowserKind.BROWSERSTACK: ("chromium", None),
    BrowserKind.CROSSBROWSERTESTING: ("chromium", None),
}


def to_selector(spec: LocatorSpec) -> str:
    """Express ``spec`` with Playwright's selector engines."""

    value = spec.value
    if spec.strategy == LocatorStrategy.CSS:
        return f"css={value}"
    if spec.strategy == LocatorStrategy.TAG:
        return f"css={value}"
    if spec.strategy == LocatorStrategy.XPATH:
        return f"xpath={value}"
    if spec.strategy == LocatorStrategy.ID:
        return f"xpath=//*[@id={xpath_literal(value)}]"
    if spec.strategy == LocatorStrategy.NAME:
        return f"xpath=//*[@name={xpath_literal(value)}]"
    if spec.strategy == LocatorStrategy.CLASS:
        padded = xpath_literal(f" {value} ")
        return f"xpath=//*[contains(concat(' ', normalize-space(@class), ' '), {padded})]"
    if spec.strategy == LocatorStrategy.LINK_TEXT:
        return f"xpath=//a[normalize-space(.)={xpath_literal(value)}]"
    if spec.strategy == LocatorStrategy.PARTIAL_LINK_TEXT:
        return f"xpath=//a[contains(normalize-space(.), {xpath_literal(value)})]"
    raise ValueError(f"Unsupported locator strategy: {spec.strategy}")


class PlaywrightElement(RemoteElement):
    """Element handle backed by a Playwright ``ElementHandle``."""

    def __init__(self, handle: ElementHandle, owner: "PlaywrightSession") -> None:
        self._handle = handle
        self._owner = owner

    @property
    def handle(self) -> ElementHandle:
        return self._handle

    @property
    def text(self) -> str:
        with self._owner.translated():
            return self._handle.inner_text()

    def click(self) -> None:
        with self._owner.translated():
            self._handle.click()

    def send_keys(self, text: str) -> None:
        with self._owner.translated():
            self._handle.type(text)

    def clear(self) -> None:
        with self._owner.translated():
            self._handle.fill("")

    def get_attribute(self, name: str) -> Optional[str]:
        with self._owner.translated():
            return self._handle.get_attribute(name)

    def is_displayed(self) -> bool:
        with self._owner.translated():
            return self._handle.is_visible()


class PlaywrightSession(RemoteSession):
    """Remote session backed by a Playwright browser context."""

    def __init__(
        self,
        playwright: Playwright,
        context: BrowserContext,
        browser: Optional[Browser] = None,
    ) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._session_id = uuid.uuid4().hex
        self._pages: dict[str, Page] = {}
        self._dialogs: dict[str, Dialog] = {}
        self._current: Optional[str] = None
        self._closed = False
        context.on("page", self._register)
        for page in context.pages:
            self._register(page)
        if not self._pages:
            self._register(context.new_page())
        self._current = next(iter(self._pages))

    @property
    def session_id(self) -> str:
        return self._session_id

    @contextmanager
    def translated(self) -> Iterator[None]:
        try:
            yield
        except PlaywrightTimeoutError as exc:
            raise EndpointTimeoutError(str(exc)) from exc
        except Error as exc:
            raise self._translate(exc) from exc

    def _translate(self, exc: Error) -> EndpointError:
        message = str(exc)
        if any(marker in message for marker in _CLOSED_MARKERS):
            if self._closed or (self._browser is not None and not self._browser.is_connected()):
                return NoSuchSessionError(message)
            return StaleWindowError(message)
        if classify_failure(exc) == FailureKind.TRANSPORT:
            return TransientTransportError(message)
        return EndpointError(message)

    def _register(self, page: Page) -> str:
        for handle, known in self._pages.items():
            if known is page:
                return handle
        handle = uuid.uuid4().hex.upper()
        self._pages[handle] = page
        page.on("dialog", lambda dialog: self._dialogs.__setitem__(handle, dialog))
        page.on("close", lambda _: self._dialogs.pop(handle, None))
        return handle

    def _page(self) -> Page:
        if self._closed:
            raise NoSuchSessionError("Browser session is not started")
        page = self._pages.get(self._current or "")
        if page is None or page.is_closed():
            raise StaleWindowError(f"no such window: {self._current}")
        return page

    def current_window_handle(self) -> str:
        self._page()
        return str(self._current)

    def window_handles(self) -> list[str]:
        if self._closed:
            raise NoSuchSessionError("Browser session is not started")
        for page in self._context.pages:
            self._register(page)
        return [handle for handle, page in self._pages.items() if not page.is_closed()]

    def switch_to_window(self, handle: str) -> None:
        page = self._pages.get(handle)
        if page is None or page.is_closed():
            raise StaleWindowError(f"no such window: {handle}")
        with self.translated():
            page.bring_to_front()
        self._current = handle

    def new_window(self) -> str:
        with self.translated():
            page = self._context.new_page()
        return self._register(page)

    def close_window(self) -> None:
        page = self._page()
        with self.translated():
            page.close()

    def quit(self) -> None:
        LOGGER.debug("Stopping Playwright browser session")
        try:
            self._context.close()
        finally:
            if self._browser:
                self._browser.close()
            self._playwright.stop()
            self._closed = True
            self._pages.clear()
            self._dialogs.clear()

    def current_url(self) -> str:
        return self._page().url

    def title(self) -> str:
        with self.translated():
            return self._page().title()

    def navigate(self, url: str) -> None:
        with self.translated():
            self._page().goto(url, wait_until="load")

    def refresh(self) -> None:
        with self.translated():
            self._page().reload()

    def back(self) -> None:
        with self.translated():
            self._page().go_back()

    def page_source(self) -> str:
        with self.translated():
            return self._page().content()

    def ready_state(self) -> str:
        with self.translated():
            return str(self._page().evaluate("document.readyState") or "").strip()

    def execute_script(self, script: str, *args: Any) -> Any:
        values = [arg.handle if isinstance(arg, PlaywrightElement) else arg for arg in args]
        wrapped = f"(args) => (function() {{ {script} }}).apply(null, args)"
        with self.translated():
            return self._page().evaluate(wrapped, values)

    def set_implicit_wait(self, millis: int) -> None:
        self._context.set_default_timeout(millis)

    def set_page_load_timeout(self, millis: int) -> None:
        self._context.set_default_navigation_timeout(millis)

    def probe_dialog(self) -> Probe[str]:
        dialog = self._dialogs.get(self._current or "")
        if dialog is None:
            return Probe.not_found()
        return Probe.of(dialog.message)

    def accept_dialog(self, text: Optional[str] = None) -> None:
        dialog = self._pop_dialog()
        with self.translated():
            if text is None:
                dialog.accept()
            else:
                dialog.accept(text)

    def dismiss_dialog(self) -> None:
        dialog = self._pop_dialog()
        with self.translated():
            dialog.dismiss()

    def _pop_dialog(self) -> Dialog:
        dialog = self._dialogs.pop(self._current or "", None)
        if dialog is None:
            raise EndpointError("No dialog was present")
        return dialog

    def find_elements(self, spec: LocatorSpec) -> list[RemoteElement]:
        with self.translated():
            handles = self._page().query_selector_all(to_selector(spec))
        return [PlaywrightElement(handle, self) for handle in handles]


class PlaywrightEndpoint(AutomationEndpoint):
    """Create browser sessions through Playwright."""

    name = "playwright"

    def create_session(self, kind: BrowserKind, settings: ProfileConfig) -> RemoteSession:
        engine = _ENGINES.get(kind)
        if engine is None:
            raise ConstructionError(f"Browser '{kind.value}' is not supported by the playwright endpoint")
        capabilities = capabilities_for(kind)
        if capabilities.remote_only and not settings.remote_url:
            raise ConstructionError(
                f"Browser '{kind.value}' requires 'remote_url' to reach a remote browser"
            )
        LOGGER.debug("Starting Playwright browser session for %s", kind.value)
        playwright = sync_playwright().start()
        try:
            return self._launch(playwright, kind, engine, settings)
        except Exception as exc:
            playwright.stop()
            raise ConstructionError(f"Error initializing browser '{kind.value}': {exc}") from exc

    def _launch(
        self,
        playwright: Playwright,
        kind: BrowserKind,
        engine: tuple[str, Optional[str]],
        settings: ProfileConfig,
    ) -> PlaywrightSession:
        engine_name, channel = engine
        browser_type = getattr(playwright, engine_name)
        capabilities = capabilities_for(kind)
        context_kwargs: dict[str, Any] = {}
        if settings.window_width and settings.window_height:
            context_kwargs["viewport"] = {
                "width": settings.window_width,
                "height": settings.window_height,
            }
        if settings.remote_url:
            browser = browser_type.connect(settings.remote_url)
            return PlaywrightSession(playwright, browser.new_context(**context_kwargs), browser)

        launch_kwargs: dict[str, Any] = {
            "headless": capabilities.is_headless,
            "args": list(settings.browser_args),
        }
        if engine_name == "chromium":
            launch_kwargs["args"] += [
                "--no-sandbox",
                "--disable-dev-shm-usage",
                "--disable-gpu",
            ]
        if channel:
            launch_kwargs["channel"] = channel
        if settings.binary_path:
            launch_kwargs["executable_path"] = str(settings.binary_path)
        user_data_dir: Optional[Path] = settings.profile_path if capabilities.supports_profile else None
        if user_data_dir:
            user_data_dir.mkdir(parents=True, exist_ok=True)
            context = browser_type.launch_persistent_context(
                str(user_data_dir),
                **launch_kwargs,
                **context_kwargs,
            )
            return PlaywrightSession(playwright, context)
        browser = browser_type.launch(**launch_kwargs)
        return PlaywrightSession(playwright, browser.new_context(**context_kwargs), browser)
