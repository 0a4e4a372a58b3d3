"""Selenium WebDriver automation endpoint."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any, Optional

from selenium import webdriver
from selenium.common.exceptions import (
    InvalidSessionIdException,
    NoAlertPresentException,
    NoSuchElementException,
    NoSuchWindowException,
    TimeoutException,
    UnexpectedAlertPresentException,
    WebDriverException,
)
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webdriver import WebDriver
from selenium.webdriver.remote.webelement import WebElement
from urllib3.exceptions import HTTPError as TransportHTTPError
from urllib3.exceptions import MaxRetryError, NewConnectionError

from ..config import ProfileConfig
from ..errors import (
    ConstructionError,
    EndpointError,
    EndpointTimeoutError,
    FailureKind,
    NoSuchElementError,
    NoSuchSessionError,
    StaleWindowError,
    TransientTransportError,
    UnexpectedDialogError,
    classify_failure,
)
from ..models import BrowserKind, LocatorSpec, LocatorStrategy, capabilities_for
from .base import AutomationEndpoint, Probe, RemoteElement, RemoteSession

LOGGER = logging.getLogger(__name__)

_BY = {
    LocatorStrategy.ID: By.ID,
    LocatorStrategy.CLASS: By.CLASS_NAME,
    LocatorStrategy.NAME: By.NAME,
    LocatorStrategy.CSS: By.CSS_SELECTOR,
    LocatorStrategy.LINK_TEXT: By.LINK_TEXT,
    LocatorStrategy.PARTIAL_LINK_TEXT: By.PARTIAL_LINK_TEXT,
    LocatorStrategy.XPATH: By.XPATH,
    LocatorStrategy.TAG: By.TAG_NAME,
}


def translate_exception(exc: BaseException) -> EndpointError:
    """Map a Selenium or transport exception onto the harness taxonomy.

    Only the known mid-request disconnects count as transient. A refused
    connection means the driver process is gone and the session with it.
    """

    message = getattr(exc, "msg", None) or str(exc)
    if isinstance(exc, NoSuchWindowException):
        return StaleWindowError(message)
    if isinstance(exc, InvalidSessionIdException):
        return NoSuchSessionError(message)
    if isinstance(exc, UnexpectedAlertPresentException):
        return UnexpectedDialogError(message)
    if isinstance(exc, TimeoutException):
        return EndpointTimeoutError(message)
    if isinstance(exc, NoSuchElementException):
        return NoSuchElementError(message)
    if isinstance(exc, (MaxRetryError, NewConnectionError, ConnectionRefusedError)):
        return NoSuchSessionError(message)
    kind = classify_failure(exc)
    if kind == FailureKind.NO_SESSION:
        return NoSuchSessionError(message)
    if kind == FailureKind.TRANSPORT:
        return TransientTransportError(message)
    if kind == FailureKind.DIALOG:
        return UnexpectedDialogError(message)
    return EndpointError(message)


@contextmanager
def _translated() -> Iterator[None]:
    try:
        yield
    except (WebDriverException, TransportHTTPError, ConnectionError) as exc:
        raise translate_exception(exc) from exc


class SeleniumElement(RemoteElement):
    """Element handle backed by a Selenium ``WebElement``."""

    def __init__(self, element: WebElement) -> None:
        self._element = element

    @property
    def text(self) -> str:
        with _translated():
            return self._element.text

    def click(self) -> None:
        with _translated():
            self._element.click()

    def send_keys(self, text: str) -> None:
        with _translated():
            self._element.send_keys(text)

    def clear(self) -> None:
        with _translated():
            self._element.clear()

    def get_attribute(self, name: str) -> Optional[str]:
        with _translated():
            return self._element.get_attribute(name)

    def is_displayed(self) -> bool:
        with _translated():
            return self._element.is_displayed()


class SeleniumSession(RemoteSession):
    """Remote session driven through a Selenium ``WebDriver``."""

    def __init__(self, driver: WebDriver) -> None:
        self._driver = driver

    @property
    def driver(self) -> WebDriver:
        return self._driver

    @property
    def session_id(self) -> str:
        return str(self._driver.session_id)

    def current_window_handle(self) -> str:
        with _translated():
            return self._driver.current_window_handle

    def window_handles(self) -> list[str]:
        with _translated():
            return list(self._driver.window_handles)

    def switch_to_window(self, handle: str) -> None:
        with _translated():
            self._driver.switch_to.window(handle)

    def new_window(self) -> str:
        with _translated():
            previous = self._driver.current_window_handle
            self._driver.switch_to.new_window("tab")
            handle = self._driver.current_window_handle
            self._driver.switch_to.window(previous)
            return handle

    def close_window(self) -> None:
        with _translated():
            self._driver.close()

    def quit(self) -> None:
        with _translated():
            self._driver.quit()

    def current_url(self) -> str:
        with _translated():
            return self._driver.current_url

    def title(self) -> str:
        with _translated():
            return self._driver.title

    def navigate(self, url: str) -> None:
        with _translated():
            self._driver.get(url)

    def refresh(self) -> None:
        with _translated():
            self._driver.refresh()

    def back(self) -> None:
        with _translated():
            self._driver.back()

    def page_source(self) -> str:
        with _translated():
            return self._driver.page_source

    def ready_state(self) -> str:
        state = self.execute_script("return document.readyState")
        return str(state or "").strip()

    def execute_script(self, script: str, *args: Any) -> Any:
        with _translated():
            return self._driver.execute_script(script, *args)

    def set_implicit_wait(self, millis: int) -> None:
        with _translated():
            self._driver.implicitly_wait(millis / 1000)

    def set_page_load_timeout(self, millis: int) -> None:
        with _translated():
            self._driver.set_page_load_timeout(millis / 1000)

    def probe_dialog(self) -> Probe[str]:
        try:
            alert = self._driver.switch_to.alert
            return Probe.of(alert.text or "")
        except NoAlertPresentException:
            return Probe.not_found()
        except (WebDriverException, TransportHTTPError, ConnectionError) as exc:
            error = translate_exception(exc)
            return Probe.failed(classify_failure(error), error)

    def accept_dialog(self, text: Optional[str] = None) -> None:
        with _translated():
            alert = self._driver.switch_to.alert
            if text is not None:
                alert.send_keys(text)
            alert.accept()

    def dismiss_dialog(self) -> None:
        with _translated():
            self._driver.switch_to.alert.dismiss()

    def find_elements(self, spec: LocatorSpec) -> list[RemoteElement]:
        with _translated():
            found = self._driver.find_elements(_BY[spec.strategy], spec.value)
        return [SeleniumElement(element) for element in found]


# Per-kind construction ---------------------------------------------------------


def _chrome_options(settings: ProfileConfig, *, headless: bool) -> webdriver.ChromeOptions:
    options = webdriver.ChromeOptions()
    if headless:
        options.add_argument("--headless=new")
        options.add_argument("--no-sandbox")
    for arg in settings.browser_args:
        options.add_argument(arg)
    if settings.incognito:
        options.add_argument("--incognito")
    if settings.profile_path:
        options.add_argument(f"--user-data-dir={settings.profile_path}")
    if settings.binary_path:
        options.binary_location = str(settings.binary_path)
    options.add_experimental_option(
        "prefs",
        {"profile.default_content_setting_values.automatic_downloads": 1},
    )
    return options


def _service_kwargs(settings: ProfileConfig) -> dict[str, Any]:
    if settings.driver_path is None:
        return {}
    if not settings.driver_path.exists():
        raise ConstructionError(f"Driver binary not found: {settings.driver_path}")
    return {"executable_path": str(settings.driver_path)}


def _build_chrome(settings: ProfileConfig, headless: bool = False) -> WebDriver:
    service = webdriver.ChromeService(**_service_kwargs(settings))
    return webdriver.Chrome(options=_chrome_options(settings, headless=headless), service=service)


def _build_chrome_headless(settings: ProfileConfig) -> WebDriver:
    return _build_chrome(settings, headless=True)


def _build_embedded_chrome(settings: ProfileConfig) -> WebDriver:
    if settings.binary_path is None or not settings.binary_path.exists():
        raise ConstructionError(
            "An embedded Chromium client requires 'binary_path' to point at the application"
        )
    options = _chrome_options(settings, headless=False)
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--no-sandbox")
    options.accept_insecure_certs = True
    service = webdriver.ChromeService(**_service_kwargs(settings))
    return webdriver.Chrome(options=options, service=service)


def _build_firefox(settings: ProfileConfig, headless: bool = False) -> WebDriver:
    options = webdriver.FirefoxOptions()
    if headless:
        options.add_argument("-headless")
    for arg in settings.browser_args:
        options.add_argument(arg)
    if settings.incognito:
        options.add_argument("-private")
    if settings.profile_path:
        options.add_argument("-profile")
        options.add_argument(str(settings.profile_path))
    if settings.binary_path:
        options.binary_location = str(settings.binary_path)
    service = webdriver.FirefoxService(**_service_kwargs(settings))
    return webdriver.Firefox(options=options, service=service)


def _build_firefox_headless(settings: ProfileConfig) -> WebDriver:
    return _build_firefox(settings, headless=True)


def _build_edge(settings: ProfileConfig) -> WebDriver:
    options = webdriver.EdgeOptions()
    for arg in settings.browser_args:
        options.add_argument(arg)
    if settings.incognito:
        options.add_argument("-inprivate")
    service = webdriver.EdgeService(**_service_kwargs(settings))
    return webdriver.Edge(options=options, service=service)


def _build_ie(settings: ProfileConfig) -> WebDriver:
    options = webdriver.IeOptions()
    options.unhandled_prompt_behavior = "ignore" if settings.alert_ignore else "accept"
    options.ignore_zoom_level = True
    options.ensure_clean_session = True
    options.introduce_flakiness_by_ignoring_security_domains = True
    if settings.incognito:
        options.add_argument("-private")
    service = webdriver.IeService(**_service_kwargs(settings))
    return webdriver.Ie(options=options, service=service)


def _build_safari(settings: ProfileConfig) -> WebDriver:
    return webdriver.Safari(options=webdriver.SafariOptions())


def _remote_options(kind: BrowserKind) -> Any:
    if kind in (BrowserKind.FIREFOX, BrowserKind.FIREFOX_HEADLESS):
        return webdriver.FirefoxOptions()
    if kind in (BrowserKind.EDGE, BrowserKind.EDGE_CHROME):
        return webdriver.EdgeOptions()
    if kind == BrowserKind.SAFARI:
        return webdriver.SafariOptions()
    return webdriver.ChromeOptions()


def _build_remote(settings: ProfileConfig) -> WebDriver:
    if not settings.remote_url:
        raise ConstructionError(
            f"Browser '{settings.browser.value}' requires 'remote_url' to reach a remote grid"
        )
    options = _remote_options(settings.browser)
    for arg in settings.browser_args:
        options.add_argument(arg)
    return webdriver.Remote(command_executor=settings.remote_url, options=options)


_BUILDERS: dict[BrowserKind, Callable[[ProfileConfig], WebDriver]] = {
    BrowserKind.CHROME: _build_chrome,
    BrowserKind.CHROME_HEADLESS: _build_chrome_headless,
    BrowserKind.CHROME_EMBEDDED: _build_embedded_chrome,
    BrowserKind.ELECTRON: _build_embedded_chrome,
    BrowserKind.FIREFOX: _build_firefox,
    BrowserKind.FIREFOX_HEADLESS: _build_firefox_headless,
    BrowserKind.EDGE: _build_edge,
    BrowserKind.EDGE_CHROME: _build_edge,
    BrowserKind.IE: _build_ie,
    BrowserKind.SAFARI: _build_safari,
    BrowserKind.BROWSERSTACK: _build_remote,
    BrowserKind.CROSSBROWSERTESTING: _build_remote,
}


class SeleniumEndpoint(AutomationEndpoint):
    """Create browser sessions through Selenium WebDriver."""

    name = "selenium"

    def __init__(
        self,
        builders: Optional[dict[BrowserKind, Callable[[ProfileConfig], WebDriver]]] = None,
    ) -> None:
        self._builders = dict(builders or _BUILDERS)

    def create_session(self, kind: BrowserKind, settings: ProfileConfig) -> RemoteSession:
        capabilities = capabilities_for(kind)
        builder = self._builders.get(kind)
        if builder is None:
            raise ConstructionError(f"Browser '{kind.value}' is not supported by the selenium endpoint")
        if settings.remote_url and not capabilities.remote_only:
            builder = _build_remote
        if settings.browser != kind:
            settings = settings.model_copy(update={"browser": kind})
        if settings.profile_path and not capabilities.supports_profile:
            LOGGER.warning("Browser profiles are not supported by %s; ignoring", kind.value)
            settings = settings.model_copy(update={"profile_path": None})
        LOGGER.info("Launching %s via selenium", kind.value)
        try:
            driver = builder(settings)
        except ConstructionError:
            raise
        except Exception as exc:
            raise ConstructionError(f"Error initializing browser '{kind.value}': {exc}") from exc
        if settings.window_width and settings.window_height:
            try:
                driver.set_window_size(settings.window_width, settings.window_height)
            except WebDriverException as exc:
                LOGGER.warning("Unable to resize %s window: %s", kind.value, exc)
        return SeleniumSession(driver)
