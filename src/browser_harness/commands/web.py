"""Web commands built on the session controller."""

from __future__ import annotations

import logging
from typing import Optional

from ..endpoint.base import RemoteElement, RemoteSession
from ..errors import NoSuchElementError
from ..locator import contains_label_xpath, label_xpath, parse_locator
from ..models import LocatorSpec, LocatorStrategy, StepResult
from ..session.controller import Session, SessionController

LOGGER = logging.getLogger(__name__)

ELEMENT_POLL_MS = 50


def to_positive_int(value: object, name: str) -> int:
    """Convert a script argument to a non-negative integer."""

    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValueError(f"invalid {name}: {value!r}") from None
    if number < 0:
        raise ValueError(f"invalid {name}: {value!r}; must not be negative")
    return number


class WebCommands:
    """Browser commands reported as pass/fail step results."""

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller

    @property
    def controller(self) -> SessionController:
        return self._controller

    # Element lookup ------------------------------------------------------------

    def resolve(self, locator: str, session: Session, *, allow_relative: bool = False) -> LocatorSpec:
        return parse_locator(
            locator,
            allow_relative=allow_relative,
            strict=self._controller.settings.strict_locators,
            id_via_xpath=session.capabilities.id_via_xpath,
        )

    def find_elements(
        self,
        locator: str,
        *,
        wait: bool = True,
        wait_ms: Optional[int] = None,
    ) -> list[RemoteElement]:
        """Return elements matching ``locator``.

        With explicit waiting enabled the lookup is retried until something
        matches or the poll wait elapses.
        """

        session = self._controller.ensure_ready()
        spec = self.resolve(locator, session)
        remote = session.remote
        settings = self._controller.settings
        if not wait or not settings.explicit_wait:
            self._dismiss_preemptive_dialog(remote)
            return remote.find_elements(spec)

        clock = self._controller.clock
        wait_ms = settings.poll_wait_ms if wait_ms is None else wait_ms
        deadline = clock() + wait_ms / 1000
        while True:
            self._dismiss_preemptive_dialog(remote)
            elements = remote.find_elements(spec)
            if elements:
                return elements
            if clock() >= deadline:
                LOGGER.info(
                    "Timed out while looking for elements that match '%s'; poll wait=%s ms",
                    locator,
                    wait_ms,
                )
                return []
            self._controller.sleep(ELEMENT_POLL_MS / 1000)

    def find_element(self, locator: str) -> RemoteElement:
        elements = self.find_elements(locator)
        if not elements:
            raise NoSuchElementError(f"element not found via '{locator}'")
        return elements[0]

    def _dismiss_preemptive_dialog(self, remote: RemoteSession) -> None:
        if self._controller.settings.preemptive_alert_check and remote.probe_dialog().found:
            LOGGER.info("Accepting dialog before element lookup")
            remote.accept_dialog()

    # Navigation ----------------------------------------------------------------

    def open(self, url: str) -> StepResult:
        if not url or not url.strip():
            raise ValueError("invalid url: blank")
        session = self._controller.ensure_ready()
        session.remote.navigate(url.strip())
        self._controller.wait_for_stability()
        return StepResult.passed(f"opened URL {url}")

    def refresh(self) -> StepResult:
        session = self._controller.ensure_ready()
        session.remote.refresh()
        self._controller.wait_for_stability()
        return StepResult.passed("browser refreshed")

    def go_back(self) -> StepResult:
        session = self._controller.ensure_ready()
        session.remote.back()
        self._controller.wait_for_stability()
        return StepResult.passed("went back to previous page")

    def wait_for_stability(self, max_wait_ms: Optional[str] = None) -> StepResult:
        wait = None if max_wait_ms is None else to_positive_int(max_wait_ms, "max_wait_ms")
        if self._controller.wait_for_stability(wait):
            return StepResult.passed("page is stable")
        return StepResult.failed("page did not settle within the allotted time")

    # Interaction ---------------------------------------------------------------

    def click(self, locator: str) -> StepResult:
        self.find_element(locator).click()
        self._controller.wait_for_stability()
        return StepResult.passed(f"clicked on '{locator}'")

    def type(self, locator: str, text: str = "") -> StepResult:
        element = self.find_element(locator)
        element.clear()
        if text:
            element.send_keys(text)
        return StepResult.passed(f"text entered into '{locator}'")

    def clear(self, locator: str) -> StepResult:
        self.find_element(locator).clear()
        return StepResult.passed(f"cleared '{locator}'")

    def click_by_label(self, label: str) -> StepResult:
        """Click the element labelled ``label``, preferring an exact text match."""

        if not label or not label.strip():
            raise ValueError("invalid label: blank")
        remote = self._controller.ensure_ready().remote
        exact = remote.find_elements(LocatorSpec(strategy=LocatorStrategy.XPATH, value=label_xpath(label)))
        if exact:
            element = exact[0]
        else:
            # ancestors match too; the innermost element comes last
            partial = remote.find_elements(
                LocatorSpec(strategy=LocatorStrategy.XPATH, value=contains_label_xpath(label))
            )
            if not partial:
                raise NoSuchElementError(f"no element labelled '{label}'")
            element = partial[-1]
        element.click()
        self._controller.wait_for_stability()
        return StepResult.passed(f"clicked on label '{label}'")

    # Assertions ----------------------------------------------------------------

    def assert_element_present(self, locator: str) -> StepResult:
        if self.find_elements(locator):
            return StepResult.passed(f"EXPECTED element '{locator}' found")
        return StepResult.failed(f"Expected element not found at '{locator}'")

    def assert_element_not_present(self, locator: str) -> StepResult:
        if self.find_elements(locator, wait=False):
            return StepResult.failed(f"element '{locator}' found, which is NOT as expected")
        return StepResult.passed(f"element '{locator}' not found, as EXPECTED")

    def assert_element_count(self, locator: str, count: str) -> StepResult:
        expected = to_positive_int(count, "count")
        actual = len(self.find_elements(locator, wait=expected > 0))
        if actual == expected:
            return StepResult.passed(f"EXPECTED element count ({expected}) found")
        return StepResult.failed(
            f"element count ({actual}) DID NOT match expected count ({expected})"
        )

    def assert_text(self, locator: str, text: str) -> StepResult:
        actual = self.find_element(locator).text
        if actual == text:
            return StepResult.passed(f"EXPECTED text '{text}' found at '{locator}'")
        return StepResult.failed(f"text at '{locator}' was '{actual}', expected '{text}'")

    def assert_text_present(self, text: str) -> StepResult:
        session = self._controller.ensure_ready()
        bodies = session.remote.find_elements(LocatorSpec(strategy="tag", value="body"))
        content = bodies[0].text if bodies else ""
        if text in content:
            return StepResult.passed(f"EXPECTED text '{text}' found")
        return StepResult.failed(f"text '{text}' not found in page")

    def assert_attribute(self, locator: str, attribute: str, value: str) -> StepResult:
        if not attribute or not attribute.strip():
            raise ValueError("invalid attribute name: blank")
        actual = self.find_element(locator).get_attribute(attribute)
        if actual == value:
            return StepResult.passed(f"attribute '{attribute}' of '{locator}' is '{value}' as EXPECTED")
        return StepResult.failed(
            f"attribute '{attribute}' of '{locator}' was '{actual}', expected '{value}'"
        )

    def assert_title(self, title: str) -> StepResult:
        session = self._controller.ensure_ready()
        actual = session.remote.title()
        if actual == title:
            return StepResult.passed(f"EXPECTED title '{title}' found")
        return StepResult.failed(f"title was '{actual}', expected '{title}'")

    def wait_for_element_present(self, locator: str, wait_ms: Optional[str] = None) -> StepResult:
        wait = None if wait_ms is None else to_positive_int(wait_ms, "wait_ms")
        if self.find_elements(locator, wait_ms=wait):
            return StepResult.passed(f"element '{locator}' present")
        return StepResult.failed(f"element '{locator}' not present within the allotted time")

    # Windows -------------------------------------------------------------------

    def select_window(self, handle: Optional[str] = None, wait_ms: Optional[str] = None) -> StepResult:
        session = self._controller.ensure_ready()
        if not session.capabilities.supports_window_switch:
            return StepResult.skipped(f"window switching not supported for {session.kind.value}")
        wait = None if wait_ms is None else to_positive_int(wait_ms, "wait_ms")
        target = f"{handle} window" if handle and handle != "null" else "initial window"
        if self._controller.select_window(handle, wait):
            return StepResult.passed(f"selected {target}")
        return StepResult.failed(f"could not select {target}")

    def open_window(self, url: Optional[str] = None) -> StepResult:
        handle = self._controller.open_window(url)
        return StepResult.passed(f"opened new window {handle}")

    def close(self) -> StepResult:
        if self._controller.close_window():
            return StepResult.passed("closed last tab/window")
        return StepResult.passed("closed active window")

    def close_all(self) -> StepResult:
        self._controller.shutdown()
        return StepResult.passed("closed all tabs/windows")
