from __future__ import annotations

import logging

import pytest

from browser_harness.errors import LocatorSyntaxError
from browser_harness.locator import (
    contains_label_xpath,
    fix_bad_xpath,
    label_xpath,
    parse_locator,
    xpath_literal,
)
from browser_harness.models import LocatorSpec, LocatorStrategy


@pytest.mark.parametrize(
    ("locator", "strategy", "value"),
    [
        ("css=#login", LocatorStrategy.CSS, "#login"),
        ("id=user", LocatorStrategy.ID, "user"),
        ("class=btn", LocatorStrategy.CLASS, "btn"),
        ("name=q", LocatorStrategy.NAME, "q"),
        ("link=Sign in", LocatorStrategy.LINK_TEXT, "Sign in"),
        ("partial=Sign", LocatorStrategy.PARTIAL_LINK_TEXT, "Sign"),
        ("partialLinkText=Sign", LocatorStrategy.PARTIAL_LINK_TEXT, "Sign"),
        ("tag=button", LocatorStrategy.TAG, "button"),
        ("//div[@id='x']", LocatorStrategy.XPATH, "//div[@id='x']"),
        ("(//a)[2]", LocatorStrategy.XPATH, "(//a)[2]"),
        (".//div", LocatorStrategy.XPATH, "//div"),
        ("xpath=.//span", LocatorStrategy.XPATH, "//span"),
        ("(.//li)[1]", LocatorStrategy.XPATH, "(//li)[1]"),
        ("button", LocatorStrategy.TAG, "button"),
    ],
)
def test_parse_locator(locator: str, strategy: LocatorStrategy, value: str) -> None:
    assert parse_locator(locator) == LocatorSpec(strategy=strategy, value=value)


def test_relative_xpath_kept_when_allowed() -> None:
    assert parse_locator(".//div", allow_relative=True).value == ".//div"
    assert parse_locator("xpath=./span", allow_relative=True).value == "./span"


def test_unprefixed_locator_stays_a_tag_when_relative() -> None:
    assert parse_locator("button", allow_relative=True).strategy == LocatorStrategy.TAG


@pytest.mark.parametrize("locator", ["", "   ", None])
def test_blank_locator_rejected(locator) -> None:
    with pytest.raises(LocatorSyntaxError):
        parse_locator(locator)


def test_strict_mode_rejects_unknown_form() -> None:
    with pytest.raises(LocatorSyntaxError):
        parse_locator("button", strict=True)
    assert parse_locator("css=.x", strict=True).strategy == LocatorStrategy.CSS


def test_prefix_typo_logs_warning(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="browser_harness.locator"):
        spec = parse_locator("cs=#login")

    assert spec.strategy == LocatorStrategy.TAG
    assert "cs=#login" in caplog.text


def test_id_lookup_rewritten_to_xpath() -> None:
    spec = parse_locator("id=user", id_via_xpath=True)

    assert spec == LocatorSpec(strategy=LocatorStrategy.XPATH, value="//*[@id='user']")


def test_locator_spec_str() -> None:
    assert str(parse_locator("css=#login")) == "css=#login"


def test_fix_bad_xpath() -> None:
    assert fix_bad_xpath("  .//a ") == "//a"
    assert fix_bad_xpath("( .//a)[1]") == "(//a)[1]"
    assert fix_bad_xpath("//a") == "//a"
    assert fix_bad_xpath("") == ""


def test_xpath_literal_quotes() -> None:
    assert xpath_literal("plain") == "'plain'"
    assert xpath_literal("it's") == "concat('it',\"'\",'s')"
    assert xpath_literal("'") == '"\'"'
    assert xpath_literal("") == "''"
    assert xpath_literal('say "hi" it\'s') == "concat('say ','\"','hi','\"',' it',\"'\",'s')"


def test_label_xpaths() -> None:
    assert label_xpath("Save") == "//*[normalize-space(text())=normalize-space('Save')]"
    assert contains_label_xpath("Save") == (
        "//*[contains(normalize-space(string(.)), normalize-space('Save'))]"
    )
