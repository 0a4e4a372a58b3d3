"""Translate symbolic locator strings into search strategies."""

from __future__ import annotations

import logging
import re

from .errors import LocatorSyntaxError
from .models import LocatorSpec, LocatorStrategy

LOGGER = logging.getLogger(__name__)

# Order matters only for readability; no prefix is a prefix of another.
PREFIXES: tuple[tuple[str, LocatorStrategy], ...] = (
    ("id=", LocatorStrategy.ID),
    ("class=", LocatorStrategy.CLASS),
    ("name=", LocatorStrategy.NAME),
    ("css=", LocatorStrategy.CSS),
    ("link=", LocatorStrategy.LINK_TEXT),
    ("partial=", LocatorStrategy.PARTIAL_LINK_TEXT),
    ("partialLinkText=", LocatorStrategy.PARTIAL_LINK_TEXT),
    ("xpath=", LocatorStrategy.XPATH),
    ("tag=", LocatorStrategy.TAG),
)

# //a/b, .//a/b, ./a/b, /a/b, (/a/b)[2], (//a/b)[2], (.//a/b)[2]
PATH_STARTS_WITH = ("/", "./", "(/", "( /", "(./", "( ./")

_QUOTE_SPLIT = re.compile(r"""[^'"]+|['"]""")


def parse_locator(
    locator: str,
    *,
    allow_relative: bool = False,
    strict: bool = False,
    id_via_xpath: bool = False,
) -> LocatorSpec:
    """Parse ``locator`` into a :class:`LocatorSpec`.

    Recognised forms are ``id=``, ``class=``, ``name=``, ``css=``, ``link=``,
    ``partial=``/``partialLinkText=``, ``xpath=`` and ``tag=`` prefixes, plus
    bare XPath (anything starting like a path). Other input is searched as a
    literal tag name unless ``strict`` is set.

    ``allow_relative`` keeps relative XPath untouched, for lookups nested
    inside an element that was already resolved. ``id_via_xpath`` rewrites
    ``id=`` lookups to XPath for browsers with unreliable id searches.
    """

    if locator is None or not locator.strip():
        raise LocatorSyntaxError(f"invalid locator: {locator!r}")

    if id_via_xpath and locator.startswith("id="):
        locator = f"//*[@id={xpath_literal(locator[len('id='):])}]"

    for prefix, strategy in PREFIXES:
        if not locator.startswith(prefix):
            continue
        value = locator[len(prefix):]
        if strategy == LocatorStrategy.XPATH and not allow_relative:
            value = fix_bad_xpath(value)
        return LocatorSpec(strategy=strategy, value=value)

    if locator.startswith(PATH_STARTS_WITH):
        value = locator if allow_relative else fix_bad_xpath(locator)
        return LocatorSpec(strategy=LocatorStrategy.XPATH, value=value)

    if strict:
        raise LocatorSyntaxError(
            f"unrecognised locator '{locator}'; use a prefix such as css= or xpath=, or tag= for tag names"
        )
    if "=" in locator:
        LOGGER.warning(
            "Locator '%s' has no known prefix and will be searched as a tag name; "
            "is the prefix mistyped?",
            locator,
        )
    return LocatorSpec(strategy=LocatorStrategy.TAG, value=locator)


def fix_bad_xpath(xpath: str) -> str:
    """Rewrite dot-relative XPath into the absolute form drivers accept."""

    if not xpath or not xpath.strip():
        return xpath
    xpath = xpath.strip()
    if xpath.startswith(".//"):
        return xpath[1:]
    if xpath.startswith("(.//"):
        return "(" + xpath[2:]
    if xpath.startswith("( .//"):
        return "(" + xpath[3:]
    return xpath


def xpath_literal(text: str) -> str:
    """Quote ``text`` as an XPath string literal.

    XPath 1.0 has no escape sequences, so text holding both quote kinds is
    assembled with ``concat()``.
    """

    if not text:
        return "''"
    sections = _QUOTE_SPLIT.findall(text)
    if len(sections) <= 1:
        if sections == ["'"]:
            return '"\'"'
        return f"'{text}'"
    treated = []
    for section in sections:
        if section == "'":
            treated.append('"\'"')
        elif section == '"':
            treated.append("'\"'")
        else:
            treated.append(f"'{section}'")
    return "concat(" + ",".join(treated) + ")"


def label_xpath(label: str) -> str:
    """XPath matching elements whose own text equals ``label``."""

    return f"//*[normalize-space(text())=normalize-space({xpath_literal(label)})]"


def contains_label_xpath(label: str) -> str:
    """XPath matching elements whose string value contains ``label``."""

    return f"//*[contains(normalize-space(string(.)), normalize-space({xpath_literal(label)}))]"
