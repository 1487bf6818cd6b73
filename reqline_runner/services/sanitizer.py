"""
Input and response sanitization.

Removes control characters and HTML markup from user input and from
payloads returned by the execution API, keeping the text content.
"""

import html
import re
import warnings
from typing import Any

from bs4 import BeautifulSoup, MarkupResemblesLocatorWarning
from bs4.builder import ParserRejectedMarkup


# Control characters except tab, newline and carriage return
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")

# Elements dropped together with their content
DROPPED_ELEMENTS = ("script", "style", "template", "noscript")

# Fallback for markup html.parser refuses
TAG_PATTERN = re.compile(r"<[^>]*>?")

# Request lines routinely look like URLs; bs4 warns about those
warnings.filterwarnings("ignore", category=MarkupResemblesLocatorWarning)


def _strip_control_chars(text: str) -> str:
    return CONTROL_CHARS_PATTERN.sub("", text)


def _strip_markup(text: str) -> str:
    try:
        soup = BeautifulSoup(text, "html.parser")
    except ParserRejectedMarkup:
        return html.escape(TAG_PATTERN.sub("", text), quote=False)

    for element in soup.find_all(DROPPED_ELEMENTS):
        element.decompose()
    # Character references may decode to control characters
    content = _strip_control_chars(soup.get_text())
    return html.escape(content, quote=False)


def sanitize(text: Any) -> str:
    """
    Remove control characters and markup from a string.

    Text without a ``<`` is returned as-is apart from control character
    removal and ``>`` escaping; otherwise tags and attributes are dropped,
    their text content is kept, and the result is HTML-escaped. The result
    never contains ``<`` or ``>`` and ``sanitize(sanitize(x)) == sanitize(x)``.

    Args:
        text: Value to sanitize; anything that is not a string yields ""

    Returns:
        The sanitized string

    Example:
        >>> sanitize('<script>alert("xss")</script>Hello World')
        'Hello World'
        >>> sanitize("Hello\\x00World")
        'HelloWorld'
    """
    if not isinstance(text, str):
        return ""

    cleaned = _strip_control_chars(text)
    if "<" not in cleaned:
        return cleaned.replace(">", "&gt;")

    return _strip_markup(cleaned)


def sanitize_deep(value: Any) -> Any:
    """
    Recursively sanitize a decoded JSON value.

    Strings go through :func:`sanitize`, lists and tuples are mapped
    element-wise, mapping keys and values are both sanitized. Numbers,
    booleans and None pass through unchanged.
    """
    if isinstance(value, str):
        return sanitize(value)

    if isinstance(value, (list, tuple)):
        return [sanitize_deep(item) for item in value]

    if isinstance(value, dict):
        return {
            (sanitize(key) if isinstance(key, str) else key): sanitize_deep(item)
            for key, item in value.items()
        }

    return value
