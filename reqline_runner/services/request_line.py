"""
Request line helpers.

Request lines use a pipe-delimited directive syntax such as
``HTTP GET | URL https://example.com/items | QUERY {"page": 1}``. The
grammar is owned by the execution API; only the URL directive is read
here, to derive the base origin shared by all endpoints of a suite.
"""

import re
from urllib.parse import urlsplit


# Pattern to match the URL directive value (up to whitespace or pipe)
URL_DIRECTIVE_PATTERN = re.compile(r"\bURL\s+([^\s|]+)", re.IGNORECASE)

DEFAULT_PORTS = {"http": 80, "https": 443}


def extract_url(request_line: str) -> str | None:
    """
    Return the value of the URL directive, or None if there is none.

    Example:
        >>> extract_url("HTTP GET | URL https://dummyjson.com/quotes/3")
        'https://dummyjson.com/quotes/3'
        >>> extract_url("HTTP GET") is None
        True
    """
    if not request_line:
        return None

    match = URL_DIRECTIVE_PATTERN.search(request_line)
    if match is None:
        return None
    return match.group(1)


def origin_of(url: str) -> str | None:
    """
    Compute ``scheme://host[:port]`` for an absolute http(s) URL.

    The host is lowercased and default ports are omitted, so
    ``HTTPS://Example.com:443/a`` and ``https://example.com/b`` share
    the origin ``https://example.com``.
    """
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None

    scheme = parts.scheme.lower()
    host = parts.hostname
    if scheme not in DEFAULT_PORTS or not host:
        return None

    if ":" in host:
        host = f"[{host}]"
    if port is not None and port != DEFAULT_PORTS[scheme]:
        host = f"{host}:{port}"

    return f"{scheme}://{host}"


def extract_origin(request_line: str) -> str | None:
    """Return the base origin of a request line's URL directive, if any."""
    url = extract_url(request_line)
    if url is None:
        return None
    return origin_of(url)
