from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

_ANY_SCHEME = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)

RESULTS_PATH = "/search/affiliate/results"


def normalize_absolute_url(url: str | None) -> str:
    """Coerce ``url`` to an absolute http(s) URL, or return ``""``.

    Scheme-relative and scheme-less values are assumed to be https. Bare
    paths, other schemes and values without a host are rejected.
    """
    value = (url or "").strip()
    if not value:
        return ""

    if value.startswith("//"):
        value = "https:" + value
    elif value.startswith("/"):
        return ""
    elif not _ANY_SCHEME.match(value):
        value = "https://" + value

    try:
        parts = urlsplit(value)
        hostname = parts.hostname
    except ValueError:
        return ""

    if parts.scheme.lower() not in {"http", "https"} or not hostname:
        return ""

    path = parts.path.rstrip("/") if len(parts.path) > 1 else ""
    normalized = urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, parts.query, parts.fragment))
    return normalized.rstrip("/")


def results_endpoint(results_url: str) -> str:
    base = normalize_absolute_url(results_url)
    if not base:
        return ""
    return urljoin(base, RESULTS_PATH)
