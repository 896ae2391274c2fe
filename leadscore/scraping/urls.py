"""URL canonicalization helpers."""

import re
from urllib.parse import urlparse

_SCHEMES = ("http://", "https://")
_TRAILING = re.compile(r"[\s/]+$")


def normalize_url(url: str) -> str:
    """Turn user input into a fetchable absolute URL.

    Trims whitespace, defaults the scheme to https and strips the trailing
    slash. Applying it twice gives the same result as applying it once, so
    runs of trailing slashes are removed together and the scheme's own
    slashes are never touched.
    """
    normalized = url.strip()
    scheme = next((s for s in _SCHEMES if normalized.startswith(s)), None)
    if scheme is None:
        scheme, rest = "https://", normalized
    else:
        rest = normalized[len(scheme):]
    return scheme + _TRAILING.sub("", rest)


def extract_domain(url: str) -> str:
    """Lowercased hostname of the normalized URL."""
    parsed = urlparse(normalize_url(url))
    return (parsed.hostname or "").lower()
