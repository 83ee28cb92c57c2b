"""Same-site link extraction from documentation HTML.

A regex heuristic rather than an HTML parser: documentation sites put links
in anchors, navigation widgets, ``data-href`` attributes and CSS, and the
patterns below catch all of them cheaply. False positives (stylesheet
``url()`` targets, for instance) are harmless because the assembler only
fetches links that contain a question keyword.
"""

from __future__ import annotations

import re
from urllib.parse import urljoin, urlsplit, urlunsplit

_LINK_PATTERNS = (
    re.compile(r"""href=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""<a[^>]+href=["']([^"']+)["'][^>]*>""", re.IGNORECASE),
    re.compile(r"""data-href=["']([^"']+)["']""", re.IGNORECASE),
    re.compile(r"""url\(["']?([^"')]+)["']?\)""", re.IGNORECASE),
)

# Last path segment looks like a file: "guide.html", "logo.PNG"
_FILE_SUFFIX = re.compile(r"\.[a-z]+$", re.IGNORECASE)
_SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*:", re.IGNORECASE)


def _as_directory(base_url: str) -> str:
    return base_url if base_url.endswith("/") else base_url + "/"


def normalize_link(raw: str, base_url: str) -> str | None:
    """Resolve ``raw`` against ``base_url``; ``None`` if it should be skipped."""
    link = raw.strip()
    if not link or link.startswith("#"):
        return None
    scheme = _SCHEME.match(link)
    if scheme and scheme.group(0).lower() not in ("http:", "https:"):
        return None  # mailto:, tel:, javascript:, data:

    absolute = urljoin(_as_directory(base_url), link)
    parts = urlsplit(absolute)
    if parts.hostname != urlsplit(base_url).hostname:
        return None

    path = parts.path.rstrip("/")
    if not _FILE_SUFFIX.search(path):
        path += "/"
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, ""))


def extract_links(html: str, base_url: str) -> list[str]:
    """Absolute same-host links found in ``html``, deduplicated, first-seen order."""
    links: dict[str, None] = {}
    for pattern in _LINK_PATTERNS:
        for match in pattern.finditer(html):
            link = normalize_link(match.group(1), base_url)
            if link is not None:
                links.setdefault(link)
    return list(links)
