"""Turn a recommendation into what the results page shows.

The model is asked to open its answer with a ``# Conditions`` bullet list
(``* **Wind:** 10 mph NE`` and so on).  Those values are scraped into the
dashboard cards; whatever cannot be found falls back to a placeholder.  The
rest of the markdown is rendered to HTML for the rig cards, and web
citations are listed as data sources.
"""

from __future__ import annotations

import re
from typing import Dict, List
from urllib.parse import urlsplit

import markdown as md
from markupsafe import Markup

from models import GroundingChunk


NOT_AVAILABLE = "N/A"

# Dashboard cards in display order with the placeholder shown when the
# model did not report a value.
DASHBOARD_FIELDS = [
    ("Time", "--:--"),
    ("Weather", "Scanning..."),
    ("Temp", "--°"),
    ("Wind", "Calm"),
]

_H1_RE = re.compile(r"^#\s+.*$")
_H2_RE = re.compile(r"^##\s+(.*)$")
_CONDITIONS_TITLES = {"conditions", "current conditions"}
# Raw HTML is neutralised by escaping "<", except around autolinks.
_TAG_OPEN_RE = re.compile(r"<(?!https?://[^\s<>]+>)")
_SAFE_SCHEMES = {"http", "https"}


def extract_value(text: str, key: str) -> str:
    """Return the value of a ``* **Key:** value`` bullet or ``N/A``."""
    pattern = re.compile(r"\*\s*\*\*" + re.escape(key) + r":\*\*\s*(.*)", re.IGNORECASE)
    match = pattern.search(text)
    if not match:
        return NOT_AVAILABLE
    return match.group(1).strip() or NOT_AVAILABLE


def build_dashboard(text: str) -> List[Dict[str, str]]:
    cards = []
    for key, placeholder in DASHBOARD_FIELDS:
        value = extract_value(text, key)
        cards.append({
            "label": key,
            "value": value if value != NOT_AVAILABLE else placeholder,
            "found": value != NOT_AVAILABLE,
        })
    return cards


def strip_conditions(text: str) -> str:
    """Remove H1 headings and the Conditions section from the markdown body.

    An H1 or H2 heading titled exactly "Conditions" (or "Current
    Conditions") opens the section; it ends at the next H1 or H2 heading.
    Rig headings that merely mention conditions are kept.  Other H1 headings
    are dropped because the page supplies its own title.
    """
    kept: List[str] = []
    in_conditions = False
    for line in text.splitlines():
        stripped = line.strip()
        is_h1 = bool(_H1_RE.match(stripped))
        h2 = _H2_RE.match(stripped)
        if is_h1 or h2:
            title = stripped.lstrip("#").strip().rstrip(":").strip().lower()
            in_conditions = title in _CONDITIONS_TITLES
            if is_h1 or in_conditions:
                continue
        if in_conditions:
            continue
        kept.append(line)
    return "\n".join(kept).strip()


def render_markdown(text: str) -> Markup:
    """Render model markdown to HTML with raw HTML tags escaped.

    Only "<" is escaped, so blockquotes and ``<https://...>`` autolinks
    still render.
    """
    body = _TAG_OPEN_RE.sub("&lt;", strip_conditions(text))
    html = md.markdown(body, extensions=["sane_lists"])
    return Markup(html)


def is_safe_url(uri: str) -> bool:
    parts = urlsplit(uri or "")
    return parts.scheme.lower() in _SAFE_SCHEMES and bool(parts.netloc)


def web_sources(chunks: List[GroundingChunk]) -> List[Dict[str, str]]:
    """List web citations.

    Chunks without a web link, or whose link is not http(s), are skipped.
    """
    sources = []
    for chunk in chunks:
        if chunk.web is None or not is_safe_url(chunk.web.uri):
            continue
        sources.append({
            "uri": chunk.web.uri,
            "title": chunk.web.title or "Web Source",
        })
    return sources
