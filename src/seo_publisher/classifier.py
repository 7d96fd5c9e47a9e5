# -*- coding: utf-8 -*-
"""
Input classification: legacy labeled output vs. already-normalized markdown.

Legacy generator output looks like:

    1. **Title**
    How to Bake Bread
    2. **Meta Description**
    ...
    3. **Content**
    # How to Bake Bread
    ...

Already-normalized input is ordinary markdown with headings and no labels,
or HTML this pipeline published earlier (re-runs over its own output).
"""
import logging
import re
from dataclasses import dataclass

from .config import settings
from .renderer import is_likely_html
from .sections import count_headings

logger = logging.getLogger(__name__)

# Bold marker, tolerant of escaped stars ("\*\*Title\*\*")
STAR2 = r"\\?\*\\?\*"

LEGACY_LABELS = [
    "Title",
    "SEO Title",
    "Meta Description",
    "Meta Title",
    "Content",
    "Article Content",
    "Keywords",
    "Focus Keyword",
    "URL Slug",
    "Slug",
    "Outline",
]

_LABELS = "|".join(re.escape(label) for label in LEGACY_LABELS)

# "1. **Title**", "2. **Meta Description:** ..." (anything may follow)
NUMBERED_LABEL_REGEX = re.compile(
    rf"^[ \t]*\d+[.)][ \t]*{STAR2}[ \t]*(?:{_LABELS})[ \t]*:?[ \t]*{STAR2}",
    re.IGNORECASE | re.MULTILINE,
)

# "**Title**" alone on its line, or "**Title:** value"
BARE_LABEL_REGEX = re.compile(
    rf"^[ \t]*{STAR2}[ \t]*(?:{_LABELS})"
    rf"(?:[ \t]*:[ \t]*{STAR2}|[ \t]*{STAR2}[ \t]*:|[ \t]*{STAR2}[ \t]*$)",
    re.IGNORECASE | re.MULTILINE,
)


# Opening tag of any heading in rendered HTML
HTML_HEADING_REGEX = re.compile(r"<h[1-6]\b", re.IGNORECASE)


@dataclass
class ClassificationResult:
    """Outcome of classifying a raw document."""

    is_legacy: bool
    has_multiple_headings: bool
    is_substantial: bool
    heading_count: int = 0
    has_legacy_markers: bool = False
    is_html: bool = False

    def to_dict(self) -> dict:
        return {
            "is_legacy": self.is_legacy,
            "has_multiple_headings": self.has_multiple_headings,
            "is_substantial": self.is_substantial,
            "heading_count": self.heading_count,
            "has_legacy_markers": self.has_legacy_markers,
            "is_html": self.is_html,
        }


def has_legacy_markers(text: str) -> bool:
    """Check for numbered or bold section labels (Title, Content, ...)."""
    return bool(NUMBERED_LABEL_REGEX.search(text) or BARE_LABEL_REGEX.search(text))


def classify(text: str) -> ClassificationResult:
    """
    Decide which extraction path a document takes.

    A document is legacy when it carries legacy markers, or when it has
    neither a heading nor substantial length. Markers always win: a long
    markdown document that still contains "**Content**" goes through
    extraction.

    Rendered HTML is never legacy: it only comes out of a previous run.
    """
    if is_likely_html(text):
        heading_count = len(HTML_HEADING_REGEX.findall(text))
        result = ClassificationResult(
            is_legacy=False,
            has_multiple_headings=heading_count >= 2,
            is_substantial=len(text) > settings.SUBSTANTIAL_CONTENT_THRESHOLD,
            heading_count=heading_count,
            is_html=True,
        )
        logger.debug(f"Classified document: HTML (headings={result.heading_count}, length={len(text)})")
        return result

    heading_count = count_headings(text)
    markers = has_legacy_markers(text)
    is_substantial = len(text) > settings.SUBSTANTIAL_CONTENT_THRESHOLD

    result = ClassificationResult(
        is_legacy=markers or not (heading_count >= 1 or is_substantial),
        has_multiple_headings=heading_count >= 2,
        is_substantial=is_substantial,
        heading_count=heading_count,
        has_legacy_markers=markers,
    )
    logger.debug(
        f"Classified document: legacy={result.is_legacy} "
        f"(headings={heading_count}, markers={markers}, length={len(text)})"
    )
    return result
