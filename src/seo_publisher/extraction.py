# -*- coding: utf-8 -*-
"""
Title extraction and body isolation for legacy generator output.

Both are pure functions. Every heuristic is a named predicate so a rule
that misfires can be switched off or fixed on its own.
"""
import html
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator

from .classifier import STAR2, has_legacy_markers
from .config import settings
from .errors import ContentLossDetected, ExtractionAmbiguous, PipelineError

logger = logging.getLogger(__name__)

_NUMBERING = r"(?:\d+[.)][ \t]*)?"

# "3. **Content**", "**Article Content:**", "## Content", "Content:"
CONTENT_MARKER_REGEX = re.compile(
    r"^[ \t]*" + _NUMBERING + r"(?:#{1,6}[ \t]*)?(?:" + STAR2 + r")?[ \t]*"
    r"(?:Article[ \t]+|Main[ \t]+|Blog[ \t]+Post[ \t]+|Full[ \t]+)?Content"
    r"[ \t]*:?[ \t]*(?:" + STAR2 + r")?[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

# "1. **Title**" (value on next line) or "**Title:** value"
TITLE_BLOCK_REGEX = re.compile(
    r"^[ \t]*" + _NUMBERING + STAR2 + r"[ \t]*(?:SEO[ \t]+)?Title[ \t]*:?[ \t]*"
    + STAR2 + r"[ \t]*:?[ \t]*(?P<inline>[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)

# "Title: value"
TITLE_LABEL_REGEX = re.compile(
    r"^[ \t]*" + _NUMBERING + r"(?:SEO[ \t]+)?Title[ \t]*:[ \t]*(?P<title>\S[^\n]*)$",
    re.IGNORECASE | re.MULTILINE,
)

# A line that is only a quoted string
QUOTED_TITLE_REGEX = re.compile(
    r"^[ \t]*[\"“](?P<title>[^\"“”\n]{3,})[\"”][ \t]*$",
    re.MULTILINE,
)

H1_REGEX = re.compile(r"^#[ \t]+(?P<title>\S[^\n]*?)[ \t#]*$", re.MULTILINE)
HTML_H1_REGEX = re.compile(r"<h1\b[^>]*>(?P<title>.*?)</h1\s*>", re.IGNORECASE | re.DOTALL)

# Headings that name a section of the generator output, never a title
SECTION_MARKER_WORDS = {
    "title",
    "content",
    "introduction",
    "conclusion",
    "summary",
    "faq",
    "faqs",
    "frequently asked questions",
    "key takeaways",
    "table of contents",
    "meta description",
    "image suggestions",
    "seo suggestions",
    "call-to-action",
    "call to action",
    "keywords",
    "outline",
}

# Leading metadata sections dropped when no content marker is present.
# A label alone on its line also swallows the value lines that follow it.
METADATA_LABELS = [
    "Title",
    "SEO Title",
    "Meta Title",
    "Meta Description",
    "Keywords",
    "Focus Keyword",
    "URL Slug",
    "Slug",
    "Outline",
]
_METADATA_NAMES = "|".join(re.escape(label) for label in METADATA_LABELS)
METADATA_LABEL_REGEX = re.compile(
    r"^[ \t]*" + _NUMBERING + STAR2 + r"[ \t]*(?:" + _METADATA_NAMES + r")[ \t]*:?[ \t]*"
    + STAR2 + r"[ \t]*:?"
    r"|^[ \t]*" + _NUMBERING + r"(?:" + _METADATA_NAMES + r")[ \t]*:",
    re.IGNORECASE,
)

SENTENCE_PUNCTUATION_REGEX = re.compile(r"[.!?]")

DEFAULT_TITLE = "Untitled"


@dataclass
class TitleMatch:
    """Chosen title and the pattern family that produced it."""

    title: str
    source: str

    @property
    def is_fallback(self) -> bool:
        return self.source == "fallback"


@dataclass
class ExtractedDocument:
    """Title and body isolated from a legacy document."""

    title: str
    body: str
    title_source: str = "fallback"
    marker_found: bool = False
    removed_lines: list[str] = field(default_factory=list)
    reference_length: int = 0
    issues: list[PipelineError] = field(default_factory=list)

    @property
    def body_ratio(self) -> float:
        if not self.reference_length:
            return 1.0
        return measure(self.body) / self.reference_length


# =============================================================================
# Title candidates
# =============================================================================


def clean_title_candidate(raw: str) -> str:
    """Strip markdown decoration, quotes and entities from a candidate."""
    candidate = html.unescape(raw)
    candidate = re.sub(r"^[ \t]*#+[ \t]*", "", candidate)
    candidate = candidate.replace("**", "").replace("__", "")
    candidate = re.sub(r"\s+", " ", candidate)
    return candidate.strip().strip("\"“”'").strip().rstrip(":").strip()


def is_valid_title_candidate(raw: str) -> bool:
    """A candidate is long enough, not the word "title" and not a label."""
    candidate = clean_title_candidate(raw)
    if len(candidate) <= settings.MIN_TITLE_LENGTH:
        return False
    if candidate.lower() == "title":
        return False
    return not has_legacy_markers(raw)


def _next_non_blank_line(text: str, pos: int) -> str:
    for line in text[pos:].split("\n"):
        if line.strip():
            return line
    return ""


def _title_blocks(text: str) -> Iterator[str]:
    for match in TITLE_BLOCK_REGEX.finditer(text):
        inline = match.group("inline").strip()
        yield inline if inline else _next_non_blank_line(text, match.end())


def _title_labels(text: str) -> Iterator[str]:
    for match in TITLE_LABEL_REGEX.finditer(text):
        yield match.group("title")


def _quoted_titles(text: str) -> Iterator[str]:
    for match in QUOTED_TITLE_REGEX.finditer(text):
        yield match.group("title")


def _h1_after_content_marker(text: str) -> Iterator[str]:
    marker = CONTENT_MARKER_REGEX.search(text)
    if not marker:
        return
    for match in H1_REGEX.finditer(text, marker.end()):
        yield match.group("title")


def _non_section_h1(text: str) -> Iterator[str]:
    for match in H1_REGEX.finditer(text):
        title = match.group("title")
        if clean_title_candidate(title).lower() not in SECTION_MARKER_WORDS:
            yield title


# Ordered by confidence: first valid candidate wins
TITLE_PATTERN_FAMILIES: list[tuple[str, Callable[[str], Iterator[str]]]] = [
    ("title_block", _title_blocks),
    ("title_label", _title_labels),
    ("quoted", _quoted_titles),
    ("h1_after_content", _h1_after_content_marker),
    ("h1", _non_section_h1),
]


def extract_title(
        text: str,
        fallback: str,
        families: list[str] | None = None,
) -> TitleMatch:
    """
    Find the title of a document, first match wins.

    Args:
        text: Raw document text
        fallback: Topic string used when no candidate qualifies
        families: Restrict the search to these pattern family names

    Returns:
        TitleMatch with source set to the winning family or "fallback"
    """
    for name, finder in TITLE_PATTERN_FAMILIES:
        if families is not None and name not in families:
            continue
        for raw in finder(text):
            if is_valid_title_candidate(raw):
                title = clean_title_candidate(raw)
                logger.debug(f"Title found by {name}: {title!r}")
                return TitleMatch(title=title, source=name)

    return _fallback_title(fallback)


def extract_leading_title(text: str, fallback: str) -> TitleMatch:
    """
    Title of an already-normalized document: its first H1, or the topic.

    Only the first H1 is considered, so re-running over a document whose
    H1 was built from the topic picks the topic again.
    """
    match = H1_REGEX.search(text)
    if match and is_valid_title_candidate(match.group("title")):
        return TitleMatch(title=clean_title_candidate(match.group("title")), source="h1")
    return _fallback_title(fallback)


def extract_html_title(text: str, fallback: str) -> TitleMatch:
    """
    Title of previously published HTML: its first <h1>, or the topic.

    Published HTML never repeats the title, so the caller resupplies it
    as the topic when feeding a document back through the pipeline.
    """
    match = HTML_H1_REGEX.search(text)
    if match:
        candidate = re.sub(r"<[^>]+>", "", match.group("title"))
        if is_valid_title_candidate(candidate):
            return TitleMatch(title=clean_title_candidate(candidate), source="h1")
    return _fallback_title(fallback)


def _fallback_title(fallback: str) -> TitleMatch:
    title = clean_title_candidate(fallback or "") or DEFAULT_TITLE
    logger.debug(f"No title candidate, falling back to topic: {title!r}")
    return TitleMatch(title=title, source="fallback")


# =============================================================================
# Duplicate title predicates
# =============================================================================


def _normalize_for_compare(text: str) -> str:
    text = clean_title_candidate(text).casefold()
    return re.sub(r"[\s.:!?]+$", "", text)


def is_h1(line: str) -> bool:
    return bool(re.match(r"^[ \t]*#[ \t]+\S", line))


def is_h1_title_duplicate(line: str, title: str) -> bool:
    """An H1 repeating the title, exactly or as a prefix/extension of it."""
    if not is_h1(line):
        return False
    heading = _normalize_for_compare(line)
    expected = _normalize_for_compare(title)
    if not heading or not expected:
        return False
    return heading == expected or heading.startswith(expected) or expected.startswith(heading)


def is_exact_title_line(line: str, title: str) -> bool:
    """A plain line equal to the title once decoration is removed."""
    expected = _normalize_for_compare(title)
    return bool(expected) and _normalize_for_compare(line) == expected


def is_title_like_line(line: str) -> bool:
    """
    A short line that reads like a title.

    Length within the duplicate-title bounds, starts with an uppercase
    letter, no sentence punctuation. Not proof of a duplicate: this is
    the rule that can swallow a short opening sentence.
    """
    stripped = line.strip()
    if not (settings.DUPLICATE_TITLE_MIN_LENGTH <= len(stripped) <= settings.DUPLICATE_TITLE_MAX_LENGTH):
        return False
    if not stripped[0].isupper():
        return False
    if "__PROTECTED_" in stripped or "](" in stripped:
        return False
    return not SENTENCE_PUNCTUATION_REGEX.search(stripped)


def is_standalone(lines: list[str], index: int) -> bool:
    """The line is followed by a blank line or by nothing."""
    return index + 1 >= len(lines) or not lines[index + 1].strip()


def strip_duplicate_title(lines: list[str], title: str) -> tuple[list[str], list[str]]:
    """
    Remove leading renderings of the title from the body lines.

    Only the leading run is considered: scanning stops at the first line
    that is neither blank nor a duplicate, or after TITLE_SCAN_LINES lines.

    Returns:
        Tuple of (remaining_lines, removed_lines)
    """
    removed: list[str] = []
    index = 0
    limit = min(len(lines), settings.TITLE_SCAN_LINES)
    while index < limit:
        line = lines[index]
        if not line.strip():
            index += 1
            continue
        if is_h1_title_duplicate(line, title) or is_exact_title_line(line, title):
            removed.append(line)
        elif (
                settings.STRIP_TITLE_LIKE_LINES
                and not is_h1(line)
                and is_standalone(lines, index)
                and is_title_like_line(line)
        ):
            removed.append(line)
        else:
            break
        index += 1

    # Blank lines right after the removed run go too
    while index < len(lines) and not lines[index].strip():
        index += 1
    if not removed:
        return lines, removed
    return lines[index:], removed


# =============================================================================
# Body isolation
# =============================================================================


def strip_metadata_labels(text: str) -> str:
    """Drop metadata label lines (Title, Meta Description, ...) and their values."""
    kept: list[str] = []
    skipping = False
    consumed = False

    for line in text.split("\n"):
        label = METADATA_LABEL_REGEX.match(line)
        if label:
            skipping = not line[label.end():].replace("*", "").strip()
            consumed = False
            continue
        if CONTENT_MARKER_REGEX.fullmatch(line):
            skipping = False
            continue
        if skipping:
            if line.strip():
                consumed = True
                continue
            if not consumed:
                continue
            skipping = False
        kept.append(line)

    return "\n".join(kept)


def measure(text: str) -> int:
    """Length of text with whitespace runs counted as one character."""
    return len(re.sub(r"\s+", " ", text).strip())


def reference_text(text: str, title: str) -> str:
    """
    Text the extracted body is measured against.

    The content region (after the marker, or the whole text) with metadata
    labels and exact title lines removed.
    """
    marker = CONTENT_MARKER_REGEX.search(text)
    region = text[marker.end():] if marker else text
    region = strip_metadata_labels(region)
    return "\n".join(
        line for line in region.split("\n") if not is_exact_title_line(line, title)
    )


def isolate_body(text: str, title: str) -> tuple[str, bool, list[str]]:
    """
    Slice the body out of a legacy document.

    Returns:
        Tuple of (body, marker_found, removed_lines)
    """
    marker = CONTENT_MARKER_REGEX.search(text)
    candidate = text[marker.end():] if marker else ""
    marker_found = bool(marker and candidate.strip())
    if not marker_found:
        if marker:
            logger.debug("Content marker found with nothing after it")
        candidate = strip_metadata_labels(text)

    lines, removed = strip_duplicate_title(candidate.strip("\n").split("\n"), title)
    body = "\n".join(lines).strip()

    if not body and candidate.strip():
        # Everything looked like a title: keep the candidate rather than nothing
        logger.debug("Duplicate-title scan emptied the body, keeping it intact")
        body, removed = candidate.strip(), []

    return body, marker_found, removed


def extract_document(text: str, topic: str) -> ExtractedDocument:
    """
    Run title extraction and body isolation over a legacy document.

    Never raises: an ambiguous title or a body below the content floor is
    recorded on ExtractedDocument.issues and the best-effort result returned.
    """
    match = extract_title(text, topic)
    body, marker_found, removed = isolate_body(text, match.title)

    document = ExtractedDocument(
        title=match.title,
        body=body,
        title_source=match.source,
        marker_found=marker_found,
        removed_lines=removed,
        reference_length=measure(reference_text(text, match.title)),
    )

    if match.is_fallback:
        document.issues.append(
            ExtractionAmbiguous(f"No title candidate found, using topic {match.title!r}")
        )

    ratio = document.body_ratio
    if ratio < settings.CONTENT_FLOOR_RATIO:
        issue = ContentLossDetected(measure(body), document.reference_length, ratio)
        logger.warning(
            str(issue),
            extra={"removed_lines": removed, "marker_found": marker_found},
        )
        document.issues.append(issue)

    logger.debug(
        f"Extracted body: {len(body)} chars, {len(removed)} leading line(s) removed",
        extra={"title_source": match.source, "marker_found": marker_found},
    )
    return document
