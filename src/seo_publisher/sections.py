# -*- coding: utf-8 -*-
"""
Line classification for markdown documents.

Each line is one of the Section kinds below. Stages that insert spacing,
merge lines, place images or links reason over these kinds instead of
chaining regex replacements.
"""
import re
from dataclasses import dataclass
from enum import Enum

HEADING_REGEX = re.compile(r"^(#{1,6})[ \t]+(\S.*?)[ \t#]*$")
LIST_ITEM_REGEX = re.compile(r"^[ \t]*(?:[-*+]|\d+[.)])[ \t]+\S")
BLOCKQUOTE_REGEX = re.compile(r"^[ \t]*>")
TABLE_ROW_REGEX = re.compile(r"^[ \t]*\|.*\|[ \t]*$")
TABLE_SEPARATOR_REGEX = re.compile(r"^[ \t]*\|?[ \t]*:?-{2,}:?[ \t]*(?:\|[ \t]*:?-{2,}:?[ \t]*)*\|?[ \t]*$")
IMAGE_LINE_REGEX = re.compile(r"^[ \t]*!\[[^\]]*\]\([^)]*\)[ \t]*$")
# A protected block (iframe/embed/object) standing on its own line
MEDIA_PLACEHOLDER_LINE_REGEX = re.compile(r"^[ \t]*__PROTECTED_\d+__[ \t]*$")
RAW_MEDIA_LINE_REGEX = re.compile(r"^[ \t]*<(?:iframe|embed|object|img|figure)\b", re.IGNORECASE)

FAQ_HEADING_TEXT_REGEX = re.compile(
    r"^(?:\*\*)?(?:FAQs?|Frequently Asked Questions|Common Questions)\b",
    re.IGNORECASE,
)
FAQ_HEADING_REGEX = re.compile(
    r"^#{1,6}[ \t]+(?:\*\*)?(?:FAQs?|Frequently Asked Questions|Common Questions)\b",
    re.IGNORECASE | re.MULTILINE,
)
FAQ_QUESTION_REGEX = re.compile(r"^[ \t]*\*\*Q[:.]")


class SectionKind(str, Enum):
    """Kind of a markdown line."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list-item"
    BLOCKQUOTE = "blockquote"
    TABLE_ROW = "table-row"
    IMAGE = "image"
    BLANK = "blank"


@dataclass(frozen=True)
class Line:
    """A classified markdown line."""

    kind: SectionKind
    text: str
    level: int = 0

    @property
    def heading_text(self) -> str:
        match = HEADING_REGEX.match(self.text)
        return match.group(2).strip() if match else ""


def classify_line(line: str) -> Line:
    """Classify a single line, ignoring context."""
    if not line.strip():
        return Line(SectionKind.BLANK, line)
    heading = HEADING_REGEX.match(line)
    if heading:
        return Line(SectionKind.HEADING, line, level=len(heading.group(1)))
    if TABLE_ROW_REGEX.match(line):
        return Line(SectionKind.TABLE_ROW, line)
    if (
            IMAGE_LINE_REGEX.match(line)
            or MEDIA_PLACEHOLDER_LINE_REGEX.match(line)
            or RAW_MEDIA_LINE_REGEX.match(line)
    ):
        return Line(SectionKind.IMAGE, line)
    if BLOCKQUOTE_REGEX.match(line):
        return Line(SectionKind.BLOCKQUOTE, line)
    if LIST_ITEM_REGEX.match(line):
        return Line(SectionKind.LIST_ITEM, line)
    return Line(SectionKind.PARAGRAPH, line)


def classify_lines(text: str) -> list[Line]:
    """
    Classify every line of a document.

    Indented lines right after a list item are list continuations and keep
    the list-item kind.
    """
    lines: list[Line] = []
    for raw in text.split("\n"):
        line = classify_line(raw)
        if (
                line.kind is SectionKind.PARAGRAPH
                and raw[:1] in (" ", "\t")
                and lines
                and lines[-1].kind is SectionKind.LIST_ITEM
        ):
            line = Line(SectionKind.LIST_ITEM, raw)
        lines.append(line)
    return lines


def is_faq_heading(line: Line) -> bool:
    """Check if a heading line opens an FAQ section."""
    return line.kind is SectionKind.HEADING and bool(
        FAQ_HEADING_TEXT_REGEX.match(line.heading_text)
    )


def find_faq_start(text: str) -> int | None:
    """Offset of the first FAQ heading, if any."""
    match = FAQ_HEADING_REGEX.search(text)
    return match.start() if match else None


def count_headings(text: str) -> int:
    return sum(1 for line in text.split("\n") if HEADING_REGEX.match(line))


def markdown_to_text(markdown: str) -> str:
    """Extract plain text from markdown for comparison."""
    # Remove headings markers
    text = re.sub(r"^#{1,6}\s+", "", markdown, flags=re.MULTILINE)
    # Remove list bullets, numbers and blockquote markers
    text = re.sub(r"^[ \t]*(?:[-+*]|\d+[.)]|>)[ \t]+", "", text, flags=re.MULTILINE)
    # Remove images
    text = re.sub(r"!\[[^\]]*\]\([^)]+\)", "", text)
    # Remove links but keep text
    text = re.sub(r"\[([^\]]+)\]\([^)]+\)", r"\1", text)
    # Remove emphasis markers
    text = re.sub(r"[*_]{1,3}([^*_]+)[*_]{1,3}", r"\1", text)
    # Remove table pipes and separator rows
    text = re.sub(r"^[ \t]*\|?[ \t]*:?-{2,}.*$", "", text, flags=re.MULTILINE)
    text = text.replace("|", " ")
    # Remove extra whitespace
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def validate_structure(markdown: str) -> dict:
    """
    Report on the article structure expected by the content platform.

    Informational only: nothing in the pipeline rejects a document on it.
    """
    lines = classify_lines(markdown)
    h2_count = sum(1 for line in lines if line.kind is SectionKind.HEADING and line.level == 2)
    h3_count = sum(1 for line in lines if line.kind is SectionKind.HEADING and line.level == 3)
    has_table = any(TABLE_SEPARATOR_REGEX.match(line.text) for line in lines)
    has_faq = any(is_faq_heading(line) for line in lines)
    word_count = len(markdown_to_text(markdown).split())

    issues = []
    if h2_count < 4:
        issues.append(f"Only {h2_count} H2 sections (need at least 4)")
    if h3_count < h2_count * 2:
        issues.append(f"Only {h3_count} H3 subsections (need at least 2 per H2: {h2_count * 2})")
    if not has_table:
        issues.append("No comparison tables found")
    if not has_faq:
        issues.append("No FAQ section found")
    if word_count < 2000:
        issues.append(f"Only {word_count} words (target: 2,500-3,500)")

    return {
        "is_valid": not issues,
        "issues": issues,
        "h2_count": h2_count,
        "h3_count": h3_count,
        "has_table": has_table,
        "has_faq": has_faq,
        "word_count": word_count,
    }
