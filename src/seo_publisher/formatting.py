# -*- coding: utf-8 -*-
"""
Formatting normalizer: bold stripping and spacing.

Markdown passes walk classified lines (see sections.py) with a single
piece of state, whether the walk is inside the FAQ section. The HTML
passes run on the rendered document after link injection.
"""
import html
import logging
import re

from .protect import (
    DEFAULT_PROTECTED_PATTERNS,
    FENCED_CODE_PATTERN,
    PRE_PATTERN,
    TEXTAREA_PATTERN,
    apply_protected,
)
from .sections import (
    FAQ_HEADING_TEXT_REGEX,
    FAQ_QUESTION_REGEX,
    Line,
    SectionKind,
    classify_lines,
    is_faq_heading,
)

logger = logging.getLogger(__name__)

MARKDOWN_PROTECTED_PATTERNS = DEFAULT_PROTECTED_PATTERNS + [FENCED_CODE_PATTERN]
HTML_PROTECTED_PATTERNS = DEFAULT_PROTECTED_PATTERNS + [PRE_PATTERN, TEXTAREA_PATTERN]

BOLD_MARKDOWN_REGEX = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*")

HTML_HEADING_REGEX = re.compile(r"<h([1-6])\b[^>]*>.*?</h\1\s*>", re.IGNORECASE | re.DOTALL)
HTML_BOLD_REGEX = re.compile(r"<(strong|b)\b[^>]*>(.*?)</\1\s*>", re.IGNORECASE | re.DOTALL)
HTML_FAQ_QUESTION_REGEX = re.compile(r"^\s*Q[:.]")

# Line endings after which the next line starts a new sentence
SENTENCE_END_REGEX = re.compile(r"[.!?:;)\]\"”]\s*$")


# =============================================================================
# Markdown
# =============================================================================


def _update_faq_state(line: Line, in_faq_section: bool) -> bool:
    """FAQ section opens at an FAQ heading and closes at the next H1/H2."""
    if line.kind is not SectionKind.HEADING:
        return in_faq_section
    if is_faq_heading(line):
        return True
    return in_faq_section and line.level > 2


def _strip_bold_lines(text: str) -> str:
    in_faq_section = False
    output = []
    for line in classify_lines(text):
        in_faq_section = _update_faq_state(line, in_faq_section)
        if in_faq_section and FAQ_QUESTION_REGEX.match(line.text):
            output.append(line.text)
        else:
            output.append(BOLD_MARKDOWN_REGEX.sub(r"\1", line.text))
    return "\n".join(output)


def strip_bold_markdown(text: str) -> str:
    """
    Remove **bold** markers from every line except FAQ questions.

    A line starting with **Q: or **Q. keeps its markers only while the
    walk is inside the FAQ section.
    """
    return apply_protected(text, _strip_bold_lines, MARKDOWN_PROTECTED_PATTERNS)


def _needs_blank_line(previous: Line, current: Line) -> bool:
    """Blocks of different kinds, headings and images stand apart."""
    if SectionKind.HEADING in (previous.kind, current.kind):
        return True
    if SectionKind.IMAGE in (previous.kind, current.kind):
        return True
    return previous.kind is not current.kind


def _is_soft_wrap(previous: Line, current: Line) -> bool:
    """A paragraph line broken mid-sentence by the generator."""
    if previous.kind is not SectionKind.PARAGRAPH or current.kind is not SectionKind.PARAGRAPH:
        return False
    if previous.text.endswith("  ") or SENTENCE_END_REGEX.search(previous.text):
        return False
    first = current.text.lstrip()[:1]
    return first.isalpha() and first.islower()


def _space_lines(text: str, join_soft_wraps: bool = True) -> str:
    blocks: list[Line] = []
    separated: list[bool] = []
    pending_blank = False

    for line in classify_lines(text):
        if line.kind is SectionKind.BLANK:
            pending_blank = bool(blocks)
            continue
        if join_soft_wraps and blocks and not pending_blank and _is_soft_wrap(blocks[-1], line):
            merged = f"{blocks[-1].text.rstrip()} {line.text.strip()}"
            blocks[-1] = Line(SectionKind.PARAGRAPH, merged)
            continue
        separated.append(bool(blocks) and (pending_blank or _needs_blank_line(blocks[-1], line)))
        blocks.append(line)
        pending_blank = False

    output: list[str] = []
    for line, blank_before in zip(blocks, separated):
        if blank_before:
            output.append("")
        output.append(line.text.rstrip() if not line.text.endswith("  ") else line.text)
    return "\n".join(output)


def normalize_spacing(text: str, join_soft_wraps: bool = True) -> str:
    """
    Normalize blank lines in a markdown document.

    Exactly one blank line around headings and images and between blocks
    of different kinds, never more than one anywhere. With join_soft_wraps,
    paragraph lines broken mid-sentence are joined back together; clean
    markdown keeps its line breaks.
    """
    return apply_protected(
        text,
        lambda protected: _space_lines(protected, join_soft_wraps),
        MARKDOWN_PROTECTED_PATTERNS,
    ).strip()


# =============================================================================
# HTML
# =============================================================================


def _strip_bold_segment(segment: str, keep_questions: bool) -> str:
    def _replace(match: re.Match) -> str:
        if keep_questions and HTML_FAQ_QUESTION_REGEX.match(match.group(2)):
            return match.group(0)
        return match.group(2)

    return HTML_BOLD_REGEX.sub(_replace, segment)


def _heading_text(heading_html: str) -> str:
    return html.unescape(re.sub(r"<[^>]+>", "", heading_html)).strip()


def _strip_bold_html(text: str) -> str:
    in_faq_section = False
    output = []
    position = 0
    for heading in HTML_HEADING_REGEX.finditer(text):
        output.append(_strip_bold_segment(text[position:heading.start()], in_faq_section))
        if FAQ_HEADING_TEXT_REGEX.match(_heading_text(heading.group(0))):
            in_faq_section = True
        elif int(heading.group(1)) <= 2:
            in_faq_section = False
        output.append(_strip_bold_segment(heading.group(0), False))
        position = heading.end()
    output.append(_strip_bold_segment(text[position:], in_faq_section))
    return "".join(output)


def strip_bold_html(text: str) -> str:
    """Remove <strong>/<b> wrappers except FAQ questions (Q: ...) in the FAQ section."""
    return apply_protected(text, _strip_bold_html, HTML_PROTECTED_PATTERNS)


def _collapse(text: str) -> str:
    return re.sub(r"\n[ \t]*(?:\n[ \t]*)+", "\n", text)


def collapse_html_whitespace(text: str) -> str:
    """Drop blank lines between HTML blocks; <pre> and media keep theirs."""
    return apply_protected(text, _collapse, HTML_PROTECTED_PATTERNS).strip()
