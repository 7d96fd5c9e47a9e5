# -*- coding: utf-8 -*-
"""
Protect-and-restore for blocks that must survive bulk regex rewriting.

Embedded media (iframe/embed/object) is swapped for placeholder tokens
before a destructive pass and put back byte-for-byte afterwards:

    tokenized = tokenize(text)
    rewritten = some_regex_pass(tokenized.text)
    text = restore(rewritten, tokenized.spans)

restore(*tokenize(x)) == x holds for any input.
"""
import logging
import re
from dataclasses import dataclass
from typing import Callable, NamedTuple, Sequence

logger = logging.getLogger(__name__)

# Embedded media blocks. <iframe> may be left unclosed by the generator.
IFRAME_PATTERN = r"<iframe\b[^>]*>(?:.*?</iframe\s*>)?"
EMBED_PATTERN = r"<embed\b[^>]*/?>"
OBJECT_PATTERN = r"<object\b[^>]*>.*?</object\s*>"

DEFAULT_PROTECTED_PATTERNS = [IFRAME_PATTERN, EMBED_PATTERN, OBJECT_PATTERN]

# Extra patterns for callers that also need raw HTML blocks shielded
HTML_TABLE_PATTERN = r"<table\b[^>]*>.*?</table\s*>"
PRE_PATTERN = r"<pre\b[^>]*>.*?</pre\s*>"
TEXTAREA_PATTERN = r"<textarea\b[^>]*>.*?</textarea\s*>"
FENCED_CODE_PATTERN = r"(?m:^```[^\n]*\n.*?^```[ \t]*$)"

PLACEHOLDER_TEMPLATE = "__PROTECTED_{index}__"


@dataclass(frozen=True)
class ProtectedSpan:
    """A block replaced by a placeholder token."""

    placeholder: str
    original_content: str


class TokenizedText(NamedTuple):
    """Text with protected blocks replaced, plus the spans to restore."""

    text: str
    spans: list[ProtectedSpan]


def _compile(patterns: Sequence[str]) -> re.Pattern:
    return re.compile(
        "|".join(f"(?:{p})" for p in patterns),
        re.IGNORECASE | re.DOTALL,
    )


_DEFAULT_REGEX = _compile(DEFAULT_PROTECTED_PATTERNS)


def _occurrences(text: str, token: str) -> list[int]:
    """Every start offset of token in text, overlapping matches included."""
    positions = []
    start = text.find(token)
    while start != -1:
        positions.append(start)
        start = text.find(token, start + 1)
    return positions


def _substitute(
        text: str,
        blocks: list[re.Match],
        first_index: int,
) -> tuple[str, list[ProtectedSpan], dict[str, int], int]:
    """Swap blocks for placeholders numbered from first_index; also returns the next free index."""
    parts: list[str] = []
    spans: list[ProtectedSpan] = []
    offsets: dict[str, int] = {}
    index = first_index
    cursor = 0
    length = 0

    for match in blocks:
        token = PLACEHOLDER_TEMPLATE.format(index=index)
        while token in text:
            index += 1
            token = PLACEHOLDER_TEMPLATE.format(index=index)
        index += 1

        before = text[cursor:match.start()]
        parts.append(before)
        length += len(before)
        offsets[token] = length
        parts.append(token)
        length += len(token)
        spans.append(ProtectedSpan(placeholder=token, original_content=match.group(0)))
        cursor = match.end()

    parts.append(text[cursor:])
    return "".join(parts), spans, offsets, index


def tokenize(text: str, patterns: Sequence[str] | None = None) -> TokenizedText:
    """
    Replace every protected block with a unique placeholder.

    Blocks are collected left to right in a single scan, so a block nested
    inside another one (an <embed> inside an <object>) stays part of its
    parent. Placeholder indexes already present in the text are skipped.

    Each placeholder occurs exactly once in the result, where it was
    inserted. When surrounding text would form a second, overlapping
    occurrence (e.g. "__PROTECTED_0" right before a block), the whole set
    is renumbered from the next free index.
    """
    regex = _DEFAULT_REGEX if patterns is None else _compile(patterns)
    blocks = [m for m in regex.finditer(text) if m.group(0).strip()]
    if not blocks:
        return TokenizedText(text, [])

    first_index = 0
    while True:
        tokenized, spans, offsets, next_index = _substitute(text, blocks, first_index)
        if all(_occurrences(tokenized, token) == [offset] for token, offset in offsets.items()):
            break
        first_index = next_index

    logger.debug("Protected %d block(s)", len(spans))
    return TokenizedText(tokenized, spans)


def restore(text: str, spans: Sequence[ProtectedSpan]) -> str:
    """
    Put every protected block back in place of its placeholder.

    A single left-to-right scan: restored content is never scanned again,
    and each placeholder is restored at most once.
    """
    if not spans:
        return text

    originals = {span.placeholder: span.original_content for span in spans}
    for placeholder in originals:
        if placeholder not in text:
            # The surrounding region was removed on purpose (e.g. truncated tail)
            logger.warning(
                "Protected block not restored: placeholder missing",
                extra={"placeholder": placeholder},
            )

    restored: set[str] = set()

    def _put_back(match: re.Match) -> str:
        placeholder = match.group(0)
        if placeholder in restored:
            return placeholder
        restored.add(placeholder)
        return originals[placeholder]

    regex = re.compile("|".join(re.escape(p) for p in originals))
    return regex.sub(_put_back, text)


def apply_protected(
        text: str,
        transform: Callable[[str], str],
        patterns: Sequence[str] | None = None,
) -> str:
    """Run transform over text with protected blocks shielded."""
    tokenized = tokenize(text, patterns)
    return restore(transform(tokenized.text), tokenized.spans)
