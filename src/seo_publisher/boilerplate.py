# -*- coding: utf-8 -*-
"""
Boilerplate stripping for the tail of generated documents.

Generators append metadata (SEO/image suggestions, calls to action),
"Key Takeaways" recaps and canned marketing sentences after the article.
Every rule here is confined to the tail region (the last TAIL_REGION_RATIO
of the body) and never touches anything at or after an FAQ heading.
"""
import logging
import re
from dataclasses import dataclass, field

from .classifier import STAR2
from .config import settings
from .protect import tokenize, restore
from .sections import find_faq_start

logger = logging.getLogger(__name__)

_STOP_KEYWORDS = r"(?:SEO[ \t]+Suggestions|Image[ \t]+Suggestions|Call[- ]to[- ]Action)"

# Section headers only: decorated ("4. **Image Suggestions**", "## SEO Suggestions")
# or the keyword alone on its line. A sentence mentioning a call to action is not one.
STOP_KEYWORD_REGEX = re.compile(
    r"^[ \t]*(?:\d+[.)][ \t]*|#{1,6}[ \t]*|" + STAR2 + r"[ \t]*)+" + _STOP_KEYWORDS + r"\b[^\n]*$"
    r"|^[ \t]*" + _STOP_KEYWORDS + r"[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

KEY_TAKEAWAYS_REGEX = re.compile(
    r"^(?P<hashes>#{1,6})[ \t]*(?:" + STAR2 + r")?[ \t]*Key[ \t]+Takeaways\b[^\n]*$"
    r"|^[ \t]*" + STAR2 + r"[ \t]*Key[ \t]+Takeaways[ \t]*:?[ \t]*" + STAR2 + r"[ \t]*:?[ \t]*$",
    re.IGNORECASE | re.MULTILINE,
)

HEADING_LINE_REGEX = re.compile(r"^(#{1,6})[ \t]+\S[^\n]*$", re.MULTILINE)

# Canned marketing openers
PROMOTIONAL_PHRASES = [
    r"Ready to (?:take|transform|boost|get|start|elevate|level up|grow|see)\b",
    r"Don'?t (?:wait|miss out|let)\b",
    r"(?:Contact|Call|Email) us (?:today|now)\b",
    r"Get started (?:today|now)\b",
    r"Sign up (?:today|now|for free)\b",
    r"Start your free trial\b",
    r"Schedule (?:a|your) (?:free )?(?:demo|consultation|call)\b",
    r"Book (?:a|your) (?:free )?(?:demo|consultation|call)\b",
    r"Visit our website\b",
    r"Click (?:here|the link)\b",
    r"Join (?:thousands|hundreds|millions) of\b",
    r"Take the (?:first|next) step\b",
    r"Let us help you\b",
]
PROMOTIONAL_SENTENCE_REGEX = re.compile(
    r"^(?:" + "|".join(PROMOTIONAL_PHRASES) + r")", re.IGNORECASE
)

# A sentence runs to its terminal punctuation or the end of the line
SENTENCE_REGEX = re.compile(r"[^\s.!?][^\n.!?]*(?:[.!?]+|$)", re.MULTILINE)

# Lines left with nothing but list/quote/bold markup after a removal
RESIDUE_LINE_REGEX = re.compile(r"^[ \t]*(?:[-*+>][ \t]*)?(?:\*\*)?[ \t]*$", re.MULTILINE)


@dataclass
class BoilerplateResult:
    """Stripped text and the rules that fired."""

    text: str
    end_threshold: int = 0
    rules_applied: list[str] = field(default_factory=list)


def is_promotional_sentence(sentence: str) -> bool:
    """Check if a sentence opens with a canned marketing phrase."""
    stripped = re.sub(r"^[\s\-*+>]*", "", sentence)
    return bool(PROMOTIONAL_SENTENCE_REGEX.match(stripped))


def _join(head: str, tail: str) -> str:
    head = head.rstrip()
    tail = tail.lstrip("\n")
    if not tail:
        return head
    return f"{head}\n\n{tail}" if head else tail


def truncate_at_stop_keyword(text: str, end_threshold: int) -> tuple[str, bool]:
    """
    Cut the tail at the first stop keyword header in the tail region.

    Skipped when an FAQ heading comes before the keyword, or when what
    follows the keyword is substantial content. An FAQ heading after the
    keyword bounds the cut.
    """
    keyword = next(
        (m for m in STOP_KEYWORD_REGEX.finditer(text) if m.start() >= end_threshold),
        None,
    )
    if keyword is None:
        return text, False

    faq = find_faq_start(text)
    if faq is not None and faq < keyword.start():
        logger.debug("Stop keyword after FAQ heading, not truncating")
        return text, False

    end = faq if faq is not None else len(text)
    remainder = text[keyword.end():end].strip()
    if len(remainder) > settings.SUBSTANTIAL_TAIL_CHARS:
        logger.debug(
            f"Stop keyword followed by {len(remainder)} chars, keeping it as content"
        )
        return text, False

    return _join(text[:keyword.start()], text[end:]), True


def remove_key_takeaways(text: str, end_threshold: int) -> tuple[str, bool]:
    """Remove a trailing Key Takeaways section whose heading is in the tail region."""
    faq = find_faq_start(text)
    for match in KEY_TAKEAWAYS_REGEX.finditer(text):
        start = match.start()
        if start < end_threshold:
            continue
        if faq is not None and start >= faq:
            return text, False

        # Section ends at the next heading of the same or a higher level
        level = len(match.group("hashes")) if match.group("hashes") else 6
        end = len(text)
        for heading in HEADING_LINE_REGEX.finditer(text, match.end()):
            if len(heading.group(1)) <= level:
                end = heading.start()
                break
        if faq is not None and start < faq < end:
            end = faq

        return _join(text[:start], text[end:]), True
    return text, False


def remove_promotional_sentences(text: str, end_threshold: int) -> tuple[str, int]:
    """
    Remove canned marketing sentences from the closing section.

    Requires PROMO_MIN_SENTENCES of them within the last PROMO_WINDOW_CHARS.
    Only sentences after the last section heading (and inside the tail
    region) are removed.
    """
    sentences = [
        m for m in SENTENCE_REGEX.finditer(text) if is_promotional_sentence(m.group(0))
    ]
    window_start = max(0, len(text) - settings.PROMO_WINDOW_CHARS)
    if sum(1 for m in sentences if m.start() >= window_start) < settings.PROMO_MIN_SENTENCES:
        return text, 0

    headings = list(HEADING_LINE_REGEX.finditer(text))
    region_start = max(headings[-1].end() if headings else 0, end_threshold)
    faq = find_faq_start(text)
    limit = faq if faq is not None else len(text)

    doomed = [m for m in sentences if m.start() >= region_start and m.end() <= limit]
    if not doomed:
        return text, 0

    for match in reversed(doomed):
        text = text[:match.start()] + text[match.end():]

    # Tidy the region the sentences were taken from
    head, tail = text[:region_start], text[region_start:]
    tail = RESIDUE_LINE_REGEX.sub("", tail)
    tail = re.sub(r"[ \t]+$", "", tail, flags=re.MULTILINE)
    tail = re.sub(r"\n{3,}", "\n\n", tail)
    return (head + tail).rstrip(), len(doomed)


def strip_boilerplate(text: str) -> BoilerplateResult:
    """
    Apply the tail rules in order: stop keywords, Key Takeaways, promo sentences.

    Runs on tokenized text so embedded media can only disappear together
    with a removed region.
    """
    tokenized = tokenize(text)
    body = tokenized.text
    end_threshold = int(len(body) * (1 - settings.TAIL_REGION_RATIO))
    result = BoilerplateResult(text=text, end_threshold=end_threshold)

    body, truncated = truncate_at_stop_keyword(body, end_threshold)
    if truncated:
        result.rules_applied.append("stop_keyword")

    body, removed = remove_key_takeaways(body, end_threshold)
    if removed:
        result.rules_applied.append("key_takeaways")

    body, promo_count = remove_promotional_sentences(body, end_threshold)
    if promo_count:
        result.rules_applied.append("promotional_sentences")

    if result.rules_applied:
        result.text = restore(body, tokenized.spans)
        logger.debug(
            f"Stripped boilerplate: {len(text)} -> {len(result.text)} chars",
            extra={"rules": result.rules_applied, "end_threshold": end_threshold},
        )
    return result
