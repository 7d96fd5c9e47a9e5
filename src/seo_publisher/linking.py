# -*- coding: utf-8 -*-
"""
Link & mention injection into rendered HTML.

Three injectors run in a fixed order, each on the previous one's output:
1. internal: links to the author's own posts
2. external: links to authoritative third-party sources
3. promotional: one mention of the author's business

Each one takes (html, title, max_insertions, provider) and returns
(html, inserted). Candidates come from a LinkCandidateProvider; everything
about where a link goes is decided here. Links are only placed in text
outside anchors, headings and code, and never inside a tag.
"""
import asyncio
import html as html_lib
import logging
import re
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Protocol, runtime_checkable

from bs4 import BeautifulSoup

from .config import settings
from .errors import InjectorUnavailable, PipelineError
from .protect import restore, tokenize

logger = logging.getLogger(__name__)


class LinkKind(str, Enum):
    INTERNAL = "internal"
    EXTERNAL = "external"
    PROMOTIONAL = "promotional"


LINK_CLASSES = {
    LinkKind.INTERNAL: "internal-link",
    LinkKind.EXTERNAL: "external-link",
    LinkKind.PROMOTIONAL: "business-promotion-link",
}

LINK_STYLES = {
    LinkKind.INTERNAL: (
        "font-weight: 700; color: #1d4ed8; text-decoration: underline; "
        "text-decoration-thickness: 2px; text-underline-offset: 3px;"
    ),
    LinkKind.EXTERNAL: (
        "font-weight: 700; color: #059669; text-decoration: underline; "
        "text-decoration-thickness: 2px; text-underline-offset: 3px;"
    ),
    LinkKind.PROMOTIONAL: (
        "font-weight: 600; color: #059669; text-decoration: none; "
        "border-bottom: 1px solid #059669;"
    ),
}

TAG_REGEX = re.compile(r"<[^>]+>")
TAG_NAME_REGEX = re.compile(r"^<\s*(/?)\s*([a-zA-Z][a-zA-Z0-9]*)")

# Text inside these elements never receives a link
NO_LINK_ELEMENTS = {
    "a", "h1", "h2", "h3", "h4", "h5", "h6", "script", "style",
    "code", "pre", "button", "figcaption", "textarea", "th",
}

# Words never used alone as anchor text
ANCHOR_STOPWORDS = {"the", "a", "an", "in", "on", "at", "to", "for", "of", "with", "by", "and", "or"}

PARAGRAPH_REGEX = re.compile(r"(<p\b[^>]*>)(.*?)(</p\s*>)", re.IGNORECASE | re.DOTALL)

# Paragraph cues for a business mention, each with the sentence it gets
MENTION_TRIGGERS = [
    (
        re.compile(r"\b(solution|tool|platform|service|software|system)s?\s+(that|which|to)\b", re.IGNORECASE),
        "{link} is one {noun} built for exactly this.",
    ),
    (
        re.compile(r"\b(many|some|several)\s+(companies|businesses|platforms|tools)\b", re.IGNORECASE),
        "Companies like {link} already offer this.",
    ),
    (
        re.compile(r"\b(enables?|allows?|helps?|provides?|offers?)\b", re.IGNORECASE),
        "Platforms such as {link} make this easier.",
    ),
    (
        re.compile(r"\b(consider|recommend|suggest|using|utilize)\b", re.IGNORECASE),
        "Tools like {link} can help here.",
    ),
]

# Mentions go in the middle of the article, spaced apart
MENTION_ZONE = (0.15, 0.80)
MENTION_MIN_GAP = 0.20


@dataclass(frozen=True)
class LinkCandidate:
    """A link target offered by a provider."""

    anchor_text: str
    url: str
    title: str = ""
    description: str = ""


@runtime_checkable
class LinkCandidateProvider(Protocol):
    """Source of link candidates (own posts, search results, business profile)."""

    async def fetch_candidates(
            self, title: str, limit: int, context: str = ""
    ) -> list[LinkCandidate]:
        ...


@dataclass
class LinkBudget:
    """Bounded number of insertions for one injector run."""

    kind: LinkKind
    max_insertions: int
    inserted: int = 0

    @property
    def remaining(self) -> int:
        return max(0, self.max_insertions - self.inserted)

    @property
    def exhausted(self) -> bool:
        return self.remaining == 0

    def consume(self) -> None:
        if self.exhausted:
            raise ValueError(f"{self.kind.value} link budget exhausted")
        self.inserted += 1


class InjectionResult(NamedTuple):
    html: str
    inserted: int


# =============================================================================
# Anchor text
# =============================================================================


def _clean_word(word: str) -> str:
    return re.sub(r"[^\w]", "", word.replace("'s", ""))


def _normalize(text: str) -> str:
    return re.sub(r"\s+", " ", re.sub(r"[^\w\s]", "", text)).strip().casefold()


def candidate_phrases(anchor_text: str) -> list[str]:
    """
    Phrases to look for in the text, most specific first.

    The full anchor text, then capitalized brand-like words, two-word
    phrases of important words and long single words. Capitalized
    phrases come before lowercase ones, longer before shorter.
    """
    full = re.sub(r"[^\w\s'-]", "", html_lib.unescape(anchor_text)).strip()
    words = full.split()
    important = [
        w for w in words
        if len(_clean_word(w)) > 4 or (len(_clean_word(w)) >= 3 and w[:1].isupper())
    ]

    phrases: list[str] = []
    for word in words:
        clean = _clean_word(word)
        if len(clean) >= 5 and clean[:1].isupper() and clean.lower() not in ANCHOR_STOPWORDS:
            phrases.append(clean)
    for first, second in zip(important, important[1:]):
        phrases.append(f"{_clean_word(first)} {_clean_word(second)}")
    for word in important:
        clean = _clean_word(word)
        if len(clean) >= 5 and clean.lower() not in ANCHOR_STOPWORDS:
            phrases.append(clean)

    phrases.sort(key=lambda p: (not p[:1].isupper(), -len(p)))

    ordered: list[str] = []
    seen = set()
    for phrase in [full] + phrases:
        key = phrase.casefold()
        if phrase and key not in seen:
            seen.add(key)
            ordered.append(phrase)
    return ordered


def phrase_regex(phrase: str) -> re.Pattern:
    """Whole-word, case-insensitive match, possessive allowed."""
    body = r"\s+".join(re.escape(part) for part in phrase.split())
    return re.compile(rf"(?<![\w-]){body}(?:'s)?(?![\w-])", re.IGNORECASE)


def build_anchor(kind: LinkKind, url: str, text: str) -> str:
    attrs = [
        f'href="{html_lib.escape(url, quote=True)}"',
        f'class="{LINK_CLASSES[kind]}"',
        'data-link-type="auto-generated"',
    ]
    if kind is not LinkKind.INTERNAL:
        attrs.extend(['target="_blank"', 'rel="noopener noreferrer"'])
    attrs.append(f'style="{LINK_STYLES[kind]}"')
    return f"<a {' '.join(attrs)}>{text}</a>"


# =============================================================================
# Safe insertion
# =============================================================================


def _track_tag(tag: str, depth: Counter) -> None:
    match = TAG_NAME_REGEX.match(tag)
    if not match:
        return
    closing, name = match.group(1), match.group(2).lower()
    if name not in NO_LINK_ELEMENTS or tag.rstrip().endswith("/>"):
        return
    if closing:
        if depth[name]:
            depth[name] -= 1
    else:
        depth[name] += 1


def linkable_segments(text: str):
    """Yield (start, end) of text runs where a link may be placed."""
    depth: Counter = Counter()
    position = 0
    for tag in TAG_REGEX.finditer(text):
        if tag.start() > position and not sum(depth.values()):
            yield position, tag.start()
        _track_tag(tag.group(0), depth)
        position = tag.end()
    if position < len(text) and not sum(depth.values()):
        yield position, len(text)


def insert_link(html: str, phrase: str, make_anchor: Callable[[str], str]) -> str | None:
    """
    Wrap the first linkable occurrence of phrase in an anchor.

    Returns:
        Updated HTML, or None if the phrase has no linkable occurrence
    """
    tokenized = tokenize(html)
    text = tokenized.text
    regex = phrase_regex(phrase)
    for start, end in linkable_segments(text):
        match = regex.search(text, start, end)
        if match:
            linked = text[:match.start()] + make_anchor(match.group(0)) + text[match.end():]
            return restore(linked, tokenized.spans)
    return None


def plain_text(html: str) -> str:
    """Visible text of an HTML fragment, whitespace collapsed."""
    soup = BeautifulSoup(html, "lxml")
    return re.sub(r"\s+", " ", soup.get_text(" ")).strip()


def has_links_of_kind(html: str, kind: LinkKind) -> bool:
    soup = BeautifulSoup(html, "lxml")
    return soup.find("a", class_=LINK_CLASSES[kind]) is not None


def existing_hrefs(html: str) -> set[str]:
    soup = BeautifulSoup(html, "lxml")
    return {a["href"] for a in soup.find_all("a", href=True)}


# =============================================================================
# Injectors
# =============================================================================


async def _fetch(
        kind: LinkKind,
        provider: LinkCandidateProvider,
        title: str,
        limit: int,
        context: str,
        timeout: float | None,
        issues: list[PipelineError] | None,
) -> list[LinkCandidate]:
    """Bounded candidate lookup. Any failure means no candidates."""
    timeout = settings.LINK_LOOKUP_TIMEOUT if timeout is None else timeout
    try:
        return await asyncio.wait_for(
            provider.fetch_candidates(title, limit, context=context), timeout
        )
    except asyncio.TimeoutError:
        issue = InjectorUnavailable(f"{kind.value} link lookup timed out after {timeout}s")
    except InjectorUnavailable as e:
        issue = e
    except Exception as e:
        logger.error(f"{kind.value} link provider failed: {e}", exc_info=True)
        issue = InjectorUnavailable(f"{kind.value} link provider failed: {e}")

    logger.warning(str(issue), extra={"link_kind": kind.value})
    if issues is not None:
        issues.append(issue)
    return []


async def _inject_links(
        kind: LinkKind,
        html: str,
        title: str,
        max_insertions: int,
        provider: LinkCandidateProvider | None,
        timeout: float | None,
        issues: list[PipelineError] | None,
) -> InjectionResult:
    budget = LinkBudget(kind=kind, max_insertions=max(0, max_insertions))
    if budget.exhausted or provider is None:
        return InjectionResult(html, 0)
    if has_links_of_kind(html, kind):
        logger.debug(f"Document already has {kind.value} links, skipping")
        return InjectionResult(html, 0)

    candidates = await _fetch(kind, provider, title, budget.max_insertions, plain_text(html), timeout, issues)
    own_title = _normalize(title)
    linked_urls = existing_hrefs(html)

    for candidate in candidates:
        if budget.exhausted:
            break
        if not candidate.url or candidate.url in linked_urls:
            continue
        if own_title and _normalize(candidate.title or candidate.anchor_text) == own_title:
            continue

        for phrase in candidate_phrases(candidate.anchor_text):
            updated = insert_link(html, phrase, lambda text, c=candidate: build_anchor(kind, c.url, text))
            if updated is not None:
                html = updated
                linked_urls.add(candidate.url)
                budget.consume()
                logger.debug(f"Linked {phrase!r} to {candidate.url}", extra={"link_kind": kind.value})
                break

    if budget.inserted:
        logger.info(f"Inserted {budget.inserted} {kind.value} link(s)")
    return InjectionResult(html, budget.inserted)


async def inject_internal_links(
        html: str,
        title: str,
        max_insertions: int,
        provider: LinkCandidateProvider | None,
        timeout: float | None = None,
        issues: list[PipelineError] | None = None,
) -> InjectionResult:
    """Link phrases to the author's own related posts."""
    return await _inject_links(LinkKind.INTERNAL, html, title, max_insertions, provider, timeout, issues)


async def inject_external_links(
        html: str,
        title: str,
        max_insertions: int,
        provider: LinkCandidateProvider | None,
        timeout: float | None = None,
        issues: list[PipelineError] | None = None,
) -> InjectionResult:
    """Link key phrases to authoritative external sources."""
    return await _inject_links(LinkKind.EXTERNAL, html, title, max_insertions, provider, timeout, issues)


def _mention_sentence(candidate: LinkCandidate, paragraph_text: str) -> str | None:
    name = html_lib.escape(candidate.anchor_text)
    link = build_anchor(LinkKind.PROMOTIONAL, candidate.url, name) if candidate.url else name
    for trigger, template in MENTION_TRIGGERS:
        match = trigger.search(paragraph_text)
        if match:
            return template.format(link=link, noun=match.group(1).lower())
    return None


async def inject_promotional_mentions(
        html: str,
        title: str,
        max_insertions: int,
        provider: LinkCandidateProvider | None,
        timeout: float | None = None,
        issues: list[PipelineError] | None = None,
) -> InjectionResult:
    """
    Add a sentence mentioning the business to fitting paragraphs.

    The sentence goes at the end of a paragraph in the middle of the
    article whose text suggests a tool or service. Skipped entirely when
    the business is already named in the document.
    """
    budget = LinkBudget(kind=LinkKind.PROMOTIONAL, max_insertions=max(0, max_insertions))
    if budget.exhausted or provider is None:
        return InjectionResult(html, 0)

    candidates = await _fetch(LinkKind.PROMOTIONAL, provider, title, 1, plain_text(html), timeout, issues)
    if not candidates:
        return InjectionResult(html, 0)
    business = candidates[0]
    if not business.anchor_text.strip():
        return InjectionResult(html, 0)
    if business.anchor_text.casefold() in plain_text(html).casefold():
        logger.debug("Business already mentioned, skipping promotion")
        return InjectionResult(html, 0)

    tokenized = tokenize(html)
    text = tokenized.text
    length = len(text)
    chosen: list[tuple[int, str]] = []

    for paragraph in PARAGRAPH_REGEX.finditer(text):
        if len(chosen) >= budget.max_insertions:
            break
        position = paragraph.start() / length
        if not MENTION_ZONE[0] < position < MENTION_ZONE[1]:
            continue
        if any(abs(paragraph.start() - other) < length * MENTION_MIN_GAP for other, _ in chosen):
            continue
        content = plain_text(paragraph.group(2))
        if not content or content.startswith("Q:") or "__PROTECTED_" in content:
            continue
        sentence = _mention_sentence(business, content)
        if sentence:
            chosen.append((paragraph.start(), sentence))

    for start, sentence in reversed(chosen):
        paragraph = PARAGRAPH_REGEX.match(text, start)
        insert_at = paragraph.start(3)
        text = f"{text[:insert_at].rstrip()} {sentence}{text[insert_at:]}"
        budget.consume()

    if budget.inserted:
        logger.info(f"Inserted {budget.inserted} promotional mention(s) for {business.anchor_text!r}")
    return InjectionResult(restore(text, tokenized.spans), budget.inserted)
