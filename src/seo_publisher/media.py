# -*- coding: utf-8 -*-
"""
Image placeholder substitution and distribution.

Image URLs are hosted elsewhere; this module only decides where each one
goes in the markdown:

    [IMAGE_PLACEMENT:"a loaf of bread"]  ->  ![a loaf of bread](<url>)
    [Image: a loaf of bread]             ->  ![a loaf of bread](<url>)
    [Table: comparison of flours]        ->  (removed)

URLs left over once every placeholder is filled are spread evenly over the
H2 sections that follow the last image of the document.
"""
import logging
import re
from dataclasses import dataclass, field

from .sections import SectionKind, classify_lines, is_faq_heading

logger = logging.getLogger(__name__)

IMAGE_PLACEHOLDER_REGEX = re.compile(
    r"(?<!!)\[IMAGE_PLACEMENT:\s*[\"“](?P<placement>[^\"“”\]\n]*)[\"”]\s*\](?!\()"
    r"|(?<!!)\[Image:\s*(?P<description>[^\]\n]+)\](?!\()",
    re.IGNORECASE,
)
TABLE_PLACEHOLDER_REGEX = re.compile(r"(?<!!)\[Table:\s*[^\]\n]*\](?!\()", re.IGNORECASE)
MARKDOWN_IMAGE_REGEX = re.compile(r"!\[[^\]]*\]\([^)]+\)")


@dataclass
class MediaResult:
    """Markdown with images placed, plus what happened to each URL."""

    markdown: str
    placed: int = 0
    distributed: int = 0
    dropped_placeholders: int = 0
    unused_urls: list[str] = field(default_factory=list)


def clean_alt_text(text: str) -> str:
    text = re.sub(r"[\[\]*_`]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def pending_urls(markdown: str, image_urls: list[str] | None) -> list[str]:
    """URLs not yet referenced by the document, in order, without duplicates."""
    urls = [url.strip() for url in image_urls or [] if url and url.strip()]
    return [url for url in dict.fromkeys(urls) if url not in markdown]


def substitute_placeholders(markdown: str, urls: list[str]) -> tuple[str, int, int]:
    """
    Fill image placeholders in document order.

    A placeholder alone on its line becomes an image line; one embedded in
    text becomes its own block. Placeholders with no URL left are removed.

    Returns:
        Tuple of (markdown, placed_count, dropped_count)
    """
    queue = list(urls)
    placed = 0
    dropped = 0

    def _replace(match: re.Match) -> str:
        nonlocal placed, dropped
        if not queue:
            dropped += 1
            return ""
        alt = clean_alt_text(match.group("placement") or match.group("description") or "")
        image = f"![{alt}]({queue.pop(0)})"
        placed += 1

        line_start = markdown.rfind("\n", 0, match.start()) + 1
        line_end = markdown.find("\n", match.end())
        if line_end == -1:
            line_end = len(markdown)
        alone = not markdown[line_start:match.start()].strip() and not markdown[match.end():line_end].strip()
        return image if alone else f"\n\n{image}\n\n"

    result = IMAGE_PLACEHOLDER_REGEX.sub(_replace, markdown)
    result = TABLE_PLACEHOLDER_REGEX.sub("", result)
    return result, placed, dropped


def distribute_images(markdown: str, urls: list[str]) -> tuple[str, int]:
    """
    Insert images after H2 headings that follow the last image in the text.

    Sections are picked at even intervals; FAQ sections are skipped. The
    heading text becomes the alt text.

    Returns:
        Tuple of (markdown, inserted_count)
    """
    if not urls:
        return markdown, 0

    lines = classify_lines(markdown)
    last_image = max(
        (i for i, line in enumerate(lines) if MARKDOWN_IMAGE_REGEX.search(line.text)),
        default=-1,
    )
    sections = [
        i for i, line in enumerate(lines)
        if i > last_image
        and line.kind is SectionKind.HEADING
        and line.level == 2
        and not is_faq_heading(line)
    ]
    if not sections:
        return markdown, 0

    count = min(len(urls), len(sections))
    chosen = [sections[(k * len(sections)) // count] for k in range(count)]

    texts = [line.text for line in lines]
    for index, url in reversed(list(zip(chosen, urls))):
        alt = clean_alt_text(lines[index].heading_text)
        texts[index + 1:index + 1] = ["", f"![{alt}]({url})", ""]
    return "\n".join(texts), count


def place_images(markdown: str, image_urls: list[str] | None = None) -> MediaResult:
    """Substitute placeholders, then distribute whatever URLs remain."""
    urls = pending_urls(markdown, image_urls)
    text, placed, dropped = substitute_placeholders(markdown, urls)
    remaining = urls[placed:]
    text, distributed = distribute_images(text, remaining)

    result = MediaResult(
        markdown=text,
        placed=placed,
        distributed=distributed,
        dropped_placeholders=dropped,
        unused_urls=remaining[distributed:],
    )
    if placed or distributed or dropped:
        logger.debug(
            f"Images placed={placed} distributed={distributed} dropped={dropped}",
            extra={"unused": len(result.unused_urls)},
        )
    return result
