# -*- coding: utf-8 -*-
"""
Markdown to HTML rendering and the repair passes that follow it.

Rendering uses Python-Markdown with the "extra" extension set (tables,
fenced code, raw HTML blocks). The repairs handle what generated text
gets wrong:
- image syntax the renderer could not parse
- image references with truncated URLs (entity ellipses, stray punctuation)
- pipe tables left as literal text inside a paragraph

Presentational styles are then inlined on bare tags, because destination
themes strip <style> blocks.
"""
import html
import logging
import re

import markdown

from .config import settings
from .errors import RenderFailure
from .protect import DEFAULT_PROTECTED_PATTERNS, PRE_PATTERN, apply_protected
from .sections import TABLE_SEPARATOR_REGEX

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]

# Already-rendered HTML starts with a block-level tag
LIKELY_HTML_REGEX = re.compile(
    r"^\s*<(?:p|h[1-6]|div|section|article|figure|table|ul|ol|blockquote)\b[^>]*>",
    re.IGNORECASE,
)

LEADING_MARKDOWN_H1_REGEX = re.compile(r"^#[ \t]+[^\n]+(?:\n|$)")
LEADING_HTML_H1_REGEX = re.compile(r"^<h1[^>]*>.*?</h1>", re.IGNORECASE | re.DOTALL)

LEFTOVER_IMAGE_REGEX = re.compile(
    r"!\[(?P<alt>[^\]]*)\]\((?P<url>[^)\n]*?)(?:\s+[\"'][^\"'\n]*[\"'])?\)"
)
IMG_TAG_REGEX = re.compile(r"<img\b[^>]*?\bsrc=[\"'](?P<src>[^\"']*)[\"'][^>]*>", re.IGNORECASE)
EMPTY_PARAGRAPH_REGEX = re.compile(r"<p>\s*</p>\s*", re.IGNORECASE)

# Generation artifacts inside a URL: cut-off ellipsis, whitespace, quotes
MALFORMED_URL_REGEX = re.compile(r"&(?:amp;)?(?:hellip|#8230|#x2026);|…|\.\.\.|\s|[\"<>]", re.IGNORECASE)
VALID_URL_START_REGEX = re.compile(r"^(?:https?:)?//|^/(?!/)", re.IGNORECASE)
STRAY_PUNCTUATION = ",;:!?.]*'"

# Pipe tables the renderer left in a paragraph, rows split by newlines or <br>
PARAGRAPH_TABLE_REGEX = re.compile(r"<p>(\s*\|[^<]*(?:<br\s*/?>[^<]*)*)</p>", re.IGNORECASE)
# One <p> per row
CONSECUTIVE_PIPE_REGEX = re.compile(r"(?:<p>\s*\|[^<]+\|\s*</p>\s*){2,}", re.IGNORECASE)
PIPE_PARAGRAPH_REGEX = re.compile(r"<p>\s*(\|[^<]+\|)\s*</p>", re.IGNORECASE)

TABLE_CLASS = "ai-gradient-table"

PARAGRAPH_STYLE = "margin-top: 1.5em; margin-bottom: 1.5em; line-height: 1.75;"
FIRST_PARAGRAPH_STYLE = "margin-top: 0; margin-bottom: 1.5em; line-height: 1.75;"
HEADING_STYLES = {
    "h2": "margin-top: 2em; margin-bottom: 1em; font-weight: 700;",
    "h3": "margin-top: 1.75em; margin-bottom: 0.875em; font-weight: 700;",
    "h4": "margin-top: 1.5em; margin-bottom: 0.75em; font-weight: 700;",
    "h5": "margin-top: 1.5em; margin-bottom: 0.75em; font-weight: 700;",
    "h6": "margin-top: 1.5em; margin-bottom: 0.75em; font-weight: 700;",
}
TABLE_STYLES = {
    "table": (
        "margin-top: 2.5rem; margin-bottom: 2.5rem; width: 100%; border-collapse: separate; "
        "border-spacing: 0; background: #ffffff; border-radius: 22px; overflow: hidden; "
        "box-shadow: 0 18px 40px rgba(15, 23, 42, 0.12); font-size: 15px; "
        "border: 1px solid rgba(226, 232, 240, 0.9);"
    ),
    "thead": "background: linear-gradient(120deg, #5561ff 0%, #8c4bff 55%, #b44bff 100%);",
    "th": (
        "color: #f8fafc; font-weight: 600; text-align: left; padding: 18px 26px; "
        "font-size: 0.8rem; text-transform: uppercase; letter-spacing: 0.08em; border: none;"
    ),
    "td": (
        "padding: 20px 26px; color: #0f172a; line-height: 1.6; border: none; font-weight: 500; "
        "border-bottom: 1px solid rgba(226, 232, 240, 0.9);"
    ),
    "tr": "transition: transform 0.15s ease, box-shadow 0.15s ease;",
}

HEADER_IMAGE_CLASS = "ai-header-image"

TOC_HEADING = "Table of Contents"
TOC_INSERT_AFTER_CHARS = 300


def is_likely_html(text: str) -> bool:
    """Check if a body is already rendered HTML rather than markdown."""
    return bool(LIKELY_HTML_REGEX.match(text))


def strip_leading_heading(content: str) -> str:
    """Remove a leading H1 (markdown or HTML); the platform shows the title itself."""
    if not content:
        return content
    working = content.lstrip("\ufeff").lstrip()

    match = LEADING_MARKDOWN_H1_REGEX.match(working) or LEADING_HTML_H1_REGEX.match(working)
    if match:
        return working[match.end():].lstrip()
    return content


def render_markdown(text: str) -> str:
    """
    Convert markdown to HTML.

    Raises:
        RenderFailure: If the renderer itself fails
    """
    try:
        return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)
    except Exception as e:
        logger.error(f"Markdown rendering failed: {e}", exc_info=True)
        raise RenderFailure(f"Markdown rendering failed: {e}") from e


# =============================================================================
# Image repair
# =============================================================================


def is_malformed_image_url(url: str) -> bool:
    """Truncated or decorated URLs from generation artifacts."""
    candidate = html.unescape(url.strip())
    if not candidate or not VALID_URL_START_REGEX.match(candidate):
        return True
    if MALFORMED_URL_REGEX.search(url.strip()) or MALFORMED_URL_REGEX.search(candidate):
        return True
    return candidate[-1] in STRAY_PUNCTUATION


def _image_tag(url: str, alt: str) -> str:
    return f'<img alt="{html.escape(alt.strip(), quote=True)}" src="{html.escape(url.strip(), quote=True)}" />'


def _fix_images(text: str) -> str:
    def _leftover(match: re.Match) -> str:
        url = match.group("url")
        if is_malformed_image_url(url):
            logger.debug(f"Dropping malformed image reference: {url!r}")
            return ""
        return _image_tag(url, match.group("alt"))

    def _tag(match: re.Match) -> str:
        if is_malformed_image_url(match.group("src")):
            logger.debug(f"Dropping image with malformed src: {match.group('src')!r}")
            return ""
        return match.group(0)

    text = LEFTOVER_IMAGE_REGEX.sub(_leftover, text)
    text = IMG_TAG_REGEX.sub(_tag, text)
    return EMPTY_PARAGRAPH_REGEX.sub("", text)


def fix_images(text: str) -> str:
    """Render surviving markdown images and drop malformed image references."""
    return apply_protected(text, _fix_images, DEFAULT_PROTECTED_PATTERNS + [PRE_PATTERN])


# =============================================================================
# Table repair
# =============================================================================


def parse_table_rows(rows: list[str]) -> list[list[str]]:
    """Split pipe rows into cells, dropping separator rows and outer empty cells."""
    parsed = []
    for row in rows:
        row = row.strip()
        if not row or TABLE_SEPARATOR_REGEX.match(row):
            continue
        cells = [cell.strip() for cell in row.split("|")]
        if cells and cells[0] == "":
            cells.pop(0)
        if cells and cells[-1] == "":
            cells.pop()
        if cells:
            parsed.append(cells)
    return parsed


def build_table(rows: list[list[str]]) -> str | None:
    """Build a <table> from parsed rows; the first row is the header."""
    if len(rows) < 2 or not rows[0]:
        return None
    headers, body = rows[0], rows[1:]

    parts = ["<table>", "<thead>", "<tr>"]
    parts.extend(f"<th>{header}</th>" for header in headers)
    parts.extend(["</tr>", "</thead>", "<tbody>"])
    for row in body:
        parts.append("<tr>")
        parts.extend(f"<td>{row[i] if i < len(row) else ''}</td>" for i in range(len(headers)))
        parts.append("</tr>")
    parts.extend(["</tbody>", "</table>"])
    return "\n".join(parts)


def _table_from_rows(rows: list[str]) -> str | None:
    rows = [row.strip() for row in rows if row.strip().startswith("|") and row.strip().endswith("|")]
    if not any(TABLE_SEPARATOR_REGEX.match(row) for row in rows):
        return None
    return build_table(parse_table_rows(rows))


def convert_pipe_tables(text: str) -> str:
    """Rebuild pipe tables the renderer left as paragraph text."""

    def _paragraph(match: re.Match) -> str:
        rows = re.split(r"<br\s*/?>|\n", match.group(1), flags=re.IGNORECASE)
        return _table_from_rows(rows) or match.group(0)

    def _consecutive(match: re.Match) -> str:
        rows = PIPE_PARAGRAPH_REGEX.findall(match.group(0))
        return _table_from_rows(rows) or match.group(0)

    text = PARAGRAPH_TABLE_REGEX.sub(_paragraph, text)
    return CONSECUTIVE_PIPE_REGEX.sub(_consecutive, text)


# =============================================================================
# Presentation
# =============================================================================


def _add_table_class(match: re.Match) -> str:
    attrs = match.group(1)
    if re.search(rf"\b{TABLE_CLASS}\b", attrs):
        return match.group(0)
    class_attr = re.search(r'class="([^"]*)"', attrs, re.IGNORECASE)
    if class_attr:
        attrs = attrs.replace(class_attr.group(0), f'class="{class_attr.group(1)} {TABLE_CLASS}"', 1)
        return f"<table{attrs}>"
    return f'<table class="{TABLE_CLASS}"{attrs}>'


def _style_tags(text: str) -> str:
    text = re.sub(r"<p>", f'<p style="{PARAGRAPH_STYLE}">', text, flags=re.IGNORECASE)
    text = re.sub(
        r'<(h[2-6])((?:\s+id="[^"]*")?)>',
        lambda m: f'<{m.group(1)}{m.group(2)} style="{HEADING_STYLES[m.group(1).lower()]}">',
        text,
        flags=re.IGNORECASE,
    )
    text = re.sub(
        r'^(\s*)<p style="' + re.escape(PARAGRAPH_STYLE) + '">',
        rf'\1<p style="{FIRST_PARAGRAPH_STYLE}">',
        text,
    )
    for tag, style in TABLE_STYLES.items():
        text = re.sub(rf"<{tag}>", f'<{tag} style="{style}">', text, flags=re.IGNORECASE)
    return re.sub(r"<table\b([^>]*)>", _add_table_class, text, flags=re.IGNORECASE)


def apply_inline_styles(text: str) -> str:
    """
    Inline spacing and table styles on bare tags.

    Tags that already carry attributes (other than a heading id) are left
    alone, so applying the styles twice changes nothing.
    """
    return apply_protected(text, _style_tags)


def insert_header_image(text: str, image_url: str | None, alt_text: str = "") -> str:
    """Prepend a featured image figure; replaces a leading <h1> if there is one."""
    url = (image_url or "").strip()
    if not re.match(r"^https?://", url, re.IGNORECASE) or HEADER_IMAGE_CLASS in text:
        return text

    alt = html.escape(alt_text.strip() or "Featured article image", quote=True)
    figure = (
        f'<figure class="{HEADER_IMAGE_CLASS}" style="margin: 0 0 2.5rem 0; width: 100%; '
        f'border-radius: 28px; overflow: hidden;">'
        f'<img src="{html.escape(url, quote=True)}" alt="{alt}" '
        f'style="display: block; width: 100%; height: auto; max-height: 520px; object-fit: cover;" '
        f'loading="lazy" decoding="async" />'
        f"</figure>"
    )
    stripped = text.lstrip()
    heading = LEADING_HTML_H1_REGEX.match(stripped)
    if heading:
        stripped = stripped[heading.end():].lstrip()
    return f"{figure}\n{stripped}"


# =============================================================================
# Table of contents
# =============================================================================


def slugify(text: str) -> str:
    """URL-friendly anchor id for a heading."""
    text = html.unescape(re.sub(r"<[^>]+>", "", text)).lower()
    text = re.sub(r"[^a-z0-9\s-]", "", text)
    text = re.sub(r"\s+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def _unique_slug(text: str, seen: dict[str, int]) -> str:
    slug = slugify(text) or "section"
    seen[slug] = seen.get(slug, 0) + 1
    return slug if seen[slug] == 1 else f"{slug}-{seen[slug]}"


def _markdown_heading_text(text: str) -> str:
    text = re.sub(r"\[([^\]]+)\]\([^)]*\)", r"\1", text)
    return re.sub(r"[*_`]", "", text).strip()


def add_table_of_contents(text: str) -> str:
    """
    Insert a "Table of Contents" list built from the H2/H3 headings.

    Goes before the first H2 found past the introduction. Documents with
    fewer than TOC_MIN_HEADINGS headings, or with a contents section
    already, are returned unchanged.
    """
    if re.search(rf"^##[ \t]+{TOC_HEADING}[ \t]*$", text, re.IGNORECASE | re.MULTILINE):
        return text

    headings = re.findall(r"^(##|###)[ \t]+(.+?)[ \t#]*$", text, re.MULTILINE)
    if len(headings) < settings.TOC_MIN_HEADINGS:
        return text

    seen: dict[str, int] = {}
    entries = []
    for hashes, raw in headings:
        label = _markdown_heading_text(raw)
        indent = "  " if len(hashes) == 3 else ""
        entries.append(f"{indent}* [{label}](#{_unique_slug(label, seen)})")
    toc = f"## {TOC_HEADING}\n\n" + "\n".join(entries) + "\n"

    lines = text.split("\n")
    h2_indexes = [i for i, line in enumerate(lines) if line.startswith("## ")]
    if not h2_indexes:
        return text
    insert_at = h2_indexes[0]
    consumed = 0
    for index, line in enumerate(lines):
        consumed += len(line)
        if consumed > TOC_INSERT_AFTER_CHARS and index in h2_indexes:
            insert_at = index
            break

    lines[insert_at:insert_at] = [toc]
    return "\n".join(lines)


def add_heading_ids(text: str) -> str:
    """Give bare <h2>/<h3> tags slug ids matching the table of contents links."""
    seen: dict[str, int] = {}

    def _add_id(match: re.Match) -> str:
        tag, inner = match.group(1), match.group(2)
        if slugify(inner) == slugify(TOC_HEADING):
            return match.group(0)
        return f'<{tag} id="{_unique_slug(inner, seen)}">{inner}</{tag}>'

    return re.sub(r"<(h[23])>(.*?)</\1>", _add_id, text, flags=re.IGNORECASE | re.DOTALL)


# =============================================================================
# Full render
# =============================================================================


def render_document(body: str) -> str:
    """
    Render a normalized markdown body to publishable HTML.

    Bodies that are already HTML skip the markdown renderer and go
    straight to the repair and styling passes.

    Raises:
        RenderFailure: If the markdown renderer fails
    """
    content = strip_leading_heading(body.strip())
    if is_likely_html(content):
        rendered = content
    else:
        rendered = render_markdown(content)

    rendered = fix_images(rendered)
    rendered = convert_pipe_tables(rendered)
    if settings.ENABLE_TABLE_OF_CONTENTS:
        rendered = add_heading_ids(rendered)
    if settings.ENABLE_INLINE_STYLES:
        rendered = apply_inline_styles(rendered)
    return rendered
