# -*- coding: utf-8 -*-
"""
Document Publishing Pipeline for generated text to publishable HTML.

Strictly sequential steps, each consuming only the previous step's output:
1. Classification - Legacy labeled output vs. already-normalized markdown or HTML
2. Extraction - Title + body isolation (legacy only)
3. Boilerplate Stripping - Tail metadata, Key Takeaways, promo sentences on the body (legacy only)
4. Media Placement - Image placeholders and leftover image distribution
5. Formatting - Bold stripping, optional table of contents, spacing
6. Rendering - Markdown to HTML with image/table repair and inline styles
7. Link Injection - Internal, external, then promotional (async lookups)
8. Final Cleanup - Bold stripping and whitespace collapse on the HTML

Steps 1-5 (normalize) are synchronous and pure. Running the pipeline on
its own output gives the same result:
- its markdown always starts with an H1 and carries no legacy markers, so
  the second run takes the already-normalized path
- its HTML skips steps 2-5 and takes its title from the topic, since the
  published HTML does not repeat the title
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from bs4 import BeautifulSoup

from .boilerplate import strip_boilerplate
from .classifier import ClassificationResult, classify
from .config import settings
from .errors import ExtractionAmbiguous, PipelineError, RenderFailure
from .extraction import ExtractedDocument, extract_document, extract_html_title, extract_leading_title
from .formatting import (
    collapse_html_whitespace,
    normalize_spacing,
    strip_bold_html,
    strip_bold_markdown,
)
from .linking import (
    LinkCandidate,
    LinkCandidateProvider,
    LinkKind,
    inject_external_links,
    inject_internal_links,
    inject_promotional_mentions,
)
from .media import place_images
from .middleware import document_scope
from .providers import (
    BusinessProfileProvider,
    StaticCandidateProvider,
    TavilySourceProvider,
    WordPressPostsProvider,
)
from .renderer import (
    add_table_of_contents,
    insert_header_image,
    is_likely_html,
    render_document,
    strip_leading_heading,
)
from .sections import markdown_to_text, validate_structure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PublishDocument:
    """What the publish collaborator receives."""

    title: str
    html: str
    excerpt: str


@dataclass
class LinkOptions:
    """Per-document link injection switches, budgets and candidate pools."""

    include_internal: bool = field(default_factory=lambda: settings.ENABLE_INTERNAL_LINKS)
    include_external: bool = field(default_factory=lambda: settings.ENABLE_EXTERNAL_LINKS)
    include_promotional: bool = field(default_factory=lambda: settings.ENABLE_PROMOTIONAL_MENTIONS)
    max_internal: int = field(default_factory=lambda: settings.MAX_INTERNAL_LINKS)
    max_external: int = field(default_factory=lambda: settings.MAX_EXTERNAL_LINKS)
    max_promotional: int = field(default_factory=lambda: settings.MAX_PROMOTIONAL_MENTIONS)
    # Caller-supplied candidates replace the configured provider for that kind
    internal_candidates: list[LinkCandidate] | None = None
    external_candidates: list[LinkCandidate] | None = None
    business: LinkCandidate | None = None


@dataclass
class PipelineResult:
    """Result of the document publishing pipeline."""

    markdown: str
    title: str | None = None
    html: str = ""
    excerpt: str = ""
    classification: ClassificationResult | None = None
    steps_applied: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    issues: list[PipelineError] = field(default_factory=list)
    links: dict[str, int] = field(default_factory=dict)

    @property
    def body(self) -> str:
        """Markdown without its leading title heading."""
        return strip_leading_heading(self.markdown)

    @property
    def content_loss_detected(self) -> bool:
        return any(issue.code == "content_loss_detected" for issue in self.issues)

    def to_document(self) -> PublishDocument:
        return PublishDocument(title=self.title or "", html=self.html, excerpt=self.excerpt)


def build_excerpt(body: str, length: int | None = None) -> str:
    """
    First characters of the plain body without # and *, plus an ellipsis.

    An HTML body (a re-run over published output) is reduced to its text
    first, so both forms of a document give the same excerpt.
    """
    if is_likely_html(body):
        text = BeautifulSoup(body, "lxml").get_text(" ")
    else:
        text = markdown_to_text(body)
    text = re.sub(r"[#*]", "", text)
    text = re.sub(r"\s+", " ", text).strip()
    return f"{text[:length or settings.EXCERPT_LENGTH].rstrip()}..."


def _prepare_input(text: str) -> str:
    return (text or "").replace("\r\n", "\n").replace("\r", "\n").lstrip("\ufeff").strip()


class ContentPipeline:
    """
    Document publishing pipeline turning generated text into title, excerpt and HTML.

    Link providers default to the configured services; a service that is
    not configured contributes no links.
    """

    def __init__(
            self,
            internal_provider: LinkCandidateProvider | None = None,
            external_provider: LinkCandidateProvider | None = None,
            promotional_provider: LinkCandidateProvider | None = None,
    ):
        self.internal_provider = internal_provider
        self.external_provider = external_provider
        self.promotional_provider = promotional_provider

    def normalize(
            self,
            text: str,
            topic: str = "",
            image_urls: list[str] | None = None,
    ) -> PipelineResult:
        """
        Run the synchronous steps (1-5) and return the normalized markdown.

        Args:
            text: Raw generated text
            topic: Topic/keyword, used as the title fallback
            image_urls: Already-hosted image URLs to place

        Returns:
            PipelineResult with title, markdown and issues
        """
        with document_scope():
            return self._normalize(text, topic, image_urls)

    async def process(
            self,
            text: str,
            topic: str = "",
            image_urls: list[str] | None = None,
            link_options: LinkOptions | None = None,
            header_image_url: str | None = None,
    ) -> PipelineResult:
        """
        Run the full pipeline, up to the publishable HTML.

        Args:
            text: Raw generated text
            topic: Topic/keyword, used as the title fallback
            image_urls: Already-hosted image URLs to place
            link_options: Link switches and budgets. Defaults to settings.
            header_image_url: Featured image shown above the body

        Returns:
            PipelineResult with html, excerpt and link counts filled in

        Raises:
            RenderFailure: If the markdown renderer fails
        """
        options = link_options or LinkOptions()

        with document_scope():
            result = self._normalize(text, topic, image_urls)

            # Step 6: Rendering (fatal on failure)
            html = self._step_render(result.markdown)
            result.steps_applied.append("render")

            # Step 7: Link Injection
            html = await self._step_link_injection(html, result, options)

            # Step 8: Final Cleanup
            html = collapse_html_whitespace(strip_bold_html(html))
            if header_image_url:
                html = insert_header_image(html, header_image_url, result.title or "")
            result.steps_applied.append("final_cleanup")

            result.html = html
            result.excerpt = build_excerpt(result.body)
            logger.info(
                f"Document ready: {len(html)} chars of HTML, links={result.links}",
                extra={"issues": [issue.code for issue in result.issues]},
            )
            return result

    def _normalize(self, text: str, topic: str, image_urls: list[str] | None) -> PipelineResult:
        result = PipelineResult(markdown="")
        current = _prepare_input(text)

        # Step 1: Classification
        result.classification = classify(current)
        result.steps_applied.append("classify")

        if result.classification.is_html:
            return self._normalize_html(current, topic, image_urls, result)

        if result.classification.is_legacy:
            # Step 2: Extraction
            document = self._step_extraction(current, topic, result)
            result.title = document.title
            result.steps_applied.append("extraction")

            # Step 3: Boilerplate Stripping (end threshold measured on the body alone)
            body = document.body
            stripped = strip_boilerplate(body)
            if stripped.rules_applied:
                body = stripped.text
                result.metadata["boilerplate_rules"] = stripped.rules_applied
                result.steps_applied.append("boilerplate")

            # The title goes back on top as an H1 so the markdown is a
            # complete, already-normalized document
            current = f"# {document.title}\n\n{body}".strip()
        else:
            match = extract_leading_title(current, topic)
            result.title = match.title
            result.metadata["title_source"] = match.source
            if match.is_fallback:
                result.issues.append(
                    ExtractionAmbiguous(f"No H1 in normalized document, using topic {match.title!r}")
                )

        # Step 4: Media Placement
        media = place_images(current, image_urls)
        if media.placed or media.distributed or media.dropped_placeholders or media.markdown != current:
            current = media.markdown
            result.steps_applied.append("media")
        result.metadata["images"] = {
            "placed": media.placed,
            "distributed": media.distributed,
            "dropped_placeholders": media.dropped_placeholders,
            "unused": media.unused_urls,
        }

        # Step 5: Formatting
        current = self._step_formatting(current, join_soft_wraps=result.classification.is_legacy)
        result.steps_applied.append("formatting")

        result.markdown = current
        result.metadata["structure"] = validate_structure(current)
        return self._finish_normalize(result)

    def _normalize_html(
            self,
            html: str,
            topic: str,
            image_urls: list[str] | None,
            result: PipelineResult,
    ) -> PipelineResult:
        """
        Previously published HTML: resolve the title and pass the body through.

        Steps 2-5 work on markdown and do not apply. Published HTML carries
        no title, so the caller resupplies it as the topic.
        """
        match = extract_html_title(html, topic)
        result.title = match.title
        if match.is_fallback and (topic or "").strip():
            result.metadata["title_source"] = "topic"
        else:
            result.metadata["title_source"] = match.source
            if match.is_fallback:
                result.issues.append(
                    ExtractionAmbiguous(f"No title in HTML document and no topic, using {match.title!r}")
                )
        if image_urls:
            logger.warning(f"Ignoring {len(image_urls)} image URL(s) for an HTML document")

        result.markdown = html
        return self._finish_normalize(result)

    def _finish_normalize(self, result: PipelineResult) -> PipelineResult:
        for issue in result.issues:
            logger.warning(f"Pipeline issue: {issue}", extra={"code": issue.code})
        logger.info(
            f"Normalized document: legacy={result.classification.is_legacy}, "
            f"html={result.classification.is_html}, "
            f"{len(result.markdown)} chars, title={result.title!r}"
        )
        return result

    def _step_extraction(self, text: str, topic: str, result: PipelineResult) -> ExtractedDocument:
        """Step 2: Isolate title and body from legacy output."""
        document = extract_document(text, topic)
        result.issues.extend(document.issues)
        result.metadata["title_source"] = document.title_source
        result.metadata["content_marker_found"] = document.marker_found
        result.metadata["body_ratio"] = round(document.body_ratio, 3)
        return document

    def _step_formatting(self, markdown: str, join_soft_wraps: bool = True) -> str:
        """
        Step 5: Bold stripping, table of contents, spacing.

        Soft-wrapped lines are only joined in legacy output; clean markdown
        keeps its line breaks.
        """
        markdown = strip_bold_markdown(markdown)
        if settings.ENABLE_TABLE_OF_CONTENTS:
            markdown = add_table_of_contents(markdown)
        return normalize_spacing(markdown, join_soft_wraps=join_soft_wraps)

    def _step_render(self, markdown: str) -> str:
        """Step 6: Markdown to HTML. RenderFailure is not caught."""
        try:
            return render_document(markdown)
        except RenderFailure:
            logger.error("Rendering failed, document cannot be published")
            raise

    def _resolve_provider(self, kind: LinkKind, options: LinkOptions) -> LinkCandidateProvider | None:
        if kind is LinkKind.INTERNAL:
            if options.internal_candidates is not None:
                return StaticCandidateProvider(options.internal_candidates)
            if self.internal_provider is not None:
                return self.internal_provider
            return WordPressPostsProvider() if settings.WORDPRESS_API_URL else None
        if kind is LinkKind.EXTERNAL:
            if options.external_candidates is not None:
                return StaticCandidateProvider(options.external_candidates)
            if self.external_provider is not None:
                return self.external_provider
            return TavilySourceProvider() if settings.TAVILY_API_KEY else None
        if options.business is not None:
            return StaticCandidateProvider([options.business])
        if self.promotional_provider is not None:
            return self.promotional_provider
        return BusinessProfileProvider() if settings.BUSINESS_NAME else None

    async def _step_link_injection(self, html: str, result: PipelineResult, options: LinkOptions) -> str:
        """Step 7: Internal, external, then promotional; each on the previous output."""
        title = result.title or ""
        plan = [
            (LinkKind.INTERNAL, options.include_internal, options.max_internal, inject_internal_links),
            (LinkKind.EXTERNAL, options.include_external, options.max_external, inject_external_links),
            (LinkKind.PROMOTIONAL, options.include_promotional, options.max_promotional,
             inject_promotional_mentions),
        ]
        for kind, enabled, max_insertions, injector in plan:
            provider = self._resolve_provider(kind, options) if enabled else None
            if provider is None:
                result.links[kind.value] = 0
                continue
            html, inserted = await injector(html, title, max_insertions, provider, issues=result.issues)
            result.links[kind.value] = inserted

        if any(result.links.values()):
            result.steps_applied.append("link_injection")
        return html


# Global pipeline instance
content_pipeline = ContentPipeline()
