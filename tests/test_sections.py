# -*- coding: utf-8 -*-
"""
Tests for line classification, structure report and the input classifier.
"""
from seo_publisher.classifier import classify, has_legacy_markers
from seo_publisher.config import settings
from seo_publisher.sections import (
    SectionKind,
    classify_line,
    classify_lines,
    find_faq_start,
    is_faq_heading,
    markdown_to_text,
    validate_structure,
)


class TestClassifyLine:
    """Tests for classify_line()."""

    def test_heading(self):
        """Should detect heading and level."""
        line = classify_line("## Choosing Flour")

        assert line.kind is SectionKind.HEADING
        assert line.level == 2
        assert line.heading_text == "Choosing Flour"

    def test_kinds(self):
        """Should tell each block kind apart."""
        assert classify_line("").kind is SectionKind.BLANK
        assert classify_line("- item").kind is SectionKind.LIST_ITEM
        assert classify_line("2. item").kind is SectionKind.LIST_ITEM
        assert classify_line("> quoted").kind is SectionKind.BLOCKQUOTE
        assert classify_line("| a | b |").kind is SectionKind.TABLE_ROW
        assert classify_line("![alt](https://x.test/a.png)").kind is SectionKind.IMAGE
        assert classify_line("__PROTECTED_3__").kind is SectionKind.IMAGE
        assert classify_line("Plain text.").kind is SectionKind.PARAGRAPH

    def test_hashtag_is_not_heading(self):
        """Should need a space after the hashes."""
        assert classify_line("#hashtag").kind is SectionKind.PARAGRAPH

    def test_list_continuation(self):
        """Should keep indented lines after a list item in the list."""
        lines = classify_lines("- first item\n  continues here\nParagraph")

        assert [line.kind for line in lines] == [
            SectionKind.LIST_ITEM,
            SectionKind.LIST_ITEM,
            SectionKind.PARAGRAPH,
        ]


class TestFaqDetection:
    """Tests for FAQ heading detection."""

    def test_faq_heading_variants(self):
        """Should accept the usual FAQ heading names."""
        for text in ("## FAQ", "## FAQs", "### Frequently Asked Questions", "## **FAQ**"):
            assert is_faq_heading(classify_line(text)), text

    def test_not_faq(self):
        """Should reject other headings and paragraphs."""
        assert not is_faq_heading(classify_line("## Conclusion"))
        assert not is_faq_heading(classify_line("FAQ"))

    def test_find_faq_start(self):
        """Should return the offset of the first FAQ heading."""
        text = "Intro\n\n## FAQ\n\n**Q: Why?**"

        assert find_faq_start(text) == text.index("## FAQ")
        assert find_faq_start("No questions here") is None


class TestMarkdownToText:
    """Tests for markdown_to_text()."""

    def test_strips_markup(self):
        """Should keep only readable text."""
        markdown = "## Title\n\nSome **bold** and [a link](https://x.test).\n\n![img](a.png)"

        assert markdown_to_text(markdown) == "Title Some bold and a link."


class TestValidateStructure:
    """Tests for validate_structure()."""

    def test_short_document_reports_issues(self):
        """Should list every missing element."""
        report = validate_structure("# Title\n\n## One\n\nText.")

        assert report["is_valid"] is False
        assert report["h2_count"] == 1
        assert report["has_table"] is False
        assert report["has_faq"] is False
        assert len(report["issues"]) == 5

    def test_counts_tables_and_faq(self):
        """Should detect a table separator row and an FAQ heading."""
        markdown = "## A\n\n| x | y |\n|---|---|\n| 1 | 2 |\n\n## FAQ\n\n**Q: Why?**"

        report = validate_structure(markdown)

        assert report["has_table"] is True
        assert report["has_faq"] is True
        assert report["h2_count"] == 2


class TestClassifier:
    """Tests for the legacy/normalized classifier."""

    def test_numbered_labels_are_legacy(self, legacy_document):
        """Should classify labeled output as legacy."""
        result = classify(legacy_document)

        assert result.is_legacy is True
        assert result.has_legacy_markers is True

    def test_markdown_is_normalized(self, normalized_document):
        """Should pass clean markdown through."""
        result = classify(normalized_document)

        assert result.is_legacy is False
        assert result.has_multiple_headings is True
        assert result.heading_count == 3

    def test_markers_win_over_headings(self):
        """Should treat a long markdown document with a label as legacy."""
        text = "# Heading\n\n**Content**\n\n" + "Paragraph text. " * 100

        assert classify(text).is_legacy is True

    def test_short_unmarked_text_is_legacy(self):
        """Should extract from short text without headings."""
        result = classify("Just a few words of text.")

        assert result.is_legacy is True
        assert result.is_substantial is False

    def test_long_unmarked_text_is_normalized(self):
        """Should pass through substantial text without headings."""
        text = "Sentence. " * (settings.SUBSTANTIAL_CONTENT_THRESHOLD // 10 + 1)

        assert classify(text).is_legacy is False

    def test_published_html_is_normalized(self):
        """Should never send rendered HTML through extraction."""
        html = '<p style="margin-top: 0;">Some intro.</p>\n<h2>Section</h2>\n<p>Body text.</p>'

        result = classify(html)

        assert result.is_html is True
        assert result.is_legacy is False
        assert result.heading_count == 1

    def test_marker_variants(self):
        """Should recognize bold, numbered and escaped labels."""
        assert has_legacy_markers("**Title:** Something")
        assert has_legacy_markers("2. **Meta Description**")
        assert has_legacy_markers("\\*\\*Content\\*\\*")
        assert has_legacy_markers("**Content**")
        assert not has_legacy_markers("The content of this post is **great**.")

    def test_to_dict(self, normalized_document):
        """Should expose all fields."""
        data = classify(normalized_document).to_dict()

        assert set(data) == {
            "is_legacy",
            "has_multiple_headings",
            "is_substantial",
            "heading_count",
            "has_legacy_markers",
            "is_html",
        }
