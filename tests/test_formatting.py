# -*- coding: utf-8 -*-
"""
Tests for bold stripping and spacing normalization.
"""
from seo_publisher.formatting import (
    collapse_html_whitespace,
    normalize_spacing,
    strip_bold_html,
    strip_bold_markdown,
)


class TestStripBoldMarkdown:
    """Tests for strip_bold_markdown()."""

    def test_removes_bold(self):
        """Should unwrap bold text."""
        assert strip_bold_markdown("Some **bold** text") == "Some bold text"

    def test_keeps_faq_questions(self):
        """Should keep bold questions inside the FAQ section only."""
        text = "## FAQ\n\n**Q: Can I freeze dough?**\nYes, **absolutely**."

        result = strip_bold_markdown(text)

        assert "**Q: Can I freeze dough?**" in result
        assert "Yes, absolutely." in result

    def test_question_outside_faq_stripped(self):
        """Should strip question markup outside the FAQ section."""
        assert strip_bold_markdown("**Q: Outside?**") == "Q: Outside?"

    def test_faq_closes_at_next_h2(self):
        """Should leave the FAQ state at the next H2."""
        text = "## FAQ\n\n**Q: A?**\n\n## After\n\n**Q: B?**"

        result = strip_bold_markdown(text)

        assert "**Q: A?**" in result
        assert result.endswith("Q: B?")

    def test_h3_stays_in_faq(self):
        """Should keep the FAQ state across sub-headings."""
        text = "## FAQ\n\n### General\n\n**Q: A?**"

        assert strip_bold_markdown(text) == text

    def test_fenced_code_untouched(self):
        """Should not touch bold markers in fenced code."""
        text = "Text **b**\n\n```\nx = **keep**\n```"

        assert strip_bold_markdown(text) == "Text b\n\n```\nx = **keep**\n```"


class TestNormalizeSpacing:
    """Tests for normalize_spacing()."""

    def test_blank_lines_around_headings(self):
        """Should separate headings from text."""
        text = "# Title\nIntro text.\n## Section\nBody."

        assert normalize_spacing(text) == "# Title\n\nIntro text.\n\n## Section\n\nBody."

    def test_collapses_blank_runs(self):
        """Should keep at most one blank line."""
        assert normalize_spacing("Para one.\n\n\n\nPara two.") == "Para one.\n\nPara two."

    def test_merges_soft_wrap(self):
        """Should join a paragraph broken mid-sentence."""
        text = "This sentence was\nbroken by the generator."

        assert normalize_spacing(text) == "This sentence was broken by the generator."

    def test_soft_wrap_kept_when_disabled(self):
        """Should keep line breaks of clean markdown."""
        text = "Mix flour and water.\nthen knead"

        assert normalize_spacing(text, join_soft_wraps=False) == text

    def test_keeps_separate_sentences(self):
        """Should not join lines that start a new sentence."""
        assert normalize_spacing("Line one\nLine two") == "Line one\nLine two"

    def test_lists_stay_tight(self):
        """Should separate a list from paragraphs but not its items."""
        text = "Intro:\n- a\n- b\nAfter."

        assert normalize_spacing(text) == "Intro:\n\n- a\n- b\n\nAfter."

    def test_images_stand_apart(self):
        """Should put blank lines around image lines."""
        text = "Text.\n![a loaf](https://cdn.test/a.png)\nMore."

        assert normalize_spacing(text) == "Text.\n\n![a loaf](https://cdn.test/a.png)\n\nMore."

    def test_idempotent(self):
        """Should not change already-normalized text."""
        text = "# T\nIntro\ncontinues.\n\n\n## S\n- a\n- b\n| x | y |\n|---|---|"

        once = normalize_spacing(text)

        assert normalize_spacing(once) == once


class TestHtmlPasses:
    """Tests for the HTML cleanup passes."""

    def test_strip_bold_html(self):
        """Should unwrap strong tags."""
        assert strip_bold_html("<p>Some <strong>bold</strong> text</p>") == "<p>Some bold text</p>"

    def test_strip_bold_html_keeps_faq_questions(self):
        """Should keep strong questions inside the FAQ section."""
        text = "<h2>FAQ</h2>\n<p><strong>Q: Why?</strong></p>\n<p><strong>A</strong></p>"

        result = strip_bold_html(text)

        assert "<strong>Q: Why?</strong>" in result
        assert "<p>A</p>" in result

    def test_strip_bold_html_faq_closes(self):
        """Should strip questions after the FAQ section ends."""
        text = (
            "<h2>FAQ</h2><p><strong>Q: A?</strong></p>"
            "<h2>Next</h2><p><strong>Q: B?</strong></p>"
        )

        result = strip_bold_html(text)

        assert "<strong>Q: A?</strong>" in result
        assert "<p>Q: B?</p>" in result

    def test_strip_bold_in_headings(self):
        """Should unwrap bold inside headings."""
        assert strip_bold_html("<h2><strong>Title</strong></h2>") == "<h2>Title</h2>"

    def test_pre_untouched(self):
        """Should not touch preformatted blocks."""
        text = "<pre><strong>x</strong></pre>"

        assert strip_bold_html(text) == text

    def test_collapse_whitespace(self):
        """Should drop blank lines between blocks but not in <pre>."""
        text = "<pre>a\n\nb</pre>\n\n<p>c</p>\n\n\n<p>d</p>"

        assert collapse_html_whitespace(text) == "<pre>a\n\nb</pre>\n<p>c</p>\n<p>d</p>"
