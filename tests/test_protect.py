# -*- coding: utf-8 -*-
"""
Tests for protect-and-restore of embedded blocks.
"""
from seo_publisher.protect import (
    FENCED_CODE_PATTERN,
    DEFAULT_PROTECTED_PATTERNS,
    ProtectedSpan,
    apply_protected,
    restore,
    tokenize,
)


class TestTokenize:
    """Tests for tokenize()."""

    def test_iframe_replaced_by_placeholder(self):
        """Should swap an iframe for a placeholder token."""
        text = 'Intro\n<iframe src="https://www.youtube.com/embed/x"></iframe>\nOutro'

        tokenized = tokenize(text)

        assert "<iframe" not in tokenized.text
        assert "__PROTECTED_0__" in tokenized.text
        assert tokenized.spans[0].original_content.startswith("<iframe")

    def test_unclosed_iframe_protected(self):
        """Should protect an iframe left without its closing tag."""
        tokenized = tokenize('Before <iframe src="x.html"> after')

        assert len(tokenized.spans) == 1
        assert tokenized.spans[0].original_content == '<iframe src="x.html">'

    def test_nested_embed_stays_in_object(self):
        """Should keep an embed inside an object as one block."""
        text = '<object data="a.swf"><embed src="a.swf"></object>'

        tokenized = tokenize(text)

        assert len(tokenized.spans) == 1
        assert tokenized.text == "__PROTECTED_0__"

    def test_existing_placeholder_index_skipped(self):
        """Should not reuse a placeholder already present in the text."""
        text = "__PROTECTED_0__ and <embed src='a'>"

        tokenized = tokenize(text)

        assert tokenized.spans[0].placeholder == "__PROTECTED_1__"
        assert restore(tokenized.text, tokenized.spans) == text

    def test_placeholder_unambiguous_next_to_lookalike_text(self):
        """Should renumber when preceding text would form a second placeholder."""
        text = "__PROTECTED_0<iframe src='a'></iframe>"

        tokenized = tokenize(text)

        assert tokenized.text == "__PROTECTED_0__PROTECTED_1__"
        assert tokenized.text.count(tokenized.spans[0].placeholder) == 1
        assert restore(tokenized.text, tokenized.spans) == text

    def test_custom_patterns(self):
        """Should protect fenced code when asked to."""
        text = "Text\n```python\nx = '**bold**'\n```\nMore"

        tokenized = tokenize(text, DEFAULT_PROTECTED_PATTERNS + [FENCED_CODE_PATTERN])

        assert "**bold**" not in tokenized.text
        assert len(tokenized.spans) == 1


class TestRestore:
    """Tests for restore()."""

    def test_round_trip_identity(self):
        """Should give back the exact input."""
        text = (
            "# Title\n\n<iframe width=\"560\" src=\"https://example.com/v\">\n</iframe>\n\n"
            "Some text <EMBED src=\"clip.mp4\" /> and more.\n"
        )

        tokenized = tokenize(text)

        assert restore(tokenized.text, tokenized.spans) == text

    def test_round_trip_with_lookalike_text(self):
        """Should give back the exact input when text around blocks mimics placeholders."""
        cases = [
            "__PROTECTED_0<iframe src='a'></iframe>",
            "<embed src='a'>__PROTECTED_0__ and __PROTECTED_<embed src='b'>1__",
            "__PROTECTED___PROTECTED_<object></object>0__<iframe src='c'>",
        ]

        for text in cases:
            tokenized = tokenize(text)
            assert restore(tokenized.text, tokenized.spans) == text

    def test_restored_content_not_rescanned(self):
        """Should not restore a placeholder that appears inside restored content."""
        spans = [
            ProtectedSpan(placeholder="__PROTECTED_0__", original_content="<embed alt='__PROTECTED_1__'>"),
            ProtectedSpan(placeholder="__PROTECTED_1__", original_content="<embed>"),
        ]

        result = restore("__PROTECTED_0__ then __PROTECTED_1__", spans)

        assert result == "<embed alt='__PROTECTED_1__'> then <embed>"

    def test_text_without_blocks_untouched(self):
        """Should leave plain text as is."""
        tokenized = tokenize("Nothing to protect here.")

        assert tokenized.spans == []
        assert restore(tokenized.text, tokenized.spans) == "Nothing to protect here."

    def test_missing_placeholder_is_skipped(self):
        """Should not fail when the placeholder was removed with its region."""
        spans = [ProtectedSpan(placeholder="__PROTECTED_0__", original_content="<embed>")]

        assert restore("tail removed", spans) == "tail removed"


class TestApplyProtected:
    """Tests for apply_protected()."""

    def test_transform_cannot_touch_block(self):
        """Should shield the block from the transform."""
        text = 'upper <iframe src="keep-me"></iframe> text'

        result = apply_protected(text, str.upper)

        assert result == 'UPPER <iframe src="keep-me"></iframe> TEXT'
