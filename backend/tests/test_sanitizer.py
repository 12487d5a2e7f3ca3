"""
Inkwell Backend — Sanitizer Unit Tests
========================================

What we test:
    ✅ Entity table for < > " ' &
    ✅ Non-strings pass through, plain text is unchanged
    ✅ Single-pass escaping re-escapes existing entities
    ✅ Rich-text filter removes script/iframe blocks, javascript: and handlers
    ✅ Mapping sanitization touches top-level strings only
"""

import pytest

from inkwell.services.sanitizer import DenylistSanitizer


@pytest.fixture
def sanitizer():
    return DenylistSanitizer()


class TestScalar:

    @pytest.mark.parametrize(
        "raw, escaped",
        [
            ("<", "&lt;"),
            (">", "&gt;"),
            ('"', "&quot;"),
            ("'", "&#x27;"),
            ("&", "&amp;"),
            ("<b>Tom & Jerry's</b>", "&lt;b&gt;Tom &amp; Jerry&#x27;s&lt;/b&gt;"),
        ],
    )
    def test_escapes_special_characters(self, sanitizer, raw, escaped):
        assert sanitizer.sanitize_scalar(raw) == escaped

    @pytest.mark.parametrize("value", [42, 3.5, True, None, ["<a>"], {"k": "<"}])
    def test_non_strings_pass_through(self, sanitizer, value):
        assert sanitizer.sanitize_scalar(value) == value

    def test_plain_text_is_unchanged(self, sanitizer):
        text = "Hello world, this is post number 7!"
        assert sanitizer.sanitize_scalar(text) == text
        assert sanitizer.sanitize_scalar(sanitizer.sanitize_scalar(text)) == text

    def test_existing_entities_are_escaped_again(self, sanitizer):
        assert sanitizer.sanitize_scalar("&lt;") == "&amp;lt;"


class TestRichText:

    def test_removes_script_block_across_lines(self, sanitizer):
        text = "before<SCRIPT type='text/javascript'>\nalert(1)\n</script>after"
        assert sanitizer.sanitize_rich_text(text) == "beforeafter"

    def test_removes_iframe_block(self, sanitizer):
        text = 'x<iframe src="https://evil.example"></iframe>y'
        assert sanitizer.sanitize_rich_text(text) == "xy"

    def test_removes_javascript_scheme(self, sanitizer):
        assert sanitizer.sanitize_rich_text("JavaScript:alert(1)") == "alert(1)"

    def test_neutralizes_event_handlers(self, sanitizer):
        cleaned = sanitizer.sanitize_rich_text('<img src=x onerror = "steal()">')
        assert "onerror" not in cleaned
        assert cleaned == '<img src=x  "steal()">'

    def test_ordinary_prose_is_untouched(self, sanitizer):
        text = "Online tools are great. Once upon a time."
        assert sanitizer.sanitize_rich_text(text) == text

    def test_non_strings_pass_through(self, sanitizer):
        assert sanitizer.sanitize_rich_text(None) is None


class TestMapping:

    def test_only_top_level_strings_are_escaped(self, sanitizer):
        data = {"title": "<h1>", "count": 3, "nested": {"inner": "<b>"}, "tags": ["<i>"]}
        result = sanitizer.sanitize_mapping(data)
        assert result == {
            "title": "&lt;h1&gt;",
            "count": 3,
            "nested": {"inner": "<b>"},
            "tags": ["<i>"],
        }
        # Input is not mutated
        assert data["title"] == "<h1>"
