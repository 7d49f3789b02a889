"""Tests for error collection and strict mode."""

import unittest

from cleanhtml import CleanHTML, ParseError, StrictModeError


class TestErrorCollection(unittest.TestCase):
    """Test that errors are collected when collect_errors=True."""

    def test_no_errors_by_default(self):
        """By default, errors list is not populated (for performance)."""
        doc = CleanHTML("<p>\x00</p></span>")
        assert doc.errors == []

    def test_collect_errors_enabled(self):
        """When collect_errors=True, parse errors are collected."""
        doc = CleanHTML("<p>\x00</p>", collect_errors=True)
        assert len(doc.errors) > 0
        assert all(isinstance(e, ParseError) for e in doc.errors)

    def test_null_character_position(self):
        doc = CleanHTML("<p>\x00</p>", collect_errors=True)
        error = doc.errors[0]
        assert error.code == "unexpected-null-character"
        assert error.line == 1
        assert error.column == 4

    def test_error_column_after_newline(self):
        """Error column is calculated relative to the last newline."""
        doc = CleanHTML("line1\nline2\x00", collect_errors=True)
        error = doc.errors[0]
        assert error.line == 2
        assert error.column == 6

    def test_crlf_counts_as_one_line_break(self):
        doc = CleanHTML("a\r\nb\r\n</span>", collect_errors=True)
        error = doc.errors[0]
        assert error.code == "unexpected-end-tag"
        assert error.line == 3
        assert error.column == 1

    def test_valid_fragment_has_no_errors(self):
        doc = CleanHTML('<p title="x">Hello <b>world</b></p>\n<ul><li>a</li></ul>', collect_errors=True)
        assert doc.errors == []

    def test_nesting_too_deep_is_reported(self):
        doc = CleanHTML("<b>" * 5, collect_errors=True, max_depth=3)
        codes = [e.code for e in doc.errors]
        assert codes.count("nesting-too-deep") == 2


class TestStrictMode(unittest.TestCase):
    """Test strict mode that raises on parse errors."""

    def test_strict_mode_raises(self):
        """Strict mode raises StrictModeError on first error."""
        with self.assertRaises(StrictModeError) as ctx:
            CleanHTML("<p>\x00</p>", strict=True)
        assert isinstance(ctx.exception.error, ParseError)
        assert ctx.exception.error.code == "unexpected-null-character"

    def test_strict_mode_valid_html(self):
        """Strict mode with valid HTML doesn't raise."""
        doc = CleanHTML("<!DOCTYPE html><p>Test</p>", strict=True)
        assert doc.root is not None
        assert doc.errors == []

    def test_strict_mode_enables_error_collection(self):
        with self.assertRaises(StrictModeError) as ctx:
            CleanHTML("<p>text</span>", strict=True)
        error = ctx.exception.error
        assert error.line is not None
        assert error.column is not None

    def test_strict_mode_error_is_syntax_error(self):
        with self.assertRaises(SyntaxError):
            CleanHTML("<div att", strict=True)


class TestParseError(unittest.TestCase):
    """Test ParseError class behavior."""

    def test_parse_error_str(self):
        """ParseError has readable string representation."""
        error = ParseError("test-error", line=1, column=5)
        assert str(error) == "(1,5): test-error"

    def test_parse_error_repr(self):
        """ParseError has useful repr."""
        error = ParseError("test-error", line=1, column=5)
        assert "test-error" in repr(error)
        assert "line=1" in repr(error)
        assert "column=5" in repr(error)

    def test_parse_error_equality(self):
        """ParseErrors with same values are equal."""
        e1 = ParseError("error-code", line=1, column=5)
        e2 = ParseError("error-code", line=1, column=5)
        e3 = ParseError("other-error", line=1, column=5)
        assert e1 == e2
        assert e1 != e3

    def test_parse_error_equality_with_non_parseerror(self):
        """ParseError compared with non-ParseError returns NotImplemented."""
        e1 = ParseError("error-code", line=1, column=5)
        assert e1.__eq__("not a ParseError") is NotImplemented

    def test_parse_error_no_location_with_message(self):
        """ParseError with message but no location."""
        error = ParseError("test-error", message="This is a test error")
        assert str(error) == "test-error - This is a test error"
        assert "line=" not in repr(error)


class TestTokenizerErrors(unittest.TestCase):
    """Test tokenizer-specific errors are collected."""

    def test_unexpected_eof_in_tag(self):
        doc = CleanHTML("<div att", collect_errors=True)
        assert [e.code for e in doc.errors] == ["eof-in-tag"]

    def test_duplicate_attribute(self):
        doc = CleanHTML('<p title="a" TITLE="b"></p>', collect_errors=True)
        assert "duplicate-attribute" in [e.code for e in doc.errors]

    def test_end_tag_with_attributes(self):
        doc = CleanHTML('<p></p class="x">', collect_errors=True)
        assert "end-tag-with-attributes" in [e.code for e in doc.errors]

    def test_invalid_first_character_of_tag_name(self):
        doc = CleanHTML("a < b", collect_errors=True)
        assert [e.code for e in doc.errors] == ["invalid-first-character-of-tag-name"]


class TestTreeBuilderErrors(unittest.TestCase):
    """Test tree builder errors are collected."""

    def test_unexpected_end_tag(self):
        doc = CleanHTML("</span>", collect_errors=True)
        assert [e.code for e in doc.errors] == ["unexpected-end-tag"]

    def test_treebuilder_error_after_newline(self):
        html = "<p>\n<b>\n</span>"
        doc = CleanHTML(html, collect_errors=True)
        end_tag_errors = [e for e in doc.errors if e.code == "unexpected-end-tag"]
        assert end_tag_errors[0].line == 3

    def test_open_elements_at_eof(self):
        doc = CleanHTML("<p><b>x", collect_errors=True)
        assert "expected-closing-tag-but-got-eof" in [e.code for e in doc.errors]


if __name__ == "__main__":
    unittest.main()
