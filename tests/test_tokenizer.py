import unittest

from cleanhtml.tokenizer import Tokenizer, TokenizerOpts, preprocess_input
from cleanhtml.tokens import CharacterTokens, CommentToken, EOFToken, Tag


class _CollectingSink:
    def __init__(self):
        self.tokens = []

    def process_token(self, token):
        self.tokens.append(token)


def tokenize(html, rawtext_tags=None):
    sink = _CollectingSink()
    Tokenizer(sink, TokenizerOpts(rawtext_tags=rawtext_tags)).run(html)
    assert isinstance(sink.tokens[-1], EOFToken)
    return sink.tokens[:-1]


def text_of(tokens):
    return "".join(t.data for t in tokens if isinstance(t, CharacterTokens))


def tags_of(tokens):
    return [t for t in tokens if isinstance(t, Tag)]


class TestTags(unittest.TestCase):
    def test_names_are_lowercased(self):
        tokens = tokenize("<P CLASS=x>Hi</P>")
        start, text, end = tokens
        assert start.kind == Tag.START
        assert start.name == "p"
        assert start.attrs == {"class": "x"}
        assert text.data == "Hi"
        assert end.kind == Tag.END
        assert end.name == "p"

    def test_duplicate_attribute_keeps_first(self):
        (tag,) = tokenize('<a href="1" HREF="2">')
        assert tag.attrs == {"href": "1"}

    def test_attribute_value_forms(self):
        (tag,) = tokenize("<a one=1 two='2' three=\"3\" four = \"4\" five>")
        assert tag.attrs == {"one": "1", "two": "2", "three": "3", "four": "4", "five": ""}

    def test_attribute_order_is_preserved(self):
        (tag,) = tokenize('<a title="t" href="h" rel="r">')
        assert list(tag.attrs) == ["title", "href", "rel"]

    def test_attribute_values_are_decoded(self):
        (tag,) = tokenize('<a title="&lt;b&gt; &amp; &#106;">')
        assert tag.attrs["title"] == "<b> & j"

    def test_legacy_entity_in_attribute_before_alnum_is_literal(self):
        (tag,) = tokenize('<a href="?a=1&copy=2&amp;b=3">')
        assert tag.attrs["href"] == "?a=1&copy=2&b=3"

    def test_self_closing_flag(self):
        (tag,) = tokenize("<br/>")
        assert tag.self_closing
        (tag,) = tokenize("<a href='x'/>")
        assert tag.self_closing
        assert tag.attrs == {"href": "x"}

    def test_slash_between_attributes(self):
        (tag,) = tokenize("<p/title=x>")
        assert tag.attrs == {"title": "x"}
        assert not tag.self_closing

    def test_unquoted_value_ends_at_whitespace(self):
        (tag,) = tokenize("<a href=javascript:alert(1) onclick=x>")
        assert tag.attrs == {"href": "javascript:alert(1)", "onclick": "x"}

    def test_incomplete_tag_at_eof_is_dropped(self):
        assert tokenize("<a href=") == []
        assert tokenize('<a href="x') == []
        tokens = tokenize("x<b")
        assert text_of(tokens) == "x"
        assert tags_of(tokens) == []

    def test_lone_less_than_is_text(self):
        tokens = tokenize("a < b <<c>")
        assert text_of(tokens) == "a < b <"
        assert [t.name for t in tags_of(tokens)] == ["c"]

    def test_empty_end_tag_is_ignored(self):
        assert text_of(tokenize("a</>b")) == "ab"

    def test_unicode_letters_do_not_start_a_tag(self):
        assert text_of(tokenize("<\u00e9>")) == "<\u00e9>"


class TestText(unittest.TestCase):
    def test_entities_in_text(self):
        assert text_of(tokenize("&lt;script&gt; &amp;amp; &notit;")) == "<script> &amp; \u00acit;"

    def test_newlines_are_normalized(self):
        assert text_of(tokenize("a\r\nb\rc")) == "a\nb\nc"

    def test_null_becomes_replacement_character(self):
        assert text_of(tokenize("a\x00b")) == "a\ufffdb"

    def test_bom_is_dropped(self):
        assert text_of(tokenize("\ufeffx")) == "x"

    def test_preprocess_replaces_lone_surrogates(self):
        assert preprocess_input("a\ud800b") == "a\ufffdb"


class TestRawText(unittest.TestCase):
    def test_script_content_is_opaque(self):
        tokens = tokenize("<script><b>x</b></script>y")
        assert [(t.kind, t.name) for t in tags_of(tokens)] == [(Tag.START, "script"), (Tag.END, "script")]
        assert tokens[1].data == "<b>x</b>"
        assert tokens[-1].data == "y"

    def test_end_tag_match_is_case_insensitive(self):
        tokens = tokenize("<style>a</STYLE >b")
        assert tags_of(tokens)[-1].name == "style"
        assert tokens[-1].data == "b"

    def test_similar_end_tag_does_not_close(self):
        tokens = tokenize("<script></scripts></script>")
        assert tokens[1].data == "</scripts>"

    def test_unterminated_raw_text_runs_to_eof(self):
        tokens = tokenize("<xmp></xmp")
        assert tokens[1].data == "</xmp"
        assert len(tags_of(tokens)) == 1

    def test_rcdata_decodes_entities(self):
        tokens = tokenize("<textarea>&lt;/textarea&gt;</textarea>")
        assert tokens[1].data == "</textarea>"

    def test_rawtext_does_not_decode_entities(self):
        tokens = tokenize("<script>&lt;</script>")
        assert tokens[1].data == "&lt;"

    def test_extra_rawtext_tags(self):
        tokens = tokenize("<svg><b onload=x>y</b></svg>z", rawtext_tags={"svg", "img"})
        assert tokens[1].data == "<b onload=x>y</b>"
        assert tokens[-1].data == "z"

    def test_void_tags_are_never_rawtext(self):
        tokens = tokenize("<img><b>x</b>", rawtext_tags={"img"})
        assert [t.name for t in tags_of(tokens)] == ["img", "b", "b"]

    def test_plaintext_swallows_everything(self):
        tokens = tokenize("<plaintext></plaintext><b>&amp;")
        assert tokens[1].data == "</plaintext><b>&amp;"

    def test_plaintext_stays_plaintext_when_listed_as_rawtext(self):
        tokens = tokenize("<plaintext></plaintext><b>", rawtext_tags={"plaintext"})
        assert tokens[1].data == "</plaintext><b>"


class TestMarkupDeclarations(unittest.TestCase):
    def test_comment(self):
        tokens = tokenize("<!-- x -->a")
        assert isinstance(tokens[0], CommentToken)
        assert tokens[0].data == " x "
        assert tokens[1].data == "a"

    def test_comment_hides_markup(self):
        tokens = tokenize("<!--<script>alert(1)</script>-->")
        assert len(tokens) == 1
        assert isinstance(tokens[0], CommentToken)

    def test_abrupt_comments(self):
        for html in ("<!-->x", "<!--->x"):
            tokens = tokenize(html)
            assert isinstance(tokens[0], CommentToken)
            assert tokens[0].data == ""
            assert text_of(tokens) == "x"

    def test_comment_closed_with_bang(self):
        tokens = tokenize("<!--a--!>b")
        assert tokens[0].data == "a"
        assert text_of(tokens) == "b"

    def test_unterminated_comment_runs_to_eof(self):
        tokens = tokenize("<!--a<b>")
        assert len(tokens) == 1
        assert tokens[0].data == "a<b>"

    def test_doctype_cdata_and_processing_instructions_are_comments(self):
        for html in ("<!DOCTYPE html>x", "<![CDATA[<b>]]>x", "<?php echo 1 ?>x", "<!bogus>x", "</ b>x"):
            tokens = tokenize(html)
            assert isinstance(tokens[0], CommentToken), html
            assert tags_of(tokens) == [], html


class TestPositions(unittest.TestCase):
    def test_position_is_one_based(self):
        sink = _CollectingSink()
        tokenizer = Tokenizer(sink)
        tokenizer.run("ab\ncd\nef")
        assert tokenizer.position(0) == (1, 1)
        assert tokenizer.position(4) == (2, 2)
        assert tokenizer.position(8) == (3, 3)
        assert tokenizer.position(1) == (1, 2)


if __name__ == "__main__":
    unittest.main()
