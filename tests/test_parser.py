import textwrap
import time
import unittest

from cleanhtml import DEFAULT_POLICY, CleanHTML, SanitizationPolicy, parse, to_test_format


def tree(html, **kwargs):
    return to_test_format(CleanHTML(html, **kwargs).root)


def expected(text):
    return textwrap.dedent(text).strip("\n")


def max_element_depth(root):
    deepest = 0
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        deepest = max(deepest, depth)
        for child in node.children or []:
            if child.name != "#text":
                stack.append((child, depth + 1))
    return deepest


class TestTreeConstruction(unittest.TestCase):
    def test_simple_fragment(self):
        assert tree('<p class=x title="t">Hi<b>there</b></p>') == expected(
            """
            | <p>
            |   class="x"
            |   title="t"
            |   "Hi"
            |   <b>
            |     "there"
            """
        )

    def test_block_start_tag_closes_paragraph(self):
        assert tree("<p>a<div>b</div>") == expected(
            """
            | <p>
            |   "a"
            | <div>
            |   "b"
            """
        )

    def test_paragraph_closes_paragraph(self):
        assert tree("<p>a<p>b") == expected(
            """
            | <p>
            |   "a"
            | <p>
            |   "b"
            """
        )

    def test_list_items_close_each_other(self):
        assert tree("<ul><li>a<li>b</ul>") == expected(
            """
            | <ul>
            |   <li>
            |     "a"
            |   <li>
            |     "b"
            """
        )

    def test_nested_list_shields_outer_item(self):
        assert tree("<li>a<ul><li>b</ul>") == expected(
            """
            | <li>
            |   "a"
            |   <ul>
            |     <li>
            |       "b"
            """
        )

    def test_anchor_closes_open_anchor(self):
        assert tree("<a>1<b><a>2") == expected(
            """
            | <a>
            |   "1"
            |   <b>
            | <a>
            |   "2"
            """
        )

    def test_heading_closes_current_heading(self):
        assert tree("<h1>a<h2>b") == expected(
            """
            | <h1>
            |   "a"
            | <h2>
            |   "b"
            """
        )

    def test_end_tag_pops_to_matching_element(self):
        assert tree("<b><i>x</b>y") == expected(
            """
            | <b>
            |   <i>
            |     "x"
            | "y"
            """
        )

    def test_unmatched_end_tag_is_ignored(self):
        assert tree("a</span>b") == '| "ab"'

    def test_stray_br_and_p_end_tags(self):
        assert tree("a</br>b</p>") == expected(
            """
            | "a"
            | <br>
            | "b"
            | <p>
            """
        )

    def test_void_elements_take_no_children(self):
        assert tree("<br>x<hr/>y") == expected(
            """
            | <br>
            | "x"
            | <hr>
            | "y"
            """
        )

    def test_trailing_solidus_on_non_void_is_ignored(self):
        assert tree("<b/>x") == expected(
            """
            | <b>
            |   "x"
            """
        )

    def test_comments_are_discarded(self):
        assert tree("a<!-- c -->b<!DOCTYPE html>c") == '| "abc"'

    def test_newline_after_pre_is_dropped(self):
        assert tree("<pre>\n\nx</pre>") == '| <pre>\n|   "\nx"'
        assert tree("<pre><b>\nx</b></pre>") == '| <pre>\n|   <b>\n|     "\nx"'

    def test_rcdata_content(self):
        assert tree("<textarea>\n<b>&amp;</b></textarea>") == expected(
            """
            | <textarea>
            |   "<b>&</b>"
            """
        )

    def test_bytes_input(self):
        assert tree(b"<p>caf\xc3\xa9 \xff</p>") == '| <p>\n|   "caf\u00e9 \ufffd"'

    def test_unsupported_input_type(self):
        with self.assertRaises(TypeError):
            CleanHTML(42)


class TestPolicyAwareParsing(unittest.TestCase):
    def test_unwrapped_elements_do_not_shield_headings(self):
        html = "<h1><span>a<h2>b"
        assert tree(html) == expected(
            """
            | <h1>
            |   <span>
            |     "a"
            |     <h2>
            |       "b"
            """
        )
        assert tree(html, policy=DEFAULT_POLICY) == expected(
            """
            | <h1>
            |   <span>
            |     "a"
            | <h2>
            |   "b"
            """
        )

    def test_kept_element_shields_heading(self):
        assert tree("<h1><b>a<h2>b", policy=DEFAULT_POLICY) == expected(
            """
            | <h1>
            |   <b>
            |     "a"
            |     <h2>
            |       "b"
            """
        )

    def test_unwrapped_list_does_not_shield_item(self):
        policy = SanitizationPolicy(allowed_tags=["li"], allowed_attributes={})
        assert tree("<li>a<ul><li>b", policy=policy) == expected(
            """
            | <li>
            |   "a"
            |   <ul>
            | <li>
            |   "b"
            """
        )

    def test_forbidden_content_is_raw_text(self):
        assert tree("<svg><p>x</p></svg><p>y</p>", policy=DEFAULT_POLICY) == expected(
            """
            | <svg>
            |   "<p>x</p>"
            | <p>
            |   "y"
            """
        )


class TestDepthBound(unittest.TestCase):
    def test_excess_start_tags_are_dropped(self):
        assert tree("<div>" * 5 + "x", max_depth=2) == expected(
            """
            | <div>
            |   <div>
            |     "x"
            """
        )

    def test_raw_text_elements_may_exceed_the_bound(self):
        assert tree("<b><b><script>x</script>", max_depth=2) == expected(
            """
            | <b>
            |   <b>
            |     <script>
            |       "x"
            """
        )

    def test_default_bound_comes_from_policy(self):
        root = parse("<b>" * 1000 + "x")
        assert max_element_depth(root) == DEFAULT_POLICY.max_depth

    def test_invalid_bound(self):
        with self.assertRaises(ValueError):
            CleanHTML("x", max_depth=0)

    def test_text_split_by_stray_end_tags_is_one_node(self):
        start = time.perf_counter()
        root = parse("ab</span>" * 100_000)
        assert time.perf_counter() - start < 30
        assert len(root.children) == 1
        assert root.children[0].data == "ab" * 100_000

    def test_hundred_thousand_nested_tags(self):
        start = time.perf_counter()
        root = parse("<div>" * 100_000 + "x" + "</div>" * 100_000)
        assert time.perf_counter() - start < 30
        assert max_element_depth(root) == 256
        assert root.to_text() == "x"


if __name__ == "__main__":
    unittest.main()
