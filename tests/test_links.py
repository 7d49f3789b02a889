import unittest

from cleanhtml import ElementNode, SimpleDomNode, TextNode, harden_links, parse, to_html
from cleanhtml.links import merge_rel


def links(root):
    found = []
    stack = [root]
    while stack:
        node = stack.pop()
        if node.name == "a":
            found.append(node)
        if node.children:
            stack.extend(reversed(node.children))
    return found


class TestMergeRel(unittest.TestCase):
    def test_appends_missing_tokens(self):
        assert merge_rel(None, ["noopener", "noreferrer"]) == "noopener noreferrer"
        assert merge_rel("", ["noopener"]) == "noopener"

    def test_existing_tokens_are_kept_case_insensitively(self):
        assert merge_rel("NoOpener nofollow", ["noopener", "noreferrer"]) == "NoOpener nofollow noreferrer"

    def test_whitespace_is_normalized(self):
        assert merge_rel("  me \t author\n", []) == "me author"

    def test_tokens_are_not_repeated(self):
        assert merge_rel(None, ["ugc", "UGC"]) == "ugc"


class TestHardenLinks(unittest.TestCase):
    def test_only_absolute_http_links_are_touched(self):
        root = parse('<p><a href="https://x">1</a><a href="/y">2</a><a href=" HTTP://z">3</a><a>4</a></p>')
        assert harden_links(root) is root
        secure, relative, padded, bare = links(root)
        assert secure.attrs == {"href": "https://x", "rel": "noopener noreferrer", "target": "_blank"}
        assert relative.attrs == {"href": "/y"}
        assert padded.attrs["rel"] == "noopener noreferrer"
        assert bare.attrs == {}

    def test_other_schemes_are_not_hardened(self):
        for href in ("mailto:a@example.com", "ftp://x", "//example.com", "#top"):
            node = ElementNode("a", {"href": href})
            harden_links(node)
            assert node.attrs == {"href": href}, href

    def test_control_characters_in_scheme_are_ignored(self):
        for href in ("ht\ttps://evil.example", "\x01https://evil.example", "HT\nTP://evil.example"):
            node = ElementNode("a", {"href": href, "target": "_blank"})
            harden_links(node)
            assert node.attrs == {"href": href, "target": "_blank", "rel": "noopener noreferrer"}, href

    def test_existing_target_is_kept(self):
        node = ElementNode("a", {"href": "http://x", "target": "_self"})
        harden_links(node)
        assert node.attrs == {"href": "http://x", "target": "_self", "rel": "noopener noreferrer"}

    def test_disabled_hardening_is_a_no_op(self):
        node = ElementNode("a", {"href": "http://x"})
        assert harden_links(node, rel=(), target=None) is node
        assert node.attrs == {"href": "http://x"}

    def test_target_only(self):
        node = ElementNode("a", {"href": "http://x"})
        harden_links(node, rel=(), target="_top")
        assert node.attrs == {"href": "http://x", "target": "_top"}

    def test_rel_only(self):
        node = ElementNode("a", {"href": "http://x", "rel": "me"})
        harden_links(node, rel=["nofollow"], target=None)
        assert node.attrs == {"href": "http://x", "rel": "me nofollow"}

    def test_non_anchor_elements_are_ignored(self):
        root = SimpleDomNode("#document-fragment")
        area = ElementNode("area", {"href": "https://x"})
        root.append_child(area)
        root.append_child(TextNode("https://y"))
        harden_links(root)
        assert area.attrs == {"href": "https://x"}

    def test_nested_links_are_found(self):
        root = parse('<ul><li><b><a href="https://x">x</a></b></li></ul>')
        harden_links(root, rel=["noopener"])
        assert to_html(root) == '<ul><li><b><a href="https://x" rel="noopener" target="_blank">x</a></b></li></ul>'


if __name__ == "__main__":
    unittest.main()
