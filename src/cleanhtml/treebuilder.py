from .constants import (
    AUTO_CLOSING_TAGS,
    DEFAULT_MAX_DEPTH,
    NEWLINE_STRIPPING_ELEMENTS,
    P_CLOSING_ELEMENTS,
    RAWTEXT_ELEMENTS,
    VOID_ELEMENTS,
)
from .node import ElementNode, SimpleDomNode, TextNode
from .tokens import CharacterTokens, CommentToken, EOFToken, ParseError, Tag


class TreeBuilder:
    """Builds a fragment tree from tokens using a reduced HTML insertion model.

    There is a single insertion mode: everything goes into the current node.
    Structurally invalid nesting is repaired with the rules in
    ``AUTO_CLOSING_TAGS``; a rule's search for the element to close stops at a
    shielding element only when that element is kept. ``kept_tags`` is the set
    of elements that survive sanitization (None keeps everything), so an element
    the sanitizer later unwraps never influences how its neighbours nest, and
    re-parsing the sanitized markup rebuilds the same tree.
    """

    __slots__ = (
        "_open_counts",
        "_skip_newline",
        "_text_node",
        "_text_parts",
        "collect_errors",
        "errors",
        "kept_tags",
        "max_depth",
        "open_elements",
        "position",
        "rawtext_tags",
        "root",
    )

    def __init__(self, collect_errors=False, max_depth=DEFAULT_MAX_DEPTH, kept_tags=None, rawtext_tags=None):
        self.collect_errors = bool(collect_errors)
        self.max_depth = max_depth
        self.kept_tags = kept_tags
        self.rawtext_tags = rawtext_tags if rawtext_tags is not None else RAWTEXT_ELEMENTS
        self.root = SimpleDomNode("#document-fragment")
        self.open_elements = []
        # name -> number of open elements with that name
        self._open_counts = {}
        self._skip_newline = False
        # Text node still receiving character runs; its pieces are joined once.
        self._text_node = None
        self._text_parts = []
        self.errors = []
        # Callable returning (line, column) for the token being processed; the
        # parser wires this to the tokenizer.
        self.position = None

    # ---------------------
    # Token sink
    # ---------------------

    def process_token(self, token):
        if isinstance(token, CharacterTokens):
            self._characters(token.data)
            return
        if isinstance(token, ParseError):
            self.errors.append(token)
            return

        self._skip_newline = False
        if isinstance(token, Tag):
            if token.kind == Tag.START:
                self._start_tag(token)
            else:
                self._end_tag(token.name)
        elif isinstance(token, CommentToken):
            # Comments, doctypes and other markup declarations never reach the tree.
            return
        elif isinstance(token, EOFToken):
            if self.open_elements:
                self._parse_error("expected-closing-tag-but-got-eof")

    def finish(self):
        while self.open_elements:
            self._pop()
        self._flush_text()
        return self.root

    # ---------------------
    # Insertion
    # ---------------------

    @property
    def current_node(self):
        if self.open_elements:
            return self.open_elements[-1]
        return self.root

    def _characters(self, data):
        if self._skip_newline:
            self._skip_newline = False
            if data.startswith("\n"):
                data = data[1:]
        if not data:
            return
        parent = self.current_node
        children = parent.children
        if children and children[-1].name == "#text":
            last = children[-1]
            if last is not self._text_node:
                self._flush_text()
                self._text_node = last
                self._text_parts = [last.data]
            self._text_parts.append(data)
            return
        parent.append_child(TextNode(data))

    def _flush_text(self):
        if self._text_node is not None:
            self._text_node.data = "".join(self._text_parts)
            self._text_node = None
            self._text_parts = []

    def _start_tag(self, tag):
        name = tag.name

        if name in P_CLOSING_ELEMENTS and self._open_counts.get("p"):
            self._pop_until("p")

        rule = AUTO_CLOSING_TAGS.get(name)
        if rule is not None:
            self._auto_close(name, rule[0], rule[1])

        if name in VOID_ELEMENTS:
            self.current_node.append_child(ElementNode(name, tag.attrs))
            return

        if tag.self_closing:
            self._parse_error("non-void-html-element-start-tag-with-trailing-solidus")

        if len(self.open_elements) >= self.max_depth and name not in self.rawtext_tags and name != "plaintext":
            # Drop the tag itself; its content lands in the deepest open element.
            self._parse_error("nesting-too-deep")
            return

        element = ElementNode(name, tag.attrs)
        self.current_node.append_child(element)
        self._push(element)
        if name in NEWLINE_STRIPPING_ELEMENTS:
            self._skip_newline = True

    def _end_tag(self, name):
        if self._open_counts.get(name):
            if self.open_elements[-1].name != name:
                self._parse_error("end-tag-too-early")
            self._pop_until(name)
            return

        if name == "br":
            # </br> is treated as <br>, as browsers do.
            self._parse_error("unexpected-end-tag")
            self.current_node.append_child(ElementNode("br"))
            return
        if name == "p":
            # </p> without an open <p> inserts an empty paragraph.
            self._parse_error("unexpected-end-tag")
            if len(self.open_elements) < self.max_depth:
                self.current_node.append_child(ElementNode("p"))
            return

        self._parse_error("unexpected-end-tag")

    def _auto_close(self, name, closes, shields):
        if not any(self._open_counts.get(candidate) for candidate in closes):
            return
        kept_tags = self.kept_tags
        stack = self.open_elements
        for index in range(len(stack) - 1, -1, -1):
            open_name = stack[index].name
            if open_name in closes:
                self._parse_error("unexpected-start-tag-implies-end-tag")
                while len(stack) > index:
                    self._pop()
                return
            if kept_tags is not None and open_name not in kept_tags:
                continue
            if shields is None or open_name in shields:
                return

    # ---------------------
    # Stack helpers
    # ---------------------

    def _push(self, element):
        self.open_elements.append(element)
        counts = self._open_counts
        counts[element.name] = counts.get(element.name, 0) + 1

    def _pop(self):
        element = self.open_elements.pop()
        counts = self._open_counts
        remaining = counts[element.name] - 1
        if remaining:
            counts[element.name] = remaining
        else:
            del counts[element.name]
        return element

    def _pop_until(self, name):
        while self.open_elements:
            if self._pop().name == name:
                return

    def _parse_error(self, code):
        if not self.collect_errors:
            return
        if self.position is not None:
            line, column = self.position()
        else:
            line = column = None
        self.errors.append(ParseError(code, line=line, column=column))
