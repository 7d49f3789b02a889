"""DOM-like nodes produced by the parser and consumed by the sanitizer.

Three shapes exist:

- ``SimpleDomNode("#document-fragment")``: the implicit root holding top-level
  nodes (also used for ``#comment`` nodes in manually built trees).
- ``ElementNode``: a lowercased tag name, an insertion-ordered ``attrs`` dict
  and a list of children.
- ``TextNode``: character data, stored decoded.

A node has at most one parent; appending a node that already has one moves it.
"""

from __future__ import annotations


class SimpleDomNode:
    __slots__ = ("attrs", "children", "data", "name", "parent")

    def __init__(self, name: str, attrs: dict[str, str | None] | None = None, data: str | None = None) -> None:
        self.name = name
        self.parent: SimpleDomNode | None = None
        self.data = data
        if name == "#comment" or name == "!doctype":
            self.children: list | None = None
            self.attrs: dict[str, str | None] | None = None
        else:
            self.children = []
            self.attrs = attrs if attrs is not None else {}

    def append_child(self, node: SimpleDomNode | TextNode) -> None:
        if node.parent is not None:
            node.parent.remove_child(node)
        self.children.append(node)
        node.parent = self

    def remove_child(self, node: SimpleDomNode | TextNode) -> None:
        if node in self.children:
            self.children.remove(node)
            node.parent = None

    def to_text(self) -> str:
        """Return the concatenated text of all descendant text nodes."""
        parts: list[str] = []
        stack: list[SimpleDomNode | TextNode] = [self]
        while stack:
            node = stack.pop()
            if node.name == "#text":
                parts.append(node.data or "")
            elif node.children:
                stack.extend(reversed(node.children))
        return "".join(parts)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class ElementNode(SimpleDomNode):
    __slots__ = ()

    def __init__(self, name: str, attrs: dict[str, str | None] | None = None) -> None:
        self.name = name
        self.parent = None
        self.data = None
        self.children = []
        self.attrs = attrs if attrs is not None else {}


class TextNode:
    __slots__ = ("data", "name", "parent")

    def __init__(self, data: str) -> None:
        self.data = data
        self.parent: SimpleDomNode | None = None
        self.name = "#text"

    @property
    def children(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"<TextNode {self.data!r}>"
