"""Canonical HTML serialization for cleanhtml trees."""

# ruff: noqa: PERF401

from __future__ import annotations

from typing import Any

from .constants import NEWLINE_STRIPPING_ELEMENTS, RAWTEXT_ELEMENTS, RCDATA_ELEMENTS, VOID_ELEMENTS

# Elements whose text is written verbatim (the tokenizer does not decode it).
_VERBATIM_TEXT_ELEMENTS = (RAWTEXT_ELEMENTS - RCDATA_ELEMENTS) | {"plaintext"}


def _escape_text(text: str | None) -> str:
    if not text:
        return ""
    # A literal CR would be normalized to LF on re-parse; &#13; survives it.
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace("\r", "&#13;")


def _escape_attr_value(value: str | None) -> str:
    if not value:
        return ""
    return (
        value.replace("&", "&amp;")
        .replace('"', "&quot;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\r", "&#13;")
    )


def _verbatim_text(parent_name: str, text: str | None) -> str:
    if not text:
        return ""
    # The content must not be able to close its own element early.
    if f"</{parent_name}" in text.lower():
        return text.replace("<", "&lt;")
    return text


def serialize_start_tag(name: str, attrs: dict[str, str | None] | None) -> str:
    """Return ``<name attr="value" ...>``; values are always double-quoted."""
    parts: list[str] = ["<", name]
    if attrs:
        for key, value in attrs.items():
            parts.extend([" ", key, '="', _escape_attr_value(value), '"'])
    parts.append(">")
    return "".join(parts)


def serialize_end_tag(name: str) -> str:
    return f"</{name}>"


def to_html(node: Any) -> str:
    """Serialize `node` (and its subtree) to canonical markup.

    Void elements get no end tag and no trailing solidus; every other element
    gets an explicit end tag, so re-parsing never has to infer structure.
    """
    parts: list[str] = []
    # Items are nodes to render, or end-tag strings queued after their children.
    stack: list[Any] = [node]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            parts.append(item)
            continue

        name = item.name
        if name == "#text":
            parent = item.parent
            if parent is not None and parent.name in _VERBATIM_TEXT_ELEMENTS:
                parts.append(_verbatim_text(parent.name, item.data))
            else:
                parts.append(_escape_text(item.data))
            continue
        if name == "#comment":
            parts.append(f"<!--{item.data or ''}-->")
            continue
        if name == "!doctype":
            parts.append(f"<!DOCTYPE {item.data or 'html'}>")
            continue
        if name in ("#document", "#document-fragment"):
            if item.children:
                stack.extend(reversed(item.children))
            continue

        parts.append(serialize_start_tag(name, item.attrs))
        if name in VOID_ELEMENTS:
            continue
        children = item.children or []
        if (
            name in NEWLINE_STRIPPING_ELEMENTS
            and children
            and children[0].name == "#text"
            and (children[0].data or "").startswith("\n")
        ):
            # The parser drops one newline right after the start tag.
            parts.append("\n")
        stack.append(serialize_end_tag(name))
        stack.extend(reversed(children))
    return "".join(parts)


def to_test_format(node: Any) -> str:
    """Convert a tree to the html5lib test format.

    Each node is one ``| ``-prefixed line indented two spaces per level;
    attributes follow their element sorted by name.
    """
    lines: list[str] = []
    if node.name in ("#document", "#document-fragment"):
        stack = [(child, 0) for child in reversed(node.children or [])]
    else:
        stack = [(node, 0)]

    while stack:
        current, indent = stack.pop()
        padding = " " * indent
        name = current.name
        if name == "#text":
            lines.append(f'| {padding}"{current.data or ""}"')
            continue
        if name == "#comment":
            lines.append(f"| {padding}<!-- {current.data or ''} -->")
            continue
        if name == "!doctype":
            lines.append(f"| <!DOCTYPE {current.data or ''}>")
            continue

        lines.append(f"| {padding}<{name}>")
        if current.attrs:
            for attr_name, attr_value in sorted(current.attrs.items()):
                lines.append(f'| {padding}  {attr_name}="{attr_value or ""}"')
        if current.children:
            stack.extend((child, indent + 2) for child in reversed(current.children))
    return "\n".join(lines)
