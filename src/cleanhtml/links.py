"""Link hardening for sanitized trees.

Absolute http(s) links get ``rel="noopener noreferrer"`` and
``target="_blank"``. The pass only ever adds attributes from that fixed set;
it runs after sanitization, so it cannot reintroduce anything the sanitizer
removed.
"""

from __future__ import annotations

from collections.abc import Iterable

from .node import SimpleDomNode
from .urls import normalize_uri

_ABSOLUTE_PREFIXES = ("http://", "https://")


def _is_absolute_http(href: str | None) -> bool:
    # Same normalization as the URI check: browsers ignore controls and whitespace.
    if not href:
        return False
    return normalize_uri(href).lower().startswith(_ABSOLUTE_PREFIXES)


def merge_rel(existing: str | None, tokens: Iterable[str]) -> str:
    """Return `existing` rel tokens with `tokens` appended when not already present."""
    parts = (existing or "").split()
    seen = {part.lower() for part in parts}
    for token in tokens:
        if token.lower() not in seen:
            parts.append(token)
            seen.add(token.lower())
    return " ".join(parts)


def harden_links(
    root: SimpleDomNode,
    *,
    rel: Iterable[str] = ("noopener", "noreferrer"),
    target: str | None = "_blank",
) -> SimpleDomNode:
    """Add `rel` tokens and a `target` to every absolute http(s) ``<a>`` under `root`.

    Modifies the tree in place and returns `root`.
    """
    rel = tuple(rel)
    if not rel and target is None:
        return root

    stack = [root]
    while stack:
        node = stack.pop()
        children = node.children
        if children:
            stack.extend(reversed(children))
        if node.name != "a" or not _is_absolute_http(node.attrs.get("href")):
            continue
        if rel:
            node.attrs["rel"] = merge_rel(node.attrs.get("rel"), rel)
        if target is not None and "target" not in node.attrs:
            node.attrs["target"] = target
    return root
