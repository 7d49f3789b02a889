"""Policy-driven tree sanitization and the public `sanitize` pipeline.

`sanitize_tree` is a structural pass: it never looks at markup text, only at
parsed nodes, and it never decodes anything (the tokenizer already did).
"""

from __future__ import annotations

import logging
from typing import Any

from .links import harden_links
from .node import ElementNode, SimpleDomNode, TextNode
from .parser import CleanHTML
from .policy import DEFAULT_POLICY, SanitizationPolicy
from .serialize import to_html
from .urls import is_safe_uri

logger = logging.getLogger(__name__)

_CONTAINER_NAMES = frozenset(["#document", "#document-fragment"])
_DISCARDED_NAMES = frozenset(["#comment", "!doctype"])


def _sanitize_attrs(tag: str, attrs: dict[str, str | None] | None, policy: SanitizationPolicy) -> dict[str, str | None]:
    clean: dict[str, str | None] = {}
    if not attrs:
        return clean
    for name, value in attrs.items():
        lowered = name.lower()
        if lowered in clean:
            continue
        if not policy.is_attribute_allowed(tag, lowered):
            logger.debug("dropped attribute %s on <%s>", lowered, tag)
            continue
        if lowered in policy.uri_attributes and not is_safe_uri(value or "", policy.allowed_schemes):
            logger.debug("dropped unsafe URI in %s on <%s>", lowered, tag)
            continue
        clean[lowered] = value
    return clean


def _append_text(parent: SimpleDomNode, data: str | None, pending: dict[TextNode, list[str]]) -> None:
    if not data:
        return
    children = parent.children
    if children and children[-1].name == "#text":
        last = children[-1]
        parts = pending.get(last)
        if parts is None:
            pending[last] = [last.data, data]
        else:
            parts.append(data)
        return
    parent.append_child(TextNode(data))


def sanitize_tree(root: Any, policy: SanitizationPolicy = DEFAULT_POLICY) -> SimpleDomNode:
    """Return a sanitized copy of the tree rooted at `root`; `root` is not modified.

    The result is always a new ``#document-fragment``. When `root` is itself an
    element or text node, it is sanitized as the fragment's only child.

    Children of unwrapped elements are spliced into the parent in order, and
    text nodes that end up adjacent are merged, so the result has the shape the
    parser gives its serialization.
    """
    out = SimpleDomNode("#document-fragment")
    allowed_tags = policy.allowed_tags
    forbidden_tags = policy.forbidden_tags
    keep_content = policy.keep_content_for_disallowed_tags

    # (source node, output parent); children are pushed in reverse so nodes pop
    # in document order and every append to a parent happens in output order.
    stack: list[tuple[Any, SimpleDomNode]] = [(root, out)]
    # merged text node -> pieces, joined once the walk is done
    pending: dict[TextNode, list[str]] = {}
    while stack:
        node, parent = stack.pop()
        name = node.name

        if name == "#text":
            _append_text(parent, node.data, pending)
            continue
        if name in _DISCARDED_NAMES:
            continue
        if name in _CONTAINER_NAMES:
            if node.children:
                stack.extend((child, parent) for child in reversed(node.children))
            continue

        tag = name.lower()
        if tag in forbidden_tags:
            logger.debug("dropped forbidden element <%s>", tag)
            continue

        if tag in allowed_tags:
            element = ElementNode(tag, _sanitize_attrs(tag, node.attrs, policy))
            parent.append_child(element)
            if node.children:
                stack.extend((child, element) for child in reversed(node.children))
            continue

        if keep_content:
            logger.debug("unwrapped disallowed element <%s>", tag)
            if node.children:
                stack.extend((child, parent) for child in reversed(node.children))
        else:
            logger.debug("dropped disallowed element <%s>", tag)

    for text, parts in pending.items():
        text.data = "".join(parts)
    return out


def sanitize(html: Any, *, policy: SanitizationPolicy = DEFAULT_POLICY) -> str:
    """Sanitize an untrusted HTML string and return safe markup.

    `bytes` are decoded as UTF-8 (invalid sequences become U+FFFD); any value
    that is neither `str` nor `bytes` yields ``""``. Never raises: an unexpected
    internal failure is logged and produces ``""``.
    """
    if isinstance(html, (bytes, bytearray)):
        html = bytes(html).decode("utf-8", errors="replace")
    elif not isinstance(html, str):
        return ""
    if not html:
        return ""

    try:
        root = CleanHTML(html, policy=policy).root
        clean = sanitize_tree(root, policy)
        harden_links(clean, rel=policy.force_link_rel, target=policy.link_target)
        return to_html(clean)
    except Exception:
        logger.exception("sanitization failed; returning empty output")
        return ""
