"""Parser entry points: the `CleanHTML` object and the `parse` function."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import DEFAULT_MAX_DEPTH
from .links import harden_links
from .policy import DEFAULT_POLICY
from .serialize import to_html as serialize_html
from .tokenizer import Tokenizer, TokenizerOpts
from .treebuilder import TreeBuilder

if TYPE_CHECKING:
    from .node import SimpleDomNode
    from .policy import SanitizationPolicy
    from .tokens import ParseError


class StrictModeError(SyntaxError):
    """Raised by ``CleanHTML(..., strict=True)`` on the first parse error."""

    def __init__(self, error: ParseError) -> None:
        self.error = error
        super().__init__(str(error))


def coerce_input(html: object) -> str:
    """Return `html` as text: bytes are decoded as UTF-8 with replacement."""
    if html is None:
        return ""
    if isinstance(html, str):
        return html
    if isinstance(html, (bytes, bytearray)):
        return bytes(html).decode("utf-8", errors="replace")
    raise TypeError(f"expected str or bytes, got {type(html).__name__}")


class CleanHTML:
    """Parse an HTML fragment into a tree.

    When a `policy` is given, the parse is tuned to it: the content of every
    forbidden element is tokenized as raw text (so it can never turn into
    markup) and auto-closing ignores elements the policy will unwrap.
    """

    __slots__ = ("errors", "max_depth", "policy", "root", "strict")

    def __init__(
        self,
        html: str | bytes | None,
        *,
        policy: SanitizationPolicy | None = None,
        collect_errors: bool = False,
        strict: bool = False,
        max_depth: int | None = None,
    ) -> None:
        self.policy = policy
        self.strict = bool(strict)
        if max_depth is None:
            max_depth = policy.max_depth if policy is not None else DEFAULT_MAX_DEPTH
        if max_depth < 1:
            raise ValueError("max_depth must be at least 1")
        self.max_depth = max_depth

        collect_errors = bool(collect_errors) or self.strict
        opts = TokenizerOpts(
            collect_errors=collect_errors,
            rawtext_tags=policy.forbidden_tags if policy is not None else None,
        )
        builder = TreeBuilder(
            collect_errors=collect_errors,
            max_depth=max_depth,
            kept_tags=policy.kept_tags if policy is not None else None,
            rawtext_tags=opts.rawtext_tags,
        )
        tokenizer = Tokenizer(builder, opts)
        builder.position = tokenizer.position
        tokenizer.run(coerce_input(html))

        self.root: SimpleDomNode = builder.finish()
        self.errors: list[ParseError] = builder.errors
        if self.strict and self.errors:
            raise StrictModeError(self.errors[0])

    def to_html(self, safe: bool = True, policy: SanitizationPolicy | None = None) -> str:
        """Serialize the tree; with `safe` (the default) sanitize it first."""
        if not safe:
            return serialize_html(self.root)

        from .sanitize import sanitize_tree

        policy = policy or self.policy or DEFAULT_POLICY
        clean = sanitize_tree(self.root, policy)
        harden_links(clean, rel=policy.force_link_rel, target=policy.link_target)
        return serialize_html(clean)


def parse(
    html: str | bytes | None,
    *,
    policy: SanitizationPolicy | None = None,
    max_depth: int | None = None,
) -> SimpleDomNode:
    """Parse `html` into a ``#document-fragment`` root. Never raises on malformed markup."""
    return CleanHTML(html, policy=policy or DEFAULT_POLICY, max_depth=max_depth).root
