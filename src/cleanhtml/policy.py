"""Sanitization policy: the immutable allow-list consulted by every stage.

A policy is built once and shared; nothing in the pipeline mutates it.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from .constants import DEFAULT_MAX_DEPTH


def _name_set(value: Any, field_name: str) -> frozenset[str]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise TypeError(f"{field_name} must be a collection of strings, got {type(value).__name__}")
    names = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} entries must be strings, got {type(item).__name__}")
        names.append(item.lower())
    return frozenset(names)


def _name_tuple(value: Any, field_name: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise TypeError(f"{field_name} must be a collection of strings, got {type(value).__name__}")
    names: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} entries must be strings, got {type(item).__name__}")
        item = item.lower()
        if item not in names:
            names.append(item)
    return tuple(names)


@dataclass(frozen=True, slots=True)
class SanitizationPolicy:
    """An allow-list driven policy for sanitizing a parsed fragment.

    - Tags in `forbidden_tags` are deleted together with their whole subtree.
    - Tags in `allowed_tags` are kept; every other tag is unwrapped (its
      children take its place) when `keep_content_for_disallowed_tags` is
      set, or dropped with its subtree otherwise.
    - Attributes not in `allowed_attributes[tag]` (or `allowed_attributes["*"]`)
      are removed, as are `forbidden_attributes` and every attribute starting
      with one of `forbidden_attribute_prefixes`.
    - Values of `uri_attributes` must use a scheme from `allowed_schemes`.

    All names are normalized to ASCII-lowercase.
    """

    allowed_tags: Collection[str]
    allowed_attributes: Mapping[str, Collection[str]]
    forbidden_tags: Collection[str] = frozenset()
    forbidden_attributes: Collection[str] = frozenset()
    forbidden_attribute_prefixes: Collection[str] = ("on",)
    uri_attributes: Collection[str] = frozenset(["href", "src", "action", "formaction", "xlink:href"])
    allowed_schemes: Collection[str] = frozenset(["http", "https", "mailto"])
    keep_content_for_disallowed_tags: bool = True

    # Link hardening. `force_link_rel` tokens are merged into the rel of every
    # absolute http(s) link; `link_target` is set when the link has no target.
    force_link_rel: Collection[str] = ("noopener", "noreferrer")
    link_target: str | None = "_blank"

    # Nesting bound for the parser.
    max_depth: int = DEFAULT_MAX_DEPTH

    # Derived: allowed tags that are not also forbidden.
    kept_tags: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "allowed_tags", _name_set(self.allowed_tags, "allowed_tags"))

        if not isinstance(self.allowed_attributes, Mapping):
            raise TypeError(
                f"allowed_attributes must be a mapping of tag to attribute names, "
                f"got {type(self.allowed_attributes).__name__}"
            )
        normalized_attrs: dict[str, frozenset[str]] = {}
        for tag, attrs in self.allowed_attributes.items():
            if not isinstance(tag, str):
                raise TypeError(f"allowed_attributes keys must be strings, got {type(tag).__name__}")
            merged = normalized_attrs.get(tag.lower(), frozenset())
            normalized_attrs[tag.lower()] = merged | _name_set(attrs, f"allowed_attributes[{tag!r}]")
        object.__setattr__(self, "allowed_attributes", normalized_attrs)

        object.__setattr__(self, "forbidden_tags", _name_set(self.forbidden_tags, "forbidden_tags"))
        object.__setattr__(self, "forbidden_attributes", _name_set(self.forbidden_attributes, "forbidden_attributes"))
        object.__setattr__(
            self,
            "forbidden_attribute_prefixes",
            _name_tuple(self.forbidden_attribute_prefixes, "forbidden_attribute_prefixes"),
        )
        if "" in self.forbidden_attribute_prefixes:
            raise ValueError("forbidden_attribute_prefixes must not contain an empty prefix")
        object.__setattr__(self, "uri_attributes", _name_set(self.uri_attributes, "uri_attributes"))
        object.__setattr__(self, "allowed_schemes", _name_set(self.allowed_schemes, "allowed_schemes"))
        object.__setattr__(self, "force_link_rel", _name_tuple(self.force_link_rel, "force_link_rel"))

        if not isinstance(self.keep_content_for_disallowed_tags, bool):
            raise TypeError("keep_content_for_disallowed_tags must be a bool")
        if self.link_target is not None and not isinstance(self.link_target, str):
            raise TypeError(f"link_target must be a string or None, got {type(self.link_target).__name__}")
        if isinstance(self.max_depth, bool) or not isinstance(self.max_depth, int):
            raise TypeError(f"max_depth must be an int, got {type(self.max_depth).__name__}")
        if self.max_depth < 1:
            raise ValueError("max_depth must be at least 1")

        object.__setattr__(self, "kept_tags", self.allowed_tags - self.forbidden_tags)

    def is_attribute_allowed(self, tag: str, name: str) -> bool:
        """Return True if attribute `name` may appear on an allowed `tag` (URI check aside)."""
        name = name.lower()
        if name in self.forbidden_attributes:
            return False
        if name.startswith(self.forbidden_attribute_prefixes):
            return False
        allowed = self.allowed_attributes
        return name in allowed.get(tag.lower(), ()) or name in allowed.get("*", ())


_POLICY_KEYS = frozenset(f.name for f in fields(SanitizationPolicy) if f.init)


def policy_from_dict(data: Mapping[str, Any]) -> SanitizationPolicy:
    """Build a policy from a JSON-compatible mapping.

    Keys are the `SanitizationPolicy` field names. `allowed_tags` and
    `allowed_attributes` are required; every other key falls back to the
    field default. Unknown keys raise ValueError.
    """
    if not isinstance(data, Mapping):
        raise TypeError(f"policy must be a mapping, got {type(data).__name__}")
    unknown = sorted(set(data) - _POLICY_KEYS)
    if unknown:
        raise ValueError(f"unknown policy keys: {', '.join(unknown)}")
    missing = sorted({"allowed_tags", "allowed_attributes"} - set(data))
    if missing:
        raise ValueError(f"missing policy keys: {', '.join(missing)}")
    return SanitizationPolicy(**data)


DEFAULT_POLICY: SanitizationPolicy = SanitizationPolicy(
    allowed_tags=[
        # Inline formatting
        "b",
        "i",
        "em",
        "strong",
        "u",
        "s",
        "code",
        "br",
        # Links
        "a",
        # Blocks
        "p",
        "pre",
        "blockquote",
        # Lists
        "ul",
        "ol",
        "li",
        # Headings
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
    ],
    allowed_attributes={
        "*": ["title"],
        "a": ["href", "title", "rel", "target"],
    },
    forbidden_tags=[
        # Script execution and styling
        "script",
        "style",
        "noscript",
        "template",
        # Embedded content
        "iframe",
        "object",
        "embed",
        "applet",
        "frame",
        "frameset",
        "noembed",
        "noframes",
        "img",
        "svg",
        "math",
        # Document metadata
        "link",
        "meta",
        "base",
        "title",
        # Forms
        "form",
        "input",
        "textarea",
        "select",
        "button",
        # Legacy raw text
        "xmp",
        "plaintext",
    ],
    forbidden_attributes=["style", "srcdoc", "formaction", "xlink:href"],
    forbidden_attribute_prefixes=["on"],
    uri_attributes=["href", "src", "action", "formaction", "xlink:href"],
    allowed_schemes=["http", "https", "mailto"],
    keep_content_for_disallowed_tags=True,
)
