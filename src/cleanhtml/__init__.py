from .links import harden_links
from .node import ElementNode, SimpleDomNode, TextNode
from .parser import CleanHTML, StrictModeError, parse
from .policy import DEFAULT_POLICY, SanitizationPolicy, policy_from_dict
from .sanitize import sanitize, sanitize_tree
from .serialize import to_html, to_test_format
from .tokens import ParseError
from .urls import is_safe_uri, normalize_uri, uri_scheme

__all__ = [
    "DEFAULT_POLICY",
    "CleanHTML",
    "ElementNode",
    "ParseError",
    "SanitizationPolicy",
    "SimpleDomNode",
    "StrictModeError",
    "TextNode",
    "harden_links",
    "is_safe_uri",
    "normalize_uri",
    "parse",
    "policy_from_dict",
    "sanitize",
    "sanitize_tree",
    "to_html",
    "to_test_format",
    "uri_scheme",
]
