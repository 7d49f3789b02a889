"""URI scheme validation for URI-valued attributes (href, src, action, ...).

Browsers strip ASCII control characters and surrounding whitespace before
resolving a URL, so ``java\\tscript:`` and ``\\x01javascript:`` both run as
``javascript:``. Validation therefore happens on the normalized form, and the
scheme is extracted with a single linear scan instead of a regular expression.
"""

from __future__ import annotations

from collections.abc import Collection

_CONTROL_CHARS = {code: None for code in range(0x20)}
_CONTROL_CHARS[0x7F] = None

_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")

# Characters that end the scheme candidate without a ':' having been seen.
_SCHEME_STOP = frozenset("/?#")


def normalize_uri(value: str) -> str:
    """Remove ASCII control characters anywhere in `value` and strip surrounding whitespace."""
    return value.translate(_CONTROL_CHARS).strip()


def uri_scheme(value: str) -> str | None:
    """Return the lowercased scheme of `value`, or None for a relative reference.

    A value whose scheme part contains anything but ASCII letters, digits,
    ``+``, ``-`` and ``.`` (or does not start with a letter) still counts as
    having a scheme; it is returned as-is so callers can reject it.
    """
    value = normalize_uri(value)
    for index, ch in enumerate(value):
        if ch == ":":
            return value[:index].translate(_ASCII_LOWER)
        if ch in _SCHEME_STOP:
            return None
    return None


def _is_valid_scheme(scheme: str) -> bool:
    if not scheme:
        return False
    first = scheme[0]
    if not ("a" <= first <= "z"):
        return False
    for ch in scheme[1:]:
        if not (("a" <= ch <= "z") or ("0" <= ch <= "9") or ch in "+-."):
            return False
    return True


def is_safe_uri(value: str, allowed_schemes: Collection[str]) -> bool:
    """Return True if `value` is a relative reference or uses an allowed scheme.

    `allowed_schemes` must hold lowercase scheme names (a policy normalizes
    them). ``javascript``, ``vbscript`` and ``data`` are rejected unless listed.
    """
    scheme = uri_scheme(value)
    if scheme is None:
        return True
    return _is_valid_scheme(scheme) and scheme in allowed_schemes
