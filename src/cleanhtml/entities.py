"""HTML5 character reference decoding.

Implements character reference decoding as the WHATWG HTML Standard describes it (§13.2.5.72-80):
named references (&amp;, &nbsp;, legacy &amp without a semicolon) and numeric
references (&#60;, &#x3C;).

Decoding happens exactly once, inside the tokenizer. Nothing downstream of
the tokenizer may call these functions on already-decoded values.
"""

import html.entities

# Python's complete HTML5 entity table. Keys carry the trailing semicolon
# ("amp;"), except for the legacy names that may also appear without it
# ("amp", "AElig", "frac12", ...).
_HTML5_ENTITIES = html.entities.html5

NAMED_ENTITIES = {key[:-1]: value for key, value in _HTML5_ENTITIES.items() if key.endswith(";")}
LEGACY_ENTITIES = {key: value for key, value in _HTML5_ENTITIES.items() if not key.endswith(";")}

_LONGEST_NAME = max(len(name) for name in NAMED_ENTITIES)
_LONGEST_LEGACY_NAME = max(len(name) for name in LEGACY_ENTITIES)

_DECIMAL_DIGITS = frozenset("0123456789")
_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# HTML5 numeric character reference replacements (§13.2.5.80)
NUMERIC_REPLACEMENTS = {
    0x00: "\ufffd",  # NULL
    0x80: "\u20ac",  # EURO SIGN
    0x82: "\u201a",  # SINGLE LOW-9 QUOTATION MARK
    0x83: "\u0192",  # LATIN SMALL LETTER F WITH HOOK
    0x84: "\u201e",  # DOUBLE LOW-9 QUOTATION MARK
    0x85: "\u2026",  # HORIZONTAL ELLIPSIS
    0x86: "\u2020",  # DAGGER
    0x87: "\u2021",  # DOUBLE DAGGER
    0x88: "\u02c6",  # MODIFIER LETTER CIRCUMFLEX ACCENT
    0x89: "\u2030",  # PER MILLE SIGN
    0x8A: "\u0160",  # LATIN CAPITAL LETTER S WITH CARON
    0x8B: "\u2039",  # SINGLE LEFT-POINTING ANGLE QUOTATION MARK
    0x8C: "\u0152",  # LATIN CAPITAL LIGATURE OE
    0x8E: "\u017d",  # LATIN CAPITAL LETTER Z WITH CARON
    0x91: "\u2018",  # LEFT SINGLE QUOTATION MARK
    0x92: "\u2019",  # RIGHT SINGLE QUOTATION MARK
    0x93: "\u201c",  # LEFT DOUBLE QUOTATION MARK
    0x94: "\u201d",  # RIGHT DOUBLE QUOTATION MARK
    0x95: "\u2022",  # BULLET
    0x96: "\u2013",  # EN DASH
    0x97: "\u2014",  # EM DASH
    0x98: "\u02dc",  # SMALL TILDE
    0x99: "\u2122",  # TRADE MARK SIGN
    0x9A: "\u0161",  # LATIN SMALL LETTER S WITH CARON
    0x9B: "\u203a",  # SINGLE RIGHT-POINTING ANGLE QUOTATION MARK
    0x9C: "\u0153",  # LATIN SMALL LIGATURE OE
    0x9E: "\u017e",  # LATIN SMALL LETTER Z WITH CARON
    0x9F: "\u0178",  # LATIN CAPITAL LETTER Y WITH DIAERESIS
}


def decode_numeric_entity(digits: str, is_hex: bool = False) -> str:
    """Decode the digits of a numeric character reference like &#60; or &#x3C;.

    Out-of-range values, surrogates and NULL decode to U+FFFD. Windows-1252
    code points in the C1 range are remapped as browsers do.
    """
    digits = digits.lstrip("0") or "0"
    # Anything longer than 8 significant digits is past U+10FFFF in either base.
    if len(digits) > 8:
        return "\ufffd"
    codepoint = int(digits, 16 if is_hex else 10)
    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def _is_ascii_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def decode_entities_in_text(text: str, in_attribute: bool = False) -> str:
    """Decode all character references in `text`.

    Args:
        text: Raw text or attribute value from the input stream.
        in_attribute: Apply the attribute-value rule for legacy references: a
            reference without a semicolon followed by an alphanumeric or `=` is
            left alone (so `?a=1&copy=2` keeps its query string).

    Returns:
        Text with character references decoded.
    """
    if "&" not in text:
        return text

    result = []
    i = 0
    length = len(text)
    while i < length:
        amp = text.find("&", i)
        if amp == -1:
            result.append(text[i:])
            break
        if amp > i:
            result.append(text[i:amp])
        i = amp
        j = i + 1

        # Numeric reference
        if j < length and text[j] == "#":
            j += 1
            is_hex = j < length and text[j] in "xX"
            if is_hex:
                j += 1
            allowed = _HEX_DIGITS if is_hex else _DECIMAL_DIGITS
            digit_start = j
            while j < length and text[j] in allowed:
                j += 1
            if j == digit_start:
                # "&#" or "&#x" with no digits is not a reference.
                result.append(text[i:j])
                i = j
                continue
            result.append(decode_numeric_entity(text[digit_start:j], is_hex=is_hex))
            i = j + 1 if j < length and text[j] == ";" else j
            continue

        # Named reference
        while j < length and j - i - 1 < _LONGEST_NAME and _is_ascii_alnum(text[j]):
            j += 1
        name = text[i + 1 : j]
        if not name:
            result.append("&")
            i += 1
            continue

        if j < length and text[j] == ";" and name in NAMED_ENTITIES:
            result.append(NAMED_ENTITIES[name])
            i = j + 1
            continue

        # Longest legacy name that prefixes the run, e.g. "&notit;" -> "¬it;".
        match_len = 0
        for k in range(min(len(name), _LONGEST_LEGACY_NAME), 0, -1):
            if name[:k] in LEGACY_ENTITIES:
                match_len = k
                break

        if match_len:
            end = i + 1 + match_len
            next_char = text[end] if end < length else ""
            if in_attribute and next_char and (_is_ascii_alnum(next_char) or next_char == "="):
                result.append("&")
                i += 1
                continue
            result.append(LEGACY_ENTITIES[name[:match_len]])
            i = end
            continue

        result.append("&")
        i += 1

    return "".join(result)
