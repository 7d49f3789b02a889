"""HTML element constants used by the tokenizer, tree builder and serializer.

Elements are kept in lists where iteration order matters for readability and
exposed as frozensets for lookups.

References:
    - https://html.spec.whatwg.org/multipage/syntax.html#void-elements
    - https://html.spec.whatwg.org/multipage/parsing.html#parsing-main-inbody
"""

VOID_ELEMENTS = frozenset(
    [
        "area",
        "base",
        "basefont",
        "bgsound",
        "br",
        "col",
        "embed",
        "frame",
        "hr",
        "img",
        "image",
        "input",
        "keygen",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    ]
)

# Elements whose content is tokenized as opaque text up to the matching end tag.
RAWTEXT_ELEMENTS = frozenset(
    [
        "title",
        "textarea",
        "style",
        "script",
        "xmp",
        "iframe",
        "noembed",
        "noframes",
        "noscript",
    ]
)

# RAWTEXT elements whose text still decodes character references.
RCDATA_ELEMENTS = frozenset(["title", "textarea"])

# A leading newline right after these start tags is not part of the content.
NEWLINE_STRIPPING_ELEMENTS = frozenset(["pre", "listing", "textarea"])

HEADING_ELEMENTS = frozenset(["h1", "h2", "h3", "h4", "h5", "h6"])

# Start tags that close an open <p>.
P_CLOSING_ELEMENTS = frozenset(
    [
        "address",
        "article",
        "aside",
        "blockquote",
        "center",
        "details",
        "dialog",
        "dir",
        "div",
        "dl",
        "dt",
        "dd",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "li",
        "listing",
        "main",
        "menu",
        "nav",
        "ol",
        "p",
        "plaintext",
        "pre",
        "search",
        "section",
        "summary",
        "table",
        "ul",
        "xmp",
    ]
)

# start tag -> (open elements it closes, elements that shield them)
#
# The closing element is searched from the top of the open elements stack; the
# search stops at a shielding element, but only at one that will survive
# sanitization (see TreeBuilder). An empty shield set searches the whole stack.
AUTO_CLOSING_TAGS = {
    "li": (frozenset(["li"]), frozenset(["ul", "ol", "menu"])),
    "dt": (frozenset(["dt", "dd"]), frozenset(["dl"])),
    "dd": (frozenset(["dt", "dd"]), frozenset(["dl"])),
    "tr": (frozenset(["tr", "td", "th"]), frozenset(["table"])),
    "td": (frozenset(["td", "th"]), frozenset(["table", "tr"])),
    "th": (frozenset(["td", "th"]), frozenset(["table", "tr"])),
    "thead": (frozenset(["thead", "tbody", "tfoot", "tr", "td", "th"]), frozenset(["table"])),
    "tbody": (frozenset(["thead", "tbody", "tfoot", "tr", "td", "th"]), frozenset(["table"])),
    "tfoot": (frozenset(["thead", "tbody", "tfoot", "tr", "td", "th"]), frozenset(["table"])),
    "option": (frozenset(["option"]), frozenset(["select", "datalist"])),
    "optgroup": (frozenset(["option", "optgroup"]), frozenset(["select"])),
    "a": (frozenset(["a"]), frozenset()),
    "button": (frozenset(["button"]), frozenset()),
    "nobr": (frozenset(["nobr"]), frozenset()),
    # A heading only closes a heading that is the current node: every kept
    # element shields.
    "h1": (HEADING_ELEMENTS, None),
    "h2": (HEADING_ELEMENTS, None),
    "h3": (HEADING_ELEMENTS, None),
    "h4": (HEADING_ELEMENTS, None),
    "h5": (HEADING_ELEMENTS, None),
    "h6": (HEADING_ELEMENTS, None),
}

WHITESPACE = "\t\n\f\r "

DEFAULT_MAX_DEPTH = 256
