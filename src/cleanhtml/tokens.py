class Tag:
    """A start or end tag; `kind` is `Tag.START` or `Tag.END` and names are lowercased."""

    __slots__ = ("attrs", "kind", "name", "self_closing")

    START = 0
    END = 1

    def __init__(self, kind, name, attrs, self_closing=False):
        self.kind = kind
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.self_closing = bool(self_closing)

    def __repr__(self):
        attrs = " ".join(f"{name}={value!r}" for name, value in self.attrs.items())
        closing = " /" if self.self_closing else ""
        kind_str = "start" if self.kind == self.START else "end"
        return f"<{kind_str}:{self.name}{closing} {attrs}>"


class CharacterTokens:
    """A run of text; character references are resolved except inside raw text elements."""

    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CharacterTokens({self.data!r})"


class CommentToken:
    """A comment, doctype or other markup declaration; never inserted into the tree."""

    __slots__ = ("data",)

    def __init__(self, data):
        self.data = data

    def __repr__(self):
        return f"CommentToken({self.data!r})"


class EOFToken:
    """End of input."""

    __slots__ = ()


class ParseError:
    """Represents a parse error with location information."""

    __slots__ = ("code", "column", "line", "message")

    def __init__(self, code, line=None, column=None, message=None):
        self.code = code
        self.line = line
        self.column = column
        self.message = message or code

    def __repr__(self):
        if self.line is not None and self.column is not None:
            return f"ParseError({self.code!r}, line={self.line}, column={self.column})"
        return f"ParseError({self.code!r})"

    def __str__(self):
        if self.line is not None and self.column is not None:
            if self.message != self.code:
                return f"({self.line},{self.column}): {self.code} - {self.message}"
            return f"({self.line},{self.column}): {self.code}"
        if self.message != self.code:
            return f"{self.code} - {self.message}"
        return self.code

    def __eq__(self, other):
        if not isinstance(other, ParseError):
            return NotImplemented
        return self.code == other.code and self.line == other.line and self.column == other.column

    __hash__ = None  # Unhashable since we define __eq__
