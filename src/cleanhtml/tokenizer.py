import re
import sys

from .constants import RAWTEXT_ELEMENTS, RCDATA_ELEMENTS, VOID_ELEMENTS
from .entities import decode_entities_in_text
from .tokens import CharacterTokens, CommentToken, EOFToken, ParseError, Tag

_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})
_WHITESPACE = ("\t", "\n", "\f", " ")

_ATTR_NAME_TERMINATOR_PATTERN = re.compile(r"[\t\n\f />=\"'<]")
_ATTR_VALUE_UNQUOTED_PATTERN = re.compile(r"[\t\n\f >]")
_SURROGATE_PATTERN = re.compile("[\ud800-\udfff]")


def _is_ascii_alpha(c):
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def preprocess_input(html):
    """Normalize newlines and replace characters that must never reach the tree.

    CR and CRLF become LF. NULL and lone surrogates (what a lenient decoder
    leaves behind for invalid UTF-8) become U+FFFD, so no adjacent tokens are
    ever merged by a silently dropped character.
    """
    if html and html[0] == "\ufeff":
        html = html[1:]
    if "\r" in html:
        html = html.replace("\r\n", "\n").replace("\r", "\n")
    if "\0" in html:
        html = html.replace("\0", "\ufffd")
    if _SURROGATE_PATTERN.search(html):
        html = _SURROGATE_PATTERN.sub("\ufffd", html)
    return html


class TokenizerOpts:
    __slots__ = ("collect_errors", "rawtext_tags")

    def __init__(self, collect_errors=False, rawtext_tags=None):
        self.collect_errors = bool(collect_errors)
        # Extra elements (e.g. a policy's forbidden tags) whose content is opaque
        # text. Void elements never qualify: they have no content to swallow.
        extra = frozenset(rawtext_tags or ()) - VOID_ELEMENTS - {"plaintext"}
        self.rawtext_tags = RAWTEXT_ELEMENTS | extra


class Tokenizer:
    """HTML tokenizer feeding a sink (normally the TreeBuilder).

    The state machine follows the WHATWG tokenizer closely for tags,
    attributes and RAWTEXT content. Markup declarations (comments, DOCTYPE,
    CDATA, processing instructions) are all reduced to comment tokens, since
    nothing downstream keeps them.
    """

    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION_OPEN = 13
    COMMENT_START = 14
    COMMENT = 15
    BOGUS_COMMENT = 16
    RAWTEXT = 17
    PLAINTEXT = 18

    __slots__ = (
        "_line_cache",
        "buffer",
        "current_attr_name",
        "current_attr_value",
        "current_comment",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "length",
        "opts",
        "pos",
        "rawtext_tag_name",
        "reconsume",
        "current_char",
        "sink",
        "state",
        "text_buffer",
        "token_start",
    )

    def __init__(self, sink, opts=None):
        self.sink = sink
        self.opts = opts or TokenizerOpts()

        self.state = self.DATA
        self.buffer = ""
        self.length = 0
        self.pos = 0
        self.token_start = 0
        self.reconsume = False
        self.current_char = None
        self._line_cache = (0, 1)

        self.text_buffer = []
        self.current_tag_name = []
        self.current_tag_attrs = {}
        self.current_attr_name = []
        self.current_attr_value = []
        self.current_tag_self_closing = False
        self.current_tag_kind = Tag.START
        self.current_comment = []
        self.rawtext_tag_name = None

    def run(self, html):
        self.buffer = preprocess_input(html or "")
        self.length = len(self.buffer)
        self.pos = 0
        self.token_start = 0
        self.reconsume = False
        self.current_char = None
        self._line_cache = (0, 1)
        self.text_buffer.clear()
        self.current_comment.clear()
        self.rawtext_tag_name = None
        self._start_tag(Tag.START)
        self.state = self.DATA

        if self.opts.collect_errors and "\ufffd" in self.buffer:
            self._report_replacement_characters(html or "")

        while True:
            state = self.state
            if state == self.DATA:
                if self._state_data():
                    break
            elif state == self.TAG_OPEN:
                if self._state_tag_open():
                    break
            elif state == self.END_TAG_OPEN:
                if self._state_end_tag_open():
                    break
            elif state == self.TAG_NAME:
                if self._state_tag_name():
                    break
            elif state == self.BEFORE_ATTRIBUTE_NAME:
                if self._state_before_attribute_name():
                    break
            elif state == self.ATTRIBUTE_NAME:
                if self._state_attribute_name():
                    break
            elif state == self.AFTER_ATTRIBUTE_NAME:
                if self._state_after_attribute_name():
                    break
            elif state == self.BEFORE_ATTRIBUTE_VALUE:
                if self._state_before_attribute_value():
                    break
            elif state == self.ATTRIBUTE_VALUE_DOUBLE:
                if self._state_attribute_value_quoted('"'):
                    break
            elif state == self.ATTRIBUTE_VALUE_SINGLE:
                if self._state_attribute_value_quoted("'"):
                    break
            elif state == self.ATTRIBUTE_VALUE_UNQUOTED:
                if self._state_attribute_value_unquoted():
                    break
            elif state == self.AFTER_ATTRIBUTE_VALUE_QUOTED:
                if self._state_after_attribute_value_quoted():
                    break
            elif state == self.SELF_CLOSING_START_TAG:
                if self._state_self_closing_start_tag():
                    break
            elif state == self.MARKUP_DECLARATION_OPEN:
                if self._state_markup_declaration_open():
                    break
            elif state == self.COMMENT_START:
                if self._state_comment_start():
                    break
            elif state == self.COMMENT:
                if self._state_comment():
                    break
            elif state == self.BOGUS_COMMENT:
                if self._state_bogus_comment():
                    break
            elif state == self.RAWTEXT:
                if self._state_rawtext():
                    break
            elif state == self.PLAINTEXT:
                if self._state_plaintext():
                    break
            else:
                # Unknown state fallback to data.
                self.state = self.DATA

    # ---------------------
    # Positions
    # ---------------------

    def position(self, pos=None):
        """Return the 1-based (line, column) of `pos` (default: current token start)."""
        if pos is None:
            pos = self.token_start
        cached_pos, cached_line = self._line_cache
        if pos >= cached_pos:
            line = cached_line + self.buffer.count("\n", cached_pos, pos)
        else:
            line = 1 + self.buffer.count("\n", 0, pos)
        self._line_cache = (pos, line)
        column = pos - self.buffer.rfind("\n", 0, pos)
        return line, column

    def _report_replacement_characters(self, original):
        # Errors are reported against the preprocessed buffer, where a NULL or
        # surrogate now sits as U+FFFD. Genuine U+FFFD in the input is not an error.
        if "\0" not in original and not _SURROGATE_PATTERN.search(original):
            return
        pos = self.buffer.find("\ufffd")
        expected = original.count("\0") + len(_SURROGATE_PATTERN.findall(original))
        while pos != -1 and expected:
            self._emit_error("unexpected-null-character", pos)
            expected -= 1
            pos = self.buffer.find("\ufffd", pos + 1)

    # ---------------------
    # State handlers
    # ---------------------

    def _state_data(self):
        lt_index = self.buffer.find("<", self.pos)
        if lt_index == -1:
            self.text_buffer.append(self.buffer[self.pos :])
            self.pos = self.length
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if lt_index > self.pos:
            self.text_buffer.append(self.buffer[self.pos : lt_index])
        self._flush_text()
        self.token_start = lt_index
        self.pos = lt_index + 1
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("<")
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if c == "!":
            self.state = self.MARKUP_DECLARATION_OPEN
            return False
        if c == "/":
            self.state = self.END_TAG_OPEN
            return False
        if c == "?":
            self._emit_error("unexpected-question-mark-instead-of-tag-name")
            self.current_comment.clear()
            self._reconsume_current()
            self.state = self.BOGUS_COMMENT
            return False
        if _is_ascii_alpha(c):
            self._start_tag(Tag.START)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.text_buffer.append("<")
        # Data state scans the buffer directly; step back instead of reconsuming.
        self.pos -= 1
        self.state = self.DATA
        return False

    def _state_end_tag_open(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self.text_buffer.append("</")
            self._flush_text()
            self._emit_token(EOFToken())
            return True
        if _is_ascii_alpha(c):
            self._start_tag(Tag.END)
            self._reconsume_current()
            self.state = self.TAG_NAME
            return False
        if c == ">":
            self._emit_error("missing-end-tag-name")
            self.state = self.DATA
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self.current_comment.clear()
        self._reconsume_current()
        self.state = self.BOGUS_COMMENT
        return False

    def _state_tag_name(self):
        while True:
            c = self._get_char()
            if c is None:
                # The incomplete tag is discarded, not emitted as text.
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if "A" <= c <= "Z":
                c = chr(ord(c) + 32)
            self.current_tag_name.append(c)

    def _state_before_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c == "=":
                self._emit_error("unexpected-equals-sign-before-attribute-name")
                self._start_attribute()
                self.current_attr_name.append(c)
                self.state = self.ATTRIBUTE_NAME
                return False
            self._start_attribute()
            self._reconsume_current()
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_attribute_name(self):
        while True:
            if self._consume_attribute_name_run():
                continue
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.AFTER_ATTRIBUTE_NAME
                return False
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            if c in ('"', "'", "<"):
                self._emit_error("unexpected-character-in-attribute-name")
            if "A" <= c <= "Z":
                c = chr(ord(c) + 32)
            self.current_attr_name.append(c)

    def _state_after_attribute_name(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == "/":
                self.state = self.SELF_CLOSING_START_TAG
                return False
            if c == "=":
                self.state = self.BEFORE_ATTRIBUTE_VALUE
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self._start_attribute()
            self._reconsume_current()
            self.state = self.ATTRIBUTE_NAME
            return False

    def _state_before_attribute_value(self):
        while True:
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                continue
            if c == '"':
                self.state = self.ATTRIBUTE_VALUE_DOUBLE
                return False
            if c == "'":
                self.state = self.ATTRIBUTE_VALUE_SINGLE
                return False
            if c == ">":
                self._emit_error("missing-attribute-value")
                self._emit_current_tag()
                return False
            self._reconsume_current()
            self.state = self.ATTRIBUTE_VALUE_UNQUOTED
            return False

    def _state_attribute_value_quoted(self, quote):
        end = self.buffer.find(quote, self.pos)
        if end == -1:
            # The incomplete tag is discarded, not emitted.
            self.pos = self.length
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        self.current_attr_value.append(self.buffer[self.pos : end])
        self.pos = end + 1
        self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED
        return False

    def _state_attribute_value_unquoted(self):
        while True:
            if not self.reconsume:
                match = _ATTR_VALUE_UNQUOTED_PATTERN.search(self.buffer, self.pos)
                end = match.start() if match else self.length
                if end > self.pos:
                    chunk = self.buffer[self.pos : end]
                    if any(ch in chunk for ch in "\"'<=`"):
                        self._emit_error("unexpected-character-in-unquoted-attribute-value")
                    self.current_attr_value.append(chunk)
                    self.pos = end
            c = self._get_char()
            if c is None:
                self._emit_error("eof-in-tag")
                self._emit_token(EOFToken())
                return True
            if c in _WHITESPACE:
                self.state = self.BEFORE_ATTRIBUTE_NAME
                return False
            if c == ">":
                self._emit_current_tag()
                return False
            self.current_attr_value.append(c)

    def _state_after_attribute_value_quoted(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        if c in _WHITESPACE:
            self.state = self.BEFORE_ATTRIBUTE_NAME
            return False
        if c == "/":
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self._emit_current_tag()
            return False
        self._emit_error("missing-whitespace-between-attributes")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_self_closing_start_tag(self):
        c = self._get_char()
        if c is None:
            self._emit_error("eof-in-tag")
            self._emit_token(EOFToken())
            return True
        if c == ">":
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return False
        self._emit_error("unexpected-solidus-in-tag")
        self._reconsume_current()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_markup_declaration_open(self):
        self.current_comment.clear()
        if self._consume_if("--"):
            self.state = self.COMMENT_START
            return False
        if self._consume_case_insensitive("DOCTYPE"):
            # A DOCTYPE carries nothing worth keeping in a fragment; swallow it
            # up to the next '>' like the doctype states would.
            self.state = self.BOGUS_COMMENT
            return False
        if self._consume_if("[CDATA["):
            self._emit_error("cdata-in-html-content")
            self.current_comment.append("[CDATA[")
            self.state = self.BOGUS_COMMENT
            return False
        self._emit_error("incorrectly-opened-comment")
        self.state = self.BOGUS_COMMENT
        return False

    def _state_comment_start(self):
        if self._consume_if(">") or self._consume_if("->"):
            self._emit_error("abrupt-closing-of-empty-comment")
            self._emit_comment()
            self.state = self.DATA
            return False
        self.state = self.COMMENT
        return False

    def _state_comment(self):
        buffer = self.buffer
        end = buffer.find("--", self.pos)
        while end != -1:
            # "--" may be followed by more dashes before the closing '>'.
            stop = end + 2
            while stop < self.length and buffer[stop] == "-":
                stop += 1
            if stop < self.length and buffer[stop] == ">":
                self.current_comment.append(buffer[self.pos : stop - 2])
                self.pos = stop + 1
                self._emit_comment()
                self.state = self.DATA
                return False
            if buffer.startswith("!>", stop):
                self._emit_error("incorrectly-closed-comment")
                self.current_comment.append(buffer[self.pos : stop - 2])
                self.pos = stop + 2
                self._emit_comment()
                self.state = self.DATA
                return False
            end = buffer.find("--", stop)
        self._emit_error("eof-in-comment")
        self.current_comment.append(buffer[self.pos :])
        self.pos = self.length
        self._emit_comment()
        self._emit_token(EOFToken())
        return True

    def _state_bogus_comment(self):
        if self.reconsume:
            self.reconsume = False
            self.pos -= 1
        end = self.buffer.find(">", self.pos)
        if end == -1:
            self.current_comment.append(self.buffer[self.pos :])
            self.pos = self.length
            self._emit_comment()
            self._emit_token(EOFToken())
            return True
        self.current_comment.append(self.buffer[self.pos : end])
        self.pos = end + 1
        self._emit_comment()
        self.state = self.DATA
        return False

    def _state_rawtext(self):
        buffer = self.buffer
        name = self.rawtext_tag_name
        name_length = len(name)
        search_from = self.pos
        while True:
            lt_index = buffer.find("</", search_from)
            if lt_index == -1:
                self.text_buffer.append(buffer[self.pos :])
                self.pos = self.length
                self._flush_text(decode=name in RCDATA_ELEMENTS)
                self._emit_token(EOFToken())
                return True
            name_end = lt_index + 2 + name_length
            candidate = buffer[lt_index + 2 : name_end].translate(_ASCII_LOWER_TABLE)
            if candidate == name and name_end < self.length and buffer[name_end] in ("\t", "\n", "\f", " ", "/", ">"):
                break
            search_from = lt_index + 2

        if lt_index > self.pos:
            self.text_buffer.append(buffer[self.pos : lt_index])
        self._flush_text(decode=name in RCDATA_ELEMENTS)
        self.token_start = lt_index
        self.rawtext_tag_name = None
        self._start_tag(Tag.END)
        self.current_tag_name.append(name)
        self.pos = name_end
        self.state = self.TAG_NAME
        return False

    def _state_plaintext(self):
        self.text_buffer.append(self.buffer[self.pos :])
        self.pos = self.length
        self._flush_text(decode=False)
        self._emit_token(EOFToken())
        return True

    # ---------------------
    # Low-level helpers
    # ---------------------

    def _get_char(self):
        if self.reconsume:
            self.reconsume = False
            return self.current_char
        if self.pos >= self.length:
            self.current_char = None
            return None
        c = self.buffer[self.pos]
        self.pos += 1
        self.current_char = c
        return c

    def _reconsume_current(self):
        self.reconsume = True

    def _flush_text(self, decode=True):
        if not self.text_buffer:
            return
        data = "".join(self.text_buffer)
        self.text_buffer.clear()
        if not data:
            return
        if decode and "&" in data:
            data = decode_entities_in_text(data)
        self._emit_token(CharacterTokens(data))

    def _start_tag(self, kind):
        self.current_tag_kind = kind
        self.current_tag_name.clear()
        self.current_tag_attrs = {}
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        self.current_tag_self_closing = False

    def _start_attribute(self):
        self._finish_attribute()

    def _finish_attribute(self):
        if not self.current_attr_name:
            self.current_attr_value.clear()
            return
        name = "".join(self.current_attr_name)
        value = "".join(self.current_attr_value)
        self.current_attr_name.clear()
        self.current_attr_value.clear()
        if name in self.current_tag_attrs:
            # First occurrence wins.
            self._emit_error("duplicate-attribute")
            return
        if "&" in value:
            value = decode_entities_in_text(value, in_attribute=True)
        self.current_tag_attrs[name] = value

    def _consume_attribute_name_run(self):
        if self.reconsume:
            return False
        pos = self.pos
        if pos >= self.length:
            return False
        match = _ATTR_NAME_TERMINATOR_PATTERN.search(self.buffer, pos)
        end = match.start() if match else self.length
        if end == pos:
            return False
        self.current_attr_name.append(self.buffer[pos:end].translate(_ASCII_LOWER_TABLE))
        self.pos = end
        return True

    def _emit_current_tag(self):
        self._finish_attribute()
        name = sys.intern("".join(self.current_tag_name))
        attrs = self.current_tag_attrs
        kind = self.current_tag_kind
        self_closing = self.current_tag_self_closing

        next_state = self.DATA
        if kind == Tag.END:
            if attrs:
                self._emit_error("end-tag-with-attributes")
                attrs = {}
            if self_closing:
                self._emit_error("end-tag-with-trailing-solidus")
                self_closing = False
        elif name == "plaintext":
            next_state = self.PLAINTEXT
        elif name in self.opts.rawtext_tags:
            next_state = self.RAWTEXT
            self.rawtext_tag_name = name

        self._start_tag(Tag.START)
        self.state = next_state
        self._emit_token(Tag(kind, name, attrs, self_closing))
        self.token_start = self.pos

    def _emit_comment(self):
        data = "".join(self.current_comment)
        self.current_comment.clear()
        self._emit_token(CommentToken(data))
        self.token_start = self.pos

    def _emit_token(self, token):
        self.sink.process_token(token)

    def _emit_error(self, code, pos=None):
        if self.opts.collect_errors:
            line, column = self.position(pos if pos is not None else max(self.pos - 1, 0))
            self._emit_token(ParseError(code, line=line, column=column))

    def _consume_if(self, literal):
        end = self.pos + len(literal)
        if self.buffer[self.pos : end] != literal:
            return False
        self.pos = end
        return True

    def _consume_case_insensitive(self, literal):
        end = self.pos + len(literal)
        if self.buffer[self.pos : end].lower() != literal.lower():
            return False
        self.pos = end
        return True
