"""Directive parser for annotation text.

Turns free-form annotation text into typed ``Directive`` values. Two sources
feed the same argument grammar:

    // @GqlType(name:"PublicView")
    // @GqlField(email, required, ro:[AdminView])
    Email string `gql:"email,required,ro:'AdminView'"`

Anything else in the text (doc-comment prose, ``@mentions``, other struct
tags) is ignored. The parser knows directive names and the argument grammar,
not what the arguments mean; that is the builder's job.
"""

import re
from dataclasses import dataclass
from enum import Enum

from .errors import DirectiveSyntaxError

DIRECTIVE_NAMES = (
    "GqlType",
    "GqlInput",
    "GqlEnum",
    "GqlEnumValue",
    "GqlIgnoreAll",
    "GqlField",
    "GqlTypeExtraField",
    "GqlInputExtraField",
    "GqlNamespace",
    "GqlUseModelDirective",
)

# Directive name given to arguments read from a gql:"..." struct tag
TAG_DIRECTIVE = "GqlField"

_CANONICAL_NAMES = {name.lower(): name for name in DIRECTIVE_NAMES}

# '@' must start the text or follow whitespace/comment punctuation
_DIRECTIVE_START = re.compile(r"(?<![\w@.\-])@(gql\w*)", re.IGNORECASE)
_TAG_START = re.compile(r"(?<![\w\-])gql:\"")


@dataclass(frozen=True)
class DirectiveArgument:
    """One argument of a directive: a flag, or key with value and qualifier.

    ``value`` is None for a bare flag, a string for a scalar value, or a tuple
    for a list value (``[A,B]`` and ``'A,B'`` parse identically). ``raw_value``
    keeps the unparsed source of the value.
    """
    key: str
    value: str | tuple[str, ...] | None = None
    qualifier: tuple[str, ...] | None = None
    position: int = 0
    raw_value: str | None = None

    @property
    def is_flag(self) -> bool:
        return self.value is None

    @property
    def is_list(self) -> bool:
        return isinstance(self.value, tuple)

    def text(self) -> str | None:
        """The value as one string; a list yields its source without delimiters."""
        if self.value is None or isinstance(self.value, str):
            return self.value
        raw = self.raw_value or ""
        if raw[:1] in ("[", "'") and raw[-1:] in ("]", "'"):
            raw = raw[1:-1]
        return raw.strip()

    def items(self) -> tuple[str, ...]:
        """The value as a list of names."""
        if self.value is None:
            return ()
        if isinstance(self.value, str):
            return (self.value,)
        return self.value


@dataclass(frozen=True)
class Directive:
    """A parsed ``@Name(args)`` invocation or ``gql:"..."`` tag."""
    name: str
    arguments: tuple[DirectiveArgument, ...] = ()
    position: int = 0
    from_tag: bool = False

    def get(self, key: str) -> DirectiveArgument | None:
        """Return the last argument with ``key``, or None."""
        for argument in reversed(self.arguments):
            if argument.key == key:
                return argument
        return None

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def duplicate_keys(self) -> list[str]:
        """Keys given more than once, in first-seen order."""
        counts: dict[str, int] = {}
        for argument in self.arguments:
            counts[argument.key] = counts.get(argument.key, 0) + 1
        return [key for key, count in counts.items() if count > 1]

    def options(self) -> list[DirectiveArgument]:
        """Arguments with duplicates collapsed; the last occurrence wins."""
        last = {argument.key: argument for argument in self.arguments}
        return [a for a in self.arguments if last[a.key] is a]


class TokenKind(str, Enum):
    WORD = "word"
    STRING = "string"
    QUOTED_LIST = "quoted list"
    LBRACKET = "'['"
    RBRACKET = "']'"
    COMMA = "','"
    COLON = "':'"
    RPAREN = "')'"
    EOF = "end of input"


class Token:
    """A single token from the argument lexer."""

    __slots__ = ("kind", "value", "pos", "end")

    def __init__(self, kind: TokenKind, value: str, pos: int, end: int):
        self.kind = kind
        self.value = value
        self.pos = pos
        self.end = end

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.value!r}, pos={self.pos})"


_PUNCTUATION = {
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    ":": TokenKind.COLON,
}


def tokenize_arguments(text: str, start: int = 0, in_parens: bool = False) -> list[Token]:
    """Tokenize an argument list starting at ``start``.

    With ``in_parens`` the list ends at the first unbalanced ``)`` outside
    quotes, which is emitted as an RPAREN token; running out of text first is
    an error. ``(`` inside an unquoted value opens a nested group, so
    ``description:a (b)`` keeps its closing paren.
    Otherwise the whole remaining text is consumed.
    """
    tokens: list[Token] = []
    i = start
    n = len(text)
    stop_chars = " \t\r\n,:[]'\"" + (")" if in_parens else "")
    # Parentheses opened inside unquoted words; their ")" belongs to the word
    nesting = 0

    while i < n:
        c = text[i]

        if c in " \t\r\n":
            i += 1
            continue

        if in_parens and c == ")" and not nesting:
            tokens.append(Token(TokenKind.RPAREN, c, i, i + 1))
            return tokens

        if c == '"':
            i, token = _read_string(text, i)
            tokens.append(token)
            continue

        if c == "'":
            close = text.find("'", i + 1)
            if close < 0:
                raise DirectiveSyntaxError("unterminated quoted list", text[i:], i)
            tokens.append(Token(TokenKind.QUOTED_LIST, text[i + 1:close], i, close + 1))
            i = close + 1
            continue

        if c in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[c], c, i, i + 1))
            i += 1
            continue

        end = i
        while end < n:
            ch = text[end]
            if ch == "(":
                nesting += 1
            elif ch == ")" and nesting:
                nesting -= 1
            elif ch in stop_chars:
                break
            end += 1
        tokens.append(Token(TokenKind.WORD, text[i:end], i, end))
        i = end

    if in_parens:
        raise DirectiveSyntaxError("unterminated argument list", text[start - 1:], start - 1)
    tokens.append(Token(TokenKind.EOF, "", n, n))
    return tokens


def _read_string(text: str, start: int) -> tuple[int, Token]:
    """Read a double-quoted string with backslash escapes."""
    i = start + 1
    n = len(text)
    chars: list[str] = []

    while i < n:
        c = text[i]
        if c == "\\":
            if i + 1 < n:
                chars.append(text[i + 1])
                i += 2
                continue
            break
        if c == '"':
            return i + 1, Token(TokenKind.STRING, "".join(chars), start, i + 1)
        chars.append(c)
        i += 1

    raise DirectiveSyntaxError("unterminated string", text[start:], start)


class ArgumentParser:
    """Recursive-descent parser over the tokens of one argument list."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.index = 0

    def peek(self) -> Token:
        return self.tokens[self.index]

    def advance(self) -> Token:
        token = self.tokens[self.index]
        if token.kind not in (TokenKind.EOF, TokenKind.RPAREN):
            self.index += 1
        return token

    def error(self, message: str, token: Token) -> DirectiveSyntaxError:
        snippet = self.text[token.pos:token.end] or self.text[token.pos:token.pos + 20]
        return DirectiveSyntaxError(message, snippet, token.pos)

    def parse_arguments(self) -> tuple[DirectiveArgument, ...]:
        """Parse ``arg (',' arg)*``; empty parts between commas are skipped."""
        arguments: list[DirectiveArgument] = []
        while True:
            token = self.peek()
            if token.kind in (TokenKind.EOF, TokenKind.RPAREN):
                break
            if token.kind is TokenKind.COMMA:
                self.advance()
                continue
            arguments.append(self.parse_argument())
            token = self.peek()
            if token.kind not in (TokenKind.COMMA, TokenKind.EOF, TokenKind.RPAREN):
                raise self.error(f"expected ',' but found {token.kind.value}", token)
        return tuple(arguments)

    def parse_argument(self) -> DirectiveArgument:
        token = self.advance()
        if token.kind is not TokenKind.WORD:
            raise self.error(f"expected a flag or key but found {token.kind.value}", token)
        if self.peek().kind is TokenKind.WORD:
            raise self.error("unexpected text after flag", self.peek())
        key = token.value

        if self.peek().kind is not TokenKind.COLON:
            return DirectiveArgument(key=key, position=token.pos)

        self.advance()
        value, raw_value = self.parse_value()
        qualifier = None
        if self.peek().kind is TokenKind.COLON:
            self.advance()
            qualifier = self.parse_list()
        return DirectiveArgument(
            key=key,
            value=value,
            qualifier=qualifier,
            position=token.pos,
            raw_value=raw_value,
        )

    def parse_value(self) -> tuple[str | tuple[str, ...], str]:
        token = self.peek()
        if token.kind is TokenKind.STRING:
            self.advance()
            return token.value, self.text[token.pos:token.end]
        if token.kind in (TokenKind.LBRACKET, TokenKind.QUOTED_LIST):
            items = self.parse_list()
            return items, self.text[token.pos:self.tokens[self.index - 1].end]
        if token.kind is TokenKind.WORD:
            first = last = self.advance()
            while self.peek().kind is TokenKind.WORD:
                last = self.advance()
            raw = self.text[first.pos:last.end]
            return raw, raw
        raise self.error("missing value after ':'", token)

    def parse_list(self) -> tuple[str, ...]:
        """Parse ``[A, B]`` or ``'A,B'`` into a tuple of names."""
        token = self.advance()
        if token.kind is TokenKind.QUOTED_LIST:
            return _split_names(token.value)
        if token.kind is not TokenKind.LBRACKET:
            raise self.error(f"expected a list but found {token.kind.value}", token)

        items: list[str] = []
        while True:
            token = self.peek()
            if token.kind is TokenKind.RBRACKET:
                self.advance()
                return tuple(items)
            if token.kind is TokenKind.COMMA:
                self.advance()
                continue
            if token.kind is TokenKind.WORD:
                first = last = self.advance()
                while self.peek().kind is TokenKind.WORD:
                    last = self.advance()
                items.append(self.text[first.pos:last.end])
                continue
            if token.kind in (TokenKind.EOF, TokenKind.RPAREN):
                raise self.error("unterminated '['", token)
            raise self.error(f"unexpected {token.kind.value} in list", token)


def _split_names(text: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in text.split(",") if part.strip())


class DirectiveParser:
    """Parses annotation text into directives.

    Example:
        parser = DirectiveParser()
        directives = parser.parse('// @GqlType(name:"PublicView")')
        directives[0].get("name").value  # "PublicView"
    """

    def __init__(self, source: str | None = None):
        """Initialize a parser.

        Args:
            source: Identity of the unit being parsed, attached to errors
        """
        self.source = source

    def parse(self, annotation_text: str) -> list[Directive]:
        """Parse every directive and tag in the text, in textual order."""
        try:
            return list(self._iter_directives(annotation_text or ""))
        except DirectiveSyntaxError as e:
            if self.source and not e.source:
                raise e.with_source(self.source) from None
            raise

    def _iter_directives(self, text: str):
        pos = 0
        while True:
            directive_match = _DIRECTIVE_START.search(text, pos)
            tag_match = _TAG_START.search(text, pos)
            if directive_match is None and tag_match is None:
                return
            if tag_match is None or (
                directive_match is not None and directive_match.start() < tag_match.start()
            ):
                directive, pos = self._parse_directive(text, directive_match)
            else:
                directive, pos = self._parse_tag(text, tag_match)
            yield directive

    def _parse_directive(self, text: str, match: re.Match) -> tuple[Directive, int]:
        written = match.group(1)
        name = _CANONICAL_NAMES.get(written.lower())
        if name is None:
            raise DirectiveSyntaxError(f"unknown directive '@{written}'", match.group(0), match.start())

        end = match.end()
        if end >= len(text) or text[end] != "(":
            return Directive(name=name, position=match.start()), end

        tokens = tokenize_arguments(text, end + 1, in_parens=True)
        parser = ArgumentParser(text, tokens)
        arguments = parser.parse_arguments()
        closing = parser.peek()
        return Directive(name=name, arguments=arguments, position=match.start()), closing.end

    def _parse_tag(self, text: str, match: re.Match) -> tuple[Directive, int]:
        start = match.end()
        i = start
        while i < len(text):
            if text[i] == "\\":
                i += 2
                continue
            if text[i] == '"':
                break
            i += 1
        else:
            raise DirectiveSyntaxError("unterminated gql tag", text[match.start():], match.start())

        payload = text[start:i].replace('\\"', '"').replace("\\\\", "\\")
        try:
            tokens = tokenize_arguments(payload)
            arguments = ArgumentParser(payload, tokens).parse_arguments()
        except DirectiveSyntaxError as e:
            raise DirectiveSyntaxError(e.message, e.text, start + e.position) from None
        # Tag argument positions are relative to the payload
        arguments = tuple(
            DirectiveArgument(a.key, a.value, a.qualifier, start + a.position, a.raw_value)
            for a in arguments
        )
        directive = Directive(name=TAG_DIRECTIVE, arguments=arguments, position=match.start(), from_tag=True)
        return directive, i + 1


def parse(annotation_text: str, source: str | None = None) -> list[Directive]:
    """Parse annotation text into directives. See ``DirectiveParser``."""
    return DirectiveParser(source).parse(annotation_text)
