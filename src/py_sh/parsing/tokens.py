"""Tokenizer: split a raw command line into words and operators.

The scanner walks the line with a single cursor.  Each call to
``next_token()`` skips leading whitespace, classifies what it finds,
moves the cursor past the token *and* any whitespace after it, and
returns the token:

- ``| ( ) ; & <`` are one-character operators.
- ``>`` is an output redirect, unless the next character is also ``>``,
  in which case both are consumed as one append redirect.
- Any other run of characters up to whitespace or an operator is a word.
- At the end of the line an ``END`` token with a zero-width span.

``peek()`` answers "is the next non-blank character one of these
operators?" without consuming anything, which is all the lookahead the
grammar needs.

Words are not copied out of the line.  A token only records a ``Span``
(half-open offsets into the line); the parser resolves spans into
strings once the whole tree is built.
"""

from dataclasses import dataclass
from enum import StrEnum

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"


class TokenType(StrEnum):
    """Classification tag for a lexical token."""

    WORD = "word"
    PIPE = "|"
    REDIRECT_IN = "<"
    REDIRECT_OUT = ">"
    REDIRECT_APPEND = ">>"
    BACKGROUND = "&"
    SEQUENCE = ";"
    OPEN_GROUP = "("
    CLOSE_GROUP = ")"
    END = "end"


_SINGLE_CHAR_OPERATORS: dict[str, TokenType] = {
    "|": TokenType.PIPE,
    "(": TokenType.OPEN_GROUP,
    ")": TokenType.CLOSE_GROUP,
    ";": TokenType.SEQUENCE,
    "&": TokenType.BACKGROUND,
    "<": TokenType.REDIRECT_IN,
}


@dataclass(frozen=True)
class Span:
    """Half-open ``[start, end)`` range of offsets into a source line."""

    start: int
    end: int

    def __len__(self) -> int:
        """Return the number of characters covered."""
        return self.end - self.start

    def text(self, source: str) -> str:
        """Return the covered slice of *source*."""
        return source[self.start : self.end]


@dataclass(frozen=True)
class Token:
    """A classified token and the part of the line it came from."""

    type: TokenType
    span: Span


class Scanner:
    """Cursor over one input line, producing tokens on demand."""

    def __init__(self, source: str) -> None:
        """Start scanning *source* from its first character."""
        self._source = source
        self._pos = 0
        self._end = len(source)

    @property
    def source(self) -> str:
        """Return the line being scanned."""
        return self._source

    @property
    def position(self) -> int:
        """Return the cursor offset."""
        return self._pos

    @property
    def at_end(self) -> bool:
        """Return True if the cursor has reached the end of the line."""
        return self._pos >= self._end

    def rest(self) -> str:
        """Return the unconsumed remainder of the line."""
        return self._source[self._pos :]

    def _skip_whitespace(self, pos: int) -> int:
        while pos < self._end and self._source[pos] in WHITESPACE:
            pos += 1
        return pos

    def next_token(self) -> Token:
        """Consume and return the next token.

        Returns:
            The token; ``END`` once the line is exhausted.

        """
        pos = self._skip_whitespace(self._pos)
        start = pos
        if pos >= self._end:
            token_type = TokenType.END
        elif (char := self._source[pos]) in _SINGLE_CHAR_OPERATORS:
            token_type = _SINGLE_CHAR_OPERATORS[char]
            pos += 1
        elif char == ">":
            pos += 1
            token_type = TokenType.REDIRECT_OUT
            if pos < self._end and self._source[pos] == ">":
                token_type = TokenType.REDIRECT_APPEND
                pos += 1
        else:
            token_type = TokenType.WORD
            while (
                pos < self._end
                and self._source[pos] not in WHITESPACE
                and self._source[pos] not in SYMBOLS
            ):
                pos += 1
        token = Token(type=token_type, span=Span(start, pos))
        self._pos = self._skip_whitespace(pos)
        return token

    def peek(self, operators: str) -> bool:
        """Check whether the next non-blank character is one of *operators*.

        Leading whitespace is skipped (the cursor moves past it), but
        the character itself is not consumed.
        """
        self._pos = self._skip_whitespace(self._pos)
        return self._pos < self._end and self._source[self._pos] in operators


def tokenize(source: str) -> list[Token]:
    """Return every token of *source*, ending with the ``END`` token."""
    scanner = Scanner(source)
    tokens: list[Token] = []
    while True:
        token = scanner.next_token()
        tokens.append(token)
        if token.type is TokenType.END:
            return tokens
