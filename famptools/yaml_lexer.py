"""Tokenizer for the small YAML subset used by ``boot.yaml``."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Union

__all__ = ["YamlError", "TokenKind", "Token", "Lexer", "tokenize", "read_source"]


class YamlError(Exception):
    """Raised when a configuration file cannot be read or understood."""


class TokenKind(enum.Enum):
    USER_DEF = "user_def"
    COLON = "colon"
    LSQRBR = "lsqrbr"
    RSQRBR = "rsqrbr"
    STRING = "string"
    NUMBER = "number"
    HEX = "hex"
    CHARACTER = "character"
    COMMA = "comma"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    line: int


_PUNCTUATION = {
    ":": TokenKind.COLON,
    "[": TokenKind.LSQRBR,
    "]": TokenKind.RSQRBR,
    ",": TokenKind.COMMA,
}

_WORD_STOPS = frozenset('":\n\t ')


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


def _is_hex_letter(ch: str) -> bool:
    return "A" <= ch <= "F" or "a" <= ch <= "f"


def _is_letter(ch: str) -> bool:
    return "a" <= ch <= "z" or "A" <= ch <= "Z"


class Lexer:
    """Produces tokens one at a time from configuration text."""

    def __init__(self, source: Union[str, bytes, bytearray]):
        if isinstance(source, (bytes, bytearray)):
            source = bytes(source).decode("latin-1")
        # The text ends at the first NUL, as a C string would.
        self.source = source.split("\0", 1)[0]
        self.index = 0
        self.line = 1

    @property
    def _current(self) -> str:
        if self.index < len(self.source):
            return self.source[self.index]
        return "\0"

    @property
    def _at_end(self) -> bool:
        return self.index >= len(self.source)

    def _advance(self) -> None:
        self.index += 1

    def _peek_is(self, expected: str) -> bool:
        following = self.index + 1
        return following < len(self.source) and self.source[following] == expected

    def _read_number(self) -> Token:
        line = self.line
        chars = []
        is_hex = self._peek_is("x")
        if is_hex:
            chars.append("0")
            self._advance()
            self._advance()
        while _is_digit(self._current) or _is_hex_letter(self._current):
            chars.append(self._current)
            self._advance()
        kind = TokenKind.HEX if is_hex else TokenKind.NUMBER
        return Token(kind, "".join(chars), line)

    def _read_word(self) -> str:
        start = self.index
        while not self._at_end and self._current not in _WORD_STOPS:
            self._advance()
        return self.source[start:self.index]

    def next_token(self) -> Token:
        """Return the next token; at the end of input an EOF token every time."""
        while True:
            if self._at_end:
                return Token(TokenKind.EOF, "", self.line)

            ch = self._current
            if _is_digit(ch):
                return self._read_number()

            if ch == "#":
                while not self._at_end and self._current != "\n":
                    self._advance()
                self._advance()
                continue
            if ch == "\n":
                while self._current == "\n":
                    self.line += 1
                    self._advance()
                continue
            if ch in "\t ":
                while self._current == ch:
                    self._advance()
                continue

            if ch in _PUNCTUATION:
                token = Token(_PUNCTUATION[ch], ch, self.line)
                self._advance()
                return token

            if ch == '"':
                line = self.line
                self._advance()
                text = self._read_word()
                self._advance()
                # The character after the closing quote is consumed as well.
                self._advance()
                return Token(TokenKind.STRING, text, line)

            if ch == "'":
                line = self.line
                self._advance()
                value = self._current
                self._advance()
                self._advance()
                return Token(TokenKind.CHARACTER, value, line)

            if not _is_letter(ch):
                raise YamlError(
                    f"Error on line {self.line}:\n\tInvalid value `{ch}`({ord(ch):x})."
                )
            line = self.line
            return Token(TokenKind.USER_DEF, self._read_word(), line)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next_token()
            yield token
            if token.kind is TokenKind.EOF:
                return


def tokenize(source: Union[str, bytes, bytearray]) -> list[Token]:
    """Return every token of ``source``, ending with the EOF token."""
    return list(Lexer(source))


def read_source(filename: Union[str, Path]) -> str:
    """Read a configuration file, refusing missing or empty files."""
    try:
        data = Path(filename).read_bytes()
    except OSError as exc:
        raise YamlError(f"The file `{filename}` does not exist.") from exc
    if not data:
        raise YamlError(f"Nothing found in the file `{filename}` :(.")
    return data.decode("latin-1")