"""Tokenizer for guardrail expressions."""

import string
from dataclasses import dataclass
from enum import Enum
from typing import List

from ..errors import ParseError


class TokenType(Enum):
    """Token categories produced by the lexer."""

    NUMBER = "number"
    STRING = "string"
    IDENT = "ident"
    OPERATOR = "operator"
    EOF = "eof"


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    position: int
    value: object = None


KEYWORDS = {"true", "false", "null", "in"}

# ASCII only, str.isdigit also accepts superscripts like "²"
DIGITS = frozenset(string.digits)

# Longest first so "&&" wins over "&" and "<=" over "<"
OPERATORS = (
    "&&", "||", "==", "!=", "<=", ">=",
    "<", ">", "!", "+", "-", "*", "/", "%",
    "(", ")", "[", "]", "{", "}", ".", ",", ":", "?",
)

ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


def tokenize(source: str) -> List[Token]:
    """Split an expression into tokens.

    Args:
        source: Expression text

    Returns:
        List of tokens, always terminated by an EOF token

    Raises:
        ParseError: On unterminated strings or unexpected characters
    """
    tokens: List[Token] = []
    pos = 0
    length = len(source)

    while pos < length:
        char = source[pos]

        if char.isspace():
            pos += 1
            continue

        if char in DIGITS:
            start = pos
            while pos < length and source[pos] in DIGITS:
                pos += 1
            if pos + 1 < length and source[pos] == "." and source[pos + 1] in DIGITS:
                pos += 1
                while pos < length and source[pos] in DIGITS:
                    pos += 1
            text = source[start:pos]
            number = float(text) if "." in text else int(text)
            tokens.append(Token(TokenType.NUMBER, text, start, number))
            continue

        if char.isalpha() or char == "_":
            start = pos
            while pos < length and (source[pos].isalnum() or source[pos] == "_"):
                pos += 1
            text = source[start:pos]
            kind = TokenType.OPERATOR if text in KEYWORDS else TokenType.IDENT
            tokens.append(Token(kind, text, start))
            continue

        if char in ("'", '"'):
            token, pos = _read_string(source, pos)
            tokens.append(token)
            continue

        for op in OPERATORS:
            if source.startswith(op, pos):
                tokens.append(Token(TokenType.OPERATOR, op, pos))
                pos += len(op)
                break
        else:
            raise ParseError(f"Unexpected character {char!r}", pos, source)

    tokens.append(Token(TokenType.EOF, "", length))
    return tokens


def _read_string(source: str, start: int):
    quote = source[start]
    pos = start + 1
    chars = []
    while pos < len(source):
        char = source[pos]
        if char == quote:
            text = source[start:pos + 1]
            return Token(TokenType.STRING, text, start, "".join(chars)), pos + 1
        if char == "\\":
            if pos + 1 >= len(source):
                break
            escaped = source[pos + 1]
            if escaped not in ESCAPES:
                raise ParseError(f"Invalid escape sequence \\{escaped}", pos, source)
            chars.append(ESCAPES[escaped])
            pos += 2
            continue
        if char == "\n":
            break
        chars.append(char)
        pos += 1
    raise ParseError("Unterminated string literal", start, source)
