"""Lexical analysis of pure lambda calculus. Converts raw text into a lazy sequence of tokens:

```
IDENTIFIER  ::= [A-Za-z0-9_] [A-Za-z0-9_']*    ; variables and binding names
LAMBDA      ::= "λ" | "\\"                     ; both spellings of the binder are accepted
DOT         ::= "."
LPAREN      ::= "("
RPAREN      ::= ")"
EQUALS      ::= "="                            ; only valid in a top-level binding
END                                            ; always the last token, positioned at len(text)
```

Whitespace separates tokens and is otherwise ignored, so `λx.x`, `\\x. x` and `( λx . x )` all lex the same way.
"""

import enum
from collections import namedtuple

from lambda_repl.lang.error import LexError


class TokenKind(enum.Enum):
    IDENTIFIER = "identifier"
    LAMBDA = "'λ'"
    DOT = "'.'"
    LPAREN = "'('"
    RPAREN = "')'"
    EQUALS = "'='"
    END = "end of input"


Token = namedtuple("Token", ["kind", "value", "start"])

LAMBDAS = ("λ", "\\")
SYMBOLS = {
    ".": TokenKind.DOT,
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "=": TokenKind.EQUALS,
}


def is_identifier_start(char):
    return char.isascii() and (char.isalnum() or char == "_")


def is_identifier_char(char):
    return is_identifier_start(char) or char == "'"


def tokenize(text):
    """Yields the Tokens of text, ending with an END token. Raises LexError at the first character that cannot start a
    token; tokens before it have already been yielded by then.
    """
    pos = 0
    while pos < len(text):
        char = text[pos]

        if char.isspace():
            pos += 1

        elif char in LAMBDAS:
            yield Token(TokenKind.LAMBDA, char, pos)
            pos += 1

        elif char in SYMBOLS:
            yield Token(SYMBOLS[char], char, pos)
            pos += 1

        elif is_identifier_start(char):
            end = pos + 1
            while end < len(text) and is_identifier_char(text[end]):
                end += 1
            yield Token(TokenKind.IDENTIFIER, text[pos:end], pos)
            pos = end

        else:
            raise LexError(text, char, pos)

    yield Token(TokenKind.END, "", len(text))
