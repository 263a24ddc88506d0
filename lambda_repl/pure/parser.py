"""Recursive descent parser for pure lambda calculus statements.

```
statement   ::= binding | term
binding     ::= IDENTIFIER "=" term
term        ::= abstraction | application
abstraction ::= LAMBDA IDENTIFIER "." term     ; bodies are greedy: λx.x y = λx.(x y) != (λx.x) y
application ::= atom+ [abstraction]            ; associating by left: a b c d = (((a b) c) d)
atom        ::= IDENTIFIER | "(" term ")"
```

Every identifier becomes a Variable. Whether a free Variable names a binding is decided by the reducer when it gets
there, so a term may mention bindings that do not exist yet (or that are redefined later).
"""

from dataclasses import dataclass

from lambda_repl.lang.error import ParseError
from lambda_repl.pure.lexer import TokenKind, tokenize
from lambda_repl.pure.term import Abstraction, Application, LambdaTerm, Variable


@dataclass(frozen=True)
class Binding:
    """Result of parsing `name = term`."""
    name: str
    term: LambdaTerm

    def __str__(self):
        return f"{self.name} = {self.term}"


ATOM_START = (TokenKind.IDENTIFIER, TokenKind.LPAREN)


def describe(kinds):
    """Returns human readable list of token kinds, e.g. "identifier or '('"."""
    names = [kind.value for kind in kinds]
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " or " + names[-1]


class Parser:
    """Parses one statement. Tokens are pulled from the lexer lazily with at most one token of lookahead beyond the
    current one (needed to tell `name = ...` apart from an application starting with name).
    """

    def __init__(self, text):
        self.text = text
        self._tokens = tokenize(text)
        self._lookahead = []
        self.current = next(self._tokens)
        self._open = []  # positions of unclosed "("

    def advance(self):
        """Moves to the next token and returns the one that was current."""
        token = self.current
        if token.kind is not TokenKind.END:
            self.current = self._lookahead.pop(0) if self._lookahead else next(self._tokens)
        return token

    def peek(self):
        """Returns the token after the current one without consuming anything."""
        if self.current.kind is TokenKind.END:
            return self.current
        if not self._lookahead:
            self._lookahead.append(next(self._tokens))
        return self._lookahead[0]

    def error(self, expected, msg=None):
        """Returns a ParseError for the current token. {0} in msg is the statement and {1} the offending token."""
        token = self.current
        if msg is None:
            if token.kind is TokenKind.END:
                msg = "'{0}' ended unexpectedly, expected " + describe(expected)
            else:
                msg = "'{0}' has unexpected '{1}', expected " + describe(expected)
        return ParseError(msg, self.text, token.start, token, expected)

    def expect(self, kind, msg=None):
        if self.current.kind is not kind:
            raise self.error((kind,), msg)
        return self.advance()

    def parse_statement(self):
        if self.current.kind is TokenKind.END:
            raise ParseError("λ-term cannot be empty", self.text, 0, None, (TokenKind.LAMBDA,) + ATOM_START)

        if self.current.kind is TokenKind.IDENTIFIER and self.peek().kind is TokenKind.EQUALS:
            name = self.advance().value
            self.advance()
            if self.current.kind is TokenKind.END:
                raise self.error((TokenKind.LAMBDA,) + ATOM_START, "binding '{0}' has no λ-term")
            statement = Binding(name, self.parse_term())
        else:
            statement = self.parse_term()

        self.finish()
        return statement

    def finish(self):
        """Checks that the whole input has been consumed."""
        kind = self.current.kind
        if kind is TokenKind.END:
            return
        if kind is TokenKind.RPAREN:
            raise self.error((TokenKind.END,), "'{0}' has mismatched parentheses: stray '{1}'")
        if kind is TokenKind.EQUALS:
            raise self.error((TokenKind.END,), "'{0}' has misplaced '{1}': bindings must have the form NAME = λ-term")
        raise self.error((TokenKind.END,))

    def parse_term(self):
        if self.current.kind is TokenKind.LAMBDA:
            return self.parse_abstraction()
        return self.parse_application()

    def parse_abstraction(self):
        self.expect(TokenKind.LAMBDA)
        param = self.expect(TokenKind.IDENTIFIER).value
        self.expect(TokenKind.DOT)
        return Abstraction(param, self.parse_term())

    def parse_application(self):
        term = self.parse_atom()
        while self.current.kind in ATOM_START + (TokenKind.LAMBDA,):
            if self.current.kind is TokenKind.LAMBDA:
                return Application(term, self.parse_abstraction())  # abstraction swallows the rest
            term = Application(term, self.parse_atom())
        return term

    def parse_atom(self):
        token = self.current

        if token.kind is TokenKind.IDENTIFIER:
            self.advance()
            return Variable(token.value)

        if token.kind is TokenKind.LPAREN:
            self._open.append(token.start)
            self.advance()
            if self.current.kind is TokenKind.RPAREN:
                raise self.error((TokenKind.LAMBDA,) + ATOM_START, "'{0}' has empty parentheses")
            term = self.parse_term()
            if self.current.kind is not TokenKind.RPAREN:
                if self.current.kind is TokenKind.END:
                    start = self._open[-1]
                    raise ParseError("'{0}' has mismatched parentheses: unclosed '('", self.text, start,
                                     token, (TokenKind.RPAREN,))
                raise self.error((TokenKind.RPAREN,))
            self._open.pop()
            self.advance()
            return term

        if token.kind is TokenKind.RPAREN:
            raise self.error(ATOM_START, "'{0}' has mismatched parentheses: stray '{1}'")
        raise self.error((TokenKind.LAMBDA,) + ATOM_START if token.kind is TokenKind.END else ATOM_START)


def parse(text):
    """Parses one statement of text. Returns a Binding for `name = term`, or the bare LambdaTerm otherwise. Raises
    LexError or ParseError.
    """
    return Parser(text).parse_statement()


def parse_term(text):
    """Like parse, but text must be a bare λ-term."""
    statement = parse(text)
    if isinstance(statement, Binding):
        start = text.index("=")
        raise ParseError("'{0}' is a binding, expected a λ-term", text, start, None, (TokenKind.END,))
    return statement
