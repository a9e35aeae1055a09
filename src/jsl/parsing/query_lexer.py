"""Lexer for the jsl SELECT statement language."""

import re

import ply.lex as lex

from jsl.errors import ParseError


class QueryLexer:
    """Lexer for tokenizing SELECT statements."""

    # Reserved keywords
    reserved = {
        "select": "SELECT",
        "from": "FROM",
        "where": "WHERE",
        "group": "GROUP",
        "by": "BY",
        "as": "AS",
        "and": "AND",
        "or": "OR",
        "true": "TRUE",
        "false": "FALSE",
        "contains": "CONTAINS",
    }

    # Token list
    tokens = [
        "IDENTIFIER",
        "NUMBER",
        "STRING",
        "STAR",
        "PERCENT",
        "COMMA",
        "DOT",
        "LPAREN",
        "RPAREN",
        "EQ",
        "NEQ",
        "LT",
        "LTE",
        "GT",
        "GTE",
        "TILDE_EQ",
    ] + list(reserved.values())

    # Simple tokens
    t_STAR = r"\*"
    t_PERCENT = r"%"
    t_COMMA = r","
    t_DOT = r"\."
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_EQ = r"="
    t_NEQ = r"!="
    t_LTE = r"<="
    t_LT = r"<"
    t_GTE = r">="
    t_GT = r">"
    t_TILDE_EQ = r"~="

    # Ignored characters
    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore
        self._data = ""

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+(?:\.\d+)?"
        # Kept as text: a number may also be an index segment of a path (items.0.1)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r"""'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*\""""
        t.value = re.sub(r"\\(.)", r"\1", t.value[1:-1])
        return t

    def t_BACKTICK_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`]+`"
        # Backticked text is taken verbatim as a path, so keywords and
        # inline predicates (`sensors.*.type=temp.name`) survive
        t.value = t.value[1:-1]
        t.type = "IDENTIFIER"
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        # Check if it's a reserved word (case-insensitive)
        t.type = self.reserved.get(t.value.lower(), "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"--[^\n]*"
        pass  # Ignore comments

    def t_error(self, t: lex.LexToken) -> None:
        raise ParseError(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}",
            query=self._data,
            position=t.lexpos,
        )

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self._data = data
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


# Module-level set of reserved keywords (lowercase) for use by other modules
RESERVED_KEYWORDS: frozenset[str] = frozenset(QueryLexer.reserved.keys())
