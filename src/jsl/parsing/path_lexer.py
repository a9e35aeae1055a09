"""Lexer for the dotted path mini-language (e.g. ``sensors.*.type=temp.name``)."""

import ply.lex as lex

from jsl.errors import ParseError


class PathLexer:
    """Lexer for tokenizing path expressions.

    A path is a sequence of segments separated by dots. A segment is a key,
    a wildcard (``*`` or ``%``), or either of those followed by an inline
    predicate ``<op><comparand>``. After an operator the lexer switches to the
    ``comparand`` state so that quoted comparands and decimal numbers may
    contain dots.
    """

    tokens = (
        "DOT",
        "SEGMENT",
        "OPERATOR",
        "COMPARAND",
    )

    states = (("comparand", "exclusive"),)

    t_DOT = r"\."

    # Keys may contain spaces, so nothing is ignored
    t_ignore = ""

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore
        self._data = ""

    def t_OPERATOR(self, t: lex.LexToken) -> lex.LexToken:
        r"~=|!=|>=|<=|=|>|<"
        t.lexer.begin("comparand")
        return t

    def t_SEGMENT(self, t: lex.LexToken) -> lex.LexToken:
        r"[^.=!<>~]+"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise ParseError(
            f"Illegal character '{t.value[0]}' in path at position {t.lexpos}",
            query=self._data,
            position=t.lexpos,
        )

    # --- Exclusive comparand state tokens ---

    t_comparand_ignore = ""

    def t_comparand_COMPARAND(self, t: lex.LexToken) -> lex.LexToken:
        r"""'[^']*'|"[^"]*"|-?\d+(?:\.\d+)?(?=\.|$)|[^.]+"""
        if t.value[0] in "'\"":
            t.value = t.value[1:-1]
        t.lexer.begin("INITIAL")
        return t

    def t_comparand_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise ParseError(
            f"Expected a value after operator in path at position {t.lexpos}",
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
        self.lexer.begin("INITIAL")
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
        if self.lexer.current_state() == "comparand":
            self.lexer.begin("INITIAL")
            raise ParseError(
                f"Expected a value after operator in path at position {len(data)}",
                query=data,
                position=len(data),
            )
        return tokens
