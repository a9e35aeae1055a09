"""Parser for the jsl SELECT statement language."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

import ply.yacc as yacc

from jsl.errors import ParseError
from jsl.parsing.query_lexer import QueryLexer


@dataclass
class PathRef:
    """A dotted path operand like ``supplier.country`` or ``items.*.price``."""

    parts: list[str]

    @property
    def path(self) -> str:
        return ".".join(self.parts)


@dataclass
class Literal:
    """A number, string or boolean literal."""

    value: Any


@dataclass
class FunctionCall:
    """A function call like ``SUM(stock)``."""

    name: str
    args: list[Operand] = field(default_factory=list)


@dataclass
class SubQuery:
    """A parenthesised SELECT used as an operand or source."""

    query: SelectStatement


Operand = Union[FunctionCall, Literal, PathRef, SubQuery]


@dataclass
class Comparison:
    """An operand, optionally compared against a second operand."""

    operand: Operand
    operator: str | None = None  # eq, neq, lt, lte, gt, gte, contains
    value: Operand | None = None


@dataclass
class Grouped:
    """A parenthesised boolean expression."""

    expression: Disjunction


Condition = Union[Grouped, Comparison]


@dataclass
class Conjunction:
    """Conditions joined by AND."""

    terms: list[Condition]


@dataclass
class Disjunction:
    """Conjunctions joined by OR."""

    terms: list[Conjunction]


@dataclass
class SelectItem:
    """One entry of the SELECT list."""

    expression: Disjunction
    alias: str | None = None


@dataclass
class FromClause:
    """Either a named table or a nested SELECT."""

    table: str | None = None
    subquery: SelectStatement | None = None


@dataclass
class SelectStatement:
    """A parsed SELECT statement."""

    items: list[SelectItem] = field(default_factory=list)
    source: FromClause | None = None
    where: Disjunction | None = None
    group_by: PathRef | None = None


class QueryParser:
    """Parser for SELECT statements."""

    tokens = QueryLexer.tokens

    def __init__(self) -> None:
        self.lexer = QueryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._data = ""

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : select_query"""
        p[0] = p[1]

    def p_select_query(self, p: yacc.YaccProduction) -> None:
        """select_query : SELECT select_list from_clause where_clause group_clause"""
        p[0] = SelectStatement(items=p[2], source=p[3], where=p[4], group_by=p[5])

    def p_select_list_single(self, p: yacc.YaccProduction) -> None:
        """select_list : select_item"""
        p[0] = [p[1]]

    def p_select_list_multiple(self, p: yacc.YaccProduction) -> None:
        """select_list : select_list COMMA select_item"""
        p[0] = p[1] + [p[3]]

    def p_select_item(self, p: yacc.YaccProduction) -> None:
        """select_item : expression AS IDENTIFIER
                       | expression"""
        if len(p) == 4:
            p[0] = SelectItem(expression=p[1], alias=p[3])
        else:
            p[0] = SelectItem(expression=p[1])

    def p_from_clause_empty(self, p: yacc.YaccProduction) -> None:
        """from_clause : empty"""
        p[0] = None

    def p_from_clause_table(self, p: yacc.YaccProduction) -> None:
        """from_clause : FROM IDENTIFIER
                       | FROM STRING"""
        p[0] = FromClause(table=p[2])

    def p_from_clause_subquery(self, p: yacc.YaccProduction) -> None:
        """from_clause : FROM LPAREN select_query RPAREN"""
        p[0] = FromClause(subquery=p[3])

    def p_where_clause_empty(self, p: yacc.YaccProduction) -> None:
        """where_clause : empty"""
        p[0] = None

    def p_where_clause(self, p: yacc.YaccProduction) -> None:
        """where_clause : WHERE expression"""
        p[0] = p[2]

    def p_group_clause_empty(self, p: yacc.YaccProduction) -> None:
        """group_clause : empty"""
        p[0] = None

    def p_group_clause(self, p: yacc.YaccProduction) -> None:
        """group_clause : GROUP BY path"""
        p[0] = p[3]

    def p_expression_single(self, p: yacc.YaccProduction) -> None:
        """expression : and_expression"""
        p[0] = Disjunction(terms=[p[1]])

    def p_expression_or(self, p: yacc.YaccProduction) -> None:
        """expression : expression OR and_expression"""
        p[0] = Disjunction(terms=p[1].terms + [p[3]])

    def p_and_expression_single(self, p: yacc.YaccProduction) -> None:
        """and_expression : condition"""
        p[0] = Conjunction(terms=[p[1]])

    def p_and_expression_and(self, p: yacc.YaccProduction) -> None:
        """and_expression : and_expression AND condition"""
        p[0] = Conjunction(terms=p[1].terms + [p[3]])

    def p_condition_grouped(self, p: yacc.YaccProduction) -> None:
        """condition : LPAREN expression RPAREN"""
        p[0] = Grouped(expression=p[2])

    def p_condition_operand(self, p: yacc.YaccProduction) -> None:
        """condition : operand"""
        p[0] = Comparison(operand=p[1])

    def p_condition_comparison(self, p: yacc.YaccProduction) -> None:
        """condition : operand compare_op operand"""
        p[0] = Comparison(operand=p[1], operator=p[2], value=p[3])

    def p_compare_op(self, p: yacc.YaccProduction) -> None:
        """compare_op : EQ
                      | NEQ
                      | LT
                      | LTE
                      | GT
                      | GTE
                      | TILDE_EQ
                      | CONTAINS"""
        op_map = {"=": "eq", "!=": "neq", "<": "lt", "<=": "lte", ">": "gt", ">=": "gte", "~=": "contains"}
        p[0] = op_map.get(p[1], "contains")

    def p_operand_function(self, p: yacc.YaccProduction) -> None:
        """operand : IDENTIFIER LPAREN operand_list RPAREN"""
        p[0] = FunctionCall(name=p[1], args=p[3])

    def p_operand_literal(self, p: yacc.YaccProduction) -> None:
        """operand : literal"""
        p[0] = Literal(value=p[1])

    def p_operand_path(self, p: yacc.YaccProduction) -> None:
        """operand : path"""
        p[0] = p[1]

    def p_operand_subquery(self, p: yacc.YaccProduction) -> None:
        """operand : LPAREN select_query RPAREN"""
        p[0] = SubQuery(query=p[2])

    def p_operand_list_single(self, p: yacc.YaccProduction) -> None:
        """operand_list : operand"""
        p[0] = [p[1]]

    def p_operand_list_multiple(self, p: yacc.YaccProduction) -> None:
        """operand_list : operand_list COMMA operand"""
        p[0] = p[1] + [p[3]]

    def p_literal_number(self, p: yacc.YaccProduction) -> None:
        """literal : NUMBER"""
        text = p[1]
        p[0] = float(text) if "." in text else int(text)

    def p_literal_string(self, p: yacc.YaccProduction) -> None:
        """literal : STRING"""
        p[0] = p[1]

    def p_literal_true(self, p: yacc.YaccProduction) -> None:
        """literal : TRUE"""
        p[0] = True

    def p_literal_false(self, p: yacc.YaccProduction) -> None:
        """literal : FALSE"""
        p[0] = False

    def p_path_single(self, p: yacc.YaccProduction) -> None:
        """path : path_head"""
        p[0] = PathRef(parts=[p[1]])

    def p_path_dotted(self, p: yacc.YaccProduction) -> None:
        """path : path DOT path_part"""
        p[0] = PathRef(parts=p[1].parts + [p[3]])

    def p_path_head(self, p: yacc.YaccProduction) -> None:
        """path_head : IDENTIFIER
                     | STAR
                     | PERCENT"""
        p[0] = p[1]

    def p_path_part(self, p: yacc.YaccProduction) -> None:
        """path_part : path_head
                     | NUMBER"""
        p[0] = p[1]

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise ParseError(
                f"Syntax error at '{p.value}' (position {p.lexpos})",
                query=self._data,
                position=p.lexpos,
            )
        else:
            raise ParseError("Syntax error at end of input", query=self._data, position=len(self._data))

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="statement", **kwargs)

    def parse(self, data: str) -> SelectStatement:
        """Parse a statement string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._data = data
        if not data.strip():
            raise ParseError("Empty query", query=data, position=0)
        self.lexer.input(data)
        return self.parser.parse(lexer=self.lexer.lexer)
