"""Tests for the SELECT lexer, parser and lowering."""

import pytest

from jsl.errors import ParseError
from jsl.expression import And, Condition
from jsl.parsing.query_lexer import QueryLexer
from jsl.parsing.query_parser import (
    Comparison,
    FunctionCall,
    Literal,
    PathRef,
    QueryParser,
    SelectStatement,
    SubQuery,
)
from jsl.query import AggregateFunction, Field, SelectQuery, parse_query


class TestQueryLexer:
    """Tests for the query lexer."""

    def test_tokenize_select(self):
        """Test tokenizing a full statement."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT name FROM t WHERE x >= 1 GROUP BY y")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "SELECT", "IDENTIFIER", "FROM", "IDENTIFIER", "WHERE",
            "IDENTIFIER", "GTE", "NUMBER", "GROUP", "BY", "IDENTIFIER",
        ]

    def test_keywords_case_insensitive(self):
        """Test that keywords match in any case but identifiers keep theirs."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("select Name As n from T")
        assert [t.type for t in tokens] == ["SELECT", "IDENTIFIER", "AS", "IDENTIFIER", "FROM", "IDENTIFIER"]
        assert tokens[1].value == "Name"

    def test_operators(self):
        """Test tokenizing every comparison operator."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("= != < <= > >= ~= contains")
        assert [t.type for t in tokens] == ["EQ", "NEQ", "LT", "LTE", "GT", "GTE", "TILDE_EQ", "CONTAINS"]

    def test_backtick_identifier(self):
        """Test that backticks produce a verbatim identifier."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("`group` `a.*.b=c`")
        assert [(t.type, t.value) for t in tokens] == [("IDENTIFIER", "group"), ("IDENTIFIER", "a.*.b=c")]

    def test_string_escapes(self):
        """Test quoted strings with escapes."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize(r"'it\'s' " + '"say \\"hi\\""')
        assert [t.value for t in tokens] == ["it's", 'say "hi"']

    def test_numbers_stay_text(self):
        """Test that numbers keep their source text."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("-5 20.25")
        assert [t.value for t in tokens] == ["-5", "20.25"]

    def test_comments_ignored(self):
        """Test that -- comments are skipped."""
        lexer = QueryLexer()
        lexer.build()

        tokens = lexer.tokenize("SELECT a -- trailing words\n")
        assert [t.type for t in tokens] == ["SELECT", "IDENTIFIER"]

    def test_illegal_character(self):
        """Test that unknown characters raise ParseError."""
        lexer = QueryLexer()
        lexer.build()

        with pytest.raises(ParseError) as exc_info:
            lexer.tokenize("SELECT #")
        assert exc_info.value.position == 7


class TestQueryParser:
    """Tests for the statement grammar."""

    def test_parse_simple_select(self):
        """Test the AST of a simple statement."""
        parser = QueryParser()
        statement = parser.parse("SELECT name")

        assert isinstance(statement, SelectStatement)
        assert len(statement.items) == 1
        condition = statement.items[0].expression.terms[0].terms[0]
        assert condition == Comparison(operand=PathRef(["name"]))
        assert statement.source is None
        assert statement.where is None
        assert statement.group_by is None

    def test_parse_function_call(self):
        """Test that a call keeps its name and arguments."""
        parser = QueryParser()
        statement = parser.parse("SELECT count(a.b)")

        operand = statement.items[0].expression.terms[0].terms[0].operand
        assert operand == FunctionCall(name="count", args=[PathRef(["a", "b"])])

    def test_parse_literals(self):
        """Test literal operands."""
        parser = QueryParser()
        statement = parser.parse("SELECT * WHERE a = 'x' OR b = 2.5 OR c = TRUE OR d = -3")

        values = [conj.terms[0].value for conj in statement.where.terms]
        assert values == [Literal("x"), Literal(2.5), Literal(True), Literal(-3)]

    def test_parse_subquery_source(self):
        """Test a nested SELECT in FROM."""
        parser = QueryParser()
        statement = parser.parse("SELECT y FROM (SELECT x AS y)")

        assert statement.source.subquery is not None
        assert statement.source.subquery.items[0].alias == "y"

    def test_parse_subquery_operand(self):
        """Test that a nested SELECT parses as an operand."""
        parser = QueryParser()
        statement = parser.parse("SELECT (SELECT a)")

        operand = statement.items[0].expression.terms[0].terms[0].operand
        assert isinstance(operand, SubQuery)

    def test_index_path(self):
        """Test that numeric path parts join back into the path."""
        parser = QueryParser()
        statement = parser.parse("SELECT items.0.1, tags.*.name")

        paths = [item.expression.terms[0].terms[0].operand.path for item in statement.items]
        assert paths == ["items.0.1", "tags.*.name"]

    def test_parser_reusable(self):
        """Test that one parser handles several statements."""
        parser = QueryParser()
        parser.parse("SELECT a")
        statement = parser.parse("SELECT b")
        assert statement.items[0].expression.terms[0].terms[0].operand == PathRef(["b"])


class TestLowering:
    """Tests for lowering statements to SelectQuery."""

    def test_plain_fields(self):
        """Test plain fields with and without aliases."""
        query = parse_query("SELECT name, price AS cost")
        assert query.fields == (Field("name", "name"), Field("price", "cost"))

    def test_aggregate_default_alias(self):
        """Test the derived alias of an aggregate."""
        query = parse_query("SELECT COUNT(name), count(supplier.country)")
        assert query.fields == (
            Field("name", "COUNT_name", AggregateFunction.COUNT),
            Field("supplier.country", "count_supplier_country", AggregateFunction.COUNT),
        )
        assert query.has_aggregates

    def test_aggregate_alias(self):
        """Test an explicit aggregate alias."""
        query = parse_query("SELECT SUM(stock) AS total")
        assert query.fields == (Field("stock", "total", AggregateFunction.SUM),)

    def test_all_aggregates(self):
        """Test every aggregate function name."""
        query = parse_query("SELECT MAX(a), MIN(a), AVG(a), COUNT(a), SUM(a)")
        assert [f.aggregate for f in query.fields] == [
            AggregateFunction.MAX,
            AggregateFunction.MIN,
            AggregateFunction.AVG,
            AggregateFunction.COUNT,
            AggregateFunction.SUM,
        ]

    def test_star_is_pass_through(self):
        """Test that a bare * selects whole records."""
        assert parse_query("SELECT *").fields == ()
        assert parse_query("SELECT * AS everything").fields == (Field("*", "everything"),)
        assert parse_query("SELECT %").fields == ()
        assert parse_query("SELECT (%)").fields == ()

    def test_from_table(self):
        """Test named and quoted table sources."""
        assert parse_query("SELECT * FROM products").from_table == "products"
        assert parse_query("SELECT * FROM 'data.json'").from_table == "data.json"

    def test_from_subquery(self):
        """Test that a nested SELECT lowers to a nested query."""
        query = parse_query("SELECT y FROM (SELECT x AS y FROM (SELECT a AS x FROM T))")
        assert query.fields == (Field("y", "y"),)
        inner = query.from_query
        assert isinstance(inner, SelectQuery)
        assert inner.fields == (Field("x", "y"),)
        assert inner.from_query.fields == (Field("a", "x"),)
        assert inner.from_query.from_table == "T"

    def test_group_by(self):
        """Test the GROUP BY path."""
        query = parse_query("SELECT supplier.country, COUNT(id) GROUP BY supplier.country")
        assert query.group_by == "supplier.country"

    def test_where_values(self):
        """Test the values WHERE conditions compare against."""
        assert parse_query("SELECT * WHERE price > 100").filter == Condition("price", "gt", 100)
        assert parse_query("SELECT * WHERE price <= 20.5").filter == Condition("price", "lte", 20.5)
        assert parse_query("SELECT * WHERE name = 'Laptop'").filter == Condition("name", "eq", "Laptop")
        assert parse_query("SELECT * WHERE active = FALSE").filter == Condition("active", "eq", False)

    def test_where_bare_word_is_text(self):
        """Test that an unquoted right-hand word is compared as text."""
        query = parse_query("SELECT * WHERE category = Electronics")
        assert query.filter == Condition("category", "eq", "Electronics")

    def test_where_bare_field_is_truth_test(self):
        """Test that a lone field means field = TRUE."""
        query = parse_query("SELECT * WHERE active AND stock > 0")
        assert query.filter == And(Condition("active", "eq", True), Condition("stock", "gt", 0))

    def test_where_contains(self):
        """Test both spellings of contains."""
        assert parse_query("SELECT * WHERE name CONTAINS 'Desk'").filter == Condition("name", "contains", "Desk")
        assert parse_query("SELECT * WHERE name ~= 'Desk'").filter == Condition("name", "contains", "Desk")

    def test_backtick_predicate_path(self):
        """Test that backticks carry a predicate path into a field."""
        query = parse_query("SELECT `sensors.*.type=temp.name` AS names")
        assert query.fields == (Field("sensors.*.type=temp.name", "names"),)

    def test_literal_field(self):
        """Test that a literal in the SELECT list becomes its text."""
        assert parse_query("SELECT 5").fields == (Field("5", "5"),)

    def test_field_str(self):
        """Test how fields render in plans."""
        assert str(Field("price", "cost")) == "price AS cost"
        assert str(Field("name", "name")) == "name"
        assert str(Field("name", "COUNT_name", AggregateFunction.COUNT)) == "COUNT(name)"
        assert str(Field("a.b", "total", AggregateFunction.SUM)) == "SUM(a.b) AS total"
        assert str(Field("group", "group")) == "`group`"
        assert str(Field("a.*.b=c", "x")) == "`a.*.b=c` AS x"

    def test_aggregate_str_keeps_spelling(self):
        """Test that a derived alias renders with the function name as written."""
        assert str(parse_query("SELECT count(x)").fields[0]) == "count(x)"
        assert str(parse_query("SELECT Avg(a.b)").fields[0]) == "Avg(a.b)"
        assert str(parse_query("SELECT COUNT(x) AS count_x").fields[0]) == "count(x)"
        assert str(parse_query("SELECT SUM(x) AS count_x").fields[0]) == "SUM(x) AS count_x"


class TestParseErrors:
    """Tests for rejected statements."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "SELECT",
            "SELECT name FROM",
            "SELECT (name",
            "SELECT name)",
            "name WHERE a = 1",
            "SELECT name WHERE",
            "SELECT name GROUP name",
            "SELECT a, FROM t",
        ],
    )
    def test_grammar_violations(self, text):
        """Test that malformed statements raise ParseError."""
        with pytest.raises(ParseError):
            parse_query(text)

    def test_error_carries_input(self):
        """Test that the error keeps the statement and location."""
        with pytest.raises(ParseError) as exc_info:
            parse_query("SELECT name FROM")
        assert exc_info.value.query == "SELECT name FROM"
        assert exc_info.value.position == len("SELECT name FROM")

    def test_error_position(self):
        """Test the location of an unexpected token."""
        with pytest.raises(ParseError) as exc_info:
            parse_query("SELECT a b")
        assert exc_info.value.position == 9

    def test_unknown_function(self):
        """Test that unknown functions are rejected."""
        with pytest.raises(ParseError, match="Unknown function"):
            parse_query("SELECT MEDIAN(price)")

    def test_aggregate_arity(self):
        """Test that aggregates take one argument."""
        with pytest.raises(ParseError, match="exactly one argument"):
            parse_query("SELECT COUNT(a, b)")

    def test_aggregate_argument_must_be_path(self):
        """Test that aggregate arguments are field paths."""
        with pytest.raises(ParseError, match="field path"):
            parse_query("SELECT SUM(1)")

    def test_comparison_in_select_list(self):
        """Test that comparisons are not SELECT fields."""
        with pytest.raises(ParseError):
            parse_query("SELECT a = 1")
        with pytest.raises(ParseError):
            parse_query("SELECT a AND b")
        with pytest.raises(ParseError):
            parse_query("SELECT a OR b")

    def test_subquery_in_select_list(self):
        """Test that sub-queries are only allowed in FROM."""
        with pytest.raises(ParseError, match="only allowed in FROM"):
            parse_query("SELECT (SELECT a)")

    def test_where_left_side_must_be_path(self):
        """Test that conditions start with a field."""
        with pytest.raises(ParseError):
            parse_query("SELECT * WHERE 1 = a")

    def test_where_function(self):
        """Test that functions are not allowed in WHERE."""
        with pytest.raises(ParseError):
            parse_query("SELECT * WHERE a = COUNT(b)")

    def test_invalid_backtick_path(self):
        """Test that backticked paths are validated."""
        with pytest.raises(ParseError, match="Invalid path"):
            parse_query("SELECT `a.=b`")
