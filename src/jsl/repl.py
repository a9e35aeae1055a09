"""Command line front end and interactive REPL for jsl."""

from __future__ import annotations

import argparse
import re
import readline  # noqa: F401 - enables line editing in input()
import sys
from pathlib import Path
from typing import TextIO

from jsl.commands import FORMATS, convert, print_stats, reformat, select_fields, validate
from jsl.database import ListTable, Table
from jsl.errors import PathExtractionError, PlanError, SourceError
from jsl.executor import Executor, dump_value
from jsl.path import extract, parse_path
from jsl.plan import format_plan
from jsl.planner import create_plan
from jsl.query import parse_query
from jsl.source import JsonTable, read_records

_SELECT = re.compile(r"^\s*select\b", re.IGNORECASE)


def is_select(expression: str) -> bool:
    """True when the text should go to the statement engine rather than the path evaluator."""
    return _SELECT.match(expression) is not None


def run_path(
    expression: str,
    table: Table,
    out: TextIO,
    pretty: bool = False,
    select: list[str] | None = None,
) -> int:
    """Evaluate a path against every record, printing the values that resolve.

    Records the path does not resolve against are skipped, so a predicate
    path such as ``age>28`` acts as a filter. With ``select``, mapping
    results keep only the named top-level keys.
    """
    segments = parse_path(expression)
    count = 0
    with table.iterate() as rows:
        for row in rows:
            try:
                value = extract(row.as_value(), segments)
            except PathExtractionError:
                continue
            if select:
                value = select_fields(value, select)
            out.write(dump_value(value, pretty))
            out.write("\n")
            count += 1
    return count


def run_expression(
    expression: str,
    table: Table,
    out: TextIO,
    pretty: bool = False,
    explain: bool = False,
    select: list[str] | None = None,
) -> int:
    """Run a SELECT statement or a path expression and return the number of results.

    With ``explain`` a SELECT statement prints its plan instead of running.
    ``select`` narrows path results; statements name their own fields.
    """
    if is_select(expression):
        node = create_plan(parse_query(expression), table)
        if explain:
            out.write(format_plan(node))
            return 0
        return Executor(pretty=pretty).execute(node, out)

    if explain:
        raise PlanError("Only SELECT statements have a plan to explain")
    return run_path(expression, table, out, pretty, select)


def run_repl(source: str, pretty: bool = False, verbose: bool = False) -> int:
    """Run the interactive REPL against one source."""
    print("jsl REPL - JSON query language")
    table: Table
    if source in ("", "-"):
        # Standard input can only be read once; keep it for repeated queries
        try:
            table = ListTable(read_records("-"))
        except SourceError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        print(f"Loaded {len(table)} records from stdin")
    else:
        table = JsonTable(source)
        print(f"Reading from: {table.display_name}")
    print("Type 'help' for commands, 'exit' to quit.\n")

    # Command history
    history_file = Path.home() / ".jsl_history"
    try:
        readline.read_history_file(history_file)
    except OSError:
        pass

    try:
        while True:
            try:
                line = input("jsl> ").strip()
            except EOFError:
                print()
                break

            if not line:
                continue

            # Handle special commands
            lower = line.lower()
            if lower == "exit" or lower == "quit":
                break
            elif lower == "help":
                print_help()
                continue

            explain = False
            if lower.startswith("explain "):
                explain = True
                line = line[8:].strip()

            if verbose:
                print(f">>> {line}")

            try:
                run_expression(line, table, sys.stdout, pretty=pretty, explain=explain)
            except SyntaxError as e:
                print(f"Syntax error: {e}")
            except Exception as e:
                print(f"Error: {e}")

    finally:
        # Save history
        try:
            readline.set_history_length(1000)
            readline.write_history_file(history_file)
        except OSError:
            pass

    return 0


def print_help() -> None:
    """Print help information."""
    print("""
jsl - JSON query language

PATHS:
  .                          The whole record
  address.city               Nested key lookup
  tags.0                     Array index
  employees.*.name           Wildcard over an array or object (% works too)
  readings.*~=temp           Keep object keys containing "temp"
  sensors.*.type=temp.name   Keep elements whose type is "temp", then take name
  age>28                     Print records whose age is over 28

  Predicate operators: =  !=  >  >=  <  <=  ~= (contains)

SELECT:
  SELECT fields [FROM source] [WHERE condition] [GROUP BY field]

  SELECT name, price AS cost WHERE price > 100
  SELECT category, COUNT(name), AVG(price) GROUP BY category
  SELECT y FROM (SELECT x AS y FROM (SELECT a AS x))
  SELECT `sensors.*.type=temp.value` AS temp

  Aggregates: COUNT, SUM, AVG, MIN, MAX
  Conditions: =  !=  >  >=  <  <=  CONTAINS  ~=   joined with AND / OR
  Backticks quote a path verbatim.

OTHER:
  explain <SELECT ...>       Show the execution plan
  help                       Show this help
  exit, quit                 Exit the REPL
""")


def _stdin_has_data() -> bool:
    try:
        return not sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        prog="jsl",
        description="Query JSON and JSON Lines data with paths or SELECT statements",
        epilog=(
            "examples:\n"
            "  jsl data.json .user.name\n"
            "  cat data.json | jsl .user.name\n"
            "  jsl '{\"name\":\"Alice\"}' .name\n"
            "  jsl data.jsonl \"SELECT category, SUM(stock) GROUP BY category\"\n"
            "  jsl data.json 'age>28' --select name,age\n"
            "  jsl data.json --to jsonl\n"
            "  jsl data.jsonl --stats"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    arg_parser.add_argument(
        "source",
        nargs="?",
        default=None,
        help="File path, '-' for stdin, or an inline JSON literal",
    )
    arg_parser.add_argument(
        "expression",
        nargs="?",
        default=None,
        help="Path expression or SELECT statement (default: '.')",
    )
    arg_parser.add_argument(
        "--pretty",
        action="store_true",
        help="Indent JSON output",
    )
    arg_parser.add_argument(
        "--explain",
        action="store_true",
        help="Print the execution plan of a SELECT statement instead of running it",
    )
    arg_parser.add_argument(
        "-i", "--interactive",
        action="store_true",
        help="Start the interactive REPL",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Echo each query before executing it (REPL)",
    )
    arg_parser.add_argument(
        "-s", "--select",
        default=None,
        metavar="FIELDS",
        help="Comma-separated top-level fields to keep in path results (e.g. name,price)",
    )

    # Whole-file commands
    commands = arg_parser.add_argument_group("file commands")
    commands.add_argument(
        "--to",
        choices=FORMATS,
        default=None,
        help="Convert the source to json (one array) or jsonl (one record per line)",
    )
    commands.add_argument(
        "--format",
        action="store_true",
        help="Pretty-print the source, keeping its format unless --to is given",
    )
    commands.add_argument(
        "--stats",
        action="store_true",
        help="Show the record count and the JSON types of each top-level field",
    )
    commands.add_argument(
        "--validate",
        action="store_true",
        help="Check that the source decodes",
    )

    args = arg_parser.parse_args(argv)
    has_stdin = _stdin_has_data()

    if args.interactive:
        source = args.source if args.source is not None else ("-" if has_stdin else None)
        if source is None:
            print("Error: interactive mode requires a file or stdin input", file=sys.stderr)
            return 1
        return run_repl(source, pretty=args.pretty, verbose=args.verbose)

    if args.validate or args.stats or args.format or args.to is not None:
        if args.expression is not None:
            print("Error: file commands take a source but no expression", file=sys.stderr)
            return 1
        source = args.source if args.source is not None else ("-" if has_stdin else None)
        if source is None:
            arg_parser.print_help(sys.stderr)
            return 1
        return run_command(args, source)

    # One argument with piped input is the expression
    if args.source is None:
        if not has_stdin:
            arg_parser.print_help(sys.stderr)
            return 1
        source, expression = "-", "."
    elif args.expression is None:
        if has_stdin:
            source, expression = "-", args.source
        else:
            source, expression = args.source, "."
    else:
        source, expression = args.source, args.expression

    select = [name.strip() for name in args.select.split(",") if name.strip()] if args.select else None
    table = JsonTable(source)
    try:
        run_expression(
            expression, table, sys.stdout, pretty=args.pretty, explain=args.explain, select=select
        )
    except SyntaxError as e:
        print(f"Syntax error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


def run_command(args: argparse.Namespace, source: str) -> int:
    """Run one of the whole-file commands against a source."""
    try:
        if args.validate:
            return 0 if validate(source, sys.stdout) else 1
        elif args.stats:
            print_stats(source, sys.stdout)
        elif args.format:
            reformat(source, sys.stdout, to=args.to)
        else:
            convert(source, sys.stdout, args.to, pretty=args.pretty)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
