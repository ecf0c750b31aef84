"""
Command-line interface for Table Nova.

    table-nova convert people.csv --out ./out
    table-nova convert data.tsv --no-header --casing snake_case --syntax nquads
    table-nova runs list
    table-nova runs show https://example.org/TableNova/run/2025-03-01/people --syntax trig
    table-nova runs delete https://example.org/TableNova/run/2025-03-01/people
    table-nova serve --port 8000
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from table_nova import __version__
from table_nova.config import ConfigValidationError, TableNovaConfig, configure_logging
from table_nova.engine import RunOutcome, TableNovaEngine
from table_nova.formats import SYNTAXES, export_filename
from table_nova.models import (
    DelimiterHint,
    FileOptions,
    PredicateCasing,
    PredicateOptions,
    WhenNoHeader,
    expand_xsd,
)

# Written by `convert --out` without --syntax; jsonldTriples shares the .jsonld name
DEFAULT_EXPORTS = ("turtle", "trig", "ntriples", "nquads", "jsonldGraph")


def parse_datatype_overrides(values: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated ``KEY=xsd:type`` arguments into a column key map."""
    overrides: Dict[str, str] = {}
    for item in values or []:
        key, sep, datatype = item.partition("=")
        if not sep or not key or not datatype:
            raise ValueError(f"--datatype expects KEY=DATATYPE, got {item!r}")
        overrides[key] = expand_xsd(datatype)
    return overrides


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="table-nova",
        description="Convert CSV, TSV and XLSX files into RDF named graphs.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", help="YAML configuration file (default: $TABLENOVA_CONFIG).")
    parser.add_argument("--data-dir", help="Run store directory (overrides configuration).")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING, ...).")
    sub = parser.add_subparsers(dest="command", required=True)

    convert = sub.add_parser("convert", help="Convert a file and store the run.")
    convert.add_argument("input", help="CSV, TSV or XLSX file.")
    convert.add_argument(
        "--no-header",
        dest="header",
        action="store_false",
        help="Treat the first row as data, not as a header.",
    )
    convert.add_argument(
        "--delimiter",
        choices=[h.value for h in DelimiterHint],
        default=DelimiterHint.NONE.value,
        help="Delimiter hint for text input (default: detect).",
    )
    convert.add_argument(
        "--casing",
        choices=[c.value for c in PredicateCasing],
        default=PredicateCasing.CAMEL_CASE.value,
        help="Predicate local name casing.",
    )
    convert.add_argument(
        "--no-has-prefix",
        dest="prefix_has",
        action="store_false",
        help="Do not prefix predicate local names with 'has'.",
    )
    convert.add_argument(
        "--when-no-header",
        choices=[w.value for w in WhenNoHeader],
        default=WhenNoHeader.ORDINAL.value,
        help="Column key scheme for headerless input.",
    )
    convert.add_argument(
        "--datatype",
        action="append",
        metavar="KEY=DATATYPE",
        help="Datatype for a column key, e.g. age=xsd:integer. Repeatable.",
    )
    convert.add_argument("--out", help="Directory to write serializations into.")
    convert.add_argument(
        "--syntax",
        choices=sorted(SYNTAXES),
        help="Single syntax to emit (default: turtle on stdout, every file kind with --out).",
    )

    runs = sub.add_parser("runs", help="Inspect stored runs.")
    runs_sub = runs.add_subparsers(dest="runs_command", required=True)
    runs_sub.add_parser("list", help="List stored runs, newest first.")
    show = runs_sub.add_parser("show", help="Print a stored run.")
    show.add_argument("graph_iri")
    show.add_argument("--syntax", choices=sorted(SYNTAXES), default="turtle")
    delete = runs_sub.add_parser("delete", help="Delete a stored run.")
    delete.add_argument("graph_iri")

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def load_config(args: argparse.Namespace) -> TableNovaConfig:
    config = TableNovaConfig.load(args.config) if args.config else TableNovaConfig.from_env()
    if args.data_dir:
        config.data_dir = args.data_dir
    if args.log_level:
        config.log_level = args.log_level.upper()
    config.validate()
    return config


def report_failure(outcome: RunOutcome) -> int:
    print(f"Error: {outcome.operation} {outcome.target}: {outcome.message}", file=sys.stderr)
    if outcome.persisted:
        print("(the run was stored before the failure)", file=sys.stderr)
    return 1


def cmd_convert(engine: TableNovaEngine, args: argparse.Namespace) -> int:
    path = Path(args.input)
    options = FileOptions(
        treat_first_row_as_header=args.header,
        delimiter_hint=DelimiterHint(args.delimiter),
        predicate=PredicateOptions(
            prefix_has=args.prefix_has,
            casing=PredicateCasing(args.casing),
            when_no_header=WhenNoHeader(args.when_no_header),
        ),
        datatypes_by_column_key=parse_datatype_overrides(args.datatype),
    )
    data = path.read_bytes()

    outcome = engine.run_file(path.name, data, options)
    if not outcome.ok:
        return report_failure(outcome)

    run = outcome.run
    if args.out:
        out_dir = Path(args.out)
        out_dir.mkdir(parents=True, exist_ok=True)
        for syntax in [args.syntax] if args.syntax else DEFAULT_EXPORTS:
            target = out_dir / export_filename(run.filename, run.graph_iri, syntax)
            target.write_text(outcome.serializations.get(syntax), encoding="utf-8")
            print(target)
    else:
        sys.stdout.write(outcome.serializations.get(args.syntax or "turtle"))

    print(f"Stored {len(run.quads)} quads in <{run.graph_iri}>", file=sys.stderr)
    return 0


def cmd_runs(engine: TableNovaEngine, args: argparse.Namespace) -> int:
    if args.runs_command == "list":
        outcome = engine.list_runs()
        if not outcome.ok:
            return report_failure(outcome)
        for summary in outcome.runs:
            print(f"{summary.created_at.isoformat()}\t{summary.filename}\t{summary.graph_iri}")
        return 0

    if args.runs_command == "show":
        outcome = engine.load_run(args.graph_iri)
        if not outcome.ok:
            return report_failure(outcome)
        sys.stdout.write(outcome.serializations.get(args.syntax))
        return 0

    outcome = engine.delete_run(args.graph_iri)
    if not outcome.ok:
        return report_failure(outcome)
    print(f"Deleted <{args.graph_iri}>")
    return 0


def cmd_serve(config: TableNovaConfig, args: argparse.Namespace) -> int:
    import uvicorn

    from table_nova.web import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command-line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
    except ConfigValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1
    configure_logging(config.log_level)

    if args.command == "serve":
        return cmd_serve(config, args)

    try:
        engine = TableNovaEngine(config)
        if args.command == "convert":
            return cmd_convert(engine, args)
        return cmd_runs(engine, args)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
