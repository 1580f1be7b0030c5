"""
Command-line interface for loading and searching a dictionary database.
"""
from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from dictionary_search import __version__
from dictionary_search.config import load_config
from dictionary_search.editor import DictionaryEditor
from dictionary_search.exceptions import DictionarySearchError
from dictionary_search.filters import parse_list_param
from dictionary_search.loader import ParseError, apply_entries, load_entries
from dictionary_search.models import MarkerKind, SearchQuery
from dictionary_search.search import SearchEngine

logger = logging.getLogger(__name__)


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the dictionary-search CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    logging.basicConfig(
        level=(args.log_level or "WARNING").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="dictionary-search",
        description="Load and search a dictionary database",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(title="commands", dest="command")

    # init command
    init_parser = subparsers.add_parser(
        "init",
        help="Create an empty dictionary database",
    )
    init_parser.add_argument("db", type=Path, help="Database file")
    init_parser.set_defaults(func=cmd_init)

    # load command
    load_parser = subparsers.add_parser(
        "load",
        help="Load entries from a YAML file",
    )
    load_parser.add_argument("db", type=Path, help="Database file")
    load_parser.add_argument(
        "file",
        type=Path,
        help="YAML file containing entries",
    )
    load_parser.set_defaults(func=cmd_load)

    # show command
    show_parser = subparsers.add_parser(
        "show",
        help="Show one entry by its lemma",
    )
    show_parser.add_argument("db", type=Path, help="Database file")
    show_parser.add_argument("lemma", type=str, help="Exact lemma")
    show_parser.add_argument(
        "--drafts",
        action="store_true",
        help="Also find entries that are not published",
    )
    show_parser.set_defaults(func=cmd_show)

    # search command
    search_parser = subparsers.add_parser(
        "search",
        help="Search entries and print one page of results as JSON",
    )
    search_parser.add_argument("db", type=Path, help="Database file")
    search_parser.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Free text matched against lemmas",
    )
    for name in ("letters", "categories", "origins", "dictionaries"):
        search_parser.add_argument(
            f"--{name}",
            type=str,
            help=f"Comma-separated {name}",
        )
    for kind in MarkerKind:
        search_parser.add_argument(
            f"--{kind.value.replace('_', '-')}",
            dest=kind.value,
            type=str,
            help=f"Comma-separated {kind.value.replace('_', ' ')}",
        )
    search_parser.add_argument(
        "--assigned-to",
        type=str,
        help="Comma-separated assignee user ids",
    )
    search_parser.add_argument(
        "--status",
        type=str,
        help="Restrict drafts to one status (requires --drafts)",
    )
    search_parser.add_argument(
        "--drafts",
        action="store_true",
        help="Include entries that are not published",
    )
    search_parser.add_argument("--page", type=int, default=1, help="Page number (default: 1)")
    search_parser.add_argument("--page-size", type=int, help="Results per page")
    search_parser.add_argument(
        "--config",
        type=Path,
        help="YAML file with search settings",
    )
    search_parser.set_defaults(func=cmd_search)

    return parser


def cmd_init(args: argparse.Namespace) -> int:
    """Handle init command."""
    try:
        with DictionaryEditor(args.db):
            pass
    except DictionarySearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(f"Initialized {args.db}")
    return 0


def cmd_load(args: argparse.Namespace) -> int:
    """Handle load command."""
    try:
        entries = load_entries(args.file)
    except ParseError as e:
        print(f"[PARSE ERROR] {e}", file=sys.stderr)
        return 1
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        with DictionaryEditor(args.db) as editor:
            created = apply_entries(editor, entries)
    except DictionarySearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Loaded {len(created)} entries into {args.db}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Handle show command."""
    try:
        with DictionaryEditor(args.db) as editor:
            entry = editor.get_entry_by_lemma(args.lemma, include_drafts=args.drafts)
    except DictionarySearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if entry is None:
        print(f"Entry not found: {args.lemma}", file=sys.stderr)
        return 1

    print(json.dumps(dataclasses.asdict(entry), ensure_ascii=False, indent=2))
    return 0


def _query_from_args(args: argparse.Namespace) -> SearchQuery:
    return SearchQuery(
        text=args.text,
        letters=parse_list_param(args.letters),
        categories=parse_list_param(args.categories),
        origins=parse_list_param(args.origins),
        dictionaries=parse_list_param(args.dictionaries),
        markers={
            kind.value: parse_list_param(getattr(args, kind.value))
            for kind in MarkerKind
            if getattr(args, kind.value)
        },
        assigned_to=parse_list_param(args.assigned_to),
        status=args.status,
        include_drafts=args.drafts,
        page=args.page,
        page_size=args.page_size,
    )


def cmd_search(args: argparse.Namespace) -> int:
    """Handle search command."""
    if not args.db.exists():
        print(f"Error: database not found: {args.db}", file=sys.stderr)
        return 1

    try:
        config = load_config(args.config, database=str(args.db))
        if args.log_level is None:
            logging.getLogger().setLevel(config.log_level.upper())
        with SearchEngine.open(config=config) as engine:
            page = engine.search(_query_from_args(args))
    except DictionarySearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    payload = {
        "results": [dataclasses.asdict(r) for r in page.results],
        "total": page.total,
    }
    print(json.dumps(payload, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
