import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from signed_query.config import ExchangeSettings, configure_logging
from signed_query.errors import ExchangeError
from signed_query.party import ExchangePaths, run_exchange
from signed_query.query_docs import build_request, format_rows, load_request_xml_file
from signed_query.store import SqliteStore


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run one signed query exchange between a requester and a responder.")
    parser.add_argument('--fields', nargs='+', help='Fields to select (e.g., --fields name age)')
    parser.add_argument('--tables', nargs='+', help='Tables to select from (e.g., --tables users)')
    parser.add_argument('--condition', default=None, help='Optional raw WHERE predicate (e.g., --condition "id=1")')
    parser.add_argument('--request-xml', dest='request_xml', default=None, help='Legacy XML request file (CHAMP/TABLE/CONDITION elements) used instead of --fields/--tables')
    parser.add_argument('--db', dest='db_path', default=None, help='SQLite database answered by the responder')
    parser.add_argument('--init-script', dest='init_script', default=None, help='SQL script applied to the database before the run')
    parser.add_argument('--exchange-dir', dest='exchange_dir', default=None, help='Directory holding the exchanged documents')
    parser.add_argument('--name', default='request.json', help='File name of the exchanged documents')
    parser.add_argument('--timeout', type=float, default=None, help='Bounded barrier wait in seconds')
    parser.add_argument('--log-level', dest='log_level', default=None, help='Logging level (DEBUG, INFO, ...)')
    parser.add_argument('--env-file', dest='env_file', default=None, help='Optional .env file with SIGNED_QUERY_* settings')
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = ExchangeSettings.from_env(
        {
            "db_path": args.db_path,
            "exchange_dir": args.exchange_dir,
            "barrier_timeout": args.timeout,
            "log_level": args.log_level,
        },
        auto_dotenv=args.env_file is not None,
        dotenv_path=args.env_file,
    )
    configure_logging(settings.log_level)

    try:
        if args.request_xml:
            request = load_request_xml_file(args.request_xml)
        else:
            if not args.fields or not args.tables:
                parser.error("either --request-xml or both --fields and --tables are required")
            request = build_request(args.fields, args.tables, args.condition)

        store = SqliteStore(settings.db_path)
        if args.init_script:
            store.run_script(Path(args.init_script))

        report = run_exchange(
            request,
            store,
            ExchangePaths(root=settings.exchange_dir, name=args.name),
            settings=settings,
        )
    except (ExchangeError, OSError) as e:
        print(f"Exchange failed: {e}", file=sys.stderr)
        return 1

    if not report.ok:
        for outcome in (report.requester, report.responder):
            print(f"{outcome.role.value}: {outcome.status}: {outcome.message}", file=sys.stderr)
        return 1

    print(report.requester.message)
    assert report.requester.rows is not None
    print(format_rows(report.requester.rows), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
