import argparse
from pathlib import Path
import logging

from googleapiclient.errors import HttpError
from tabulate import tabulate

from .access import (AdminAccess, default_token_provider, installed_app_token_provider,
                     static_token_provider)
from .admin import account_path, property_path
from .admin.ops import make_client
from .admin.specs import KINDS, get_spec
from .config import Settings, get_settings
from .errors import MissingHeaderError
from .reconciler import Reconciler
from .report import LoggingSink, ResultReporter
from .rows import read_csv_grid
from .sheets import SHEETS_API_NAME, SHEETS_API_VERSION
from .sheets.ops import read_tab, report_tab_title
from .sheets.sink import SheetReportSink, write_table

logger = logging.getLogger(__name__)


def parse_args(argv: list[str]|None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="ga4sheets",
                                     description="Reconcile GA4 Admin API resources from sheet rows")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("kinds", help="list the resource kinds and their columns")

    for name, help in (("reconcile", "create or update resources from rows"),
                       ("remove", "delete or archive the resources named by rows")):
        p = subparsers.add_parser(name, help=help)
        p.add_argument("kind", choices=sorted(KINDS))
        source = p.add_mutually_exclusive_group(required=True)
        source.add_argument("--csv", type=Path, help="read rows from a CSV file")
        source.add_argument("--tab", help="read rows from this tab of --spreadsheet")
        p.add_argument("--spreadsheet", help="spreadsheet id for --tab and the report tab")
        p.add_argument("--no-report", action="store_true", help="don't write a report tab")
        if name == "reconcile":
            p.add_argument("--overwrite", action="store_true",
                           help="update resources that already exist instead of skipping them")

    list_parser = subparsers.add_parser("list", help="list existing resources under a parent")
    list_parser.add_argument("kind", choices=sorted(k for k,s in KINDS.items() if not s.singleton))
    list_parser.add_argument("--parent", required=True, help="property id (account id for properties)")
    list_parser.add_argument("--spreadsheet", help="also write the listing to a new tab here")

    return parser.parse_args(argv)


def build_access(settings: Settings) -> AdminAccess:
    if settings.access_token:
        provider = static_token_provider(settings.access_token)
    elif settings.client_secrets:
        cache = settings.token_cache or str(Path.home() / "ga4sheets_tokens.json")
        provider = installed_app_token_provider(settings.client_secrets, cache)
    else:
        provider = default_token_provider()
    return AdminAccess(provider, timeout=settings.request_timeout)


def _print_kinds() -> None:
    rows = []
    for kind, spec in KINDS.items():
        required = ", ".join(c.header for c in spec.columns if c.required)
        optional = ", ".join(c.header for c in spec.columns if not c.required)
        rows.append([kind, required, optional, spec.removal or "-"])
    print(tabulate(rows, headers=["kind", "required", "optional", "removal"]))


def _run_batch(args: argparse.Namespace, settings: Settings, access: AdminAccess) -> int:
    spec = get_spec(args.kind)
    if args.tab and not args.spreadsheet:
        raise SystemExit("--tab needs --spreadsheet")
    sheets = None
    if args.spreadsheet:
        sheets = access.get_service(SHEETS_API_NAME, SHEETS_API_VERSION)
    grid = read_csv_grid(args.csv) if args.csv else read_tab(sheets, args.spreadsheet, args.tab)

    sinks = [LoggingSink(spec.kind)]
    if sheets is not None and not args.no_report:
        sinks.append(SheetReportSink(sheets, args.spreadsheet, spec.kind, settings.report_tab_prefix))
    admin = access.get_service(settings.api_name, settings.api_version)
    reporter = ResultReporter(*sinks)
    reconciler = Reconciler(spec, make_client(admin, spec, settings.page_size), reporter,
                            overwrite=getattr(args, "overwrite", False),
                            rate_limit_delay=settings.rate_limit_delay)
    try:
        summary = reconciler.remove(grid) if args.command == "remove" else reconciler.reconcile(grid)
    except MissingHeaderError as e:
        logger.error("%s batch rejected: %s", spec.kind, e)
        print(f"kind={spec.kind} status=rejected error={e}")
        return 1
    except HttpError as e:
        # every row was processed, only writing the report tab went wrong
        logger.error("writing the %s report tab failed: %s", spec.kind, e)
        print(f"kind={spec.kind} {reporter.summary} report=failed")
        return 1
    print(f"kind={spec.kind} {summary}")
    return 1 if summary.failed else 0


def _run_list(args: argparse.Namespace, settings: Settings, access: AdminAccess) -> int:
    spec = get_spec(args.kind)
    parent = account_path(args.parent) if spec.list_by_filter else property_path(args.parent)
    admin = access.get_service(settings.api_name, settings.api_version)
    result = make_client(admin, spec, settings.page_size).list_all(parent)
    if not result:
        print(f"kind={spec.kind} parent={parent} status=failed error={result.detail}")
        return 1
    rows = [spec.export_row(item, parent) for item in result.payload]
    print(tabulate(rows, headers=spec.headers))
    if args.spreadsheet:
        sheets = access.get_service(SHEETS_API_NAME, SHEETS_API_VERSION)
        title = write_table(sheets, args.spreadsheet,
                            report_tab_title(settings.report_tab_prefix, f"list {spec.kind}"),
                            spec.headers, rows)
        logger.info("wrote %d %s to tab %s", len(rows), spec.kind, title)
    return 0


def main(argv: list[str]|None = None) -> None:
    args = parse_args(argv)
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if args.command == "kinds":
        _print_kinds()
        return

    access = build_access(settings)
    try:
        if args.command == "list":
            code = _run_list(args, settings, access)
        else:
            code = _run_batch(args, settings, access)
    except HttpError as e:
        # only the sheet reads/writes get here, Admin API errors are per row
        logger.error("Google Sheets request failed: %s", e)
        code = 1
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
