#!/usr/bin/env python3
"""
Revenue recalculation and export from the command line.

Usage:
  python3 scripts/revenue_report.py calculate 2025 6 [--include-trial]
  python3 scripts/revenue_report.py refresh
  python3 scripts/revenue_report.py export 2025-01 2025-06 [--output revenue.csv]
  python3 scripts/revenue_report.py units 2025 6
  python3 scripts/revenue_report.py stats
  python3 scripts/revenue_report.py run-job

Global options pick the settings file (``--config``) or override the
database URL (``--db-url``, default from RENTAL_DATABASE_URL).
"""

import argparse
import json
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from rental_batch.services.revenue_job import RevenueCalculationJob  # noqa: E402
from rental_config import RentalSettings, build_cache, load_settings  # noqa: E402
from rental_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url  # noqa: E402
from rental_kernel.exceptions import RentalKernelError  # noqa: E402
from rental_kernel.logging_config import configure_logging  # noqa: E402
from rental_modules.revenue.service import RevenueService  # noqa: E402


def _year_month(text: str) -> tuple[int, int]:
    try:
        year, month = (int(part) for part in text.split("-", 1))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {text!r}") from exc
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError(f"month out of range in {text!r}")
    return year, month


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Recalculate and export monthly rental revenue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="Settings YAML file")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("RENTAL_DATABASE_URL"),
        help="Database URL (overrides the settings file)",
    )
    parser.add_argument("--create-tables", action="store_true", help="Create missing tables first")
    sub = parser.add_subparsers(dest="command", required=True)

    calc = sub.add_parser("calculate", help="Recalculate and store one month")
    calc.add_argument("year", type=int)
    calc.add_argument("month", type=int)
    calc.add_argument("--include-trial", action="store_true", help="Count trial revenue")

    sub.add_parser("refresh", help="Recalculate every month since the first agreement")

    export = sub.add_parser("export", help="CSV of stored months in a range")
    export.add_argument("start", type=_year_month, help="First month, YYYY-MM")
    export.add_argument("end", type=_year_month, help="Last month, YYYY-MM")
    export.add_argument("--output", "-o", type=Path, help="Write to file instead of stdout")

    units = sub.add_parser("units", help="Per-unit CSV for one stored month")
    units.add_argument("year", type=int)
    units.add_argument("month", type=int)

    sub.add_parser("stats", help="Revenue statistics as JSON")
    sub.add_parser("run-job", help="Run the monthly recalculation job once")
    return parser


def _settings(args: argparse.Namespace) -> RentalSettings:
    settings = load_settings(args.config) if args.config else RentalSettings()
    if args.db_url:
        settings.database.url = args.db_url
    return settings


def run(args: argparse.Namespace, out=sys.stdout) -> int:
    settings = _settings(args)
    init_engine_from_url(settings.database.url, echo=settings.database.echo)
    if args.create_tables:
        create_tables()
    session_factory = get_session_factory()
    cache = build_cache(settings.cache)

    if args.command == "run-job":
        job = RevenueCalculationJob(
            session_factory, config=settings.jobs, revenue_config=settings.revenue, cache=cache,
        )
        result = job.run()
        job.cancel_retry()
        print(f"{result.status.value}: {', '.join(result.months) or '-'}", file=out)
        return 0 if result.succeeded else 1

    with session_factory() as session:
        service = RevenueService(session, config=settings.revenue, cache=cache)

        if args.command == "calculate":
            record = service.calculate_monthly_revenue(
                args.year, args.month, include_trial_revenue=args.include_trial,
            )
            print(json.dumps(record.to_dict(), indent=2), file=out)
        elif args.command == "refresh":
            records = service.refresh_all_revenue_data()
            for record in records:
                print(f"{record.month_key}  {record.total_revenue}", file=out)
        elif args.command == "export":
            csv_text = service.export_revenue_csv(*args.start, *args.end)
            if args.output:
                args.output.write_text(csv_text)
                print(f"wrote {args.output}", file=out)
            else:
                out.write(csv_text)
        elif args.command == "units":
            out.write(service.export_unit_revenue_csv(args.year, args.month))
        elif args.command == "stats":
            print(json.dumps(service.get_revenue_statistics().to_dict(), indent=2), file=out)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()
    try:
        return run(args)
    except (RentalKernelError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
