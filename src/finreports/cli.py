"""Command-line entry point: fetch, assemble and print one report."""

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any

from pydantic import ValidationError

from finreports.config import configure_logging, get_logger, get_settings
from finreports.engine import ReportEngine
from finreports.errors import FinReportsError
from finreports.models import ReportPeriod
from finreports.reconciliation import reconcile_balance_sheet, reconcile_profit_loss

logger = get_logger(__name__)

REPORTS = ("pnl", "balance-sheet", "cash-flow", "tax", "dashboard", "aging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="finreports",
        description="Generate financial statements from accounting-provider data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Reports:
  pnl            Profit & Loss for the period
  balance-sheet  Balance sheet as of --end
  cash-flow      Illustrative cash flow statement
  tax            Statutory tax (EFRIS) summary
  dashboard      Dashboard metrics with 12-month trends
  aging          Provider AR/AP aging and inventory valuation

Examples:
  %(prog)s pnl --start 2025-01-01 --end 2025-06-30
  %(prog)s balance-sheet --end 2025-06-30 --reconcile
  %(prog)s dashboard --format text
        """,
    )
    parser.add_argument("report", choices=REPORTS, help="Report to generate")
    parser.add_argument(
        "--start",
        type=date.fromisoformat,
        default=None,
        help="Period start (YYYY-MM-DD, default: January 1 of --end's year)",
    )
    parser.add_argument(
        "--end",
        type=date.fromisoformat,
        default=None,
        help="Period end / as-of date (YYYY-MM-DD, default: today)",
    )
    parser.add_argument(
        "--format",
        choices=["json", "text"],
        default=None,
        help="Output format (default: OUTPUT_FORMAT setting)",
    )
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help="Append variances against the provider's native report (pnl, balance-sheet)",
    )
    return parser


def resolve_period(start: date | None, end: date | None, today: date) -> ReportPeriod:
    end = end or today
    start = start or date(end.year, 1, 1)
    return ReportPeriod(start_date=start, end_date=end)


async def generate(
    engine: ReportEngine, report: str, period: ReportPeriod, reconcile: bool = False
) -> dict[str, Any]:
    if report == "pnl":
        pnl = await engine.profit_and_loss(period)
        data = pnl.to_dict()
        if reconcile:
            data["reconciliation"] = [line.to_dict() for line in reconcile_profit_loss(pnl)]
        return data
    if report == "balance-sheet":
        sheet = await engine.balance_sheet(period)
        data = sheet.to_dict()
        if reconcile:
            data["reconciliation"] = [line.to_dict() for line in reconcile_balance_sheet(sheet)]
        return data
    if report == "cash-flow":
        return (await engine.cash_flow(period)).to_dict()
    if report == "tax":
        return (await engine.tax_compliance(period)).to_dict()
    if report == "dashboard":
        return (await engine.dashboard(period)).to_dict()
    if report == "aging":
        return await engine.supplementary_reports()
    raise ValueError(f"Unknown report: {report}")


def render_text(data: dict[str, Any]) -> str:
    """Flatten the top-level scalar figures and section totals."""
    lines = []
    for key, value in data.items():
        if isinstance(value, float):
            lines.append(f"{key:<28} {value:>18,.2f}")
        elif isinstance(value, (int, str)):
            lines.append(f"{key:<28} {value}")
        elif isinstance(value, dict):
            for sub_key, sub_value in value.items():
                if isinstance(sub_value, float):
                    lines.append(f"{key + '.' + sub_key:<28} {sub_value:>18,.2f}")
    return "\n".join(lines)


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        configure_logging()
        output_format = args.format or get_settings().output_format
        period = resolve_period(args.start, args.end, date.today())
        async with ReportEngine.from_settings() as engine:
            data = await generate(engine, args.report, period, reconcile=args.reconcile)
    except (FinReportsError, ValidationError, ValueError) as e:
        logger.error("report_failed", report=args.report, error=str(e))
        return 1

    if output_format == "json":
        print(json.dumps(data, indent=2, default=str))
    else:
        print(render_text(data))
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
