"""Align customer account dates and package validity windows with session history."""

from __future__ import annotations

import argparse
import asyncio
import logging
from datetime import timedelta

from studio_engine.core.clock import Clock
from studio_engine.core.config import get_settings
from studio_engine.core.database import SessionLocal, close_engine
from studio_engine.modules.audit.repository import AuditRepository
from studio_engine.modules.billing.repository import BillingRepository
from studio_engine.modules.booking.repository import BookingRepository
from studio_engine.modules.consistency.service import ConsistencyAuditor, ConsistencyReport
from studio_engine.modules.customers.repository import CustomersRepository


async def _run_audit(*, dry_run: bool) -> ConsistencyReport:
    settings = get_settings()
    async with SessionLocal() as session:
        try:
            auditor = ConsistencyAuditor(
                customers_repository=CustomersRepository(session),
                billing_repository=BillingRepository(session),
                booking_repository=BookingRepository(session),
                audit_repository=AuditRepository(session),
                clock=Clock(settings.studio_timezone),
                base_hour=settings.consistency_base_hour,
                tolerance=timedelta(hours=settings.consistency_tolerance_hours),
                validity_months=settings.package_validity_months,
            )
            report = await auditor.run(dry_run=dry_run)
            if dry_run:
                await session.rollback()
            else:
                await session.commit()
        except Exception:
            await session.rollback()
            raise

    return report


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Rewrite customer creation dates and package validity windows so they "
            "precede the customer's first session."
        ),
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing anything.",
    )
    return parser


def _print_summary(report: ConsistencyReport) -> None:
    print("Dry run completed." if report.dry_run else "Data consistency check completed.")
    print(f"- Already consistent: {report.count('consistent')}")
    print(f"- {'Would fix' if report.dry_run else 'Fixed'}: {report.count('repaired')}")
    print(f"- Without sessions: {report.count('warning')}")
    print(f"- Skipped: {report.count('skipped')}")
    print(f"- Total: {len(report.customers)}")
    for warning in report.warnings:
        print(f"WARNING: {warning}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    try:
        report = asyncio.run(_run_audit(dry_run=args.dry_run))
    except Exception as exc:
        print(f"Data consistency check failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(report)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
