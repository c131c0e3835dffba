"""Executable worker running the booking lifecycle and report schedules."""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

from studio_engine.core.clock import Clock
from studio_engine.core.config import Settings, get_settings
from studio_engine.core.database import close_engine, session_scope
from studio_engine.core.scheduler import InitializationGuard, PeriodicTask, Scheduler
from studio_engine.modules.audit.repository import AuditRepository
from studio_engine.modules.billing.repository import BillingRepository
from studio_engine.modules.billing.service import PackageLedger
from studio_engine.modules.booking.repository import BookingRepository
from studio_engine.modules.booking.service import BookingLifecycleService
from studio_engine.modules.booking.state_machine import BookingStateMachine
from studio_engine.modules.reports.repository import ReportsRepository
from studio_engine.modules.reports.service import PaymentReportGenerator
from studio_engine.modules.teachers.repository import TeachersRepository

logger = logging.getLogger(__name__)


class EngineTasks:
    """Task callbacks, each running in its own transaction."""

    def __init__(self, settings: Settings, clock: Clock) -> None:
        self.settings = settings
        self.clock = clock
        self.state_machine = BookingStateMachine(timedelta(hours=settings.auto_confirm_after_hours))

    def _lifecycle_service(self, session) -> BookingLifecycleService:
        return BookingLifecycleService(
            booking_repository=BookingRepository(session),
            audit_repository=AuditRepository(session),
            clock=self.clock,
            state_machine=self.state_machine,
            batch_size=self.settings.engine_batch_size,
        )

    async def auto_confirm(self) -> dict[str, int]:
        async with session_scope() as session:
            return await self._lifecycle_service(session).run_auto_confirm()

    async def auto_complete(self) -> dict[str, int]:
        async with session_scope() as session:
            return await self._lifecycle_service(session).run_auto_complete()

    async def refresh_package_statuses(self) -> dict[str, int]:
        async with session_scope() as session:
            ledger = PackageLedger(
                billing_repository=BillingRepository(session),
                booking_repository=BookingRepository(session),
                clock=self.clock,
                batch_size=self.settings.engine_batch_size,
            )
            return await ledger.refresh_statuses()

    async def monthly_report(self) -> str:
        async with session_scope() as session:
            generator = PaymentReportGenerator(
                reports_repository=ReportsRepository(session),
                booking_repository=BookingRepository(session),
                billing_repository=BillingRepository(session),
                teachers_repository=TeachersRepository(session),
                clock=self.clock,
            )
            result = await generator.generate_previous_month_report()
            return f"{result.year}-{result.month:02d} {result.status}"


def build_scheduler(
    settings: Settings,
    clock: Clock,
    guard: InitializationGuard,
) -> Scheduler:
    """Wire the engine tasks. The guard refuses a second start while held."""
    tasks = EngineTasks(settings, clock)
    return Scheduler(
        clock,
        [
            PeriodicTask(
                "auto-confirm",
                timedelta(seconds=settings.auto_confirm_interval_seconds),
                tasks.auto_confirm,
            ),
            PeriodicTask(
                "auto-complete",
                timedelta(seconds=settings.auto_complete_interval_seconds),
                tasks.auto_complete,
            ),
            PeriodicTask(
                "package-status",
                timedelta(seconds=settings.package_status_interval_seconds),
                tasks.refresh_package_statuses,
            ),
            PeriodicTask(
                "monthly-report",
                timedelta(seconds=settings.report_interval_seconds),
                tasks.monthly_report,
            ),
        ],
        guard,
        poll_seconds=settings.engine_poll_seconds,
    )


async def main() -> None:
    """Run every task once or keep ticking according to ENGINE_MODE."""
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    scheduler = build_scheduler(settings, Clock(settings.studio_timezone), InitializationGuard())

    try:
        if settings.engine_mode == "once":
            if scheduler.start():
                stats = await scheduler.run_pending()
                logger.info("Engine worker stats: %s", stats)
                scheduler.stop()
            return

        logger.info("Engine worker started in loop mode (poll every %ss)", settings.engine_poll_seconds)
        await scheduler.run_forever()
    finally:
        await close_engine()


if __name__ == "__main__":
    asyncio.run(main())
