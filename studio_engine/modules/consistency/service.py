"""Offline repair of customer and package timelines."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Literal
from uuid import UUID

from studio_engine.core.clock import Clock
from studio_engine.modules.audit.repository import AuditRepository
from studio_engine.modules.billing.models import Package
from studio_engine.modules.billing.repository import BillingRepository
from studio_engine.modules.billing.service import PackageLedger, SessionAccounting
from studio_engine.modules.booking.repository import BookingRepository
from studio_engine.modules.customers.models import Customer
from studio_engine.modules.customers.repository import CustomersRepository
from studio_engine.shared.utils import add_months, ensure_utc, floor_to_hour_of_day

logger = logging.getLogger(__name__)

AUDITOR_ACTOR = "consistency-auditor"

CustomerOutcome = Literal["consistent", "repaired", "warning", "skipped"]


@dataclass(slots=True)
class PackageRepair:
    package_id: UUID
    valid_from: datetime
    valid_to: datetime


@dataclass(slots=True)
class CustomerAudit:
    customer_id: UUID
    outcome: CustomerOutcome
    base_date: datetime | None = None
    packages: list[PackageRepair] = field(default_factory=list)
    message: str | None = None


@dataclass(slots=True)
class ConsistencyReport:
    """Summary of one auditor run."""

    dry_run: bool
    customers: list[CustomerAudit] = field(default_factory=list)
    accounting_violations: list[SessionAccounting] = field(default_factory=list)

    def count(self, outcome: CustomerOutcome) -> int:
        return sum(1 for item in self.customers if item.outcome == outcome)

    @property
    def warnings(self) -> list[str]:
        messages = [item.message for item in self.customers if item.outcome == "warning" and item.message]
        messages.extend(
            f"Package {item.package_id} sessions do not add up: total {item.total_sessions}, "
            f"accounted {item.accounted}"
            for item in self.accounting_violations
        )
        return messages


class ConsistencyAuditor:
    """Align account creation, package purchase and validity dates with session history.

    Runs outside the live engine. Every customer that has sessions gets a
    ``base_date`` (earliest session floored to the studio opening hour); an
    account whose ``created_at`` is further than ``tolerance`` from it is
    rewritten together with its packages' validity windows.
    """

    def __init__(
        self,
        customers_repository: CustomersRepository,
        billing_repository: BillingRepository,
        booking_repository: BookingRepository,
        audit_repository: AuditRepository,
        clock: Clock,
        *,
        base_hour: int = 9,
        tolerance: timedelta = timedelta(hours=24),
        validity_months: int = 12,
    ) -> None:
        self.customers_repository = customers_repository
        self.billing_repository = billing_repository
        self.booking_repository = booking_repository
        self.audit_repository = audit_repository
        self.clock = clock
        self.base_hour = base_hour
        self.tolerance = tolerance
        self.validity_months = validity_months
        self.ledger = PackageLedger(billing_repository, booking_repository, clock)

    def floor(self, dt: datetime) -> datetime:
        return floor_to_hour_of_day(dt, self.base_hour, self.clock.studio_zone)

    async def run(self, *, dry_run: bool = False) -> ConsistencyReport:
        report = ConsistencyReport(dry_run=dry_run)
        customers = await self.customers_repository.list_customers()
        logger.info("Checking %s customers for data consistency (dry_run=%s)", len(customers), dry_run)

        for customer in customers:
            packages = await self.billing_repository.list_packages_for_customer(customer.id)
            report.customers.append(await self.audit_customer(customer, packages, dry_run=dry_run))
            for package in packages:
                accounting = await self.ledger.session_accounting(package)
                if not accounting.is_balanced:
                    logger.warning(
                        "Package %s sessions do not add up: total=%s accounted=%s",
                        package.id,
                        accounting.total_sessions,
                        accounting.accounted,
                    )
                    report.accounting_violations.append(accounting)

        logger.info(
            "Consistency check finished: %s consistent, %s repaired, %s warnings, %s skipped",
            report.count("consistent"),
            report.count("repaired"),
            len(report.warnings),
            report.count("skipped"),
        )
        return report

    async def audit_customer(
        self,
        customer: Customer,
        packages: Sequence[Package],
        *,
        dry_run: bool = False,
    ) -> CustomerAudit:
        earliest, per_package = await self.booking_repository.earliest_session_starts(customer.id)
        if earliest is None:
            if packages:
                message = f"Customer {customer.id} has {len(packages)} package(s) but no sessions"
                logger.warning("Customer %s has %s package(s) but no sessions", customer.id, len(packages))
                return CustomerAudit(customer_id=customer.id, outcome="warning", message=message)
            return CustomerAudit(customer_id=customer.id, outcome="skipped")

        base_date = self.floor(earliest)
        if abs(ensure_utc(customer.created_at) - base_date) < self.tolerance:
            logger.debug("Customer %s already consistent", customer.id)
            return CustomerAudit(customer_id=customer.id, outcome="consistent", base_date=base_date)

        repairs = [self._package_window(package, base_date, per_package.get(package.id)) for package in packages]
        result = CustomerAudit(
            customer_id=customer.id,
            outcome="repaired",
            base_date=base_date,
            packages=repairs,
        )
        if dry_run:
            logger.info("Would set customer %s account date to %s", customer.id, base_date.date())
            return result

        previous_created_at = ensure_utc(customer.created_at)
        await self.customers_repository.set_created_at(customer, base_date)
        for package, repair in zip(packages, repairs):
            await self.billing_repository.set_validity(package, repair.valid_from, repair.valid_to)

        await self.audit_repository.create_audit_log(
            actor=AUDITOR_ACTOR,
            action="customer.timeline_repaired",
            entity_type="customer",
            entity_id=str(customer.id),
            payload={
                "previous_created_at": previous_created_at.isoformat(),
                "created_at": base_date.isoformat(),
                "packages": [
                    {
                        "package_id": str(repair.package_id),
                        "valid_from": repair.valid_from.isoformat(),
                        "valid_to": repair.valid_to.isoformat(),
                    }
                    for repair in repairs
                ],
            },
        )
        logger.info("Fixed customer %s: set account date to %s", customer.id, base_date.date())
        return result

    def _package_window(
        self,
        package: Package,
        base_date: datetime,
        earliest_session: datetime | None,
    ) -> PackageRepair:
        valid_from = max(self.floor(package.valid_from), base_date)
        if earliest_session is not None:
            valid_from = min(valid_from, self.floor(earliest_session))
        return PackageRepair(
            package_id=package.id,
            valid_from=valid_from,
            valid_to=add_months(valid_from, self.validity_months),
        )
