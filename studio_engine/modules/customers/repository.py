"""Customer repository layer."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_engine.modules.customers.models import Customer


class CustomersRepository:
    """DB operations for customers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_customers(self) -> Sequence[Customer]:
        stmt = select(Customer).order_by(Customer.created_at.asc())
        return (await self.session.scalars(stmt)).all()

    async def set_created_at(self, customer: Customer, created_at: datetime) -> Customer:
        customer.created_at = created_at
        customer.updated_at = created_at
        await self.session.flush()
        return customer
