"""Teachers repository layer."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studio_engine.modules.teachers.models import Teacher


class TeachersRepository:
    """DB operations for teachers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_teachers(self) -> Sequence[Teacher]:
        """Return every teacher, active or not, in a stable order."""
        stmt = select(Teacher).order_by(Teacher.display_name.asc(), Teacher.id.asc())
        return (await self.session.scalars(stmt)).all()
