"""Teacher commission calculation.

Pure functions over ``Decimal`` money values: identical inputs always give
identical output, with no clock or storage access.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from studio_engine.core.enums import SessionTypeEnum, TeacherTypeEnum

CENT = Decimal("0.01")


def to_cents(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True, slots=True)
class SessionRate:
    base: Decimal
    rate: Decimal

    @property
    def per_session(self) -> Decimal:
        return self.base * self.rate


@dataclass(frozen=True, slots=True)
class TeacherRates:
    """Rates of one teacher class."""

    private: SessionRate
    duo: SessionRate
    group: SessionRate
    base_salary: Decimal = Decimal("0")

    def for_session(self, session_type: SessionTypeEnum) -> SessionRate:
        return getattr(self, session_type.value)


RateTable = Mapping[TeacherTypeEnum, TeacherRates]

DEFAULT_RATE_TABLE: RateTable = {
    TeacherTypeEnum.FREELANCE: TeacherRates(
        private=SessionRate(base=Decimal("1000"), rate=Decimal("0.40")),
        duo=SessionRate(base=Decimal("1500"), rate=Decimal("0.40")),
        group=SessionRate(base=Decimal("2100"), rate=Decimal("0.40")),
        base_salary=Decimal("0"),
    ),
    TeacherTypeEnum.STUDIO: TeacherRates(
        private=SessionRate(base=Decimal("1000"), rate=Decimal("0.35")),
        duo=SessionRate(base=Decimal("1500"), rate=Decimal("0.35")),
        group=SessionRate(base=Decimal("2100"), rate=Decimal("0.35")),
        base_salary=Decimal("15000"),
    ),
}


@dataclass(frozen=True, slots=True)
class SessionTypeCommission:
    count: int
    commission: Decimal


@dataclass(frozen=True, slots=True)
class CommissionBreakdown:
    teacher_type: TeacherTypeEnum
    sessions: Mapping[SessionTypeEnum, SessionTypeCommission]
    total_sessions: int
    total_commission: Decimal
    base_salary: Decimal

    @property
    def total_payment(self) -> Decimal:
        return self.total_commission + self.base_salary

    def with_bonuses(self, total_bonuses: Decimal) -> Decimal:
        """Total payout once approved bonuses are added."""
        return self.total_payment + total_bonuses


def calculate_commission(
    teacher_type: TeacherTypeEnum,
    session_types: Iterable[SessionTypeEnum],
    rate_table: RateTable = DEFAULT_RATE_TABLE,
) -> CommissionBreakdown:
    """Compute a teacher's commission for a list of completed sessions.

    ``session_types`` holds one entry per completed session. Every session
    type gets a line, including zero counts, in enum declaration order.
    """
    try:
        rates = rate_table[TeacherTypeEnum(teacher_type)]
    except (KeyError, ValueError) as exc:
        raise ValueError(f"No commission rates for teacher type: {teacher_type}") from exc

    counts = Counter(SessionTypeEnum(session_type) for session_type in session_types)

    sessions: dict[SessionTypeEnum, SessionTypeCommission] = {}
    exact_total = Decimal("0")
    for session_type in SessionTypeEnum:
        count = counts.get(session_type, 0)
        subtotal = rates.for_session(session_type).per_session * count
        exact_total += subtotal
        sessions[session_type] = SessionTypeCommission(count=count, commission=to_cents(subtotal))

    return CommissionBreakdown(
        teacher_type=TeacherTypeEnum(teacher_type),
        sessions=sessions,
        total_sessions=sum(line.count for line in sessions.values()),
        # rounded once from the exact sum, so lines may not add up to it to the cent
        total_commission=to_cents(exact_total),
        base_salary=to_cents(rates.base_salary),
    )
