"""Core enums used across modules."""

from enum import StrEnum


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLATION_REQUESTED = "cancellationRequested"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    NO_SHOW = "noShow"


class SessionTypeEnum(StrEnum):
    """Billing category of a session."""

    PRIVATE = "private"
    DUO = "duo"
    GROUP = "group"


class PackageStatusEnum(StrEnum):
    """Session package status."""

    ACTIVE = "active"
    EXPIRED = "expired"
    DEPLETED = "depleted"


class TeacherTypeEnum(StrEnum):
    """Teacher commission class."""

    FREELANCE = "freelance"
    STUDIO = "studio"


class ReportTypeEnum(StrEnum):
    """Payment report granularity."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half-yearly"
    YEARLY = "yearly"


class ReportGeneratedByEnum(StrEnum):
    """Who triggered the report generation."""

    AUTO = "auto"
    MANUAL = "manual"


class BonusTypeEnum(StrEnum):
    """Teacher bonus recurrence."""

    ONE_TIME = "one-time"
    RECURRING = "recurring"


class BonusStatusEnum(StrEnum):
    """Teacher bonus approval status."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"
    CANCELLED = "cancelled"


class ExpenseCategoryEnum(StrEnum):
    """Studio expense category."""

    RENT = "rent"
    INSTRUMENTS = "instruments"
    ELECTRICITY = "electricity"
    WATER = "water"
    OTHERS = "others"


class OutboxStatusEnum(StrEnum):
    """Outbox event status for integration publishing."""

    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
