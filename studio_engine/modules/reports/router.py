"""Payment reports API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from studio_engine.core.enums import ReportTypeEnum
from studio_engine.modules.reports.schemas import (
    PaymentReportRead,
    ReportGenerateRequest,
    ReportGenerationRead,
)
from studio_engine.modules.reports.service import (
    PaymentReportGenerator,
    ReportGenerationResult,
    get_payment_report_generator,
)
from studio_engine.shared.exceptions import NotFoundException
from studio_engine.shared.pagination import Page, PageQuery, page_query

router = APIRouter(prefix="/reports", tags=["reports"])


def _to_read(result: ReportGenerationResult) -> ReportGenerationRead:
    return ReportGenerationRead(
        status=result.status,
        year=result.year,
        month=result.month,
        report_type=result.report_type,
        report=PaymentReportRead.model_validate(result.report) if result.report is not None else None,
    )


@router.post("/generate", response_model=ReportGenerationRead)
async def generate_report(
    payload: ReportGenerateRequest,
    service: PaymentReportGenerator = Depends(get_payment_report_generator),
) -> ReportGenerationRead:
    """Generate a period report; an existing one is returned untouched."""
    result = await service.generate_report(payload.year, payload.month, payload.report_type)
    return _to_read(result)


@router.post("/regenerate", response_model=ReportGenerationRead)
async def regenerate_report(
    payload: ReportGenerateRequest,
    service: PaymentReportGenerator = Depends(get_payment_report_generator),
) -> ReportGenerationRead:
    """Delete and rebuild a period report."""
    result = await service.regenerate_report(payload.year, payload.month, payload.report_type)
    return _to_read(result)


@router.get("", response_model=Page[PaymentReportRead])
async def list_reports(
    year: int | None = Query(default=None, ge=2000, le=2100),
    month: int | None = Query(default=None, ge=1, le=12),
    report_type: ReportTypeEnum | None = Query(default=None),
    page: PageQuery = Depends(page_query),
    service: PaymentReportGenerator = Depends(get_payment_report_generator),
) -> Page[PaymentReportRead]:
    """List stored reports, newest period first."""
    items, total = await service.list_reports(
        limit=page.limit,
        offset=page.offset,
        year=year,
        month=month,
        report_type=report_type,
    )
    serialized = [PaymentReportRead.model_validate(item) for item in items]
    return Page[PaymentReportRead].of(serialized, total, page)


@router.get("/{year}/{month}", response_model=PaymentReportRead)
async def get_report(
    year: int,
    month: int,
    report_type: ReportTypeEnum = Query(default=ReportTypeEnum.MONTHLY),
    service: PaymentReportGenerator = Depends(get_payment_report_generator),
) -> PaymentReportRead:
    """Get one period report."""
    report = await service.get_report(year, month, report_type)
    if report is None:
        raise NotFoundException("Payment report not found")
    return PaymentReportRead.model_validate(report)
