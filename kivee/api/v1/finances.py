"""
Finance API endpoints - academy-wide unpaid / paid payments
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kivee.api.deps import get_db, get_academy
from kivee.application.payments_report import PaymentRecord, build_finance_report
from kivee.infrastructure.db.models import AcademyModel
from kivee.utils.money import format_academy_currency


router = APIRouter(prefix="/api/v1/academies/{academy_id}/finances", tags=["finances"])


class PaymentRecordResponse(BaseModel):
    student_id: str
    student_name: str
    item_name: str
    amount: str  # Decimal as string
    amount_display: str
    status: str
    due_date: date | None
    paid_at: date | None
    payment_method: str | None
    receipt_url: str | None
    original_index: int
    payment_for: str | None


class FinanceResponse(BaseModel):
    currency: str
    unpaid_count: int
    unpaid_total: str
    unpaid_total_display: str
    unpaid: list[PaymentRecordResponse]
    paid: list[PaymentRecordResponse]


def _record(r: PaymentRecord, academy: AcademyModel) -> PaymentRecordResponse:
    return PaymentRecordResponse(
        student_id=r.student_id,
        student_name=r.student_name,
        item_name=r.item_name,
        amount=str(r.amount),
        amount_display=format_academy_currency(r.amount, academy),
        status=r.status,
        due_date=r.due_date,
        paid_at=r.paid_at,
        payment_method=r.payment_method,
        receipt_url=r.receipt.url if r.receipt else None,
        original_index=r.original_index,
        payment_for=r.payment_for,
    )


@router.get("/", response_model=FinanceResponse)
def get_finances(
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Unpaid (oldest due first) and paid (latest first) payments"""
    report = build_finance_report(db, academy.id)
    return FinanceResponse(
        currency=report.currency,
        unpaid_count=report.summary.count,
        unpaid_total=str(report.summary.total),
        unpaid_total_display=format_academy_currency(report.summary.total, academy),
        unpaid=[_record(r, academy) for r in report.unpaid],
        paid=[_record(r, academy) for r in report.paid],
    )
