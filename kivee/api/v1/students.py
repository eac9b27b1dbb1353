"""
Student API endpoints - plan assignment and payment ledger
"""
from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from kivee.api.deps import get_db, get_academy, http_error
from kivee.application.catalog import load_product_catalog, load_trial_catalog
from kivee.application.expiry import classify
from kivee.application.ledger import group_variant, subscription_groups
from kivee.application.payments_report import aggregate
from kivee.application.students import (
    CreateStudentUseCase, AssignPlanUseCase, AddProductChargeUseCase,
    MarkPaymentPaidUseCase, RemoveUnpaidEntryUseCase, ReconcileStudentLedgerUseCase,
    StudentValidationError, LedgerConflictError, load_student, trial_window,
)
from kivee.application.tiers import load_tier_catalog
from kivee.config import get_settings
from kivee.domain.payment_entry import SubscriptionCharge, entries_from_docs
from kivee.infrastructure.db.models import AcademyModel
from kivee.utils.money import format_academy_currency


router = APIRouter(prefix="/api/v1/academies/{academy_id}/students", tags=["students"])


# === Request/Response models ===

class CreateStudentRequest(BaseModel):
    name: str
    last_name: str = ""
    location_id: str | None = None
    group_id: str | None = None


class StudentResponse(BaseModel):
    id: str
    name: str
    last_name: str
    location_id: str | None
    group_id: str | None
    plan: dict | None
    trial_ends_on: date | None = None
    trial_expired: bool | None = None


class AssignPlanRequest(BaseModel):
    plan_type: str  # tier, trial
    plan_id: str
    start_date: date | None = None
    billing_period: str | None = None  # required when the tier has several prices
    variant_key: str | None = None  # several custom durations or terms share a period


class AddProductRequest(BaseModel):
    product_id: str


class ReceiptBody(BaseModel):
    url: str | None = None
    path: str | None = None
    name: str | None = None
    content_type: str
    size: int | None = None


class MarkPaidRequest(BaseModel):
    paid_on: date
    payment_method: str
    receipt: ReceiptBody | None = None


class LedgerEntryResponse(BaseModel):
    index: int
    kind: str  # subscription, product
    item_id: str | None
    item_name: str
    amount: str
    amount_display: str
    status: str
    due_date: date | None
    paid_at: date | None
    payment_method: str | None
    billing_period: str | None = None
    variant_key: str | None = None
    expires_on: date | None = None
    expiry_status: str | None = None  # ok, soon, expired


class LedgerResponse(BaseModel):
    student_id: str
    currency: str
    appended: int
    entries: list[LedgerEntryResponse]


def _student_response(db: Session, s) -> StudentResponse:
    response = StudentResponse(
        id=s.id,
        name=s.name,
        last_name=s.last_name,
        location_id=s.location_id,
        group_id=s.group_id,
        plan=s.plan,
    )
    window = trial_window(s, load_trial_catalog(db, s.academy_id), date.today())
    if window is not None:
        response.trial_ends_on, response.trial_expired = window
    return response


# === Endpoints ===

@router.post("/", response_model=StudentResponse)
def create_student(
    req: CreateStudentRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Enroll a student"""
    try:
        student_id = CreateStudentUseCase(db).execute(
            academy_id=academy.id,
            name=req.name,
            last_name=req.last_name,
            location_id=req.location_id,
            group_id=req.group_id,
        )
    except StudentValidationError as e:
        raise http_error(e)
    return _student_response(db, load_student(db, academy.id, student_id))


@router.post("/{student_id}/plan", response_model=StudentResponse)
def assign_plan(
    student_id: str,
    req: AssignPlanRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Assign a tier or trial. Tiers open the first billing cycle."""
    try:
        AssignPlanUseCase(db).execute(
            academy_id=academy.id,
            student_id=student_id,
            plan_type=req.plan_type,
            plan_id=req.plan_id,
            start_date=req.start_date,
            billing_period=req.billing_period,
            variant_key=req.variant_key,
        )
        student = load_student(db, academy.id, student_id)
    except (StudentValidationError, LedgerConflictError) as e:
        raise http_error(e)
    return _student_response(db, student)


@router.post("/{student_id}/products")
def add_product(
    student_id: str,
    req: AddProductRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Charge a one-time product to the student"""
    try:
        index = AddProductChargeUseCase(db).execute(academy.id, student_id, req.product_id)
    except (StudentValidationError, LedgerConflictError) as e:
        raise http_error(e)
    return {"index": index}


@router.get("/{student_id}/ledger", response_model=LedgerResponse)
def get_ledger(
    student_id: str,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Reconcile the ledger, then return it with expiry annotations"""
    today = date.today()
    try:
        result = ReconcileStudentLedgerUseCase(db).execute(academy.id, student_id, today)
        student = load_student(db, academy.id, student_id)
    except (StudentValidationError, LedgerConflictError) as e:
        raise http_error(e)

    tier_catalog = load_tier_catalog(db, academy.id)
    records = aggregate([student], load_product_catalog(db, academy.id))
    entries = entries_from_docs(student.one_time_products)

    variants = {}
    for item_id, group in subscription_groups(entries).items():
        tier = tier_catalog.get(item_id)
        variants[item_id] = group_variant(group, tier, student.location_id) if tier else None

    soon_days = get_settings().EXPIRY_SOON_DAYS
    out = []
    for record, entry in zip(records, entries):
        item = LedgerEntryResponse(
            index=record.original_index,
            kind="subscription" if isinstance(entry, SubscriptionCharge) else "product",
            item_id=record.item_id,
            item_name=record.item_name,
            amount=str(record.amount),
            amount_display=format_academy_currency(record.amount, academy),
            status=record.status,
            due_date=record.due_date,
            paid_at=record.paid_at,
            payment_method=record.payment_method,
        )
        if isinstance(entry, SubscriptionCharge):
            item.billing_period = entry.billing_period
            item.variant_key = entry.variant_key
            info = classify(entry, variants.get(entry.item_id), today, soon_days)
            if info is not None:
                item.expires_on = info.effective_expiry
                item.expiry_status = info.status
        out.append(item)

    return LedgerResponse(
        student_id=student.id,
        currency=academy.currency,
        appended=len(result.appended),
        entries=out,
    )


@router.post("/{student_id}/payments/{index}/pay")
def mark_paid(
    student_id: str,
    index: int,
    req: MarkPaidRequest,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Register a payment"""
    try:
        MarkPaymentPaidUseCase(db).execute(
            academy_id=academy.id,
            student_id=student_id,
            index=index,
            paid_on=req.paid_on,
            payment_method=req.payment_method,
            receipt=req.receipt.model_dump() if req.receipt else None,
        )
    except (StudentValidationError, LedgerConflictError) as e:
        raise http_error(e)
    return {"status": "paid"}


@router.delete("/{student_id}/payments/{index}")
def remove_payment(
    student_id: str,
    index: int,
    academy: AcademyModel = Depends(get_academy),
    db: Session = Depends(get_db),
):
    """Delete an unpaid charge"""
    try:
        RemoveUnpaidEntryUseCase(db).execute(academy.id, student_id, index)
    except (StudentValidationError, LedgerConflictError) as e:
        raise http_error(e)
    return {"status": "deleted"}
