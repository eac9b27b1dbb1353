"""
Student use cases - plan assignment and every write to the payment ledger.

The ledger is one JSON column replaced as a whole. Each write is a
compare-and-swap on students.version: the UPDATE only matches the version
the ledger was read at, so two sessions appending at the same time cannot
silently overwrite each other. The loser gets LedgerConflictError (or, for
reconciliation, one automatic re-read and retry).
"""
import logging
from datetime import date

from sqlalchemy import update
from sqlalchemy.orm import Session

from kivee.application.ledger import ReconcileResult, new_cycle, reconcile, subscription_groups
from kivee.application.tiers import load_tier_catalog
from kivee.config import get_settings
from kivee.domain.payment_entry import (
    ProductCharge, Receipt, STATUS_UNPAID,
    entries_from_docs, entries_to_docs, mark_paid,
)
from kivee.domain.billing_period import parse_date
from kivee.domain.pricing import resolve_price, select_variant, tier_from_db
from kivee.domain.product import product_from_db
from kivee.domain.trial import Trial
from kivee.infrastructure.db.models import StudentModel, TierModel, TrialModel, ProductModel
from kivee.utils.validation import validate_receipt

logger = logging.getLogger(__name__)

PLAN_TYPE_TIER = "tier"
PLAN_TYPE_TRIAL = "trial"

RECONCILE_MAX_PASSES = 2


class StudentValidationError(ValueError):
    pass


class StudentNotFoundError(StudentValidationError):
    pass


class LedgerConflictError(RuntimeError):
    """The ledger changed between read and write."""


def load_student(db: Session, academy_id: str, student_id: str) -> StudentModel:
    """Fresh read of a student row (identity map contents are overwritten)."""
    student = db.query(StudentModel).filter(
        StudentModel.id == student_id,
        StudentModel.academy_id == academy_id,
    ).populate_existing().first()
    if not student:
        raise StudentNotFoundError("Student not found")
    return student


def trial_window(student: StudentModel, trial_catalog: dict[str, Trial], today: date) -> tuple[date, bool] | None:
    """(end date, expired) of the student's trial plan. None when not on a known trial."""
    plan = student.plan or {}
    if plan.get("type") != PLAN_TYPE_TRIAL:
        return None
    trial = trial_catalog.get(plan.get("id"))
    start = parse_date(plan.get("startDate"))
    if trial is None or start is None:
        return None
    return trial.end_date(start), trial.is_expired(start, today)


def save_ledger(db: Session, student: StudentModel, entries) -> None:
    """
    Replace the ledger if nobody wrote it since `student` was read.

    Raises:
        LedgerConflictError: the stored version moved on
    """
    expected = student.version
    result = db.execute(
        update(StudentModel)
        .where(StudentModel.id == student.id, StudentModel.version == expected)
        .values(one_time_products=entries_to_docs(entries), version=expected + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise LedgerConflictError(
            f"Ledger of student {student.id} was modified concurrently (expected version {expected})"
        )
    db.commit()


class CreateStudentUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        name: str,
        last_name: str = "",
        location_id: str | None = None,
        group_id: str | None = None,
    ) -> str:
        name = name.strip()
        if not name:
            raise StudentValidationError("Name cannot be empty")

        student = StudentModel(
            academy_id=academy_id,
            name=name,
            last_name=last_name.strip(),
            location_id=location_id or None,
            group_id=group_id or None,
            plan=None,
            one_time_products=[],
            version=0,
        )
        self.db.add(student)
        self.db.flush()
        self.db.commit()
        return student.id


class AssignPlanUseCase:
    """
    Assign a tier or trial to a student.

    Tier plans open the first billing cycle (unpaid, due on start_date) at
    the price that applies at the student's location. When the tier has
    several prices there, staff must pass billing_period, or variant_key when
    several custom durations or terms share that period.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        student_id: str,
        plan_type: str,
        plan_id: str,
        start_date: date | None = None,
        billing_period: str | None = None,
        variant_key: str | None = None,
    ) -> None:
        student = load_student(self.db, academy_id, student_id)
        start_date = start_date or date.today()

        if plan_type == PLAN_TYPE_TRIAL:
            trial = self.db.query(TrialModel).filter(
                TrialModel.id == plan_id,
                TrialModel.academy_id == academy_id,
            ).first()
            if not trial:
                raise StudentValidationError("Trial not found")
            self._set_plan(student, {
                "type": PLAN_TYPE_TRIAL, "id": trial.id, "startDate": start_date.isoformat(),
            })
            return

        if plan_type != PLAN_TYPE_TIER:
            raise StudentValidationError("Plan type must be tier or trial")

        row = self.db.query(TierModel).filter(
            TierModel.id == plan_id,
            TierModel.academy_id == academy_id,
        ).first()
        if not row:
            raise StudentValidationError("Tier not found")
        tier = tier_from_db(row)
        if not tier.is_active:
            raise StudentValidationError("Tier is inactive")

        resolution = resolve_price(tier, student.location_id)
        if resolution.is_none:
            raise StudentValidationError("No price set for this location")
        variant = select_variant(tier, student.location_id, billing_period, key=variant_key)
        if variant is None:
            if variant_key:
                raise StudentValidationError("Tier has no such price for this location")
            if billing_period:
                if any(v.billing_period == billing_period for v in resolution.variants):
                    raise StudentValidationError(
                        f"Tier has several {billing_period} prices, choose one"
                    )
                raise StudentValidationError(f"Tier has no {billing_period} price for this location")
            raise StudentValidationError("Tier has several prices, choose a billing period")

        entries = entries_from_docs(student.one_time_products)
        existing = subscription_groups(entries).get(tier.id, [])
        if not any(c.due_date == start_date for c in existing):
            entries.append(new_cycle(tier, variant, start_date))

        student.plan = {
            "type": PLAN_TYPE_TIER,
            "id": tier.id,
            "startDate": start_date.isoformat(),
            "billingPeriod": variant.billing_period,
            "variantKey": variant.key,
        }
        self.db.flush()
        save_ledger(self.db, student, entries)

    def _set_plan(self, student: StudentModel, plan: dict) -> None:
        student.plan = plan
        self.db.commit()


class AddProductChargeUseCase:
    """Sell a one-time product: its name and location price are frozen on the entry."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, academy_id: str, student_id: str, product_id: str) -> int:
        student = load_student(self.db, academy_id, student_id)
        row = self.db.query(ProductModel).filter(
            ProductModel.id == product_id,
            ProductModel.academy_id == academy_id,
        ).first()
        if not row:
            raise StudentValidationError("Product not found")
        product = product_from_db(row)

        entries = entries_from_docs(student.one_time_products)
        entries.append(ProductCharge(
            product_id=product.id,
            product_name=product.name,
            amount=product.price_at(student.location_id),
            status=STATUS_UNPAID,
        ))
        save_ledger(self.db, student, entries)
        return len(entries) - 1


class MarkPaymentPaidUseCase:
    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        academy_id: str,
        student_id: str,
        index: int,
        paid_on: date,
        payment_method: str,
        receipt: dict | None = None,
        today: date | None = None,
    ) -> None:
        today = today or date.today()
        if paid_on > today:
            raise StudentValidationError("Payment date cannot be in the future.")
        payment_method = (payment_method or "").strip()
        if not payment_method:
            raise StudentValidationError("Payment method is required")

        receipt_obj = None
        if receipt:
            error = validate_receipt(
                receipt.get("content_type"), receipt.get("size"), get_settings().RECEIPT_MAX_BYTES,
            )
            if error:
                raise StudentValidationError(error)
            receipt_obj = Receipt(
                url=receipt.get("url"),
                path=receipt.get("path"),
                name=receipt.get("name"),
                content_type=receipt.get("content_type"),
            )

        student = load_student(self.db, academy_id, student_id)
        entries = entries_from_docs(student.one_time_products)
        if index < 0 or index >= len(entries):
            raise StudentValidationError("Payment not found")
        if entries[index].is_paid:
            raise StudentValidationError("Payment is already registered as paid")

        entries[index] = mark_paid(entries[index], paid_on, payment_method, receipt_obj)
        save_ledger(self.db, student, entries)


class RemoveUnpaidEntryUseCase:
    """Staff may delete an unpaid charge. Paid charges are permanent."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, academy_id: str, student_id: str, index: int) -> None:
        student = load_student(self.db, academy_id, student_id)
        entries = entries_from_docs(student.one_time_products)
        if index < 0 or index >= len(entries):
            raise StudentValidationError("Payment not found")
        if entries[index].is_paid:
            raise StudentValidationError("Paid entries cannot be removed")
        del entries[index]
        save_ledger(self.db, student, entries)


class ReconcileStudentLedgerUseCase:
    """
    Read ledger -> reconcile -> compare-and-swap write.

    Writes only when cycles were appended. If another session wrote the
    ledger in between, the ledger is re-read and reconciled once more.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, academy_id: str, student_id: str, today: date | None = None) -> ReconcileResult:
        today = today or date.today()
        catalog = load_tier_catalog(self.db, academy_id)

        for attempt in range(1, RECONCILE_MAX_PASSES + 1):
            student = load_student(self.db, academy_id, student_id)
            result = reconcile(
                entries_from_docs(student.one_time_products),
                catalog,
                today,
                location_id=student.location_id,
            )
            if not result.changed:
                return result
            try:
                save_ledger(self.db, student, result.entries)
                return result
            except LedgerConflictError:
                logger.warning(
                    "Ledger conflict for student %s (pass %d/%d)", student_id, attempt, RECONCILE_MAX_PASSES,
                )
        raise LedgerConflictError(f"Could not reconcile ledger of student {student_id}, please retry")


class ReconcileAcademyLedgersUseCase:
    """Batch reconciliation of every student of an academy."""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, academy_id: str, today: date | None = None) -> dict:
        today = today or date.today()
        student_ids = [
            sid for (sid,) in self.db.query(StudentModel.id).filter(
                StudentModel.academy_id == academy_id,
            ).all()
        ]

        stats = {"students": len(student_ids), "updated": 0, "cycles": 0, "failed": 0}
        for sid in student_ids:
            try:
                result = ReconcileStudentLedgerUseCase(self.db).execute(academy_id, sid, today)
            except Exception:
                logger.exception("Ledger reconciliation failed for student_id=%s", sid)
                self.db.rollback()
                stats["failed"] += 1
                continue
            if result.changed:
                stats["updated"] += 1
                stats["cycles"] += len(result.appended)
        return stats
