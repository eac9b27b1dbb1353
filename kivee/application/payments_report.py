"""
Payment aggregation for finance views (academy-wide unpaid / paid lists,
dashboard totals).

Subscription charges already carry their name and amount. Product charges
are resolved against the product catalog at read time, in this order:
  amount: stored amount -> location price -> base price -> 0
  name:   stored productName -> catalog name -> "Product not found"
A product deleted from the catalog never makes aggregation fail.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping

from sqlalchemy.orm import Session

from kivee.application.catalog import load_product_catalog
from kivee.config import get_settings
from kivee.domain.payment_entry import (
    PAYMENT_FOR_TIER, STATUS_PAID, STATUS_UNPAID,
    ProductCharge, Receipt, SubscriptionCharge, entries_from_docs,
)
from kivee.domain.product import Product
from kivee.infrastructure.db.models import AcademyModel, StudentModel

PRODUCT_NOT_FOUND = "Product not found"


@dataclass(frozen=True)
class PaymentRecord:
    student_id: str
    student_name: str
    item_name: str
    amount: Decimal
    status: str
    due_date: date | None
    paid_at: date | None
    payment_method: str | None
    receipt: Receipt | None
    original_index: int
    payment_for: str | None
    item_id: str | None


@dataclass(frozen=True)
class UnpaidSummary:
    count: int
    total: Decimal


@dataclass(frozen=True)
class FinanceReport:
    unpaid: list[PaymentRecord]
    paid: list[PaymentRecord]
    summary: UnpaidSummary
    currency: str


def _student_name(player) -> str:
    return f"{player.name or ''} {player.last_name or ''}".strip()


def _product_amount(charge: ProductCharge, product: Product | None, location_id: str | None) -> Decimal:
    amount = charge.amount
    if not amount and product is not None and location_id is not None:
        amount = product.location_prices.get(str(location_id))
    return amount or (product.price if product else None) or Decimal("0")


def aggregate(players, product_catalog: Mapping[str, Product]) -> list[PaymentRecord]:
    """Flatten every player's ledger into uniform records."""
    records: list[PaymentRecord] = []
    for player in players:
        name = _student_name(player)
        for index, entry in enumerate(entries_from_docs(player.one_time_products)):
            if isinstance(entry, SubscriptionCharge):
                item_name = entry.item_name
                amount = entry.amount if entry.amount is not None else Decimal("0")
                payment_for = PAYMENT_FOR_TIER
                item_id = entry.item_id
            else:
                product = product_catalog.get(entry.product_id) if entry.product_id else None
                item_name = entry.product_name or (product.name if product else None) or PRODUCT_NOT_FOUND
                amount = _product_amount(entry, product, player.location_id)
                payment_for = None
                item_id = entry.product_id
            records.append(PaymentRecord(
                student_id=player.id,
                student_name=name,
                item_name=item_name,
                amount=amount,
                status=entry.status,
                due_date=entry.due_date,
                paid_at=entry.paid_at,
                payment_method=entry.payment_method,
                receipt=entry.receipt,
                original_index=index,
                payment_for=payment_for,
                item_id=item_id,
            ))
    return records


def partition_payments(records: list[PaymentRecord]) -> tuple[list[PaymentRecord], list[PaymentRecord]]:
    """
    Split into (unpaid, paid).

    Unpaid: dated entries first, ascending by due date, undated last.
    Paid: most recent payment first.
    """
    unpaid = [r for r in records if r.status == STATUS_UNPAID]
    paid = [r for r in records if r.status == STATUS_PAID]
    unpaid.sort(key=lambda r: (r.due_date is None, r.due_date or date.min))
    paid.sort(key=lambda r: (r.paid_at is not None, r.paid_at or date.min), reverse=True)
    return unpaid, paid


def summarize_unpaid(records: list[PaymentRecord]) -> UnpaidSummary:
    unpaid = [r for r in records if r.status == STATUS_UNPAID]
    return UnpaidSummary(count=len(unpaid), total=sum((r.amount for r in unpaid), Decimal("0")))


def build_finance_report(db: Session, academy_id: str) -> FinanceReport:
    """Load students and products of an academy and build the finance view."""
    academy = db.query(AcademyModel).filter(AcademyModel.id == academy_id).first()
    students = db.query(StudentModel).filter(StudentModel.academy_id == academy_id).all()
    records = aggregate(students, load_product_catalog(db, academy_id))
    unpaid, paid = partition_payments(records)
    return FinanceReport(
        unpaid=unpaid,
        paid=paid,
        summary=summarize_unpaid(records),
        currency=academy.currency if academy else get_settings().DEFAULT_CURRENCY,
    )
