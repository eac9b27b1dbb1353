"""
Payment ledger entries.

A student's ledger is one ordered list mixing two kinds of charges:

  SubscriptionCharge - one billing cycle of a tier, persisted with paymentFor='tier'
  ProductCharge      - a one-time product purchase (no paymentFor, or anything else)

Persisted document shape (camelCase, amounts as decimal strings, dates ISO):
  {paymentFor, itemId, itemName, amount, dueDate, billingPeriod, status,
   paidAt, paymentMethod, receiptUrl, receiptPath, receiptName, receiptType,
   durationUnit?, durationAmount?, termStartDate?, termEndDate?}
  {productId, productName, amount, status, paidAt, paymentMethod, receipt*}

Keys this module does not know about are kept in `extra` and written back.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from typing import Any, Union

from kivee.domain.billing_period import parse_date, variant_key as make_variant_key
from kivee.utils.money import to_decimal, decimal_to_str

PAYMENT_FOR_TIER = "tier"

STATUS_UNPAID = "unpaid"
STATUS_PAID = "paid"

_RECEIPT_KEYS = ("receiptUrl", "receiptPath", "receiptName", "receiptType")
_SUBSCRIPTION_KEYS = frozenset({
    "paymentFor", "itemId", "itemName", "amount", "dueDate", "billingPeriod",
    "durationUnit", "durationAmount", "termStartDate", "termEndDate",
    "status", "paidAt", "paymentMethod", *_RECEIPT_KEYS,
})
_PRODUCT_KEYS = frozenset({
    "productId", "productName", "amount", "dueDate",
    "status", "paidAt", "paymentMethod", *_RECEIPT_KEYS,
})


@dataclass(frozen=True)
class Receipt:
    url: str | None = None
    path: str | None = None
    name: str | None = None
    content_type: str | None = None

    @classmethod
    def from_doc(cls, doc: dict) -> "Receipt | None":
        if not any(doc.get(k) for k in _RECEIPT_KEYS):
            return None
        return cls(
            url=doc.get("receiptUrl"),
            path=doc.get("receiptPath"),
            name=doc.get("receiptName"),
            content_type=doc.get("receiptType"),
        )

    def to_doc(self) -> dict:
        return {
            "receiptUrl": self.url,
            "receiptPath": self.path,
            "receiptName": self.name,
            "receiptType": self.content_type,
        }


@dataclass(frozen=True)
class SubscriptionCharge:
    item_id: str
    item_name: str
    amount: Decimal | None
    due_date: date | None
    billing_period: str | None = None
    status: str = STATUS_UNPAID
    paid_at: date | None = None
    payment_method: str | None = None
    receipt: Receipt | None = None
    # identity of the price variant this cycle was billed with
    duration_unit: str | None = None
    duration_amount: int | None = None
    term_start_date: date | None = None
    term_end_date: date | None = None
    extra: dict = field(default_factory=dict, compare=False)

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID

    @property
    def variant_key(self) -> str | None:
        return make_variant_key(
            self.billing_period, self.duration_unit, self.duration_amount,
            self.term_start_date, self.term_end_date,
        )


@dataclass(frozen=True)
class ProductCharge:
    product_id: str | None
    product_name: str | None = None
    amount: Decimal | None = None
    status: str = STATUS_UNPAID
    paid_at: date | None = None
    payment_method: str | None = None
    receipt: Receipt | None = None
    due_date: date | None = None
    extra: dict = field(default_factory=dict, compare=False)

    @property
    def is_paid(self) -> bool:
        return self.status == STATUS_PAID


PaymentEntry = Union[SubscriptionCharge, ProductCharge]


def _iso(d: date | None) -> str | None:
    return d.isoformat() if d else None


def _int_or_none(value) -> int | None:
    try:
        return int(value) if value not in (None, "") else None
    except (TypeError, ValueError):
        return None


def entry_from_doc(doc: dict[str, Any]) -> PaymentEntry:
    """Decode one persisted ledger entry."""
    if doc.get("paymentFor") == PAYMENT_FOR_TIER:
        return SubscriptionCharge(
            item_id=str(doc.get("itemId") or ""),
            item_name=doc.get("itemName") or "",
            amount=to_decimal(doc.get("amount")),
            due_date=parse_date(doc.get("dueDate")),
            billing_period=doc.get("billingPeriod") or None,
            status=doc.get("status") or STATUS_UNPAID,
            paid_at=parse_date(doc.get("paidAt")),
            payment_method=doc.get("paymentMethod"),
            receipt=Receipt.from_doc(doc),
            duration_unit=doc.get("durationUnit") or None,
            duration_amount=_int_or_none(doc.get("durationAmount")),
            term_start_date=parse_date(doc.get("termStartDate")),
            term_end_date=parse_date(doc.get("termEndDate")),
            extra={k: v for k, v in doc.items() if k not in _SUBSCRIPTION_KEYS},
        )
    product_id = doc.get("productId")
    return ProductCharge(
        product_id=str(product_id) if product_id is not None else None,
        product_name=doc.get("productName") or None,
        amount=to_decimal(doc.get("amount")),
        status=doc.get("status") or STATUS_UNPAID,
        paid_at=parse_date(doc.get("paidAt")),
        payment_method=doc.get("paymentMethod"),
        receipt=Receipt.from_doc(doc),
        due_date=parse_date(doc.get("dueDate")),
        extra={k: v for k, v in doc.items() if k not in _PRODUCT_KEYS},
    )


def entry_to_doc(entry: PaymentEntry) -> dict[str, Any]:
    """Encode one ledger entry for storage."""
    doc: dict[str, Any] = dict(entry.extra)
    if isinstance(entry, SubscriptionCharge):
        doc.update({
            "paymentFor": PAYMENT_FOR_TIER,
            "itemId": entry.item_id,
            "itemName": entry.item_name,
            "amount": decimal_to_str(entry.amount),
            "dueDate": _iso(entry.due_date),
            "billingPeriod": entry.billing_period,
            "status": entry.status,
        })
        if entry.duration_unit:
            doc["durationUnit"] = entry.duration_unit
            doc["durationAmount"] = entry.duration_amount
        if entry.term_end_date:
            doc["termStartDate"] = _iso(entry.term_start_date)
            doc["termEndDate"] = _iso(entry.term_end_date)
    else:
        doc.update({
            "productId": entry.product_id,
            "status": entry.status,
        })
        if entry.product_name:
            doc["productName"] = entry.product_name
        if entry.amount is not None:
            doc["amount"] = decimal_to_str(entry.amount)
        if entry.due_date:
            doc["dueDate"] = _iso(entry.due_date)
    if entry.paid_at:
        doc["paidAt"] = _iso(entry.paid_at)
    if entry.payment_method:
        doc["paymentMethod"] = entry.payment_method
    if entry.receipt:
        doc.update(entry.receipt.to_doc())
    return doc


def entries_from_docs(docs) -> list[PaymentEntry]:
    if not isinstance(docs, list):
        return []
    return [entry_from_doc(d) for d in docs if isinstance(d, dict)]


def entries_to_docs(entries) -> list[dict[str, Any]]:
    return [entry_to_doc(e) for e in entries]


def mark_paid(
    entry: PaymentEntry,
    paid_at: date,
    payment_method: str,
    receipt: Receipt | None = None,
) -> PaymentEntry:
    """Copy of the entry flipped to paid. Amount and due date are untouched."""
    return replace(
        entry,
        status=STATUS_PAID,
        paid_at=paid_at,
        payment_method=payment_method,
        receipt=receipt or entry.receipt,
    )
