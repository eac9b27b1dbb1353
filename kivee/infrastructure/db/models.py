"""
SQLAlchemy ORM models (academy catalog + student ledgers)

Identifiers are opaque strings so that documents migrated from the
document store keep their ids.
"""
import uuid

from sqlalchemy import String, Integer, Boolean, Text, TIMESTAMP, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import JSONB

from kivee.infrastructure.db.session import Base


def _new_id() -> str:
    return uuid.uuid4().hex


class AcademyModel(Base):
    """Tenant root: every catalog and student row belongs to one academy"""
    __tablename__ = "academies"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="USD", server_default="USD")
    student_label_singular: Mapped[str] = mapped_column(
        String(64), nullable=False, default="Student", server_default="Student",
    )

    created_at: Mapped[TIMESTAMP] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


# ============================================================================
# Catalog
# ============================================================================


class TierModel(Base):
    """Recurring membership plan. Pricing lives in the two variant columns."""
    __tablename__ = "tiers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    academy_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="active", server_default="active")

    classes_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    class_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    class_limit_per_cycle: Mapped[int | None] = mapped_column(Integer, nullable=True)
    auto_renew: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    requires_enrollment_fee: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false",
    )

    different_prices_by_location: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false",
    )
    # [{billingPeriod, price, ...}]
    default_price_variants: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    # {locationId: [{billingPeriod, price, ...}]}
    price_variants_by_location: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)

    created_at: Mapped[TIMESTAMP] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[TIMESTAMP | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)


class TrialModel(Base):
    """Time-boxed introductory plan"""
    __tablename__ = "trials"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    academy_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_in_days: Mapped[int] = mapped_column(Integer, nullable=False)
    class_limit: Mapped[int | None] = mapped_column(Integer, nullable=True)
    location_prices: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)  # {locationId: "price"}
    converts_to_tier_id: Mapped[str | None] = mapped_column(String(64), nullable=True)  # advisory only

    created_at: Mapped[TIMESTAMP] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class ProductModel(Base):
    """One-time product (uniform, enrollment fee, ...)"""
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    academy_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[str] = mapped_column(String(32), nullable=False, default="0", server_default="0")  # decimal string
    location_prices: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)  # {locationId: "price"}

    created_at: Mapped[TIMESTAMP] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


# ============================================================================
# Students
# ============================================================================


class StudentModel(Base):
    """
    Student document. The payment ledger is stored whole in one JSON column,
    so every write goes through a version check (see kivee.application.students.save_ledger).
    """
    __tablename__ = "students"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    academy_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    last_name: Mapped[str] = mapped_column(String(255), nullable=False, default="", server_default="")
    group_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    location_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # {type: tier|trial, id, startDate?, billingPeriod?}
    plan: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    # list of payment entry documents, see kivee.domain.payment_entry
    one_time_products: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    created_at: Mapped[TIMESTAMP] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index('ix_students_academy_location', 'academy_id', 'location_id'),
    )
