"""
Seed a demo academy with tiers, products, a trial and a few students.
Run:  python seed_test_data.py
"""
from datetime import date

# ── bootstrap ────────────────────────────────────────────────────
from kivee.infrastructure.db.session import get_session_factory
from kivee.infrastructure.db.models import AcademyModel

from kivee.application.catalog import (
    CreateAcademyUseCase, CreateProductUseCase, CreateTrialUseCase,
)
from kivee.application.tiers import CreateTierUseCase
from kivee.application.students import (
    CreateStudentUseCase, AssignPlanUseCase, AddProductChargeUseCase,
    MarkPaymentPaidUseCase, ReconcileAcademyLedgersUseCase,
)

db = get_session_factory()()
ACADEMY_NAME = "Demo Football Academy"

existing = db.query(AcademyModel).filter_by(name=ACADEMY_NAME).first()
if existing:
    print(f"Academy already seeded (id={existing.id})")
    db.close()
    raise SystemExit(0)

# ═══════════════════════════════════════════════════════════════
# Catalog
# ═══════════════════════════════════════════════════════════════
academy_id = CreateAcademyUseCase(db).execute(ACADEMY_NAME, currency="USD", student_label_singular="Player")

monthly = CreateTierUseCase(db).execute(
    academy_id=academy_id,
    name="Monthly Plan",
    classes_per_week=2,
    class_duration=60,
    default_price_variants=[{"billingPeriod": "monthly", "price": "50.00"}],
)
flexible = CreateTierUseCase(db).execute(
    academy_id=academy_id,
    name="Competitive",
    classes_per_week=4,
    class_duration=90,
    different_prices_by_location=True,
    price_variants_by_location={
        "north": [
            {"billingPeriod": "monthly", "price": "80.00"},
            {"billingPeriod": "annual", "price": "800.00"},
        ],
        "south": [{"billingPeriod": "semi-annual", "price": "420.00"}],
    },
)
summer = CreateTierUseCase(db).execute(
    academy_id=academy_id,
    name="Summer Camp",
    default_price_variants=[{
        "billingPeriod": "custom-term", "price": "300.00", "customTermName": "Summer 2026",
        "termStartDate": "2026-06-15", "termEndDate": "2026-08-15",
    }],
)

uniform = CreateProductUseCase(db).execute(
    academy_id, "Uniform", "35.00", location_prices={"south": "30.00"},
)
CreateTrialUseCase(db).execute(
    academy_id, "Two free weeks", duration_in_days=14, class_limit=4, converts_to_tier_id=monthly,
)

# ═══════════════════════════════════════════════════════════════
# Students
# ═══════════════════════════════════════════════════════════════
ana = CreateStudentUseCase(db).execute(academy_id, "Ana", "Lopez", location_id="north")
AssignPlanUseCase(db).execute(academy_id, ana, "tier", flexible, date(2026, 1, 10), billing_period="monthly")
AddProductChargeUseCase(db).execute(academy_id, ana, uniform)

leo = CreateStudentUseCase(db).execute(academy_id, "Leo", "Martin", location_id="south")
AssignPlanUseCase(db).execute(academy_id, leo, "tier", monthly, date(2026, 3, 31))
MarkPaymentPaidUseCase(db).execute(academy_id, leo, 0, date(2026, 3, 31), "cash")

mia = CreateStudentUseCase(db).execute(academy_id, "Mia", "Costa", location_id="south")
AssignPlanUseCase(db).execute(academy_id, mia, "tier", summer, date(2026, 6, 15))

stats = ReconcileAcademyLedgersUseCase(db).execute(academy_id)
print(f"Seeded academy {academy_id}: {stats['students']} students, {stats['cycles']} cycles appended")
db.close()
