"""
Reconcile the payment ledgers of every student of an academy

Usage:
    python reconcile_ledgers.py <academy_id> [YYYY-MM-DD]
"""
import logging
import sys
from datetime import date

from kivee.application.students import ReconcileAcademyLedgersUseCase
from kivee.infrastructure.db.session import get_db

logging.basicConfig(level=logging.INFO)

if len(sys.argv) < 2:
    print(__doc__)
    sys.exit(1)

academy_id = sys.argv[1]
today = date.fromisoformat(sys.argv[2]) if len(sys.argv) > 2 else date.today()

db = next(get_db())

try:
    print(f"Reconciling ledgers of academy {academy_id} as of {today}...")
    stats = ReconcileAcademyLedgersUseCase(db).execute(academy_id, today)
    print(f"✓ Students: {stats['students']}")
    print(f"✓ Updated:  {stats['updated']} ({stats['cycles']} new cycles)")
    if stats["failed"]:
        print(f"✗ Failed:   {stats['failed']} (see log)")

except Exception as e:
    print(f"✗ ERROR: {e}")
    import traceback
    traceback.print_exc()

finally:
    db.close()
