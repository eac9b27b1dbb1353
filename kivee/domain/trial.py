"""
Trial plans: time-boxed, non-recurring introductory offers.

converts_to_tier_id names the tier a trial is meant to roll into after it
ends. It is advisory metadata for staff; nothing converts automatically.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from kivee.domain.product import parse_location_prices


@dataclass(frozen=True)
class Trial:
    id: str
    name: str
    duration_in_days: int
    class_limit: int | None = None
    location_prices: dict[str, Decimal] = field(default_factory=dict)
    converts_to_tier_id: str | None = None

    def end_date(self, start: date) -> date:
        return start + timedelta(days=self.duration_in_days)

    def is_expired(self, start: date, today: date) -> bool:
        return self.end_date(start) < today

    def price_at(self, location_id: str | None) -> Decimal | None:
        if location_id is None:
            return None
        return self.location_prices.get(str(location_id))


def trial_from_db(row) -> Trial:
    return Trial(
        id=row.id,
        name=row.name,
        duration_in_days=row.duration_in_days,
        class_limit=row.class_limit,
        location_prices=parse_location_prices(row.location_prices),
        converts_to_tier_id=row.converts_to_tier_id,
    )
