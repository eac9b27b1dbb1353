"""One-time product catalog entry"""
from dataclasses import dataclass, field
from decimal import Decimal

from kivee.utils.money import to_decimal


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal | None = None
    location_prices: dict[str, Decimal] = field(default_factory=dict)

    def price_at(self, location_id: str | None) -> Decimal | None:
        """Location price when one is set (and non-zero), else the base price."""
        if location_id is not None:
            loc_price = self.location_prices.get(str(location_id))
            if loc_price:
                return loc_price
        return self.price


def parse_location_prices(raw) -> dict[str, Decimal]:
    out: dict[str, Decimal] = {}
    if not isinstance(raw, dict):
        return out
    for loc, value in raw.items():
        amount = to_decimal(value)
        if amount is not None:
            out[str(loc)] = amount
    return out


def product_from_db(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        price=to_decimal(row.price),
        location_prices=parse_location_prices(row.location_prices),
    )
