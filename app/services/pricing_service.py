"""Order pricing.

Flat-rate model:
- subtotal = sum(unit_price * quantity)
- tax      = subtotal * TAX_RATE, rounded half-up to cents
- shipping = 0 when subtotal >= FREE_SHIPPING_THRESHOLD, else FLAT_SHIPPING_FEE
- total    = subtotal + tax + shipping

Example:
- 2 x 25.99 + 1 x 12.99 -> subtotal 64.97
- tax 5.1976 -> 5.20
- shipping 10.00 (below 100)
- total 80.17
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Tuple

from app.config import settings

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping": self.shipping,
            "total": self.total,
        }


def to_money(value) -> Decimal:
    """Quantize a number to cents."""
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return to_money(Decimal(unit_price) * quantity)


class PricingService:
    """
    Pure price calculator. Has no session; rates default to application settings.
    """

    def __init__(
        self,
        tax_rate: Optional[Decimal] = None,
        free_shipping_threshold: Optional[Decimal] = None,
        shipping_fee: Optional[Decimal] = None,
    ):
        self.tax_rate = Decimal(str(tax_rate if tax_rate is not None else settings.TAX_RATE))
        self.free_shipping_threshold = Decimal(str(
            free_shipping_threshold if free_shipping_threshold is not None
            else settings.FREE_SHIPPING_THRESHOLD
        ))
        self.shipping_fee = Decimal(str(
            shipping_fee if shipping_fee is not None else settings.FLAT_SHIPPING_FEE
        ))

    def shipping_for(self, subtotal: Decimal) -> Decimal:
        if subtotal >= self.free_shipping_threshold:
            return Decimal("0.00")
        return to_money(self.shipping_fee)

    def price(self, line_items: Iterable[Tuple[Decimal, int]]) -> PriceBreakdown:
        """
        Price a list of (unit_price, quantity) pairs.

        Returns:
            PriceBreakdown with total == subtotal + tax + shipping exactly.
        """
        subtotal = sum(
            (line_total(unit_price, quantity) for unit_price, quantity in line_items),
            Decimal("0.00"),
        )
        tax = to_money(subtotal * self.tax_rate)
        shipping = self.shipping_for(subtotal)
        total = subtotal + tax + shipping

        return PriceBreakdown(
            subtotal=to_money(subtotal),
            tax=tax,
            shipping=shipping,
            total=to_money(total),
        )
