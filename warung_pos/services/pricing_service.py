"""
Pricing calculator.

Only ACTIVE items count, and within them only ACTIVE options. Amounts are
whole rupiah. Tax is always obtained through a `TaxFunction` so a future
tax rule can be plugged in without touching the callers.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from warung_pos.models.order import Order, OrderItem

TaxFunction = Callable[[Order, int], int]


def calculate_tax(order: Order, subtotal: int) -> int:
    """No tax is charged at the moment."""
    return 0


def item_line_total(item: OrderItem) -> int:
    """Item plus its active options; a canceled item is worth nothing."""
    if not item.is_active:
        return 0
    total = int(item.quantity) * int(item.unit_price)
    for opt in item.active_options():
        total += int(opt.quantity) * int(opt.unit_price)
    return total


def calculate_subtotal(order: Order) -> int:
    return sum(item_line_total(i) for i in order.items)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: int
    tax: int
    discount: int
    total: int
    # True when subtotal + tax - discount went below zero and total was clamped
    underflow: bool = False

    @property
    def gross(self) -> int:
        return self.subtotal + self.tax


def apply_discount(subtotal: int, tax: int, discount: int) -> PriceBreakdown:
    raw_total = subtotal + tax - discount
    if raw_total < 0:
        return PriceBreakdown(subtotal, tax, discount, 0, underflow=True)
    return PriceBreakdown(subtotal, tax, discount, raw_total)


def price_order(order: Order, discount: int = 0, tax_fn: TaxFunction = calculate_tax) -> PriceBreakdown:
    subtotal = calculate_subtotal(order)
    tax = int(tax_fn(order, subtotal))
    return apply_discount(subtotal, tax, int(discount))
