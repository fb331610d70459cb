from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from warung_pos.errors import ValidationError
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.utils import round_half_up


@dataclass(frozen=True)
class DiscountDecision:
    amount: int
    editable: bool
    label: str


def discount_label(order_type: OrderTypeKind) -> str:
    if order_type.policy.allows_manual_discount:
        return "Manual Discount (Rp)"
    return f"{order_type.label} Discount (Rp)"


def automatic_discount(basis: int, percentage: Optional[float]) -> int:
    """round(basis x percentage), 0 when the order type carries no percentage."""
    if percentage is None:
        return 0
    return max(0, round_half_up(max(0, basis) * float(percentage)))


def validate_manual_discount(value: int, subtotal: int, tax: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Discount must be a whole amount.", field="discount")
    if value < 0:
        raise ValidationError("Discount cannot be negative.", field="discount")
    if value > subtotal + tax:
        raise ValidationError("Discount cannot exceed subtotal plus tax.", field="discount")
    return value


def decide_discount(
    order_type: OrderTypeKind,
    subtotal: int,
    tax: int,
    percentage: Optional[float] = None,
    manual_value: Optional[int] = None,
    basis: Optional[int] = None,
) -> DiscountDecision:
    """
    Manual types take the operator's value (bounded by subtotal + tax).
    Every other type derives the discount from its percentage and ignores
    `manual_value`. `basis` is the backend's order total; when it is missing
    the locally computed subtotal + tax is used instead.
    """
    label = discount_label(order_type)
    if order_type.policy.allows_manual_discount:
        amount = validate_manual_discount(manual_value or 0, subtotal, tax)
        return DiscountDecision(amount, True, label)

    effective_basis = basis if basis else subtotal + tax
    return DiscountDecision(automatic_discount(effective_basis, percentage), False, label)
