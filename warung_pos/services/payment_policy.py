from __future__ import annotations

from dataclasses import dataclass

from warung_pos.constants import OPEN_PAYMENT_TYPES, PAY_CASH, PAYMENT_LABELS, PAYMENT_TYPES
from warung_pos.errors import AuthorizationError, ValidationError
from warung_pos.models.order_type import OrderTypeKind


@dataclass(frozen=True)
class PaymentChoice:
    value: str
    label: str
    selectable: bool


def default_payment_type(order_type: OrderTypeKind) -> str:
    return order_type.policy.forced_payment_type or PAY_CASH


def is_payment_locked(order_type: OrderTypeKind) -> bool:
    return order_type.policy.payment_locked


def payment_choices(order_type: OrderTypeKind) -> list[PaymentChoice]:
    """
    Every payment type is listed for display; only the open ones are
    selectable, and none are when the order type forces its own.
    """
    locked = is_payment_locked(order_type)
    return [
        PaymentChoice(p, PAYMENT_LABELS[p], (not locked) and p in OPEN_PAYMENT_TYPES)
        for p in PAYMENT_TYPES
    ]


def check_payment_type(order_type: OrderTypeKind, payment_type: str) -> str:
    """Return the payment type if the operator may use it for this order type."""
    payment_type = (payment_type or "").upper()
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"Unknown payment type: {payment_type}", field="payment_type")

    forced = order_type.policy.forced_payment_type
    if forced is not None:
        if payment_type != forced:
            raise AuthorizationError(
                f"{order_type.label} orders are always paid with {forced}.", field="payment_type"
            )
        return payment_type

    if payment_type not in OPEN_PAYMENT_TYPES:
        raise ValidationError(
            f"{PAYMENT_LABELS[payment_type]} is not available for {order_type.label} orders.",
            field="payment_type",
        )
    return payment_type


def amount_paid_editable(order_type: OrderTypeKind) -> bool:
    return order_type.policy.amount_paid_editable
