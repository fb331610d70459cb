"""
Order types and the per-type policy table.

Every discount, payment and required-field decision is a lookup in
ORDER_TYPE_POLICIES; nothing else in the package compares order type names.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from warung_pos.constants import (
    PAY_FOC,
    PAY_GOFOOD,
    PAY_GRABFOOD,
    PAY_KASBON,
    PAY_SHOPEEFOOD,
)


class OrderTypeKind(str, Enum):
    DINE_IN = "Dine In"
    TAKE_AWAY = "Take Away"
    GRABFOOD = "GrabFood"
    GOFOOD = "GoFood"
    SHOPEEFOOD = "ShopeeFood"
    STAFF = "Staff"
    BOSS = "Boss"
    KASBON = "Kasbon"
    NA = "NA"

    @property
    def label(self) -> str:
        return self.value

    @property
    def policy(self) -> "OrderTypePolicy":
        return ORDER_TYPE_POLICIES[self]

    @classmethod
    def from_name(cls, name: Optional[str]) -> "OrderTypeKind":
        """Map a backend order type name; unknown names become NA."""
        key = (name or "").strip().lower()
        for kind in cls:
            if kind.value.lower() == key:
                return kind
        return cls.NA


@dataclass(frozen=True)
class OrderTypePolicy:
    allows_manual_discount: bool
    forced_payment_type: Optional[str]
    requires_table: bool
    requires_customer_name: bool
    requires_online_code: bool
    amount_paid_editable: bool

    @property
    def payment_locked(self) -> bool:
        return self.forced_payment_type is not None


def _policy(
    manual: bool = False,
    forced: Optional[str] = None,
    table: bool = False,
    customer: bool = True,
    online_code: bool = False,
    paid_editable: bool = False,
) -> OrderTypePolicy:
    return OrderTypePolicy(manual, forced, table, customer, online_code, paid_editable)


ORDER_TYPE_POLICIES: dict[OrderTypeKind, OrderTypePolicy] = {
    OrderTypeKind.DINE_IN:    _policy(manual=True, table=True, customer=False, paid_editable=True),
    OrderTypeKind.TAKE_AWAY:  _policy(manual=True, paid_editable=True),
    OrderTypeKind.GRABFOOD:   _policy(forced=PAY_GRABFOOD, online_code=True),
    OrderTypeKind.GOFOOD:     _policy(forced=PAY_GOFOOD, online_code=True),
    OrderTypeKind.SHOPEEFOOD: _policy(forced=PAY_SHOPEEFOOD, online_code=True),
    OrderTypeKind.STAFF:      _policy(forced=PAY_FOC),
    OrderTypeKind.BOSS:       _policy(forced=PAY_FOC),
    OrderTypeKind.KASBON:     _policy(forced=PAY_KASBON),
    OrderTypeKind.NA:         _policy(manual=True),
}
