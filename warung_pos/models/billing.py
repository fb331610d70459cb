from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from warung_pos.constants import BILLING_PAID, BILLING_VOID


@dataclass
class Billing:
    billing_id: str
    order_id: str
    order_number: str
    subtotal: int
    tax: int
    discount: int
    total: int
    amount_paid: int
    change_given: int
    payment_type: str
    cashier_id: str = ""
    cashier_name: str = ""
    receipt_number: str = ""
    remark: str = ""
    paid_at: Optional[str] = None
    status: str = BILLING_PAID

    @property
    def is_void(self) -> bool:
        return self.status == BILLING_VOID
