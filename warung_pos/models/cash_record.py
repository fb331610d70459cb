from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

from warung_pos.constants import DEBIT_PAYMENT_TYPES, PAY_CASH


class LedgerState(str, Enum):
    OPEN = "OPEN"
    LOCKED = "LOCKED"


@dataclass
class DailyCashRecord:
    outlet_id: str
    report_date: date
    previous_day_balance: int = 0
    cash_deposit: Optional[int] = None
    adjustment: int = 0
    remaining_balance: int = 0
    remarks: dict[str, str] = field(default_factory=dict)
    is_locked: bool = False
    submitted_by_cashier_name: Optional[str] = None

    @property
    def state(self) -> LedgerState:
        return LedgerState.LOCKED if self.is_locked else LedgerState.OPEN


@dataclass
class DailyRevenueReport:
    outlet_id: str
    report_date: date
    outlet_name: str
    generated_at: str
    revenue_by_payment_type: dict[str, int]
    total_revenue: int
    total_revenue_excl_cash: int
    total_drink_revenue: int
    reconciliation: DailyCashRecord

    def revenue_for(self, payment_type: str) -> int:
        return int(self.revenue_by_payment_type.get(payment_type.upper(), 0))

    @property
    def cash_revenue(self) -> int:
        return self.revenue_for(PAY_CASH)

    @property
    def total_debit(self) -> int:
        return sum(self.revenue_for(t) for t in DEBIT_PAYMENT_TYPES)
