"""
Daily cash reconciliation ledger.

One entry per (outlet, date). An entry is OPEN until a cashier submits the
cash deposit, then LOCKED until an admin unlocks it. The lock flag is only
ever taken from the backend: after submit and unlock the report is fetched
again instead of flipping the flag locally.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from warung_pos.api.gateways import ReportGateway
from warung_pos.constants import (
    ERROR_DEPOSIT_REQUIRED,
    ERROR_REPORT_LOCKED,
    P_ADJUST_RECON,
    P_RECONCILE,
    P_UNLOCK_RECON,
    PAYMENT_TYPES,
)
from warung_pos.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateRequestError,
    PosError,
    ValidationError,
)
from warung_pos.models.cash_record import DailyRevenueReport, LedgerState
from warung_pos.models.user import User
from warung_pos.services.auth_service import require_permission, role_has_permission
from warung_pos.services.notifier import TOPIC_RECONCILIATION, Notifier
from warung_pos.validators import is_amount, nonempty

logger = logging.getLogger(__name__)


@dataclass
class LedgerEntry:
    report: DailyRevenueReport
    cash_deposit: Optional[int] = None
    adjustment: int = 0
    remarks: dict[str, str] = field(default_factory=dict)

    @property
    def is_locked(self) -> bool:
        return self.report.reconciliation.is_locked

    @classmethod
    def from_report(cls, report: DailyRevenueReport) -> "LedgerEntry":
        rec = report.reconciliation
        return cls(report, rec.cash_deposit, rec.adjustment, dict(rec.remarks))


class ReconciliationLedger:
    def __init__(
        self,
        outlet_id: str,
        gateway: ReportGateway,
        actor: User,
        notifier: Optional[Notifier] = None,
    ):
        self.outlet_id = outlet_id
        self.gateway = gateway
        self.actor = actor
        self.notifier = notifier or Notifier()
        self.report_date: Optional[date] = None
        self._entries: dict[tuple[str, date], LedgerEntry] = {}
        self._in_flight: set[tuple[str, date]] = set()

    def _key(self) -> tuple[str, date]:
        if self.report_date is None:
            raise ValidationError("Please select a report date.", field="date")
        return (self.outlet_id, self.report_date)

    @property
    def entry(self) -> LedgerEntry:
        try:
            return self._entries[self._key()]
        except KeyError:
            raise ValidationError("The daily report has not been loaded yet.", field="date") from None

    @property
    def report(self) -> DailyRevenueReport:
        return self.entry.report

    @property
    def state(self) -> LedgerState:
        return self.report.reconciliation.state

    @property
    def is_locked(self) -> bool:
        return self.entry.is_locked

    # ---- Loading ----
    async def load(self, report_date: Optional[date] = None) -> DailyRevenueReport:
        if report_date is not None:
            self.report_date = report_date
        key = self._key()
        if not nonempty(self.outlet_id):
            raise ValidationError("Outlet is required.", field="outlet_id")
        return await self._fetch(key)

    async def _fetch(self, key: tuple[str, date]) -> DailyRevenueReport:
        report = await self.gateway.daily_revenue(*key)
        self._entries[key] = LedgerEntry.from_report(report)
        return report

    async def set_date(self, report_date: date) -> DailyRevenueReport:
        """The date selector stays usable while the entry is locked."""
        return await self.load(report_date)

    # ---- Inputs ----
    def _require_open(self) -> LedgerEntry:
        entry = self.entry
        if entry.is_locked:
            raise AuthorizationError(ERROR_REPORT_LOCKED)
        return entry

    def set_cash_deposit(self, amount: Optional[int]) -> None:
        entry = self._require_open()
        if amount is not None and not is_amount(amount):
            raise ValidationError("Cash deposit must be a whole, non-negative amount.", field="cash_deposit")
        entry.cash_deposit = amount

    def set_adjustment(self, amount: int) -> None:
        require_permission(self.actor, P_ADJUST_RECON, "Only admins can enter an adjustment.")
        entry = self._require_open()
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError("Adjustment must be a whole amount.", field="adjustment")
        entry.adjustment = amount

    def set_remark(self, payment_type: str, text: str) -> None:
        entry = self._require_open()
        payment_type = (payment_type or "").upper()
        if payment_type not in PAYMENT_TYPES:
            raise ValidationError(f"Unknown payment type: {payment_type}", field="remarks")
        entry.remarks[payment_type] = text or ""

    # ---- Derived values ----
    @property
    def counts_adjustment(self) -> bool:
        return role_has_permission(self.actor, P_ADJUST_RECON)

    @property
    def remaining_balance(self) -> int:
        entry = self.entry
        rec = entry.report.reconciliation
        adjustment = entry.adjustment if self.counts_adjustment else 0
        return rec.previous_day_balance + entry.report.cash_revenue + adjustment - (entry.cash_deposit or 0)

    @property
    def displayed_cashier_name(self) -> str:
        rec = self.report.reconciliation
        if rec.is_locked and rec.submitted_by_cashier_name:
            return rec.submitted_by_cashier_name
        return "-"

    @property
    def total_debit(self) -> int:
        return self.report.total_debit

    # ---- Lock protocol ----
    def is_in_flight(self, report_date: Optional[date] = None) -> bool:
        return (self.outlet_id, report_date or self.report_date) in self._in_flight

    async def submit(self) -> str:
        require_permission(self.actor, P_RECONCILE, "You are not allowed to submit daily cash.")
        key = self._key()
        entry = self.entry
        outlet_id, report_date = key
        if entry.is_locked:
            logger.warning(f"Submit rejected for {outlet_id} {report_date}: report is locked")
            raise ConflictError(ERROR_REPORT_LOCKED)
        if entry.cash_deposit is None:
            raise ValidationError(ERROR_DEPOSIT_REQUIRED, field="cash_deposit")
        if key in self._in_flight:
            raise DuplicateRequestError("Daily cash is already being submitted.")

        adjustment = entry.adjustment if self.counts_adjustment else 0
        self._in_flight.add(key)
        try:
            message = await self.gateway.submit_cash_reconciliation(
                outlet_id,
                report_date,
                entry.cash_deposit,
                adjustment,
                dict(entry.remarks),
                self.actor.username,
            )
        except PosError as e:
            logger.warning(f"Cash reconciliation submit failed for {outlet_id} {report_date}: {e.message}")
            raise
        finally:
            self._in_flight.discard(key)

        logger.info(
            f"Cash reconciliation submitted for {outlet_id} {report_date} "
            f"by {self.actor.username}: deposit {entry.cash_deposit}"
        )
        self.notifier.refresh(TOPIC_RECONCILIATION, f"{outlet_id}:{report_date.isoformat()}")
        await self._fetch(key)
        return message

    async def unlock(self) -> str:
        if not role_has_permission(self.actor, P_UNLOCK_RECON):
            raise AuthorizationError("Only admins can unlock a submitted report.")
        key = self._key()
        outlet_id, report_date = key
        if key in self._in_flight:
            raise DuplicateRequestError("Daily cash is already being processed.")

        self._in_flight.add(key)
        try:
            message = await self.gateway.unlock_cash_reconciliation(outlet_id, report_date)
        except PosError as e:
            logger.warning(f"Unlock failed for {outlet_id} {report_date}: {e.message}")
            raise
        finally:
            self._in_flight.discard(key)

        logger.info(f"Cash reconciliation unlocked for {outlet_id} {report_date} by {self.actor.username}")
        self.notifier.refresh(TOPIC_RECONCILIATION, f"{outlet_id}:{report_date.isoformat()}")
        await self._fetch(key)
        return message
