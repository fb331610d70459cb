from __future__ import annotations

from datetime import date
from typing import Any, Optional

from warung_pos.api.client import ApiClient
from warung_pos.constants import (
    BILLING_PAID,
    PLACEHOLDER_CATEGORY,
    PLACEHOLDER_FOOD,
    PLACEHOLDER_OPTION,
    PLACEHOLDER_WAITER,
)
from warung_pos.models.billing import Billing
from warung_pos.models.cash_record import DailyCashRecord, DailyRevenueReport
from warung_pos.models.order import ItemStatus, Order, OrderItem, OrderItemOption, OrderStatus
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.models.user import User
from warung_pos.utils import to_amount


# =============================================================================
# RAW → MODEL MAPPING
# =============================================================================

def _dig(raw: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(raw, dict):
            return None
        raw = raw.get(key)
    return raw


def _item_status(value: Any) -> ItemStatus:
    return ItemStatus.CANCELED if str(value or "").upper() == ItemStatus.CANCELED.value else ItemStatus.ACTIVE


def _order_status(value: Any) -> OrderStatus:
    try:
        return OrderStatus(str(value or "").upper())
    except ValueError:
        return OrderStatus.PENDING


def _optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def map_option(raw: dict) -> OrderItemOption:
    return OrderItemOption(
        str(raw.get("id", "")),
        _dig(raw, "option", "name") or raw.get("name") or PLACEHOLDER_OPTION,
        to_amount(raw.get("quantity")),
        to_amount(raw.get("unitPrice")),
        to_amount(raw.get("totalPrice")),
        _item_status(raw.get("status")),
    )


def map_item(raw: dict) -> OrderItem:
    return OrderItem(
        str(raw.get("id", "")),
        _dig(raw, "food", "name") or PLACEHOLDER_FOOD,
        _dig(raw, "food", "foodCategory", "name") or PLACEHOLDER_CATEGORY,
        to_amount(raw.get("quantity")),
        to_amount(raw.get("unitPrice")),
        to_amount(raw.get("totalPrice")),
        _item_status(raw.get("status")),
        [map_option(o) for o in (raw.get("options") or []) if isinstance(o, dict)],
    )


def map_order(raw: dict) -> Order:
    """Backend order JSON → Order. Missing prices become 0, names placeholders."""
    table = _dig(raw, "diningTable", "number")
    percentage = raw.get("orderTypeDiscountPercentage")
    status = _order_status(raw.get("status"))
    return Order(
        order_id=str(raw.get("id", "")),
        order_number=str(raw.get("orderNumber", "")),
        order_type=OrderTypeKind.from_name(_dig(raw, "orderType", "name")),
        status=status,
        waiter_id=str(raw.get("waiterId") or _dig(raw, "waiter", "id") or ""),
        waiter_name=_dig(raw, "waiter", "username") or PLACEHOLDER_WAITER,
        table_number=str(table) if table is not None else None,
        customer_name=_optional_text(raw.get("customerName")),
        online_code=_optional_text(raw.get("onlineCode")),
        remark=str(raw.get("remark") or ""),
        items=[map_item(i) for i in (raw.get("items") or []) if isinstance(i, dict)],
        order_type_discount_percentage=float(percentage) if percentage is not None else None,
        subtotal=to_amount(raw.get("subtotal")),
        tax=to_amount(raw.get("tax")),
        discount=to_amount(raw.get("discount")),
        total=to_amount(raw.get("total")),
        outlet_name=_dig(raw, "outlet", "name") or "",
        billed=status == OrderStatus.PAID or bool(raw.get("billing")),
    )


def map_billing(raw: dict) -> Billing:
    return Billing(
        billing_id=str(raw.get("id", "")),
        order_id=str(raw.get("orderId") or _dig(raw, "order", "id") or ""),
        order_number=str(raw.get("orderNumber") or _dig(raw, "order", "orderNumber") or ""),
        subtotal=to_amount(raw.get("subtotal")),
        tax=to_amount(raw.get("tax")),
        discount=to_amount(raw.get("discount")),
        total=to_amount(raw.get("total")),
        amount_paid=to_amount(raw.get("amountPaid")),
        change_given=to_amount(raw.get("changeGiven")),
        payment_type=str(raw.get("paymentType") or ""),
        cashier_id=str(raw.get("cashierId") or _dig(raw, "cashier", "id") or ""),
        cashier_name=_dig(raw, "cashier", "username") or "",
        receipt_number=str(raw.get("receiptNumber") or ""),
        remark=str(raw.get("remark") or ""),
        paid_at=_optional_text(raw.get("paidAt")),
        status=str(raw.get("status") or BILLING_PAID).upper(),
    )


def map_daily_report(raw: dict, outlet_id: str, report_date: date) -> DailyRevenueReport:
    summary = raw.get("summary") or {}
    recon = summary.get("cashReconciliation") or {}
    revenue = {
        str(r.get("paymentType", "")).upper(): to_amount(r.get("Revenue"))
        for r in (summary.get("totalRevenueByPaymentType") or [])
        if isinstance(r, dict)
    }
    deposit = to_amount(recon.get("cashDeposit"))
    record = DailyCashRecord(
        outlet_id=outlet_id,
        report_date=report_date,
        previous_day_balance=to_amount(recon.get("previousDayBalance")),
        # A zero deposit means "not entered yet"
        cash_deposit=deposit if deposit > 0 else None,
        adjustment=to_amount(recon.get("adjustment")),
        remaining_balance=to_amount(recon.get("remainingBalance")),
        remarks={str(k).upper(): str(v) for k, v in (summary.get("paymentRemarks") or {}).items()},
        is_locked=bool(recon.get("isLocked") or False),
        submitted_by_cashier_name=_optional_text(recon.get("submittedByCashierName")),
    )
    meta = raw.get("meta") or {}
    return DailyRevenueReport(
        outlet_id=outlet_id,
        report_date=report_date,
        outlet_name=str(meta.get("outletName") or ""),
        generated_at=str(meta.get("generatedAt") or ""),
        revenue_by_payment_type=revenue,
        total_revenue=to_amount(summary.get("TotalRevenue")),
        total_revenue_excl_cash=to_amount(summary.get("TotalRevenueExcldCash")),
        total_drink_revenue=to_amount(summary.get("totalDrinkRevenue")),
        reconciliation=record,
    )


def map_user(raw: dict) -> User:
    outlet = raw.get("outlet")
    outlet_name = outlet.get("name", "") if isinstance(outlet, dict) else (outlet or "")
    return User(
        str(raw.get("id", "")),
        str(raw.get("username", "")),
        str(raw.get("role", "")).upper(),
        str(raw.get("outletId") or ""),
        str(outlet_name),
        [str(o) for o in (raw.get("outletAccess") or [])],
    )


# =============================================================================
# GATEWAYS
# =============================================================================

class AuthGateway:
    """Login endpoint (the only unauthenticated call)."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def login(self, username: str, password: str, outlet_id: str) -> tuple[str, User]:
        data = await self.api.post(
            "/api/login",
            {"username": username, "password": password, "outletId": outlet_id},
            auth=False,
        )
        return str(data.get("token") or ""), map_user(data.get("user") or {})


class OrderGateway:
    """Order snapshot, item and status endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def fetch_order(self, order_id: str) -> Order:
        return map_order(await self.api.get(f"/api/fetchOrder/{order_id}"))

    async def list_active_orders(self, outlet_id: str) -> list[Order]:
        rows = await self.api.get("/api/status", params={"outletId": outlet_id})
        return [map_order(r) for r in (rows or []) if isinstance(r, dict)]

    async def create_order(self, payload: dict[str, Any]) -> dict:
        return await self.api.post("/api/orders", payload)

    async def add_items(self, order_id: str, items: list[dict[str, Any]]) -> dict:
        return await self.api.post(f"/api/orders/{order_id}/add-item", {"items": items})

    async def batch_update_items(self, order_id: str, items: list[dict[str, Any]]) -> dict:
        return await self.api.patch(f"/api/orders/{order_id}/items/batch-update", {"items": items})

    async def update_status(self, order_id: str, status: str) -> dict:
        return await self.api.patch("/api/UpdateStatus", {"orderId": order_id, "status": status})


class BillingGateway:
    """Billing create/update and void endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    @staticmethod
    def _body(order_id: str, payment_type: str, amount_paid: int, discount: int, remark: str) -> dict:
        return {
            "orderId": order_id,
            "paymentType": payment_type,
            "amountPaid": int(amount_paid),
            "discount": int(discount),
            "remark": remark,
        }

    async def create_billing(self, order_id: str, payment_type: str, amount_paid: int, discount: int, remark: str) -> Billing:
        data = await self.api.post("/api/billing", self._body(order_id, payment_type, amount_paid, discount, remark))
        return map_billing(data)

    async def update_billing(self, order_id: str, payment_type: str, amount_paid: int, discount: int, remark: str) -> Billing:
        data = await self.api.put("/api/updateBilling", self._body(order_id, payment_type, amount_paid, discount, remark))
        return map_billing(data)

    async def fetch_billing(self, outlet_id: str, receipt_number: str) -> Billing:
        data = await self.api.get(
            "/api/fetchBilling", params={"outletId": outlet_id, "receiptNumber": receipt_number}
        )
        return map_billing(data)

    async def cancel_billing(self, outlet_id: str, receipt_number: str, order_number: str) -> str:
        data = await self.api.post(
            "/api/cancelBilling",
            {"outletId": outlet_id, "receiptNumber": receipt_number, "orderNumber": order_number},
        )
        return str(data.get("message") or "Billing cancelled")


class ReportGateway:
    """Daily revenue and cash reconciliation endpoints."""

    def __init__(self, api: ApiClient):
        self.api = api

    async def daily_revenue(self, outlet_id: str, report_date: date) -> DailyRevenueReport:
        data = await self.api.get(
            "/api/reports/daily-revenue",
            params={"outletId": outlet_id, "date": report_date.isoformat()},
        )
        return map_daily_report(data, outlet_id, report_date)

    async def submit_cash_reconciliation(
        self,
        outlet_id: str,
        report_date: date,
        cash_deposit: int,
        adjustment: int,
        remarks: dict[str, str],
        submitted_by: str,
    ) -> str:
        data = await self.api.post(
            "/api/reports/submit-daily-cash-reconciliation",
            {
                "outletId": outlet_id,
                "date": report_date.isoformat(),
                "cashDeposit": int(cash_deposit),
                "adjustment": int(adjustment),
                "remarks": dict(remarks),
                "submittedByCashierName": submitted_by,
            },
        )
        return str(data.get("message") or "Submission successful!")

    async def unlock_cash_reconciliation(self, outlet_id: str, report_date: date) -> str:
        data = await self.api.post(
            "/api/reports/unlock-cash-reconciliation",
            {"outletId": outlet_id, "date": report_date.isoformat()},
        )
        return str(data.get("message") or "Reconciliation unlocked successfully!")
