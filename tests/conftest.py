"""
Shared fixtures.

`FakeApi` stands in for `ApiClient`: routes are registered per
(method, path), every call is recorded, and a route can be held on an
asyncio.Event to keep a request in flight.
"""
from __future__ import annotations

import asyncio
import copy
from datetime import date
from typing import Any, Callable, Optional

import pytest

from warung_pos.db.dao import CredentialDAO
from warung_pos.db.database import MEMORY, Database
from warung_pos.errors import TransportError
from warung_pos.models.user import User


class FakeApi:
    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Any] = {}
        self.holds: dict[tuple[str, str], asyncio.Event] = {}
        self.calls: list[tuple[str, str, Optional[dict], Optional[dict]]] = []

    def on(self, method: str, path: str, response: Any) -> None:
        """`response` may be a value, an exception, or a callable(data, params)."""
        self.routes[(method, path)] = response

    def hold(self, method: str, path: str) -> asyncio.Event:
        event = asyncio.Event()
        self.holds[(method, path)] = event
        return event

    def calls_to(self, method: str, path: str) -> list[tuple[Optional[dict], Optional[dict]]]:
        return [(d, p) for m, pth, d, p in self.calls if m == method and pth == path]

    async def request(
        self,
        method: str,
        path: str,
        data: Optional[dict] = None,
        params: Optional[dict] = None,
        auth: bool = True,
    ) -> Any:
        self.calls.append((method, path, copy.deepcopy(data), copy.deepcopy(params)))
        event = self.holds.get((method, path))
        if event is not None:
            await event.wait()
        try:
            response = self.routes[(method, path)]
        except KeyError:
            raise TransportError(f"API Error: 404 - no route for {method} {path}", status_code=404)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(data, params)
        return copy.deepcopy(response)

    async def get(self, path: str, params: Optional[dict] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Optional[dict] = None, auth: bool = True) -> Any:
        return await self.request("POST", path, data=data, auth=auth)

    async def put(self, path: str, data: Optional[dict] = None) -> Any:
        return await self.request("PUT", path, data=data)

    async def patch(self, path: str, data: Optional[dict] = None) -> Any:
        return await self.request("PATCH", path, data=data)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def db():
    database = Database(MEMORY)
    database.connect()
    database.initialize_schema()
    yield database
    database.disconnect()


@pytest.fixture
def credentials(db) -> CredentialDAO:
    return CredentialDAO(db)


# ---- Actors ----

@pytest.fixture
def waiter() -> User:
    return User("w1", "budi", "WAITER", "out1", "Warung Pusat")


@pytest.fixture
def other_waiter() -> User:
    return User("w2", "sari", "WAITER", "out1", "Warung Pusat")


@pytest.fixture
def cashier() -> User:
    return User("c1", "dewi", "CASHIER", "out1", "Warung Pusat")


@pytest.fixture
def admin() -> User:
    return User("a1", "pak_admin", "ADMIN", "out1", "Warung Pusat")


@pytest.fixture
def chef() -> User:
    return User("k1", "joko", "CHEF", "out1", "Warung Pusat")


# ---- Raw backend payloads ----

def _raw_item(item_id: str, name: str, category: str, quantity: int, unit_price: int,
              status: str = "ACTIVE", options: Optional[list] = None) -> dict:
    return {
        "id": item_id,
        "quantity": quantity,
        "unitPrice": unit_price,
        "totalPrice": quantity * unit_price,
        "status": status,
        "food": {"name": name, "foodCategory": {"name": category}},
        "options": options or [],
    }


@pytest.fixture
def raw_item() -> Callable[..., dict]:
    return _raw_item


@pytest.fixture
def raw_order() -> Callable[..., dict]:
    def make(
        order_id: str = "o1",
        status: str = "PREPARED",
        order_type: str = "Dine In",
        waiter_id: str = "w1",
        items: Optional[list] = None,
        total: Optional[int] = None,
        percentage: Optional[float] = None,
        **extra: Any,
    ) -> dict:
        if items is None:
            items = [_raw_item("i1", "Nasi Goreng", "Food", 2, 50_000)]
        subtotal = sum(i["quantity"] * i["unitPrice"] for i in items if i["status"] == "ACTIVE")
        raw = {
            "id": order_id,
            "orderNumber": f"ORD-{order_id.upper()}",
            "status": status,
            "orderType": {"name": order_type},
            "waiterId": waiter_id,
            "waiter": {"id": waiter_id, "username": "budi"},
            "diningTable": {"number": 4} if order_type == "Dine In" else None,
            "customerName": None if order_type == "Dine In" else "Rina",
            "onlineCode": "GF-123" if order_type in ("GrabFood", "GoFood", "ShopeeFood") else None,
            "items": items,
            "orderTypeDiscountPercentage": percentage,
            "subtotal": subtotal,
            "tax": 0,
            "discount": 0,
            "total": subtotal if total is None else total,
            "outlet": {"name": "Warung Pusat"},
        }
        raw.update(extra)
        return raw

    return make


@pytest.fixture
def raw_daily_report() -> Callable[..., dict]:
    def make(
        previous: int = 50_000,
        cash: int = 180_000,
        deposit: int = 0,
        locked: bool = False,
        submitted_by: Optional[str] = None,
        remaining: int = 0,
        adjustment: int = 0,
        **revenue: int,
    ) -> dict:
        by_type = [{"paymentType": "CASH", "Revenue": cash}]
        by_type += [{"paymentType": k.upper(), "Revenue": v} for k, v in revenue.items()]
        return {
            "meta": {"outletName": "Warung Pusat", "generatedAt": "2026-10-17T21:00:00"},
            "summary": {
                "totalRevenueByPaymentType": by_type,
                "TotalRevenue": sum(r["Revenue"] for r in by_type),
                "TotalRevenueExcldCash": sum(r["Revenue"] for r in by_type) - cash,
                "totalDrinkRevenue": 0,
                "paymentRemarks": {},
                "cashReconciliation": {
                    "previousDayBalance": previous,
                    "cashDeposit": deposit,
                    "adjustment": adjustment,
                    "remainingBalance": remaining,
                    "isLocked": locked,
                    "submittedByCashierName": submitted_by,
                },
            },
        }

    return make


@pytest.fixture
def report_date() -> date:
    return date(2026, 10, 17)
