"""
Billing Tests

- Billing session quotes (discount, payment, amount paid)
- Commit validation, create vs update, change calculation
- In-flight guard and side effects
- Billing void
"""
import asyncio
from unittest.mock import MagicMock

import pytest

from warung_pos.api.gateways import BillingGateway, map_billing, map_order
from warung_pos.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateRequestError,
    TransportError,
    ValidationError,
)
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.services.billing_service import BillingInput, BillingService, BillingSession
from warung_pos.services.notifier import TOPIC_BILLING, TOPIC_ORDERS, Exporter, RecordingNotifier

CREATE = ("POST", "/api/billing")
UPDATE = ("PUT", "/api/updateBilling")


def _billing_echo(data, params):
    """Backend answer for create/update: echoes the body as a billing record."""
    return {
        "id": "b1",
        "orderId": data["orderId"],
        "orderNumber": "ORD-O1",
        "subtotal": 100_000,
        "tax": 0,
        "discount": data["discount"],
        "total": 100_000 - data["discount"],
        "amountPaid": data["amountPaid"],
        "changeGiven": data["amountPaid"] - (100_000 - data["discount"]),
        "paymentType": data["paymentType"],
        "receiptNumber": "R-0001",
        "remark": data["remark"],
        "cashier": {"id": "c1", "username": "dewi"},
        "status": "PAID",
    }


def _served(raw_order, **kwargs):
    return map_order(raw_order(status="SERVED", **kwargs))


@pytest.fixture
def service(fake_api):
    fake_api.on(*CREATE, _billing_echo)
    fake_api.on(*UPDATE, _billing_echo)
    return BillingService(BillingGateway(fake_api), RecordingNotifier(), MagicMock(spec=Exporter))


class TestBillingSession:
    def test_dine_in_quote(self, raw_order):
        session = BillingSession(map_order(raw_order()))
        session.set_discount(10_000)
        session.set_amount_paid(100_000)

        quote = session.quote()

        assert quote.subtotal == 100_000
        assert quote.total == 90_000
        assert quote.change == 10_000
        assert quote.discount_editable
        assert quote.payment_type == "CASH"
        assert not quote.payment_locked

    def test_amount_paid_follows_total_until_set(self, raw_order):
        session = BillingSession(map_order(raw_order()))
        session.set_discount(20_000)

        assert session.quote().amount_paid == 80_000
        assert session.quote().change == 0

    def test_grabfood_quote(self, raw_order, raw_item):
        items = [raw_item("i1", "Ayam Geprek", "Food", 2, 25_000)]
        session = BillingSession(map_order(raw_order(order_type="GrabFood", items=items, total=50_000, percentage=0.10)))

        quote = session.quote()

        assert quote.discount == 5_000
        assert quote.total == 45_000
        assert quote.payment_type == "GRABFOOD"
        assert quote.payment_locked
        assert not any(c.selectable for c in quote.payment_choices)
        assert quote.amount_paid == 45_000
        assert not quote.amount_paid_editable

    def test_locked_fields_cannot_be_edited(self, raw_order):
        session = BillingSession(map_order(raw_order(order_type="GoFood", percentage=0.2)))

        with pytest.raises(AuthorizationError):
            session.set_discount(1_000)
        with pytest.raises(AuthorizationError):
            session.set_amount_paid(1_000)
        with pytest.raises(AuthorizationError):
            session.choose_payment_type("CASH")

    def test_changing_order_type_resets_payment_and_discount(self, raw_order):
        session = BillingSession(map_order(raw_order(percentage=0.10)))
        session.choose_payment_type("QRIS")
        session.set_discount(5_000)

        session.set_order_type(OrderTypeKind.SHOPEEFOOD)
        quote = session.quote()

        assert quote.payment_type == "SHOPEEFOOD"
        assert quote.discount == 10_000

        session.set_order_type(OrderTypeKind.TAKE_AWAY)
        assert session.quote().payment_type == "CASH"
        assert session.quote().discount == 0

    def test_discount_bound(self, raw_order):
        session = BillingSession(map_order(raw_order()))

        with pytest.raises(ValidationError):
            session.set_discount(100_001)

    def test_stored_discount_is_clamped_after_items_were_canceled(self, raw_order, raw_item):
        items = [
            raw_item("i1", "Nasi Goreng", "Food", 1, 20_000),
            raw_item("i2", "Sate Ayam", "Food", 1, 40_000, status="CANCELED"),
        ]
        session = BillingSession(map_order(raw_order(items=items, discount=30_000)))

        quote = session.quote()

        assert quote.discount == 20_000
        assert quote.total == 0
        assert not quote.underflow


class TestCommitBilling:
    @pytest.mark.asyncio
    async def test_dine_in_create(self, fake_api, service, raw_order, cashier):
        order = map_order(raw_order(status="SERVED"))
        session = service.start_session(order)
        session.set_discount(10_000)
        session.set_amount_paid(100_000)

        billing = await service.commit_billing(order, session.to_input(), cashier)

        assert fake_api.calls_to(*CREATE) == [(
            {"orderId": "o1", "paymentType": "CASH", "amountPaid": 100_000, "discount": 10_000, "remark": ""},
            None,
        )]
        assert billing.total == 90_000
        assert billing.change_given == 10_000
        assert service.notifier.signals == [(TOPIC_BILLING, "o1"), (TOPIC_ORDERS, "o1")]
        service.exporter.export_receipt.assert_called_once_with(order, billing)

    @pytest.mark.asyncio
    async def test_billed_order_is_updated(self, fake_api, service, raw_order, cashier):
        order = map_order(raw_order(status="PAID"))

        await service.commit_billing(order, BillingInput("QRIS", 100_000), cashier)

        assert fake_api.calls_to(*CREATE) == []
        assert len(fake_api.calls_to(*UPDATE)) == 1

    @pytest.mark.asyncio
    async def test_underpayment_is_rejected(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order)

        with pytest.raises(ValidationError) as exc:
            await service.commit_billing(order, BillingInput("CASH", 99_999), cashier)

        assert exc.value.field == "amount_paid"
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_forced_payment_override_is_rejected(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="Kasbon")

        with pytest.raises(AuthorizationError):
            await service.commit_billing(order, BillingInput("CASH", 100_000), cashier)
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_order_type_cannot_be_swapped_at_billing(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="GrabFood", percentage=0.10)
        operator_input = BillingInput("CASH", 100_000, discount=20_000, order_type=OrderTypeKind.DINE_IN)

        with pytest.raises(AuthorizationError) as exc:
            await service.commit_billing(order, operator_input, cashier)

        assert exc.value.field == "order_type"
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_session_with_changed_order_type_is_not_committed(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="GoFood", percentage=0.2)
        session = service.start_session(order)
        session.set_order_type(OrderTypeKind.DINE_IN)
        session.choose_payment_type("CASH")

        with pytest.raises(AuthorizationError):
            await service.commit_billing(order, session.to_input(), cashier)
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_own_order_type_is_accepted(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="GrabFood", percentage=0.10)

        billing = await service.commit_billing(order, service.start_session(order).to_input(), cashier)

        assert billing.payment_type == "GRABFOOD"
        body, _ = fake_api.calls_to(*CREATE)[0]
        assert body["discount"] == 10_000

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["PENDING", "PREPARED"])
    async def test_unserved_order_cannot_be_billed(self, fake_api, service, raw_order, cashier, status):
        order = map_order(raw_order(status=status))

        with pytest.raises(ConflictError):
            await service.commit_billing(order, BillingInput("CASH", 100_000), cashier)
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_completed_order_can_be_billed(self, fake_api, service, raw_order, cashier):
        order = map_order(raw_order(status="COMPLETED"))

        await service.commit_billing(order, BillingInput("CASH", 100_000), cashier)

        assert len(fake_api.calls_to(*CREATE)) == 1

    @pytest.mark.asyncio
    async def test_non_editable_amount_paid_mirrors_total(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="Staff", percentage=0.5)

        await service.commit_billing(order, BillingInput("FOC", 1, discount=50_000), cashier)

        body, _ = fake_api.calls_to(*CREATE)[0]
        assert body["amountPaid"] == 50_000
        assert body["discount"] == 50_000

    @pytest.mark.asyncio
    async def test_tampered_automatic_discount_is_rejected(self, fake_api, service, raw_order, cashier):
        order = _served(raw_order, order_type="GrabFood", percentage=0.10)

        with pytest.raises(AuthorizationError):
            await service.commit_billing(order, BillingInput("GRABFOOD", 0, discount=50_000), cashier)

    @pytest.mark.asyncio
    async def test_no_active_items(self, fake_api, service, raw_order, raw_item, cashier):
        items = [raw_item("i1", "Nasi Goreng", "Food", 1, 10_000, status="CANCELED")]
        order = _served(raw_order, items=items)

        with pytest.raises(ValidationError):
            await service.commit_billing(order, BillingInput("CASH", 0), cashier)

    @pytest.mark.asyncio
    async def test_canceled_order(self, fake_api, service, raw_order, cashier):
        with pytest.raises(ConflictError):
            await service.commit_billing(map_order(raw_order(status="CANCELED")), BillingInput("CASH", 100_000), cashier)

    @pytest.mark.asyncio
    async def test_waiter_cannot_bill(self, fake_api, service, raw_order, waiter):
        with pytest.raises(AuthorizationError):
            await service.commit_billing(_served(raw_order), BillingInput("CASH", 100_000), waiter)

    @pytest.mark.asyncio
    async def test_duplicate_commit_is_rejected(self, fake_api, service, raw_order, cashier):
        gate = fake_api.hold(*CREATE)
        order = _served(raw_order)

        first = asyncio.create_task(service.commit_billing(order, BillingInput("CASH", 100_000), cashier))
        await asyncio.sleep(0)

        with pytest.raises(DuplicateRequestError):
            await service.commit_billing(order, BillingInput("CASH", 100_000), cashier)

        gate.set()
        await first
        assert len(fake_api.calls_to(*CREATE)) == 1
        assert not service.is_in_flight("o1")

    @pytest.mark.asyncio
    async def test_backend_failure_releases_guard(self, fake_api, service, raw_order, cashier):
        fake_api.on(*CREATE, TransportError("API Error: 500 - boom", status_code=500))
        order = _served(raw_order)

        with pytest.raises(TransportError):
            await service.commit_billing(order, BillingInput("CASH", 100_000), cashier)

        assert not service.is_in_flight("o1")
        service.exporter.export_receipt.assert_not_called()

    @pytest.mark.asyncio
    async def test_bare_acknowledgement_is_completed_locally(self, fake_api, service, raw_order, cashier):
        fake_api.on(*CREATE, {"message": "Billing created"})
        order = _served(raw_order)

        billing = await service.commit_billing(order, BillingInput("CASH", 150_000), cashier)

        assert billing.total == 100_000
        assert billing.change_given == 50_000
        assert billing.cashier_name == "dewi"


class TestVoidBilling:
    def _billing(self, status="PAID"):
        return map_billing({
            "id": "b1", "orderId": "o1", "orderNumber": "ORD-O1", "total": 90_000,
            "receiptNumber": "R-0001", "status": status,
        })

    @pytest.mark.asyncio
    async def test_fetch_by_receipt_number(self, fake_api, service):
        fake_api.on("GET", "/api/fetchBilling", {"id": "b1", "receiptNumber": "R-0001", "total": 90_000})

        billing = await service.fetch_billing("out1", " R-0001 ")

        assert billing.receipt_number == "R-0001"
        assert fake_api.calls_to("GET", "/api/fetchBilling") == [
            (None, {"outletId": "out1", "receiptNumber": "R-0001"})
        ]

    @pytest.mark.asyncio
    async def test_empty_receipt_number(self, fake_api, service):
        with pytest.raises(ValidationError):
            await service.fetch_billing("out1", "")

    @pytest.mark.asyncio
    async def test_cashier_voids(self, fake_api, service, cashier):
        fake_api.on("POST", "/api/cancelBilling", {"message": "Billing cancelled"})

        message = await service.void_billing(self._billing(), "out1", cashier)

        assert message == "Billing cancelled"
        assert fake_api.calls_to("POST", "/api/cancelBilling") == [
            ({"outletId": "out1", "receiptNumber": "R-0001", "orderNumber": "ORD-O1"}, None)
        ]

    @pytest.mark.asyncio
    async def test_already_void(self, fake_api, service, admin):
        with pytest.raises(ConflictError):
            await service.void_billing(self._billing(status="VOID"), "out1", admin)

    @pytest.mark.asyncio
    async def test_waiter_cannot_void(self, fake_api, service, waiter):
        with pytest.raises(AuthorizationError):
            await service.void_billing(self._billing(), "out1", waiter)
