"""
Command Line Tests

- Item / quantity argument parsing
- Order entry subcommands through the order service
"""
from types import SimpleNamespace

import pytest

from warung_pos.api.gateways import OrderGateway
from warung_pos.errors import ValidationError
from warung_pos.main import build_parser, cmd_edit_items, cmd_new_order, parse_item, parse_quantity
from warung_pos.services.notifier import RecordingNotifier
from warung_pos.services.order_service import OrderService
from warung_pos.services.receipt_service import ReceiptService


@pytest.fixture
def app_for(fake_api, tmp_path):
    def make(user):
        orders = OrderGateway(fake_api)
        receipts = ReceiptService(tmp_path)
        return SimpleNamespace(
            orders=orders,
            receipts=receipts,
            entry=OrderService(orders, RecordingNotifier(), receipts),
            user=lambda: user,
        )

    return make


class TestArguments:
    def test_item_with_quantity_and_options(self):
        item = parse_item("f1=2:op1, op2")

        assert item.food_id == "f1"
        assert item.quantity == 2
        assert [o.option_id for o in item.options] == ["op1", "op2"]

    def test_item_defaults_to_one(self):
        assert parse_item("f2").to_payload() == {"foodId": "f2", "quantity": 1, "options": []}

    def test_bad_quantity(self):
        with pytest.raises(ValidationError):
            parse_item("f1=two")
        with pytest.raises(ValidationError):
            parse_quantity("i1")

    def test_quantity(self):
        assert parse_quantity("i1=0") == ("i1", 0)


class TestOrderEntryCommands:
    @pytest.mark.asyncio
    async def test_new_order(self, fake_api, app_for, raw_order, waiter, capsys):
        fake_api.on("POST", "/api/orders", {"id": "o9", "orderNumber": "ORD-O9"})
        fake_api.on("GET", "/api/fetchOrder/o9", raw_order(order_id="o9", status="PENDING"))
        args = build_parser().parse_args([
            "new-order", "ot1", "--type", "Dine In", "--table", "t4",
            "--item", "f1=2:op1", "--item", "f2",
        ])

        assert await cmd_new_order(app_for(waiter), args) == 0

        body, _ = fake_api.calls_to("POST", "/api/orders")[0]
        assert body["orderTypeId"] == "ot1"
        assert body["diningTableId"] == "t4"
        assert body["items"] == [
            {"foodId": "f1", "quantity": 2, "options": [{"optionId": "op1", "quantity": 1}]},
            {"foodId": "f2", "quantity": 1, "options": []},
        ]
        assert "Kitchen ticket:" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_new_order_without_items_is_rejected(self, fake_api, app_for, waiter):
        args = build_parser().parse_args(["new-order", "ot1", "--type", "Dine In", "--table", "t4"])

        with pytest.raises(ValidationError):
            await cmd_new_order(app_for(waiter), args)
        assert fake_api.calls == []

    @pytest.mark.asyncio
    async def test_edit_items_cancels_item(self, fake_api, app_for, raw_order, cashier):
        fake_api.on("GET", "/api/fetchOrder/o1", raw_order())
        fake_api.on("PATCH", "/api/orders/o1/items/batch-update", {"message": "ok"})
        args = build_parser().parse_args(["edit-items", "o1", "--cancel", "i1"])

        assert await cmd_edit_items(app_for(cashier), args) == 0

        body, _ = fake_api.calls_to("PATCH", "/api/orders/o1/items/batch-update")[0]
        assert body["items"][0]["id"] == "i1"
        assert body["items"][0]["status"] == "CANCELED"
