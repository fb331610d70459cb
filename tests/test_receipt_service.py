"""
Receipt & Kitchen Ticket Tests

- Thermal receipt text
- Kitchen ticket grouping
- PDF / ticket files
"""
from pathlib import Path

from warung_pos.api.gateways import map_billing, map_order
from warung_pos.services.receipt_service import (
    ReceiptService,
    format_kitchen_ticket,
    format_receipt_text,
)


def _billing(**overrides):
    raw = {
        "id": "b1",
        "orderId": "o1",
        "subtotal": 100_000,
        "discount": 10_000,
        "total": 90_000,
        "amountPaid": 100_000,
        "changeGiven": 10_000,
        "paymentType": "CASH",
        "receiptNumber": "R-0001",
        "cashier": {"username": "dewi"},
    }
    raw.update(overrides)
    return map_billing(raw)


def _mixed_items(raw_item):
    return [
        raw_item("i1", "Nasi Goreng", "Food", 2, 25_000),
        raw_item("i2", "Es Teh", "Drink", 1, 8_000),
        raw_item("i3", "Sate Ayam", "Food", 1, 30_000, status="CANCELED"),
        raw_item("i4", "Kopi", "Drink", 0, 10_000),
    ]


class TestReceiptText:
    def test_lines_fit_the_printer(self, raw_order):
        text = format_receipt_text(map_order(raw_order()), _billing())

        assert all(len(line) <= 32 for line in text.splitlines())

    def test_contents(self, raw_order, raw_item):
        order = map_order(raw_order(items=_mixed_items(raw_item)))

        text = format_receipt_text(order, _billing())

        assert "Table: 4" in text
        assert "Customer Name" not in text
        assert "Nasi Goreng" in text
        assert "Sate Ayam" not in text
        assert "Kopi" not in text
        assert "Rp 90.000" in text
        assert "Receipt #: R-0001" in text

    def test_delivery_order_shows_code_and_customer(self, raw_order):
        order = map_order(raw_order(order_type="GrabFood"))

        text = format_receipt_text(order, _billing(paymentType="GRABFOOD"))

        assert "Online Code: GF-123" in text
        assert "Customer Name: Rina" in text
        assert "Table:" not in text


class TestKitchenTicket:
    def test_grouped_by_category_without_canceled(self, raw_order, raw_item):
        order = map_order(raw_order(items=_mixed_items(raw_item)))

        ticket = format_kitchen_ticket(order)

        assert ticket.index("[Food]") < ticket.index("2 x Nasi Goreng") < ticket.index("[Drink]")
        assert "1 x Es Teh" in ticket
        assert "Sate Ayam" not in ticket


class TestReceiptFiles:
    def test_pdf_receipt(self, tmp_path, raw_order):
        service = ReceiptService(tmp_path)

        service.export_receipt(map_order(raw_order()), _billing())

        assert service.last_receipt.endswith(".pdf")
        assert Path(service.last_receipt).read_bytes().startswith(b"%PDF")

    def test_kitchen_ticket_file(self, tmp_path, raw_order):
        service = ReceiptService(tmp_path)

        service.export_kitchen_ticket(map_order(raw_order()))

        assert "Nasi Goreng" in open(service.last_ticket, encoding="utf-8").read()
