from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from warung_pos.config import OUTLET_DISPLAY_NAME, RECEIPT_WIDTH, RECEIPTS_DIR
from warung_pos.constants import PAY_CASH
from warung_pos.models.billing import Billing
from warung_pos.models.order import Order, OrderItem
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.services.notifier import Exporter
from warung_pos.services.pricing_service import item_line_total
from warung_pos.utils import money, truncate_text

logger = logging.getLogger(__name__)


# ---------------- Thermal text ----------------

def _rule(width: int) -> str:
    return "-" * width


def _row(left: str, right: str, width: int) -> str:
    space = width - len(right) - 1
    left = truncate_text(left, max(1, space))
    return f"{left}{' ' * (width - len(left) - len(right))}{right}"


def receipt_items(order: Order) -> list[OrderItem]:
    """Printable lines: ACTIVE items with something left to charge."""
    return [i for i in order.active_items() if i.quantity > 0]


def format_receipt_text(order: Order, billing: Billing, width: int = RECEIPT_WIDTH) -> str:
    rule = _rule(width)
    lines = [
        rule,
        "RECEIPT".center(width).rstrip(),
        rule,
        f"Outlet: {order.outlet_name or OUTLET_DISPLAY_NAME}",
        f"Cashier: {billing.cashier_name or '-'}",
        f"Receipt #: {billing.receipt_number or '-'}",
    ]
    kind = order.order_type
    if kind.policy.requires_online_code and order.online_code:
        lines.append(f"Online Code: {order.online_code}")
    if kind != OrderTypeKind.DINE_IN and order.customer_name:
        lines.append(f"Customer Name: {order.customer_name}")
    if kind == OrderTypeKind.DINE_IN and order.table_number:
        lines.append(f"Table: {order.table_number}")
    if billing.paid_at:
        lines.append(f"Paid At: {billing.paid_at}")
    lines.append(rule)

    for item in receipt_items(order):
        lines.append(truncate_text(item.food_name, width))
        lines.append(_row(f"x{item.quantity}", money(item_line_total(item)), width))
        for opt in item.active_options():
            if opt.quantity > 0:
                lines.append(truncate_text(f"  + {opt.name} x{opt.quantity}", width))

    lines.append(rule)
    if billing.discount > 0:
        lines.append(_row("Subtotal:", money(billing.subtotal), width))
        lines.append(_row("Discount:", f"-{money(billing.discount)}", width))
    if billing.tax > 0:
        lines.append(_row("Tax:", money(billing.tax), width))
    lines.append(_row("Total:", money(billing.total), width))
    lines.append(rule)
    lines.append(_row("Paid:", money(billing.amount_paid), width))
    lines.append(_row("Change:", money(billing.change_given), width))
    lines.append(f"Payment Type: {billing.payment_type}")
    if billing.remark:
        lines.append(f"Remark: {billing.remark}")
    lines += [rule, "THANK YOU!".center(width).rstrip(), rule, "", ""]
    return "\n".join(lines) + "\n"


def format_kitchen_ticket(order: Order, width: int = RECEIPT_WIDTH) -> str:
    """ACTIVE items grouped by category; canceled items and options are left out."""
    rule = _rule(width)
    lines = [rule, f"ORDER {order.order_number}", order.display_title]
    if order.remark:
        lines.append(f"Note: {order.remark}")
    lines.append(rule)

    groups: dict[str, list[OrderItem]] = {}
    for item in order.active_items():
        if item.quantity > 0:
            groups.setdefault(item.category_name, []).append(item)

    for category, items in groups.items():
        lines.append(f"[{category}]")
        for item in items:
            lines.append(truncate_text(f"{item.quantity} x {item.food_name}", width))
            for opt in item.active_options():
                if opt.quantity > 0:
                    lines.append(truncate_text(f"   + {opt.name} x{opt.quantity}", width))
    lines += [rule, ""]
    return "\n".join(lines)


# ---------------- Files ----------------

class ReceiptService(Exporter):
    """Writes 80mm-style receipt PDFs (reportlab) and kitchen ticket text files."""

    def __init__(self, out_dir: Optional[Path | str] = None):
        self.out_dir = Path(out_dir) if out_dir else Path(RECEIPTS_DIR)
        self.last_receipt: Optional[str] = None
        self.last_ticket: Optional[str] = None

    def _target(self, prefix: str, key: str, ext: str) -> Path:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.out_dir / f"{prefix}_{key}_{timestamp}.{ext}"

    def export_receipt(self, order: Order, billing: Billing) -> None:
        self.last_receipt = self.generate_receipt(order, billing)
        logger.info(f"Receipt written to {self.last_receipt}")

    def export_kitchen_ticket(self, order: Order) -> None:
        path = self._target("ticket", order.order_number or order.order_id, "txt")
        path.write_text(format_kitchen_ticket(order), encoding="utf-8")
        self.last_ticket = str(path)
        logger.info(f"Kitchen ticket written to {self.last_ticket}")

    def generate_receipt(self, order: Order, billing: Billing) -> str:
        """
        Build a PDF receipt and return its file path.
        Raises RuntimeError if reportlab is not installed.
        """
        try:
            from reportlab.lib.units import mm
            from reportlab.pdfgen import canvas as rl_canvas
        except ImportError:
            raise RuntimeError(
                "reportlab is not installed.\n\n"
                "Run:  pip install reportlab"
            )

        FONT_REG = "Helvetica"
        FONT_BOLD = "Helvetica-Bold"

        key = billing.receipt_number or order.order_number or order.order_id
        file_path = str(self._target("receipt", key, "pdf"))
        items = receipt_items(order)

        # ── Page geometry (80 mm paper width, dynamic height) ─────────────────
        PAGE_W = 80 * mm
        MARGIN = 6 * mm
        base_lines = 30 + sum(2 + len(i.active_options()) for i in items)
        PAGE_H = max(160 * mm, base_lines * 5.5 * mm + 40 * mm)

        c = rl_canvas.Canvas(file_path, pagesize=(PAGE_W, PAGE_H))
        y = PAGE_H - 10 * mm

        NL = 5.2 * mm   # normal line height
        SNL = 4.4 * mm  # small line height

        def move(mm_val: float = 1.5):
            nonlocal y
            y -= mm_val * mm

        def draw_text(text: str, font=FONT_REG, size: int = 8, align: str = "left"):
            nonlocal y
            c.setFont(font, size)
            if align == "center":
                c.drawCentredString(PAGE_W / 2, y, str(text))
            else:
                avail = int((PAGE_W - 2 * MARGIN) / (size * 0.52))
                c.drawString(MARGIN, y, truncate_text(text, avail))
            y -= NL if size >= 8 else SNL

        def draw_hr(thickness: float = 0.4, gap_after: float = 6.0):
            nonlocal y
            c.setLineWidth(thickness)
            c.line(MARGIN, y, PAGE_W - MARGIN, y)
            y -= gap_after * mm

        def draw_row(left: str, right: str, size: int = 8, bold: bool = False):
            nonlocal y
            font = FONT_BOLD if bold else FONT_REG
            c.setFont(font, size)
            avail_l = int((PAGE_W - 2 * MARGIN) * 0.55 / (size * 0.52))
            c.drawString(MARGIN, y, truncate_text(left, avail_l))
            c.drawRightString(PAGE_W - MARGIN, y, str(right))
            y -= NL if size >= 8 else SNL

        # ── Header ────────────────────────────────────────────────────────────
        move(0.5)
        draw_text((order.outlet_name or OUTLET_DISPLAY_NAME).upper(), font=FONT_BOLD, size=11, align="center")
        draw_text("Receipt", size=8, align="center")
        move(3)
        draw_hr(1.0)

        # ── Order metadata ────────────────────────────────────────────────────
        draw_row("Receipt #:", billing.receipt_number or "-")
        draw_row("Order #:", order.order_number or "-")
        draw_row("Cashier:", billing.cashier_name or "-")
        kind = order.order_type
        if kind == OrderTypeKind.DINE_IN and order.table_number:
            draw_row("Table:", order.table_number)
        if kind != OrderTypeKind.DINE_IN and order.customer_name:
            draw_row("Customer:", order.customer_name)
        if kind.policy.requires_online_code and order.online_code:
            draw_row("Online Code:", order.online_code)
        draw_row("Type:", kind.label)
        if billing.paid_at:
            draw_row("Paid At:", billing.paid_at[:19])
        move(3)
        draw_hr()

        # ── Items ─────────────────────────────────────────────────────────────
        draw_text("ITEMS", font=FONT_BOLD, size=8)
        move(1)
        for item in items:
            draw_text(item.food_name, size=8)
            draw_row(f"  {item.quantity} x {money(item.unit_price)}", money(item_line_total(item)), size=7)
            for opt in item.active_options():
                if opt.quantity > 0:
                    draw_row(f"    + {opt.name} x{opt.quantity}", money(opt.quantity * opt.unit_price), size=7)
            move(0.5)
        move(2)
        draw_hr()

        # ── Totals ────────────────────────────────────────────────────────────
        if billing.discount > 0:
            draw_row("Subtotal:", money(billing.subtotal))
            draw_row("Discount:", f"-{money(billing.discount)}")
        if billing.tax > 0:
            draw_row("Tax:", money(billing.tax))
        move(1)
        draw_row("TOTAL:", money(billing.total), size=10, bold=True)
        move(3)
        draw_hr()

        draw_row("Amount Paid:", money(billing.amount_paid))
        if billing.payment_type == PAY_CASH:
            draw_row("Change:", money(billing.change_given))
        draw_row("Payment:", billing.payment_type)
        if billing.remark:
            draw_row("Remark:", billing.remark)
        move(4)
        draw_hr(1.0)

        # ── Footer ────────────────────────────────────────────────────────────
        draw_text(f"Printed: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}", size=7, align="center")
        draw_text("Thank you!", font=FONT_BOLD, size=8, align="center")
        move(4)

        c.save()
        return file_path
