from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys
from datetime import date
from typing import Optional

from warung_pos.api.client import ApiClient
from warung_pos.api.gateways import BillingGateway, OrderGateway, ReportGateway
from warung_pos.config import APP_NAME, APP_VERSION, LOG_FORMAT, LOG_LEVEL
from warung_pos.constants import ERROR_NO_TOKEN
from warung_pos.db.dao import CredentialDAO
from warung_pos.db.database import Database
from warung_pos.errors import PosError, SessionExpiredError, ValidationError
from warung_pos.models.order import Order
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.models.user import User
from warung_pos.services.auth_service import AuthService
from warung_pos.services.billing_service import BillingService
from warung_pos.services.export_service import ExportService
from warung_pos.services.notifier import LoggingNotifier
from warung_pos.services.order_service import (
    DraftItem,
    DraftOption,
    OrderDraft,
    OrderService,
    cancel_item,
    set_item_quantity,
)
from warung_pos.services.order_status_service import OrderStatusService
from warung_pos.services.receipt_service import ReceiptService
from warung_pos.services.reconciliation_service import ReconciliationLedger
from warung_pos.utils import money

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL).upper(), format=LOG_FORMAT)


class App:
    """Wires the local credential store, the API client and the services."""

    def __init__(self, db: Database):
        self.db = db
        self.credentials = CredentialDAO(db)
        self.api = ApiClient(self.credentials)
        self.notifier = LoggingNotifier()
        self.auth = AuthService(self.api, self.credentials)
        self.orders = OrderGateway(self.api)
        self.status = OrderStatusService(self.orders, notifier=self.notifier)
        self.receipts = ReceiptService()
        self.entry = OrderService(self.orders, self.notifier, self.receipts)
        self.billing = BillingService(BillingGateway(self.api), self.notifier, self.receipts)
        self.reports = ReportGateway(self.api)

    def user(self) -> User:
        user = self.auth.get_current_user()
        if not user:
            raise SessionExpiredError(ERROR_NO_TOKEN)
        return user

    def outlet(self, args: argparse.Namespace) -> str:
        return getattr(args, "outlet", None) or self.user().outlet_id

    def ledger(self, args: argparse.Namespace) -> ReconciliationLedger:
        return ReconciliationLedger(self.outlet(args), self.reports, self.user(), self.notifier)

    def close(self) -> None:
        self.api.close()
        self.db.disconnect()


def init_db(db: Database) -> None:
    db.connect()
    db.initialize_schema()


def _print_order(order: Order) -> None:
    print(f"{order.order_number:<12} {order.status.value:<10} {order.display_title:<30} {money(order.total)}")


def _confirm(question: str) -> bool:
    return input(f"{question} [y/N] ").strip().lower() in ("y", "yes")


def _int_arg(text: str, what: str) -> int:
    try:
        return int(text)
    except ValueError:
        raise ValidationError(f"{what} must be a whole number: {text!r}") from None


def parse_item(text: str) -> DraftItem:
    """FOOD_ID[=QTY][:OPTION_ID,OPTION_ID...]"""
    head, _, opts = text.partition(":")
    food_id, _, qty = head.partition("=")
    options = [DraftOption(o.strip()) for o in opts.split(",") if o.strip()]
    return DraftItem(food_id.strip(), _int_arg(qty, "Quantity") if qty else 1, options)


def parse_quantity(text: str) -> tuple[str, int]:
    item_id, sep, qty = text.partition("=")
    if not sep:
        raise ValidationError(f"Expected ITEM_ID=QTY, got {text!r}")
    return item_id.strip(), _int_arg(qty, "Quantity")


# ---- Commands ----

async def cmd_login(app: App, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    if not await app.auth.login(args.username, password, args.outlet or ""):
        print(f"Login failed: {app.auth.get_last_error()}")
        return 1
    user = app.user()
    print(f"Logged in as {user.username} ({user.role}) at {user.outlet_name or user.outlet_id}")
    return 0


async def cmd_logout(app: App, args: argparse.Namespace) -> int:
    app.auth.logout()
    print("Logged out.")
    return 0


async def cmd_orders(app: App, args: argparse.Namespace) -> int:
    orders = await app.status.list_active_orders(app.outlet(args))
    if not orders:
        print("No active orders.")
    for order in orders:
        _print_order(order)
    return 0


async def cmd_new_order(app: App, args: argparse.Namespace) -> int:
    draft = OrderDraft(
        order_type=OrderTypeKind.from_name(args.type),
        order_type_id=args.order_type_id,
        items=[parse_item(i) for i in args.item or []],
        dining_table_id=args.table,
        customer_name=args.customer,
        online_code=args.code,
        remark=args.remark,
    )
    order = await app.entry.create_order(draft, app.user())
    _print_order(order)
    if app.receipts.last_ticket:
        print(f"Kitchen ticket: {app.receipts.last_ticket}")
    return 0


async def cmd_add_items(app: App, args: argparse.Namespace) -> int:
    order = await app.orders.fetch_order(args.order_id)
    fresh = await app.entry.add_items(order, [parse_item(i) for i in args.item], app.user())
    _print_order(fresh)
    return 0


async def cmd_edit_items(app: App, args: argparse.Namespace) -> int:
    user = app.user()
    order = await app.orders.fetch_order(args.order_id)
    staged = app.entry.begin_edit(order, user)
    edited = staged.stage()
    for item_id in args.cancel or []:
        cancel_item(edited, item_id)
    for text in args.qty or []:
        set_item_quantity(edited, *parse_quantity(text))
    fresh = await app.entry.save_item_edits(staged, user)
    _print_order(fresh)
    return 0


async def cmd_status(app: App, args: argparse.Namespace) -> int:
    user = app.user()
    order = await app.orders.fetch_order(args.order_id)
    proposal = app.status.propose(order, args.target.upper(), user)
    if proposal.requires_confirmation:
        if not (args.yes or _confirm(f"Cancel order {order.order_number}?")):
            print("Nothing changed.")
            return 1
        proposal.confirm()
    fresh = await app.status.apply(proposal)
    _print_order(fresh)
    return 0


async def cmd_bill(app: App, args: argparse.Namespace) -> int:
    user = app.user()
    order = await app.orders.fetch_order(args.order_id)
    session = app.billing.start_session(order)
    if args.payment:
        session.choose_payment_type(args.payment)
    if args.discount is not None:
        session.set_discount(args.discount)
    if args.paid is not None:
        session.set_amount_paid(args.paid)
    if args.remark:
        session.set_remark(args.remark)

    quote = session.quote()
    print(f"Subtotal: {money(quote.subtotal)}")
    print(f"{quote.discount_label}: {money(quote.discount)}")
    print(f"Total:    {money(quote.total)}")
    billing = await app.billing.commit_billing(order, session.to_input(), user)
    print(f"Paid:     {money(billing.amount_paid)} ({billing.payment_type})")
    print(f"Change:   {money(billing.change_given)}")
    if app.receipts.last_receipt:
        print(f"Receipt:  {app.receipts.last_receipt}")
    return 0


async def cmd_void(app: App, args: argparse.Namespace) -> int:
    user = app.user()
    outlet = app.outlet(args)
    billing = await app.billing.fetch_billing(outlet, args.receipt_number)
    print(f"Receipt {billing.receipt_number}: order {billing.order_number}, {money(billing.total)}")
    if not (args.yes or _confirm("Cancel this billing?")):
        print("Nothing changed.")
        return 1
    print(await app.billing.void_billing(billing, outlet, user))
    return 0


async def cmd_report(app: App, args: argparse.Namespace) -> int:
    ledger = app.ledger(args)
    report = await ledger.load(args.date)
    for payment_type, revenue in sorted(report.revenue_by_payment_type.items()):
        print(f"{payment_type:<15} {money(revenue)}")
    print(f"{'Total':<15} {money(report.total_revenue)}")
    print(f"{'Debit':<15} {money(ledger.total_debit)}")
    print(f"{'Remaining':<15} {money(ledger.remaining_balance)}")
    print(f"{'Status':<15} {ledger.state.value} (cashier: {ledger.displayed_cashier_name})")
    return 0


async def cmd_submit_cash(app: App, args: argparse.Namespace) -> int:
    ledger = app.ledger(args)
    await ledger.load(args.date)
    ledger.set_cash_deposit(args.deposit)
    if args.adjustment is not None:
        ledger.set_adjustment(args.adjustment)
    for item in args.remark or []:
        payment_type, _, text = item.partition("=")
        ledger.set_remark(payment_type, text)
    print(f"Remaining balance: {money(ledger.remaining_balance)}")
    print(await ledger.submit())
    return 0


async def cmd_unlock(app: App, args: argparse.Namespace) -> int:
    ledger = app.ledger(args)
    await ledger.load(args.date)
    print(await ledger.unlock())
    return 0


async def cmd_export_report(app: App, args: argparse.Namespace) -> int:
    ledger = app.ledger(args)
    report = await ledger.load(args.date)
    exporter = ExportService()
    if args.format == "csv":
        path = exporter.export_daily_report_csv(report, args.out)
    else:
        path = exporter.export_daily_report_xlsx(report, args.out)
    print(f"Report saved to: {path}")
    return 0


COMMANDS = {
    "login": cmd_login,
    "logout": cmd_logout,
    "orders": cmd_orders,
    "new-order": cmd_new_order,
    "add-items": cmd_add_items,
    "edit-items": cmd_edit_items,
    "status": cmd_status,
    "bill": cmd_bill,
    "void": cmd_void,
    "report": cmd_report,
    "submit-cash": cmd_submit_cash,
    "unlock": cmd_unlock,
    "export-report": cmd_export_report,
}


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="warung-pos", description=f"{APP_NAME} v{APP_VERSION}")
    ap.add_argument("--log-level", default=None, help=f"Logging level (default: {LOG_LEVEL})")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="Log in and store the session token")
    p.add_argument("username")
    p.add_argument("--password", default=None, help="Prompted when omitted")
    p.add_argument("--outlet", default=None)

    sub.add_parser("logout", help="Forget the stored session")

    p = sub.add_parser("orders", help="List active orders")
    p.add_argument("--outlet", default=None)

    item_help = "FOOD_ID[=QTY][:OPTION_ID,...] (repeatable)"
    p = sub.add_parser("new-order", help="Create an order and print its kitchen ticket")
    p.add_argument("order_type_id")
    p.add_argument("--type", required=True, help="Dine In, Take Away, GrabFood, GoFood, ShopeeFood, Staff, Boss, Kasbon")
    p.add_argument("--item", action="append", help=item_help)
    p.add_argument("--table", default=None, help="Dining table id (Dine In)")
    p.add_argument("--customer", default=None)
    p.add_argument("--code", default=None, help="Online order code (delivery types)")
    p.add_argument("--remark", default="")

    p = sub.add_parser("add-items", help="Add items to an existing order")
    p.add_argument("order_id")
    p.add_argument("--item", action="append", required=True, help=item_help)

    p = sub.add_parser("edit-items", help="Cancel items or change quantities")
    p.add_argument("order_id")
    p.add_argument("--cancel", action="append", metavar="ITEM_ID")
    p.add_argument("--qty", action="append", metavar="ITEM_ID=QTY")

    p = sub.add_parser("status", help="Change the status of an order")
    p.add_argument("order_id")
    p.add_argument("target", help="PENDING, PREPARED, SERVED, COMPLETED or CANCELED")
    p.add_argument("--yes", action="store_true", help="Confirm a cancellation without asking")

    p = sub.add_parser("bill", help="Bill an order (updates the billing when one exists)")
    p.add_argument("order_id")
    p.add_argument("--payment", default=None, help="CASH, QRIS or BANK_TRANSFER")
    p.add_argument("--paid", type=int, default=None, help="Amount paid (Dine In / Take Away)")
    p.add_argument("--discount", type=int, default=None, help="Manual discount in rupiah")
    p.add_argument("--remark", default="")

    p = sub.add_parser("void", help="Cancel a billing by receipt number")
    p.add_argument("receipt_number")
    p.add_argument("--outlet", default=None)
    p.add_argument("--yes", action="store_true")

    for name, text in (
        ("report", "Show the daily revenue report"),
        ("submit-cash", "Submit the daily cash reconciliation"),
        ("unlock", "Unlock a submitted reconciliation (admin)"),
        ("export-report", "Export the daily revenue report"),
    ):
        p = sub.add_parser(name, help=text)
        p.add_argument("--date", type=date.fromisoformat, default=date.today(), help="YYYY-MM-DD (default: today)")
        p.add_argument("--outlet", default=None)
        if name == "submit-cash":
            p.add_argument("--deposit", type=int, required=True)
            p.add_argument("--adjustment", type=int, default=None, help="Admin only")
            p.add_argument("--remark", action="append", metavar="TYPE=TEXT")
        if name == "export-report":
            p.add_argument("--format", choices=("xlsx", "csv"), default="xlsx")
            p.add_argument("--out", default=None)
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    db = Database()
    init_db(db)
    app = App(db)
    try:
        return asyncio.run(COMMANDS[args.command](app, args))
    except PosError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    finally:
        app.close()


if __name__ == "__main__":
    sys.exit(main())
