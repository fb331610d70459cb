"""
Billing: the operator's form state and the commit/void operations.

`BillingSession` is pure and holds what the cashier is typing. `quote()`
always recomputes from the order, so a change of order type or percentage
is reflected immediately. `BillingService.commit_billing` re-validates the
submitted input against the order before anything is sent.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from warung_pos.api.gateways import BillingGateway
from warung_pos.constants import P_BILL, P_VOID_BILLING
from warung_pos.errors import (
    AuthorizationError,
    ConflictError,
    DuplicateRequestError,
    PosError,
    ValidationError,
)
from warung_pos.models.billing import Billing
from warung_pos.models.order import Order, OrderStatus
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.models.user import User
from warung_pos.services.auth_service import require_permission
from warung_pos.services.discount_policy import decide_discount, validate_manual_discount
from warung_pos.services.notifier import TOPIC_BILLING, TOPIC_ORDERS, Exporter, Notifier
from warung_pos.services.payment_policy import (
    PaymentChoice,
    amount_paid_editable,
    check_payment_type,
    default_payment_type,
    is_payment_locked,
    payment_choices,
)
from warung_pos.services.pricing_service import (
    TaxFunction,
    apply_discount,
    calculate_subtotal,
    calculate_tax,
)
from warung_pos.validators import is_amount, nonempty

logger = logging.getLogger(__name__)

# COMPLETED only occurs under the extended lifecycle profile
BILLABLE_STATUSES = (OrderStatus.SERVED, OrderStatus.COMPLETED)


@dataclass
class BillingInput:
    payment_type: str
    amount_paid: int
    discount: int = 0
    remark: str = ""
    # Must be None or the order's own type; the backend bills by the stored type
    order_type: Optional[OrderTypeKind] = None


@dataclass(frozen=True)
class BillingQuote:
    order_type: OrderTypeKind
    subtotal: int
    tax: int
    discount: int
    total: int
    underflow: bool
    discount_editable: bool
    discount_label: str
    payment_type: str
    payment_locked: bool
    amount_paid: int
    amount_paid_editable: bool
    change: int
    payment_choices: list[PaymentChoice] = field(default_factory=list)


class BillingSession:
    def __init__(self, order: Order, tax_fn: TaxFunction = calculate_tax):
        self.order = order
        self.tax_fn = tax_fn
        self.order_type = order.order_type
        self.percentage = order.order_type_discount_percentage
        self.payment_type = default_payment_type(self.order_type)
        self.remark = ""
        self._manual_discount = 0
        if self.order_type.policy.allows_manual_discount:
            subtotal, tax = self._gross()
            self._manual_discount = min(max(order.discount, 0), subtotal + tax)
        # None while the amount paid simply follows the total
        self._amount_paid: Optional[int] = None

    def _gross(self) -> tuple[int, int]:
        subtotal = calculate_subtotal(self.order)
        return subtotal, int(self.tax_fn(self.order, subtotal))

    def set_order_type(self, order_type: OrderTypeKind) -> None:
        self.order_type = order_type
        self.payment_type = default_payment_type(order_type)
        self._manual_discount = 0
        self._amount_paid = None

    def set_percentage(self, percentage: Optional[float]) -> None:
        self.percentage = percentage

    def set_discount(self, value: int) -> None:
        if not self.order_type.policy.allows_manual_discount:
            raise AuthorizationError(
                f"Discount is fixed for {self.order_type.label} orders.", field="discount"
            )
        subtotal, tax = self._gross()
        self._manual_discount = validate_manual_discount(value, subtotal, tax)

    def choose_payment_type(self, payment_type: str) -> None:
        self.payment_type = check_payment_type(self.order_type, payment_type)

    def set_amount_paid(self, value: int) -> None:
        if not amount_paid_editable(self.order_type):
            raise AuthorizationError(
                f"Amount paid follows the total for {self.order_type.label} orders.", field="amount_paid"
            )
        if not is_amount(value):
            raise ValidationError("Amount paid must be a whole, non-negative amount.", field="amount_paid")
        self._amount_paid = value

    def set_remark(self, remark: str) -> None:
        self.remark = remark or ""

    def quote(self) -> BillingQuote:
        subtotal, tax = self._gross()
        decision = decide_discount(
            self.order_type,
            subtotal,
            tax,
            percentage=self.percentage,
            manual_value=self._manual_discount,
            basis=self.order.total,
        )
        breakdown = apply_discount(subtotal, tax, decision.amount)
        editable = amount_paid_editable(self.order_type)
        paid = self._amount_paid if editable and self._amount_paid is not None else breakdown.total
        return BillingQuote(
            order_type=self.order_type,
            subtotal=breakdown.subtotal,
            tax=breakdown.tax,
            discount=breakdown.discount,
            total=breakdown.total,
            underflow=breakdown.underflow,
            discount_editable=decision.editable,
            discount_label=decision.label,
            payment_type=self.payment_type,
            payment_locked=is_payment_locked(self.order_type),
            amount_paid=paid,
            amount_paid_editable=editable,
            change=paid - breakdown.total,
            payment_choices=payment_choices(self.order_type),
        )

    def to_input(self) -> BillingInput:
        q = self.quote()
        return BillingInput(
            payment_type=q.payment_type,
            amount_paid=q.amount_paid,
            discount=q.discount,
            remark=self.remark,
            order_type=self.order_type,
        )


class BillingService:
    def __init__(
        self,
        gateway: BillingGateway,
        notifier: Optional[Notifier] = None,
        exporter: Optional[Exporter] = None,
        tax_fn: TaxFunction = calculate_tax,
    ):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.exporter = exporter or Exporter()
        self.tax_fn = tax_fn
        self._in_flight: set[str] = set()

    def is_in_flight(self, order_id: str) -> bool:
        return order_id in self._in_flight

    def start_session(self, order: Order) -> BillingSession:
        return BillingSession(order, self.tax_fn)

    # ---- Commit ----
    async def commit_billing(self, order: Order, operator_input: BillingInput, cashier: User) -> Billing:
        require_permission(cashier, P_BILL, "You are not allowed to bill orders.")
        if order.is_canceled:
            raise ConflictError(f"Order {order.order_number} is canceled.")
        if not order.billed and order.status not in BILLABLE_STATUSES:
            raise ConflictError(f"Order {order.order_number} must be served before billing.")
        if not order.active_items():
            raise ValidationError("Order has no active items to bill.", field="items")

        kind = order.order_type
        if operator_input.order_type is not None and operator_input.order_type != kind:
            raise AuthorizationError(
                f"Order {order.order_number} is billed as {kind.label}, not {operator_input.order_type.label}.",
                field="order_type",
            )
        payment_type = check_payment_type(kind, operator_input.payment_type)

        subtotal = calculate_subtotal(order)
        tax = int(self.tax_fn(order, subtotal))
        decision = decide_discount(
            kind,
            subtotal,
            tax,
            percentage=order.order_type_discount_percentage,
            manual_value=operator_input.discount,
            basis=order.total,
        )
        if not decision.editable and operator_input.discount not in (0, decision.amount):
            raise AuthorizationError(f"Discount is fixed for {kind.label} orders.", field="discount")

        breakdown = apply_discount(subtotal, tax, decision.amount)
        if breakdown.underflow:
            raise ValidationError("Discount exceeds the order total.", field="discount")

        if amount_paid_editable(kind):
            amount_paid = operator_input.amount_paid
            if not is_amount(amount_paid):
                raise ValidationError("Amount paid must be a whole, non-negative amount.", field="amount_paid")
            if amount_paid < breakdown.total:
                raise ValidationError("Amount paid is less than the total.", field="amount_paid")
        else:
            amount_paid = breakdown.total
        change = amount_paid - breakdown.total

        oid = order.order_id
        if oid in self._in_flight:
            logger.info(f"Ignoring billing for order {order.order_number}: request in flight")
            raise DuplicateRequestError("This order is already being billed.")

        send = self.gateway.update_billing if order.billed else self.gateway.create_billing
        self._in_flight.add(oid)
        try:
            billing = await send(oid, payment_type, amount_paid, breakdown.discount, operator_input.remark)
        except PosError as e:
            logger.warning(f"Billing failed for order {order.order_number}: {e.message}")
            raise
        finally:
            self._in_flight.discard(oid)

        if not billing.billing_id:
            # Server answered with a bare acknowledgement
            billing = Billing(
                billing_id="",
                order_id=oid,
                order_number=order.order_number,
                subtotal=breakdown.subtotal,
                tax=breakdown.tax,
                discount=breakdown.discount,
                total=breakdown.total,
                amount_paid=amount_paid,
                change_given=change,
                payment_type=payment_type,
                cashier_id=cashier.user_id,
                cashier_name=cashier.username,
                remark=operator_input.remark,
            )

        action = "updated" if order.billed else "created"
        logger.info(
            f"Billing {action} for order {order.order_number}: total {breakdown.total}, "
            f"paid {amount_paid} via {payment_type}"
        )
        self.notifier.refresh(TOPIC_BILLING, oid)
        self.notifier.refresh(TOPIC_ORDERS, oid)

        try:
            self.exporter.export_receipt(order, billing)
        except OSError as e:
            logger.error(f"Receipt export failed for order {order.order_number}: {e}")
        return billing

    # ---- Void ----
    async def fetch_billing(self, outlet_id: str, receipt_number: str) -> Billing:
        if not nonempty(receipt_number):
            raise ValidationError("Please enter a receipt number.", field="receipt_number")
        return await self.gateway.fetch_billing(outlet_id, receipt_number.strip())

    async def void_billing(self, billing: Billing, outlet_id: str, actor: User) -> str:
        require_permission(actor, P_VOID_BILLING, "Only cashiers and admins can cancel billings.")
        if billing.is_void:
            raise ConflictError(f"Receipt {billing.receipt_number} is already void.")

        key = billing.order_id or billing.receipt_number
        if key in self._in_flight:
            raise DuplicateRequestError("This billing is already being processed.")

        self._in_flight.add(key)
        try:
            message = await self.gateway.cancel_billing(outlet_id, billing.receipt_number, billing.order_number)
        except PosError as e:
            logger.warning(f"Cancel billing {billing.receipt_number} failed: {e.message}")
            raise
        finally:
            self._in_flight.discard(key)

        logger.info(f"Billing {billing.receipt_number} voided by {actor.username}")
        self.notifier.refresh(TOPIC_BILLING, key)
        if billing.order_id:
            self.notifier.refresh(TOPIC_ORDERS, billing.order_id)
        return message
