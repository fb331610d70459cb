from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from warung_pos.api.gateways import OrderGateway
from warung_pos.constants import P_CREATE_ORDER, P_EDIT_ITEMS, ROLE_WAITER
from warung_pos.errors import AuthorizationError, ConflictError, PosError, ValidationError
from warung_pos.models.order import ItemStatus, Order, OrderItem, OrderItemOption
from warung_pos.models.order_type import OrderTypeKind
from warung_pos.models.staged import Staged
from warung_pos.models.user import User
from warung_pos.services.auth_service import require_permission, role_has_permission
from warung_pos.services.notifier import TOPIC_ORDERS, Exporter, Notifier
from warung_pos.validators import nonempty, nonneg_int, pos_int

logger = logging.getLogger(__name__)


@dataclass
class DraftOption:
    option_id: str
    quantity: int = 1


@dataclass
class DraftItem:
    food_id: str
    quantity: int = 1
    options: list[DraftOption] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "foodId": self.food_id,
            "quantity": int(self.quantity),
            "options": [{"optionId": o.option_id, "quantity": int(o.quantity)} for o in self.options],
        }


@dataclass
class OrderDraft:
    order_type: OrderTypeKind
    order_type_id: str
    items: list[DraftItem] = field(default_factory=list)
    dining_table_id: Optional[str] = None
    customer_name: Optional[str] = None
    online_code: Optional[str] = None
    remark: str = ""


def validate_draft_items(items: list[DraftItem]) -> None:
    if not items:
        raise ValidationError("Please select at least one menu item.", field="items")
    for it in items:
        if not nonempty(it.food_id):
            raise ValidationError("Menu item is missing.", field="items")
        if not pos_int(it.quantity):
            raise ValidationError("Item quantity must be at least 1.", field="quantity")
        for opt in it.options:
            if not pos_int(opt.quantity):
                raise ValidationError("Option quantity must be at least 1.", field="quantity")


def validate_order_draft(draft: OrderDraft) -> None:
    policy = draft.order_type.policy
    if policy.requires_table and not nonempty(draft.dining_table_id or ""):
        raise ValidationError("Please select a table for Dine In.", field="dining_table_id")
    if policy.requires_customer_name and not nonempty(draft.customer_name or ""):
        raise ValidationError("Customer Name is required for this order type.", field="customer_name")
    if policy.requires_online_code and not nonempty(draft.online_code or ""):
        raise ValidationError(
            f"Online Code is required for {draft.order_type.label} orders.", field="online_code"
        )
    validate_draft_items(draft.items)


def build_order_payload(draft: OrderDraft, actor: User) -> dict[str, Any]:
    """Fields that do not belong to the order type are sent as null."""
    policy = draft.order_type.policy
    customer_name = None
    if draft.order_type != OrderTypeKind.DINE_IN:
        customer_name = (draft.customer_name or "").strip() or None
    online_code = None
    if policy.requires_online_code:
        online_code = (draft.online_code or "").strip() or None

    return {
        "diningTableId": draft.dining_table_id if policy.requires_table else None,
        "waiterId": actor.user_id,
        "outletId": actor.outlet_id,
        "orderTypeId": draft.order_type_id,
        "items": [it.to_payload() for it in draft.items],
        "remark": (draft.remark or "").strip(),
        "customerName": customer_name,
        "onlineCode": online_code,
    }


def build_batch_payload(order: Order) -> list[dict[str, Any]]:
    return [
        {
            "id": it.item_id,
            "quantity": int(it.quantity),
            "status": it.status.value,
            "options": [
                {"id": o.option_id, "quantity": int(o.quantity), "status": o.status.value}
                for o in it.options
            ],
        }
        for it in order.items
    ]


# ---- Local edits (applied to a staging copy) ----

def _require_item(order: Order, item_id: str) -> OrderItem:
    item = order.find_item(item_id)
    if item is None:
        raise ValidationError(f"Item {item_id} is not part of this order.", field="items")
    return item


def _require_option(item: OrderItem, option_id: str) -> OrderItemOption:
    for opt in item.options:
        if opt.option_id == option_id:
            return opt
    raise ValidationError(f"Option {option_id} is not part of {item.food_name}.", field="options")


def cancel_item(order: Order, item_id: str) -> None:
    item = _require_item(order, item_id)
    item.status = ItemStatus.CANCELED
    for opt in item.options:
        opt.status = ItemStatus.CANCELED


def cancel_option(order: Order, item_id: str, option_id: str) -> None:
    _require_option(_require_item(order, item_id), option_id).status = ItemStatus.CANCELED


def set_item_quantity(order: Order, item_id: str, quantity: int) -> None:
    if not nonneg_int(quantity):
        raise ValidationError("Quantity cannot be negative.", field="quantity")
    item = _require_item(order, item_id)
    if not item.is_active:
        raise ValidationError(f"{item.food_name} is canceled.", field="quantity")
    item.quantity = int(quantity)


def set_option_quantity(order: Order, item_id: str, option_id: str, quantity: int) -> None:
    if not nonneg_int(quantity):
        raise ValidationError("Quantity cannot be negative.", field="quantity")
    item = _require_item(order, item_id)
    opt = _require_option(item, option_id)
    if not item.is_active or not opt.is_active:
        raise ValidationError(f"{opt.name} is canceled.", field="quantity")
    opt.quantity = int(quantity)


class OrderService:
    def __init__(
        self,
        gateway: OrderGateway,
        notifier: Optional[Notifier] = None,
        exporter: Optional[Exporter] = None,
    ):
        self.gateway = gateway
        self.notifier = notifier or Notifier()
        self.exporter = exporter or Exporter()

    # ---- Permissions ----
    def can_edit_items(self, order: Order, actor: User) -> bool:
        try:
            self.check_can_edit(order, actor)
        except PosError:
            return False
        return True

    def check_can_edit(self, order: Order, actor: User) -> None:
        if order.is_canceled:
            raise ConflictError(f"Order {order.order_number} is canceled.")
        if order.billed:
            raise ConflictError(f"Order {order.order_number} has already been billed.")
        if role_has_permission(actor, P_EDIT_ITEMS):
            return
        if (actor.role or "").upper() == ROLE_WAITER and order.waiter_id == actor.user_id:
            return
        raise AuthorizationError("You can only edit your own orders.")

    # ---- Orders ----
    async def create_order(self, draft: OrderDraft, actor: User) -> Order:
        require_permission(actor, P_CREATE_ORDER, "You are not allowed to create orders.")
        validate_order_draft(draft)

        payload = build_order_payload(draft, actor)
        try:
            data = await self.gateway.create_order(payload)
        except PosError as e:
            logger.warning(f"Order submit failed: {e.message}")
            raise

        order_id = str(data.get("id") or "")
        logger.info(f"Order {data.get('orderNumber', order_id)} created by {actor.username}")
        self.notifier.refresh(TOPIC_ORDERS, order_id)

        order = await self.gateway.fetch_order(order_id)
        self.exporter.export_kitchen_ticket(order)
        return order

    async def add_items(self, order: Order, items: list[DraftItem], actor: User) -> Order:
        self.check_can_edit(order, actor)
        validate_draft_items(items)

        try:
            await self.gateway.add_items(order.order_id, [it.to_payload() for it in items])
        except PosError as e:
            logger.warning(f"Adding items to order {order.order_number} failed: {e.message}")
            raise

        logger.info(f"{len(items)} item(s) added to order {order.order_number}")
        self.notifier.refresh(TOPIC_ORDERS, order.order_id)
        return await self.gateway.fetch_order(order.order_id)

    def begin_edit(self, order: Order, actor: User) -> Staged[Order]:
        """Start an edit session; mutate `staged.staging` with the edit helpers."""
        self.check_can_edit(order, actor)
        staged = Staged(order)
        staged.stage()
        return staged

    async def save_item_edits(self, staged: Staged[Order], actor: User) -> Order:
        if not staged.is_pending:
            raise ValidationError("There are no changes to save.")
        edited = staged.staging
        self.check_can_edit(staged.confirmed, actor)

        try:
            await self.gateway.batch_update_items(edited.order_id, build_batch_payload(edited))
        except PosError as e:
            staged.discard()
            logger.warning(f"Item update for order {edited.order_number} failed: {e.message}")
            raise

        logger.info(f"Items of order {edited.order_number} updated by {actor.username}")
        self.notifier.refresh(TOPIC_ORDERS, edited.order_id)
        try:
            fresh = await self.gateway.fetch_order(edited.order_id)
        except PosError as e:
            logger.warning(f"Re-fetch after item update failed for {edited.order_number}: {e.message}")
            return staged.commit()
        return staged.commit(fresh)
