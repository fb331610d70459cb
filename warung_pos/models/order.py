from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from warung_pos.models.order_type import OrderTypeKind


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    PREPARED = "PREPARED"
    SERVED = "SERVED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    # Reported by the backend once a billing exists; never requested by the client.
    PAID = "PAID"


class ItemStatus(str, Enum):
    ACTIVE = "ACTIVE"
    CANCELED = "CANCELED"


@dataclass
class OrderItemOption:
    option_id: str
    name: str
    quantity: int
    unit_price: int = 0
    total_price: int = 0
    status: ItemStatus = ItemStatus.ACTIVE

    @property
    def is_active(self) -> bool:
        return self.status == ItemStatus.ACTIVE


@dataclass
class OrderItem:
    item_id: str
    food_name: str
    category_name: str
    quantity: int
    unit_price: int = 0
    total_price: int = 0
    status: ItemStatus = ItemStatus.ACTIVE
    options: list[OrderItemOption] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == ItemStatus.ACTIVE

    def active_options(self) -> list[OrderItemOption]:
        return [o for o in self.options if o.is_active]


@dataclass
class Order:
    order_id: str
    order_number: str
    order_type: OrderTypeKind
    status: OrderStatus
    waiter_id: str = ""
    waiter_name: str = "-"
    table_number: Optional[str] = None
    customer_name: Optional[str] = None
    online_code: Optional[str] = None
    remark: str = ""
    items: list[OrderItem] = field(default_factory=list)
    order_type_discount_percentage: Optional[float] = None
    subtotal: int = 0
    tax: int = 0
    discount: int = 0
    total: int = 0
    outlet_name: str = ""
    billed: bool = False

    def active_items(self) -> list[OrderItem]:
        return [i for i in self.items if i.is_active]

    def find_item(self, item_id: str) -> Optional[OrderItem]:
        return next((i for i in self.items if i.item_id == item_id), None)

    @property
    def is_canceled(self) -> bool:
        return self.status == OrderStatus.CANCELED

    @property
    def display_title(self) -> str:
        """'Table 4 - budi' for dine-in, 'GrabFood - budi' otherwise."""
        if self.order_type == OrderTypeKind.DINE_IN:
            return f"Table {self.table_number or 'N/A'} - {self.waiter_name or 'N/A'}"
        return f"{self.order_type.label} - {self.waiter_name or 'N/A'}"
