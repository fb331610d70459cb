"""
Order status state machine.

Two lifecycle profiles exist and are kept apart:

  classic   PENDING -> PREPARED -> SERVED, CANCELED from any open state.
            Waiters may only move their own orders between PREPARED and SERVED.
  extended  classic plus COMPLETED (only from SERVED).
            Waiters may request any transition on their own orders.

Cashiers and admins may set any status of the active profile. Cancellation
is two-phase: `propose()` validates, the caller confirms the proposal, then
`apply()` dispatches. Only one request per order may be in flight.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from warung_pos.api.gateways import OrderGateway
from warung_pos.config import LIFECYCLE_CLASSIC, LIFECYCLE_EXTENDED, LIFECYCLE_PROFILE
from warung_pos.constants import P_UPDATE_STATUS, ROLE_WAITER
from warung_pos.errors import (
    AuthorizationError,
    DuplicateRequestError,
    PosError,
    ValidationError,
)
from warung_pos.models.order import Order, OrderStatus
from warung_pos.models.staged import Staged
from warung_pos.models.user import User
from warung_pos.services.auth_service import role_has_permission
from warung_pos.services.notifier import TOPIC_ORDERS, Notifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LifecycleProfile:
    name: str
    states: tuple[OrderStatus, ...]
    terminal: frozenset[OrderStatus]
    # Statuses a waiter may move between; None means no restriction.
    waiter_window: Optional[frozenset[OrderStatus]]
    # Status COMPLETED must be reached from, when the profile has it.
    completed_from: Optional[OrderStatus] = None


CLASSIC_PROFILE = LifecycleProfile(
    name=LIFECYCLE_CLASSIC,
    states=(OrderStatus.PENDING, OrderStatus.PREPARED, OrderStatus.SERVED, OrderStatus.CANCELED),
    terminal=frozenset({OrderStatus.CANCELED}),
    waiter_window=frozenset({OrderStatus.PREPARED, OrderStatus.SERVED}),
)

EXTENDED_PROFILE = LifecycleProfile(
    name=LIFECYCLE_EXTENDED,
    states=(
        OrderStatus.PENDING,
        OrderStatus.PREPARED,
        OrderStatus.SERVED,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELED,
    ),
    terminal=frozenset({OrderStatus.CANCELED, OrderStatus.COMPLETED}),
    waiter_window=None,
    completed_from=OrderStatus.SERVED,
)

PROFILES: dict[str, LifecycleProfile] = {
    CLASSIC_PROFILE.name: CLASSIC_PROFILE,
    EXTENDED_PROFILE.name: EXTENDED_PROFILE,
}


def get_profile(name: str) -> LifecycleProfile:
    try:
        return PROFILES[(name or "").strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown lifecycle profile: {name!r}") from None


def check_transition(order: Order, target: OrderStatus, actor: User, profile: LifecycleProfile) -> None:
    """Raise if `actor` may not move `order` to `target` under `profile`."""
    if target not in profile.states:
        raise ValidationError(f"{target.value} is not a valid status here.", field="status")
    if target == order.status:
        raise ValidationError(f"Order is already {target.value}.", field="status")
    if target == OrderStatus.COMPLETED and order.status != profile.completed_from:
        raise ValidationError("Only served orders can be completed.", field="status")

    if role_has_permission(actor, P_UPDATE_STATUS):
        return

    if (actor.role or "").upper() != ROLE_WAITER:
        raise AuthorizationError("You are not allowed to change order status.")
    if order.waiter_id != actor.user_id:
        raise AuthorizationError("Waiters can only update their own orders.")
    if order.status in profile.terminal:
        raise AuthorizationError(f"Order is already {order.status.value}.")
    window = profile.waiter_window
    if window is not None and (order.status not in window or target not in window):
        allowed = " / ".join(s.value for s in profile.states if s in window)
        raise AuthorizationError(f"Waiters can only switch between {allowed}.")


@dataclass
class TransitionProposal:
    order: Order
    target: OrderStatus
    actor: User
    requires_confirmation: bool
    confirmed: bool = False

    def confirm(self) -> "TransitionProposal":
        self.confirmed = True
        return self

    @property
    def ready(self) -> bool:
        return self.confirmed or not self.requires_confirmation


class OrderStatusService:
    def __init__(
        self,
        gateway: OrderGateway,
        profile: Optional[LifecycleProfile] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.gateway = gateway
        self.profile = profile or get_profile(LIFECYCLE_PROFILE)
        self.notifier = notifier or Notifier()
        self._in_flight: set[str] = set()

    def is_in_flight(self, order_id: str) -> bool:
        return order_id in self._in_flight

    def allowed_targets(self, order: Order, actor: User) -> list[OrderStatus]:
        """Statuses the actor could pick for this order right now."""
        allowed = []
        for status in self.profile.states:
            try:
                check_transition(order, status, actor, self.profile)
            except PosError:
                continue
            allowed.append(status)
        return allowed

    def propose(self, order: Order, target: OrderStatus | str, actor: User) -> TransitionProposal:
        try:
            target = OrderStatus(target)
        except ValueError:
            raise ValidationError(f"Unknown status: {target}", field="status") from None
        check_transition(order, target, actor, self.profile)
        return TransitionProposal(
            order=order,
            target=target,
            actor=actor,
            requires_confirmation=target == OrderStatus.CANCELED,
        )

    async def apply(self, proposal: TransitionProposal) -> Order:
        """
        Dispatch a validated proposal and return the backend's fresh copy
        of the order. The order passed in is never modified.
        """
        if not proposal.ready:
            raise ValidationError("Cancellation must be confirmed first.", field="status")

        order = proposal.order
        oid = order.order_id
        if oid in self._in_flight:
            logger.info(f"Ignoring status change for order {order.order_number}: request in flight")
            raise DuplicateRequestError("A status update for this order is already in progress.")

        staged = Staged(order)
        staged.stage(lambda o: setattr(o, "status", proposal.target))

        self._in_flight.add(oid)
        try:
            await self.gateway.update_status(oid, proposal.target.value)
        except PosError as e:
            staged.discard()
            logger.warning(f"Failed to update status for order {order.order_number}: {e.message}")
            raise
        finally:
            self._in_flight.discard(oid)

        logger.info(
            f"Order {order.order_number}: {order.status.value} -> {proposal.target.value} "
            f"by {proposal.actor.username}"
        )
        self.notifier.refresh(TOPIC_ORDERS, oid)

        try:
            fresh = await self.gateway.fetch_order(oid)
        except PosError as e:
            logger.warning(f"Re-fetch after status update failed for {order.order_number}: {e.message}")
            return staged.commit()
        return staged.commit(fresh)

    async def request_transition(
        self,
        order: Order,
        target: OrderStatus | str,
        actor: User,
        confirmed: bool = False,
    ) -> Order:
        """Propose and apply in one call; cancellation still needs `confirmed`."""
        proposal = self.propose(order, target, actor)
        if confirmed:
            proposal.confirm()
        return await self.apply(proposal)

    async def list_active_orders(self, outlet_id: str) -> list[Order]:
        return await self.gateway.list_active_orders(outlet_id)
