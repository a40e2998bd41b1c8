"""
Warehouse fulfillment: per-item shipped flags and the processing -> shipped
transition.

The dashboard works in two phases. `apply` flips a flag on the local copy of
an order. `commit` computes the order's target status, persists it, and then
`reconcile` re-reads every order from the store and re-partitions them. A
failed persist still reconciles, which throws away the optimistic toggle.

`set_status` covers the manual moves the toggles never make, such as
shipped -> delivered, pending -> processing or cancelling an order.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Dict, Iterable, List, Optional, Set

from db.models import ORDER_STATUSES, Order
from utils.errors import (
    FetchError,
    NotFoundError,
    OfficeOpsError,
    OrderLockedError,
    PersistError,
    SaveInProgressError,
    ServiceError,
    ValidationError,
)
from utils.logger import get_logger
from utils.pure import count_by_status

_logger = get_logger(__name__)

LOCKED_STATUSES = frozenset({"shipped", "delivered"})


class DashboardBucket(str, Enum):
    NEW = "new"
    DELIVERED = "delivered"
    HIDDEN = "hidden"


def classify_order(order: Order) -> DashboardBucket:
    if order.status == "processing":
        return DashboardBucket.NEW
    if order.status == "delivered":
        return DashboardBucket.DELIVERED
    # pending, shipped and cancelled orders are not worked on this board
    return DashboardBucket.HIDDEN


def partition_orders(orders: Iterable[Order]) -> Dict[DashboardBucket, List[Order]]:
    buckets: Dict[DashboardBucket, List[Order]] = {b: [] for b in DashboardBucket}
    for order in orders:
        buckets[classify_order(order)].append(order)
    return buckets


def is_locked(order: Order) -> bool:
    return order.status in LOCKED_STATUSES


def target_status(order: Order) -> str:
    """'shipped' when every item is flagged shipped, otherwise 'processing'."""
    return "shipped" if all(it.is_shipped for it in order.items) else "processing"


def toggle_item(order: Order, item_id: str) -> Order:
    """Return a copy of `order` with one item's shipped flag flipped."""
    if is_locked(order):
        raise OrderLockedError(f"Order {order.order_number} is already {order.status}.")
    items = list(order.items)
    for i, item in enumerate(items):
        if item.id == item_id:
            items[i] = dataclasses.replace(item, is_shipped=not item.is_shipped)
            return dataclasses.replace(order, items=tuple(items))
    raise NotFoundError(f"Order {order.order_number} has no item {item_id!r}.")


def filter_orders(orders: Iterable[Order], status: str = "all") -> List[Order]:
    if status == "all":
        return list(orders)
    return [o for o in orders if o.status == status]


class FulfillmentBoard:
    """
    Local state of the warehouse dashboard.

    `service` is anything with async `get_orders(search=None)` and
    `update_order_status(order_id, status)`; the app passes `db.crud`.
    """

    def __init__(self, service):
        self.service = service
        self.orders: List[Order] = []
        self.new_orders: List[Order] = []
        self.delivered_orders: List[Order] = []
        self.search: Optional[str] = None
        self.last_error: Optional[str] = None
        self._in_flight: Set[str] = set()

    def find(self, order_id: str) -> Optional[Order]:
        for order in self.new_orders:
            if order.id == order_id:
                return order
        return None

    def get(self, order_id: str) -> Optional[Order]:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def is_saving(self, order_id: str) -> bool:
        return order_id in self._in_flight

    def counts(self) -> Dict[str, int]:
        return count_by_status(self.orders)

    async def reconcile(self) -> None:
        """Replace local state with the store's orders matching `search`."""
        try:
            orders = await self.service.get_orders(search=self.search)
        except ServiceError as e:
            self.last_error = "Failed to load orders. Please try again later."
            _logger.error(f"Order fetch failed: {e}")
            raise FetchError(str(e)) from e

        buckets = partition_orders(orders)
        self.orders = list(orders)
        self.new_orders = buckets[DashboardBucket.NEW]
        self.delivered_orders = buckets[DashboardBucket.DELIVERED]
        self.last_error = None
        _logger.debug(
            f"Reconciled {len(self.new_orders)} new / "
            f"{len(self.delivered_orders)} delivered of {len(self.orders)} orders"
        )

    def apply(self, order_id: str, item_id: str) -> Order:
        """Toggle an item's shipped flag locally. Nothing is persisted."""
        order = self.find(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id!r} is not on the board.")
        updated = toggle_item(order, item_id)
        self.new_orders = [updated if o.id == order_id else o for o in self.new_orders]
        self.orders = [updated if o.id == order_id else o for o in self.orders]
        return updated

    async def commit(self, order_id: str) -> str:
        """
        Persist the status implied by the order's shipped flags, then
        reconcile. Returns the status that was written.
        """
        if order_id in self._in_flight:
            raise SaveInProgressError(f"Order {order_id!r} is already being saved.")
        order = self.find(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id!r} is not on the board.")
        if is_locked(order):
            raise OrderLockedError(f"Order {order.order_number} is already {order.status}.")

        status = target_status(order)
        await self._persist(order, status)
        return status

    async def set_status(self, order_id: str, status: str) -> str:
        """
        Move an order to any status by hand, e.g. shipped -> delivered or
        pending -> cancelled. Unsaved item toggles on it are dropped.
        """
        if status not in ORDER_STATUSES:
            raise ValidationError(f"Unknown order status {status!r}.")
        if order_id in self._in_flight:
            raise SaveInProgressError(f"Order {order_id!r} is already being saved.")
        order = self.get(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id!r} is not on the board.")

        await self._persist(order, status)
        return status

    async def _persist(self, order: Order, status: str) -> None:
        self._in_flight.add(order.id)
        try:
            try:
                await self.service.update_order_status(order.id, status)
            except OfficeOpsError as e:
                _logger.error(f"Saving order {order.order_number} failed: {e}")
                # compensating read: drop the optimistic toggles
                try:
                    await self.reconcile()
                except FetchError:
                    # last_error now carries the fetch failure
                    _logger.warning(f"Re-read after failed save of {order.order_number} failed")
                raise PersistError(
                    f"Failed to update order {order.order_number}."
                ) from e
            _logger.info(f"Order {order.order_number} -> {status}")
            await self.reconcile()
        finally:
            self._in_flight.discard(order.id)
