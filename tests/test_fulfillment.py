import asyncio
import dataclasses
import os
import sys
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db.models import Order, OrderItem  # noqa: E402
from utils.errors import (  # noqa: E402
    FetchError,
    NotFoundError,
    OrderLockedError,
    PersistError,
    SaveInProgressError,
    ValidationError,
)
from utils.fulfillment import (  # noqa: E402
    DashboardBucket,
    FulfillmentBoard,
    classify_order,
    filter_orders,
    partition_orders,
    target_status,
    toggle_item,
)


def _order(oid, status, shipped=(False, False)):
    items = tuple(
        OrderItem(id=f"{oid}-{n}", name=f"Item {n}", quantity=1, price=10.0, is_shipped=s)
        for n, s in enumerate(shipped, start=1)
    )
    return Order(
        id=oid,
        order_number=f"ORD-{oid}",
        customer_name="Priya Patel",
        status=status,
        items=items,
    )


class FakeOrderService:
    """In-memory order store with switchable failures."""

    def __init__(self, orders):
        self.orders = {o.id: o for o in orders}
        self.fail_fetch = False
        self.fail_with = None
        self.gate = None
        self.fetches = 0
        self.searches = []
        self.updates = []

    async def get_orders(self, search=None):
        self.fetches += 1
        self.searches.append(search)
        if self.fail_fetch:
            raise FetchError("store unreachable")
        orders = list(self.orders.values())
        if search:
            orders = [o for o in orders if search.lower() in o.order_number.lower()]
        return orders

    async def update_order_status(self, order_id, status):
        self.updates.append((order_id, status))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        order = self.orders[order_id]
        items = order.items
        if status in ("shipped", "delivered"):
            items = tuple(dataclasses.replace(it, is_shipped=True) for it in items)
        self.orders[order_id] = dataclasses.replace(order, status=status, items=items)
        return self.orders[order_id]


class OrderRulesTestCase(unittest.TestCase):
    def test_classification(self):
        self.assertEqual(classify_order(_order("1", "processing")), DashboardBucket.NEW)
        self.assertEqual(classify_order(_order("2", "delivered")), DashboardBucket.DELIVERED)
        for status in ("pending", "shipped", "cancelled"):
            self.assertEqual(classify_order(_order("3", status)), DashboardBucket.HIDDEN)

    def test_partition_covers_every_bucket(self):
        buckets = partition_orders([_order("1", "processing"), _order("2", "pending")])
        self.assertEqual(set(buckets), set(DashboardBucket))
        self.assertEqual([o.id for o in buckets[DashboardBucket.NEW]], ["1"])
        self.assertEqual(buckets[DashboardBucket.DELIVERED], [])
        self.assertEqual([o.id for o in buckets[DashboardBucket.HIDDEN]], ["2"])

    def test_target_status(self):
        self.assertEqual(target_status(_order("1", "processing", (True, True))), "shipped")
        self.assertEqual(target_status(_order("1", "processing", (True, False))), "processing")
        self.assertEqual(target_status(_order("1", "processing", ())), "shipped")

    def test_toggle_flips_one_item_and_keeps_the_original(self):
        order = _order("1", "processing")
        toggled = toggle_item(order, "1-2")
        self.assertEqual([it.is_shipped for it in toggled.items], [False, True])
        self.assertEqual([it.is_shipped for it in order.items], [False, False])
        back = toggle_item(toggled, "1-2")
        self.assertEqual([it.is_shipped for it in back.items], [False, False])

    def test_toggle_rejects_locked_orders_and_unknown_items(self):
        for status in ("shipped", "delivered"):
            with self.assertRaises(OrderLockedError):
                toggle_item(_order("1", status, (True, True)), "1-1")
        with self.assertRaises(NotFoundError):
            toggle_item(_order("1", "processing"), "nope")


class FulfillmentBoardTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.service = FakeOrderService(
            [
                _order("1", "processing"),
                _order("2", "delivered", (True,)),
                _order("3", "pending"),
                _order("4", "shipped", (True,)),
                _order("5", "cancelled"),
            ]
        )
        self.board = FulfillmentBoard(self.service)
        await self.board.reconcile()

    async def test_reconcile_partitions_orders(self):
        self.assertEqual([o.id for o in self.board.new_orders], ["1"])
        self.assertEqual([o.id for o in self.board.delivered_orders], ["2"])
        self.assertIsNone(self.board.last_error)

    async def test_fetch_failure_sets_banner_and_keeps_last_state(self):
        self.service.fail_fetch = True
        with self.assertRaises(FetchError):
            await self.board.reconcile()
        self.assertEqual(
            self.board.last_error, "Failed to load orders. Please try again later."
        )
        self.assertEqual([o.id for o in self.board.new_orders], ["1"])

        self.service.fail_fetch = False
        await self.board.reconcile()
        self.assertIsNone(self.board.last_error)

    async def test_apply_is_local_only(self):
        self.board.apply("1", "1-1")
        self.assertTrue(self.board.find("1").items[0].is_shipped)
        self.assertFalse(self.service.orders["1"].items[0].is_shipped)
        self.assertEqual(self.service.updates, [])

    async def test_apply_unknown_order(self):
        with self.assertRaises(NotFoundError):
            self.board.apply("2", "2-1")

    async def test_partial_commit_keeps_processing(self):
        self.board.apply("1", "1-1")
        status = await self.board.commit("1")
        self.assertEqual(status, "processing")
        self.assertEqual(self.service.updates, [("1", "processing")])
        # reconciled from the store, which does not keep per-item flags
        self.assertFalse(self.board.find("1").items[0].is_shipped)
        self.assertFalse(self.board.is_saving("1"))

    async def test_full_commit_ships_the_order(self):
        self.board.apply("1", "1-1")
        self.board.apply("1", "1-2")
        status = await self.board.commit("1")
        self.assertEqual(status, "shipped")
        self.assertEqual(self.service.orders["1"].status, "shipped")
        self.assertIsNone(self.board.find("1"))
        self.assertEqual(self.board.new_orders, [])

    async def test_failed_commit_reconciles_and_drops_toggles(self):
        self.board.apply("1", "1-1")
        self.board.apply("1", "1-2")
        self.service.fail_with = PersistError("write refused")
        with self.assertRaises(PersistError) as ctx:
            await self.board.commit("1")
        self.assertIn("ORD-1", str(ctx.exception))
        order = self.board.find("1")
        self.assertEqual(order.status, "processing")
        self.assertEqual([it.is_shipped for it in order.items], [False, False])
        self.assertFalse(self.board.is_saving("1"))

    async def test_double_submit_is_rejected(self):
        self.service.gate = asyncio.Event()
        first = asyncio.create_task(self.board.commit("1"))
        while not self.board.is_saving("1"):
            await asyncio.sleep(0)

        with self.assertRaises(SaveInProgressError):
            await self.board.commit("1")
        with self.assertRaises(SaveInProgressError):
            await self.board.set_status("1", "cancelled")

        self.service.gate.set()
        self.assertEqual(await first, "processing")
        self.assertEqual(self.service.updates, [("1", "processing")])
        self.assertFalse(self.board.is_saving("1"))

    async def test_commit_unknown_order(self):
        with self.assertRaises(NotFoundError):
            await self.board.commit("42")

    async def test_untoggling_one_item_reverts_to_processing(self):
        self.board.apply("1", "1-1")
        self.board.apply("1", "1-2")
        self.assertEqual(target_status(self.board.find("1")), "shipped")
        self.board.apply("1", "1-2")
        status = await self.board.commit("1")
        self.assertEqual(status, "processing")
        self.assertEqual(self.service.updates, [("1", "processing")])
        self.assertEqual([o.id for o in self.board.new_orders], ["1"])

    async def test_order_gone_on_save_still_reconciles(self):
        self.board.apply("1", "1-1")
        self.service.fail_with = NotFoundError("Order '1' not found.")
        with self.assertRaises(PersistError) as ctx:
            await self.board.commit("1")
        self.assertIsInstance(ctx.exception.__cause__, NotFoundError)
        self.assertEqual(self.service.fetches, 2)
        self.assertEqual([it.is_shipped for it in self.board.find("1").items], [False, False])
        self.assertFalse(self.board.is_saving("1"))

    async def test_rejected_status_on_save_still_reconciles(self):
        self.board.apply("1", "1-1")
        self.service.fail_with = ValidationError("Unknown order status.")
        with self.assertRaises(PersistError):
            await self.board.commit("1")
        self.assertEqual(self.service.fetches, 2)
        self.assertFalse(self.board.find("1").items[0].is_shipped)

    async def test_failed_reread_after_failed_save(self):
        self.board.apply("1", "1-1")
        self.service.fail_with = PersistError("write refused")
        self.service.fail_fetch = True
        with self.assertRaises(PersistError):
            await self.board.commit("1")
        self.assertEqual(
            self.board.last_error, "Failed to load orders. Please try again later."
        )
        self.assertFalse(self.board.is_saving("1"))

    async def test_counts_and_status_filter(self):
        self.assertEqual(
            self.board.counts(),
            {
                "all": 5,
                "processing": 1,
                "delivered": 1,
                "pending": 1,
                "shipped": 1,
                "cancelled": 1,
            },
        )
        self.assertEqual(
            [o.id for o in filter_orders(self.board.orders)], ["1", "2", "3", "4", "5"]
        )
        self.assertEqual([o.id for o in filter_orders(self.board.orders, "pending")], ["3"])

    async def test_search_goes_to_the_store(self):
        self.board.search = "ord-3"
        await self.board.reconcile()
        self.assertEqual(self.service.searches, [None, "ord-3"])
        self.assertEqual([o.id for o in self.board.orders], ["3"])
        self.assertEqual(self.board.new_orders, [])

    async def test_set_status_by_hand(self):
        self.assertEqual(await self.board.set_status("4", "delivered"), "delivered")
        self.assertEqual([o.id for o in self.board.delivered_orders], ["2", "4"])

        await self.board.set_status("3", "processing")
        self.assertEqual([o.id for o in self.board.new_orders], ["1", "3"])

        await self.board.set_status("1", "cancelled")
        self.assertEqual([o.id for o in self.board.new_orders], ["3"])
        self.assertEqual(self.board.counts()["cancelled"], 2)
        self.assertEqual(
            self.service.updates,
            [("4", "delivered"), ("3", "processing"), ("1", "cancelled")],
        )

    async def test_set_status_rejects_unknown_status_and_order(self):
        with self.assertRaises(ValidationError):
            await self.board.set_status("1", "lost")
        with self.assertRaises(NotFoundError):
            await self.board.set_status("42", "delivered")
        self.assertEqual(self.service.updates, [])

    async def test_failed_set_status_drops_toggles(self):
        self.board.apply("1", "1-1")
        self.service.fail_with = PersistError("write refused")
        with self.assertRaises(PersistError):
            await self.board.set_status("1", "cancelled")
        order = self.board.get("1")
        self.assertEqual(order.status, "processing")
        self.assertFalse(order.items[0].is_shipped)


if __name__ == "__main__":
    unittest.main()
