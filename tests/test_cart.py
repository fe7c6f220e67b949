import unittest

from support import DbTestCase

from db.models import CartItem, DeliveryDetails  # noqa: E402
from services.cart import Cart, ToggleSet, push_recent  # noqa: E402
from services.storage import (  # noqa: E402
    LAST_VIEW_KEY,
    RECENTLY_VIEWED_KEY,
    ClientStorage,
)
from utils.state import DEFAULT_FOLLOWING, GlobalState  # noqa: E402

DETAILS = DeliveryDetails("Elena", "elena@example.com", "555", "12 Kiln Lane")


class CartTestCase(unittest.TestCase):
    def test_add_merges_rows(self):
        cart = Cart()
        cart.add("prod1", 1)
        cart.add("prod1", 2)
        self.assertEqual(cart.items, (CartItem("prod1", 3),))
        self.assertEqual(cart.count, 3)

        cart.add("prod4")
        self.assertEqual(cart.items, (CartItem("prod1", 3), CartItem("prod4", 1)))
        self.assertEqual(cart.count, 4)

        with self.assertRaises(ValueError):
            cart.add("prod1", 0)

    def test_constructor_merges_duplicates(self):
        cart = Cart([CartItem("a", 1), CartItem("b", 1), CartItem("a", 4)])
        self.assertEqual(cart.items, (CartItem("a", 5), CartItem("b", 1)))

    def test_set_quantity_and_remove(self):
        cart = Cart([CartItem("a", 1), CartItem("b", 2)])
        cart.set_quantity("a", 7)
        self.assertEqual(cart.quantity_of("a"), 7)
        cart.set_quantity("b", 0)
        self.assertEqual(cart.quantity_of("b"), 0)
        self.assertEqual(cart.items, (CartItem("a", 7),))

        cart.remove("missing")
        cart.remove("a")
        self.assertTrue(cart.is_empty())

    def test_items_is_a_snapshot(self):
        cart = Cart([CartItem("a", 1)])
        snapshot = cart.items
        cart.clear()
        self.assertEqual(snapshot, (CartItem("a", 1),))
        self.assertEqual(cart.count, 0)


class ToggleSetTestCase(unittest.TestCase):
    def test_toggle_round_trip(self):
        wishlist = ToggleSet()
        self.assertTrue(wishlist.toggle("prod3"))
        self.assertIn("prod3", wishlist)
        self.assertFalse(wishlist.toggle("prod3"))
        self.assertNotIn("prod3", wishlist)
        self.assertEqual(len(wishlist), 0)

    def test_keeps_insertion_order_without_duplicates(self):
        following = ToggleSet(["user2", "user3", "user2"])
        following.toggle("user5")
        self.assertEqual(list(following), ["user2", "user3", "user5"])


class PushRecentTestCase(unittest.TestCase):
    def test_most_recent_first_deduplicated_and_capped(self):
        ids = []
        for pid in ["p1", "p2", "p3", "p2", "p4", "p5"]:
            ids = push_recent(ids, pid)
        self.assertEqual(ids, ["p5", "p4", "p2", "p3"])

    def test_input_untouched(self):
        ids = ["a", "b"]
        self.assertEqual(push_recent(ids, "b"), ["b", "a"])
        self.assertEqual(ids, ["a", "b"])


class ClientStorageTestCase(DbTestCase):
    async def test_ephemeral_is_per_instance(self):
        storage = ClientStorage()
        storage.set_ephemeral("k", "v")
        self.assertEqual(storage.get_ephemeral("k"), "v")
        self.assertIsNone(ClientStorage().get_ephemeral("k"))
        storage.clear_ephemeral()
        self.assertIsNone(storage.get_ephemeral("k"))

    async def test_durable_survives_new_instance(self):
        await ClientStorage().set_durable(LAST_VIEW_KEY, "cart")
        self.assertEqual(await ClientStorage().get_durable(LAST_VIEW_KEY), "cart")

    async def test_durable_list(self):
        storage = ClientStorage()
        self.assertEqual(await storage.get_durable_list(RECENTLY_VIEWED_KEY), [])
        await storage.set_durable_list(RECENTLY_VIEWED_KEY, ["p2", "p1"])
        self.assertEqual(await storage.get_durable_list(RECENTLY_VIEWED_KEY), ["p2", "p1"])

        await storage.set_durable(RECENTLY_VIEWED_KEY, "not json")
        self.assertEqual(await storage.get_durable_list(RECENTLY_VIEWED_KEY), [])
        await storage.set_durable(RECENTLY_VIEWED_KEY, '{"a": 1}')
        self.assertEqual(await storage.get_durable_list(RECENTLY_VIEWED_KEY), [])


class GlobalStateTestCase(DbTestCase):
    async def test_fresh_state(self):
        state = GlobalState()
        self.assertIsNone(state.profile)
        self.assertTrue(state.cart.is_empty())
        self.assertEqual(list(state.following), list(DEFAULT_FOLLOWING))
        self.assertEqual(await state.last_view("marketplace"), "marketplace")

    async def test_login_restore_and_close(self):
        state = GlobalState()
        await state.start_session("elena@example.com", "password123", remember_me=True)
        await state.view_product("prod2")
        await state.remember_view("dashboard")

        restarted = GlobalState()
        profile = await restarted.restore_session()
        self.assertEqual(profile.id, "user1")
        self.assertEqual(restarted.recently_viewed, ["prod2"])
        self.assertEqual(await restarted.last_view("marketplace"), "dashboard")
        self.assertIsNotNone(restarted.dashboard)

        # a remembered session outlives quitting
        await restarted.close()
        self.assertIsNotNone(await GlobalState().restore_session())

        await restarted.end_session()
        self.assertIsNone(restarted.profile)
        self.assertIsNone(await GlobalState().restore_session())

    async def test_close_ends_unremembered_session(self):
        state = GlobalState()
        await state.start_session("elena@example.com", "password123")
        await state.close()
        self.assertIsNone(state.profile)
        self.assertIsNone(await state.sessions.check_session())

    async def test_place_order_updates_cached_dashboard(self):
        state = GlobalState()
        await state.start_session("elena@example.com", "password123")
        before = state.dashboard
        state.cart.add("prod1", 1)
        state.cart.add("prod4", 2)

        order = await state.place_order(DETAILS)

        self.assertEqual(order.total, 85.0)
        self.assertTrue(state.cart.is_empty())
        margin = state.orders.profit_margin
        self.assertAlmostEqual(state.dashboard.sales[-1].value, before.sales[-1].value + 85)
        self.assertAlmostEqual(
            state.dashboard.profit[-1].value, before.profit[-1].value + 85 * margin
        )
        # the cache matches what was stored
        self.assertEqual(state.dashboard, await state.orders.get_dashboard())


if __name__ == "__main__":
    unittest.main()
