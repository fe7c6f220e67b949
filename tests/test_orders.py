import unittest
from datetime import date, datetime

from support import DbTestCase

from db import crud  # noqa: E402
from db.models import CartItem, DeliveryDetails, PeriodValue, Product  # noqa: E402
from services.cart import Cart  # noqa: E402
from services.errors import (  # noqa: E402
    EmptyCart,
    InvalidDeliveryDetails,
    InvalidStatusTransition,
    NotAuthenticated,
    OrderNotFound,
)
from services.orders import (  # noqa: E402
    OrderWorkflow,
    append_to_latest_period,
    next_status,
    order_total,
    validate_delivery_details,
)
from services.session import SessionManager  # noqa: E402
from services.storage import ClientStorage  # noqa: E402
from utils.config import settings  # noqa: E402

DETAILS = DeliveryDetails(
    name=" Elena Vance ",
    email="elena@example.com",
    phone="555-123-4567",
    address="12 Kiln Lane, Willow Creek",
    payment_method="PayPal",
)


def make_product(product_id: str, price: float) -> Product:
    return Product(id=product_id, name=product_id, category="Test", price=price, stock=1)


class OrderHelpersTestCase(unittest.TestCase):
    def test_order_total(self):
        catalog = {"a": make_product("a", 35.0), "b": make_product("b", 25.0)}
        items = (CartItem("a", 1), CartItem("b", 2))
        self.assertEqual(order_total(items, catalog), 85.0)
        # unknown products count as zero
        self.assertEqual(order_total(items + (CartItem("zzz", 5),), catalog), 85.0)
        self.assertEqual(order_total((), catalog), 0.0)
        self.assertEqual(order_total((CartItem("c", 3),), {"c": make_product("c", 0.1)}), 0.3)

    def test_append_to_latest_period(self):
        series = (PeriodValue("Jan", 10.0), PeriodValue("Feb", 20.0))
        self.assertEqual(
            append_to_latest_period(series, 5),
            (PeriodValue("Jan", 10.0), PeriodValue("Feb", 25.0)),
        )
        # input untouched
        self.assertEqual(series[-1].value, 20.0)
        self.assertEqual(append_to_latest_period((), 5), ())

    def test_status_machine(self):
        self.assertEqual(next_status("Placed"), "Shipped")
        self.assertEqual(next_status("Shipped"), "Out for Delivery")
        self.assertEqual(next_status("Out for Delivery"), "Delivered")
        with self.assertRaises(InvalidStatusTransition):
            next_status("Delivered")
        with self.assertRaises(InvalidStatusTransition):
            next_status("Lost")

    def test_validate_delivery_details(self):
        cleaned = validate_delivery_details(DETAILS)
        self.assertEqual(cleaned.name, "Elena Vance")

        with self.assertRaises(InvalidDeliveryDetails) as ctx:
            validate_delivery_details(
                DeliveryDetails(name="x", email="x@y", phone="  ", address="")
            )
        self.assertIn("phone", str(ctx.exception))
        self.assertIn("address", str(ctx.exception))

        with self.assertRaises(InvalidDeliveryDetails):
            validate_delivery_details(
                DeliveryDetails("x", "not-an-email", "1", "addr")
            )
        with self.assertRaises(InvalidDeliveryDetails):
            validate_delivery_details(
                DeliveryDetails("x", "x@y", "1", "addr", payment_method="Barter")
            )


class OrderWorkflowTestCase(DbTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.sessions = SessionManager(ClientStorage())
        self.workflow = OrderWorkflow(self.sessions, profit_margin=0.6)
        await self.sessions.login("elena@example.com", "password123")

    async def test_place_order_from_store_prices(self):
        cart = Cart([CartItem("prod1", 1), CartItem("prod4", 2)])
        before = await self.workflow.count_orders()
        when = datetime(2025, 6, 10, 14, 0)

        order = await self.workflow.place_order(cart, DETAILS, when=when)

        self.assertEqual(order.total, 85.0)
        self.assertTrue(cart.is_empty())
        self.assertEqual(await self.workflow.count_orders(), before + 1)
        self.assertEqual(order.owner_id, "user1")
        self.assertEqual(order.status, "Placed")
        self.assertEqual(order.order_date, when)
        self.assertEqual(order.expected_delivery, date(2025, 6, 15))
        self.assertEqual(order.current_location, settings.origin_location)
        self.assertEqual(order.delivery_details.name, "Elena Vance")
        self.assertEqual(await crud.get_order(order.id), order)

    async def test_place_order_with_explicit_catalog(self):
        catalog = {"prod1": make_product("prod1", 35.0), "prod4": make_product("prod4", 25.0)}
        cart = Cart()
        cart.add("prod1", 1)
        cart.add("prod4", 2)
        cart.add("ghost", 3)

        order = await self.workflow.place_order(cart, DETAILS, catalog=catalog)
        self.assertEqual(order.total, 85.0)
        # the missing product's line is still recorded
        self.assertIn(CartItem("ghost", 3), order.items)

    async def test_place_order_books_dashboard(self):
        before = await crud.get_dashboard()
        cart = Cart([CartItem("prod4", 4)])  # 100.00

        await self.workflow.place_order(cart, DETAILS)

        after = await crud.get_dashboard()
        self.assertAlmostEqual(after.sales[-1].value, before.sales[-1].value + 100)
        self.assertAlmostEqual(after.profit[-1].value, before.profit[-1].value + 60)
        self.assertEqual(after.sales[:-1], before.sales[:-1])
        self.assertEqual(after.profit[:-1], before.profit[:-1])
        self.assertEqual(after.engagement, before.engagement)

    async def test_empty_cart_is_refused(self):
        before = await self.workflow.count_orders()
        with self.assertRaises(EmptyCart):
            await self.workflow.place_order(Cart(), DETAILS)
        self.assertEqual(await self.workflow.count_orders(), before)

    async def test_bad_details_leave_cart_alone(self):
        cart = Cart([CartItem("prod1", 1)])
        with self.assertRaises(InvalidDeliveryDetails):
            await self.workflow.place_order(cart, DeliveryDetails("", "", "", ""))
        self.assertEqual(cart.count, 1)

    async def test_requires_session(self):
        await self.sessions.logout()
        cart = Cart([CartItem("prod1", 1)])
        with self.assertRaises(NotAuthenticated):
            await self.workflow.place_order(cart, DETAILS)
        with self.assertRaises(NotAuthenticated):
            await self.workflow.list_orders()
        with self.assertRaises(NotAuthenticated):
            await self.workflow.get_dashboard()
        with self.assertRaises(NotAuthenticated):
            await self.workflow.count_orders()
        self.assertFalse(cart.is_empty())

    async def test_list_orders_newest_first(self):
        first = await self.workflow.place_order(
            Cart([CartItem("prod1", 1)]), DETAILS, when=datetime(2025, 1, 1)
        )
        second = await self.workflow.place_order(
            Cart([CartItem("prod2", 1)]), DETAILS, when=datetime(2025, 2, 1)
        )
        orders = await self.workflow.list_orders()
        self.assertEqual([o.id for o in orders][:2], [second.id, first.id])

    async def test_advance_order(self):
        order = await self.workflow.place_order(Cart([CartItem("prod1", 1)]), DETAILS)

        shipped = await self.workflow.advance_order(order.id, "Sorting Hub")
        self.assertEqual((shipped.status, shipped.current_location), ("Shipped", "Sorting Hub"))
        out = await self.workflow.advance_order(order.id)
        self.assertEqual((out.status, out.current_location), ("Out for Delivery", "Sorting Hub"))
        delivered = await self.workflow.advance_order(order.id, "Front door")
        self.assertEqual(delivered.status, "Delivered")
        self.assertEqual((await crud.get_order(order.id)).status, "Delivered")

        with self.assertRaises(InvalidStatusTransition):
            await self.workflow.advance_order(order.id)
        with self.assertRaises(OrderNotFound):
            await self.workflow.advance_order("ORD-404")

    async def test_advance_order_requires_session(self):
        order = await self.workflow.place_order(Cart([CartItem("prod1", 1)]), DETAILS)
        await self.sessions.logout()

        with self.assertRaises(NotAuthenticated):
            await self.workflow.advance_order(order.id)
        self.assertEqual((await crud.get_order(order.id)).status, "Placed")

    async def test_advance_order_of_another_artisan(self):
        order = await self.workflow.place_order(Cart([CartItem("prod1", 1)]), DETAILS)
        await self.sessions.logout()
        code = await self.sessions.send_registration_otp("mia@example.com")
        await self.sessions.register("Mia Hart", "mia@example.com", "glaze-42", code)
        await self.sessions.login("mia@example.com", "glaze-42")

        with self.assertRaises(OrderNotFound):
            await self.workflow.advance_order(order.id)
        self.assertEqual((await crud.get_order(order.id)).status, "Placed")
        self.assertEqual(await self.workflow.count_orders(), 0)

    async def test_update_dashboard_uses_margin(self):
        before = await crud.get_dashboard()
        after = await self.workflow.update_dashboard(50, profit_margin=0.5)
        self.assertAlmostEqual(after.sales[-1].value, before.sales[-1].value + 50)
        self.assertAlmostEqual(after.profit[-1].value, before.profit[-1].value + 25)


if __name__ == "__main__":
    unittest.main()
