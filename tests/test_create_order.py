import re
import unittest
from unittest.mock import patch

import pydantic

from storefront.application.create_order import CreateOrderUseCase, generate_order_reference
from storefront.domain.models import BookFormat, OrderStatus, PaymentStatus
from storefront.domain.exceptions import (
    BookNotFoundError, InsufficientStockError, UpstreamUnavailableError, ValidationError
)
from tests.fakes import FakeUnitOfWork, InMemoryStore, make_book, make_order_dto

STORE_IBAN = "PT50000000000000000000001"


class TestCreateOrder(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.store = InMemoryStore()
        self.book = self.store.add_book()
        self.other_book = self.store.add_book(id="book-2", title="Memórias Póstumas", price=1500, author_id="author-2")
        self.store.add_bank_account("author-1", "PT50111111111111111111111")
        self.use_case = CreateOrderUseCase(FakeUnitOfWork(self.store), STORE_IBAN)

    async def test_paid_order_opens_pending_notification(self):
        order = await self.use_case(make_order_dto([self.book, self.other_book], quantities={"book-2": 2}))

        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.total, 2500 + 2 * 1500)
        self.assertIsNotNone(order.payment_notification_id)

        notification = self.store.tables.notifications[order.payment_notification_id]
        self.assertEqual(notification.status, PaymentStatus.PENDING)
        self.assertEqual(notification.order_id, order.id)
        self.assertEqual(notification.reader_id, "reader-1")
        self.assertEqual(notification.total_amount, order.total)

        stored = self.store.tables.orders[order.id]
        self.assertEqual(stored.payment_notification_id, notification.id)

    async def test_bank_destination_uses_author_primary_account_or_store(self):
        order = await self.use_case(make_order_dto([self.book, self.other_book]))

        notification = self.store.tables.notifications[order.payment_notification_id]
        destinations = {item.book_id: item.bank_destination for item in notification.items}
        self.assertEqual(destinations["book-1"], "PT50111111111111111111111")
        self.assertEqual(destinations["book-2"], STORE_IBAN)

    async def test_order_created_event_written_with_order(self):
        order = await self.use_case(make_order_dto([self.book]))

        events = self.store.tables.outbox
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]["event_type"], "order.created")
        self.assertEqual(events[0]["order_id"], order.id)

    async def test_same_idempotency_key_returns_existing_order(self):
        first = await self.use_case(make_order_dto([self.book], idempotency_key="retry-me"))
        second = await self.use_case(make_order_dto([self.book], idempotency_key="retry-me"))

        self.assertEqual(first.id, second.id)
        self.assertEqual(len(self.store.tables.orders), 1)
        self.assertEqual(len(self.store.tables.notifications), 1)

    async def test_free_order_is_validated_without_notification(self):
        free_book = self.store.add_book(id="free-1", title="O Alienista", price=0)

        order = await self.use_case(make_order_dto([free_book], idempotency_key="free"))

        self.assertEqual(order.status, OrderStatus.VALIDATED)
        self.assertIsNone(order.payment_notification_id)
        self.assertEqual(self.store.tables.notifications, {})
        self.assertEqual(self.store.tables.stats["free-1"].copies_sold, 1)

    async def test_reference_format(self):
        order = await self.use_case(make_order_dto([self.book]))

        self.assertRegex(order.reference, r"^BK-[A-Z0-9]{8}$")
        self.assertTrue(re.match(r"^BK-[A-Z0-9]{8}$", generate_order_reference()))

    async def test_reference_collision_is_retried(self):
        await self.use_case(make_order_dto([self.book], idempotency_key="first"))
        taken = next(iter(self.store.tables.orders.values())).reference

        with patch(
            "storefront.application.create_order.generate_order_reference",
            side_effect=[taken, "BK-NEWREF01"]
        ):
            order = await self.use_case(make_order_dto([self.book], idempotency_key="second"))

        self.assertEqual(order.reference, "BK-NEWREF01")
        self.assertEqual(len(self.store.tables.orders), 2)

    async def test_invalid_input_is_rejected_without_side_effects(self):
        cases = [
            make_order_dto([]),
            make_order_dto([self.book], customer_name="  "),
            make_order_dto([self.book], total=1),
            make_order_dto([self.book], status=OrderStatus.VALIDATED),
            make_order_dto([self.book], quantities={"book-1": 0}),
            make_order_dto([self.book], idempotency_key=""),
        ]
        for dto in cases:
            with self.subTest(dto=dto):
                with self.assertRaises(ValidationError):
                    await self.use_case(dto)

        self.assertEqual(self.store.tables.orders, {})
        self.assertEqual(self.store.commits, 0)

    def test_malformed_email_never_reaches_the_use_case(self):
        for email in ("not-an-email", "reader@...", "reader@.com.", "a@b..c", "ana@"):
            with self.subTest(email=email):
                with self.assertRaises(pydantic.ValidationError):
                    make_order_dto([self.book], customer_email=email)

        self.assertEqual(self.store.tables.orders, {})

    async def test_negative_price_is_rejected(self):
        dto = make_order_dto([self.book])
        dto.cart.lines[0].unit_price = -1
        dto.total = -1

        with self.assertRaises(ValidationError):
            await self.use_case(dto)

    async def test_unknown_book(self):
        ghost = make_book(id="ghost")

        with self.assertRaises(BookNotFoundError):
            await self.use_case(make_order_dto([ghost]))
        self.assertEqual(self.store.tables.orders, {})

    async def test_price_changed_since_cart_was_built(self):
        dto = make_order_dto([self.book])
        self.store.tables.books["book-1"].price = 3000

        with self.assertRaises(ValidationError):
            await self.use_case(dto)

    async def test_physical_book_out_of_stock(self):
        paper = self.store.add_book(
            id="paper-1", format=BookFormat.PHYSICAL, digital_file_url=None, stock=1
        )

        with self.assertRaises(InsufficientStockError) as ctx:
            await self.use_case(make_order_dto([paper], quantities={"paper-1": 3}))

        self.assertEqual(ctx.exception.available, 1)
        self.assertEqual(ctx.exception.required, 3)
        self.assertEqual(self.store.tables.orders, {})

    async def test_failed_commit_leaves_nothing_behind(self):
        self.store.fail_on_commit = True

        with self.assertRaises(UpstreamUnavailableError):
            await self.use_case(make_order_dto([self.book]))

        self.assertEqual(self.store.tables.orders, {})
        self.assertEqual(self.store.tables.notifications, {})
        self.assertEqual(self.store.tables.outbox, [])


if __name__ == "__main__":
    unittest.main()
