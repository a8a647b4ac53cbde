import logging
import secrets
import string
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional
from pydantic import BaseModel, EmailStr

from storefront.domain.models import (
    Book, BookFormat, Cart, NotificationItem, Order, OrderItem, OrderStatus,
    PaymentNotification, PaymentStatus
)
from storefront.domain.exceptions import (
    BookNotFoundError, DuplicateRecordError, InsufficientStockError,
    UpstreamUnavailableError, ValidationError
)
from storefront.application.interfaces import UnitOfWork


logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
REFERENCE_LENGTH = 8
MAX_REFERENCE_ATTEMPTS = 3


def generate_order_reference() -> str:
    return "BK-" + "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))


class CreateOrderDTO(BaseModel):
    customer_name: str
    customer_email: EmailStr
    customer_id: str
    cart: Cart
    total: int
    status: OrderStatus = OrderStatus.PENDING
    date: Optional[datetime] = None
    idempotency_key: str


class CreateOrderUseCase:
    def __init__(self, unit_of_work, store_iban: str = ""):
        self._uow = unit_of_work
        self._store_iban = store_iban

    async def __call__(self, order_data: CreateOrderDTO) -> Order:
        logger.info(
            f"Creating order for customer {order_data.customer_id}, "
            f"{len(order_data.cart.lines)} line(s), total {order_data.total}"
        )
        self._validate(order_data)

        # 1. Idempotency check
        async with self._uow() as uow:
            existing = await uow.orders.get_by_idempotency_key(order_data.idempotency_key)
            if existing:
                logger.info(f"Order already exists for this request: {existing.id}")
                return existing

        # 2. Order + notification as one unit
        for attempt in range(MAX_REFERENCE_ATTEMPTS):
            try:
                return await self._create(order_data)
            except DuplicateRecordError:
                async with self._uow() as uow:
                    existing = await uow.orders.get_by_idempotency_key(order_data.idempotency_key)
                if existing:
                    logger.info(f"Concurrent submission resolved to order {existing.id}")
                    return existing
                logger.warning(f"Order reference collision, retrying (attempt {attempt + 1})")

        raise UpstreamUnavailableError("Could not allocate an order reference, please retry")

    def _validate(self, order_data: CreateOrderDTO) -> None:
        if not order_data.customer_name.strip():
            raise ValidationError("Customer name is required")
        if not order_data.idempotency_key.strip():
            raise ValidationError("Idempotency key is required")
        if order_data.status != OrderStatus.PENDING:
            raise ValidationError(f"New orders must be '{OrderStatus.PENDING.value}'")

        cart = order_data.cart
        if cart.is_empty():
            raise ValidationError("Cart is empty")
        for line in cart.lines:
            if line.quantity < 1:
                raise ValidationError(f"Invalid quantity {line.quantity} for book {line.book_id}")
            if line.unit_price < 0:
                raise ValidationError(f"Invalid price {line.unit_price} for book {line.book_id}")
        if cart.total != order_data.total:
            raise ValidationError(
                f"Order total {order_data.total} does not match cart total {cart.total}"
            )

    def _check_against_catalog(self, cart: Cart, books: Dict[str, Book]) -> None:
        for line in cart.lines:
            book = books.get(line.book_id)
            if not book:
                raise BookNotFoundError(f"Book {line.book_id} not found")
            if book.price != line.unit_price:
                raise ValidationError(
                    f"Price of '{book.title}' changed to {book.price}, please refresh your cart"
                )
            if book.format == BookFormat.PHYSICAL and book.stock is not None and book.stock < line.quantity:
                raise InsufficientStockError(book.id, book.stock, line.quantity)

    async def _bank_destinations(self, uow, author_ids: List[Optional[str]]) -> Dict[Optional[str], str]:
        destinations = {}
        for author_id in set(author_ids):
            account = await uow.bank_accounts.get_primary_for_author(author_id) if author_id else None
            destinations[author_id] = account.iban if account else self._store_iban
        return destinations

    async def _create(self, order_data: CreateOrderDTO) -> Order:
        cart = order_data.cart
        async with self._uow() as uow:
            books = await uow.books.get_by_ids([line.book_id for line in cart.lines])
            books_by_id = {book.id: book for book in books}
            self._check_against_catalog(cart, books_by_id)

            items = [
                OrderItem(
                    book_id=line.book_id,
                    title=books_by_id[line.book_id].title,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    author_id=books_by_id[line.book_id].author_id or line.author_id
                )
                for line in cart.lines
            ]
            now = datetime.now(timezone.utc)
            is_free = order_data.total == 0
            order = Order(
                id=str(uuid.uuid4()),
                reference=generate_order_reference(),
                customer_name=order_data.customer_name.strip(),
                customer_email=order_data.customer_email,
                customer_id=order_data.customer_id,
                items=items,
                total=order_data.total,
                status=OrderStatus.VALIDATED if is_free else OrderStatus.PENDING,
                idempotency_key=order_data.idempotency_key,
                created_at=order_data.date or now,
                updated_at=now
            )
            await uow.orders.create(order)

            if is_free:
                # nothing to reconcile, the books are unlocked right away
                for item in items:
                    await uow.stats.increment_copies_sold(item.book_id, item.quantity)
            else:
                destinations = await self._bank_destinations(uow, [item.author_id for item in items])
                notification = PaymentNotification(
                    id=str(uuid.uuid4()),
                    order_id=order.id,
                    reader_id=order.customer_id,
                    reader_name=order.customer_name,
                    reader_email=order.customer_email,
                    items=[
                        NotificationItem(
                            **item.model_dump(),
                            bank_destination=destinations[item.author_id]
                        )
                        for item in items
                    ],
                    total_amount=order.total,
                    status=PaymentStatus.PENDING,
                    created_at=now,
                    updated_at=now
                )
                await uow.notifications.create(notification)
                await uow.orders.link_notification(order.id, notification.id)
                order.payment_notification_id = notification.id

            await uow.outbox.create(
                event_type="order.created",
                event_data={
                    "order_id": order.id,
                    "reference": order.reference,
                    "customer_id": order.customer_id,
                    "total": order.total,
                    "payment_notification_id": order.payment_notification_id
                },
                order_id=order.id
            )
            await uow.commit()

        logger.info(
            f"Order created: {order.id} ({order.reference}), "
            f"notification: {order.payment_notification_id or 'none, free order'}"
        )
        return order
