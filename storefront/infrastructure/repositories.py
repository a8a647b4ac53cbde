import uuid
from typing import Optional, List
from datetime import datetime, timezone
from sqlalchemy import select, insert, update, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.domain.models import (
    Book, BookFormat, BankAccount, BookStats, Order, OrderItem, OrderStatus,
    PaymentNotification, NotificationItem, PaymentProof, PaymentStatus, Review
)
from storefront.infrastructure.db_schema import (
    books_tbl, bank_accounts_tbl, orders_tbl, payment_notifications_tbl,
    payment_proofs_tbl, reviews_tbl, book_stats_tbl, outbox_events_tbl
)
from storefront.application.interfaces import (
    BookRepository, BankAccountRepository, OrderRepository, PaymentNotificationRepository,
    PaymentProofRepository, ReviewRepository, BookStatsRepository, OutboxRepository
)


class SQLAlchemyBookRepository(BookRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, book_id: str) -> Optional[Book]:
        result = await self._session.execute(
            select(books_tbl).where(books_tbl.c.id == book_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_ids(self, book_ids: List[str]) -> List[Book]:
        if not book_ids:
            return []
        result = await self._session.execute(
            select(books_tbl).where(books_tbl.c.id.in_(book_ids))
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_ids(self) -> List[str]:
        result = await self._session.execute(select(books_tbl.c.id))
        return [row.id for row in result.fetchall()]

    async def count(self, author_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(books_tbl)
        if author_id is not None:
            stmt = stmt.where(books_tbl.c.author_id == author_id)
        result = await self._session.execute(stmt)
        return result.scalar_one()

    def _to_domain(self, row) -> Book:
        return Book(
            id=row.id,
            title=row.title,
            author=row.author,
            author_id=row.author_id,
            price=row.price,
            format=BookFormat(row.format),
            digital_file_url=row.digital_file_url,
            stock=row.stock
        )


class SQLAlchemyBankAccountRepository(BankAccountRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_primary_for_author(self, author_id: str) -> Optional[BankAccount]:
        result = await self._session.execute(
            select(bank_accounts_tbl)
            .where(
                bank_accounts_tbl.c.author_id == author_id,
                bank_accounts_tbl.c.is_primary.is_(True)
            )
            .limit(1)
        )
        row = result.fetchone()
        if not row:
            return None
        return BankAccount(
            id=row.id,
            author_id=row.author_id,
            bank_name=row.bank_name,
            account_number=row.account_number,
            iban=row.iban,
            is_primary=row.is_primary,
            label=row.label
        )


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.idempotency_key == key)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, order: Order) -> None:
        stmt = insert(orders_tbl).values(
            id=order.id,
            reference=order.reference,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_id=order.customer_id,
            items=[item.model_dump() for item in order.items],
            total=order.total,
            status=order.status,
            idempotency_key=order.idempotency_key,
            payment_notification_id=order.payment_notification_id,
            created_at=order.created_at,
            updated_at=order.updated_at
        )
        await self._session.execute(stmt)

    async def update_status(self, order_id: str, status: OrderStatus) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                status=status,
                updated_at=datetime.now(timezone.utc)
            )
        )
        await self._session.execute(stmt)

    async def link_notification(self, order_id: str, notification_id: str) -> None:
        stmt = (
            update(orders_tbl)
            .where(orders_tbl.c.id == order_id)
            .values(
                payment_notification_id=notification_id,
                updated_at=datetime.now(timezone.utc)
            )
        )
        await self._session.execute(stmt)

    async def list_by_customer(self, customer_id: str) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl)
            .where(orders_tbl.c.customer_id == customer_id)
            .order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self) -> List[Order]:
        result = await self._session.execute(
            select(orders_tbl).order_by(orders_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    def _to_domain(self, row) -> Order:
        """DB row to domain entity"""
        return Order(
            id=row.id,
            reference=row.reference,
            customer_name=row.customer_name,
            customer_email=row.customer_email,
            customer_id=row.customer_id,
            items=[OrderItem(**item) for item in row.items],
            total=row.total,
            status=OrderStatus(row.status),
            idempotency_key=row.idempotency_key,
            payment_notification_id=row.payment_notification_id,
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyPaymentNotificationRepository(PaymentNotificationRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, notification_id: str) -> Optional[PaymentNotification]:
        result = await self._session.execute(
            select(payment_notifications_tbl).where(payment_notifications_tbl.c.id == notification_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def create(self, notification: PaymentNotification) -> None:
        stmt = insert(payment_notifications_tbl).values(
            id=notification.id,
            order_id=notification.order_id,
            reader_id=notification.reader_id,
            reader_name=notification.reader_name,
            reader_email=notification.reader_email,
            items=[item.model_dump() for item in notification.items],
            total_amount=notification.total_amount,
            status=notification.status,
            created_at=notification.created_at,
            updated_at=notification.updated_at
        )
        await self._session.execute(stmt)

    async def update_status(
        self, notification_id: str, expected: PaymentStatus, new_status: PaymentStatus
    ) -> bool:
        stmt = (
            update(payment_notifications_tbl)
            .where(
                payment_notifications_tbl.c.id == notification_id,
                payment_notifications_tbl.c.status == expected
            )
            .values(
                status=new_status,
                updated_at=datetime.now(timezone.utc)
            )
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1

    async def list_by_reader(self, reader_id: str, status: Optional[PaymentStatus] = None) -> List[PaymentNotification]:
        stmt = select(payment_notifications_tbl).where(payment_notifications_tbl.c.reader_id == reader_id)
        if status is not None:
            stmt = stmt.where(payment_notifications_tbl.c.status == status)
        result = await self._session.execute(
            stmt.order_by(payment_notifications_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    async def list_all(self, status: Optional[PaymentStatus] = None) -> List[PaymentNotification]:
        stmt = select(payment_notifications_tbl)
        if status is not None:
            stmt = stmt.where(payment_notifications_tbl.c.status == status)
        result = await self._session.execute(
            stmt.order_by(payment_notifications_tbl.c.created_at.desc())
        )
        return [self._to_domain(row) for row in result.fetchall()]

    def _to_domain(self, row) -> PaymentNotification:
        return PaymentNotification(
            id=row.id,
            order_id=row.order_id,
            reader_id=row.reader_id,
            reader_name=row.reader_name,
            reader_email=row.reader_email,
            items=[NotificationItem(**item) for item in row.items],
            total_amount=row.total_amount,
            status=PaymentStatus(row.status),
            created_at=row.created_at,
            updated_at=row.updated_at
        )


class SQLAlchemyPaymentProofRepository(PaymentProofRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, proof: PaymentProof) -> None:
        stmt = insert(payment_proofs_tbl).values(
            id=proof.id,
            notification_id=proof.notification_id,
            reader_id=proof.reader_id,
            file_url=proof.file_url,
            file_name=proof.file_name,
            file_id=proof.file_id,
            uploaded_at=proof.uploaded_at,
            confirmed_by=proof.confirmed_by,
            confirmed_at=proof.confirmed_at,
            notes=proof.notes
        )
        await self._session.execute(stmt)

    async def get_by_notification(self, notification_id: str) -> Optional[PaymentProof]:
        result = await self._session.execute(
            select(payment_proofs_tbl)
            .where(payment_proofs_tbl.c.notification_id == notification_id)
            .order_by(payment_proofs_tbl.c.uploaded_at.desc())
            .limit(1)
        )
        row = result.fetchone()
        if not row:
            return None
        return PaymentProof(
            id=row.id,
            notification_id=row.notification_id,
            reader_id=row.reader_id,
            file_url=row.file_url,
            file_name=row.file_name,
            file_id=row.file_id,
            uploaded_at=row.uploaded_at,
            confirmed_by=row.confirmed_by,
            confirmed_at=row.confirmed_at,
            notes=row.notes
        )

    async def record_review(
        self, proof_id: str, reviewed_by: Optional[str], reviewed_at: Optional[datetime], notes: Optional[str]
    ) -> None:
        stmt = (
            update(payment_proofs_tbl)
            .where(payment_proofs_tbl.c.id == proof_id)
            .values(
                confirmed_by=reviewed_by,
                confirmed_at=reviewed_at,
                notes=notes
            )
        )
        await self._session.execute(stmt)


class SQLAlchemyReviewRepository(ReviewRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, review: Review) -> None:
        stmt = insert(reviews_tbl).values(
            id=review.id,
            book_id=review.book_id,
            user_id=review.user_id,
            user_name=review.user_name,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at
        )
        await self._session.execute(stmt)

    async def list_by_book(self, book_id: str) -> List[Review]:
        result = await self._session.execute(
            select(reviews_tbl)
            .where(reviews_tbl.c.book_id == book_id)
            .order_by(reviews_tbl.c.created_at.desc())
        )
        return [
            Review(
                id=row.id,
                book_id=row.book_id,
                user_id=row.user_id,
                user_name=row.user_name,
                rating=row.rating,
                comment=row.comment,
                created_at=row.created_at
            )
            for row in result.fetchall()
        ]


class SQLAlchemyBookStatsRepository(BookStatsRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get(self, book_id: str) -> Optional[BookStats]:
        result = await self._session.execute(
            select(book_stats_tbl).where(book_stats_tbl.c.book_id == book_id)
        )
        row = result.fetchone()
        if not row:
            return None
        return BookStats(
            book_id=row.book_id,
            views=row.views,
            average_rating=row.average_rating,
            review_count=row.review_count,
            copies_sold=row.copies_sold,
            downloads=row.downloads
        )

    async def _increment(self, book_id: str, column: str, amount: int = 1) -> None:
        stmt = (
            pg_insert(book_stats_tbl)
            .values(book_id=book_id, **{column: amount})
            .on_conflict_do_update(
                index_elements=[book_stats_tbl.c.book_id],
                set_={column: book_stats_tbl.c[column] + amount}
            )
        )
        await self._session.execute(stmt)

    async def increment_views(self, book_id: str) -> None:
        await self._increment(book_id, "views")

    async def increment_copies_sold(self, book_id: str, quantity: int) -> None:
        await self._increment(book_id, "copies_sold", quantity)

    async def increment_downloads(self, book_id: str) -> None:
        await self._increment(book_id, "downloads")

    async def save_rating(self, book_id: str, average_rating: float, review_count: int) -> None:
        stmt = (
            pg_insert(book_stats_tbl)
            .values(book_id=book_id, average_rating=average_rating, review_count=review_count)
            .on_conflict_do_update(
                index_elements=[book_stats_tbl.c.book_id],
                set_={"average_rating": average_rating, "review_count": review_count}
            )
        )
        await self._session.execute(stmt)


class SQLAlchemyOutboxRepository(OutboxRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, event_type: str, event_data: dict, order_id: str) -> str:
        event_id = str(uuid.uuid4())
        stmt = insert(outbox_events_tbl).values(
            id=event_id,
            event_type=event_type,
            event_data=event_data,  # the JSON column serializes it
            order_id=order_id,
            status="pending",
            created_at=datetime.now(timezone.utc)
        )
        await self._session.execute(stmt)
        return event_id

    async def get_pending(self, limit: int = 10) -> List[dict]:
        result = await self._session.execute(
            select(outbox_events_tbl)
            .where(outbox_events_tbl.c.status == "pending")
            .order_by(outbox_events_tbl.c.created_at.asc())
            .limit(limit)
        )
        rows = result.fetchall()

        return [
            {
                "id": row.id,
                "event_type": row.event_type,
                "event_data": row.event_data,
                "order_id": row.order_id
            }
            for row in rows
        ]

    async def mark_as_published(self, event_id: str) -> None:
        stmt = (
            update(outbox_events_tbl)
            .where(outbox_events_tbl.c.id == event_id)
            .values(status="published")
        )
        await self._session.execute(stmt)
