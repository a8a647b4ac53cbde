from datetime import datetime
from typing import List
from pydantic import BaseModel

from storefront.domain.models import PaymentStatus


class AdminStats(BaseModel):
    total_books: int
    pending_payments: int
    pending_reviews: int
    revenue: int


class AuthorStats(BaseModel):
    published_books: int
    total_sales: int
    total_royalties: int


class AuthorSale(BaseModel):
    notification_id: str
    order_id: str
    book_id: str
    book_title: str
    quantity: int
    unit_price: int
    total: int
    royalty: int
    date: datetime
    reader_name: str


class GetAdminStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> AdminStats:
        async with self._uow() as uow:
            total_books = await uow.books.count()
            pending = await uow.notifications.list_all(status=PaymentStatus.PENDING)
            awaiting_review = await uow.notifications.list_all(status=PaymentStatus.PROOF_UPLOADED)
            confirmed = await uow.notifications.list_all(status=PaymentStatus.CONFIRMED)

        return AdminStats(
            total_books=total_books,
            pending_payments=len(pending),
            pending_reviews=len(awaiting_review),
            revenue=sum(n.total_amount for n in confirmed)
        )


class ListAuthorSalesUseCase:
    """One row per confirmed item written by the author."""

    def __init__(self, unit_of_work, royalty_rate: float = 0.7):
        self._uow = unit_of_work
        self._royalty_rate = royalty_rate

    async def __call__(self, author_id: str) -> List[AuthorSale]:
        async with self._uow() as uow:
            confirmed = await uow.notifications.list_all(status=PaymentStatus.CONFIRMED)

        sales = []
        for notification in confirmed:
            for item in notification.items:
                if item.author_id != author_id:
                    continue
                sales.append(
                    AuthorSale(
                        notification_id=notification.id,
                        order_id=notification.order_id,
                        book_id=item.book_id,
                        book_title=item.title,
                        quantity=item.quantity,
                        unit_price=item.unit_price,
                        total=item.subtotal,
                        royalty=round(item.subtotal * self._royalty_rate),
                        date=notification.created_at,
                        reader_name=notification.reader_name
                    )
                )
        return sales


class GetAuthorStatsUseCase:
    def __init__(self, unit_of_work, royalty_rate: float = 0.7):
        self._uow = unit_of_work
        self._royalty_rate = royalty_rate
        self._list_sales = ListAuthorSalesUseCase(unit_of_work, royalty_rate)

    async def __call__(self, author_id: str) -> AuthorStats:
        async with self._uow() as uow:
            published_books = await uow.books.count(author_id=author_id)

        sales = await self._list_sales(author_id)
        revenue = sum(sale.total for sale in sales)
        return AuthorStats(
            published_books=published_books,
            total_sales=sum(sale.quantity for sale in sales),
            total_royalties=round(revenue * self._royalty_rate)
        )
