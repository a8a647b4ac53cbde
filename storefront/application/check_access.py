import logging
from typing import List, Optional

from storefront.domain.models import Book, PaymentStatus, Role
from storefront.domain.exceptions import (
    BookNotFoundError, PermissionDeniedError, UpstreamUnavailableError
)

logger = logging.getLogger(__name__)


async def has_unlocked_book(uow, user_id: str, book_id: str) -> bool:
    """True when one of the user's orders unlocks the book: either its payment
    was confirmed or the book was a free line of a non-cancelled order.
    Confirmation applies to the whole order."""
    orders = await uow.orders.list_by_customer(user_id)
    for order in orders:
        if not order.contains_book(book_id):
            continue
        if order.has_free_line(book_id):
            return True
        if order.payment_notification_id:
            notification = await uow.notifications.get_by_id(order.payment_notification_id)
            if notification and notification.status == PaymentStatus.CONFIRMED:
                return True
    return False


class CheckDownloadAccessUseCase:
    """Read-only gate deciding whether a download link may be revealed."""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self,
        book_id: str,
        user_id: Optional[str] = None,
        book_price: Optional[int] = None,
        role: Role = Role.READER
    ) -> bool:
        async with self._uow() as uow:
            book = None
            if book_price is None:
                book = await self._get_book(uow, book_id)
                book_price = book.price

            if book_price == 0:
                return True
            if not user_id:
                return False
            if role == Role.ADMIN:
                return True
            if role == Role.AUTHOR:
                book = book or await uow.books.get_by_id(book_id)
                if book and book.author_id == user_id:
                    return True

            return await has_unlocked_book(uow, user_id, book_id)

    async def _get_book(self, uow, book_id: str) -> Book:
        book = await uow.books.get_by_id(book_id)
        if not book:
            raise BookNotFoundError(f"Book {book_id} not found")
        return book


class GetDownloadLinkUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work
        self._check_access = CheckDownloadAccessUseCase(unit_of_work)

    async def __call__(self, book_id: str, user_id: Optional[str] = None, role: Role = Role.READER) -> str:
        async with self._uow() as uow:
            book = await uow.books.get_by_id(book_id)
        if not book or not book.is_downloadable:
            raise BookNotFoundError(f"No digital file available for book {book_id}")

        allowed = await self._check_access(book_id, user_id=user_id, book_price=book.price, role=role)
        if not allowed:
            logger.info(f"Download of book {book_id} refused for user {user_id or 'anonymous'}")
            raise PermissionDeniedError("Payment for this book has not been confirmed yet")

        try:
            async with self._uow() as uow:
                await uow.stats.increment_downloads(book_id)
                await uow.commit()
        except UpstreamUnavailableError as e:
            logger.error(f"Could not count download of book {book_id}: {e}")

        return book.digital_file_url


class ListReaderLibraryUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, reader_id: str) -> List[Book]:
        async with self._uow() as uow:
            book_ids = []
            confirmed = await uow.notifications.list_by_reader(reader_id, status=PaymentStatus.CONFIRMED)
            for notification in confirmed:
                book_ids.extend(item.book_id for item in notification.items)

            for order in await uow.orders.list_by_customer(reader_id):
                book_ids.extend(item.book_id for item in order.items if order.has_free_line(item.book_id))

            unique_ids = list(dict.fromkeys(book_ids))
            books = await uow.books.get_by_ids(unique_ids)

        by_id = {book.id: book for book in books}
        return [by_id[book_id] for book_id in unique_ids if book_id in by_id]
