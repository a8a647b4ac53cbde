import logging
import uuid
from datetime import datetime, timezone
from typing import Tuple

from storefront.domain.models import BookStats, Review
from storefront.domain.exceptions import BookNotFoundError, UpstreamUnavailableError, ValidationError

logger = logging.getLogger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating) -> None:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise ValidationError("Rating must be a whole number")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")


async def recompute_rating(uow, book_id: str) -> Tuple[float, int]:
    """Full recompute over every review of the book. Safe to repeat."""
    reviews = await uow.reviews.list_by_book(book_id)
    count = len(reviews)
    average = round(sum(r.rating for r in reviews) / count, 2) if count else 0.0
    await uow.stats.save_rating(book_id, average, count)
    return average, count


class AddBookReviewUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self, book_id: str, user_id: str, user_name: str, rating: int, comment: str = ""
    ) -> Review:
        validate_rating(rating)
        if not user_name.strip():
            raise ValidationError("User name is required")

        async with self._uow() as uow:
            book = await uow.books.get_by_id(book_id)
            if not book:
                raise BookNotFoundError(f"Book {book_id} not found")

            review = Review(
                id=str(uuid.uuid4()),
                book_id=book_id,
                user_id=user_id,
                user_name=user_name.strip(),
                rating=rating,
                comment=comment,
                created_at=datetime.now(timezone.utc)
            )
            await uow.reviews.create(review)
            average, count = await recompute_rating(uow, book_id)
            await uow.commit()

        logger.info(f"Review added to book {book_id}: average {average} over {count} review(s)")
        return review


class RecomputeBookStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, book_id: str) -> BookStats:
        async with self._uow() as uow:
            await recompute_rating(uow, book_id)
            await uow.commit()

        async with self._uow() as uow:
            return await uow.stats.get(book_id) or BookStats(book_id=book_id)


class RecomputeAllBookStatsUseCase:
    """Periodic job healing ratings left stale by concurrent review writes."""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> int:
        async with self._uow() as uow:
            book_ids = await uow.books.list_ids()

        recomputed = 0
        for book_id in book_ids:
            try:
                async with self._uow() as uow:
                    await recompute_rating(uow, book_id)
                    await uow.commit()
                recomputed += 1
            except UpstreamUnavailableError as e:
                logger.error(f"Stats recompute failed for book {book_id}: {e}")
        return recomputed


class IncrementBookViewUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, book_id: str) -> bool:
        """Best effort: a lost or duplicated view is acceptable."""
        try:
            async with self._uow() as uow:
                if not await uow.books.get_by_id(book_id):
                    raise BookNotFoundError(f"Book {book_id} not found")
                await uow.stats.increment_views(book_id)
                await uow.commit()
            return True
        except UpstreamUnavailableError as e:
            logger.warning(f"View of book {book_id} not counted: {e}")
            return False


class GetBookStatsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, book_id: str) -> BookStats:
        async with self._uow() as uow:
            if not await uow.books.get_by_id(book_id):
                raise BookNotFoundError(f"Book {book_id} not found")
            return await uow.stats.get(book_id) or BookStats(book_id=book_id)
