import asyncio
import logging
from contextlib import asynccontextmanager
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storefront.domain.exceptions import DuplicateRecordError, UpstreamUnavailableError
from storefront.infrastructure.repositories import (
    SQLAlchemyBookRepository,
    SQLAlchemyBankAccountRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyPaymentNotificationRepository,
    SQLAlchemyPaymentProofRepository,
    SQLAlchemyReviewRepository,
    SQLAlchemyBookStatsRepository,
    SQLAlchemyOutboxRepository
)

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def __call__(self):
        async with self._session_factory() as session:
            try:
                uow_impl = _UnitOfWorkImpl(session)
                yield uow_impl
                # no commit called: discard
                await session.rollback()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateRecordError(str(e.orig)) from e
            except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
                await session.rollback()
                logger.error(f"Database unavailable: {e}")
                raise UpstreamUnavailableError("Database unavailable, please retry") from e
            except Exception:
                await session.rollback()
                raise


class _UnitOfWorkImpl:
    def __init__(self, session: AsyncSession):
        self._session = session
        self.books = SQLAlchemyBookRepository(session)
        self.bank_accounts = SQLAlchemyBankAccountRepository(session)
        self.orders = SQLAlchemyOrderRepository(session)
        self.notifications = SQLAlchemyPaymentNotificationRepository(session)
        self.proofs = SQLAlchemyPaymentProofRepository(session)
        self.reviews = SQLAlchemyReviewRepository(session)
        self.stats = SQLAlchemyBookStatsRepository(session)
        self.outbox = SQLAlchemyOutboxRepository(session)

    async def commit(self):
        await self._session.commit()

    async def rollback(self):
        await self._session.rollback()
