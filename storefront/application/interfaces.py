from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List

from storefront.domain.models import (
    Book, BankAccount, BookStats, Order, OrderStatus, PaymentNotification,
    PaymentProof, PaymentStatus, ProofFile, Review, StoredFile
)


class BookRepository(ABC):
    @abstractmethod
    async def get_by_id(self, book_id: str) -> Optional[Book]:
        pass

    @abstractmethod
    async def get_by_ids(self, book_ids: List[str]) -> List[Book]:
        pass

    @abstractmethod
    async def list_ids(self) -> List[str]:
        pass

    @abstractmethod
    async def count(self, author_id: Optional[str] = None) -> int:
        pass


class BankAccountRepository(ABC):
    @abstractmethod
    async def get_primary_for_author(self, author_id: str) -> Optional[BankAccount]:
        pass


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def create(self, order: Order) -> None:
        pass

    @abstractmethod
    async def update_status(self, order_id: str, status: OrderStatus) -> None:
        pass

    @abstractmethod
    async def link_notification(self, order_id: str, notification_id: str) -> None:
        pass

    @abstractmethod
    async def list_by_customer(self, customer_id: str) -> List[Order]:
        pass

    @abstractmethod
    async def list_all(self) -> List[Order]:
        pass


class PaymentNotificationRepository(ABC):
    @abstractmethod
    async def get_by_id(self, notification_id: str) -> Optional[PaymentNotification]:
        pass

    @abstractmethod
    async def create(self, notification: PaymentNotification) -> None:
        pass

    @abstractmethod
    async def update_status(
        self, notification_id: str, expected: PaymentStatus, new_status: PaymentStatus
    ) -> bool:
        """Writes new_status only if the stored status still equals expected"""
        pass

    @abstractmethod
    async def list_by_reader(self, reader_id: str, status: Optional[PaymentStatus] = None) -> List[PaymentNotification]:
        pass

    @abstractmethod
    async def list_all(self, status: Optional[PaymentStatus] = None) -> List[PaymentNotification]:
        pass


class PaymentProofRepository(ABC):
    @abstractmethod
    async def create(self, proof: PaymentProof) -> None:
        pass

    @abstractmethod
    async def get_by_notification(self, notification_id: str) -> Optional[PaymentProof]:
        pass

    @abstractmethod
    async def record_review(
        self, proof_id: str, reviewed_by: Optional[str], reviewed_at: Optional[datetime], notes: Optional[str]
    ) -> None:
        pass


class ReviewRepository(ABC):
    @abstractmethod
    async def create(self, review: Review) -> None:
        pass

    @abstractmethod
    async def list_by_book(self, book_id: str) -> List[Review]:
        pass


class BookStatsRepository(ABC):
    @abstractmethod
    async def get(self, book_id: str) -> Optional[BookStats]:
        pass

    @abstractmethod
    async def increment_views(self, book_id: str) -> None:
        pass

    @abstractmethod
    async def increment_copies_sold(self, book_id: str, quantity: int) -> None:
        pass

    @abstractmethod
    async def increment_downloads(self, book_id: str) -> None:
        pass

    @abstractmethod
    async def save_rating(self, book_id: str, average_rating: float, review_count: int) -> None:
        pass


class OutboxRepository(ABC):
    @abstractmethod
    async def create(self, event_type: str, event_data: dict, order_id: str) -> str:
        pass

    @abstractmethod
    async def get_pending(self, limit: int = 10) -> List[dict]:
        pass

    @abstractmethod
    async def mark_as_published(self, event_id: str) -> None:
        pass


class UnitOfWork(ABC):
    @property
    @abstractmethod
    def books(self) -> BookRepository:
        pass

    @property
    @abstractmethod
    def bank_accounts(self) -> BankAccountRepository:
        pass

    @property
    @abstractmethod
    def orders(self) -> OrderRepository:
        pass

    @property
    @abstractmethod
    def notifications(self) -> PaymentNotificationRepository:
        pass

    @property
    @abstractmethod
    def proofs(self) -> PaymentProofRepository:
        pass

    @property
    @abstractmethod
    def reviews(self) -> ReviewRepository:
        pass

    @property
    @abstractmethod
    def stats(self) -> BookStatsRepository:
        pass

    @property
    @abstractmethod
    def outbox(self) -> OutboxRepository:
        pass

    @abstractmethod
    async def __call__(self):
        pass

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass


class StorageService(ABC):
    @abstractmethod
    async def upload(self, file: ProofFile) -> StoredFile:
        pass

    @abstractmethod
    async def delete(self, file_id: str) -> None:
        pass


class EventPublisher(ABC):
    @abstractmethod
    async def publish(self, event_type: str, event_data: dict, key: str) -> bool:
        pass
