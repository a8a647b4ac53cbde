from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field

from storefront.domain.exceptions import InvalidStateTransition


class Role(str, Enum):
    ADMIN = "admin"
    AUTHOR = "author"
    READER = "reader"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Accepts the storefront's legacy role names as well"""
        if not value:
            return cls.READER
        value = value.strip().lower()
        return LEGACY_ROLE_NAMES.get(value) or cls(value)

    def can_review_payments(self) -> bool:
        return self == Role.ADMIN

    def can_see_all_orders(self) -> bool:
        return self == Role.ADMIN


LEGACY_ROLE_NAMES = {
    "adm": Role.ADMIN,
    "autor": Role.AUTHOR,
    "leitor": Role.READER,
}


class BookFormat(str, Enum):
    PHYSICAL = "físico"
    DIGITAL = "digital"


class OrderStatus(str, Enum):
    PENDING = "Pendente"
    VALIDATED = "Validado"
    CANCELLED = "Cancelado"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROOF_UPLOADED = "proof_uploaded"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS = {
    PaymentStatus.PENDING: [PaymentStatus.PROOF_UPLOADED, PaymentStatus.CANCELLED],
    PaymentStatus.PROOF_UPLOADED: [PaymentStatus.CONFIRMED, PaymentStatus.REJECTED, PaymentStatus.CANCELLED],
    PaymentStatus.CONFIRMED: [],
    PaymentStatus.REJECTED: [],
    PaymentStatus.CANCELLED: [],
}

# Order status mirrored from the notification's final state
ORDER_STATUS_FOR_PAYMENT = {
    PaymentStatus.CONFIRMED: OrderStatus.VALIDATED,
    PaymentStatus.REJECTED: OrderStatus.CANCELLED,
    PaymentStatus.CANCELLED: OrderStatus.CANCELLED,
}


class Identity(BaseModel):
    """Authenticated user as forwarded by the identity provider"""
    user_id: str
    name: str = ""
    email: str = ""
    role: Role = Role.READER


class Book(BaseModel):
    """Catalog record, read-only for this service"""
    id: str
    title: str
    author: str = ""
    author_id: Optional[str] = None
    price: int
    format: BookFormat
    digital_file_url: Optional[str] = None
    stock: Optional[int] = None

    @property
    def is_downloadable(self) -> bool:
        return self.format == BookFormat.DIGITAL and bool(self.digital_file_url)


class BankAccount(BaseModel):
    id: str
    author_id: str
    bank_name: str
    account_number: str
    iban: str
    is_primary: bool = False
    label: Optional[str] = None


class CartLine(BaseModel):
    book_id: str
    title: str
    quantity: int
    unit_price: int
    author_id: Optional[str] = None

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


class Cart(BaseModel):
    """Value object: snapshot of the customer's cart at checkout"""
    lines: List[CartLine] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(line.subtotal for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines


class OrderItem(BaseModel):
    book_id: str
    title: str
    quantity: int
    unit_price: int
    author_id: Optional[str] = None


class Order(BaseModel):
    """Domain Entity: checkout submission"""
    id: str
    reference: str
    customer_name: str
    customer_email: str
    customer_id: str
    items: List[OrderItem]
    total: int
    status: OrderStatus
    idempotency_key: str
    payment_notification_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    def contains_book(self, book_id: str) -> bool:
        return any(item.book_id == book_id for item in self.items)

    def has_free_line(self, book_id: str) -> bool:
        """The book was part of this order at no cost"""
        if self.status == OrderStatus.CANCELLED:
            return False
        return any(item.book_id == book_id and item.unit_price == 0 for item in self.items)


class NotificationItem(BaseModel):
    book_id: str
    title: str
    quantity: int
    unit_price: int
    author_id: Optional[str] = None
    bank_destination: str = ""

    @property
    def subtotal(self) -> int:
        return self.unit_price * self.quantity


class PaymentNotification(BaseModel):
    """Domain Entity: manual bank-transfer reconciliation for one order"""
    id: str
    order_id: str
    reader_id: str
    reader_name: str
    reader_email: str
    items: List[NotificationItem]
    total_amount: int
    status: PaymentStatus
    created_at: datetime
    updated_at: datetime

    def can_transition_to(self, target: PaymentStatus) -> bool:
        return target in ALLOWED_TRANSITIONS[self.status]

    def ensure_can_transition_to(self, target: PaymentStatus) -> None:
        if not self.can_transition_to(target):
            raise InvalidStateTransition(self.status.value, target.value)

    def can_receive_proof(self) -> bool:
        """Business rule: proof only for a pending notification"""
        return self.status == PaymentStatus.PENDING

    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]


class PaymentProof(BaseModel):
    id: str
    notification_id: str
    reader_id: str
    file_url: str
    file_name: str
    file_id: Optional[str] = None
    uploaded_at: datetime
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None


class ProofFile(BaseModel):
    """Uploaded file as received from the client"""
    file_name: str
    content_type: str
    content: bytes


class StoredFile(BaseModel):
    """Value Object: file stored by the storage service"""
    file_id: str
    file_url: str


class Review(BaseModel):
    id: str
    book_id: str
    user_id: str
    user_name: str
    rating: int
    comment: str = ""
    created_at: datetime


class BookStats(BaseModel):
    book_id: str
    views: int = 0
    average_rating: float = 0.0
    review_count: int = 0
    copies_sold: int = 0
    downloads: int = 0
