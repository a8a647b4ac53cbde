from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import Any, List, Optional

from storefront.domain.models import (
    Cart, CartLine, OrderItem, OrderStatus, NotificationItem, PaymentStatus
)


class CartLineRequest(BaseModel):
    book_id: str
    title: str = ""
    quantity: int
    unit_price: int
    author_id: Optional[str] = None


class CreateOrderRequest(BaseModel):
    customer_name: str
    customer_email: EmailStr
    items: List[CartLineRequest]
    total: int
    status: OrderStatus = OrderStatus.PENDING
    date: Optional[datetime] = None
    idempotency_key: str = Field(..., description="Client-generated request id, reused on retries")

    def to_cart(self) -> Cart:
        return Cart(lines=[CartLine(**line.model_dump()) for line in self.items])


class OrderResponse(BaseModel):
    id: str
    reference: str
    customer_name: str
    customer_email: str
    customer_id: str
    items: List[OrderItem]
    total: int
    status: OrderStatus
    payment_notification_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, order):
        return cls(
            id=order.id,
            reference=order.reference,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_id=order.customer_id,
            items=order.items,
            total=order.total,
            status=order.status,
            payment_notification_id=order.payment_notification_id,
            created_at=order.created_at,
            updated_at=order.updated_at
        )


class NotificationResponse(BaseModel):
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

    @classmethod
    def from_domain(cls, notification):
        return cls(
            id=notification.id,
            order_id=notification.order_id,
            reader_id=notification.reader_id,
            reader_name=notification.reader_name,
            reader_email=notification.reader_email,
            items=notification.items,
            total_amount=notification.total_amount,
            status=notification.status,
            created_at=notification.created_at,
            updated_at=notification.updated_at
        )


class ProofResponse(BaseModel):
    id: str
    notification_id: str
    reader_id: str
    file_url: str
    file_name: str
    uploaded_at: datetime
    confirmed_by: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, proof):
        return cls(
            id=proof.id,
            notification_id=proof.notification_id,
            reader_id=proof.reader_id,
            file_url=proof.file_url,
            file_name=proof.file_name,
            uploaded_at=proof.uploaded_at,
            confirmed_by=proof.confirmed_by,
            confirmed_at=proof.confirmed_at,
            notes=proof.notes
        )


class UpdateNotificationStatusRequest(BaseModel):
    status: PaymentStatus
    notes: Optional[str] = None


class AccessResponse(BaseModel):
    book_id: str
    can_download: bool


class DownloadResponse(BaseModel):
    book_id: str
    url: str


class ReviewRequest(BaseModel):
    rating: Any = None
    comment: str = ""
    user_name: Optional[str] = None


class ReviewResponse(BaseModel):
    id: str
    book_id: str
    user_id: str
    user_name: str
    rating: int
    comment: str
    created_at: datetime


class ViewResponse(BaseModel):
    book_id: str
    counted: bool


class ErrorResponse(BaseModel):
    detail: str
