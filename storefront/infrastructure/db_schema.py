from sqlalchemy import (
    Table, Column, String, Integer, Float, Boolean, Enum, DateTime, JSON, MetaData, Text
)
from sqlalchemy.sql import func

from storefront.domain.models import BookFormat, OrderStatus, PaymentStatus

metadata = MetaData()


def _values(enum_cls):
    return [member.value for member in enum_cls]


books_tbl = Table(
    "books",
    metadata,
    Column("id", String, primary_key=True),
    Column("title", String, nullable=False),
    Column("author", String, nullable=False, default=""),
    Column("author_id", String, nullable=True, index=True),
    Column("price", Integer, nullable=False),
    Column("format", Enum(BookFormat, values_callable=_values, name="book_format"), nullable=False),
    Column("digital_file_url", String, nullable=True),
    Column("stock", Integer, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


bank_accounts_tbl = Table(
    "bank_accounts",
    metadata,
    Column("id", String, primary_key=True),
    Column("author_id", String, nullable=False, index=True),
    Column("bank_name", String, nullable=False),
    Column("account_number", String, nullable=False),
    Column("iban", String, nullable=False),
    Column("is_primary", Boolean, nullable=False, default=False),
    Column("label", String, nullable=True)
)


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", String, primary_key=True),
    Column("reference", String, unique=True, nullable=False),
    Column("customer_name", String, nullable=False),
    Column("customer_email", String, nullable=False),
    Column("customer_id", String, nullable=False, index=True),
    Column("items", JSON, nullable=False),
    Column("total", Integer, nullable=False),
    Column("status", Enum(OrderStatus, values_callable=_values, name="order_status"), default=OrderStatus.PENDING),
    Column("idempotency_key", String, unique=True, index=True),
    Column("payment_notification_id", String, nullable=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


payment_notifications_tbl = Table(
    "payment_notifications",
    metadata,
    Column("id", String, primary_key=True),
    Column("order_id", String, unique=True, nullable=False),
    Column("reader_id", String, nullable=False, index=True),
    Column("reader_name", String, nullable=False),
    Column("reader_email", String, nullable=False),
    Column("items", JSON, nullable=False),
    Column("total_amount", Integer, nullable=False),
    Column(
        "status",
        Enum(PaymentStatus, values_callable=_values, name="payment_status"),
        default=PaymentStatus.PENDING,
        index=True
    ),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
    Column("updated_at", DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
)


payment_proofs_tbl = Table(
    "payment_proofs",
    metadata,
    Column("id", String, primary_key=True),
    Column("notification_id", String, unique=True, nullable=False),
    Column("reader_id", String, nullable=False),
    Column("file_url", String, nullable=False),
    Column("file_name", String, nullable=False),
    Column("file_id", String, nullable=True),
    Column("uploaded_at", DateTime(timezone=True), server_default=func.now()),
    Column("confirmed_by", String, nullable=True),
    Column("confirmed_at", DateTime(timezone=True), nullable=True),
    Column("notes", Text, nullable=True)
)


reviews_tbl = Table(
    "reviews",
    metadata,
    Column("id", String, primary_key=True),
    Column("book_id", String, nullable=False, index=True),
    Column("user_id", String, nullable=False),
    Column("user_name", String, nullable=False),
    Column("rating", Integer, nullable=False),
    Column("comment", Text, nullable=False, default=""),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)


book_stats_tbl = Table(
    "book_stats",
    metadata,
    Column("book_id", String, primary_key=True),
    Column("views", Integer, nullable=False, default=0),
    Column("average_rating", Float, nullable=False, default=0.0),
    Column("review_count", Integer, nullable=False, default=0),
    Column("copies_sold", Integer, nullable=False, default=0),
    Column("downloads", Integer, nullable=False, default=0)
)


outbox_events_tbl = Table(
    "outbox_events",
    metadata,
    Column("id", String, primary_key=True),
    Column("event_type", String, nullable=False),
    Column("event_data", JSON, nullable=False),
    Column("order_id", String, nullable=False),
    Column("status", String, default="pending"),
    Column("created_at", DateTime(timezone=True), server_default=func.now())
)
