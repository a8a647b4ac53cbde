"""create storefront tables

Revision ID: 3f9a1c2d7e10
Revises:
Create Date: 2026-10-19 10:12:41.518302

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f9a1c2d7e10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


book_format = sa.Enum("físico", "digital", name="book_format")
order_status = sa.Enum("Pendente", "Validado", "Cancelado", name="order_status")
payment_status = sa.Enum(
    "pending", "proof_uploaded", "confirmed", "rejected", "cancelled", name="payment_status"
)


def upgrade():
    op.create_table(
        "books",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("author", sa.String(), nullable=False),
        sa.Column("author_id", sa.String(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("format", book_format, nullable=False),
        sa.Column("digital_file_url", sa.String(), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_books_author_id", "books", ["author_id"])

    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("author_id", sa.String(), nullable=False),
        sa.Column("bank_name", sa.String(), nullable=False),
        sa.Column("account_number", sa.String(), nullable=False),
        sa.Column("iban", sa.String(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False),
        sa.Column("label", sa.String(), nullable=True),
    )
    op.create_index("ix_bank_accounts_author_id", "bank_accounts", ["author_id"])

    op.create_table(
        "orders",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("reference", sa.String(), nullable=False, unique=True),
        sa.Column("customer_name", sa.String(), nullable=False),
        sa.Column("customer_email", sa.String(), nullable=False),
        sa.Column("customer_id", sa.String(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("status", order_status, nullable=True),
        sa.Column("idempotency_key", sa.String(), nullable=True),
        sa.Column("payment_notification_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_idempotency_key", "orders", ["idempotency_key"], unique=True)

    op.create_table(
        "payment_notifications",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("order_id", sa.String(), nullable=False, unique=True),
        sa.Column("reader_id", sa.String(), nullable=False),
        sa.Column("reader_name", sa.String(), nullable=False),
        sa.Column("reader_email", sa.String(), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("status", payment_status, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_payment_notifications_reader_id", "payment_notifications", ["reader_id"])
    op.create_index("ix_payment_notifications_status", "payment_notifications", ["status"])

    op.create_table(
        "payment_proofs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("notification_id", sa.String(), nullable=False, unique=True),
        sa.Column("reader_id", sa.String(), nullable=False),
        sa.Column("file_url", sa.String(), nullable=False),
        sa.Column("file_name", sa.String(), nullable=False),
        sa.Column("file_id", sa.String(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("confirmed_by", sa.String(), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )

    op.create_table(
        "reviews",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("book_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_reviews_book_id", "reviews", ["book_id"])

    op.create_table(
        "book_stats",
        sa.Column("book_id", sa.String(), primary_key=True),
        sa.Column("views", sa.Integer(), nullable=False),
        sa.Column("average_rating", sa.Float(), nullable=False),
        sa.Column("review_count", sa.Integer(), nullable=False),
        sa.Column("copies_sold", sa.Integer(), nullable=False),
        sa.Column("downloads", sa.Integer(), nullable=False),
    )

    op.create_table(
        "outbox_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("event_data", sa.JSON(), nullable=False),
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade():
    op.drop_table("outbox_events")
    op.drop_table("book_stats")
    op.drop_index("ix_reviews_book_id", table_name="reviews")
    op.drop_table("reviews")
    op.drop_table("payment_proofs")
    op.drop_index("ix_payment_notifications_status", table_name="payment_notifications")
    op.drop_index("ix_payment_notifications_reader_id", table_name="payment_notifications")
    op.drop_table("payment_notifications")
    op.drop_index("ix_orders_idempotency_key", table_name="orders")
    op.drop_index("ix_orders_customer_id", table_name="orders")
    op.drop_table("orders")
    op.drop_index("ix_bank_accounts_author_id", table_name="bank_accounts")
    op.drop_table("bank_accounts")
    op.drop_index("ix_books_author_id", table_name="books")
    op.drop_table("books")

    payment_status.drop(op.get_bind(), checkfirst=True)
    order_status.drop(op.get_bind(), checkfirst=True)
    book_format.drop(op.get_bind(), checkfirst=True)
