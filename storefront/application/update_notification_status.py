import logging
from datetime import datetime, timezone
from typing import Optional

from storefront.domain.models import (
    ORDER_STATUS_FOR_PAYMENT, PaymentNotification, PaymentStatus
)
from storefront.domain.exceptions import InvalidStateTransition, NotificationNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_NOTES = {
    PaymentStatus.CONFIRMED: "Payment confirmed by staff.",
    PaymentStatus.REJECTED: "Payment rejected by staff. Please place a new order.",
}


class UpdateNotificationStatusUseCase:
    """Drives a payment notification through its state table.

    The stored status is re-checked by a conditional update, so a stale client
    or a concurrent staff action fails with InvalidStateTransition instead of
    overwriting a status that already moved on.
    """

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self,
        notification_id: str,
        new_status: PaymentStatus,
        actor_id: Optional[str] = None,
        notes: Optional[str] = None
    ) -> PaymentNotification:
        logger.info(f"Notification {notification_id}: requested status {new_status.value} by {actor_id}")

        async with self._uow() as uow:
            notification = await uow.notifications.get_by_id(notification_id)
            if not notification:
                raise NotificationNotFoundError(f"Payment notification {notification_id} not found")

            notification.ensure_can_transition_to(new_status)

            proof = await uow.proofs.get_by_notification(notification_id)
            if new_status == PaymentStatus.PROOF_UPLOADED and not proof:
                raise InvalidStateTransition(
                    notification.status.value,
                    new_status.value,
                    "A payment proof must be submitted before the notification can be marked as uploaded"
                )

            updated = await uow.notifications.update_status(notification_id, notification.status, new_status)
            if not updated:
                logger.warning(f"Notification {notification_id} changed concurrently, refusing {new_status.value}")
                raise InvalidStateTransition(
                    notification.status.value,
                    new_status.value,
                    f"Payment notification {notification_id} was changed by another request"
                )

            now = datetime.now(timezone.utc)
            if proof and new_status == PaymentStatus.CONFIRMED:
                await uow.proofs.record_review(
                    proof.id, actor_id, now, notes or DEFAULT_NOTES[new_status]
                )
            elif proof and new_status == PaymentStatus.REJECTED:
                # proof kept for audit, it is not marked as confirmed
                await uow.proofs.record_review(
                    proof.id, None, None, notes or DEFAULT_NOTES[new_status]
                )

            order_status = ORDER_STATUS_FOR_PAYMENT.get(new_status)
            if order_status:
                await uow.orders.update_status(notification.order_id, order_status)

            if new_status == PaymentStatus.CONFIRMED:
                for item in notification.items:
                    await uow.stats.increment_copies_sold(item.book_id, item.quantity)

            await uow.outbox.create(
                event_type=f"payment.{new_status.value}",
                event_data={
                    "notification_id": notification_id,
                    "order_id": notification.order_id,
                    "reader_id": notification.reader_id,
                    "reader_email": notification.reader_email,
                    "total_amount": notification.total_amount,
                    "status": new_status.value,
                    "actor_id": actor_id,
                    "notes": notes
                },
                order_id=notification.order_id
            )
            await uow.commit()

        logger.info(f"Notification {notification_id}: {notification.status.value} -> {new_status.value}")
        notification.status = new_status
        notification.updated_at = now
        return notification
