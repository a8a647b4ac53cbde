from typing import List, Optional

from storefront.domain.models import PaymentNotification, PaymentProof, PaymentStatus
from storefront.domain.exceptions import NotificationNotFoundError, ProofNotFoundError


class ListNotificationsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(
        self, reader_id: Optional[str] = None, status: Optional[PaymentStatus] = None
    ) -> List[PaymentNotification]:
        async with self._uow() as uow:
            if reader_id is None:
                return await uow.notifications.list_all(status=status)
            return await uow.notifications.list_by_reader(reader_id, status=status)


class GetNotificationUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, notification_id: str) -> PaymentNotification:
        async with self._uow() as uow:
            notification = await uow.notifications.get_by_id(notification_id)
            if not notification:
                raise NotificationNotFoundError(f"Payment notification {notification_id} not found")
            return notification


class GetProofUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, notification_id: str) -> PaymentProof:
        async with self._uow() as uow:
            proof = await uow.proofs.get_by_notification(notification_id)
            if not proof:
                raise ProofNotFoundError(f"No payment proof for notification {notification_id}")
            return proof
