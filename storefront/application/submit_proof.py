import logging
import os
import uuid
from datetime import datetime, timezone

from storefront.domain.models import (
    PaymentNotification, PaymentProof, PaymentStatus, ProofFile, StoredFile
)
from storefront.domain.exceptions import (
    DomainException, DuplicateRecordError, InvalidStateTransition, NotificationNotFoundError,
    PermissionDeniedError, ProofAlreadySubmittedError, ValidationError
)
from storefront.application.interfaces import StorageService

logger = logging.getLogger(__name__)

SUPPORTED_CONTENT_TYPES = {
    "image/jpeg": {".jpg", ".jpeg"},
    "image/png": {".png"},
    "image/webp": {".webp"},
    "application/pdf": {".pdf"},
}
SUPPORTED_EXTENSIONS = set().union(*SUPPORTED_CONTENT_TYPES.values())


def is_supported_proof(file: ProofFile) -> bool:
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    extension = os.path.splitext(file.file_name)[1].lower()
    if content_type in SUPPORTED_CONTENT_TYPES:
        return True
    # browsers sometimes send a generic type, fall back to the extension
    return content_type in ("", "application/octet-stream") and extension in SUPPORTED_EXTENSIONS


class SubmitProofUseCase:
    def __init__(self, unit_of_work, storage: StorageService):
        self._uow = unit_of_work
        self._storage = storage

    async def __call__(self, notification_id: str, reader_id: str, file: ProofFile) -> PaymentProof:
        logger.info(f"Proof submission for notification {notification_id} by reader {reader_id}")

        if not file.content:
            raise ValidationError("The uploaded file is empty")
        if not is_supported_proof(file):
            raise ValidationError("Unsupported proof format, upload an image (JPEG, PNG, WebP) or a PDF")

        # 1. Guard before uploading so no orphan file is stored
        async with self._uow() as uow:
            notification = await uow.notifications.get_by_id(notification_id)
            self._ensure_can_receive_proof(notification, notification_id, reader_id)

        # 2. Upload
        stored = await self._storage.upload(file)
        logger.info(f"Proof file stored: {stored.file_id}")

        # 3. Proof row + transition as one unit
        now = datetime.now(timezone.utc)
        proof = PaymentProof(
            id=str(uuid.uuid4()),
            notification_id=notification_id,
            reader_id=reader_id,
            file_url=stored.file_url,
            file_name=file.file_name,
            file_id=stored.file_id,
            uploaded_at=now
        )
        try:
            async with self._uow() as uow:
                await uow.proofs.create(proof)
                moved = await uow.notifications.update_status(
                    notification_id, PaymentStatus.PENDING, PaymentStatus.PROOF_UPLOADED
                )
                if not moved:
                    logger.warning(f"Notification {notification_id} is no longer pending, discarding proof")
                    raise ProofAlreadySubmittedError(notification_id)

                await uow.outbox.create(
                    event_type="payment.proof_uploaded",
                    event_data={
                        "notification_id": notification_id,
                        "order_id": notification.order_id,
                        "reader_id": reader_id,
                        "proof_id": proof.id,
                        "file_url": proof.file_url
                    },
                    order_id=notification.order_id
                )
                await uow.commit()
        except DuplicateRecordError as e:
            # another request attached its proof first
            await self._discard_stored_file(stored)
            raise ProofAlreadySubmittedError(notification_id) from e
        except Exception:
            await self._discard_stored_file(stored)
            raise

        logger.info(f"Notification {notification_id}: pending -> proof_uploaded (proof {proof.id})")
        return proof

    def _ensure_can_receive_proof(
        self, notification: PaymentNotification | None, notification_id: str, reader_id: str
    ) -> None:
        if not notification:
            raise NotificationNotFoundError(f"Payment notification {notification_id} not found")
        if notification.reader_id != reader_id:
            raise PermissionDeniedError("This payment notification belongs to another reader")
        if notification.status == PaymentStatus.PROOF_UPLOADED:
            raise ProofAlreadySubmittedError(notification_id)
        if not notification.can_receive_proof():
            raise InvalidStateTransition(notification.status.value, PaymentStatus.PROOF_UPLOADED.value)

    async def _discard_stored_file(self, stored: StoredFile) -> None:
        try:
            await self._storage.delete(stored.file_id)
            logger.info(f"Orphan proof file {stored.file_id} deleted")
        except DomainException as e:
            logger.error(f"Could not delete orphan proof file {stored.file_id}: {e}")
