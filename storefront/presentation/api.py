from typing import List, Optional
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status

from storefront.database import AsyncSessionLocal
from storefront.presentation.identity import get_current_identity, get_optional_identity, require_admin
from storefront.presentation.schemas import (
    AccessResponse, CreateOrderRequest, DownloadResponse, ErrorResponse, NotificationResponse,
    OrderResponse, ProofResponse, ReviewRequest, ReviewResponse, UpdateNotificationStatusRequest,
    ViewResponse
)
from storefront.application.create_order import CreateOrderUseCase, CreateOrderDTO
from storefront.application.get_order import GetOrderUseCase, ListOrdersUseCase
from storefront.application.payment_notifications import (
    GetNotificationUseCase, GetProofUseCase, ListNotificationsUseCase
)
from storefront.application.submit_proof import SubmitProofUseCase
from storefront.application.update_notification_status import UpdateNotificationStatusUseCase
from storefront.application.check_access import (
    CheckDownloadAccessUseCase, GetDownloadLinkUseCase, ListReaderLibraryUseCase
)
from storefront.application.book_stats import (
    AddBookReviewUseCase, GetBookStatsUseCase, IncrementBookViewUseCase
)
from storefront.application.dashboards import (
    AdminStats, AuthorSale, AuthorStats, GetAdminStatsUseCase, GetAuthorStatsUseCase,
    ListAuthorSalesUseCase
)
from storefront.domain.models import Book, BookStats, Identity, PaymentStatus, ProofFile, Role
from storefront.domain.exceptions import (
    DomainException, InvalidStateTransition, NotFoundError, PermissionDeniedError,
    UpstreamUnavailableError, ValidationError
)
from storefront.infrastructure.unit_of_work import UnitOfWork
from storefront.infrastructure.http_clients import HTTPStorageClient
from storefront.config import settings

router = APIRouter()


def to_http_exception(error: DomainException) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, PermissionDeniedError):
        return HTTPException(status_code=403, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, InvalidStateTransition):
        return HTTPException(status_code=409, detail=str(error))
    if isinstance(error, UpstreamUnavailableError):
        return HTTPException(status_code=503, detail=f"Service unavailable: {error}")
    return HTTPException(status_code=500, detail=str(error))


def ensure_owner_or_admin(identity: Identity, owner_id: str):
    if identity.role != Role.ADMIN and identity.user_id != owner_id:
        raise HTTPException(status_code=403, detail="Access to another user's data is not allowed")


# Use case factories
def get_unit_of_work():
    return UnitOfWork(AsyncSessionLocal)


def get_storage_service():
    return HTTPStorageClient(
        settings.STORAGE_BASE_URL,
        settings.STORAGE_API_TOKEN,
        settings.STORAGE_BUCKET,
        timeout=settings.REQUEST_TIMEOUT_SECONDS
    )


def get_create_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return CreateOrderUseCase(uow, settings.STORE_IBAN)


def get_get_order_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetOrderUseCase(uow)


def get_list_orders_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListOrdersUseCase(uow)


def get_list_notifications_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListNotificationsUseCase(uow)


def get_get_notification_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetNotificationUseCase(uow)


def get_get_proof_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetProofUseCase(uow)


def get_submit_proof_use_case(
    uow: UnitOfWork = Depends(get_unit_of_work),
    storage: HTTPStorageClient = Depends(get_storage_service)
):
    return SubmitProofUseCase(uow, storage)


def get_update_status_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return UpdateNotificationStatusUseCase(uow)


def get_check_access_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return CheckDownloadAccessUseCase(uow)


def get_download_link_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetDownloadLinkUseCase(uow)


def get_library_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListReaderLibraryUseCase(uow)


def get_add_review_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return AddBookReviewUseCase(uow)


def get_increment_view_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return IncrementBookViewUseCase(uow)


def get_book_stats_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetBookStatsUseCase(uow)


def get_admin_stats_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetAdminStatsUseCase(uow)


def get_author_stats_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return GetAuthorStatsUseCase(uow, settings.AUTHOR_ROYALTY_RATE)


def get_author_sales_use_case(uow: UnitOfWork = Depends(get_unit_of_work)):
    return ListAuthorSalesUseCase(uow, settings.AUTHOR_ROYALTY_RATE)


# Orders

@router.post(
    "/orders",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def create_order(
    request: CreateOrderRequest,
    identity: Identity = Depends(get_current_identity),
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case)
):
    """Checkout: records the order and opens its payment notification"""
    try:
        dto = CreateOrderDTO(
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_id=identity.user_id,
            cart=request.to_cart(),
            total=request.total,
            status=request.status,
            date=request.date,
            idempotency_key=request.idempotency_key
        )
        order = await use_case(dto)
        return OrderResponse.from_domain(order)
    except DomainException as e:
        raise to_http_exception(e)


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_order(
    order_id: str,
    identity: Identity = Depends(get_current_identity),
    use_case: GetOrderUseCase = Depends(get_get_order_use_case)
):
    try:
        order = await use_case(order_id)
    except DomainException as e:
        raise to_http_exception(e)
    ensure_owner_or_admin(identity, order.customer_id)
    return OrderResponse.from_domain(order)


@router.get("/orders", response_model=List[OrderResponse])
async def list_orders(
    identity: Identity = Depends(get_current_identity),
    use_case: ListOrdersUseCase = Depends(get_list_orders_use_case)
):
    """Own orders, every order for administrators"""
    customer_id = None if identity.role.can_see_all_orders() else identity.user_id
    try:
        orders = await use_case(customer_id)
    except DomainException as e:
        raise to_http_exception(e)
    return [OrderResponse.from_domain(order) for order in orders]


# Payment notifications

@router.get("/payment-notifications", response_model=List[NotificationResponse])
async def list_notifications(
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    identity: Identity = Depends(get_current_identity),
    use_case: ListNotificationsUseCase = Depends(get_list_notifications_use_case)
):
    reader_id = None if identity.role.can_review_payments() else identity.user_id
    try:
        notifications = await use_case(reader_id=reader_id, status=payment_status)
    except DomainException as e:
        raise to_http_exception(e)
    return [NotificationResponse.from_domain(n) for n in notifications]


@router.post(
    "/payment-notifications/{notification_id}/proof",
    response_model=ProofResponse,
    responses={
        400: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        503: {"model": ErrorResponse}
    },
    status_code=status.HTTP_201_CREATED
)
async def submit_proof(
    notification_id: str,
    file: UploadFile = File(...),
    identity: Identity = Depends(get_current_identity),
    use_case: SubmitProofUseCase = Depends(get_submit_proof_use_case)
):
    """Upload a bank-transfer receipt (image or PDF)"""
    content = await file.read()
    proof_file = ProofFile(
        file_name=file.filename or "",
        content_type=file.content_type or "",
        content=content
    )
    try:
        proof = await use_case(notification_id, identity.user_id, proof_file)
        return ProofResponse.from_domain(proof)
    except DomainException as e:
        raise to_http_exception(e)


@router.get(
    "/payment-notifications/{notification_id}/proof",
    response_model=ProofResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_proof(
    notification_id: str,
    identity: Identity = Depends(get_current_identity),
    get_notification: GetNotificationUseCase = Depends(get_get_notification_use_case),
    use_case: GetProofUseCase = Depends(get_get_proof_use_case)
):
    try:
        notification = await get_notification(notification_id)
        ensure_owner_or_admin(identity, notification.reader_id)
        proof = await use_case(notification_id)
        return ProofResponse.from_domain(proof)
    except DomainException as e:
        raise to_http_exception(e)


@router.post(
    "/payment-notifications/{notification_id}/status",
    response_model=NotificationResponse,
    responses={
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse}
    }
)
async def update_notification_status(
    notification_id: str,
    request: UpdateNotificationStatusRequest,
    identity: Identity = Depends(get_current_identity),
    get_notification: GetNotificationUseCase = Depends(get_get_notification_use_case),
    use_case: UpdateNotificationStatusUseCase = Depends(get_update_status_use_case)
):
    """Administrators review payments, the reader may only cancel their own"""
    try:
        if not identity.role.can_review_payments():
            notification = await get_notification(notification_id)
            ensure_owner_or_admin(identity, notification.reader_id)
            if request.status != PaymentStatus.CANCELLED:
                raise HTTPException(status_code=403, detail="Only an administrator can review payments")

        notification = await use_case(
            notification_id, request.status, actor_id=identity.user_id, notes=request.notes
        )
        return NotificationResponse.from_domain(notification)
    except DomainException as e:
        raise to_http_exception(e)


# Books

@router.get("/books/{book_id}/access", response_model=AccessResponse, responses={404: {"model": ErrorResponse}})
async def check_download_access(
    book_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    use_case: CheckDownloadAccessUseCase = Depends(get_check_access_use_case)
):
    try:
        if identity is None:
            allowed = await use_case(book_id)
        else:
            allowed = await use_case(book_id, user_id=identity.user_id, role=identity.role)
    except DomainException as e:
        raise to_http_exception(e)
    return AccessResponse(book_id=book_id, can_download=allowed)


@router.get(
    "/books/{book_id}/download",
    response_model=DownloadResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)
async def get_download_link(
    book_id: str,
    identity: Optional[Identity] = Depends(get_optional_identity),
    use_case: GetDownloadLinkUseCase = Depends(get_download_link_use_case)
):
    try:
        if identity is None:
            url = await use_case(book_id)
        else:
            url = await use_case(book_id, user_id=identity.user_id, role=identity.role)
    except DomainException as e:
        raise to_http_exception(e)
    return DownloadResponse(book_id=book_id, url=url)


@router.get("/library", response_model=List[Book])
async def list_library(
    identity: Identity = Depends(get_current_identity),
    use_case: ListReaderLibraryUseCase = Depends(get_library_use_case)
):
    """Books the reader paid for or got for free"""
    try:
        books = await use_case(identity.user_id)
    except DomainException as e:
        raise to_http_exception(e)
    return books


@router.post(
    "/books/{book_id}/reviews",
    response_model=ReviewResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def add_review(
    book_id: str,
    request: ReviewRequest,
    identity: Identity = Depends(get_current_identity),
    use_case: AddBookReviewUseCase = Depends(get_add_review_use_case)
):
    try:
        review = await use_case(
            book_id,
            identity.user_id,
            request.user_name or identity.name,
            request.rating,
            request.comment
        )
    except DomainException as e:
        raise to_http_exception(e)
    return ReviewResponse(**review.model_dump())


@router.post("/books/{book_id}/views", response_model=ViewResponse, responses={404: {"model": ErrorResponse}})
async def increment_view(
    book_id: str,
    use_case: IncrementBookViewUseCase = Depends(get_increment_view_use_case)
):
    try:
        counted = await use_case(book_id)
    except DomainException as e:
        raise to_http_exception(e)
    return ViewResponse(book_id=book_id, counted=counted)


@router.get("/books/{book_id}/stats", response_model=BookStats, responses={404: {"model": ErrorResponse}})
async def get_book_stats(
    book_id: str,
    use_case: GetBookStatsUseCase = Depends(get_book_stats_use_case)
):
    try:
        return await use_case(book_id)
    except DomainException as e:
        raise to_http_exception(e)


# Dashboards

@router.get("/admin/stats", response_model=AdminStats)
async def get_admin_stats(
    identity: Identity = Depends(require_admin),
    use_case: GetAdminStatsUseCase = Depends(get_admin_stats_use_case)
):
    try:
        return await use_case()
    except DomainException as e:
        raise to_http_exception(e)


@router.get("/authors/{author_id}/stats", response_model=AuthorStats)
async def get_author_stats(
    author_id: str,
    identity: Identity = Depends(get_current_identity),
    use_case: GetAuthorStatsUseCase = Depends(get_author_stats_use_case)
):
    ensure_owner_or_admin(identity, author_id)
    try:
        return await use_case(author_id)
    except DomainException as e:
        raise to_http_exception(e)


@router.get("/authors/{author_id}/sales", response_model=List[AuthorSale])
async def list_author_sales(
    author_id: str,
    identity: Identity = Depends(get_current_identity),
    use_case: ListAuthorSalesUseCase = Depends(get_author_sales_use_case)
):
    ensure_owner_or_admin(identity, author_id)
    try:
        return await use_case(author_id)
    except DomainException as e:
        raise to_http_exception(e)
