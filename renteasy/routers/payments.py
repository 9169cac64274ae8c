"""
Payment API endpoints: Stripe intents, the webhook, status polling, receipts
and payment history for tenants and landlords.
"""

from fastapi import APIRouter, Depends, Header, Query, Path, Request, status
from fastapi.responses import Response
from datetime import datetime
from typing import Optional
from uuid import UUID

from renteasy.models.payment import PaymentStatus
from renteasy.models.user import User
from renteasy.schemas.error import get_error_responses, get_payment_error_responses
from renteasy.schemas.payment import (
    LandlordPaymentSummary,
    PaymentIntentCreate,
    PaymentIntentResponse,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatusResponse,
    ReceiptUrlResponse,
    WebhookAck,
)
from renteasy.services.payment import PaymentService
from renteasy.utils.dependencies import (
    get_current_active_user,
    get_payment_service,
    get_receipt_user,
    require_landlord,
    require_paying_tenant,
    require_tenant,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


@router.post(
    "/payments/create-intent",
    response_model=PaymentIntentResponse,
    status_code=status.HTTP_200_OK,
    summary="Create payment intent",
    description="Validate the selected months and open a Stripe PaymentIntent for them",
    responses=get_payment_error_responses()
)
async def create_payment_intent(
    intent_data: PaymentIntentCreate,
    current_user: User = Depends(require_paying_tenant),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentIntentResponse:
    """
    Start a rent payment.

    Raises:
        RentalNotFoundError: If the rental is not the caller's active rental
        MonthSelectionError: If the month selection breaks a ledger rule
        PaymentProcessingError: If an overlapping payment is still processing
    """
    result = await payment_service.create_payment_intent(intent_data, current_user)
    return PaymentIntentResponse.model_validate(result)


@router.post(
    "/payments/webhook",
    response_model=WebhookAck,
    status_code=status.HTTP_200_OK,
    summary="Stripe webhook",
    description="Receives signed Stripe events. The raw body is needed for signature checks.",
    responses=get_error_responses(400, 500)
)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    payment_service: PaymentService = Depends(get_payment_service)
) -> WebhookAck:
    payload = await request.body()
    result = await payment_service.handle_webhook(payload, stripe_signature)
    return WebhookAck.model_validate(result)


@router.get(
    "/payments",
    response_model=PaymentListResponse,
    status_code=status.HTTP_200_OK,
    summary="Tenant payments",
    description="Payment history of the current tenant, newest first"
)
async def tenant_payments(
    limit: Optional[int] = Query(None, ge=1, le=100, description="Maximum number of payments"),
    current_user: User = Depends(require_tenant),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentListResponse:
    payments = await payment_service.tenant_payments(current_user, limit=limit)
    return PaymentListResponse(
        payments=[PaymentResponse.model_validate(p.to_dict(include_listing=True)) for p in payments]
    )


@router.get(
    "/payments/{payment_id}/status",
    response_model=PaymentStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh payment status",
    description="Check the payment's intent with Stripe and settle it",
    responses=get_payment_error_responses()
)
async def payment_status(
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_current_active_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentStatusResponse:
    payment_state = await payment_service.refresh_status(payment_id, current_user)
    return PaymentStatusResponse(status=payment_state)


@router.get(
    "/payments/{payment_id}/receipt",
    response_model=ReceiptUrlResponse,
    status_code=status.HTTP_200_OK,
    summary="Receipt URL",
    description="Stripe-hosted receipt of a succeeded payment",
    responses=get_error_responses(401, 403, 404)
)
async def payment_receipt(
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_receipt_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> ReceiptUrlResponse:
    url = await payment_service.get_receipt_url(payment_id, current_user)
    return ReceiptUrlResponse(url=url)


@router.get(
    "/payments/{payment_id}/receipt.pdf",
    status_code=status.HTTP_200_OK,
    summary="Receipt PDF",
    description="Printable receipt of a succeeded payment",
    response_class=Response,
    responses=get_error_responses(401, 403, 404)
)
async def payment_receipt_pdf(
    payment_id: UUID = Path(..., description="Payment ID"),
    current_user: User = Depends(get_receipt_user),
    payment_service: PaymentService = Depends(get_payment_service)
) -> Response:
    pdf = await payment_service.get_receipt_pdf(payment_id, current_user)
    logger.info(f"Receipt PDF for payment {payment_id} rendered ({len(pdf)} bytes)")
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="receipt-{payment_id}.pdf"'}
    )


@router.get(
    "/landlord/payments",
    response_model=PaymentListResponse,
    status_code=status.HTTP_200_OK,
    summary="Landlord payments",
    description="Payments received by the current landlord, newest first"
)
async def landlord_payments(
    payment_status_filter: Optional[PaymentStatus] = Query(None, alias="status", description="Payment status"),
    listing_id: Optional[UUID] = Query(None, description="Restrict to one listing"),
    start_date: Optional[datetime] = Query(None, description="Created on or after"),
    end_date: Optional[datetime] = Query(None, description="Created on or before"),
    current_user: User = Depends(require_landlord),
    payment_service: PaymentService = Depends(get_payment_service)
) -> PaymentListResponse:
    payments = await payment_service.landlord_payments(
        current_user,
        status=payment_status_filter,
        listing_id=listing_id,
        start_date=start_date,
        end_date=end_date
    )
    return PaymentListResponse(
        payments=[
            PaymentResponse.model_validate(p.to_dict(include_listing=True, include_tenant=True))
            for p in payments
        ]
    )


@router.get(
    "/landlord/payments/summary",
    response_model=LandlordPaymentSummary,
    status_code=status.HTTP_200_OK,
    summary="Landlord payment summary",
    description="Succeeded totals for this month, last month and all time"
)
async def landlord_payment_summary(
    current_user: User = Depends(require_landlord),
    payment_service: PaymentService = Depends(get_payment_service)
) -> LandlordPaymentSummary:
    summary = await payment_service.landlord_summary(current_user)
    return LandlordPaymentSummary.model_validate(summary)
