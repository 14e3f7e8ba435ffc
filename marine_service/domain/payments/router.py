"""Payment router - FastAPI endpoints for Stripe payments"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_admin
from ...database import get_db
from ...models import User
from .schemas import PaymentIntentCreate, PaymentResponse, RefundRequest
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["Payments"])


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db)


def _pagination(page: int, limit: int, total: int) -> dict:
    return {
        "currentPage": page,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "totalItems": total,
        "itemsPerPage": limit,
    }


# ============================================================================
# STRIPE WEBHOOK
# ============================================================================


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    service: PaymentService = Depends(get_payment_service),
):
    """Signed event delivery from Stripe; the raw body is needed for verification"""
    payload = await request.body()
    return await service.handle_webhook(payload, stripe_signature)


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/create-payment-intent")
async def create_payment_intent(
    data: PaymentIntentCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: PaymentService = Depends(get_payment_service),
):
    payment, client_secret = service.create_payment_intent(data, current_user)
    return {
        "success": True,
        "data": {
            "clientSecret": client_secret,
            "paymentId": payment.payment_id,
            "paymentIntentId": payment.stripe_payment_intent_id,
            "invoiceNumber": payment.invoice_number,
            "amount": payment.amount,
            "currency": payment.currency,
            "serviceType": payment.service_type,
            "serviceDescription": payment.service_description,
        },
    }


@router.get("/payment/{payment_id}")
async def get_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    payment = service.get_payment(payment_id)
    return {"success": True, "data": PaymentResponse.from_model(payment)}


@router.post("/payment/{payment_id}/confirm")
async def confirm_payment(
    payment_id: str,
    service: PaymentService = Depends(get_payment_service),
):
    """Re-read the PaymentIntent from Stripe after the client-side checkout"""
    payment = await service.confirm_payment(payment_id)
    return {
        "success": True,
        "data": PaymentResponse.from_model(payment),
        "message": f"Payment status: {payment.status}",
    }


@router.get("/my-payments")
async def get_my_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    serviceType: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    payments, total = service.get_user_payments(current_user, page, limit, status, serviceType)
    return {
        "success": True,
        "data": [PaymentResponse.from_model(p) for p in payments],
        "pagination": _pagination(page, limit, total),
    }


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/payments")
async def get_all_payments(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[str] = Query(None),
    serviceType: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    payments, total, stats = service.get_all_payments(
        page, limit, status, serviceType, startDate, endDate
    )
    return {
        "success": True,
        "data": [PaymentResponse.from_model(p) for p in payments],
        "pagination": _pagination(page, limit, total),
        "stats": stats,
    }


@router.get("/admin/stats")
async def get_payment_stats(
    serviceType: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return {"success": True, "data": service.get_payment_stats(serviceType, startDate, endDate)}


@router.post("/admin/payment/{payment_id}/refund")
async def refund_payment(
    payment_id: str,
    data: RefundRequest,
    current_user: User = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    result = service.refund_payment(payment_id, data, current_user)
    return {"success": True, "data": result, "message": "Refund processed successfully"}
