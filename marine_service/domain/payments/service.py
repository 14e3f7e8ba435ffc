"""Payment service - Stripe payment lifecycle and booking updates"""

import logging
import math
from datetime import datetime
from typing import Optional

import stripe
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import DEFAULT_CURRENCY, MIN_PAYMENT_AMOUNT
from ...models import User
from ...models_booking import BoatBooking
from ...models_order import Order
from ...models_payment import Payment
from ...security_utils import generate_reference
from ...shared.validators import parse_calendar_date
from . import linkage
from .repository import PaymentRepository
from .schemas import PaymentIntentCreate, RefundRequest
from .stripe_service import StripeNotConfigured, stripe_service

logger = logging.getLogger(__name__)

# PaymentIntent.status -> Payment.status
STRIPE_STATUS_MAP = {
    "succeeded": "succeeded",
    "processing": "processing",
    "requires_capture": "processing",
    "requires_payment_method": "pending",
    "requires_confirmation": "pending",
    "requires_action": "pending",
    "canceled": "canceled",
}

WEBHOOK_EVENT_STATUS = {
    "payment_intent.succeeded": "succeeded",
    "payment_intent.payment_failed": "failed",
    "payment_intent.canceled": "canceled",
}

# A settled payment only moves forward through refunds
SETTLED_STATUSES = ("succeeded", "refunded")

STRIPE_REFUND_REASONS = ("duplicate", "fraudulent", "requested_by_customer")


def map_stripe_status(stripe_status: Optional[str]) -> str:
    return STRIPE_STATUS_MAP.get(stripe_status or "", "failed")


class PaymentService:
    """Service layer for payment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PaymentRepository()

    # ------------------------------------------------------------------
    # Intent creation
    # ------------------------------------------------------------------

    def create_payment_intent(
        self, data: PaymentIntentCreate, user: Optional[User] = None
    ) -> tuple[Payment, str]:
        """Create a Stripe PaymentIntent and its pending Payment record"""
        currency = data.currency or DEFAULT_CURRENCY
        if not math.isfinite(data.amount) or data.amount < MIN_PAYMENT_AMOUNT:
            raise HTTPException(
                status_code=400,
                detail=f"Minimum payment amount is {MIN_PAYMENT_AMOUNT:g} {currency.upper()}",
            )

        metadata = {str(k): str(v) for k, v in data.metadata.items()}
        linkage.validate_reference(
            self.db, data.serviceType, data.serviceId, metadata.get("stage")
        )

        if not stripe_service.is_available():
            raise HTTPException(status_code=503, detail="Payment service is not configured")

        amount_in_cents = int(round(data.amount * 100))
        service_type = data.serviceType.value

        stripe_customer_id = None
        try:
            customer = stripe_service.create_customer(
                email=data.customerEmail,
                name=data.customerName,
                phone=data.customerPhone,
                metadata={"serviceType": service_type, "serviceId": data.serviceId},
            )
            stripe_customer_id = customer.id
        except Exception as e:
            # The charge works without a Stripe customer
            logger.warning(f"⚠️ Continuing without Stripe customer: {e}")

        try:
            intent = stripe_service.create_payment_intent(
                amount_in_cents=amount_in_cents,
                currency=currency,
                description=f"Payment for {data.serviceDescription}",
                metadata={
                    **metadata,
                    "serviceType": service_type,
                    "serviceId": data.serviceId,
                    "customerEmail": data.customerEmail,
                    "customerName": data.customerName,
                },
                customer_id=stripe_customer_id,
                receipt_email=data.customerEmail,
            )
        except StripeNotConfigured as e:
            raise HTTPException(status_code=503, detail="Payment service is not configured") from e
        except stripe.StripeError as e:
            raise HTTPException(
                status_code=502, detail=f"Payment provider error: {e.user_message or str(e)}"
            ) from e

        payment = self.repo.create_payment(
            self.db,
            payment_id=generate_reference("PAY", 9),
            invoice_number=generate_reference("INV", 6),
            stripe_payment_intent_id=intent.id,
            stripe_customer_id=stripe_customer_id,
            customer_id=user.id if user else None,
            customer_email=data.customerEmail,
            customer_name=data.customerName,
            customer_phone=data.customerPhone,
            amount=data.amount,
            currency=currency,
            amount_in_cents=amount_in_cents,
            status="pending",
            service_type=service_type,
            service_id=data.serviceId,
            service_description=data.serviceDescription,
            extra_metadata=metadata,
        )
        logger.info(
            f"💳 Payment {payment.payment_id} created for {service_type}:{data.serviceId} "
            f"({data.amount} {currency.upper()})"
        )
        return payment, intent.client_secret

    # ------------------------------------------------------------------
    # Status changes echoed from Stripe
    # ------------------------------------------------------------------

    async def _apply_intent_status(self, payment: Payment, new_status: str, intent) -> Payment:
        """
        Move a payment to the status Stripe reports and update its booking.
        This is the only path that changes Payment.status outside refunds.
        """
        previous = payment.status
        if previous == new_status:
            return payment
        if previous in SETTLED_STATUSES:
            logger.info(
                f"ℹ️ Ignoring {new_status} for payment {payment.payment_id}, already {previous}"
            )
            return payment

        payment.status = new_status
        booking = None
        if new_status == "succeeded":
            payment.paid_at = datetime.utcnow()
            self._record_charge(payment, intent)
            booking = linkage.apply_successful_payment(self.db, payment)
        elif new_status == "failed":
            linkage.apply_failed_payment(self.db, payment)

        self.db.commit()
        self.db.refresh(payment)
        logger.info(f"🔄 Payment {payment.payment_id}: {previous} → {new_status}")

        if isinstance(booking, Order):
            await self._send_order_confirmation(booking)
        elif isinstance(booking, BoatBooking) and booking.payment_id == payment.payment_id:
            await self._send_ride_confirmation(booking)
        return payment

    @staticmethod
    def _record_charge(payment: Payment, intent) -> None:
        charge = getattr(intent, "latest_charge", None)
        if not charge:
            return
        if isinstance(charge, str):
            payment.stripe_charge_id = charge
            return
        payment.stripe_charge_id = getattr(charge, "id", None)
        payment.receipt_url = getattr(charge, "receipt_url", None)

    async def _send_order_confirmation(self, order: Order) -> None:
        from ..orders.service import send_order_confirmation

        await send_order_confirmation(order)

    async def _send_ride_confirmation(self, booking: BoatBooking) -> None:
        from ..boat_rides.service import send_ride_confirmation

        await send_ride_confirmation(booking)

    async def confirm_payment(self, payment_id: str) -> Payment:
        """Pull the PaymentIntent status from Stripe and mirror it"""
        payment = self.get_payment(payment_id)
        try:
            intent = stripe_service.retrieve_payment_intent(payment.stripe_payment_intent_id)
        except StripeNotConfigured as e:
            raise HTTPException(status_code=503, detail="Payment service is not configured") from e
        except stripe.StripeError as e:
            raise HTTPException(
                status_code=502, detail=f"Payment provider error: {e.user_message or str(e)}"
            ) from e

        return await self._apply_intent_status(payment, map_stripe_status(intent.status), intent)

    async def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        try:
            event = stripe_service.construct_event(payload, signature)
        except StripeNotConfigured as e:
            raise HTTPException(status_code=503, detail="Webhook secret is not configured") from e
        except (ValueError, stripe.SignatureVerificationError) as e:
            logger.warning(f"⚠️ Webhook signature verification failed: {e}")
            raise HTTPException(status_code=400, detail=f"Webhook Error: {e}") from e

        event_type = event.type
        new_status = WEBHOOK_EVENT_STATUS.get(event_type)
        if new_status is None:
            logger.info(f"Unhandled event type {event_type}")
            return {"received": True}

        intent = event.data.object
        payment = self.repo.get_by_intent_id(self.db, intent.id)
        if payment is None:
            logger.warning(f"⚠️ Webhook for unknown PaymentIntent {intent.id}")
            return {"received": True}

        await self._apply_intent_status(payment, new_status, intent)
        return {"received": True}

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.repo.get_by_payment_id(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        return payment

    def get_user_payments(
        self,
        user: User,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        service_type: Optional[str] = None,
    ) -> tuple[list[Payment], int]:
        """Payments made with the user's email, succeeded only unless a status is asked for"""
        return self.repo.list_payments(
            self.db,
            page,
            limit,
            status=status or "succeeded",
            service_type=service_type,
            customer_email=user.email,
        )

    def _date_filters(self, start_date: Optional[str], end_date: Optional[str]) -> dict:
        filters = {}
        try:
            if start_date:
                filters["start_date"] = datetime.combine(
                    parse_calendar_date(start_date), datetime.min.time()
                )
            if end_date:
                filters["end_date"] = datetime.combine(
                    parse_calendar_date(end_date), datetime.max.time()
                )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return filters

    def get_all_payments(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        service_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> tuple[list[Payment], int, dict]:
        filters = {"status": status, "service_type": service_type}
        filters.update(self._date_filters(start_date, end_date))
        payments, total = self.repo.list_payments(self.db, page, limit, **filters)
        stats = self.repo.get_stats(self.db, **filters)
        return payments, total, stats

    def get_payment_stats(
        self,
        service_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> dict:
        filters = {"service_type": service_type}
        filters.update(self._date_filters(start_date, end_date))
        stats = self.repo.get_stats(self.db, **filters)
        stats["serviceTypeStats"] = self.repo.get_service_type_stats(self.db, **filters)
        return stats

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def refund_payment(self, payment_id: str, data: RefundRequest, admin: User) -> dict:
        payment = self.get_payment(payment_id)
        if payment.status != "succeeded":
            raise HTTPException(status_code=400, detail="Payment cannot be refunded")

        remaining = round(payment.amount - (payment.refund_amount or 0), 2)
        if remaining <= 0:
            raise HTTPException(status_code=400, detail="Payment cannot be refunded")

        refund_amount = data.amount if data.amount is not None else remaining
        if refund_amount > remaining:
            raise HTTPException(
                status_code=400,
                detail=f"Refund amount exceeds the refundable balance of {remaining:g}",
            )

        stripe_reason = data.reason if data.reason in STRIPE_REFUND_REASONS else None
        try:
            refund = stripe_service.create_refund(
                payment.stripe_payment_intent_id,
                int(round(refund_amount * 100)),
                reason=stripe_reason,
                metadata={"paymentId": payment.payment_id, "refundedBy": str(admin.id)},
            )
        except StripeNotConfigured as e:
            raise HTTPException(status_code=503, detail="Payment service is not configured") from e
        except stripe.StripeError as e:
            raise HTTPException(
                status_code=502, detail=f"Payment provider error: {e.user_message or str(e)}"
            ) from e

        payment.refund_amount = round((payment.refund_amount or 0) + refund_amount, 2)
        payment.refunded_at = datetime.utcnow()
        payment.refund_reason = data.reason
        if payment.refund_amount >= payment.amount:
            payment.status = "refunded"
            linkage.apply_refund(self.db, payment)
        self.db.commit()
        self.db.refresh(payment)
        logger.info(
            f"↩️ Refunded {refund_amount} on payment {payment.payment_id} by admin {admin.email}"
        )

        return {
            "paymentId": payment.payment_id,
            "refundId": refund.id,
            "refundAmount": refund_amount,
            "remainingAmount": round(payment.amount - payment.refund_amount, 2),
            "status": payment.status,
        }
