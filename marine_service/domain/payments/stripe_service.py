"""Stripe service - Integration with the Stripe Payments API"""

import logging
from typing import Optional

import stripe

from ...config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET
from ...security_utils import mask_sensitive_data

logger = logging.getLogger(__name__)


class StripeNotConfigured(Exception):
    pass


class StripeService:
    """Service for Stripe API operations"""

    def __init__(self):
        self.api_key = STRIPE_SECRET_KEY
        self.webhook_secret = STRIPE_WEBHOOK_SECRET

        if not self.api_key:
            logger.warning("STRIPE_SECRET_KEY not set; payment endpoints will fail until configured")
        else:
            logger.info("Stripe client configured")

    def is_available(self) -> bool:
        """Check if Stripe is configured"""
        return bool(self.api_key)

    def _require_key(self) -> str:
        if not self.api_key:
            raise StripeNotConfigured("Stripe is not configured")
        return self.api_key

    def create_customer(
        self,
        email: str,
        name: str,
        phone: Optional[str] = None,
        metadata: Optional[dict] = None,
    ):
        """Create a Stripe customer for receipts and the dashboard"""
        try:
            customer = stripe.Customer.create(
                api_key=self._require_key(),
                email=email,
                name=name,
                phone=phone,
                metadata=metadata or {},
            )
            logger.info(f"Created Stripe customer {customer.id} for {mask_sensitive_data(email)}")
            return customer
        except stripe.StripeError as e:
            logger.error(f"Failed to create Stripe customer for {mask_sensitive_data(email)}: {e}")
            raise

    def create_payment_intent(
        self,
        amount_in_cents: int,
        currency: str,
        description: str,
        metadata: dict,
        customer_id: Optional[str] = None,
        receipt_email: Optional[str] = None,
    ):
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self._require_key(),
                amount=amount_in_cents,
                currency=currency,
                customer=customer_id,
                description=description,
                metadata=metadata,
                receipt_email=receipt_email,
                automatic_payment_methods={"enabled": True},
            )
            logger.info(f"Created PaymentIntent {intent.id} ({amount_in_cents} {currency})")
            return intent
        except stripe.StripeError as e:
            logger.error(f"Failed to create PaymentIntent: {e}")
            raise

    def retrieve_payment_intent(self, payment_intent_id: str):
        """Fetch a PaymentIntent with its latest charge expanded"""
        try:
            return stripe.PaymentIntent.retrieve(
                payment_intent_id, api_key=self._require_key(), expand=["latest_charge"]
            )
        except stripe.StripeError as e:
            logger.error(f"Failed to retrieve PaymentIntent {payment_intent_id}: {e}")
            raise

    def create_refund(
        self,
        payment_intent_id: str,
        amount_in_cents: int,
        reason: Optional[str] = None,
        metadata: Optional[dict] = None,
    ):
        try:
            refund = stripe.Refund.create(
                api_key=self._require_key(),
                payment_intent=payment_intent_id,
                amount=amount_in_cents,
                reason=reason or "requested_by_customer",
                metadata=metadata or {},
            )
            logger.info(f"Created refund {refund.id} for {payment_intent_id}")
            return refund
        except stripe.StripeError as e:
            logger.error(f"Failed to refund {payment_intent_id}: {e}")
            raise

    def construct_event(self, payload: bytes, signature: Optional[str]):
        """
        Verify a webhook payload against STRIPE_WEBHOOK_SECRET.

        Raises ValueError for malformed payloads and
        stripe.SignatureVerificationError for bad signatures.
        """
        if not self.webhook_secret:
            raise StripeNotConfigured("Stripe webhook secret is not configured")
        return stripe.Webhook.construct_event(payload, signature or "", self.webhook_secret)


stripe_service = StripeService()
