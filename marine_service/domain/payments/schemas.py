"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models_payment import Payment
from ...shared.validators import validate_email, validate_phone
from .linkage import ServiceType


class PaymentIntentCreate(BaseModel):
    """Schema for starting a card payment"""

    amount: float
    currency: Optional[str] = None
    serviceType: ServiceType
    serviceId: str
    serviceDescription: str
    customerEmail: str
    customerName: str
    customerPhone: Optional[str] = None
    metadata: dict[str, Any] = {}

    @field_validator("serviceId", "serviceDescription", "customerName")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v) if v else None

    @field_validator("currency")
    @classmethod
    def lower_currency(cls, v):
        return v.strip().lower() if v else v


class RefundRequest(BaseModel):
    amount: Optional[float] = None
    reason: Optional[str] = None

    @field_validator("amount")
    @classmethod
    def positive_amount(cls, v):
        if v is not None and v <= 0:
            raise ValueError("Refund amount must be greater than zero")
        return v


class PaymentResponse(BaseModel):
    """Schema for payment response"""

    paymentId: str
    invoiceNumber: str
    stripePaymentIntentId: str
    customerId: Optional[int] = None
    customerEmail: str
    customerName: str
    customerPhone: Optional[str] = None
    amount: float
    currency: str
    amountInCents: int
    status: str
    serviceType: str
    serviceId: str
    serviceDescription: str
    paymentMethod: str
    receiptUrl: Optional[str] = None
    metadata: dict = {}
    paidAt: Optional[datetime] = None
    refundedAt: Optional[datetime] = None
    refundAmount: float = 0
    refundReason: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, payment: Payment) -> "PaymentResponse":
        return cls(
            paymentId=payment.payment_id,
            invoiceNumber=payment.invoice_number,
            stripePaymentIntentId=payment.stripe_payment_intent_id,
            customerId=payment.customer_id,
            customerEmail=payment.customer_email,
            customerName=payment.customer_name,
            customerPhone=payment.customer_phone,
            amount=payment.amount,
            currency=payment.currency,
            amountInCents=payment.amount_in_cents,
            status=payment.status,
            serviceType=payment.service_type,
            serviceId=payment.service_id,
            serviceDescription=payment.service_description,
            paymentMethod=payment.payment_method,
            receiptUrl=payment.receipt_url,
            metadata=payment.extra_metadata or {},
            paidAt=payment.paid_at,
            refundedAt=payment.refunded_at,
            refundAmount=payment.refund_amount or 0,
            refundReason=payment.refund_reason,
            createdAt=payment.created_at,
            updatedAt=payment.updated_at,
        )
