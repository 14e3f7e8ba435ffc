from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class Payment(Base):
    """
    Local mirror of one Stripe PaymentIntent.

    (service_type, service_id) is a tagged reference to the booking this
    payment is for. The tag decides which table service_id points into, see
    domain/payments/linkage.py.
    """

    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(String(64), unique=True, index=True, nullable=False)  # PAY-...
    invoice_number = Column(String(64), unique=True, nullable=False)  # INV-...
    stripe_payment_intent_id = Column(String(255), unique=True, index=True, nullable=False)
    stripe_customer_id = Column(String(255), nullable=True)
    stripe_charge_id = Column(String(255), nullable=True)

    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="lkr", nullable=False)
    amount_in_cents = Column(Integer, nullable=False)
    # pending, processing, succeeded, failed, canceled, refunded
    status = Column(String(20), default="pending", nullable=False, index=True)

    service_type = Column(String(30), nullable=False)
    service_id = Column(String(64), nullable=False)
    service_description = Column(String(500), nullable=False)

    payment_method = Column(String(20), default="card", nullable=False)
    receipt_url = Column(String(500), nullable=True)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, default=dict, nullable=True)

    paid_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)
    refund_amount = Column(Float, default=0, nullable=False)
    refund_reason = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User")

    __table_args__ = (Index("ix_payments_service_ref", "service_type", "service_id"),)
