"""Payment repository - Database operations for payments"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ...models_payment import Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_payment_id(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.payment_id == payment_id).first()

    @staticmethod
    def get_by_intent_id(db: Session, payment_intent_id: str) -> Optional[Payment]:
        return (
            db.query(Payment).filter(Payment.stripe_payment_intent_id == payment_intent_id).first()
        )

    @staticmethod
    def _filtered(
        db: Session,
        status: Optional[str] = None,
        service_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        customer_email: Optional[str] = None,
    ):
        query = db.query(Payment)
        if status:
            query = query.filter(Payment.status == status)
        if service_type:
            query = query.filter(Payment.service_type == service_type)
        if start_date:
            query = query.filter(Payment.created_at >= start_date)
        if end_date:
            query = query.filter(Payment.created_at <= end_date)
        if customer_email:
            query = query.filter(func.lower(Payment.customer_email) == customer_email.lower())
        return query

    @staticmethod
    def list_payments(
        db: Session, page: int, limit: int, **filters
    ) -> tuple[list[Payment], int]:
        """One page of payments, newest first, plus the total count"""
        query = PaymentRepository._filtered(db, **filters)
        total = query.count()
        payments = (
            query.order_by(Payment.created_at.desc(), Payment.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return payments, total

    @staticmethod
    def get_stats(db: Session, **filters) -> dict:
        query = PaymentRepository._filtered(db, **filters)
        succeeded = Payment.status == "succeeded"
        row = query.with_entities(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
            func.coalesce(func.sum(case((succeeded, 1), else_=0)), 0),
            func.coalesce(func.sum(case((succeeded, Payment.amount), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.status == "failed", 1), else_=0)), 0),
            func.coalesce(func.sum(case((Payment.status == "pending", 1), else_=0)), 0),
        ).one()
        return {
            "totalPayments": row[0],
            "totalAmount": float(row[1]),
            "successfulPayments": int(row[2]),
            "successfulAmount": float(row[3]),
            "failedPayments": int(row[4]),
            "pendingPayments": int(row[5]),
        }

    @staticmethod
    def get_service_type_stats(db: Session, **filters) -> list[dict]:
        query = PaymentRepository._filtered(db, **filters)
        succeeded = Payment.status == "succeeded"
        rows = (
            query.with_entities(
                Payment.service_type,
                func.count(Payment.id),
                func.coalesce(func.sum(Payment.amount), 0),
                func.coalesce(func.sum(case((succeeded, 1), else_=0)), 0),
                func.coalesce(func.sum(case((succeeded, Payment.amount), else_=0)), 0),
            )
            .group_by(Payment.service_type)
            .order_by(Payment.service_type)
            .all()
        )
        return [
            {
                "serviceType": service_type,
                "count": count,
                "totalAmount": float(total),
                "successfulCount": int(ok_count),
                "successfulAmount": float(ok_amount),
            }
            for service_type, count, total, ok_count, ok_amount in rows
        ]

    @staticmethod
    def create_payment(db: Session, **data) -> Payment:
        payment = Payment(**data)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment
