"""Boat ride repository - Database operations for ride bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models_booking import BoatBooking
from ...models_payment import Payment


class BoatBookingRepository:
    """Repository for boat ride booking database operations"""

    @staticmethod
    def get_by_id(db: Session, booking_id: int) -> Optional[BoatBooking]:
        return db.query(BoatBooking).filter(BoatBooking.id == booking_id).first()

    @staticmethod
    def list_bookings(
        db: Session,
        status: Optional[str] = None,
        search: Optional[str] = None,
        flagged: Optional[bool] = None,
    ) -> list[BoatBooking]:
        query = db.query(BoatBooking)
        if status and status != "all":
            query = query.filter(BoatBooking.status == status)
        if flagged is not None:
            query = query.filter(BoatBooking.flagged.is_(flagged))
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    BoatBooking.customer_name.ilike(pattern),
                    BoatBooking.customer_email.ilike(pattern),
                    BoatBooking.customer_phone.ilike(pattern),
                    BoatBooking.package_name.ilike(pattern),
                    BoatBooking.special_requests.ilike(pattern),
                )
            )
        return query.order_by(BoatBooking.created_at.desc(), BoatBooking.id.desc()).all()

    @staticmethod
    def list_for_customer(
        db: Session,
        customer_id: int,
        email: str,
        page: int,
        limit: int,
        status: Optional[str] = None,
    ) -> tuple[list[BoatBooking], int]:
        """Bookings made while signed in, or with the customer's email"""
        query = db.query(BoatBooking).filter(
            or_(
                BoatBooking.customer_id == customer_id,
                func.lower(BoatBooking.customer_email) == email.lower(),
            )
        )
        if status and status != "all":
            query = query.filter(BoatBooking.status == status)

        total = query.count()
        bookings = (
            query.order_by(BoatBooking.created_at.desc(), BoatBooking.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return bookings, total

    @staticmethod
    def follow_ups_due(db: Session, before: datetime) -> list[BoatBooking]:
        return (
            db.query(BoatBooking)
            .filter(
                BoatBooking.status == "Pending Review",
                BoatBooking.follow_up_date <= before,
            )
            .order_by(BoatBooking.follow_up_date)
            .all()
        )

    @staticmethod
    def recent(db: Session, limit: int = 10) -> list[BoatBooking]:
        return (
            db.query(BoatBooking)
            .order_by(BoatBooking.created_at.desc(), BoatBooking.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(BoatBooking.status, func.count(BoatBooking.id)).group_by(BoatBooking.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def count_created_since(db: Session, since: datetime) -> int:
        return db.query(func.count(BoatBooking.id)).filter(BoatBooking.created_at >= since).scalar() or 0

    @staticmethod
    def get_payment(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.payment_id == payment_id).first()

    @staticmethod
    def save(db: Session, booking: BoatBooking) -> BoatBooking:
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def delete(db: Session, booking: BoatBooking) -> None:
        db.delete(booking)
        db.commit()
