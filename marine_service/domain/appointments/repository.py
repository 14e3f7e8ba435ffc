"""Appointment repository - Database operations for appointments"""

from datetime import date
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models_booking import ACTIVE_APPOINTMENT_STATUSES, Appointment
from ...models_payment import Payment


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointments(
        db: Session,
        status: Optional[str] = None,
        appointment_date: Optional[date] = None,
        service_type: Optional[str] = None,
    ) -> list[Appointment]:
        """Get appointments with optional filters, soonest first"""
        query = db.query(Appointment)
        if status:
            query = query.filter(Appointment.status == status)
        if appointment_date:
            query = query.filter(Appointment.appointment_date == appointment_date)
        if service_type:
            query = query.filter(Appointment.service_type == service_type)
        return query.order_by(Appointment.appointment_date, Appointment.appointment_time).all()

    @staticmethod
    def get_by_id(db: Session, appointment_id: int) -> Optional[Appointment]:
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_by_customer_email(db: Session, email: str) -> list[Appointment]:
        """Customer's appointments, most recent first"""
        return (
            db.query(Appointment)
            .filter(func.lower(Appointment.customer_email) == email.lower())
            .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
            .all()
        )

    @staticmethod
    def find_slot_conflict(
        db: Session,
        appointment_date: date,
        appointment_time: str,
        exclude_id: Optional[int] = None,
    ) -> Optional[Appointment]:
        """Active appointment already holding this slot, if any"""
        query = db.query(Appointment).filter(
            Appointment.appointment_date == appointment_date,
            Appointment.appointment_time == appointment_time,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        )
        if exclude_id is not None:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    @staticmethod
    def get_booked_times(db: Session, appointment_date: date) -> list[str]:
        rows = (
            db.query(Appointment.appointment_time)
            .filter(
                Appointment.appointment_date == appointment_date,
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            )
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def count_active_by_day(db: Session, start: date, end: date) -> dict[date, int]:
        """Active appointments per day in [start, end]"""
        rows = (
            db.query(Appointment.appointment_date, func.count(Appointment.id))
            .filter(
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
                Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
            )
            .group_by(Appointment.appointment_date)
            .all()
        )
        return {day: count for day, count in rows}

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(Appointment.status, func.count(Appointment.id)).group_by(Appointment.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def get_visit_payments(db: Session, appointment_ids: list[int]) -> dict[str, Payment]:
        """Latest boat_sales_visit payment per appointment id"""
        if not appointment_ids:
            return {}
        payments = (
            db.query(Payment)
            .filter(
                Payment.service_type == "boat_sales_visit",
                Payment.service_id.in_([str(i) for i in appointment_ids]),
            )
            .order_by(Payment.id)
            .all()
        )
        # Later rows overwrite earlier ones
        return {p.service_id: p for p in payments}

    @staticmethod
    def create_appointment(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def update_appointment(db: Session, appointment: Appointment, **updates) -> Appointment:
        for key, value in updates.items():
            if hasattr(appointment, key):
                setattr(appointment, key, value)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()
