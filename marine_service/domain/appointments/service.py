"""Appointment service - Booking rules, slot availability and calendar occupancy"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User
from ...models_booking import ACTIVE_APPOINTMENT_STATUSES, Appointment
from ...shared.validators import parse_calendar_date, parse_numeric_id
from . import slots
from .repository import AppointmentRepository
from .schemas import (
    APPOINTMENT_STATUSES,
    AppointmentCreate,
    AppointmentUpdate,
    CustomerAppointmentUpdate,
)

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "Time slot is already booked. Please choose another time."
PAID_VISIT_SERVICE_TYPE = "Boat Purchase Visit"

# Request field -> column
FIELD_MAP = {
    "customerName": "customer_name",
    "customerEmail": "customer_email",
    "customerPhone": "customer_phone",
    "serviceType": "service_type",
    "appointmentDate": "appointment_date",
    "appointmentTime": "appointment_time",
    "boatDetails": "boat_details",
    "description": "description",
    "estimatedDuration": "estimated_duration",
    "status": "status",
    "adminNotes": "admin_notes",
    "estimatedCost": "estimated_cost",
    "priority": "priority",
}


# Columns an explicit null clears. Nulls for any other field are ignored.
CLEARABLE_COLUMNS = ("admin_notes", "estimated_cost")


def _to_columns(data: dict) -> dict:
    """Map the fields a client actually sent onto column names"""
    columns = {}
    for key, value in data.items():
        column = FIELD_MAP.get(key)
        if column and (value is not None or column in CLEARABLE_COLUMNS):
            columns[column] = value
    return columns


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    # ------------------------------------------------------------------
    # Slot bookkeeping
    # ------------------------------------------------------------------

    def _ensure_slot_free(
        self, appointment_date: date, appointment_time: str, exclude_id: Optional[int] = None
    ) -> None:
        conflict = self.repo.find_slot_conflict(
            self.db, appointment_date, appointment_time, exclude_id=exclude_id
        )
        if conflict:
            logger.info(
                f"⛔ Slot {appointment_date} {appointment_time} already held by appointment {conflict.id}"
            )
            raise HTTPException(status_code=400, detail=SLOT_TAKEN_MESSAGE)

    def _ensure_slot_free_after_update(self, appointment: Appointment, updates: dict) -> None:
        """Re-check the slot when an update moves or re-activates an appointment"""
        new_date = updates.get("appointment_date") or appointment.appointment_date
        new_time = updates.get("appointment_time") or appointment.appointment_time
        new_status = updates.get("status") or appointment.status

        if new_status not in ACTIVE_APPOINTMENT_STATUSES:
            return

        moved = new_date != appointment.appointment_date or new_time != appointment.appointment_time
        reactivated = appointment.status not in ACTIVE_APPOINTMENT_STATUSES
        if moved or reactivated:
            self._ensure_slot_free(new_date, new_time, exclude_id=appointment.id)

    def _save(self, operation, *args, **kwargs) -> Appointment:
        """
        Run a repository write; a concurrent booking that slipped past the
        pre-check trips the unique slot index and is reported the same way.
        """
        try:
            return operation(self.db, *args, **kwargs)
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot uniqueness violated on commit: {e.orig}")
            raise HTTPException(status_code=400, detail=SLOT_TAKEN_MESSAGE) from e

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id) -> Appointment:
        parsed_id = parse_numeric_id(appointment_id)
        if parsed_id is None:
            raise HTTPException(status_code=404, detail="Invalid Appointment Id")
        appointment = self.repo.get_by_id(self.db, parsed_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    def get_appointments(
        self,
        status: Optional[str] = None,
        appointment_date: Optional[str] = None,
        service_type: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> list[tuple[Appointment, str, Optional[str]]]:
        """
        Appointments with the status of the payment linked to each.

        Boat purchase visits are paid through a boat_sales_visit payment whose
        service id is the appointment id. A visit with no payment yet reports
        "pending"; other service types are not paid online and report
        "not_required".
        """
        day = self._parse_date(appointment_date) if appointment_date else None
        appointments = self.repo.get_appointments(self.db, status, day, service_type)

        visit_ids = [a.id for a in appointments if a.service_type == PAID_VISIT_SERVICE_TYPE]
        payments = self.repo.get_visit_payments(self.db, visit_ids)

        results = []
        for appointment in appointments:
            if appointment.service_type == PAID_VISIT_SERVICE_TYPE:
                payment = payments.get(str(appointment.id))
                pay_status = payment.status if payment else "pending"
                pay_id = payment.payment_id if payment else None
            else:
                pay_status, pay_id = "not_required", None
            results.append((appointment, pay_status, pay_id))

        if payment_status and payment_status != "All":
            results = [r for r in results if r[1] == payment_status]
        return results

    def get_customer_appointments(self, user: User) -> list[Appointment]:
        return self.repo.get_by_customer_email(self.db, user.email)

    def get_available_slots(self, date_value: str) -> dict:
        day = self._parse_date(date_value)
        booked = self.repo.get_booked_times(self.db, day)
        booked_in_order = [slot for slot in slots.TIME_SLOTS if slot in booked]
        return {
            "date": day,
            "availableSlots": slots.available_slots(booked),
            "bookedSlots": booked_in_order,
        }

    def get_calendar(self, year: str, month: str) -> dict:
        try:
            year_num = int(year)
            month_num = int(month)
        except (TypeError, ValueError) as e:
            raise HTTPException(status_code=400, detail="Invalid year or month") from e
        if not 1 <= month_num <= 12 or not 1 <= year_num <= 9999:
            raise HTTPException(status_code=400, detail="Invalid year or month")

        start, end = slots.month_bounds(year_num, month_num)
        day_counts = self.repo.count_active_by_day(self.db, start, end)
        partially_booked, fully_booked = slots.classify_days(day_counts)

        return {
            "year": year_num,
            "month": month_num,
            "bookedDates": [day.isoformat() for day in sorted(day_counts)],
            "partiallyBookedDates": partially_booked,
            "fullyBookedDates": fully_booked,
            "slotCounts": {day.isoformat(): count for day, count in sorted(day_counts.items())},
            "totalAppointments": sum(day_counts.values()),
        }

    def get_stats(self) -> dict:
        by_status = self.repo.count_by_status(self.db)
        return {
            "total": sum(by_status.values()),
            "pendingVisits": by_status.get("Pending", 0) + by_status.get("Confirmed", 0),
            "completed": by_status.get("Completed", 0),
            "cancelled": by_status.get("Cancelled", 0),
            "byStatus": [{"status": s, "count": c} for s, c in sorted(by_status.items())],
        }

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """Book a slot for a new appointment"""
        logger.info(
            f"📥 Booking request for {data.appointmentDate} {data.appointmentTime} ({data.serviceType})"
        )
        self._ensure_slot_free(data.appointmentDate, data.appointmentTime)

        values = _to_columns(data.model_dump())
        values["status"] = "Pending"
        appointment = self._save(self.repo.create_appointment, **values)
        logger.info(f"✅ Appointment {appointment.id} booked")

        try:
            from ...email_service import send_appointment_received_email

            await send_appointment_received_email(
                to=appointment.customer_email,
                customer_name=appointment.customer_name,
                service_type=appointment.service_type,
                appointment_date=appointment.appointment_date.isoformat(),
                appointment_time=appointment.appointment_time,
            )
        except Exception as e:
            logger.warning(f"⚠️ Failed to send appointment confirmation email: {e}")

        return appointment

    def update_appointment(self, appointment_id, data: AppointmentUpdate) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        updates = _to_columns(data.model_dump(exclude_unset=True))
        self._ensure_slot_free_after_update(appointment, updates)
        return self._save(self.repo.update_appointment, appointment, **updates)

    def update_status(
        self, appointment_id, status: Optional[str], admin_notes: Optional[str] = None
    ) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if not status:
            raise HTTPException(status_code=400, detail="Status is required")
        if status not in APPOINTMENT_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")

        updates = {"status": status}
        if admin_notes:
            updates["admin_notes"] = admin_notes
        self._ensure_slot_free_after_update(appointment, updates)

        logger.info(f"🔄 Appointment {appointment.id}: {appointment.status} → {status}")
        return self._save(self.repo.update_appointment, appointment, **updates)

    def delete_appointment(self, appointment_id) -> None:
        appointment = self.get_appointment(appointment_id)
        self.repo.delete_appointment(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted")

    def _get_own_pending(self, appointment_id, user: User, action: str) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.customer_email.lower() != user.email.lower():
            raise HTTPException(
                status_code=403, detail=f"You can only {action} your own appointments"
            )
        if appointment.status != "Pending":
            verb = "edited" if action == "edit" else "cancelled"
            raise HTTPException(status_code=400, detail=f"Only pending appointments can be {verb}")
        return appointment

    def update_customer_appointment(
        self, appointment_id, data: CustomerAppointmentUpdate, user: User
    ) -> Appointment:
        appointment = self._get_own_pending(appointment_id, user, "edit")
        updates = _to_columns(data.model_dump(exclude_unset=True))
        self._ensure_slot_free_after_update(appointment, updates)
        return self._save(self.repo.update_appointment, appointment, **updates)

    def cancel_customer_appointment(self, appointment_id, user: User) -> Appointment:
        """Cancel keeps the record and releases the slot"""
        appointment = self._get_own_pending(appointment_id, user, "cancel")
        logger.info(f"🚫 Customer {user.email} cancelled appointment {appointment.id}")
        return self.repo.update_appointment(self.db, appointment, status="Cancelled")

    @staticmethod
    def _parse_date(value: str) -> date:
        try:
            return parse_calendar_date(value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail="Invalid date") from e
