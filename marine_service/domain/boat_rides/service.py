"""Boat ride service - Ride bookings, request screening and staff review"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_booking import BoatBooking
from ...shared.validators import parse_numeric_id
from ..payments import linkage
from .repository import BoatBookingRepository
from .schemas import (
    BOOKING_STATUSES,
    REVIEW_ACTIONS,
    TERMS_REASONS,
    BoatBookingCreate,
    BoatBookingUpdate,
    BookingReview,
    BookingStatusUpdate,
    TermsRequest,
)
from .screening import screen_request

logger = logging.getLogger(__name__)

FOLLOW_UP_AFTER = timedelta(hours=24)

# Request field -> column
FIELD_MAP = {
    "customerName": "customer_name",
    "customerEmail": "customer_email",
    "customerPhone": "customer_phone",
    "numberOfPassengers": "number_of_passengers",
    "passengerNames": "passenger_names",
    "bookingDate": "booking_date",
    "bookingTime": "booking_time",
    "duration": "duration",
    "selectedCatering": "selected_catering",
    "specialRequests": "special_requests",
    "totalPrice": "total_price",
    "finalPrice": "final_price",
    "priority": "priority",
}


def _timestamped_note(existing: Optional[str], note: str) -> str:
    line = f"[{datetime.utcnow().isoformat(timespec='seconds')}] {note}"
    return f"{existing}\n{line}" if existing else line


async def send_ride_confirmation(booking: BoatBooking) -> None:
    """E-mail the paid ride confirmation; delivery failures are only logged"""
    try:
        from ...email_service import send_ride_confirmed_email

        await send_ride_confirmed_email(
            to=booking.customer_email,
            customer_name=booking.customer_name,
            package_name=booking.package_name,
            booking_date=booking.booking_date.isoformat(),
            booking_time=booking.booking_time,
            amount=booking.payment_amount or 0,
        )
    except Exception as e:
        logger.warning(f"⚠️ Failed to send ride confirmation for booking {booking.id}: {e}")


class BoatBookingService:
    """Service layer for boat ride business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BoatBookingRepository()

    def get_booking(self, booking_id) -> BoatBooking:
        parsed_id = parse_numeric_id(booking_id)
        if parsed_id is None:
            raise HTTPException(status_code=404, detail="Invalid Boat Booking Id")
        booking = self.repo.get_by_id(self.db, parsed_id)
        if not booking:
            raise HTTPException(status_code=404, detail="Boat booking not found")
        return booking

    def get_booking_for_user(self, booking_id, user: User) -> BoatBooking:
        booking = self.get_booking(booking_id)
        if not user.is_staff and not self._is_owner(booking, user):
            raise HTTPException(status_code=403, detail="Not authorized to access this booking")
        return booking

    @staticmethod
    def _is_owner(booking: BoatBooking, user: User) -> bool:
        if booking.customer_id is not None:
            return booking.customer_id == user.id
        return booking.customer_email.lower() == user.email.lower()

    # ------------------------------------------------------------------
    # Customer booking
    # ------------------------------------------------------------------

    async def create_booking(self, data: BoatBookingCreate, user: Optional[User]) -> BoatBooking:
        if data.bookingDate < date.today():
            raise HTTPException(status_code=400, detail="Booking date cannot be in the past")

        screening = screen_request(data.specialRequests, data.numberOfPassengers)
        booking = BoatBooking(
            customer_id=user.id if user and not user.is_staff else None,
            customer_name=data.customerName,
            customer_email=data.customerEmail,
            customer_phone=data.customerPhone,
            package_id=data.packageId,
            package_name=data.packageName,
            number_of_passengers=data.numberOfPassengers,
            passenger_names=data.passengerNames,
            booking_date=data.bookingDate,
            booking_time=data.bookingTime,
            duration=data.duration,
            selected_catering=data.selectedCatering,
            special_requests=data.specialRequests,
            total_price=data.totalPrice,
            status="Pending Review",
            priority="URGENT" if screening.flagged else "HIGH",
            follow_up_date=datetime.utcnow() + FOLLOW_UP_AFTER,
            flagged=screening.flagged,
            flag_reasons=screening.reasons,
            risk_level=screening.risk_level,
            requires_terms_reminder=screening.requires_terms_reminder,
        )
        booking = self.repo.save(self.db, booking)
        logger.info(f"🚤 Boat ride {booking.id} requested by {booking.customer_email} ({booking.package_name})")
        if screening.flagged:
            logger.warning(f"⚠️ Boat ride {booking.id} flagged for review: {screening.reasons}")

        if screening.requires_terms_reminder:
            if await self._send_terms(booking, screening.terms_reason):
                booking = self.repo.save(self.db, booking)
        return booking

    def get_customer_bookings(
        self, user: User, page: int = 1, limit: int = 10, status: Optional[str] = None
    ) -> tuple[list[BoatBooking], int]:
        return self.repo.list_for_customer(self.db, user.id, user.email, page, limit, status)

    def confirm_payment(self, booking_id, payment_id: Optional[str], user: User) -> BoatBooking:
        """Attach a succeeded boat_ride payment to the booking it was taken for"""
        booking = self.get_booking_for_user(booking_id, user)
        if not payment_id:
            raise HTTPException(status_code=400, detail="Payment ID is required")

        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")
        if payment.service_type != linkage.ServiceType.BOAT_RIDE.value or payment.service_id != str(booking.id):
            raise HTTPException(status_code=400, detail="Payment does not belong to this booking")
        if payment.status != "succeeded":
            raise HTTPException(status_code=400, detail="Payment has not succeeded")

        problem = linkage.ride_payment_problem(booking, payment)
        if problem:
            raise HTTPException(status_code=400, detail=problem)

        linkage.record_ride_payment(booking, payment)
        logger.info(f"💳 Boat ride {booking.id} payment confirmed: {payment.amount}")
        return self.repo.save(self.db, booking)

    # ------------------------------------------------------------------
    # Staff
    # ------------------------------------------------------------------

    def get_bookings(
        self, status: Optional[str] = None, search: Optional[str] = None
    ) -> list[BoatBooking]:
        return self.repo.list_bookings(self.db, status=status, search=search)

    def get_flagged(self) -> dict:
        flagged = self.repo.list_bookings(self.db, flagged=True)
        pending = [b for b in flagged if b.status == "Pending Review"]
        return {"flagged": flagged, "pending": pending}

    def get_dashboard(self) -> dict:
        now = datetime.utcnow()
        start_of_day = datetime(now.year, now.month, now.day)
        counts = self.repo.count_by_status(self.db)
        follow_ups = self.repo.follow_ups_due(self.db, now + timedelta(days=1))
        return {
            "stats": {
                "totalBookings": sum(counts.values()),
                "pendingReview": counts.get("Pending Review", 0),
                "confirmed": counts.get("Confirmed", 0),
                "needFollowUp": len(follow_ups),
                "todayBookings": self.repo.count_created_since(self.db, start_of_day),
            },
            "pendingBookings": follow_ups,
            "recentBookings": self.repo.recent(self.db),
        }

    def update_booking(self, booking_id, data: BoatBookingUpdate) -> BoatBooking:
        booking = self.get_booking(booking_id)
        if booking.status in ("Completed", "Cancelled"):
            raise HTTPException(
                status_code=400, detail="Cannot update completed or cancelled bookings"
            )

        updates = data.model_dump(exclude_unset=True)
        for field, column in FIELD_MAP.items():
            if updates.get(field) is not None:
                setattr(booking, column, updates[field])

        if "specialRequests" in updates or "numberOfPassengers" in updates:
            self._apply_screening(booking)
        return self.repo.save(self.db, booking)

    def update_status(self, booking_id, data: BookingStatusUpdate) -> BoatBooking:
        booking = self.get_booking(booking_id)
        if data.status is not None and data.status not in BOOKING_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")
        if data.quotedPrice is not None and data.quotedPrice <= 0:
            raise HTTPException(status_code=400, detail="Quoted price must be greater than zero")

        previous = booking.status
        if data.status:
            booking.status = data.status
        if data.notes:
            booking.employee_notes = data.notes
        if data.quotedPrice is not None:
            booking.quoted_price = data.quotedPrice
        if data.assignedEmployee:
            booking.assigned_employee = data.assignedEmployee
        booking.last_contact_date = datetime.utcnow()

        logger.info(f"📋 Boat ride {booking.id}: {previous} → {booking.status}")
        return self.repo.save(self.db, booking)

    async def review_booking(self, booking_id, data: BookingReview, user: User) -> BoatBooking:
        booking = self.get_booking(booking_id)
        if data.action not in REVIEW_ACTIONS:
            raise HTTPException(
                status_code=400,
                detail=f"action must be one of: {', '.join(REVIEW_ACTIONS)}",
            )

        status, review_action = REVIEW_ACTIONS[data.action]
        booking.status = status
        booking.review_action = review_action
        booking.content_reviewed = data.action != "request_modification"
        booking.reviewed_at = datetime.utcnow()
        booking.reviewed_by_id = user.id
        booking.employee_notes = _timestamped_note(
            booking.employee_notes,
            f"Employee review: {data.action}. Notes: {data.employeeNotes or 'None'}",
        )

        if data.sendTerms:
            await self._send_terms(booking, "employee_review")

        logger.info(f"📋 Boat ride {booking.id} reviewed by {user.email}: {data.action}")
        return self.repo.save(self.db, booking)

    async def send_terms(self, booking_id, data: TermsRequest, user: User) -> BoatBooking:
        booking = self.get_booking(booking_id)
        reason = data.reason or "employee_request"
        if reason not in TERMS_REASONS:
            raise HTTPException(status_code=400, detail="Invalid terms reason")

        if not await self._send_terms(booking, reason, data.customMessage):
            raise HTTPException(status_code=502, detail="Failed to send terms")

        note = f"Terms & Conditions sent by {user.email}. Reason: {reason}"
        if data.customMessage:
            note += f"\nCustom message: {data.customMessage}"
        booking.employee_notes = _timestamped_note(booking.employee_notes, note)
        return self.repo.save(self.db, booking)

    def delete_booking(self, booking_id) -> None:
        booking = self.get_booking(booking_id)
        self.repo.delete(self.db, booking)
        logger.info(f"🗑️ Boat ride {booking.id} deleted")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_screening(booking: BoatBooking) -> None:
        screening = screen_request(booking.special_requests, booking.number_of_passengers)
        booking.flagged = screening.flagged
        booking.flag_reasons = screening.reasons
        booking.risk_level = screening.risk_level
        booking.requires_terms_reminder = screening.requires_terms_reminder

    async def _send_terms(
        self, booking: BoatBooking, reason: str, custom_message: Optional[str] = None
    ) -> bool:
        """E-mail the ride terms and record it on the booking. The caller commits."""
        try:
            from ...email_service import send_ride_terms_email

            await send_ride_terms_email(
                to=booking.customer_email,
                customer_name=booking.customer_name,
                package_name=booking.package_name,
                booking_date=booking.booking_date.isoformat(),
                booking_time=booking.booking_time,
                reason=reason,
                custom_message=custom_message,
            )
        except Exception as e:
            logger.warning(f"⚠️ Failed to send terms for boat ride {booking.id}: {e}")
            return False

        booking.terms_sent = True
        booking.terms_reason = reason
        booking.terms_sent_at = datetime.utcnow()
        logger.info(f"📋 Terms sent for boat ride {booking.id} ({reason})")
        return True
