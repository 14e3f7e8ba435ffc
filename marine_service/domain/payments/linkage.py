"""
Payment to booking linkage.

A payment names what it pays for with a (service_type, service_id) pair.
The service type is a closed set of tags. For the tags backed by a booking
table the service id must identify an existing row:

    boat_repair       -> BoatRepair.booking_id (REP-XXXXXXXX)
    boat_sales_visit  -> Appointment.id
    spare_parts       -> Order.order_id (ORD-...)
    boat_ride         -> BoatBooking.id

The other tags (maintenance, other) are free-form references.

An advance payment for a repair is taken before the repair booking exists,
so boat_repair payments with stage "advance" may carry a provisional id.
Creating the repair re-points the payment at the new booking id.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models_booking import Appointment, BoatBooking, BoatRepair
from ...models_order import Order
from ...models_payment import Payment
from ...shared.validators import parse_numeric_id

logger = logging.getLogger(__name__)


class ServiceType(str, Enum):
    BOAT_REPAIR = "boat_repair"
    BOAT_SALES_VISIT = "boat_sales_visit"
    SPARE_PARTS = "spare_parts"
    BOAT_RIDE = "boat_ride"
    MAINTENANCE = "maintenance"
    OTHER = "other"


BOOKING_BACKED_TYPES = (
    ServiceType.BOAT_REPAIR,
    ServiceType.BOAT_SALES_VISIT,
    ServiceType.SPARE_PARTS,
    ServiceType.BOAT_RIDE,
)

REPAIR_STAGE_ADVANCE = "advance"
REPAIR_STAGE_FINAL = "final"

Booking = Union[BoatRepair, Appointment, Order, BoatBooking]


def payment_stage(payment: Payment) -> str:
    """Repair payments are either the advance or the final balance"""
    metadata = payment.extra_metadata or {}
    stage = metadata.get("stage") or metadata.get("paymentType")
    return REPAIR_STAGE_FINAL if stage in ("final", "final_payment") else REPAIR_STAGE_ADVANCE


def find_booking(db: Session, service_type: str, service_id: str) -> Optional[Booking]:
    """Look up the booking a tagged reference points at"""
    if service_type == ServiceType.BOAT_REPAIR:
        return db.query(BoatRepair).filter(BoatRepair.booking_id == service_id).first()
    if service_type == ServiceType.BOAT_SALES_VISIT:
        appointment_id = parse_numeric_id(service_id)
        if appointment_id is None:
            return None
        return db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if service_type == ServiceType.SPARE_PARTS:
        return db.query(Order).filter(Order.order_id == service_id).first()
    if service_type == ServiceType.BOAT_RIDE:
        ride_id = parse_numeric_id(service_id)
        if ride_id is None:
            return None
        return db.query(BoatBooking).filter(BoatBooking.id == ride_id).first()
    return None


def validate_reference(
    db: Session, service_type: ServiceType, service_id: str, stage: Optional[str] = None
) -> Optional[Booking]:
    """
    Check that a new payment points at something real.

    Raises 400 when a booking-backed reference does not resolve.
    """
    if service_type not in BOOKING_BACKED_TYPES:
        return None

    booking = find_booking(db, service_type, service_id)
    if booking is not None:
        return booking

    provisional_advance = service_type == ServiceType.BOAT_REPAIR and stage not in (
        "final",
        "final_payment",
    )
    if provisional_advance:
        logger.info(f"ℹ️ Advance payment for a repair not booked yet ({service_id})")
        return None

    raise HTTPException(
        status_code=400,
        detail=f"No {service_type.value.replace('_', ' ')} booking found for serviceId {service_id}",
    )


def apply_successful_payment(db: Session, payment: Payment) -> Optional[Booking]:
    """
    Reflect a succeeded payment on its booking. Safe to call more than once.
    The caller commits.
    """
    booking = find_booking(db, payment.service_type, payment.service_id)
    if booking is None:
        return None

    if isinstance(booking, Order):
        from ..orders.repository import OrderRepository

        OrderRepository.mark_paid(db, booking, payment.payment_id)
    elif isinstance(booking, BoatRepair):
        problem = final_payment_problem(booking, payment)
        if problem:
            logger.warning(f"⚠️ Payment {payment.payment_id} not applied to {booking.booking_id}: {problem}")
        else:
            record_repair_payment(booking, payment)
    elif isinstance(booking, BoatBooking):
        problem = ride_payment_problem(booking, payment)
        if problem:
            logger.warning(f"⚠️ Payment {payment.payment_id} not applied to ride {booking.id}: {problem}")
        else:
            record_ride_payment(booking, payment)
    # Visit payment status is read from the payment itself
    return booking


def apply_failed_payment(db: Session, payment: Payment) -> Optional[Booking]:
    """Mark the booking's payment as failed unless it was already paid"""
    booking = find_booking(db, payment.service_type, payment.service_id)
    if isinstance(booking, Order) and booking.payment_status != "paid":
        booking.payment_status = "failed"
    elif isinstance(booking, BoatRepair):
        if payment_stage(payment) == REPAIR_STAGE_FINAL:
            if booking.final_payment_status != "paid":
                booking.final_payment_status = "failed"
        elif booking.advance_payment_status != "paid":
            booking.advance_payment_status = "failed"
    elif isinstance(booking, BoatBooking) and booking.payment_status != "paid":
        booking.payment_status = "failed"
    return booking


def repair_balance_due(repair: BoatRepair) -> float:
    """Invoiced cost less the paid advance, never negative. Zero once fully paid."""
    if repair.final_payment_status == "paid":
        return 0.0
    advance = (repair.advance_amount or 0) if repair.advance_payment_status == "paid" else 0
    final_cost = repair.final_cost or repair.cost or 0
    return max(0.0, round(final_cost - advance, 2))


def final_payment_problem(repair: BoatRepair, payment: Payment) -> Optional[str]:
    """
    Why a payment cannot settle the repair's balance, or None when it can.
    Advance-stage payments always pass.
    """
    if payment_stage(payment) != REPAIR_STAGE_FINAL:
        return None
    if payment.payment_id == repair.advance_payment_id:
        return "The advance payment cannot be used as the final payment"
    if repair.status != "completed":
        return "Repair must be completed before final payment"
    if not repair.final_cost:
        return "No invoice has been sent for this repair"
    balance = repair_balance_due(repair)
    if repair.final_payment_status != "paid" and payment.amount < balance:
        return f"Payment amount does not cover the remaining balance of {balance:.2f}"
    return None


def record_repair_payment(repair: BoatRepair, payment: Payment) -> None:
    """Copy a payment onto the repair's advance or final payment fields"""
    paid = payment.status == "succeeded"
    if payment_stage(payment) == REPAIR_STAGE_FINAL:
        if repair.final_payment_status == "paid":
            return
        repair.final_payment_id = payment.payment_id
        repair.final_payment_intent_id = payment.stripe_payment_intent_id
        repair.final_payment_amount = payment.amount
        if paid:
            repair.final_payment_status = "paid"
            repair.final_paid_at = payment.paid_at or datetime.utcnow()
    else:
        if repair.advance_payment_status == "paid":
            return
        repair.advance_payment_id = payment.payment_id
        repair.advance_payment_intent_id = payment.stripe_payment_intent_id
        repair.advance_amount = payment.amount
        if paid:
            repair.advance_payment_status = "paid"
            repair.advance_paid_at = payment.paid_at or datetime.utcnow()
    logger.info(
        f"🔗 Payment {payment.payment_id} recorded on repair {repair.booking_id} "
        f"({payment_stage(payment)}, {payment.status})"
    )


def apply_refund(db: Session, payment: Payment) -> Optional[Booking]:
    """Mark the booking's payment refunded once the payment is fully refunded"""
    booking = find_booking(db, payment.service_type, payment.service_id)
    if isinstance(booking, Order):
        booking.payment_status = "refunded"
    elif isinstance(booking, BoatRepair):
        # Only the payments actually recorded on the repair change its stages
        if payment.payment_id == booking.final_payment_id:
            booking.final_payment_status = "refunded"
        elif payment.payment_id == booking.advance_payment_id:
            booking.advance_payment_status = "refunded"
    elif isinstance(booking, BoatBooking) and payment.payment_id == booking.payment_id:
        booking.payment_status = "refunded"
        booking.refunded_at = datetime.utcnow()
    return booking


def ride_price_due(booking: BoatBooking) -> float:
    """The agreed price: final, else quoted, else the price at booking time"""
    return booking.final_price or booking.quoted_price or booking.total_price or 0


def ride_payment_problem(booking: BoatBooking, payment: Payment) -> Optional[str]:
    if booking.payment_status == "paid":
        return None if booking.payment_id == payment.payment_id else "Boat ride is already paid"
    if booking.status == "Cancelled":
        return "Cannot pay for a cancelled boat ride"
    price = ride_price_due(booking)
    if payment.amount < price:
        return f"Payment amount does not cover the ride price of {price:.2f}"
    return None


def record_ride_payment(booking: BoatBooking, payment: Payment) -> None:
    """Mark the ride paid and confirm it. Repeat calls for the same payment change nothing."""
    if booking.payment_status == "paid":
        return
    booking.payment_status = "paid"
    booking.payment_id = payment.payment_id
    booking.payment_amount = payment.amount
    booking.paid_at = payment.paid_at or datetime.utcnow()
    booking.last_contact_date = datetime.utcnow()
    if booking.status in ("Pending Review", "In Progress"):
        booking.status = "Confirmed"
    logger.info(f"🔗 Payment {payment.payment_id} confirmed boat ride {booking.id}")
