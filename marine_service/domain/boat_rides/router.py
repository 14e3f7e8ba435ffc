"""Boat ride router - FastAPI endpoints for ride bookings"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, get_optional_user, require_admin, require_staff
from ...database import get_db
from ...models import User
from .schemas import (
    BoatBookingCreate,
    BoatBookingResponse,
    BoatBookingUpdate,
    BookingReview,
    BookingStatusUpdate,
    RidePaymentConfirm,
    TermsRequest,
)
from .service import BoatBookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/boat-bookings", tags=["Boat Rides"])


def get_boat_booking_service(db: Session = Depends(get_db)) -> BoatBookingService:
    """Dependency injection for BoatBookingService"""
    return BoatBookingService(db)


def _many(bookings) -> list[BoatBookingResponse]:
    return [BoatBookingResponse.from_model(b) for b in bookings]


# ============================================================================
# CUSTOMER ENDPOINTS
# ============================================================================


@router.post("", status_code=201)
async def create_boat_booking(
    data: BoatBookingCreate,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = await service.create_booking(data, current_user)
    return {
        "success": True,
        "data": BoatBookingResponse.from_model(booking),
        "message": (
            "Boat booking request submitted successfully! "
            "We will contact you within 24 hours to confirm your reservation."
        ),
    }


@router.get("/my-bookings")
async def get_my_bookings(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    bookings, total = service.get_customer_bookings(current_user, page, limit, status)
    return {
        "success": True,
        "data": {
            "bookings": _many(bookings),
            "pagination": {
                "current": page,
                "pages": math.ceil(total / limit) if limit else 0,
                "total": total,
                "limit": limit,
            },
        },
    }


# ============================================================================
# STAFF ENDPOINTS
# ============================================================================


@router.get("")
async def get_boat_bookings(
    status: Optional[str] = Query(None),
    q: Optional[str] = Query(None, description="Search name, email, phone, package or requests"),
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    bookings = service.get_bookings(status, q)
    return {"success": True, "data": _many(bookings), "count": len(bookings)}


@router.get("/employee/dashboard")
async def get_employee_dashboard(
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    result = service.get_dashboard()
    return {
        "success": True,
        "data": {
            "stats": result["stats"],
            "pendingBookings": _many(result["pendingBookings"]),
            "recentBookings": _many(result["recentBookings"]),
        },
    }


@router.get("/employee/flagged")
async def get_flagged_bookings(
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    result = service.get_flagged()
    return {
        "success": True,
        "data": {
            "flaggedBookings": _many(result["flagged"]),
            "pendingReview": _many(result["pending"]),
            "totalFlagged": len(result["flagged"]),
            "pendingCount": len(result["pending"]),
        },
    }


# ============================================================================
# SINGLE BOOKING
# ============================================================================


@router.get("/{booking_id}")
async def get_boat_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = service.get_booking_for_user(booking_id, current_user)
    return {"success": True, "data": BoatBookingResponse.from_model(booking)}


@router.put("/{booking_id}")
async def update_boat_booking(
    booking_id: str,
    data: BoatBookingUpdate,
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = service.update_booking(booking_id, data)
    return {"success": True, "data": BoatBookingResponse.from_model(booking)}


@router.patch("/{booking_id}/status")
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = service.update_status(booking_id, data)
    return {
        "success": True,
        "data": BoatBookingResponse.from_model(booking),
        "message": "Boat booking status updated successfully",
    }


@router.put("/{booking_id}/review")
async def review_booking(
    booking_id: str,
    data: BookingReview,
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = await service.review_booking(booking_id, data, current_user)
    return {
        "success": True,
        "data": BoatBookingResponse.from_model(booking),
        "message": f"Boat booking {data.action} successfully",
    }


@router.post("/{booking_id}/terms")
async def send_terms(
    booking_id: str,
    data: Optional[TermsRequest] = None,
    current_user: User = Depends(require_staff),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = await service.send_terms(booking_id, data or TermsRequest(), current_user)
    return {
        "success": True,
        "data": BoatBookingResponse.from_model(booking),
        "message": "Terms & Conditions sent successfully",
    }


@router.delete("/{booking_id}")
async def delete_boat_booking(
    booking_id: str,
    current_user: User = Depends(require_admin),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    service.delete_booking(booking_id)
    return {"success": True, "message": "Boat booking deleted successfully"}


@router.post("/{booking_id}/payment/confirm")
async def confirm_booking_payment(
    booking_id: str,
    data: RidePaymentConfirm,
    current_user: User = Depends(get_current_user),
    service: BoatBookingService = Depends(get_boat_booking_service),
):
    booking = service.confirm_payment(booking_id, data.paymentId, current_user)
    return {
        "success": True,
        "message": "Payment confirmed successfully",
        "data": {
            "bookingId": booking.id,
            "paymentStatus": booking.payment_status,
            "paymentAmount": booking.payment_amount,
            "paidAt": booking.paid_at,
            "status": booking.status,
        },
    }
