"""Appointment router - FastAPI endpoints for appointment booking"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_staff
from ...database import get_db
from ...models import User
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailableSlotsResponse,
    CalendarResponse,
    CustomerAppointmentUpdate,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# PUBLIC BOOKING
# ============================================================================


@router.get("/available-slots/{date}")
async def get_available_time_slots(
    date: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free and booked slots for one day"""
    result = service.get_available_slots(date)
    return {"success": True, "data": AvailableSlotsResponse(**result)}


@router.get("/calendar/{year}/{month}")
async def get_calendar_data(
    year: str,
    month: str,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Month occupancy for the booking calendar"""
    result = service.get_calendar(year, month)
    return {"success": True, "data": CalendarResponse(**result)}


@router.post("", status_code=201)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = await service.create_appointment(data)
    return {"success": True, "data": AppointmentResponse.from_model(appointment)}


# ============================================================================
# CUSTOMER SELF-SERVICE
# ============================================================================


@router.get("/customer")
async def get_customer_appointments(
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments booked with the signed-in customer's email"""
    appointments = service.get_customer_appointments(current_user)
    return {"success": True, "data": [AppointmentResponse.from_model(a) for a in appointments]}


@router.put("/customer/{appointment_id}")
async def update_customer_appointment(
    appointment_id: str,
    data: CustomerAppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_customer_appointment(appointment_id, data, current_user)
    return {
        "success": True,
        "data": AppointmentResponse.from_model(appointment),
        "message": "Appointment updated successfully",
    }


@router.delete("/customer/{appointment_id}")
async def cancel_customer_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.cancel_customer_appointment(appointment_id, current_user)
    return {
        "success": True,
        "data": AppointmentResponse.from_model(appointment),
        "message": "Appointment cancelled successfully",
    }


# ============================================================================
# STAFF MANAGEMENT
# ============================================================================


@router.get("")
async def get_appointments(
    status: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
    serviceType: Optional[str] = Query(None),
    paymentStatus: Optional[str] = Query(None),
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    """All appointments with their linked payment status"""
    rows = service.get_appointments(status, date, serviceType, paymentStatus)
    return {
        "success": True,
        "data": [
            AppointmentResponse.from_model(appointment, pay_status, pay_id)
            for appointment, pay_status, pay_id in rows
        ],
    }


@router.get("/stats")
async def get_appointment_stats(
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    return {"success": True, "data": service.get_stats()}


@router.get("/{appointment_id}")
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id)
    return {"success": True, "data": AppointmentResponse.from_model(appointment)}


@router.put("/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_appointment(appointment_id, data)
    return {"success": True, "data": AppointmentResponse.from_model(appointment)}


@router.patch("/{appointment_id}/status")
async def update_appointment_status(
    appointment_id: str,
    data: AppointmentStatusUpdate,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.update_status(appointment_id, data.status, data.adminNotes)
    return {"success": True, "data": AppointmentResponse.from_model(appointment)}


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_appointment_service),
):
    service.delete_appointment(appointment_id)
    return {"success": True, "message": "Appointment deleted successfully"}
