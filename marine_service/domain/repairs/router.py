"""Boat repair router - FastAPI endpoints for repair bookings"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_customer, require_staff
from ...database import get_db
from ...models import User
from .schemas import (
    AssignTechnicianRequest,
    FinalPaymentRequest,
    InvoiceRequest,
    RepairCreate,
    RepairCustomerUpdate,
    RepairResponse,
    RepairStaffUpdate,
    RepairStatusChange,
    UserSummary,
)
from .service import RepairService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/boat-repairs", tags=["Boat Repairs"])


def get_repair_service(db: Session = Depends(get_db)) -> RepairService:
    """Dependency injection for RepairService"""
    return RepairService(db)


def _respond(repair, user: User, message: Optional[str] = None) -> dict:
    body = {"success": True, "data": RepairResponse.from_model(repair, include_internal=user.is_staff)}
    if message:
        body["message"] = message
    return body


# ============================================================================
# CUSTOMER ENDPOINTS
# ============================================================================


@router.post("", status_code=201)
async def create_repair(
    data: RepairCreate,
    current_user: User = Depends(require_customer),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.create_repair(data, current_user)
    body = _respond(repair, current_user, "Boat repair request created successfully")
    body["bookingId"] = repair.booking_id
    return body


@router.get("/my-repairs")
async def get_my_repairs(
    current_user: User = Depends(require_customer),
    service: RepairService = Depends(get_repair_service),
):
    repairs = service.get_my_repairs(current_user)
    return {
        "success": True,
        "count": len(repairs),
        "data": [RepairResponse.from_model(r, include_internal=False) for r in repairs],
    }


# ============================================================================
# STAFF LISTS
# ============================================================================


@router.get("")
async def get_all_repairs(
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repairs = service.get_all()
    return {
        "success": True,
        "count": len(repairs),
        "data": [RepairResponse.from_model(r) for r in repairs],
    }


@router.get("/stats")
async def get_repair_stats(
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    return {"success": True, "data": service.get_stats()}


@router.get("/technicians")
async def get_technicians(
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    """Employees whose position describes repair work"""
    technicians = service.get_technicians()
    return {"success": True, "data": [UserSummary.from_model(t) for t in technicians]}


@router.get("/employee/all")
async def get_all_repairs_for_employee(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[str] = Query(None),
    sortBy: str = Query("createdAt"),
    sortOrder: str = Query("desc"),
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repairs, total = service.get_employee_page(page, limit, status, sortBy, sortOrder)
    return {
        "success": True,
        "data": [RepairResponse.from_model(r) for r in repairs],
        "pagination": {"current": page, "pages": math.ceil(total / limit), "total": total},
    }


# ============================================================================
# BOOKING ID LOOKUPS AND BILLING
# ============================================================================


@router.get("/booking/{booking_id}")
async def get_repair_by_booking_id(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.get_repair_by_booking_id(booking_id)
    service.ensure_can_view(repair, current_user)
    return _respond(repair, current_user)


@router.get("/booking/{booking_id}/costs")
async def get_repair_cost_breakdown(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    return {"success": True, "data": service.get_cost_breakdown(booking_id, current_user)}


@router.post("/booking/{booking_id}/final-payment")
async def record_final_payment(
    booking_id: str,
    data: FinalPaymentRequest,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.record_final_payment(booking_id, data.paymentId, current_user)
    return _respond(repair, current_user, "Payment processed successfully")


# ============================================================================
# SINGLE REPAIR
# ============================================================================


@router.get("/{repair_id}")
async def get_repair(
    repair_id: int,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.get_repair(repair_id)
    service.ensure_can_view(repair, current_user)
    return _respond(repair, current_user)


@router.put("/{repair_id}")
async def update_repair(
    repair_id: int,
    data: RepairStaffUpdate,
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.update_by_staff(repair_id, data, current_user)
    return _respond(repair, current_user, "Boat repair updated successfully")


@router.delete("/{repair_id}")
async def delete_repair(
    repair_id: int,
    current_user: User = Depends(require_admin),
    service: RepairService = Depends(get_repair_service),
):
    service.delete_repair(repair_id)
    return {"success": True, "message": "Boat repair request deleted successfully"}


@router.put("/{repair_id}/customer-edit")
async def update_repair_by_customer(
    repair_id: int,
    data: RepairCustomerUpdate,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.update_by_customer(repair_id, data, current_user)
    return _respond(repair, current_user, "Repair request updated successfully")


@router.patch("/{repair_id}/cancel")
async def cancel_repair_by_customer(
    repair_id: int,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.cancel_by_customer(repair_id, current_user)
    return _respond(repair, current_user, "Repair request cancelled successfully")


@router.delete("/{repair_id}/customer-delete")
async def delete_repair_by_customer(
    repair_id: int,
    current_user: User = Depends(get_current_user),
    service: RepairService = Depends(get_repair_service),
):
    service.delete_by_customer(repair_id, current_user)
    return {"success": True, "message": "Repair request deleted successfully"}


@router.put("/{repair_id}/assign-technician")
async def assign_technician(
    repair_id: int,
    data: AssignTechnicianRequest,
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.assign_technician(repair_id, data.technicianId, current_user)
    return _respond(repair, current_user, "Technician assigned successfully")


@router.put("/{repair_id}/mark-received")
async def mark_boat_received(
    repair_id: int,
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.mark_received(repair_id, current_user)
    return _respond(repair, current_user, "Boat marked as received successfully")


@router.put("/{repair_id}/update-status")
async def update_repair_status(
    repair_id: int,
    data: RepairStatusChange,
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    repair = service.update_status(repair_id, data.status, data.notes, current_user)
    return _respond(repair, current_user, "Status updated successfully")


@router.post("/{repair_id}/send-invoice")
async def send_invoice(
    repair_id: int,
    data: InvoiceRequest,
    current_user: User = Depends(require_staff),
    service: RepairService = Depends(get_repair_service),
):
    result = await service.send_invoice(repair_id, data, current_user)
    return {"success": True, "data": result, "message": "Invoice sent to customer successfully"}
