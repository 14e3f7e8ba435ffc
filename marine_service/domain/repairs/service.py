"""Boat repair service - Repair bookings, workshop workflow and repair billing"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...models_booking import BoatRepair
from ...security_utils import generate_booking_id
from ..payments.linkage import (
    REPAIR_STAGE_FINAL,
    ServiceType,
    final_payment_problem,
    payment_stage,
    record_repair_payment,
)
from .repository import RepairRepository
from .schemas import (
    InvoiceRequest,
    RepairCosts,
    RepairCreate,
    RepairCustomerUpdate,
    RepairStaffUpdate,
)
from .transitions import REPAIR_STATUSES, can_transition

logger = logging.getLogger(__name__)

CANCELLATION_NOTICE = timedelta(days=3)

CUSTOMER_FIELD_MAP = {
    "serviceType": "service_type",
    "problemDescription": "problem_description",
    "serviceDescription": "service_description",
    "customerNotes": "customer_notes",
}

STAFF_FIELD_MAP = {
    "estimatedCost": "estimated_cost",
    "cost": "cost",
    "internalNotes": "internal_notes",
    "priority": "priority",
    "workPerformed": "work_performed",
}


class RepairService:
    """Service layer for boat repair business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RepairRepository()

    # ------------------------------------------------------------------
    # Lookups and access
    # ------------------------------------------------------------------

    def get_repair(self, repair_id: int) -> BoatRepair:
        repair = self.repo.get_by_id(self.db, repair_id)
        if not repair:
            raise HTTPException(status_code=404, detail="Boat repair request not found")
        return repair

    def get_repair_by_booking_id(self, booking_id: str) -> BoatRepair:
        repair = self.repo.get_by_booking_id(self.db, booking_id)
        if not repair:
            raise HTTPException(status_code=404, detail="Boat repair request not found")
        return repair

    @staticmethod
    def ensure_can_view(repair: BoatRepair, user: User) -> None:
        """Owner, assigned technician and staff may see a repair"""
        if user.is_staff or repair.customer_id == user.id or repair.assigned_technician_id == user.id:
            return
        raise HTTPException(status_code=403, detail="Not authorized to view this repair request")

    def _get_owned(self, repair_id: int, user: User, action: str) -> BoatRepair:
        repair = self.get_repair(repair_id)
        if repair.customer_id != user.id:
            raise HTTPException(
                status_code=403, detail=f"Not authorized to {action} this repair request"
            )
        return repair

    def _new_booking_id(self) -> str:
        booking_id = generate_booking_id()
        while self.repo.booking_id_exists(self.db, booking_id):
            booking_id = generate_booking_id()
        return booking_id

    def _change_status(
        self, repair: BoatRepair, new_status: str, user: User, notes: Optional[str] = None
    ) -> None:
        """Apply a status change allowed by the transition table and log it"""
        if new_status not in REPAIR_STATUSES:
            raise HTTPException(status_code=400, detail="Invalid status")
        old_status = repair.status
        if not can_transition(old_status, new_status):
            raise HTTPException(
                status_code=400,
                detail=f"Cannot change repair status from {old_status} to {new_status}",
            )
        repair.status = new_status
        if new_status == "completed":
            repair.completed_at = datetime.utcnow()
        self.repo.add_status_update(
            repair, new_status, notes or f"Status changed from {old_status} to {new_status}", user.id
        )
        logger.info(f"🔄 Repair {repair.booking_id}: {old_status} → {new_status} by {user.email}")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all(self) -> list[BoatRepair]:
        return self.repo.get_all(self.db)

    def get_my_repairs(self, user: User) -> list[BoatRepair]:
        return self.repo.get_by_customer(self.db, user.id)

    def get_employee_page(
        self,
        page: int = 1,
        limit: int = 10,
        status: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[list[BoatRepair], int]:
        return self.repo.list_page(self.db, page, limit, status, sort_by, sort_order)

    def get_stats(self) -> dict:
        by_status = self.repo.count_by_status(self.db)
        return {
            "total": sum(by_status.values()),
            "pending": by_status.get("pending", 0),
            "completed": by_status.get("completed", 0),
            "byStatus": [{"status": s, "count": c} for s, c in sorted(by_status.items())],
        }

    def get_technicians(self) -> list[User]:
        return self.repo.get_technicians(self.db)

    def get_cost_breakdown(self, booking_id: str, user: User) -> dict:
        repair = self.get_repair_by_booking_id(booking_id)
        self.ensure_can_view(repair, user)
        return {
            "repairId": repair.booking_id,
            "serviceType": repair.service_type,
            "problemDescription": repair.problem_description,
            "status": repair.status,
            **RepairCosts.from_model(repair).model_dump(),
        }

    # ------------------------------------------------------------------
    # Customer commands
    # ------------------------------------------------------------------

    def create_repair(self, data: RepairCreate, user: User) -> BoatRepair:
        """Book a repair, attaching the advance payment when one was taken"""
        advance_payment = None
        if data.paymentId:
            advance_payment = self.repo.get_payment(self.db, data.paymentId)
            if not advance_payment:
                raise HTTPException(status_code=404, detail="Payment not found")
            if advance_payment.service_type != ServiceType.BOAT_REPAIR.value:
                raise HTTPException(status_code=400, detail="Payment is not a boat repair payment")
            if advance_payment.status != "succeeded":
                raise HTTPException(status_code=400, detail="Advance payment has not succeeded")
            if self.repo.get_by_booking_id(self.db, advance_payment.service_id):
                raise HTTPException(
                    status_code=400, detail="Payment is already linked to another repair"
                )

        repair = self.repo.create_repair(
            self.db,
            booking_id=self._new_booking_id(),
            customer_id=user.id,
            service_type=data.serviceType,
            problem_description=data.problemDescription,
            service_description=data.serviceDescription,
            boat_details=data.boatDetails.model_dump(exclude_none=True),
            scheduled_date_time=data.scheduledDateTime,
            service_location=data.serviceLocation.model_dump(exclude_none=True),
            customer_notes=data.customerNotes,
            status="pending",
            cost=advance_payment.amount if advance_payment else 0,
        )
        self.repo.add_status_update(repair, "pending", "Repair request created", user.id)

        if advance_payment:
            advance_payment.service_id = repair.booking_id
            advance_payment.service_description = (
                f"{repair.service_type} - Advance Payment (Diagnostic Fee)"
            )
            record_repair_payment(repair, advance_payment)

        repair = self.repo.save(self.db, repair)
        logger.info(f"🛠️ Repair {repair.booking_id} booked by {user.email}")
        return repair

    def update_by_customer(self, repair_id: int, data: RepairCustomerUpdate, user: User) -> BoatRepair:
        repair = self._get_owned(repair_id, user, "edit")
        if repair.scheduled_date_time and repair.scheduled_date_time <= datetime.utcnow():
            raise HTTPException(
                status_code=400, detail="Cannot edit repair request. Appointment date has passed."
            )
        if repair.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot edit cancelled repair request.")

        updates = data.model_dump(exclude_unset=True)
        for field, column in CUSTOMER_FIELD_MAP.items():
            if updates.get(field) is not None:
                setattr(repair, column, updates[field])
        if updates.get("boatDetails"):
            repair.boat_details = {**(repair.boat_details or {}), **updates["boatDetails"]}
        if updates.get("serviceLocation"):
            repair.service_location = {**(repair.service_location or {}), **updates["serviceLocation"]}

        return self.repo.save(self.db, repair)

    def _ensure_notice(self, repair: BoatRepair, action: str) -> None:
        if repair.scheduled_date_time and repair.scheduled_date_time <= datetime.utcnow() + CANCELLATION_NOTICE:
            noun = "Cancellation" if action == "cancel" else "Deletion"
            raise HTTPException(
                status_code=400,
                detail=(
                    f"Cannot {action} repair request. {noun} must be made at least "
                    "3 days before the appointment."
                ),
            )

    def cancel_by_customer(self, repair_id: int, user: User) -> BoatRepair:
        repair = self._get_owned(repair_id, user, "cancel")
        if repair.status in ("completed", "cancelled"):
            raise HTTPException(
                status_code=400,
                detail="Cannot cancel repair request. Service is already completed or cancelled.",
            )
        self._ensure_notice(repair, "cancel")
        self._change_status(repair, "cancelled", user, "Repair request cancelled by customer")
        return self.repo.save(self.db, repair)

    def delete_by_customer(self, repair_id: int, user: User) -> None:
        repair = self._get_owned(repair_id, user, "delete")
        self._ensure_notice(repair, "delete")
        self.repo.delete_repair(self.db, repair)
        logger.info(f"🗑️ Repair {repair.booking_id} deleted by customer {user.email}")

    # ------------------------------------------------------------------
    # Staff commands
    # ------------------------------------------------------------------

    def update_by_staff(self, repair_id: int, data: RepairStaffUpdate, user: User) -> BoatRepair:
        repair = self.get_repair(repair_id)
        updates = data.model_dump(exclude_unset=True)

        if updates.get("assignedTechnician") is not None:
            technician = self._get_technician(updates["assignedTechnician"])
            repair.assigned_technician_id = technician.id
            repair.assigned_by_id = user.id
            repair.assigned_at = datetime.utcnow()

        for field, column in STAFF_FIELD_MAP.items():
            if field in updates:
                setattr(repair, column, updates[field])

        new_status = updates.get("status")
        if new_status and new_status != repair.status:
            self._change_status(repair, new_status, user)

        return self.repo.save(self.db, repair)

    def _get_technician(self, technician_id: int) -> User:
        # Active employees only
        technician = self.repo.get_user(self.db, technician_id)
        if not technician or technician.role != "employee" or not technician.is_active:
            raise HTTPException(status_code=400, detail="Invalid technician")
        return technician

    def delete_repair(self, repair_id: int) -> None:
        repair = self.get_repair(repair_id)
        self.repo.delete_repair(self.db, repair)
        logger.info(f"🗑️ Repair {repair.booking_id} deleted")

    def assign_technician(self, repair_id: int, technician_id: Optional[int], user: User) -> BoatRepair:
        if not technician_id:
            raise HTTPException(status_code=400, detail="Technician ID is required")
        technician = self._get_technician(technician_id)

        repair = self.get_repair(repair_id)
        if repair.status != "assigned":
            self._change_status(repair, "assigned", user, f"Technician assigned: {technician.name}")
        else:
            self.repo.add_status_update(
                repair, "assigned", f"Technician reassigned: {technician.name}", user.id
            )
        repair.assigned_technician_id = technician.id
        repair.assigned_by_id = user.id
        repair.assigned_at = datetime.utcnow()
        return self.repo.save(self.db, repair)

    def mark_received(self, repair_id: int, user: User) -> BoatRepair:
        repair = self.get_repair(repair_id)
        if repair.boat_received_at:
            raise HTTPException(status_code=400, detail="Boat has already been marked as received")

        self._change_status(repair, "in_progress", user, "Boat received and repair work started")
        repair.boat_received_at = datetime.utcnow()
        repair.received_by_id = user.id
        return self.repo.save(self.db, repair)

    def update_status(
        self, repair_id: int, status: Optional[str], notes: Optional[str], user: User
    ) -> BoatRepair:
        if not status:
            raise HTTPException(status_code=400, detail="Status is required")
        repair = self.get_repair(repair_id)
        self._change_status(repair, status, user, notes)
        return self.repo.save(self.db, repair)

    # ------------------------------------------------------------------
    # Billing
    # ------------------------------------------------------------------

    async def send_invoice(self, repair_id: int, data: InvoiceRequest, user: User) -> dict:
        repair = self.get_repair(repair_id)
        if repair.status == "cancelled":
            raise HTTPException(status_code=400, detail="Cannot invoice a cancelled repair")
        if repair.final_payment_status == "paid":
            raise HTTPException(
                status_code=400, detail="Final payment already completed for this repair"
            )

        repair.final_cost = data.finalCost
        repair.cost = data.finalCost
        repair.invoice_sent_at = datetime.utcnow()
        if data.workPerformed:
            repair.work_performed = data.workPerformed
        repair = self.repo.save(self.db, repair)
        costs = RepairCosts.from_model(repair)
        logger.info(f"🧾 Invoice for repair {repair.booking_id} ({data.finalCost}) by {user.email}")

        try:
            from ...email_service import send_repair_invoice_email

            await send_repair_invoice_email(
                to=repair.customer.email,
                customer_name=repair.customer.name,
                booking_id=repair.booking_id,
                final_cost=costs.finalCost,
                advance_payment=costs.advancePayment,
                remaining_amount=costs.remainingAmount,
                work_performed=repair.work_performed,
            )
        except Exception as e:
            logger.warning(f"⚠️ Failed to send invoice email for {repair.booking_id}: {e}")

        return {
            "repairId": repair.booking_id,
            "finalCost": costs.finalCost,
            "remainingAmount": costs.remainingAmount,
        }

    def record_final_payment(self, booking_id: str, payment_id: str, user: User) -> BoatRepair:
        """Attach a succeeded balance payment to a completed repair"""
        repair = self.get_repair_by_booking_id(booking_id)
        if repair.customer_id != user.id and not user.is_staff:
            raise HTTPException(status_code=403, detail="Not authorized to pay for this repair")

        payment = self.repo.get_payment(self.db, payment_id)
        if not payment:
            raise HTTPException(status_code=404, detail="Payment not found")

        if repair.final_payment_status == "paid":
            if repair.final_payment_id == payment.payment_id:
                return repair
            raise HTTPException(
                status_code=400, detail="Final payment already completed for this repair"
            )
        if repair.status != "completed":
            raise HTTPException(
                status_code=400, detail="Repair must be completed before final payment"
            )
        if payment.service_type != ServiceType.BOAT_REPAIR.value or payment.service_id != repair.booking_id:
            raise HTTPException(status_code=400, detail="Payment does not belong to this repair")
        if payment_stage(payment) != REPAIR_STAGE_FINAL:
            raise HTTPException(
                status_code=400, detail="Payment was not taken as a final payment for this repair"
            )
        if payment.status != "succeeded":
            raise HTTPException(status_code=400, detail="Payment has not succeeded")

        problem = final_payment_problem(repair, payment)
        if problem:
            raise HTTPException(status_code=400, detail=problem)

        payment.service_description = f"{repair.service_type} - Final Payment"
        record_repair_payment(repair, payment)
        logger.info(f"💰 Final payment {payment.payment_id} recorded for repair {repair.booking_id}")
        return self.repo.save(self.db, repair)
