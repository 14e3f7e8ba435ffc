"""Boat repair schemas - Pydantic models for validation"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models import User
from ...models_booking import BoatRepair, RepairStatusUpdate
from ..payments.linkage import repair_balance_due

REPAIR_SERVICE_TYPES = (
    "engine_repair",
    "hull_repair",
    "electrical_repair",
    "propeller_repair",
    "maintenance",
    "inspection",
    "other",
)
BOAT_TYPES = ("speedboat", "yacht", "fishing_boat", "sailboat", "jet_ski", "other")
LOCATION_TYPES = ("marina", "customer_location", "service_center")
REPAIR_PRIORITIES = ("low", "medium", "high", "urgent")


def _one_of(value, allowed, label):
    if value is not None and value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


class RepairBoatDetails(BaseModel):
    boatType: str
    boatMake: Optional[str] = None
    boatModel: Optional[str] = None
    boatYear: Optional[int] = None
    engineType: Optional[str] = None
    engineModel: Optional[str] = None
    hullMaterial: Optional[str] = None

    @field_validator("boatType")
    @classmethod
    def check_boat_type(cls, v):
        return _one_of(v, BOAT_TYPES, "Boat type")

    @field_validator("boatYear")
    @classmethod
    def check_boat_year(cls, v):
        if v is not None and not 1900 <= v <= datetime.utcnow().year + 1:
            raise ValueError("Boat year is out of range")
        return v


class ServiceLocation(BaseModel):
    type: str
    address: Optional[str] = None
    marinaName: Optional[str] = None
    dockNumber: Optional[str] = None

    @field_validator("type")
    @classmethod
    def check_type(cls, v):
        return _one_of(v, LOCATION_TYPES, "Service location type")


class RepairCreate(BaseModel):
    """Schema for a customer repair request"""

    serviceType: str
    problemDescription: str
    serviceDescription: Optional[str] = None
    boatDetails: RepairBoatDetails
    scheduledDateTime: datetime
    serviceLocation: ServiceLocation
    customerNotes: Optional[str] = None
    # Advance payment taken before the booking was created
    paymentId: Optional[str] = None

    @field_validator("serviceType")
    @classmethod
    def check_service_type(cls, v):
        return _one_of(v, REPAIR_SERVICE_TYPES, "Service type")

    @field_validator("scheduledDateTime")
    @classmethod
    def to_naive_utc(cls, v):
        # Stored and compared as naive UTC
        if v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v

    @field_validator("problemDescription")
    @classmethod
    def check_problem(cls, v):
        if not v or not v.strip():
            raise ValueError("Problem description is required")
        if len(v) > 1000:
            raise ValueError("Problem description cannot exceed 1000 characters")
        return v.strip()

    @field_validator("serviceDescription")
    @classmethod
    def check_service_description(cls, v):
        if v and len(v) > 500:
            raise ValueError("Service description cannot exceed 500 characters")
        return v

    @field_validator("customerNotes")
    @classmethod
    def check_notes(cls, v):
        if v and len(v) > 500:
            raise ValueError("Customer notes cannot exceed 500 characters")
        return v


class RepairCustomerUpdate(BaseModel):
    """Fields a customer may change before the visit; nested objects are merged"""

    serviceType: Optional[str] = None
    problemDescription: Optional[str] = None
    serviceDescription: Optional[str] = None
    boatDetails: Optional[dict] = None
    serviceLocation: Optional[dict] = None
    customerNotes: Optional[str] = None

    @field_validator("serviceType")
    @classmethod
    def check_service_type(cls, v):
        return _one_of(v, REPAIR_SERVICE_TYPES, "Service type")

    @field_validator("problemDescription")
    @classmethod
    def check_problem(cls, v):
        if v is not None and len(v) > 1000:
            raise ValueError("Problem description cannot exceed 1000 characters")
        return v


class RepairStaffUpdate(BaseModel):
    status: Optional[str] = None
    assignedTechnician: Optional[int] = None
    estimatedCost: Optional[float] = None
    cost: Optional[float] = None
    internalNotes: Optional[str] = None
    priority: Optional[str] = None
    workPerformed: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return _one_of(v, REPAIR_PRIORITIES, "Priority")


class AssignTechnicianRequest(BaseModel):
    technicianId: Optional[int] = None


class RepairStatusChange(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None


class InvoiceRequest(BaseModel):
    finalCost: float
    workPerformed: Optional[str] = None

    @field_validator("finalCost")
    @classmethod
    def positive_cost(cls, v):
        if v <= 0:
            raise ValueError("Final cost must be greater than zero")
        return v


class FinalPaymentRequest(BaseModel):
    paymentId: str


class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None

    @classmethod
    def from_model(cls, user: Optional[User]) -> Optional["UserSummary"]:
        if user is None:
            return None
        return cls(
            id=user.id, name=user.name, email=user.email, phone=user.phone, position=user.position
        )


class PaymentRecord(BaseModel):
    status: str
    paymentId: Optional[str] = None
    stripePaymentIntentId: Optional[str] = None
    amount: float = 0
    paidAt: Optional[datetime] = None


class StatusUpdateEntry(BaseModel):
    status: str
    notes: Optional[str] = None
    updatedBy: Optional[int] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, entry: RepairStatusUpdate) -> "StatusUpdateEntry":
        return cls(
            status=entry.status,
            notes=entry.notes,
            updatedBy=entry.updated_by_id,
            updatedAt=entry.created_at,
        )


class RepairCosts(BaseModel):
    advancePayment: float
    finalCost: float
    remainingAmount: float
    paymentStatus: str
    invoiceSentAt: Optional[datetime] = None
    finalPaymentAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, repair: BoatRepair) -> "RepairCosts":
        """
        advance_pending -> advance_paid -> invoice_sent -> fully_paid.
        The remaining balance never goes negative and is zero once fully paid.
        """
        advance = repair.advance_amount if repair.advance_payment_status == "paid" else 0
        advance = advance or 0
        final_cost = repair.final_cost or repair.cost or 0

        if repair.final_cost and repair.final_cost > 0:
            status = "fully_paid" if repair.final_payment_status == "paid" else "invoice_sent"
        elif repair.advance_payment_status == "paid":
            status = "advance_paid"
        else:
            status = "advance_pending"

        return cls(
            advancePayment=advance,
            finalCost=final_cost,
            remainingAmount=repair_balance_due(repair),
            paymentStatus=status,
            invoiceSentAt=repair.invoice_sent_at,
            finalPaymentAt=repair.final_paid_at if repair.final_payment_status == "paid" else None,
        )


class RepairResponse(BaseModel):
    """Schema for repair response"""

    id: int
    bookingId: str
    customer: Optional[UserSummary] = None
    serviceType: str
    problemDescription: str
    serviceDescription: Optional[str] = None
    boatDetails: dict
    scheduledDateTime: datetime
    serviceLocation: dict
    customerNotes: Optional[str] = None
    status: str
    priority: str
    assignedTechnician: Optional[UserSummary] = None
    assignedBy: Optional[UserSummary] = None
    assignedAt: Optional[datetime] = None
    boatReceivedAt: Optional[datetime] = None
    receivedBy: Optional[UserSummary] = None
    estimatedCost: Optional[float] = None
    finalCost: Optional[float] = None
    cost: Optional[float] = None
    payment: PaymentRecord
    finalPayment: PaymentRecord
    repairCosts: RepairCosts
    workPerformed: Optional[str] = None
    internalNotes: Optional[str] = None
    statusUpdates: list[StatusUpdateEntry] = []
    completedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, repair: BoatRepair, include_internal: bool = True) -> "RepairResponse":
        return cls(
            id=repair.id,
            bookingId=repair.booking_id,
            customer=UserSummary.from_model(repair.customer),
            serviceType=repair.service_type,
            problemDescription=repair.problem_description,
            serviceDescription=repair.service_description,
            boatDetails=repair.boat_details or {},
            scheduledDateTime=repair.scheduled_date_time,
            serviceLocation=repair.service_location or {},
            customerNotes=repair.customer_notes,
            status=repair.status,
            priority=repair.priority,
            assignedTechnician=UserSummary.from_model(repair.assigned_technician),
            assignedBy=UserSummary.from_model(repair.assigned_by),
            assignedAt=repair.assigned_at,
            boatReceivedAt=repair.boat_received_at,
            receivedBy=UserSummary.from_model(repair.received_by),
            estimatedCost=repair.estimated_cost,
            finalCost=repair.final_cost,
            cost=repair.cost,
            payment=PaymentRecord(
                status=repair.advance_payment_status,
                paymentId=repair.advance_payment_id,
                stripePaymentIntentId=repair.advance_payment_intent_id,
                amount=repair.advance_amount or 0,
                paidAt=repair.advance_paid_at,
            ),
            finalPayment=PaymentRecord(
                status=repair.final_payment_status,
                paymentId=repair.final_payment_id,
                stripePaymentIntentId=repair.final_payment_intent_id,
                amount=repair.final_payment_amount or 0,
                paidAt=repair.final_paid_at,
            ),
            repairCosts=RepairCosts.from_model(repair),
            workPerformed=repair.work_performed,
            internalNotes=repair.internal_notes if include_internal else None,
            statusUpdates=[StatusUpdateEntry.from_model(u) for u in repair.status_updates],
            completedAt=repair.completed_at,
            createdAt=repair.created_at,
            updatedAt=repair.updated_at,
        )
