"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models_booking import Appointment
from ...shared.validators import parse_calendar_date, validate_email, validate_phone
from .slots import TIME_SLOTS, is_valid_slot

SERVICE_TYPES = (
    "General Service",
    "Engine Repair",
    "Boat Cleaning",
    "Maintenance",
    "Emergency Service",
    "Inspection",
    "Boat Purchase Visit",
    "Other",
)
APPOINTMENT_STATUSES = ("Pending", "Confirmed", "In Progress", "Completed", "Cancelled")
PRIORITIES = ("Low", "Medium", "High", "Emergency")


def _check_slot(v):
    if v is not None and not is_valid_slot(v):
        raise ValueError(f"appointmentTime must be one of: {', '.join(TIME_SLOTS)}")
    return v


def _check_service_type(v):
    if v is not None and v not in SERVICE_TYPES:
        raise ValueError(f"serviceType must be one of: {', '.join(SERVICE_TYPES)}")
    return v


def _check_priority(v):
    if v is not None and v not in PRIORITIES:
        raise ValueError(f"priority must be one of: {', '.join(PRIORITIES)}")
    return v


def _check_not_blank(v):
    if v is not None and not str(v).strip():
        raise ValueError("must not be empty")
    return v.strip() if isinstance(v, str) else v


class BoatDetails(BaseModel):
    boatName: str
    boatType: str
    boatLength: Optional[float] = None
    engineType: Optional[str] = None

    @field_validator("boatName", "boatType")
    @classmethod
    def not_blank(cls, v):
        return _check_not_blank(v)

    @field_validator("boatLength")
    @classmethod
    def positive_length(cls, v):
        if v is not None and v <= 0:
            raise ValueError("boatLength must be positive")
        return v


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment"""

    customerName: str
    customerEmail: str
    customerPhone: str
    serviceType: str
    appointmentDate: date
    appointmentTime: str
    boatDetails: BoatDetails
    description: str
    estimatedDuration: int = 2
    priority: str = "Medium"

    @field_validator("customerName", "description")
    @classmethod
    def not_blank(cls, v):
        return _check_not_blank(v)

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(_check_not_blank(v))

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(_check_not_blank(v))

    @field_validator("appointmentDate", mode="before")
    @classmethod
    def to_calendar_date(cls, v):
        return parse_calendar_date(v)

    @field_validator("appointmentTime")
    @classmethod
    def check_slot(cls, v):
        return _check_slot(v)

    @field_validator("serviceType")
    @classmethod
    def check_service_type(cls, v):
        return _check_service_type(v)

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return _check_priority(v)

    @field_validator("estimatedDuration")
    @classmethod
    def check_duration(cls, v):
        if v < 1:
            raise ValueError("estimatedDuration must be at least 1 hour")
        return v


class CustomerAppointmentUpdate(BaseModel):
    """Fields a customer may change on their own pending appointment"""

    customerName: Optional[str] = None
    customerPhone: Optional[str] = None
    serviceType: Optional[str] = None
    appointmentDate: Optional[date] = None
    appointmentTime: Optional[str] = None
    boatDetails: Optional[BoatDetails] = None
    description: Optional[str] = None

    @field_validator("customerName", "description")
    @classmethod
    def not_blank(cls, v):
        return _check_not_blank(v)

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("appointmentDate", mode="before")
    @classmethod
    def to_calendar_date(cls, v):
        return parse_calendar_date(v) if v is not None else v

    @field_validator("appointmentTime")
    @classmethod
    def check_slot(cls, v):
        return _check_slot(v)

    @field_validator("serviceType")
    @classmethod
    def check_service_type(cls, v):
        return _check_service_type(v)


class AppointmentUpdate(CustomerAppointmentUpdate):
    """Staff update - any field including workflow ones"""

    customerEmail: Optional[str] = None
    estimatedDuration: Optional[int] = None
    status: Optional[str] = None
    adminNotes: Optional[str] = None
    estimatedCost: Optional[float] = None
    priority: Optional[str] = None

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("status")
    @classmethod
    def check_status(cls, v):
        if v is not None and v not in APPOINTMENT_STATUSES:
            raise ValueError(f"status must be one of: {', '.join(APPOINTMENT_STATUSES)}")
        return v

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        return _check_priority(v)

    @field_validator("estimatedCost")
    @classmethod
    def check_cost(cls, v):
        if v is not None and v < 0:
            raise ValueError("estimatedCost cannot be negative")
        return v


class AppointmentStatusUpdate(BaseModel):
    # Checked in the service so an unknown value gets "Invalid status"
    status: Optional[str] = None
    adminNotes: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    customerName: str
    customerEmail: str
    customerPhone: str
    serviceType: str
    appointmentDate: date
    appointmentTime: str
    boatDetails: dict
    description: str
    estimatedDuration: int
    status: str
    adminNotes: Optional[str] = None
    estimatedCost: Optional[float] = None
    priority: str
    reminderSent: bool = False
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None
    paymentStatus: Optional[str] = None
    paymentId: Optional[str] = None

    @classmethod
    def from_model(
        cls,
        appointment: Appointment,
        payment_status: Optional[str] = None,
        payment_id: Optional[str] = None,
    ) -> "AppointmentResponse":
        return cls(
            id=appointment.id,
            customerName=appointment.customer_name,
            customerEmail=appointment.customer_email,
            customerPhone=appointment.customer_phone,
            serviceType=appointment.service_type,
            appointmentDate=appointment.appointment_date,
            appointmentTime=appointment.appointment_time,
            boatDetails=appointment.boat_details or {},
            description=appointment.description,
            estimatedDuration=appointment.estimated_duration,
            status=appointment.status,
            adminNotes=appointment.admin_notes,
            estimatedCost=appointment.estimated_cost,
            priority=appointment.priority,
            reminderSent=bool(appointment.reminder_sent),
            createdAt=appointment.created_at,
            updatedAt=appointment.updated_at,
            paymentStatus=payment_status,
            paymentId=payment_id,
        )


class AvailableSlotsResponse(BaseModel):
    date: date
    availableSlots: list[str]
    bookedSlots: list[str]


class CalendarResponse(BaseModel):
    year: int
    month: int
    bookedDates: list[str]
    partiallyBookedDates: list[str]
    fullyBookedDates: list[str]
    slotCounts: dict[str, int]
    totalAppointments: int
