"""Boat ride booking schemas - Pydantic models for validation"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ...models_booking import BoatBooking
from ...shared.validators import parse_calendar_date, validate_email, validate_phone

BOOKING_STATUSES = ("Pending Review", "Confirmed", "In Progress", "Completed", "Cancelled")
BOOKING_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
REVIEW_ACTIONS = {
    "approve": ("Confirmed", "approved"),
    "reject": ("Cancelled", "rejected"),
    "request_modification": ("Pending Review", "modification_requested"),
}
TERMS_REASONS = (
    "standard_review",
    "content_review",
    "large_group",
    "employee_request",
    "employee_review",
)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def _check_not_blank(v):
    if v is not None and not str(v).strip():
        raise ValueError("must not be empty")
    return v.strip() if isinstance(v, str) else v


def _check_positive(v, label):
    if v is not None and v <= 0:
        raise ValueError(f"Please provide a valid {label}")
    return v


class BoatBookingCreate(BaseModel):
    """Schema for requesting a boat ride"""

    customerName: str
    customerEmail: str
    customerPhone: str
    packageId: str
    packageName: str
    numberOfPassengers: int
    passengerNames: str
    bookingDate: date
    bookingTime: str
    duration: str
    selectedCatering: str = ""
    specialRequests: str = ""
    totalPrice: float

    @field_validator("customerName", "packageId", "packageName", "passengerNames", "duration")
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

    @field_validator("bookingDate", mode="before")
    @classmethod
    def to_calendar_date(cls, v):
        return parse_calendar_date(v)

    @field_validator("bookingTime")
    @classmethod
    def check_time(cls, v):
        if not TIME_PATTERN.match(v.strip()):
            raise ValueError("bookingTime must use the HH:MM 24-hour format")
        return v.strip()

    @field_validator("numberOfPassengers")
    @classmethod
    def check_passengers(cls, v):
        return _check_positive(v, "number of passengers")

    @field_validator("totalPrice")
    @classmethod
    def check_price(cls, v):
        return _check_positive(v, "total price")


class BoatBookingUpdate(BaseModel):
    """Staff edit of the booking details. Customer contact fields are kept when omitted or null."""

    customerName: Optional[str] = None
    customerEmail: Optional[str] = None
    customerPhone: Optional[str] = None
    numberOfPassengers: Optional[int] = None
    passengerNames: Optional[str] = None
    bookingDate: Optional[date] = None
    bookingTime: Optional[str] = None
    duration: Optional[str] = None
    selectedCatering: Optional[str] = None
    specialRequests: Optional[str] = None
    totalPrice: Optional[float] = None
    finalPrice: Optional[float] = None
    priority: Optional[str] = None

    @field_validator("customerEmail")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("customerPhone")
    @classmethod
    def check_phone(cls, v):
        return validate_phone(v)

    @field_validator("bookingDate", mode="before")
    @classmethod
    def to_calendar_date(cls, v):
        return parse_calendar_date(v) if v is not None else v

    @field_validator("bookingTime")
    @classmethod
    def check_time(cls, v):
        if v is not None and not TIME_PATTERN.match(v.strip()):
            raise ValueError("bookingTime must use the HH:MM 24-hour format")
        return v.strip() if v else v

    @field_validator("numberOfPassengers")
    @classmethod
    def check_passengers(cls, v):
        return _check_positive(v, "number of passengers")

    @field_validator("totalPrice", "finalPrice")
    @classmethod
    def check_price(cls, v):
        return _check_positive(v, "price")

    @field_validator("priority")
    @classmethod
    def check_priority(cls, v):
        if v is not None and v not in BOOKING_PRIORITIES:
            raise ValueError(f"priority must be one of: {', '.join(BOOKING_PRIORITIES)}")
        return v


class BookingStatusUpdate(BaseModel):
    status: Optional[str] = None
    notes: Optional[str] = None
    quotedPrice: Optional[float] = None
    assignedEmployee: Optional[str] = None


class BookingReview(BaseModel):
    action: Optional[str] = None
    employeeNotes: Optional[str] = None
    sendTerms: bool = False


class TermsRequest(BaseModel):
    reason: Optional[str] = None
    customMessage: Optional[str] = None


class RidePaymentConfirm(BaseModel):
    paymentId: Optional[str] = None


class ScreeningResponse(BaseModel):
    flagged: bool
    reasons: list[str]
    riskLevel: str
    requiresTermsReminder: bool


class BoatBookingResponse(BaseModel):
    """Schema for boat ride booking response"""

    id: int
    customerId: Optional[int] = None
    customerName: str
    customerEmail: str
    customerPhone: str
    packageId: str
    packageName: str
    numberOfPassengers: int
    passengerNames: str
    bookingDate: date
    bookingTime: str
    duration: str
    selectedCatering: str
    specialRequests: str
    totalPrice: float
    status: str
    employeeNotes: Optional[str] = None
    assignedEmployee: Optional[str] = None
    quotedPrice: Optional[float] = None
    finalPrice: Optional[float] = None
    priority: str
    followUpDate: Optional[datetime] = None
    lastContactDate: Optional[datetime] = None
    contentAnalysis: ScreeningResponse
    paymentStatus: str
    paymentId: Optional[str] = None
    paymentAmount: Optional[float] = None
    paidAt: Optional[datetime] = None
    termsSent: bool
    termsReason: Optional[str] = None
    termsSentAt: Optional[datetime] = None
    contentReviewed: bool
    reviewAction: Optional[str] = None
    reviewedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking: BoatBooking) -> "BoatBookingResponse":
        return cls(
            id=booking.id,
            customerId=booking.customer_id,
            customerName=booking.customer_name,
            customerEmail=booking.customer_email,
            customerPhone=booking.customer_phone,
            packageId=booking.package_id,
            packageName=booking.package_name,
            numberOfPassengers=booking.number_of_passengers,
            passengerNames=booking.passenger_names,
            bookingDate=booking.booking_date,
            bookingTime=booking.booking_time,
            duration=booking.duration,
            selectedCatering=booking.selected_catering or "",
            specialRequests=booking.special_requests or "",
            totalPrice=booking.total_price,
            status=booking.status,
            employeeNotes=booking.employee_notes,
            assignedEmployee=booking.assigned_employee,
            quotedPrice=booking.quoted_price,
            finalPrice=booking.final_price,
            priority=booking.priority,
            followUpDate=booking.follow_up_date,
            lastContactDate=booking.last_contact_date,
            contentAnalysis=ScreeningResponse(
                flagged=booking.flagged,
                reasons=booking.flag_reasons or [],
                riskLevel=booking.risk_level,
                requiresTermsReminder=booking.requires_terms_reminder,
            ),
            paymentStatus=booking.payment_status,
            paymentId=booking.payment_id,
            paymentAmount=booking.payment_amount,
            paidAt=booking.paid_at,
            termsSent=booking.terms_sent,
            termsReason=booking.terms_reason,
            termsSentAt=booking.terms_sent_at,
            contentReviewed=booking.content_reviewed,
            reviewAction=booking.review_action,
            reviewedAt=booking.reviewed_at,
            createdAt=booking.created_at,
            updatedAt=booking.updated_at,
        )
