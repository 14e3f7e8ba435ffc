from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Statuses that hold a time slot. Kept in sync with the partial unique index below.
ACTIVE_APPOINTMENT_STATUSES = ("Pending", "Confirmed", "In Progress")
_ACTIVE_SLOT_PREDICATE = "status IN ('Pending', 'Confirmed', 'In Progress')"


class Appointment(Base):
    """Boat sales visit or service appointment occupying one hourly slot"""

    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)
    service_type = Column(String(50), nullable=False)
    # Calendar date only; clients send ISO strings and the time part is dropped
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(8), nullable=False)  # "09:00 AM" .. "08:00 PM"
    boat_details = Column(JSON, nullable=False)  # boatName, boatType, boatLength, engineType
    description = Column(Text, nullable=False)
    estimated_duration = Column(Integer, default=2, nullable=False)  # hours
    status = Column(String(20), default="Pending", nullable=False)
    admin_notes = Column(Text, nullable=True)
    estimated_cost = Column(Float, nullable=True)
    priority = Column(String(20), default="Medium", nullable=False)
    reminder_sent = Column(Boolean, default=False, nullable=False)
    reminder_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        # One active booking per slot, enforced by the database
        Index(
            "uq_appointments_active_slot",
            "appointment_date",
            "appointment_time",
            unique=True,
            sqlite_where=text(_ACTIVE_SLOT_PREDICATE),
            postgresql_where=text(_ACTIVE_SLOT_PREDICATE),
        ),
    )


class BoatRepair(Base):
    __tablename__ = "boat_repairs"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(String(20), unique=True, index=True, nullable=False)  # REP-XXXXXXXX
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    service_type = Column(String(50), nullable=False)
    problem_description = Column(String(1000), nullable=False)
    service_description = Column(String(500), nullable=True)
    boat_details = Column(JSON, nullable=False)  # boatType, boatMake, boatModel, boatYear, ...
    scheduled_date_time = Column(DateTime, nullable=False)
    service_location = Column(JSON, nullable=False)  # type, address, marinaName, dockNumber
    customer_notes = Column(String(500), nullable=True)
    status = Column(String(20), default="pending", nullable=False, index=True)
    priority = Column(String(20), default="medium", nullable=False)

    # Assignment
    assigned_technician_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    assigned_at = Column(DateTime, nullable=True)

    # Handover
    boat_received_at = Column(DateTime, nullable=True)
    received_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Costs
    estimated_cost = Column(Float, nullable=True)
    final_cost = Column(Float, nullable=True)
    cost = Column(Float, nullable=True)
    invoice_sent_at = Column(DateTime, nullable=True)

    # Advance payment taken at booking time
    advance_payment_status = Column(String(20), default="pending", nullable=False)
    advance_payment_intent_id = Column(String(255), nullable=True)
    advance_payment_id = Column(String(64), nullable=True)
    advance_paid_at = Column(DateTime, nullable=True)
    advance_amount = Column(Float, nullable=True)

    # Balance paid after the work is completed
    final_payment_status = Column(String(20), default="pending", nullable=False)
    final_payment_intent_id = Column(String(255), nullable=True)
    final_payment_id = Column(String(64), nullable=True)
    final_paid_at = Column(DateTime, nullable=True)
    final_payment_amount = Column(Float, nullable=True)

    work_performed = Column(Text, nullable=True)
    internal_notes = Column(Text, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", back_populates="repairs", foreign_keys=[customer_id])
    assigned_technician = relationship("User", foreign_keys=[assigned_technician_id])
    assigned_by = relationship("User", foreign_keys=[assigned_by_id])
    received_by = relationship("User", foreign_keys=[received_by_id])
    status_updates = relationship(
        "RepairStatusUpdate",
        back_populates="repair",
        cascade="all, delete-orphan",
        order_by="RepairStatusUpdate.id",
    )


class RepairStatusUpdate(Base):
    """Append-only log of repair status changes"""

    __tablename__ = "repair_status_updates"

    id = Column(Integer, primary_key=True, index=True)
    repair_id = Column(Integer, ForeignKey("boat_repairs.id", ondelete="CASCADE"), nullable=False)
    status = Column(String(20), nullable=False)
    notes = Column(Text, nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    repair = relationship("BoatRepair", back_populates="status_updates")
    updated_by = relationship("User")


class BoatBooking(Base):
    """Boat ride package booked for a date and departure time"""

    __tablename__ = "boat_bookings"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=False)

    package_id = Column(String(64), nullable=False)
    package_name = Column(String(255), nullable=False)
    number_of_passengers = Column(Integer, nullable=False)
    passenger_names = Column(Text, nullable=False)
    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(String(5), nullable=False)  # "HH:MM"
    duration = Column(String(50), nullable=False)
    selected_catering = Column(String(255), default="", nullable=False)
    special_requests = Column(Text, default="", nullable=False)
    total_price = Column(Float, nullable=False)

    # Staff handling
    status = Column(String(20), default="Pending Review", nullable=False, index=True)
    employee_notes = Column(Text, nullable=True)
    assigned_employee = Column(String(255), nullable=True)
    quoted_price = Column(Float, nullable=True)
    final_price = Column(Float, nullable=True)
    priority = Column(String(10), default="MEDIUM", nullable=False)
    follow_up_date = Column(DateTime, nullable=True)
    last_contact_date = Column(DateTime, nullable=True)

    # Screening of the special requests
    flagged = Column(Boolean, default=False, nullable=False)
    flag_reasons = Column(JSON, nullable=False, default=list)
    risk_level = Column(String(10), default="LOW", nullable=False)
    requires_terms_reminder = Column(Boolean, default=False, nullable=False)

    payment_status = Column(String(20), default="pending", nullable=False)
    payment_id = Column(String(64), nullable=True)
    payment_amount = Column(Float, nullable=True)
    paid_at = Column(DateTime, nullable=True)
    refunded_at = Column(DateTime, nullable=True)

    terms_sent = Column(Boolean, default=False, nullable=False)
    terms_reason = Column(String(30), nullable=True)
    terms_sent_at = Column(DateTime, nullable=True)
    content_reviewed = Column(Boolean, default=False, nullable=False)
    review_action = Column(String(30), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    reviewed_by = relationship("User", foreign_keys=[reviewed_by_id])
