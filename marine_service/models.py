from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

USER_ROLES = ("customer", "employee", "admin")
STAFF_ROLES = ("employee", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="customer", nullable=False)  # customer, employee, admin
    position = Column(String(100), nullable=True)  # Employees only, e.g. "Marine Technician"
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    orders = relationship("Order", back_populates="customer", foreign_keys="Order.customer_id")
    repairs = relationship(
        "BoatRepair", back_populates="customer", foreign_keys="BoatRepair.customer_id"
    )

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_technician(self) -> bool:
        """Technicians are employees whose position describes repair work"""
        position = (self.position or "").lower()
        return self.role == "employee" and any(
            keyword in position for keyword in ("technician", "mechanic", "repair")
        )


class Product(Base):
    """Spare part in the shop catalog. Catalog management lives outside this API."""

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Float, nullable=False)
    image = Column(String(500), nullable=True)
    part_number = Column(String(100), nullable=True, index=True)
    company = Column(String(255), nullable=True)
    category = Column(String(100), nullable=True)
    description = Column(Text, nullable=True)
    quantity = Column(Integer, default=0, nullable=False)  # Units in stock
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
