"""Boat repair repository - Database operations for repair bookings"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import User
from ...models_booking import BoatRepair, RepairStatusUpdate
from ...models_payment import Payment

SORTABLE_COLUMNS = {
    "createdAt": BoatRepair.created_at,
    "scheduledDateTime": BoatRepair.scheduled_date_time,
    "status": BoatRepair.status,
    "priority": BoatRepair.priority,
}


class RepairRepository:
    """Repository for boat repair database operations"""

    @staticmethod
    def get_by_id(db: Session, repair_id: int) -> Optional[BoatRepair]:
        return db.query(BoatRepair).filter(BoatRepair.id == repair_id).first()

    @staticmethod
    def get_by_booking_id(db: Session, booking_id: str) -> Optional[BoatRepair]:
        return db.query(BoatRepair).filter(BoatRepair.booking_id == booking_id).first()

    @staticmethod
    def booking_id_exists(db: Session, booking_id: str) -> bool:
        return db.query(BoatRepair.id).filter(BoatRepair.booking_id == booking_id).first() is not None

    @staticmethod
    def get_all(db: Session) -> list[BoatRepair]:
        return db.query(BoatRepair).order_by(BoatRepair.created_at.desc(), BoatRepair.id.desc()).all()

    @staticmethod
    def get_by_customer(db: Session, customer_id: int) -> list[BoatRepair]:
        return (
            db.query(BoatRepair)
            .filter(BoatRepair.customer_id == customer_id)
            .order_by(BoatRepair.created_at.desc(), BoatRepair.id.desc())
            .all()
        )

    @staticmethod
    def list_page(
        db: Session,
        page: int,
        limit: int,
        status: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> tuple[list[BoatRepair], int]:
        query = db.query(BoatRepair)
        if status:
            query = query.filter(BoatRepair.status == status)
        total = query.count()

        column = SORTABLE_COLUMNS.get(sort_by, BoatRepair.created_at)
        ordering = column.desc() if sort_order == "desc" else column.asc()
        repairs = query.order_by(ordering, BoatRepair.id.desc()).offset((page - 1) * limit).limit(limit).all()
        return repairs, total

    @staticmethod
    def count_by_status(db: Session) -> dict[str, int]:
        rows = db.query(BoatRepair.status, func.count(BoatRepair.id)).group_by(BoatRepair.status).all()
        return {status: count for status, count in rows}

    @staticmethod
    def get_technicians(db: Session) -> list[User]:
        position = func.lower(func.coalesce(User.position, ""))
        return (
            db.query(User)
            .filter(
                User.role == "employee",
                User.is_active.is_(True),
                or_(
                    position.contains("technician"),
                    position.contains("mechanic"),
                    position.contains("repair"),
                ),
            )
            .order_by(User.name)
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_payment(db: Session, payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.payment_id == payment_id).first()

    @staticmethod
    def add_status_update(
        repair: BoatRepair, status: str, notes: Optional[str] = None, updated_by_id: Optional[int] = None
    ) -> None:
        repair.status_updates.append(
            RepairStatusUpdate(status=status, notes=notes, updated_by_id=updated_by_id)
        )

    @staticmethod
    def create_repair(db: Session, **data) -> BoatRepair:
        repair = BoatRepair(**data)
        db.add(repair)
        db.flush()
        return repair

    @staticmethod
    def save(db: Session, repair: BoatRepair) -> BoatRepair:
        db.commit()
        db.refresh(repair)
        return repair

    @staticmethod
    def delete_repair(db: Session, repair: BoatRepair) -> None:
        db.delete(repair)
        db.commit()
