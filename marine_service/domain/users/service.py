"""User service - Registration and password login"""

import logging

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User
from ...security_utils import create_access_token_for_user, hash_password, verify_password
from .repository import UserRepository
from .schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


class UserService:
    """Service layer for account business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def register(self, data: RegisterRequest) -> tuple[User, str]:
        """Self-registration always creates a customer account"""
        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="User already exists")

        try:
            user = self.repo.create_user(
                self.db,
                name=data.name,
                email=data.email,
                phone=data.phone,
                password_hash=hash_password(data.password),
                role="customer",
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="User already exists") from e

        logger.info(f"👤 Registered customer {user.email}")
        return user, create_access_token_for_user(user)

    def login(self, data: LoginRequest) -> tuple[User, str]:
        user = self.repo.get_by_email(self.db, data.email)
        if not user or not verify_password(data.password, user.password_hash):
            logger.warning(f"⚠️ Failed login for {data.email}")
            raise HTTPException(status_code=401, detail="Invalid email or password")
        if not user.is_active:
            raise HTTPException(status_code=401, detail="Account is deactivated")

        logger.info(f"🔑 {user.role} {user.email} logged in")
        return user, create_access_token_for_user(user)
