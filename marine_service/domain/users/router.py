"""Auth router - Registration, login and the current account"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...rate_limiter import create_rate_limiter
from .schemas import LoginRequest, RegisterRequest, UserResponse
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Authentication"])

# Rate limiters
rate_limit_register = create_rate_limiter(limit=10, window_seconds=3600, key_prefix="register")
rate_limit_login = create_rate_limiter(limit=20, window_seconds=300, key_prefix="login")


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    service: UserService = Depends(get_user_service),
    _: None = Depends(rate_limit_register),
):
    user, token = service.register(data)
    return {"success": True, "data": {"user": UserResponse.from_model(user), "token": token}}


@router.post("/login")
async def login(
    data: LoginRequest,
    service: UserService = Depends(get_user_service),
    _: None = Depends(rate_limit_login),
):
    user, token = service.login(data)
    return {"success": True, "data": {"user": UserResponse.from_model(user), "token": token}}


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": UserResponse.from_model(current_user)}
