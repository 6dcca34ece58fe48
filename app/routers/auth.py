# app/routers/auth.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.limiter import limiter, AUTH_RATE_LIMIT, MAGIC_LINK_RATE_LIMIT
from app.dependencies import get_db, get_current_user
from app.models.user import User
from app.schemas.magic import MagicLoginRequest
from app.schemas.user import LoginRequest, RegisterRequest, Token, UserProfile
from app.services import auth as auth_service

router = APIRouter()


@router.post("/auth/register", response_model=Token)
@limiter.limit(AUTH_RATE_LIMIT)
def register(request: Request, data: RegisterRequest, db: Session = Depends(get_db)):
    """Email/password sign-up. An optional referral code links the referrer."""
    return auth_service.register_user(db, data)


@router.post("/auth/login", response_model=Token)
@limiter.limit(AUTH_RATE_LIMIT)
def login(request: Request, data: LoginRequest, db: Session = Depends(get_db)):
    return auth_service.login_user(db, data)


@router.post("/auth/magic-login", response_model=Token)
@limiter.limit(MAGIC_LINK_RATE_LIMIT)
def magic_login(request: Request, data: MagicLoginRequest, db: Session = Depends(get_db)):
    """Signs in with a quote link or magic login token. Each token works once."""
    return auth_service.magic_login(db, data)


@router.get("/users/me", response_model=UserProfile)
def get_me(current_user: User = Depends(get_current_user)):
    return current_user
