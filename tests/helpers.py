# tests/helpers.py
from app.core.security import create_access_token
from app.models.user import User
from app.schemas.user import SessionUser


def session_for(user: User) -> SessionUser:
    return SessionUser(id=user.id, role=user.role, email=user.email)


def headers_for(user: User) -> dict:
    token = create_access_token({"sub": str(user.id), "role": user.role.value, "email": user.email})
    return {"Authorization": f"Bearer {token}"}
