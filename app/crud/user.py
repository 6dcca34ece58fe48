# app/crud/user.py
from sqlalchemy.orm import Session
from app.models.user import User
from app.models.enums import Role


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()

def get_user_by_email(db: Session, email: str) -> User | None:
    """Emails are stored lower-cased."""
    return db.query(User).filter(User.email == email.strip().lower()).first()

def get_user_by_referral_code(db: Session, code: str) -> User | None:
    return db.query(User).filter(User.referral_code == code).first()

def create_user(
    db: Session,
    email: str,
    password_hash: str | None = None,
    name: str | None = None,
    phone: str | None = None,
    role: Role = Role.CLIENT,
    referral_code: str | None = None,
    referred_by_id: int | None = None,
) -> User:
    """Adds a user to the session. The caller commits."""
    db_user = User(
        email=email.strip().lower(),
        password_hash=password_hash,
        name=name,
        phone=phone,
        role=role,
        referral_code=referral_code,
        referred_by_id=referred_by_id,
    )
    db.add(db_user)
    db.flush()
    return db_user
