# app/crud/audit.py
from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.models.audit import AuditLog, MagicLoginToken
from app.schemas.audit import AuditAction, AuditTarget, parse_audit_data


def create_audit_log(
    db: Session,
    actor_id: int | None,
    action: AuditAction,
    target_type: AuditTarget,
    target_id: int | None,
    data: BaseModel | None = None,
) -> AuditLog:
    """Appends an audit row to the current transaction."""
    entry = AuditLog(
        actor_id=actor_id,
        action=action.value,
        target_type=target_type.value,
        target_id=target_id,
        data=data.model_dump(mode="json") if data is not None else None,
    )
    db.add(entry)
    db.flush()
    return entry

def get_latest_audit(db: Session, target_type: AuditTarget, target_id: int, action: AuditAction) -> AuditLog | None:
    return (
        db.query(AuditLog)
        .filter(
            AuditLog.target_type == target_type.value,
            AuditLog.target_id == target_id,
            AuditLog.action == action.value,
        )
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .first()
    )

def get_latest_audit_data(db: Session, target_type: AuditTarget, target_id: int, action: AuditAction):
    """Typed payload of the most recent entry for a target, or None."""
    entry = get_latest_audit(db, target_type, target_id, action)
    if entry is None:
        return None
    return parse_audit_data(entry.action, entry.data)


# --- Magic login tokens ---
def create_magic_login_token(db: Session, **fields) -> MagicLoginToken:
    token = MagicLoginToken(**fields)
    db.add(token)
    db.flush()
    return token

def get_magic_login_token_by_hash(db: Session, token_hash: str) -> MagicLoginToken | None:
    return db.query(MagicLoginToken).filter(MagicLoginToken.token_hash == token_hash).first()
