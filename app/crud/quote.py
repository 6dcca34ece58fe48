# app/crud/quote.py
from sqlalchemy.orm import Session, joinedload

from app.models.quote import Quote


def get_quote_by_id(db: Session, quote_id: int) -> Quote | None:
    return (
        db.query(Quote)
        .options(joinedload(Quote.custom_request))
        .filter(Quote.id == quote_id)
        .first()
    )

def get_quote_by_token_hash(db: Session, token_hash: str) -> Quote | None:
    return (
        db.query(Quote)
        .options(joinedload(Quote.custom_request))
        .filter(Quote.magic_token == token_hash)
        .first()
    )

def get_quotes_for_request(db: Session, custom_request_id: int) -> list[Quote]:
    return (
        db.query(Quote)
        .filter(Quote.custom_request_id == custom_request_id)
        .order_by(Quote.created_at.desc(), Quote.id.desc())
        .all()
    )

def create_quote(db: Session, custom_request_id: int, amount, scope: str | None, plan: dict | None,
                 expires_at=None, created_by_id: int | None = None) -> Quote:
    quote = Quote(
        custom_request_id=custom_request_id, amount=amount, scope=scope, plan=plan,
        expires_at=expires_at, created_by_id=created_by_id,
    )
    db.add(quote)
    db.flush()
    return quote
