# app/db/base.py
# Importing this module registers every model on Base.metadata
# (used by Alembic, the app and the test database).

from app.db.session import Base  # noqa: F401
from app.models.user import User  # noqa: F401
from app.models.referral import ReferralTracking  # noqa: F401
from app.models.order import Service, Order, CustomProjectRequest  # noqa: F401
from app.models.project import (  # noqa: F401
    Project, ProjectPhase, PhaseAsset, PhaseComment, PhaseCommentAsset,
    ChangeRequest, Review, PortfolioItem, Invoice, Revision,
)
from app.models.payment import MilestonePayment  # noqa: F401
from app.models.quote import Quote  # noqa: F401
from app.models.audit import AuditLog, MagicLoginToken  # noqa: F401
