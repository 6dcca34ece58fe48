# app/models/enums.py
import enum


class Role(str, enum.Enum):
    CLIENT = "CLIENT"
    ADMIN = "ADMIN"
    PARTNER = "PARTNER"


STAFF_ROLES = {Role.ADMIN, Role.PARTNER}


class ReferralStatus(str, enum.Enum):
    PENDING = "PENDING"
    EARNED = "EARNED"
    PAID = "PAID"


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# Delivery pipeline, in order. Also used as the status-group of a phase.
class ProjectStatus(str, enum.Enum):
    REQUIREMENTS = "REQUIREMENTS"
    DESIGN = "DESIGN"
    DEV = "DEV"
    QA = "QA"
    DELIVERED = "DELIVERED"


PROJECT_PIPELINE = [
    ProjectStatus.REQUIREMENTS,
    ProjectStatus.DESIGN,
    ProjectStatus.DEV,
    ProjectStatus.QA,
    ProjectStatus.DELIVERED,
]


class PhaseStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    BLOCKED = "BLOCKED"


class PhaseAssetType(str, enum.Enum):
    IMAGE = "IMAGE"
    LINK = "LINK"


class MilestoneStatus(str, enum.Enum):
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ChangeRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class QuoteStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class CustomRequestStatus(str, enum.Enum):
    NEW = "NEW"
    QUOTED = "QUOTED"
    CONVERTED_TO_ORDER = "CONVERTED_TO_ORDER"
    REJECTED = "REJECTED"
