from app.db.models.executive import Executive
from app.db.models.user import User
from app.db.models.visit import ApprovalStatus, Visit, VisitStatus, VisitType
from app.db.models.visitor import Visitor

__all__ = [
    "ApprovalStatus",
    "Executive",
    "User",
    "Visit",
    "VisitStatus",
    "VisitType",
    "Visitor",
]
