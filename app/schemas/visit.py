from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field


class VisitorFields(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None


class VisitCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    visitor: VisitorFields = Field(default_factory=VisitorFields)
    # Legacy front-ends still send numeric executive ids.
    executive_id: str | int | None = None
    scheduled_date: date = Field(alias="date")
    time_from: time | None = None
    time_to: time | None = None
    purpose: str | None = None
    visit_type: str = "scheduled"


class VisitUpdate(BaseModel):
    approval: str | None = None
    approvedAt: datetime | None = None
    status: str | None = None
    rejection_reason: str | None = None

    def to_fields(self) -> dict:
        renamed = {
            "approval": "approval_status",
            "approvedAt": "approved_at",
            "status": "visit_status",
            "rejection_reason": "rejection_reason",
        }
        return {renamed[key]: value for key, value in self.model_dump(exclude_unset=True).items()}


class VisitCodeValidate(BaseModel):
    code: str = ""


class ExecutiveOut(BaseModel):
    id: str
    name: str
    position: str | None
    email: str
    department: str | None
