from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

RoleName = Literal["user", "supportStaff", "admin"]
StatusName = Literal["open", "assigned", "inProgress", "resolved", "closed"]
PriorityName = Literal["low", "medium", "high", "critical"]


# -----------------------------
# Registration/Login Schemas
# -----------------------------
class RegisterSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: RoleName = "user"
    admin_secret: Optional[str] = Field(None, alias="adminSecret")


class LoginSchema(BaseModel):
    email: str
    password: str


# -----------------------------
# Complaint Schemas
# -----------------------------
class ComplaintUpdateSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[StatusName] = None
    priority: Optional[PriorityName] = None
    assigned_to: Optional[str] = Field(None, alias="assignedTo")  # support staff email
    comment: Optional[str] = None


class UpdateComplaintStatusSchema(BaseModel):
    status: StatusName
    comment: Optional[str] = None


class FeedbackSchema(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


# -----------------------------
# Timeline value object
# -----------------------------
class TimelineEntryView(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    status: str
    comment: Optional[str] = None
    timestamp: datetime
    created_by: UUID
    author_username: Optional[str] = None
