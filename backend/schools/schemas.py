"""School Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from backend.common.constants import SchoolStatus, StaffingStatus
from backend.employees.schemas import EmployeeBrief


class SchoolCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=20)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    contact_person_name: Optional[str] = Field(None, max_length=150)
    mobile: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    trainers_required: int = Field(1, ge=1)
    status: SchoolStatus = SchoolStatus.active


class SchoolUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    city: Optional[str] = Field(None, max_length=100)
    address: Optional[str] = None
    contact_person_name: Optional[str] = Field(None, max_length=150)
    mobile: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    trainers_required: Optional[int] = Field(None, ge=1)
    status: Optional[SchoolStatus] = None


class SchoolBrief(BaseModel):
    """Minimal school info embedded in other responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    city: Optional[str] = None


class SchoolOut(BaseModel):
    """Full school representation, enriched with its current trainer set."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    code: str
    city: Optional[str] = None
    address: Optional[str] = None
    contact_person_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    trainers_required: int
    status: SchoolStatus
    created_at: datetime
    updated_at: datetime
    # Enriched fields (set by service layer)
    current_trainers: list[EmployeeBrief] = []
    current_count: int = 0
    shortage: int = 0
    staffing_status: Optional[StaffingStatus] = None
