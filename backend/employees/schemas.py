"""Employee Pydantic v2 schemas — request / response validation.

Naming conventions:
  - *Create / *Update  → request bodies (write)
  - *Out               → response bodies (read)
  - *Brief             → compact embedded representations
"""


import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from backend.common.constants import EmploymentStatus


class EmployeeBrief(BaseModel):
    """Minimal employee info embedded in posting / leave / invoice responses."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str
    designation: Optional[str] = None


class EmployeeCreate(BaseModel):
    """Payload for registering a new employee."""

    employee_code: str = Field(..., min_length=1, max_length=20)
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=20)
    designation: Optional[str] = Field(None, max_length=150)
    department: Optional[str] = Field(None, max_length=150)
    date_of_joining: date
    address: Optional[str] = None


class EmployeeUpdate(BaseModel):
    """Partial update; only provided fields change."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    designation: Optional[str] = Field(None, max_length=150)
    department: Optional[str] = Field(None, max_length=150)
    date_of_joining: Optional[date] = None
    date_of_exit: Optional[date] = None
    employment_status: Optional[EmploymentStatus] = None
    address: Optional[str] = None

    @model_validator(mode="after")
    def _exit_after_joining(self) -> "EmployeeUpdate":
        if self.date_of_exit and self.date_of_joining and self.date_of_exit < self.date_of_joining:
            raise ValueError("date_of_exit cannot be before date_of_joining")
        return self


class SchoolRef(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    city: Optional[str] = None


class EmployeeOut(BaseModel):
    """Full employee representation."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_code: str
    full_name: str
    email: str
    phone: Optional[str] = None
    designation: Optional[str] = None
    department: Optional[str] = None
    date_of_joining: date
    date_of_exit: Optional[date] = None
    employment_status: EmploymentStatus
    address: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    # Enriched by the service layer
    current_schools: list[SchoolRef] = []
