"""Leave Pydantic v2 schemas — request / response validation."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.common.constants import LeaveStatus, LeaveType
from backend.employees.schemas import EmployeeBrief


class LeaveCreate(BaseModel):
    """Record a leave against one of the employee's postings.

    ``is_deductible`` defaults to True only for unpaid leave.
    """

    employee_id: uuid.UUID
    posting_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = Field(None, max_length=2000)
    is_deductible: Optional[bool] = None

    @model_validator(mode="after")
    def validate_dates(self) -> LeaveCreate:
        if self.start_date > self.end_date:
            raise ValueError("start_date cannot be after end_date")
        return self


class LeaveReviewRequest(BaseModel):
    remarks: Optional[str] = Field(None, max_length=1000)


class LeaveRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class LeaveOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    employee: Optional[EmployeeBrief] = None
    school_id: uuid.UUID
    posting_id: uuid.UUID
    leave_type: LeaveType
    start_date: date
    end_date: date
    number_of_days: int
    reason: Optional[str] = None
    is_deductible: bool
    status: LeaveStatus
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    reviewer_remarks: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
