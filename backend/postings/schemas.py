"""Employee-posting Pydantic v2 schemas — request / response validation."""


import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from backend.common.constants import PostingStatus, StaffingStatus
from backend.employees.schemas import EmployeeBrief
from backend.schools.schemas import SchoolBrief


# ═════════════════════════════════════════════════════════════════════
# Request bodies
# ═════════════════════════════════════════════════════════════════════

class PostingCreate(BaseModel):
    """Payload for posting an employee to a school.

    ``is_active`` is derived by the synchronizer and cannot be supplied.
    """

    employee_id: uuid.UUID
    school_id: uuid.UUID
    monthly_billing_salary: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    tds_percent: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    gst_percent: Decimal = Field(Decimal("0"), ge=0, le=100, decimal_places=2)
    start_date: Optional[date] = None
    status: PostingStatus = PostingStatus.continue_
    remark: Optional[str] = Field(None, max_length=2000)


# Only these may be cleared with an explicit null
CLEARABLE_UPDATE_FIELDS = frozenset({"end_date", "remark"})


class PostingUpdate(BaseModel):
    """Partial update of a posting; only provided fields change."""

    school_id: Optional[uuid.UUID] = None
    monthly_billing_salary: Optional[Decimal] = Field(
        None, ge=0, max_digits=12, decimal_places=2,
    )
    tds_percent: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    gst_percent: Optional[Decimal] = Field(None, ge=0, le=100, decimal_places=2)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[PostingStatus] = None
    remark: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def _no_null_for_required(self) -> "PostingUpdate":
        cleared = sorted(
            name for name in self.model_fields_set - CLEARABLE_UPDATE_FIELDS
            if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self

    @model_validator(mode="after")
    def _end_after_start(self) -> "PostingUpdate":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


# ═════════════════════════════════════════════════════════════════════
# Responses
# ═════════════════════════════════════════════════════════════════════

class PostingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    school_id: uuid.UUID
    employee: Optional[EmployeeBrief] = None
    school: Optional[SchoolBrief] = None
    monthly_billing_salary: Decimal
    tds_percent: Decimal
    gst_percent: Decimal
    start_date: date
    end_date: Optional[date] = None
    status: PostingStatus
    remark: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PostingSyncResult(BaseModel):
    """Outcome of one reconciliation pass."""

    posting_id: uuid.UUID
    action: Literal["activated", "deactivated", "skipped"]
    school_id: uuid.UUID
    superseded_posting_ids: list[uuid.UUID] = []
    warnings: list[str] = []


class PostingMutationOut(BaseModel):
    """Create / update response: the posting plus what reconciliation did."""

    posting: PostingOut
    sync: PostingSyncResult


class EmploymentHistoryOut(BaseModel):
    employee: EmployeeBrief
    postings: list[PostingOut]
    current_posting: Optional[PostingOut] = None
    current_schools: list[SchoolBrief] = []


class CurrentPostingOut(BaseModel):
    employee: EmployeeBrief
    current_posting: Optional[PostingOut] = None
    current_schools: list[SchoolBrief] = []
    is_currently_posted: bool = False


# ── Analytics ───────────────────────────────────────────────────────

class StatusCount(BaseModel):
    status: PostingStatus
    active: int = 0
    inactive: int = 0


class SchoolStaffing(BaseModel):
    school_id: uuid.UUID
    school_name: str
    trainers_required: int
    current_count: int
    shortage: int
    staffing_status: StaffingStatus


class PostingAnalyticsOut(BaseModel):
    status_counts: list[StatusCount]
    total_active_postings: int
    schools: list[SchoolStaffing]


# ── Trainer-set audit ───────────────────────────────────────────────

class SchoolDivergence(BaseModel):
    school_id: uuid.UUID
    school_name: str
    missing_employee_ids: list[uuid.UUID] = []
    extra_employee_ids: list[uuid.UUID] = []


class TrainerAuditOut(BaseModel):
    schools_checked: int
    divergent_schools: list[SchoolDivergence]
    repaired: bool = False
