"""Auth Pydantic schemas for request / response validation."""


import uuid

from pydantic import BaseModel, ConfigDict

from backend.common.constants import UserRole


class MeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    email: str
    role: UserRole
    is_active: bool


class LogoutResponse(BaseModel):
    message: str
    revoked_sessions: int = 1
