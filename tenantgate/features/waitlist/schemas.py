"""
Wait-list schemas.
"""

from datetime import datetime

from pydantic import EmailStr, Field

from tenantgate.models.enums import WaitlistStatus
from tenantgate.schemas.common import BaseSchema


class WaitlistJoin(BaseSchema):
    email: EmailStr
    first_name: str | None = Field(None, max_length=255)
    last_name: str | None = Field(None, max_length=255)
    company: str | None = Field(None, max_length=255, description="Names the workspace provisioned on invite")
    industry: str | None = Field(None, max_length=255)


class WaitlistLeadRead(BaseSchema):
    id: int
    email: str
    first_name: str | None
    last_name: str | None
    company: str | None
    industry: str | None
    status: WaitlistStatus
    source: str
    created_at: datetime
