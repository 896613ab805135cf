"""Pydantic schemas for the auth API."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AccountSessionSchema(BaseModel):
    """A linked Google account as shown to the dashboard."""

    model_config = ConfigDict(from_attributes=True)

    account_key: str = Field(..., description="Primary key of the stored credential")
    email: Optional[str] = Field(None, description="Resolved account email")
    connected_at: datetime = Field(..., description="Last authorisation or refresh")


class SessionResponse(BaseModel):
    connected: bool
    accounts: list[AccountSessionSchema] = Field(default_factory=list)


class AuthUrlResponse(BaseModel):
    auth_url: str


class LogoutResponse(BaseModel):
    success: bool = True
