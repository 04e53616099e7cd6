"""
Pydantic models for the notification inbox and push registration.
"""

from typing import Optional
from pydantic import BaseModel, Field


class PushTokenRequest(BaseModel):
    """Model for registering an Expo push token."""
    token: str = Field(..., min_length=1, description="ExponentPushToken[...]")
    platform: Optional[str] = Field(None, description="ios, android or web")
    device_id: Optional[str] = None


class UnreadCountResponse(BaseModel):
    count: int


class MarkReadResponse(BaseModel):
    success: bool
    updated: int = 0
