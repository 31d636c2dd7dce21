"""Request/response schemas for device registration and push dispatch."""
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, Field


class PushRegisterRequest(BaseModel):
    """Bind a delivery token to a phone. Blank fields are rejected by the route."""
    phone: Optional[str] = None
    token: Optional[str] = None


class ActionResponse(BaseModel):
    """Uniform success/failure envelope."""
    success: bool
    message: Optional[str] = None


class DeviceOut(BaseModel):
    """One registered device."""
    phone: str
    token: str
    registered_at: datetime = Field(alias="registeredAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class DeviceListResponse(BaseModel):
    """Devices sorted newest registration first."""
    devices: List[DeviceOut]
    message: Optional[str] = None


class SendPushRequest(BaseModel):
    """Send one test notification to one token."""
    token: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None


class SendPushResponse(BaseModel):
    """Successful dispatch; ``ticket`` is the gateway payload verbatim."""
    success: bool = True
    ticket: Any = None
