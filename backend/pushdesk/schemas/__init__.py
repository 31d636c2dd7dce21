"""Pydantic schemas for API request/response models."""
from .push import (
    PushRegisterRequest,
    ActionResponse,
    DeviceOut,
    DeviceListResponse,
    SendPushRequest,
    SendPushResponse,
)
from .admin import (
    PinRequest,
    PinVerifyRequest,
)

__all__ = [
    "PushRegisterRequest",
    "ActionResponse",
    "DeviceOut",
    "DeviceListResponse",
    "SendPushRequest",
    "SendPushResponse",
    "PinRequest",
    "PinVerifyRequest",
]
