"""Services for device registration, push dispatch and admin PINs."""
from .device_store import DeviceRecord, InMemoryDeviceStore, SqlDeviceStore
from .registry import DeviceRegistry
from .push_sender import ExpoPushGateway, PushDispatcher, RetryingDispatcher
from .pin_auth import PinService

__all__ = [
    "DeviceRecord",
    "InMemoryDeviceStore",
    "SqlDeviceStore",
    "DeviceRegistry",
    "ExpoPushGateway",
    "PushDispatcher",
    "RetryingDispatcher",
    "PinService",
]
