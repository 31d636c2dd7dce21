"""Process-wide service instances and their FastAPI dependency getters."""
import logging
from typing import Optional

from .config import settings, get_admin_phones, is_postgresql
from .services.device_store import InMemoryDeviceStore
from .services.pin_auth import LogPinSender, PinSender, PinService, WebhookPinSender
from .services.push_sender import Dispatcher, PushConfig, create_dispatcher
from .services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

_device_registry: Optional[DeviceRegistry] = None
_dispatcher: Optional[Dispatcher] = None
_pin_service: Optional[PinService] = None


def get_device_registry() -> DeviceRegistry:
    """Dependency returning the shared device registry."""
    global _device_registry
    if _device_registry is None:
        if settings.storage_backend == "sql":
            from .database import async_session
            from .services.device_store import SqlDeviceStore

            store = SqlDeviceStore(async_session, postgres=is_postgresql())
        else:
            store = InMemoryDeviceStore()
        _device_registry = DeviceRegistry(store)
        logger.info(f"Device registry using {settings.storage_backend} storage")
    return _device_registry


def get_dispatcher() -> Dispatcher:
    """Dependency returning the push dispatcher."""
    global _dispatcher
    if _dispatcher is None:
        config = PushConfig(
            url=settings.expo_push_url,
            access_token=settings.expo_access_token,
            timeout=settings.push_timeout_seconds,
        )
        _dispatcher = create_dispatcher(
            config,
            max_attempts=settings.push_max_attempts,
            base_delay=settings.push_retry_base_delay,
        )
    return _dispatcher


def get_pin_service() -> PinService:
    """Dependency returning the admin PIN service."""
    global _pin_service
    if _pin_service is None:
        sender: PinSender
        if settings.sms_webhook_url:
            sender = WebhookPinSender(settings.sms_webhook_url, timeout=settings.push_timeout_seconds)
        else:
            sender = LogPinSender()
        _pin_service = PinService(
            sender,
            allowed_phones=get_admin_phones(),
            pin_length=settings.pin_length,
            ttl_seconds=settings.pin_ttl_seconds,
            max_attempts=settings.pin_max_attempts,
        )
    return _pin_service
