"""Device registration: obtain a platform delivery token and bind it to a phone."""
import logging
from enum import Enum
from typing import Optional, Protocol

import httpx

from ..errors import PermissionDenied
from ._http import post_json

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 6
PERMISSION_REQUIRED = "Push permissions are required to register this device"
REGISTER_FAILED = "Unable to register device right now"


class RegistrationStatus(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    ERROR = "error"


class TokenProvider(Protocol):
    """Host platform capability issuing push delivery tokens.

    Returns None or raises PermissionDenied when no token can be issued. Any
    other exception is treated the same way.
    """

    async def get_token(self) -> Optional[str]:
        ...


class StaticTokenProvider:
    """Provider for hosts that already hold a delivery token."""

    def __init__(self, token: Optional[str]):
        self._token = token

    async def get_token(self) -> Optional[str]:
        if not self._token:
            raise PermissionDenied(PERMISSION_REQUIRED)
        return self._token


class RegistrationFlow:
    """Single-flight registration of this device's delivery token."""

    def __init__(
        self,
        api_base_url: str,
        token_provider: TokenProvider,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.api_base_url = api_base_url
        self._token_provider = token_provider
        self._http_client = http_client
        self._timeout = timeout

        self.status = RegistrationStatus.IDLE
        self.status_message = "Ready to register your device"
        self.error_message: Optional[str] = None
        self.permission_denied = False
        self.token: Optional[str] = None
        self.busy = False
        self.registered = False

    @property
    def short_token(self) -> Optional[str]:
        if not self.token:
            return None
        if len(self.token) <= 16:
            return self.token
        return f"{self.token[:9]}…{self.token[-6:]}"

    @property
    def button_label(self) -> str:
        return "Re-register device" if self.registered else "Register device"

    def _fail(self, status_message: str, error_message: str):
        self.status = RegistrationStatus.ERROR
        self.status_message = status_message
        self.error_message = error_message

    async def submit(self, phone_input: str) -> RegistrationStatus:
        """Acquire a token and register it for ``phone_input``.

        Calls made while a submission is in flight are ignored.
        """
        if self.busy:
            logger.info("[RegisterDevice] Ignoring submit while busy")
            return self.status

        trimmed = (phone_input or "").strip()
        if len(trimmed) < MIN_PHONE_LENGTH:
            self.error_message = "Please enter a valid phone number"
            return self.status

        self.busy = True
        self.error_message = None
        self.permission_denied = False
        self.status = RegistrationStatus.IDLE
        self.status_message = "Requesting push notification permission…"
        try:
            logger.info(f"[RegisterDevice] Requesting push token for {trimmed}")
            try:
                token = await self._token_provider.get_token()
            except PermissionDenied as e:
                logger.info(f"[RegisterDevice] Permission denied: {e.message}")
                token = None
            except Exception as e:
                logger.error(f"[RegisterDevice] Failed to obtain push token: {e!r}")
                token = None

            if not token:
                self.permission_denied = True
                self._fail(PERMISSION_REQUIRED, PERMISSION_REQUIRED)
                return self.status

            self.token = token
            self.status_message = "Registering device…"
            logger.info("[RegisterDevice] Sending token to backend")
            try:
                ok, data = await post_json(
                    self.api_base_url,
                    "/push/register",
                    {"phone": trimmed, "token": token},
                    http_client=self._http_client,
                    timeout=self._timeout,
                )
            except httpx.HTTPError as e:
                logger.error(f"[RegisterDevice] Registration network error: {e!r}")
                self._fail("Registration failed. Please try again.", REGISTER_FAILED)
                return self.status

            if not ok or not data.get("success"):
                logger.warning(f"[RegisterDevice] Registration rejected: {data}")
                self._fail("Registration failed. Please try again.", data.get("message") or REGISTER_FAILED)
                return self.status

            self.status = RegistrationStatus.SUCCESS
            self.status_message = "Device registered for alerts."
            self.registered = True
            return self.status
        finally:
            self.busy = False
