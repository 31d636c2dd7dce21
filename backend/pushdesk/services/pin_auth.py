"""One-time PIN issuance and verification for admin access."""
import hashlib
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Protocol

import httpx

from ..errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 6
MIN_PIN_LENGTH = 4


class PinSender(Protocol):
    """Out-of-band delivery channel for PINs (SMS or equivalent)."""

    async def send_pin(self, phone: str, pin: str) -> None:
        ...


class LogPinSender:
    """Development channel: writes the PIN to the application log."""

    async def send_pin(self, phone: str, pin: str) -> None:
        logger.warning(f"No SMS channel configured - admin PIN for {phone} is {pin}")


class WebhookPinSender:
    """Posts the PIN message to an SMS gateway webhook."""

    def __init__(self, url: str, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = url
        self._timeout = timeout
        self._transport = transport

    async def send_pin(self, phone: str, pin: str) -> None:
        payload = {
            "phone": phone,
            "message": f"Your admin verification code is {pin}",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Failed to reach SMS webhook: {e!r}")
            raise InternalError("Unable to send PIN") from e

        if response.status_code >= 400:
            logger.warning(f"SMS webhook returned {response.status_code}")
            raise InternalError("Unable to send PIN")
        logger.info(f"PIN sent to {phone} via webhook")


@dataclass
class _PendingPin:
    pin_hash: str
    expires_at: datetime
    attempts: int = 0


def _hash_pin(phone: str, pin: str) -> str:
    return hashlib.sha256(f"{phone}:{pin}".encode()).hexdigest()


class PinService:
    """Issues and checks one-time PINs. Only hashes are kept, one per phone."""

    def __init__(
        self,
        sender: PinSender,
        allowed_phones: Optional[List[str]] = None,
        pin_length: int = 4,
        ttl_seconds: int = 300,
        max_attempts: int = 5,
        clock: Callable[[], datetime] = datetime.utcnow,
        pin_factory: Optional[Callable[[], str]] = None,
    ):
        self._sender = sender
        self._allowed = set(allowed_phones or [])
        self._pin_length = max(pin_length, MIN_PIN_LENGTH)
        self._ttl = timedelta(seconds=ttl_seconds)
        self._max_attempts = max_attempts
        self._clock = clock
        self._pin_factory = pin_factory or self._generate_pin
        self._pending: Dict[str, _PendingPin] = {}

    def _generate_pin(self) -> str:
        return "".join(str(secrets.randbelow(10)) for _ in range(self._pin_length))

    async def request_pin(self, phone: str) -> None:
        """Issue a fresh PIN for ``phone``, replacing any outstanding one."""
        phone = (phone or "").strip()
        if len(phone) < MIN_PHONE_LENGTH:
            raise ValidationError("Please enter a valid phone number.")
        if self._allowed and phone not in self._allowed:
            logger.warning(f"PIN requested for non-admin phone {phone}")
            raise ValidationError("Phone number is not authorized for admin access")

        now = self._clock()
        self._drop_expired(now)

        pin = self._pin_factory()
        entry = _PendingPin(pin_hash=_hash_pin(phone, pin), expires_at=now + self._ttl)
        self._pending[phone] = entry
        try:
            await self._sender.send_pin(phone, pin)
        except InternalError:
            # A newer request may have replaced this entry while sending
            if self._pending.get(phone) is entry:
                del self._pending[phone]
            raise
        logger.info(f"Issued admin PIN for {phone}")

    async def verify_pin(self, phone: str, pin: str) -> None:
        """Consume the outstanding PIN for ``phone`` if ``pin`` matches."""
        phone = (phone or "").strip()
        pin = (pin or "").strip()
        if len(pin) < MIN_PIN_LENGTH:
            raise ValidationError("Please enter the 4-digit PIN sent to you.")

        pending = self._pending.get(phone)
        if pending is None:
            raise ValidationError("No PIN has been requested for this phone number")

        if self._clock() >= pending.expires_at:
            del self._pending[phone]
            raise ValidationError("PIN has expired. Please request a new one.")

        if not hmac.compare_digest(pending.pin_hash, _hash_pin(phone, pin)):
            pending.attempts += 1
            if pending.attempts >= self._max_attempts:
                del self._pending[phone]
                logger.warning(f"PIN for {phone} burned after {pending.attempts} failed attempts")
                raise ValidationError("Too many failed attempts. Please request a new PIN.")
            raise ValidationError("Incorrect PIN")

        del self._pending[phone]
        logger.info(f"Admin PIN verified for {phone}")

    def _drop_expired(self, now: datetime) -> None:
        expired = [phone for phone, entry in self._pending.items() if entry.expires_at <= now]
        for phone in expired:
            del self._pending[phone]
        if expired:
            logger.debug(f"Dropped {len(expired)} expired admin PIN(s)")

    def has_pending(self, phone: str) -> bool:
        """Whether a PIN is outstanding for ``phone``.

        Expired PINs count until the next issuance or verification clears them.
        """
        return phone.strip() in self._pending

    def __len__(self) -> int:
        return len(self._pending)
