"""Push notification dispatch through the Expo push gateway."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol, Tuple

import httpx

from ..errors import GatewayError, InternalError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_ERROR = "Failed to send notification"


@dataclass
class PushConfig:
    """Gateway configuration."""
    url: str = "https://exp.host/--/api/v2/push/send"
    access_token: Optional[str] = None
    timeout: float = 10.0


@dataclass
class PushReceipt:
    """Successful dispatch. ``ticket`` is the gateway payload, uninterpreted."""
    success: bool
    ticket: Any


class PushGateway(Protocol):
    """Transport to the external delivery gateway."""

    async def submit(self, payload: dict) -> Tuple[bool, dict]:
        ...


class Dispatcher(Protocol):
    """Anything that can send one notification to one token."""

    async def send(self, token: str, title: str, message: str) -> PushReceipt:
        ...


class ExpoPushGateway:
    """Posts a single notification payload to the Expo push API."""

    def __init__(self, config: PushConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._config = config
        self._transport = transport

    async def submit(self, payload: dict) -> Tuple[bool, dict]:
        """POST ``payload`` and return ``(status_ok, json_body)``.

        Raises InternalError when the call fails or the body is not a JSON object.
        """
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self._config.access_token:
            headers["Authorization"] = f"Bearer {self._config.access_token}"

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout, transport=self._transport) as client:
                response = await client.post(self._config.url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Push gateway transport error: {e!r}")
            raise InternalError("Unable to send notification") from e

        try:
            body = response.json()
        except ValueError as e:
            logger.error(f"Push gateway returned malformed body ({response.status_code}): {response.text[:200]}")
            raise InternalError("Unable to send notification") from e

        if not isinstance(body, dict):
            logger.error(f"Push gateway returned unexpected body type: {type(body).__name__}")
            raise InternalError("Unable to send notification")

        return response.is_success, body


class PushDispatcher:
    """Validates one notification request and forwards it in a single attempt."""

    def __init__(self, gateway: PushGateway):
        self._gateway = gateway

    @staticmethod
    def build_payload(token: str, title: str, message: str) -> dict:
        return {
            "to": token,
            "title": title,
            "body": message,
            "sound": "default",
            "priority": "high",
        }

    async def send(self, token: str, title: str, message: str) -> PushReceipt:
        """Send a notification to a single device token.

        Args:
            token: The delivery token
            title: Notification title
            message: Notification body text

        Returns:
            PushReceipt carrying the gateway ticket verbatim

        Raises:
            ValidationError: a field is missing or blank (no gateway call made)
            GatewayError: the gateway rejected the request or reported errors
            InternalError: transport failure or malformed gateway response
        """
        token = (token or "").strip()
        title = (title or "").strip()
        message = (message or "").strip()
        if not token or not title or not message:
            raise ValidationError("token, title, and message are required")

        ok, body = await self._gateway.submit(self.build_payload(token, title, message))

        errors = body.get("errors")
        has_errors = isinstance(errors, list) and len(errors) > 0
        if not ok or has_errors:
            logger.error(f"Push gateway error for {token[:16]}...: {body}")
            raise GatewayError(self._first_error_message(errors))

        data = body.get("data")
        logger.info(f"Push notification sent to {token[:16]}...")
        return PushReceipt(success=True, ticket=data if data is not None else body)

    @staticmethod
    def _first_error_message(errors: Any) -> str:
        if isinstance(errors, list) and errors:
            first = errors[0]
            if isinstance(first, dict) and first.get("message"):
                return str(first["message"])
        return DEFAULT_GATEWAY_ERROR


class RetryingDispatcher:
    """Opt-in retry policy layered over a dispatcher.

    Only transport failures are re-attempted. Validation and gateway
    rejections surface immediately.
    """

    def __init__(self, inner: Dispatcher, max_attempts: int = 3, base_delay: float = 0.5):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._inner = inner
        self._max_attempts = max_attempts
        self._base_delay = base_delay

    async def send(self, token: str, title: str, message: str) -> PushReceipt:
        last_exception: Optional[InternalError] = None
        for attempt in range(self._max_attempts):
            try:
                return await self._inner.send(token, title, message)
            except InternalError as e:
                last_exception = e
                if attempt + 1 >= self._max_attempts:
                    break
                delay = self._base_delay * (2 ** attempt)
                logger.warning(
                    f"Push dispatch failed, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{self._max_attempts})"
                )
                await asyncio.sleep(delay)
        raise last_exception


def create_dispatcher(config: PushConfig, max_attempts: int = 1, base_delay: float = 0.5) -> Dispatcher:
    """Build the configured dispatcher. Single attempt unless ``max_attempts`` > 1."""
    dispatcher: Dispatcher = PushDispatcher(ExpoPushGateway(config))
    if max_attempts > 1:
        dispatcher = RetryingDispatcher(dispatcher, max_attempts=max_attempts, base_delay=base_delay)
    return dispatcher
