"""Two-stage admin authentication: phone entry, then one-time PIN."""
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from ._http import post_json

logger = logging.getLogger(__name__)

MIN_PHONE_LENGTH = 6
MIN_PIN_LENGTH = 4


class AuthStage(str, Enum):
    """Authentication progress. Only moves forward."""
    ENTER = "enter"
    VERIFY = "verify"
    AUTHENTICATED = "authenticated"


# Each stage has exactly one legal successor
_NEXT_STAGE: Dict[AuthStage, AuthStage] = {
    AuthStage.ENTER: AuthStage.VERIFY,
    AuthStage.VERIFY: AuthStage.AUTHENTICATED,
}


class AdminAuthFlow:
    """Client-held session gating the admin surface behind phone + PIN.

    Failures never change ``stage``; they only update ``status_message`` and
    ``last_error`` so the same step can be retried. While a request is in
    flight ``loading`` is set and further submissions are refused. After
    ``teardown()`` no attribute is mutated any more, even by requests that
    were already in flight.
    """

    def __init__(
        self,
        api_base_url: str,
        on_authenticated: Callable[[], Any],
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.api_base_url = api_base_url
        self._on_authenticated = on_authenticated
        self._http_client = http_client
        self._timeout = timeout
        self._mounted = True

        self.stage = AuthStage.ENTER
        self.phone = ""
        self.loading = False
        self.status_message = "Enter your admin phone number to receive a secure PIN"
        self.last_error: Optional[str] = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def can_submit(self) -> bool:
        return self._mounted and not self.loading and self.stage != AuthStage.AUTHENTICATED

    def teardown(self):
        """Discard the session. In-flight results are ignored from now on."""
        self._mounted = False
        logger.info("[AdminAuth] Session torn down")

    def _update(self, **changes):
        if not self._mounted:
            logger.info(f"[AdminAuth] Skipping update of {', '.join(changes)}, session torn down")
            return
        for name, value in changes.items():
            setattr(self, name, value)

    def _advance(self, expected: AuthStage) -> bool:
        if not self._mounted or self.stage != expected:
            return False
        self.stage = _NEXT_STAGE[expected]
        return True

    def _reject(self, error: str) -> bool:
        logger.warning(f"[AdminAuth] {error}")
        self._update(last_error=error)
        return False

    def _check_ready(self, expected: AuthStage) -> Optional[str]:
        if not self._mounted:
            return "Session has been closed."
        if not self.api_base_url:
            return "API base URL is not configured."
        if self.loading:
            return "A request is already in progress."
        if self.stage != expected:
            return f"Cannot do that while in the {self.stage.value} stage."
        return None

    async def request_pin(self, phone: str) -> bool:
        """Ask the backend to send a PIN to ``phone``. Valid only in ENTER."""
        problem = self._check_ready(AuthStage.ENTER)
        if problem:
            return self._reject(problem)

        trimmed = (phone or "").strip()
        if len(trimmed) < MIN_PHONE_LENGTH:
            return self._reject("Please enter a valid phone number.")

        logger.info(f"[AdminAuth] Requesting PIN for {trimmed}")
        self._update(loading=True, last_error=None, status_message="Sending secure PIN to your device…")
        try:
            ok, data = await post_json(
                self.api_base_url,
                "/admin/request-pin",
                {"phone": trimmed},
                http_client=self._http_client,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"[AdminAuth] request-pin network error: {e!r}")
            self._update(
                last_error="Something went wrong while requesting the PIN.",
                status_message="Network error. Please try again in a moment.",
            )
            return False
        finally:
            self._update(loading=False)

        if ok and data.get("success"):
            if not self._advance(AuthStage.ENTER):
                return False
            self.phone = trimmed
            self.status_message = "PIN sent. Please check your messages and enter the code below."
            return True

        logger.warning(f"[AdminAuth] request-pin failed: {data}")
        self._update(
            last_error=data.get("message") or "Unable to send PIN.",
            status_message="Failed to send PIN. Please double-check your phone number and try again.",
        )
        return False

    async def verify_pin(self, phone: str, pin: str) -> bool:
        """Check ``pin`` for ``phone``. Valid only in VERIFY.

        On success the stage becomes AUTHENTICATED and the completion
        callback runs exactly once.
        """
        problem = self._check_ready(AuthStage.VERIFY)
        if problem:
            return self._reject(problem)

        trimmed_phone = (phone or "").strip() or self.phone
        trimmed_pin = (pin or "").strip()
        if len(trimmed_pin) < MIN_PIN_LENGTH:
            return self._reject("Please enter the 4-digit PIN sent to you.")

        logger.info(f"[AdminAuth] Verifying PIN for {trimmed_phone}")
        self._update(loading=True, last_error=None, status_message="Verifying credentials…")
        try:
            ok, data = await post_json(
                self.api_base_url,
                "/admin/verify-pin",
                {"phone": trimmed_phone, "pin": trimmed_pin},
                http_client=self._http_client,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.error(f"[AdminAuth] verify-pin network error: {e!r}")
            self._update(
                last_error="Something went wrong while verifying the PIN.",
                status_message="Network error. Please try again in a moment.",
            )
            return False
        finally:
            self._update(loading=False)

        if ok and data.get("success"):
            if not self._advance(AuthStage.VERIFY):
                return False
            logger.info("[AdminAuth] PIN verified successfully")
            self.status_message = "Authenticated! Loading admin tools…"
            result = self._on_authenticated()
            if inspect.isawaitable(result):
                await result
            return True

        logger.warning(f"[AdminAuth] verify-pin failed: {data}")
        self._update(
            last_error=data.get("message") or "PIN verification failed.",
            status_message="PIN verification failed. Please try again.",
        )
        return False
