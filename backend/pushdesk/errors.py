"""Error taxonomy shared by the server routes and the client flows."""


class PushDeskError(Exception):
    """Base error carrying a caller-safe message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PushDeskError):
    """Malformed or missing caller input. Raised before any network call."""

    status_code = 400


class GatewayError(PushDeskError):
    """The delivery gateway rejected the request or reported per-message errors."""

    status_code = 502


class InternalError(PushDeskError):
    """Storage or transport failure unrelated to caller input."""

    status_code = 500


class PermissionDenied(PushDeskError):
    """The host platform declined to issue a delivery token."""

    status_code = 403
