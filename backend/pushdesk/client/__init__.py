"""Client-side flows that drive the HTTP API."""
from .admin_auth import AdminAuthFlow, AuthStage
from .registration import RegistrationFlow, RegistrationStatus, StaticTokenProvider, TokenProvider

__all__ = [
    "AdminAuthFlow",
    "AuthStage",
    "RegistrationFlow",
    "RegistrationStatus",
    "StaticTokenProvider",
    "TokenProvider",
]
