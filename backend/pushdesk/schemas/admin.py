"""Admin PIN authentication schemas."""
from typing import Optional
from pydantic import BaseModel


class PinRequest(BaseModel):
    """Ask for a one-time PIN to be delivered to ``phone``."""
    phone: Optional[str] = None


class PinVerifyRequest(BaseModel):
    """Check a PIN previously delivered to ``phone``."""
    phone: Optional[str] = None
    pin: Optional[str] = None
