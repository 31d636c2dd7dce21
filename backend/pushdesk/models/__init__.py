"""Database models."""
from .push_device import PushDevice

__all__ = ["PushDevice"]
