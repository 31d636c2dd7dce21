"""PushDevice model - stores delivery tokens bound to phone numbers."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime

from ..database import Base


class PushDevice(Base):
    """Registered device for push notifications, keyed by delivery token."""

    __tablename__ = "push_devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=False, index=True)  # Not unique: one phone, many devices
    registered_at = Column(DateTime, nullable=False, default=datetime.utcnow)
