"""Storage backends for device-token bindings.

Every backend upserts on the delivery token: re-registering a token replaces
its phone and timestamp instead of adding a record. Phones are not unique.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..errors import InternalError
from ..models.push_device import PushDevice

logger = logging.getLogger(__name__)

# Lock contention on SQLite and dropped connections on PostgreSQL
TRANSIENT_DB_ERRORS = (
    "database is locked",
    "connection refused",
    "connection reset",
    "connection closed",
    "server closed",
    "timeout",
    "too many clients",
)


def _is_transient(exc: Exception) -> bool:
    text = str(exc).lower()
    return any(msg in text for msg in TRANSIENT_DB_ERRORS)


@dataclass
class DeviceRecord:
    """One delivery-token binding."""
    phone: str
    token: str
    registered_at: datetime


class DeviceStore(Protocol):
    """Storage interface used by the device registry."""

    async def upsert(self, phone: str, token: str, registered_at: datetime) -> None:
        ...

    async def list_all(self) -> List[DeviceRecord]:
        ...

    async def find_by_phone(self, phone: str) -> Optional[DeviceRecord]:
        ...


class InMemoryDeviceStore:
    """Process-local store. Single-key dict writes are atomic under one event loop."""

    def __init__(self):
        self._records: Dict[str, DeviceRecord] = {}

    async def upsert(self, phone: str, token: str, registered_at: datetime) -> None:
        existing = self._records.get(token)
        if existing:
            # Updating in place keeps the record's iteration slot
            existing.phone = phone
            existing.registered_at = registered_at
        else:
            self._records[token] = DeviceRecord(phone=phone, token=token, registered_at=registered_at)

    async def list_all(self) -> List[DeviceRecord]:
        return [
            DeviceRecord(phone=r.phone, token=r.token, registered_at=r.registered_at)
            for r in self._records.values()
        ]

    async def find_by_phone(self, phone: str) -> Optional[DeviceRecord]:
        for record in self._records.values():
            if record.phone == phone:
                return DeviceRecord(phone=record.phone, token=record.token, registered_at=record.registered_at)
        return None

    def __len__(self) -> int:
        return len(self._records)


class SqlDeviceStore:
    """SQLAlchemy-backed store shared by every process pointing at the same database.

    Upserts are a single INSERT ... ON CONFLICT(token) DO UPDATE statement, so
    concurrent registrations of one token from several instances never lose
    an update. A write that hits a transient database error is replayed in a
    fresh session with exponential backoff.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        postgres: bool = False,
        max_attempts: int = 3,
        retry_base_delay: float = 0.1,
    ):
        self._session_factory = session_factory
        self._insert = pg_insert if postgres else sqlite_insert
        self._max_attempts = max(max_attempts, 1)
        self._retry_base_delay = retry_base_delay

    async def _write(self, stmt) -> None:
        for attempt in range(1, self._max_attempts + 1):
            try:
                async with self._session_factory() as session:
                    await session.execute(stmt)
                    await session.commit()
                return
            except (OperationalError, InterfaceError) as e:
                if attempt == self._max_attempts or not _is_transient(e):
                    raise
                delay = self._retry_base_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Transient database error, retrying write in {delay}s "
                    f"(attempt {attempt}/{self._max_attempts}): {e.orig!r}"
                )
                await asyncio.sleep(delay)

    async def upsert(self, phone: str, token: str, registered_at: datetime) -> None:
        stmt = self._insert(PushDevice).values(
            token=token,
            phone=phone,
            registered_at=registered_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PushDevice.token],
            set_={
                "phone": stmt.excluded.phone,
                "registered_at": stmt.excluded.registered_at,
            },
        )
        try:
            await self._write(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to upsert device {token[:16]}...: {e}")
            raise InternalError("Unable to register push token") from e

    async def list_all(self) -> List[DeviceRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PushDevice).order_by(PushDevice.registered_at.desc())
                )
                return [self._to_record(d) for d in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list devices: {e}")
            raise InternalError("Unable to load devices") from e

    async def find_by_phone(self, phone: str) -> Optional[DeviceRecord]:
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(PushDevice).where(PushDevice.phone == phone).limit(1)
                )
                device = result.scalars().first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to look up device for {phone}: {e}")
            raise InternalError("Unable to look up device") from e
        return self._to_record(device) if device else None

    @staticmethod
    def _to_record(device: PushDevice) -> DeviceRecord:
        return DeviceRecord(phone=device.phone, token=device.token, registered_at=device.registered_at)
