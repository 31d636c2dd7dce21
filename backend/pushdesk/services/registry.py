"""Device registry - binds phone numbers to push delivery tokens."""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from .device_store import DeviceRecord, DeviceStore

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Registry of device-token bindings with recency ordering.

    Records are keyed by token (last write wins). A phone may own several
    devices; the registry never deduplicates by phone.
    """

    def __init__(self, store: DeviceStore, clock: Callable[[], datetime] = datetime.utcnow):
        self._store = store
        self._clock = clock

    async def register(self, phone: str, token: str) -> None:
        """Upsert the binding for ``token`` and stamp it with the current time.

        Re-registration is the normal token-rotation flow and never raises.
        Callers are expected to have rejected blank values already.
        """
        await self._store.upsert(phone, token, self._clock())
        logger.info(f"Registered push token {token[:16]}... for {phone}")

    async def lookup(self, phone: str) -> Optional[str]:
        """Return the token of some device owned by ``phone``.

        When a phone owns several devices the match follows store order, not
        recency. Use ``list_all`` and filter for the newest token.
        """
        record = await self._store.find_by_phone(phone)
        return record.token if record else None

    async def list_all(self) -> List[DeviceRecord]:
        """Snapshot of every binding, most recently registered first."""
        records = await self._store.list_all()
        return sorted(records, key=lambda r: r.registered_at, reverse=True)
