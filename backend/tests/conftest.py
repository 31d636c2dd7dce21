"""Pytest fixtures: fresh services per test, stubbed gateway, test client."""
import json
import os
import tempfile
from datetime import datetime, timedelta

import httpx
import pytest
from fastapi.testclient import TestClient

# Must be set before the app is imported
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("DATA_PATH", tempfile.mkdtemp(prefix="pushdesk-test-"))
os.environ.setdefault("ADMIN_PHONES", "")

from pushdesk.deps import get_device_registry, get_dispatcher, get_pin_service
from pushdesk.main import app
from pushdesk.services.device_store import InMemoryDeviceStore
from pushdesk.services.pin_auth import PinService
from pushdesk.services.push_sender import ExpoPushGateway, PushConfig, PushDispatcher
from pushdesk.services.registry import DeviceRegistry

GATEWAY_URL = "https://push.test/--/api/v2/push/send"


def ticking_clock(start: datetime = datetime(2024, 1, 1, 12, 0, 0), step: timedelta = timedelta(seconds=1)):
    """Clock that advances by ``step`` on every call."""
    current = [start]

    def tick() -> datetime:
        current[0] = current[0] + step
        return current[0]

    return tick


class GatewayStub:
    """Records outbound gateway payloads and replies with a canned response."""

    def __init__(self):
        self.requests = []
        self.status_code = 200
        self.body = {"data": {"status": "ok", "id": "ticket-0001"}}
        self.raw_body = None
        self.error = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw_body is not None:
            return httpx.Response(self.status_code, text=self.raw_body)
        return httpx.Response(self.status_code, json=self.body)

    @property
    def payloads(self):
        return [json.loads(r.content) for r in self.requests]

    def dispatcher(self, access_token=None) -> PushDispatcher:
        config = PushConfig(url=GATEWAY_URL, access_token=access_token, timeout=5.0)
        return PushDispatcher(ExpoPushGateway(config, transport=httpx.MockTransport(self.handler)))


class CapturingPinSender:
    """PIN channel that keeps every delivered PIN."""

    def __init__(self):
        self.sent = []

    async def send_pin(self, phone: str, pin: str) -> None:
        self.sent.append((phone, pin))

    def last_pin(self, phone: str) -> str:
        return [pin for p, pin in self.sent if p == phone][-1]


@pytest.fixture
def registry():
    return DeviceRegistry(InMemoryDeviceStore(), clock=ticking_clock())


@pytest.fixture
def gateway():
    return GatewayStub()


@pytest.fixture
def pin_outbox():
    return CapturingPinSender()


@pytest.fixture
def pin_service(pin_outbox):
    return PinService(pin_outbox)


@pytest.fixture
def overrides(registry, gateway, pin_service):
    """Point the app's dependencies at this test's services."""
    dispatcher = gateway.dispatcher()
    app.dependency_overrides[get_device_registry] = lambda: registry
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_pin_service] = lambda: pin_service
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides):
    with TestClient(overrides) as c:
        yield c
