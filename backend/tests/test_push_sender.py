"""Push dispatch: validation, payload, gateway response normalization, retry policy."""
import httpx
import pytest

from pushdesk.errors import GatewayError, InternalError, ValidationError
from pushdesk.services.push_sender import (
    PushConfig,
    PushDispatcher,
    PushReceipt,
    RetryingDispatcher,
    create_dispatcher,
)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "token,title,message",
    [
        ("", "T", "M"),
        ("tok", "", "M"),
        ("tok", "T", ""),
        ("   ", "T", "M"),
        (None, "T", "M"),
    ],
)
async def test_missing_fields_fail_before_network(gateway, token, title, message):
    dispatcher = gateway.dispatcher()
    with pytest.raises(ValidationError) as exc:
        await dispatcher.send(token, title, message)
    assert exc.value.status_code == 400
    assert gateway.requests == []


@pytest.mark.asyncio
async def test_payload_shape(gateway):
    await gateway.dispatcher().send(" ExponentPushToken[abc] ", " Hello ", " World ")

    assert gateway.payloads == [{
        "to": "ExponentPushToken[abc]",
        "title": "Hello",
        "body": "World",
        "sound": "default",
        "priority": "high",
    }]
    request = gateway.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert "authorization" not in request.headers


@pytest.mark.asyncio
async def test_access_token_sent_as_bearer(gateway):
    await gateway.dispatcher(access_token="secret-token").send("tok", "T", "M")
    assert gateway.requests[0].headers["authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_success_returns_data_as_ticket(gateway):
    receipt = await gateway.dispatcher().send("tok", "T", "M")
    assert receipt == PushReceipt(success=True, ticket={"status": "ok", "id": "ticket-0001"})


@pytest.mark.asyncio
async def test_success_without_data_returns_whole_body(gateway):
    gateway.body = {"receipt": "abc"}
    receipt = await gateway.dispatcher().send("tok", "T", "M")
    assert receipt.ticket == {"receipt": "abc"}


@pytest.mark.asyncio
async def test_null_data_returns_whole_body(gateway):
    gateway.body = {"data": None, "receipt": "abc"}
    receipt = await gateway.dispatcher().send("tok", "T", "M")
    assert receipt.ticket == {"data": None, "receipt": "abc"}


@pytest.mark.asyncio
async def test_error_list_surfaces_first_message(gateway):
    gateway.body = {"errors": [{"code": "PUSH_ERR", "message": "DeviceNotRegistered"}, {"message": "second"}]}
    with pytest.raises(GatewayError) as exc:
        await gateway.dispatcher().send("tok", "T", "M")
    assert exc.value.message == "DeviceNotRegistered"
    assert exc.value.status_code == 502


@pytest.mark.asyncio
async def test_non_ok_status_without_errors_uses_generic_message(gateway):
    gateway.status_code = 503
    gateway.body = {"detail": "maintenance"}
    with pytest.raises(GatewayError) as exc:
        await gateway.dispatcher().send("tok", "T", "M")
    assert exc.value.message == "Failed to send notification"


@pytest.mark.asyncio
async def test_empty_error_list_is_success(gateway):
    gateway.body = {"data": {"status": "ok"}, "errors": []}
    receipt = await gateway.dispatcher().send("tok", "T", "M")
    assert receipt.ticket == {"status": "ok"}


@pytest.mark.asyncio
async def test_transport_failure_is_internal_error(gateway):
    gateway.error = httpx.ConnectError("connection refused")
    with pytest.raises(InternalError) as exc:
        await gateway.dispatcher().send("tok", "T", "M")
    assert exc.value.status_code == 500
    assert exc.value.message == "Unable to send notification"


@pytest.mark.asyncio
async def test_malformed_body_is_internal_error(gateway):
    gateway.raw_body = "<html>bad gateway</html>"
    with pytest.raises(InternalError):
        await gateway.dispatcher().send("tok", "T", "M")


@pytest.mark.asyncio
async def test_non_object_body_is_internal_error(gateway):
    gateway.body = ["not", "an", "object"]
    with pytest.raises(InternalError):
        await gateway.dispatcher().send("tok", "T", "M")


class FlakyDispatcher:
    def __init__(self, failures, error_cls=InternalError):
        self.calls = 0
        self._failures = failures
        self._error_cls = error_cls

    async def send(self, token, title, message):
        self.calls += 1
        if self.calls <= self._failures:
            raise self._error_cls("boom")
        return PushReceipt(success=True, ticket={"id": self.calls})


@pytest.mark.asyncio
async def test_retry_recovers_from_transport_failures():
    inner = FlakyDispatcher(failures=2)
    receipt = await RetryingDispatcher(inner, max_attempts=3, base_delay=0).send("tok", "T", "M")
    assert receipt.ticket == {"id": 3}
    assert inner.calls == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_max_attempts():
    inner = FlakyDispatcher(failures=5)
    with pytest.raises(InternalError):
        await RetryingDispatcher(inner, max_attempts=2, base_delay=0).send("tok", "T", "M")
    assert inner.calls == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("error_cls", [GatewayError, ValidationError])
async def test_retry_never_repeats_rejections(error_cls):
    inner = FlakyDispatcher(failures=1, error_cls=error_cls)
    with pytest.raises(error_cls):
        await RetryingDispatcher(inner, max_attempts=3, base_delay=0).send("tok", "T", "M")
    assert inner.calls == 1


def test_retry_requires_positive_attempts():
    with pytest.raises(ValueError):
        RetryingDispatcher(FlakyDispatcher(0), max_attempts=0)


def test_default_dispatcher_is_single_attempt():
    assert isinstance(create_dispatcher(PushConfig()), PushDispatcher)
    assert isinstance(create_dispatcher(PushConfig(), max_attempts=3), RetryingDispatcher)
