"""Admin endpoints: device listing, test pushes and PIN authentication."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps import get_device_registry, get_dispatcher, get_pin_service
from ..errors import PushDeskError
from ..schemas.admin import PinRequest, PinVerifyRequest
from ..schemas.push import (
    ActionResponse,
    DeviceListResponse,
    DeviceOut,
    SendPushRequest,
    SendPushResponse,
)
from ..services.pin_auth import PinService
from ..services.push_sender import Dispatcher
from ..services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/devices", response_model=DeviceListResponse, response_model_exclude_none=True)
async def list_devices(registry: DeviceRegistry = Depends(get_device_registry)):
    """List every registered device, most recently registered first."""
    try:
        records = await registry.list_all()
    except Exception:
        logger.exception("Failed to load devices")
        return JSONResponse(
            status_code=500,
            content={"devices": [], "message": "Unable to load devices"},
        )

    return DeviceListResponse(
        devices=[
            DeviceOut(phone=r.phone, token=r.token, registered_at=r.registered_at)
            for r in records
        ]
    )


@router.post("/send-push", response_model=SendPushResponse)
async def send_push(
    request: SendPushRequest,
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Send one test notification to one device token.

    Missing fields answer 400, gateway rejections 502 and transport
    failures 500, all as ``{success: false, message}``.
    """
    try:
        receipt = await dispatcher.send(request.token, request.title, request.message)
    except PushDeskError:
        raise
    except Exception:
        logger.exception("Failed to send push notification")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Unable to send notification"},
        )

    return SendPushResponse(success=receipt.success, ticket=receipt.ticket)


@router.post("/request-pin", response_model=ActionResponse, response_model_exclude_none=True)
async def request_pin(
    request: PinRequest,
    pins: PinService = Depends(get_pin_service),
):
    """Issue a one-time PIN to an admin phone."""
    await pins.request_pin(request.phone)
    return ActionResponse(success=True)


@router.post("/verify-pin", response_model=ActionResponse, response_model_exclude_none=True)
async def verify_pin(
    request: PinVerifyRequest,
    pins: PinService = Depends(get_pin_service),
):
    """Check the PIN delivered by ``/admin/request-pin``."""
    await pins.verify_pin(request.phone, request.pin)
    return ActionResponse(success=True)
