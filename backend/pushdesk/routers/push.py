"""Device registration endpoint."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..deps import get_device_registry
from ..errors import PushDeskError
from ..schemas.push import ActionResponse, PushRegisterRequest
from ..services.registry import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["push"])


@router.post("/register", response_model=ActionResponse, response_model_exclude_none=True)
async def register_device(
    request: PushRegisterRequest,
    registry: DeviceRegistry = Depends(get_device_registry),
):
    """Bind a delivery token to a phone number.

    Re-registering a known token moves it to the given phone and refreshes
    its timestamp. Clients call this whenever the platform rotates the token.
    """
    phone = (request.phone or "").strip()
    token = (request.token or "").strip()
    if not phone or not token:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": "phone and token are required"},
        )

    try:
        await registry.register(phone, token)
    except PushDeskError:
        raise
    except Exception:
        logger.exception("Failed to register push token")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Unable to register push token"},
        )

    return ActionResponse(success=True)
