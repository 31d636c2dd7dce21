"""JSON POST helper shared by the client flows."""
import logging
from typing import Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


async def post_json(
    base_url: str,
    path: str,
    payload: dict,
    http_client: Optional[httpx.AsyncClient] = None,
    timeout: float = 10.0,
) -> Tuple[bool, dict]:
    """POST ``payload`` to ``base_url + path`` and return ``(status_ok, body)``.

    An unparseable body is treated as ``{"success": False}``. Transport
    errors propagate as ``httpx.HTTPError``.
    """
    url = f"{base_url.rstrip('/')}{path}"
    if http_client is not None:
        response = await http_client.post(url, json=payload)
    else:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(url, json=payload)

    try:
        data = response.json()
    except ValueError:
        logger.error(f"Failed to parse response JSON from {path} ({response.status_code})")
        data = None
    if not isinstance(data, dict):
        data = {"success": False}
    return response.is_success, data
