"""Async client for the Govee Developer cloud API."""

import logging
from typing import Any

import httpx

from .config import Settings
from .device import Command, Device, extract_devices

logger = logging.getLogger(__name__)


class GoveeAPIError(Exception):
    """Any failed call: transport error, non-2xx status, or unreadable body."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GoveeClient:
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://developer-api.govee.com/v1",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Content-Type": "application/json",
                "Govee-API-Key": api_key,
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "GoveeClient":
        return cls(settings.api_key, base_url=settings.api_base, timeout=settings.timeout, **kwargs)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        try:
            res = await self._client.request(method, path, json=body)
        except httpx.HTTPError as e:
            raise GoveeAPIError(f"{type(e).__name__}: {e}") from e

        if not res.is_success:
            raise GoveeAPIError(res.text or res.reason_phrase, status_code=res.status_code)
        try:
            return res.json()
        except ValueError as e:
            raise GoveeAPIError(f"Invalid JSON response: {e}", status_code=res.status_code) from e

    async def list_devices(self) -> list[Device]:
        body = await self._request("GET", "/devices")
        devices = extract_devices(body)
        logger.debug("Listed %d devices", len(devices))
        return devices

    async def control(self, device: Device, command: Command) -> Any:
        body = {
            "device": device.device_id,
            "model": device.model,
            "command": command.payload(),
        }
        logger.info("PUT /devices/control %s %s=%r", device.device_id, command.name, body["command"]["value"])
        return await self._request("PUT", "/devices/control", body)
