import logging
import itertools

from pydantic import BaseModel, Field

from .api import GoveeAPIError, GoveeClient
from .device import Command, Device, hex_to_rgb, normalize_brightness, rgb_to_hex

logger = logging.getLogger(__name__)

STATUS_FETCHING = "Fetching devices..."
STATUS_FETCH_FAILED = "Failed to fetch devices. Check API key and network."
STATUS_NO_DEVICE = "Select a device first"
STATUS_SENDING = "Sending command..."
STATUS_SENT = "Command sent - check your lights"


class UIState(BaseModel):
    devices: list[Device] = Field(default_factory=list)
    selected: Device | None = None
    color: str = "#ffffff"
    brightness: int = 100
    is_on: bool = True
    status: str = ""
    busy: str | None = None  # action awaiting a response


class Controller:
    """Panel state plus the user actions that change it.

    Every action that talks to the API takes a generation token. Only the
    newest token may write the status, so a slow response never overwrites
    the outcome of a later action.
    """

    def __init__(self, client: GoveeClient):
        self.client = client
        self.state = UIState()
        self._tokens = itertools.count(1)
        self._latest = 0
        self._latest_power = 0

    def snapshot(self) -> UIState:
        return self.state.model_copy(deep=True)

    def _begin(self, action: str, status: str) -> int:
        self._latest = next(self._tokens)
        self.state.busy = action
        self.state.status = status
        return self._latest

    def _settle(self, status: str) -> None:
        # Decided without a request, but still newer than anything in flight
        self._latest = next(self._tokens)
        self.state.busy = None
        self.state.status = status

    def _finish(self, token: int, status: str) -> None:
        if token != self._latest:
            logger.debug("Dropping stale status %r (token %d < %d)", status, token, self._latest)
            return
        self.state.busy = None
        self.state.status = status

    async def refresh(self) -> list[Device]:
        token = self._begin("fetch", STATUS_FETCHING)
        try:
            devices = await self.client.list_devices()
        except GoveeAPIError as e:
            logger.warning("Fetching devices failed: %s", e)
            self._finish(token, STATUS_FETCH_FAILED)
            return self.state.devices

        self.state.devices = devices
        self.state.selected = devices[0] if devices else None
        self._finish(token, f"Found {len(devices)} devices")
        return devices

    def select(self, device_id: str) -> Device:
        for dev in self.state.devices:
            if dev.device_id == device_id:
                self.state.selected = dev
                return dev
        raise KeyError(device_id)

    def edit_color(self, hex_color: str) -> None:
        self.state.color = rgb_to_hex(hex_to_rgb(hex_color))

    def edit_brightness(self, value: int | float | str) -> None:
        self.state.brightness = normalize_brightness(value)

    async def send(self, command: Command) -> bool:
        selected = self.state.selected
        if selected is None:
            self._settle(STATUS_NO_DEVICE)
            return False

        token = self._begin(command.name, STATUS_SENDING)
        try:
            await self.client.control(selected, command)
        except GoveeAPIError as e:
            logger.warning("Command %s to %s failed: %s", command.name, selected.device_id, e)
            self._finish(token, f"Failed to send command: {e}")
            return False

        self._finish(token, STATUS_SENT)
        return True

    def _send_failed(self, err: ValueError) -> bool:
        logger.warning("Rejected control input: %s", err)
        self._settle(f"Failed to send command: {err}")
        return False

    async def apply_color(self) -> bool:
        try:
            rgb = hex_to_rgb(self.state.color)
        except ValueError as e:
            return self._send_failed(e)
        return await self.send(Command.color(rgb))

    async def apply_brightness(self) -> bool:
        return await self.send(Command.brightness(normalize_brightness(self.state.brightness)))

    async def set_color(self, hex_color: str) -> bool:
        try:
            self.edit_color(hex_color)
        except ValueError as e:
            return self._send_failed(e)
        return await self.apply_color()

    async def set_brightness(self, value: int | float | str) -> bool:
        try:
            self.edit_brightness(value)
        except ValueError as e:
            return self._send_failed(e)
        return await self.apply_brightness()

    async def set_power(self, on: bool) -> bool:
        """Turn the selected light on or off.

        ``is_on`` flips before the request goes out. It is rolled back if the
        request fails, unless a newer power action has replaced it meanwhile.
        """
        if self.state.selected is None:
            self._settle(STATUS_NO_DEVICE)
            return False

        previous = self.state.is_on
        self.state.is_on = on
        power_token = self._latest_power = next(self._tokens)

        ok = await self.send(Command.turn(on))
        if not ok and power_token == self._latest_power:
            self.state.is_on = previous
        return ok
