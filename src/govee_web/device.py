import re
import math
import logging
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

logger = logging.getLogger(__name__)

CommandName = Literal["color", "brightness", "turn"]

HEX_COLOR = re.compile(r"#?([0-9a-fA-F]{6})")


def clamp(v: int, lo: int, hi: int) -> int:
    return lo if v < lo else hi if v > hi else v


class RGB(BaseModel):
    model_config = ConfigDict(frozen=True)

    r: int = Field(..., ge=0, le=255)
    g: int = Field(..., ge=0, le=255)
    b: int = Field(..., ge=0, le=255)


class Device(BaseModel):
    """A light registered to the account, in one canonical shape."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    model: str
    name: str | None = None
    controllable: bool = True
    retrievable: bool = False
    supported_commands: tuple[str, ...] = ()

    @computed_field
    @property
    def label(self) -> str:
        return self.name or self.model or self.device_id


class Command(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: CommandName
    value: RGB | int | Literal["on", "off"]

    @classmethod
    def color(cls, rgb: RGB) -> "Command":
        return cls(name="color", value=rgb)

    @classmethod
    def brightness(cls, level: int) -> "Command":
        return cls(name="brightness", value=clamp(int(level), 0, 100))

    @classmethod
    def turn(cls, on: bool) -> "Command":
        return cls(name="turn", value="on" if on else "off")

    def payload(self) -> dict[str, Any]:
        value = self.value.model_dump() if isinstance(self.value, RGB) else self.value
        return {"name": self.name, "value": value}


def hex_to_rgb(hex_color: str) -> RGB:
    """'#ff00aa' -> RGB(r=255, g=0, b=170). The leading '#' is optional."""
    m = HEX_COLOR.fullmatch(hex_color.strip())
    if m is None:
        raise ValueError(f"Invalid color {hex_color!r}: expected #rrggbb")
    v = m.group(1)
    return RGB(r=int(v[0:2], 16), g=int(v[2:4], 16), b=int(v[4:6], 16))


def rgb_to_hex(rgb: RGB) -> str:
    return f"#{rgb.r:02x}{rgb.g:02x}{rgb.b:02x}"


def normalize_brightness(raw: int | float | str) -> int:
    """Round half up and clamp a slider value to 0..100.

    Slider values may arrive as text ("57.6").
    """
    value = float(raw)
    if math.isnan(value):
        raise ValueError(f"Invalid brightness {raw!r}")
    value = min(max(value, 0.0), 100.0)
    return int(math.floor(value + 0.5))


def _pick(raw: dict, *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, "") and not isinstance(value, dict):
            return value
    return None


def normalize_device(raw: Any) -> Device | None:
    """Map one vendor device record to a Device.

    Accepts the flat shape ``{"device": id, "model": m, "deviceName": n}`` and
    the nested shape ``{"device": {"deviceId": id, "model": m}}``.
    """
    if not isinstance(raw, dict):
        logger.debug("Skipping non-object device record: %r", raw)
        return None

    nested = raw.get("device") if isinstance(raw.get("device"), dict) else {}

    device_id = _pick(raw, "device", "deviceId") or _pick(nested, "deviceId", "device")
    model = _pick(raw, "model") or _pick(nested, "model")
    if not device_id and not model:
        logger.debug("Skipping device record without id or model: %r", raw)
        return None

    name = _pick(raw, "deviceName", "name") or _pick(nested, "deviceName", "name")
    commands = raw.get("supportCmds") or nested.get("supportCmds") or ()

    return Device(
        device_id=str(device_id or ""),
        model=str(model or ""),
        name=str(name) if name else None,
        controllable=bool(raw.get("controllable", True)),
        retrievable=bool(raw.get("retrievable", False)),
        supported_commands=tuple(str(c) for c in commands),
    )


def extract_devices(body: Any) -> list[Device]:
    """Pull the device array out of a list-devices response.

    The array lives at ``data.devices``, or at top-level ``devices`` in the
    older shape. Anything else yields an empty list.
    """
    if not isinstance(body, dict):
        return []

    data = body.get("data")
    found = data.get("devices") if isinstance(data, dict) else None
    if found is None:
        found = body.get("devices")
    if not isinstance(found, list):
        return []

    devices = []
    for raw in found:
        dev = normalize_device(raw)
        if dev is not None:
            devices.append(dev)
    return devices
