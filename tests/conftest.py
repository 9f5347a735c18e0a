"""Pytest configuration and shared fixtures for govee-web tests."""

import json

import httpx
import pytest
import pytest_asyncio

from govee_web.api import GoveeClient
from govee_web.controller import Controller

API_KEY = "test-key-123"
BASE = "https://govee.test/v1"

SAMPLE_DEVICES = [
    {"device": "AA:BB:CC:DD:EE:FF:00:11", "model": "H6159", "deviceName": "Desk strip",
     "controllable": True, "retrievable": True, "supportCmds": ["turn", "brightness", "color"]},
    {"device": "11:22:33:44:55:66:77:88", "model": "H6003", "deviceName": "Hall bulb",
     "controllable": True, "retrievable": True, "supportCmds": ["turn", "brightness", "color"]},
]


class FakeGovee:
    """Stands in for the vendor API; records every request it receives."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.devices_status = 200
        self.devices_body = {"code": 200, "message": "Success", "data": {"devices": SAMPLE_DEVICES}}
        self.control_status = 200
        self.control_body = {"code": 200, "message": "Success", "data": {}}
        self.raise_on_control: Exception | None = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET" and request.url.path.endswith("/devices"):
            return httpx.Response(self.devices_status, json=self.devices_body)
        if request.method == "PUT" and request.url.path.endswith("/devices/control"):
            if self.raise_on_control is not None:
                raise self.raise_on_control
            return httpx.Response(self.control_status, json=self.control_body)
        return httpx.Response(404, json={"message": "not found"})

    @property
    def control_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]

    def last_control_body(self) -> dict:
        return json.loads(self.control_requests[-1].content)


@pytest.fixture
def fake_govee() -> FakeGovee:
    return FakeGovee()


@pytest_asyncio.fixture
async def client(fake_govee):
    c = GoveeClient(API_KEY, base_url=BASE, transport=httpx.MockTransport(fake_govee))
    yield c
    await c.close()


@pytest.fixture
def controller(client) -> Controller:
    return Controller(client)


@pytest.fixture
def sample_devices() -> list[dict]:
    return [dict(d) for d in SAMPLE_DEVICES]
