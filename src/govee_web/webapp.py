import sys
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
from pythonjsonlogger import jsonlogger

from .api import GoveeClient
from .config import get_settings
from .controller import Controller

logger = logging.getLogger(__name__)

# Single controller so every browser tab sees the same state
_controller: Controller | None = None


def setup_logging(log_level: str = "INFO") -> None:
    formatter = jsonlogger.JsonFormatter(  # type: ignore[attr-defined]
        "%(asctime)s %(name)s %(levelname)s %(message)s",
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(log_level.upper())

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def get_controller() -> Controller:
    global _controller
    if _controller is None:
        settings = get_settings()
        _controller = Controller(GoveeClient.from_settings(settings))
    return _controller


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    global _controller
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("Govee web controller starting, API base %s", settings.api_base)

    ctl = get_controller()
    if settings.fetch_on_start:
        await ctl.refresh()
    try:
        yield
    finally:
        await ctl.client.close()
        _controller = None


app = FastAPI(title="Govee Web Controller", lifespan=lifespan)


class SelectRequest(BaseModel):
    device_id: str

class ColorRequest(BaseModel):
    hex: str                   # "#rrggbb" from the picker

class BrightnessRequest(BaseModel):
    value: float | str         # slider value, may be text

class PowerRequest(BaseModel):
    on: bool


def state_response(ctl: Controller) -> JSONResponse:
    return JSONResponse(ctl.snapshot().model_dump(mode="json"))


HTML_PAGE = r"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width,initial-scale=1">
  <title>Govee Web Controller</title>
  <style>
    :root{
      --bg:#0b0f17;
      --card:rgba(255,255,255,.06);
      --card2:rgba(255,255,255,.10);
      --border:rgba(255,255,255,.12);
      --text:rgba(255,255,255,.92);
      --muted:rgba(255,255,255,.60);
      --r:18px;
      --accent:#6ae4ff;
    }
    @media (prefers-color-scheme: light) {
      :root{
        --bg:#f6f7fb;
        --card:rgba(0,0,0,.04);
        --card2:rgba(0,0,0,.06);
        --border:rgba(0,0,0,.10);
        --text:rgba(0,0,0,.88);
        --muted:rgba(0,0,0,.60);
        --accent:#0ea5e9;
      }
    }
    *{box-sizing:border-box}
    body{margin:0;font-family:system-ui,-apple-system,Segoe UI,Roboto,Arial;color:var(--text);background:var(--bg)}
    .wrap{max-width:680px;margin:26px auto;padding:0 16px 34px}
    h1{margin:0 0 14px;font-size:20px}
    .card{border:1px solid var(--border);background:var(--card);border-radius:var(--r);padding:16px}
    .row{display:flex;gap:10px;align-items:center;flex-wrap:wrap;margin-bottom:14px}
    .label{min-width:92px;font-size:13px;color:var(--muted)}
    .btn{border:1px solid var(--border);background:var(--card2);color:var(--text);padding:10px 12px;border-radius:12px;cursor:pointer}
    .btn.primary{border-color:rgba(106,228,255,.35)}
    .btn.on{border-color:rgba(72,227,155,.45)}
    .btn.off{border-color:rgba(255,91,110,.45)}
    select{flex:1;padding:9px;border-radius:12px;border:1px solid var(--border);background:var(--card2);color:var(--text)}
    input[type=color]{width:54px;height:44px;border:none;background:none;padding:0;cursor:pointer}
    input[type=range]{width:260px;accent-color:var(--accent)}
    .toast{padding:10px 12px;border-radius:14px;border:1px solid var(--border);color:var(--muted);min-height:44px}
    .hint{margin-top:12px;font-size:12px;color:var(--muted);line-height:1.35}
  </style>
</head>
<body>
  <div class="wrap">
    <h1>Govee Web Controller</h1>
    <div class="card">
      <div class="row">
        <button class="btn" onclick="refreshDevices()">Refresh devices</button>
        <div class="toast" style="flex:1"><strong>Status:</strong> <span id="status"></span></div>
      </div>

      <div class="row">
        <div class="label">Device</div>
        <select id="device" onchange="selectDevice(this.value)"></select>
      </div>

      <div class="row">
        <div class="label">Color</div>
        <input id="picker" type="color" value="#ffffff">
        <button class="btn primary" onclick="setColor()">Set color</button>
      </div>

      <div class="row">
        <div class="label">Brightness (<span id="brightVal">100</span>%)</div>
        <input id="bright" type="range" min="0" max="100" value="100"
               oninput="document.getElementById('brightVal').textContent = this.value">
        <button class="btn primary" onclick="setBrightness()">Set brightness</button>
      </div>

      <div class="row">
        <div class="label">Power (<span id="power">on</span>)</div>
        <button class="btn on" onclick="setPower(true)">Turn ON</button>
        <button class="btn off" onclick="setPower(false)">Turn OFF</button>
      </div>

      <div class="hint">
        The Govee API key stays on this server (<code>GOVEE_API_KEY</code>); the browser only talks to <code>/api/*</code>.
      </div>
    </div>
  </div>

<script>
function render(state){
  document.getElementById("status").textContent = state.status;
  document.getElementById("power").textContent = state.is_on ? "on" : "off";

  const sel = document.getElementById("device");
  sel.innerHTML = "";
  if (state.devices.length === 0) {
    sel.add(new Option("-- no devices --", ""));
  }
  for (const d of state.devices) {
    sel.add(new Option(d.label, d.device_id));
  }
  sel.value = state.selected ? state.selected.device_id : "";
}

async function call(url, body) {
  const opts = body === undefined ? {} : {
    method: "POST", headers: {"Content-Type": "application/json"}, body: JSON.stringify(body)
  };
  const res = await fetch(url, opts);
  const data = await res.json().catch(() => ({}));
  if (!res.ok) {
    document.getElementById("status").textContent = `Error: ${JSON.stringify(data.detail || res.statusText)}`;
    return;
  }
  render(data);
}

function refreshDevices(){
  document.getElementById("status").textContent = "Fetching devices...";
  return call("/api/devices/refresh", {});
}
function selectDevice(id){ return call("/api/select", {device_id: id}); }

function setColor(){
  document.getElementById("status").textContent = "Sending command...";
  return call("/api/color", {hex: document.getElementById("picker").value});
}
function setBrightness(){
  document.getElementById("status").textContent = "Sending command...";
  return call("/api/brightness", {value: document.getElementById("bright").value});
}
function setPower(on){
  document.getElementById("power").textContent = on ? "on" : "off";
  document.getElementById("status").textContent = "Sending command...";
  return call("/api/power", {on});
}

fetch("/api/state").then(r => r.json()).then(s => {
  document.getElementById("picker").value = s.color;
  document.getElementById("bright").value = s.brightness;
  document.getElementById("brightVal").textContent = s.brightness;
  render(s);
});
</script>
</body>
</html>
"""

@app.get("/", response_class=HTMLResponse)
def index():
    return HTML_PAGE

@app.get("/api/state")
def state_api(ctl: Controller = Depends(get_controller)):
    return state_response(ctl)

@app.post("/api/devices/refresh")
async def refresh_api(ctl: Controller = Depends(get_controller)):
    await ctl.refresh()
    return state_response(ctl)

@app.post("/api/select")
def select_api(req: SelectRequest, ctl: Controller = Depends(get_controller)):
    try:
        ctl.select(req.device_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown device {req.device_id!r}")
    return state_response(ctl)

@app.post("/api/color")
async def color_api(req: ColorRequest, ctl: Controller = Depends(get_controller)):
    await ctl.set_color(req.hex)
    return state_response(ctl)

@app.post("/api/brightness")
async def brightness_api(req: BrightnessRequest, ctl: Controller = Depends(get_controller)):
    await ctl.set_brightness(req.value)
    return state_response(ctl)

@app.post("/api/power")
async def power_api(req: PowerRequest, ctl: Controller = Depends(get_controller)):
    await ctl.set_power(req.on)
    return state_response(ctl)
