from typing import Optional

from fastapi import APIRouter, Request

from ..core.runtime import BatteryRuntime
from ..simulator import UnknownPreset
from ..store import StoreUnavailable

router = APIRouter()


def _runtime(request: Request) -> BatteryRuntime:
    return request.app.state.runtime


@router.get("/health")
def health():
    return {"ok": True}


@router.get("/state")
async def get_state(request: Request):
    rt = _runtime(request)
    try:
        vehicle = await rt.store.find_current()
    except StoreUnavailable as e:
        return {"ok": False, "error": f"store unavailable: {e}"}
    return {
        "ok": True,
        "vehicle": vehicle,
        "simulation": rt.simulator.snapshot(),
        "subscribers": len(rt.registry),
    }


@router.get("/start-simulation")
async def start_simulation(request: Request, preset: Optional[str] = None):
    rt = _runtime(request)
    try:
        name, _ = rt.simulator.resolve_preset(preset)
        started = await rt.simulator.trigger(name)
    except UnknownPreset as e:
        return {"ok": False, "error": str(e)}
    if not started:
        return {"ok": False, "error": "simulation not started (superseded or no vehicle record)"}
    return {"ok": True, "message": "Simulation started!", "preset": name}


@router.post("/stop-simulation")
async def stop_simulation(request: Request):
    rt = _runtime(request)
    stopped = await rt.simulator.stop()
    return {"ok": True, "stopped": stopped, "simulation": rt.simulator.snapshot()}
