import json
import os
from functools import lru_cache
from typing import Any, Callable, Dict, Tuple


def _repo_root() -> str:
    # libs/config/app_config.py -> repo_root
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _read_json(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return data if isinstance(data, dict) else {}


# env var -> (dotted setting path, converter)
_ENV_OVERRIDES: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "PORT": ("service.port", int),
    "HOST": ("service.host", str),
    "STORE_URI": ("store.uri", str),
    "TICK_INTERVAL_S": ("simulator.tick_interval_s", float),
    "HOURLY_DISCHARGE_PCT": ("simulator.hourly_discharge_pct", float),
    "MAX_TEMP_C": ("simulator.max_temp_c", float),
    "PROBE_INTERVAL_S": ("supervisor.probe_interval_s", float),
    "HEARTBEAT_INTERVAL_S": ("supervisor.heartbeat_interval_s", float),
    "LOG_LEVEL": ("log.level", str),
}


def _env_overrides() -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for env_name, (path, conv) in _ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            value = conv(raw.strip())
        except ValueError:
            continue
        cur = out
        parts = path.split(".")
        for p in parts[:-1]:
            cur = cur.setdefault(p, {})
        cur[parts[-1]] = value
    return out


@lru_cache(maxsize=1)
def load_app_config() -> Dict[str, Any]:
    root = _repo_root()
    default_cfg = {
        "service": {
            "host": "0.0.0.0",
            "port": 5000,
            "cors_origins": ["*"],
        },
        "store": {
            "uri": "memory://",
        },
        "simulator": {
            "tick_interval_s": 10.0,
            "hourly_discharge_pct": 10.0,
            "temp_jitter_c": 0.1,
            "min_temp_c": 10.0,
            "max_temp_c": 55.0,
            "soc_floor_pct": 20.0,
            "presets": {
                "full": {"stateOfCharge": 100.0, "batteryTemperature": 15.6},
                "partial": {"stateOfCharge": 70.0, "batteryTemperature": 15.6},
            },
            "default_preset": "full",
        },
        "supervisor": {
            "probe_interval_s": 30.0,
            "heartbeat_interval_s": None,
        },
        "vehicle": {
            "_id": "car-0001",
            "brand": "Tesla",
            "model": "Model 3",
            "vehicleType": "sedan",
            "batterySize": 75,
            "chargingVoltage": 400,
            "energyConsumption": 15.5,
            "dischargeRate": 10,
            "stateOfCharge": 100.0,
            "batteryTemperature": 15.6,
            "acCharger": {"type": "Type 2", "maxPower": 11},
            "dcCharger": {"type": "CCS", "maxPower": 250},
        },
        "log": {
            "level": "INFO",
        },
    }

    cfg_file = os.getenv("APP_CONFIG_FILE", os.path.join(root, "config", "app_config.json"))
    local_file = os.path.join(root, "config", "app_config.local.json")
    skip_local = os.getenv("APP_CONFIG_SKIP_LOCAL", "0") == "1"
    file_cfg = _read_json(cfg_file)
    local_cfg = {} if skip_local else _read_json(local_file)
    merged = _deep_merge(default_cfg, file_cfg)
    merged = _deep_merge(merged, local_cfg)
    merged = _deep_merge(merged, _env_overrides())
    return merged


def reload_app_config() -> Dict[str, Any]:
    load_app_config.cache_clear()
    return load_app_config()


def get_setting(path: str, default: Any = None) -> Any:
    cfg = load_app_config()
    cur: Any = cfg
    for p in path.split("."):
        if not isinstance(cur, dict) or p not in cur:
            return default
        cur = cur[p]
    return cur
