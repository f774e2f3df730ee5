import json
import math
from typing import Any, Dict, Union


class MalformedMessage(ValueError):
    pass


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def _ensure(cond: bool, msg: str) -> None:
    if not cond:
        raise MalformedMessage(msg)


def parse_message(raw: Union[str, bytes]) -> Dict[str, Any]:
    """Decode one inbound frame into a ``{type, ...}`` object."""
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"frame is not utf-8: {e}") from e
    try:
        obj = json.loads(raw)
    except ValueError as e:
        raise MalformedMessage(f"frame is not json: {e}") from e
    _validate_inbound(obj)
    return obj


def _validate_inbound(obj: Any) -> None:
    _ensure(isinstance(obj, dict), "message must be an object")
    if "type" in obj:
        _ensure(obj["type"] is None or isinstance(obj["type"], str), "invalid type")


def _validate_charging_update(obj: Dict[str, Any]) -> None:
    _ensure(isinstance(obj, dict), "charging_update must be object")
    has_soc = obj.get("batteryPercentage") is not None
    has_temp = obj.get("batteryTemperature") is not None
    _ensure(has_soc or has_temp, "charging_update requires batteryPercentage or batteryTemperature")
    if has_soc:
        soc = obj["batteryPercentage"]
        _ensure(_is_number(soc) and 0 <= float(soc) <= 100, "invalid batteryPercentage")
    if has_temp:
        _ensure(_is_number(obj["batteryTemperature"]), "invalid batteryTemperature")


def _validate_vehicle_record(obj: Dict[str, Any]) -> None:
    _ensure(isinstance(obj, dict), "vehicle record must be object")
    for k in ("stateOfCharge", "batteryTemperature"):
        _ensure(_is_number(obj.get(k)), f"vehicle.{k} must be a number")
    _ensure(0 <= float(obj["stateOfCharge"]) <= 100, "vehicle.stateOfCharge out of range")


def validate_or_raise(schema_path: str, obj: Dict[str, Any]) -> None:
    if schema_path == "schemas/battery/inbound_message.schema.json":
        _validate_inbound(obj)
    elif schema_path == "schemas/battery/charging_update.schema.json":
        _validate_charging_update(obj)
    elif schema_path == "schemas/battery/vehicle_record.schema.json":
        _validate_vehicle_record(obj)
    else:
        raise MalformedMessage(f"unsupported schema validator: {schema_path}")
