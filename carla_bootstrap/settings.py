from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import PreconditionError
from .model import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_SENSOR_BLUEPRINT,
    DEFAULT_SENSOR_TRANSFORM,
    DEFAULT_TIMEOUT_S,
    ConnectionEndpoint,
    LocationSpec,
    RotationSpec,
    SensorSettings,
    TransformSpec,
)

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class BootstrapSettings:
    """Everything the bootstrap needs besides the simulator itself."""

    endpoint: ConnectionEndpoint = field(default_factory=ConnectionEndpoint)
    seed: int | None = None
    vehicle_filter: str = "vehicle"
    randomized_attributes: Tuple[str, ...] = ("color",)
    throttle: float = 1.0
    spectator_distance: float = 32.0
    spectator_height: float = 2.0
    spectator_pitch: float = -15.0
    spectator_yaw_offset: float = 180.0
    sensor: SensorSettings | None = None
    opendrive: str | None = None
    content_root: Path | None = None


_TOP_LEVEL_KEYS = {
    "host",
    "port",
    "timeout",
    "seed",
    "vehicle_filter",
    "randomized_attributes",
    "throttle",
    "spectator",
    "sensor",
    "opendrive",
    "content_root",
}


def load_settings(source: str | Path | Mapping[str, Any]) -> BootstrapSettings:
    """Load :class:`BootstrapSettings` from a JSON document or path."""

    if isinstance(source, Mapping):
        data = dict(source)
        base_path = Path(".")
    else:
        path = Path(source)
        base_path = path.parent
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise PreconditionError(f"Cannot read settings file '{path}': {exc}") from exc
        if not isinstance(data, Mapping):
            raise PreconditionError(f"Settings file '{path}' must contain a JSON object")

    for key in data:
        if key not in _TOP_LEVEL_KEYS:
            LOGGER.debug("Ignoring unknown settings key '%s'", key)

    endpoint = ConnectionEndpoint(
        host=str(data.get("host") or DEFAULT_HOST),
        port=_parse_int(data.get("port"), DEFAULT_PORT, "port"),
        timeout=_parse_float(data.get("timeout"), DEFAULT_TIMEOUT_S, "timeout"),
    )
    spectator = data.get("spectator") or {}
    if not isinstance(spectator, Mapping):
        raise PreconditionError("'spectator' settings must be a mapping")

    content_root = data.get("content_root")
    return BootstrapSettings(
        endpoint=endpoint,
        seed=_parse_optional_int(data.get("seed"), "seed"),
        vehicle_filter=str(data.get("vehicle_filter") or "vehicle"),
        randomized_attributes=_parse_names(data.get("randomized_attributes", ("color",))),
        throttle=_parse_float(data.get("throttle"), 1.0, "throttle"),
        spectator_distance=_parse_float(spectator.get("distance"), 32.0, "spectator.distance"),
        spectator_height=_parse_float(spectator.get("height"), 2.0, "spectator.height"),
        spectator_pitch=_parse_float(spectator.get("pitch"), -15.0, "spectator.pitch"),
        spectator_yaw_offset=_parse_float(spectator.get("yaw_offset"), 180.0, "spectator.yaw_offset"),
        sensor=_parse_sensor(data.get("sensor"), base_path),
        opendrive=str(data["opendrive"]) if data.get("opendrive") else None,
        content_root=_resolve_path(content_root, base_path) if content_root else None,
    )


def _parse_sensor(raw: Any, base_path: Path) -> Optional[SensorSettings]:
    if raw is None or raw is False:
        return None
    if raw is True:
        return SensorSettings()
    if not isinstance(raw, Mapping):
        raise PreconditionError("'sensor' settings must be a mapping or a boolean")

    transform = DEFAULT_SENSOR_TRANSFORM
    if "location" in raw or "rotation" in raw:
        transform = TransformSpec(
            _parse_location(raw.get("location"), transform.location),
            _parse_rotation(raw.get("rotation"), transform.rotation),
        )
    output_dir = raw.get("output_dir") or "_images"
    return SensorSettings(
        blueprint=str(raw.get("blueprint") or DEFAULT_SENSOR_BLUEPRINT),
        transform=transform,
        duration_s=_parse_float(raw.get("duration"), 10.0, "sensor.duration"),
        output_dir=str(_resolve_path(output_dir, base_path)),
        queue_size=_parse_int(raw.get("queue_size"), 64, "sensor.queue_size"),
    )


def _parse_location(raw: Any, default: LocationSpec) -> LocationSpec:
    if raw is None:
        return default
    if not isinstance(raw, Mapping):
        raise PreconditionError(f"Location payload is not a mapping: {raw!r}")
    return LocationSpec(
        _parse_float(raw.get("x"), default.x, "location.x"),
        _parse_float(raw.get("y"), default.y, "location.y"),
        _parse_float(raw.get("z"), default.z, "location.z"),
    )


def _parse_rotation(raw: Any, default: RotationSpec) -> RotationSpec:
    if raw is None:
        return default
    if not isinstance(raw, Mapping):
        raise PreconditionError(f"Rotation payload is not a mapping: {raw!r}")
    return RotationSpec(
        _parse_float(raw.get("pitch"), default.pitch, "rotation.pitch"),
        _parse_float(raw.get("yaw"), default.yaw, "rotation.yaw"),
        _parse_float(raw.get("roll"), default.roll, "rotation.roll"),
    )


def _parse_names(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    try:
        return tuple(str(item) for item in raw)
    except TypeError as exc:
        raise PreconditionError(f"Expected a list of attribute names, got {raw!r}") from exc


def _resolve_path(raw: Any, base_path: Path) -> Path:
    path = Path(str(raw)).expanduser()
    if not path.is_absolute():
        path = base_path / path
    return path


def _parse_int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise PreconditionError(f"Setting '{name}' must be an integer, got {value!r}") from exc


def _parse_optional_int(value: Any, name: str) -> Optional[int]:
    if value is None:
        return None
    return _parse_int(value, 0, name)


def _parse_float(value: Any, default: float, name: str) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise PreconditionError(f"Setting '{name}' must be a number, got {value!r}") from exc


def settings_summary(settings: BootstrapSettings) -> Dict[str, Any]:
    return {
        "endpoint": str(settings.endpoint),
        "timeout": settings.endpoint.timeout,
        "seed": settings.seed,
        "vehicle_filter": settings.vehicle_filter,
        "sensor": settings.sensor.blueprint if settings.sensor else None,
        "opendrive": settings.opendrive,
    }
