from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field, replace
from typing import Any, Tuple

from .errors import PreconditionError

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 2000
DEFAULT_TIMEOUT_S = 40.0


@dataclass(frozen=True, slots=True)
class ConnectionEndpoint:
    """Address of the simulation server and the RPC timeout applied to it."""

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        if not self.host:
            raise PreconditionError("Endpoint host must not be empty")
        if not 0 < int(self.port) < 65536:
            raise PreconditionError(f"Endpoint port {self.port} is outside 1..65535")
        if not self.timeout > 0:
            raise PreconditionError(f"Endpoint timeout must be positive, got {self.timeout}")

    def __str__(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True, slots=True)
class LocationSpec:
    """Simple representation of a CARLA location."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: "LocationSpec") -> "LocationSpec":
        return LocationSpec(self.x + other.x, self.y + other.y, self.z + other.z)

    def scaled(self, factor: float) -> "LocationSpec":
        return LocationSpec(self.x * factor, self.y * factor, self.z * factor)


@dataclass(frozen=True, slots=True)
class RotationSpec:
    """Simple representation of a CARLA rotation, in degrees."""

    pitch: float = 0.0
    yaw: float = 0.0
    roll: float = 0.0


@dataclass(frozen=True, slots=True)
class TransformSpec:
    """Rigid transform copied out of (or into) a native ``carla.Transform``."""

    location: LocationSpec = field(default_factory=LocationSpec)
    rotation: RotationSpec = field(default_factory=RotationSpec)

    @classmethod
    def from_native(cls, transform: Any) -> "TransformSpec":
        location = transform.location
        rotation = transform.rotation
        return cls(
            LocationSpec(float(location.x), float(location.y), float(location.z)),
            RotationSpec(float(rotation.pitch), float(rotation.yaw), float(rotation.roll)),
        )

    def to_native(self, api: Any) -> Any:
        location = api.Location(x=self.location.x, y=self.location.y, z=self.location.z)
        rotation = api.Rotation(pitch=self.rotation.pitch, yaw=self.rotation.yaw, roll=self.rotation.roll)
        return api.Transform(location, rotation)

    def forward_vector(self) -> LocationSpec:
        """Unit vector pointing along the transform's X axis."""

        pitch = math.radians(self.rotation.pitch)
        yaw = math.radians(self.rotation.yaw)
        return LocationSpec(
            math.cos(pitch) * math.cos(yaw),
            math.cos(pitch) * math.sin(yaw),
            math.sin(pitch),
        )

    def with_location(self, location: LocationSpec) -> "TransformSpec":
        return replace(self, location=location)

    def with_rotation(self, rotation: RotationSpec) -> "TransformSpec":
        return replace(self, rotation=rotation)


class ActorKind(enum.Enum):
    VEHICLE = "vehicle"
    SENSOR = "sensor"
    SPECTATOR = "spectator"
    OTHER = "other"

    @classmethod
    def from_type_id(cls, type_id: str) -> "ActorKind":
        prefix = (type_id or "").split(".", 1)[0]
        for kind in cls:
            if kind.value == prefix:
                return kind
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class VehicleControlSpec:
    """Control inputs applied atomically to a vehicle."""

    throttle: float = 0.0
    steer: float = 0.0
    brake: float = 0.0
    hand_brake: bool = False
    reverse: bool = False
    manual_gear_shift: bool = False
    gear: int = 0

    def __post_init__(self) -> None:
        for name in ("throttle", "brake"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise PreconditionError(f"Control {name} must be within [0, 1], got {value}")
        if not -1.0 <= self.steer <= 1.0:
            raise PreconditionError(f"Control steer must be within [-1, 1], got {self.steer}")

    def to_native(self, api: Any) -> Any:
        return api.VehicleControl(
            throttle=self.throttle,
            steer=self.steer,
            brake=self.brake,
            hand_brake=self.hand_brake,
            reverse=self.reverse,
            manual_gear_shift=self.manual_gear_shift,
            gear=self.gear,
        )


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    """Snapshot of a blueprint attribute."""

    name: str
    value: str
    recommended_values: Tuple[str, ...] = ()
    is_modifiable: bool = False

    @classmethod
    def from_native(cls, attribute: Any) -> "AttributeSpec":
        as_str = getattr(attribute, "as_str", None)
        value = as_str() if callable(as_str) else str(attribute)
        return cls(
            name=str(attribute.id),
            value=value,
            recommended_values=tuple(str(v) for v in (attribute.recommended_values or ())),
            is_modifiable=bool(attribute.is_modifiable),
        )


DEFAULT_SENSOR_BLUEPRINT = "sensor.camera.semantic_segmentation"
DEFAULT_SENSOR_TRANSFORM = TransformSpec(LocationSpec(-5.5, 0.0, 2.8), RotationSpec(pitch=-15.0))


@dataclass(slots=True)
class SensorSettings:
    """Camera attached to the spawned vehicle while streaming."""

    blueprint: str = DEFAULT_SENSOR_BLUEPRINT
    transform: TransformSpec = DEFAULT_SENSOR_TRANSFORM
    duration_s: float = 10.0
    output_dir: str = "_images"
    queue_size: int = 64
