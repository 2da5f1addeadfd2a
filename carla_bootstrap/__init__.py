"""CARLA scenario bootstrap.

Connects to a CARLA server, loads a randomly chosen world, spawns a vehicle
with randomized attributes, points the spectator at it, optionally streams a
camera attached to it and always releases every spawned actor again. The
:mod:`carla_bootstrap.opendrive` helpers locate OpenDRIVE road descriptions
for a map.
"""

from .actors import ActorHandle, SensorHandle, SpectatorHandle, VehicleHandle
from .bootstrap import BootstrapReport, BootstrapState, ScenarioBootstrap
from .errors import (
    BootstrapError,
    ControlError,
    DestroyError,
    EmptyRangeError,
    InvalidHandleError,
    PreconditionError,
    SessionConnectionError,
    SessionTimeoutError,
    SpawnError,
    TeardownError,
    WorldLoadError,
)
from .guard import ResourceGuard
from .model import ConnectionEndpoint, SensorSettings, TransformSpec, VehicleControlSpec
from .selection import make_rng, random_choice
from .session import Blueprint, SessionClient, World
from .settings import BootstrapSettings, load_settings

__all__ = [
    "ActorHandle",
    "SensorHandle",
    "SpectatorHandle",
    "VehicleHandle",
    "BootstrapReport",
    "BootstrapState",
    "ScenarioBootstrap",
    "BootstrapError",
    "ControlError",
    "DestroyError",
    "EmptyRangeError",
    "InvalidHandleError",
    "PreconditionError",
    "SessionConnectionError",
    "SessionTimeoutError",
    "SpawnError",
    "TeardownError",
    "WorldLoadError",
    "ResourceGuard",
    "ConnectionEndpoint",
    "SensorSettings",
    "TransformSpec",
    "VehicleControlSpec",
    "make_rng",
    "random_choice",
    "Blueprint",
    "SessionClient",
    "World",
    "BootstrapSettings",
    "load_settings",
]
