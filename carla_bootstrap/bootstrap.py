from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

import numpy as np

from . import opendrive
from .actors import SensorHandle, VehicleHandle
from .errors import BootstrapError, PreconditionError, SpawnError, TeardownError
from .guard import ResourceGuard
from .model import LocationSpec, RotationSpec, SensorSettings, TransformSpec, VehicleControlSpec
from .selection import make_rng, random_choice
from .sensors import FrameChannel, SemanticSegmentationSink, stream_frames
from .session import Blueprint, SessionClient, World
from .settings import BootstrapSettings, settings_summary

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_TIMEOUT = 1
EXIT_ERROR = 2

FrameSink = Callable[[Any], Any]


class BootstrapState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    WORLD_LOADED = "world_loaded"
    BLUEPRINT_CHOSEN = "blueprint_chosen"
    SPAWN_POINT_CHOSEN = "spawn_point_chosen"
    ACTOR_SPAWNED = "actor_spawned"
    CONTROLLED = "controlled"
    OBSERVED = "observed"
    SENSOR_ATTACHED = "sensor_attached"
    STREAMING = "streaming"
    TORN_DOWN = "torn_down"


def exit_code_for(error: BaseException | None) -> int:
    if error is None:
        return EXIT_OK
    if isinstance(error, TimeoutError):
        return EXIT_TIMEOUT
    if isinstance(error, TeardownError) and any(isinstance(f, TimeoutError) for _, f in error.failures):
        return EXIT_TIMEOUT
    return EXIT_ERROR


@dataclass(slots=True)
class BootstrapReport:
    """Outcome of one bootstrap run."""

    final_state: BootstrapState = BootstrapState.DISCONNECTED
    reached_states: List[BootstrapState] = field(default_factory=list)
    map_name: str | None = None
    blueprint_id: str | None = None
    vehicle_id: int | None = None
    sensor_id: int | None = None
    frames_saved: int = 0
    destroyed_count: int = 0
    teardown_failures: List[Tuple[str, BaseException]] = field(default_factory=list)
    error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return exit_code_for(self.error)


class ScenarioBootstrap:
    """Connect, spawn one randomized vehicle, observe it and tear it down again.

    Every step runs inside a :class:`ResourceGuard`; a failure skips the
    remaining steps and goes straight to teardown. :meth:`run` reports the
    outcome as a :class:`BootstrapReport` instead of raising.
    """

    def __init__(
            self,
            settings: BootstrapSettings | None = None,
            *,
            api: Any = None,
            rng: np.random.Generator | None = None,
            sink_factory: Callable[[str, Any], FrameSink] | None = None,
    ) -> None:
        self.settings = settings or BootstrapSettings()
        self._api = api
        self._rng = rng if rng is not None else make_rng(self.settings.seed)
        self._sink_factory = sink_factory or SemanticSegmentationSink

        self.state = BootstrapState.DISCONNECTED
        self._reached: List[BootstrapState] = [self.state]
        self._session: Optional[SessionClient] = None
        self._world: Optional[World] = None
        self._blueprint: Optional[Blueprint] = None
        self._spawn_point: Optional[TransformSpec] = None
        self._vehicle: Optional[VehicleHandle] = None

    # ------------------------------------------------------------------
    # Lifecycle management
    # ------------------------------------------------------------------
    def run(self) -> BootstrapReport:
        if self.state is not BootstrapState.DISCONNECTED:
            raise PreconditionError("A ScenarioBootstrap instance can only run once")

        LOGGER.debug("Bootstrap settings: %s", settings_summary(self.settings))
        report = BootstrapReport()
        guard = ResourceGuard()
        try:
            with guard:
                self._execute(guard, report)
        except Exception as exc:
            report.error = exc
            LOGGER.error("Scenario aborted after state '%s': %s", self.state.value, exc)
        finally:
            report.destroyed_count = guard.destroyed_count
            report.teardown_failures = list(guard.failures)
            self._advance(BootstrapState.TORN_DOWN)
            report.final_state = self.state
            report.reached_states = list(self._reached)

        if report.succeeded:
            LOGGER.info("Actors destroyed.")
        return report

    def _advance(self, state: BootstrapState) -> None:
        LOGGER.debug("Bootstrap state %s -> %s", self.state.value, state.value)
        self.state = state
        self._reached.append(state)

    def _execute(self, guard: ResourceGuard, report: BootstrapReport) -> None:
        self._session = SessionClient.connect(self.settings.endpoint, api=self._api)
        self._advance(BootstrapState.CONNECTED)

        self._world, report.map_name = self._prepare_world(self._session)
        self._advance(BootstrapState.WORLD_LOADED)

        self._blueprint = self._choose_blueprint(self._world)
        report.blueprint_id = self._blueprint.id
        self._advance(BootstrapState.BLUEPRINT_CHOSEN)

        self._spawn_point = random_choice(
            self._world.recommended_spawn_points(), self._rng, label="spawn point list"
        )
        self._advance(BootstrapState.SPAWN_POINT_CHOSEN)

        actor = guard.register(self._world.spawn_actor(self._blueprint, self._spawn_point))
        report.vehicle_id = actor.id
        if not isinstance(actor, VehicleHandle):
            raise SpawnError(f"Blueprint '{self._blueprint.id}' spawned a non-vehicle actor ({actor.type_id})")
        self._vehicle = actor
        self._advance(BootstrapState.ACTOR_SPAWNED)

        self._vehicle.apply_control(VehicleControlSpec(throttle=self.settings.throttle))
        self._advance(BootstrapState.CONTROLLED)

        self._position_spectator(self._world, self._spawn_point)
        self._advance(BootstrapState.OBSERVED)

        sensor_settings = self.settings.sensor
        if sensor_settings is not None:
            report.frames_saved = self._stream_sensor(
                guard, report, self._session, self._world, actor, sensor_settings
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------
    def _prepare_world(self, session: SessionClient) -> Tuple[World, str]:
        if self.settings.opendrive:
            map_name, content = self._resolve_opendrive(self.settings.opendrive)
            return session.generate_opendrive_world(content), map_name

        map_name = random_choice(session.list_available_maps(), self._rng, label="map catalog")
        return session.load_world(map_name), map_name

    def _resolve_opendrive(self, name: str) -> Tuple[str, str]:
        path = Path(name)
        if path.suffix == opendrive.XODR_EXTENSION:
            map_name = path.stem
            content = opendrive.load_description_by_path(path, map_name)
        elif self.settings.content_root is not None:
            map_name = name
            content = opendrive.load_description(name, self.settings.content_root)
        else:
            raise PreconditionError(f"OpenDRIVE map '{name}' needs a content root to search in")
        if not content:
            raise PreconditionError(f"No OpenDRIVE description found for map '{map_name}'")
        return map_name, content

    def _choose_blueprint(self, world: World) -> Blueprint:
        vehicles = world.blueprint_library(self.settings.vehicle_filter)
        blueprint = random_choice(vehicles, self._rng, label="vehicle blueprint list")
        for name in self.settings.randomized_attributes:
            if not blueprint.has_attribute(name):
                LOGGER.debug("Blueprint '%s' has no '%s' attribute; skipping", blueprint.id, name)
                continue
            attribute = blueprint.attribute(name)
            if not attribute.is_modifiable or not attribute.recommended_values:
                LOGGER.debug("Attribute '%s' of '%s' cannot be randomized; skipping", name, blueprint.id)
                continue
            blueprint.set_attribute(name, random_choice(attribute.recommended_values, self._rng))
        LOGGER.info("Selected blueprint '%s'", blueprint.id)
        return blueprint

    def _spectator_transform(self, spawn_point: TransformSpec) -> TransformSpec:
        offset = spawn_point.forward_vector().scaled(self.settings.spectator_distance)
        location = spawn_point.location + offset + LocationSpec(z=self.settings.spectator_height)
        rotation = RotationSpec(
            pitch=self.settings.spectator_pitch,
            yaw=spawn_point.rotation.yaw + self.settings.spectator_yaw_offset,
            roll=spawn_point.rotation.roll,
        )
        return TransformSpec(location, rotation)

    def _position_spectator(self, world: World, spawn_point: TransformSpec) -> None:
        try:
            world.spectator().set_transform(self._spectator_transform(spawn_point))
        except BootstrapError as exc:
            LOGGER.warning("Failed to position spectator: %s", exc)

    def _stream_sensor(
            self,
            guard: ResourceGuard,
            report: BootstrapReport,
            session: SessionClient,
            world: World,
            vehicle: VehicleHandle,
            sensor_settings: SensorSettings,
    ) -> int:
        blueprint = world.find_blueprint(sensor_settings.blueprint)
        actor = guard.register(
            world.spawn_actor(blueprint, sensor_settings.transform, parent=vehicle)
        )
        report.sensor_id = actor.id
        if not isinstance(actor, SensorHandle):
            raise SpawnError(f"Blueprint '{blueprint.id}' spawned a non-sensor actor ({actor.type_id})")
        self._advance(BootstrapState.SENSOR_ATTACHED)

        channel = FrameChannel(sensor_settings.queue_size)
        sink = self._sink_factory(sensor_settings.output_dir, session.api)
        actor.listen(channel)
        self._advance(BootstrapState.STREAMING)

        handled = stream_frames(channel, sink, sensor_settings.duration_s)
        guard.release(actor)
        for frame in channel.drain():
            sink(frame)
            handled += 1
        LOGGER.info(
            "Streamed %d frame(s) from sensor %d (%d discarded)", handled, actor.id, channel.discarded
        )
        return handled
