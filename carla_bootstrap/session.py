from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .actors import ActorHandle, SpectatorHandle, wrap_actor
from .errors import (
    PreconditionError,
    SessionConnectionError,
    SpawnError,
    WorldLoadError,
    translate_native_error,
)
from .model import AttributeSpec, ConnectionEndpoint, TransformSpec

LOGGER = logging.getLogger(__name__)


def import_carla() -> Any:
    """Import the CARLA Python API on first use."""

    import carla  # type: ignore

    return carla


class Blueprint:
    """Server-side actor template whose attributes may be changed before spawning."""

    def __init__(self, native: Any) -> None:
        self._native = native

    def __repr__(self) -> str:
        return f"<Blueprint {self.id}>"

    @property
    def id(self) -> str:
        return str(self._native.id)

    @property
    def tags(self) -> Tuple[str, ...]:
        return tuple(getattr(self._native, "tags", ()) or ())

    @property
    def native(self) -> Any:
        return self._native

    def has_attribute(self, name: str) -> bool:
        return bool(self._native.has_attribute(name))

    def attribute(self, name: str) -> AttributeSpec:
        if not self.has_attribute(name):
            raise PreconditionError(f"Blueprint '{self.id}' has no attribute '{name}'")
        return AttributeSpec.from_native(self._native.get_attribute(name))

    def attributes(self) -> Dict[str, AttributeSpec]:
        specs = (AttributeSpec.from_native(attribute) for attribute in self._native)
        return {spec.name: spec for spec in specs}

    def set_attribute(self, name: str, value: str) -> None:
        spec = self.attribute(name)
        if not spec.is_modifiable:
            raise PreconditionError(f"Attribute '{name}' of blueprint '{self.id}' is read-only")
        self._native.set_attribute(name, str(value))
        LOGGER.debug("Set attribute '%s' of blueprint '%s' to '%s'", name, self.id, value)


class World:
    """A loaded simulation world."""

    def __init__(self, native: Any, api: Any) -> None:
        self._native = native
        self._api = api

    @property
    def native(self) -> Any:
        return self._native

    @property
    def map_name(self) -> str:
        return str(self._map().name)

    def _map(self) -> Any:
        try:
            return self._native.get_map()
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, "Failed to query the world map") from exc

    def blueprint_library(self, wildcard: str = "*") -> List[Blueprint]:
        try:
            library = self._native.get_blueprint_library()
            natives: Iterable[Any] = library.filter(wildcard)
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, "Failed to query the blueprint library") from exc
        return [Blueprint(native) for native in natives]

    def find_blueprint(self, blueprint_id: str) -> Blueprint:
        try:
            native = self._native.get_blueprint_library().find(blueprint_id)
        except IndexError as exc:
            raise SpawnError(f"Unknown blueprint '{blueprint_id}'") from exc
        except Exception as exc:
            raise translate_native_error(exc, SpawnError, f"Failed to look up blueprint '{blueprint_id}'") from exc
        if native is None:
            raise SpawnError(f"Unknown blueprint '{blueprint_id}'")
        return Blueprint(native)

    def recommended_spawn_points(self) -> List[TransformSpec]:
        carla_map = self._map()
        try:
            points = carla_map.get_spawn_points()
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, "Failed to query spawn points") from exc
        return [TransformSpec.from_native(point) for point in points]

    def spawn_actor(
        self,
        blueprint: Blueprint,
        transform: TransformSpec,
        parent: Optional[ActorHandle] = None,
    ) -> ActorHandle:
        attach_to = parent.native if parent is not None else None
        native_transform = transform.to_native(self._api)
        try:
            if attach_to is None:
                native = self._native.spawn_actor(blueprint.native, native_transform)
            else:
                native = self._native.spawn_actor(blueprint.native, native_transform, attach_to=attach_to)
        except Exception as exc:
            raise translate_native_error(exc, SpawnError, f"Failed to spawn '{blueprint.id}'") from exc
        if native is None:
            raise SpawnError(f"Server returned no actor for '{blueprint.id}'")

        handle = wrap_actor(native, self._api, parent)
        if parent is None:
            LOGGER.info("Spawned %s (id %d)", handle.type_id, handle.id)
        else:
            LOGGER.info("Spawned %s (id %d) attached to actor %d", handle.type_id, handle.id, parent.id)
        return handle

    def spectator(self) -> SpectatorHandle:
        try:
            native = self._native.get_spectator()
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, "Failed to obtain the spectator") from exc
        return SpectatorHandle(native, self._api)


class SessionClient:
    """One connection to a CARLA server."""

    def __init__(self, endpoint: ConnectionEndpoint, native: Any, api: Any) -> None:
        self.endpoint = endpoint
        self._native = native
        self._api = api
        self.client_version: str | None = None
        self.server_version: str | None = None

    @classmethod
    def connect(cls, endpoint: ConnectionEndpoint, api: Any = None) -> "SessionClient":
        """Open a session and confirm the server answers within the timeout."""

        api = api if api is not None else import_carla()
        try:
            native = api.Client(endpoint.host, endpoint.port)
            native.set_timeout(endpoint.timeout)
            session = cls(endpoint, native, api)
            session.client_version = str(native.get_client_version())
            session.server_version = str(native.get_server_version())
        except Exception as exc:
            raise translate_native_error(
                exc, SessionConnectionError, f"Failed to connect to CARLA server {endpoint}"
            ) from exc

        LOGGER.info("Connected to CARLA server %s", endpoint)
        LOGGER.info("Client API version : %s", session.client_version)
        LOGGER.info("Server API version : %s", session.server_version)
        return session

    @property
    def api(self) -> Any:
        return self._api

    def list_available_maps(self) -> List[str]:
        try:
            maps = self._native.get_available_maps()
        except Exception as exc:
            raise translate_native_error(exc, SessionConnectionError, "Failed to list available maps") from exc
        return [str(name) for name in maps]

    def load_world(self, map_name: str) -> World:
        LOGGER.info("Loading world: %s", map_name)
        try:
            native = self._native.load_world(map_name)
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, f"Failed to load world '{map_name}'") from exc
        if native is None:
            raise WorldLoadError(f"Server returned no world for '{map_name}'")
        return World(native, self._api)

    def generate_opendrive_world(self, xodr_content: str) -> World:
        if not xodr_content:
            raise PreconditionError("Cannot generate a world from empty OpenDRIVE content")
        LOGGER.info("Generating world from OpenDRIVE description (%d characters)", len(xodr_content))
        try:
            native = self._native.generate_opendrive_world(xodr_content)
        except Exception as exc:
            raise translate_native_error(exc, WorldLoadError, "Failed to generate OpenDRIVE world") from exc
        if native is None:
            raise WorldLoadError("Server returned no world for the OpenDRIVE description")
        return World(native, self._api)
