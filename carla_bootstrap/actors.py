"""Client-side handles for server-owned actors.

A handle is a borrowed reference: the simulator owns the actor, the client can
only ask for it to be removed. Once :meth:`ActorHandle.destroy` has been called
the handle is invalid and every further operation on it fails.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from .errors import (
    ControlError,
    DestroyError,
    InvalidHandleError,
    PreconditionError,
    translate_native_error,
)
from .model import ActorKind, TransformSpec, VehicleControlSpec

LOGGER = logging.getLogger(__name__)

FrameCallback = Callable[[Any], None]


class ActorHandle:
    """Reference to an actor living in the simulator."""

    def __init__(self, native: Any, api: Any, parent: Optional["ActorHandle"] = None) -> None:
        self._native = native
        self._api = api
        self._parent = parent
        self._lock = threading.RLock()
        self._alive = True
        self.id = int(native.id)
        self.type_id = str(getattr(native, "type_id", ""))
        self.kind = ActorKind.from_type_id(self.type_id)

    def __repr__(self) -> str:
        state = "alive" if self._alive else "destroyed"
        return f"<{type(self).__name__} {self.type_id} id={self.id} {state}>"

    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def parent(self) -> Optional["ActorHandle"]:
        return self._parent

    @property
    def native(self) -> Any:
        self._require_alive("access")
        return self._native

    def _require_alive(self, operation: str) -> None:
        if not self._alive:
            raise InvalidHandleError(f"Cannot {operation} {self!r}: handle was destroyed")

    def transform(self) -> TransformSpec:
        self._require_alive("query transform of")
        try:
            return TransformSpec.from_native(self._native.get_transform())
        except Exception as exc:
            raise translate_native_error(exc, ControlError, f"Failed to query transform of {self!r}") from exc

    def _detach_listener(self) -> bool:
        """Drop any registered callback; called with the handle lock held."""

        return False

    def _stop_native_listener(self) -> None:
        pass

    def destroy(self) -> None:
        """Ask the server to remove the actor.

        At most one request is ever issued per handle; a second call fails with
        :class:`DestroyError` without touching the network.
        """

        with self._lock:
            if not self._alive:
                raise DestroyError(f"{self!r} has already been destroyed")
            detached = self._detach_listener()
            self._alive = False

        if detached:
            try:
                self._stop_native_listener()
            except Exception:  # pragma: no cover - depends on CARLA API
                LOGGER.exception("Failed to stop listener of actor %d before destroying it", self.id)

        try:
            result = self._native.destroy()
        except Exception as exc:
            raise translate_native_error(exc, DestroyError, f"Failed to destroy actor {self.id}") from exc
        if result is False:
            raise DestroyError(f"Server refused to destroy actor {self.id} ({self.type_id})")
        LOGGER.debug("Destroyed actor %d (%s)", self.id, self.type_id)


class VehicleHandle(ActorHandle):
    """Handle for a vehicle actor."""

    def apply_control(self, control: VehicleControlSpec) -> None:
        self._require_alive("apply control to")
        try:
            self._native.apply_control(control.to_native(self._api))
        except Exception as exc:
            raise translate_native_error(exc, ControlError, f"Failed to apply control to vehicle {self.id}") from exc
        LOGGER.debug("Applied %s to vehicle %d", control, self.id)


class SensorHandle(ActorHandle):
    """Handle for a sensor whose frames arrive on the transport thread.

    Every callback invocation runs while holding the handle lock, so taking the
    lock in :meth:`stop_listening` waits for any frame still being processed.
    """

    def __init__(self, native: Any, api: Any, parent: Optional[ActorHandle] = None) -> None:
        super().__init__(native, api, parent)
        self._callback: Optional[FrameCallback] = None
        self._last_timestamp: Optional[float] = None
        self.frames_delivered = 0
        self.frames_dropped = 0

    @property
    def is_listening(self) -> bool:
        return self._callback is not None

    def listen(self, callback: FrameCallback) -> None:
        with self._lock:
            self._require_alive("listen on")
            if self._callback is not None:
                raise PreconditionError(f"{self!r} already has a listener")
            self._callback = callback
            self._last_timestamp = None
        try:
            self._native.listen(self._deliver)
        except Exception as exc:
            with self._lock:
                self._callback = None
            raise translate_native_error(exc, ControlError, f"Failed to listen on sensor {self.id}") from exc
        LOGGER.debug("Listening on sensor %d", self.id)

    def _deliver(self, data: Any) -> None:
        with self._lock:
            callback = self._callback
            if callback is None:
                return
            timestamp = getattr(data, "timestamp", None)
            if timestamp is not None and self._last_timestamp is not None and timestamp < self._last_timestamp:
                self.frames_dropped += 1
                LOGGER.debug("Dropping out-of-order frame at %s on sensor %d", timestamp, self.id)
                return
            if timestamp is not None:
                self._last_timestamp = timestamp
            self.frames_delivered += 1
            try:
                callback(data)
            except Exception:
                LOGGER.exception("Frame callback for sensor %d failed", self.id)

    def stop_listening(self) -> None:
        """Unregister the callback; returns once no invocation is in flight."""

        with self._lock:
            if not self._detach_listener():
                return
        try:
            self._stop_native_listener()
        except Exception as exc:
            raise translate_native_error(exc, ControlError, f"Failed to stop sensor {self.id}") from exc
        LOGGER.debug("Stopped listening on sensor %d", self.id)

    def _detach_listener(self) -> bool:
        if self._callback is None:
            return False
        self._callback = None
        return True

    def _stop_native_listener(self) -> None:
        # Runs outside the lock: the native stop may wait on the transport thread.
        stop = getattr(self._native, "stop", None)
        if callable(stop):
            stop()


class SpectatorHandle(ActorHandle):
    """The viewer's camera; it can be moved but never destroyed."""

    def set_transform(self, transform: TransformSpec) -> None:
        self._require_alive("move")
        try:
            self._native.set_transform(transform.to_native(self._api))
        except Exception as exc:
            raise translate_native_error(exc, ControlError, "Failed to move spectator") from exc

    def destroy(self) -> None:
        raise DestroyError("The spectator is owned by the server and cannot be destroyed")


def wrap_actor(native: Any, api: Any, parent: Optional[ActorHandle] = None) -> ActorHandle:
    kind = ActorKind.from_type_id(str(getattr(native, "type_id", "")))
    if kind is ActorKind.VEHICLE:
        return VehicleHandle(native, api, parent)
    if kind is ActorKind.SENSOR:
        return SensorHandle(native, api, parent)
    if kind is ActorKind.SPECTATOR:
        return SpectatorHandle(native, api, parent)
    return ActorHandle(native, api, parent)
