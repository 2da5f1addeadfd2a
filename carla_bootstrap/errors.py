"""Exception hierarchy shared by the session, actor and bootstrap layers."""

from __future__ import annotations

from typing import Sequence


class BootstrapError(Exception):
    """Base class for every failure raised by :mod:`carla_bootstrap`."""


class PreconditionError(BootstrapError):
    """A caller-side contract was violated before any request was issued."""


class EmptyRangeError(PreconditionError):
    """A random selection was requested from an empty collection."""


class InvalidHandleError(PreconditionError):
    """An operation was attempted on a handle that has already been destroyed."""


class SessionTimeoutError(BootstrapError, TimeoutError):
    """The simulator did not answer within the configured timeout."""


class SessionConnectionError(BootstrapError, ConnectionError):
    """The transport to the simulator failed."""


class WorldLoadError(BootstrapError):
    """The server refused or failed to load the requested world."""


class SpawnError(BootstrapError):
    """The server refused to spawn an actor (collision or invalid blueprint)."""


class ControlError(BootstrapError):
    """The server rejected a control or transform update for a live actor."""


class DestroyError(BootstrapError):
    """A destroy request was invalid or rejected by the server."""


class TeardownError(BootstrapError):
    """One or more registered handles could not be released."""

    def __init__(self, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.failures = list(failures)
        details = "; ".join(f"{label}: {error}" for label, error in self.failures)
        super().__init__(f"Failed to release {len(self.failures)} actor(s): {details}")


def is_timeout_message(error: BaseException) -> bool:
    """Return ``True`` when a native error message reports an RPC time-out.

    The client words these as ``time-out of <N>ms while waiting for the simulator``.
    """

    return "time-out of" in str(error).lower()


def translate_native_error(
    error: BaseException,
    error_type: type[BootstrapError],
    message: str,
) -> BootstrapError:
    """Map a native client exception onto the typed hierarchy.

    The CARLA client reports every RPC failure as a ``RuntimeError``; time-outs
    are only distinguishable by their message.
    """

    if isinstance(error, BootstrapError):
        return error
    if isinstance(error, TimeoutError) or is_timeout_message(error):
        return SessionTimeoutError(f"{message}: {error}")
    return error_type(f"{message}: {error}")
