from __future__ import annotations

import logging
from types import TracebackType
from typing import List, Optional, Tuple, Type, TypeVar

from .actors import ActorHandle
from .errors import TeardownError

LOGGER = logging.getLogger(__name__)

H = TypeVar("H", bound=ActorHandle)


class ResourceGuard:
    """Destroy every registered actor when the guarded block exits.

    Handles are released in reverse order of registration, children before
    their parents, each at most once. An exception raised inside the block is
    re-raised unchanged after teardown; teardown failures on an otherwise
    successful block are raised as :class:`TeardownError`.
    """

    def __init__(self) -> None:
        self._handles: List[ActorHandle] = []
        self.destroyed_count = 0
        self.failures: List[Tuple[str, BaseException]] = []

    def __enter__(self) -> "ResourceGuard":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> bool:
        failures = self.teardown()
        if exc is None and failures:
            raise TeardownError(failures)
        return False

    def __len__(self) -> int:
        return len(self._handles)

    def register(self, handle: H) -> H:
        if any(existing is handle for existing in self._handles):
            return handle
        self._handles.append(handle)
        LOGGER.debug("Registered %r for teardown", handle)
        return handle

    def release(self, handle: ActorHandle) -> None:
        """Destroy ``handle`` now, together with any registered children."""

        failures = [self._destroy(child) for child in self._descendants(handle)]
        failures.append(self._destroy(handle))
        failures = [failure for failure in failures if failure is not None]
        if failures:
            self.failures.extend(failures)
            raise TeardownError(failures)

    def teardown(self) -> List[Tuple[str, BaseException]]:
        failures: List[Tuple[str, BaseException]] = []
        while self._handles:
            handle = self._handles[-1]
            children = self._descendants(handle)
            for child in children:
                failure = self._destroy(child)
                if failure is not None:
                    failures.append(failure)
            failure = self._destroy(handle)
            if failure is not None:
                failures.append(failure)
        self.failures.extend(failures)
        return failures

    def _descendants(self, handle: ActorHandle) -> List[ActorHandle]:
        found = []
        for candidate in reversed(self._handles):
            parent = candidate.parent
            while parent is not None:
                if parent is handle:
                    found.append(candidate)
                    break
                parent = parent.parent
        return found

    def _destroy(self, handle: ActorHandle) -> Optional[Tuple[str, BaseException]]:
        self._handles = [existing for existing in self._handles if existing is not handle]
        if not handle.is_alive:
            LOGGER.debug("%r already released; skipping", handle)
            return None
        try:
            self.destroyed_count += 1
            handle.destroy()
        except Exception as exc:
            LOGGER.error("Failed to destroy %r: %s", handle, exc)
            return (repr(handle), exc)
        return None
