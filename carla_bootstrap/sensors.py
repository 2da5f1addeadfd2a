"""Hand-off of sensor frames from the transport thread to the main thread."""

from __future__ import annotations

import logging
import queue
import time
from pathlib import Path
from typing import Any, Callable, Optional

LOGGER = logging.getLogger(__name__)


class FrameChannel:
    """Bounded queue fed by a sensor callback and drained by the main thread.

    When the queue is full the oldest frame is discarded so the producer never
    blocks the transport thread.
    """

    def __init__(self, maxsize: int = 64) -> None:
        if maxsize <= 0:
            raise ValueError("FrameChannel needs a positive capacity")
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=maxsize)
        self.received = 0
        self.discarded = 0

    def __call__(self, frame: Any) -> None:
        self.put(frame)

    def put(self, frame: Any) -> None:
        self.received += 1
        while True:
            try:
                self._queue.put_nowait(frame)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    continue
                self.discarded += 1
                LOGGER.debug("Frame channel full; discarded oldest frame")

    def get(self, timeout: float | None = None) -> Optional[Any]:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> list[Any]:
        frames = []
        while True:
            try:
                frames.append(self._queue.get_nowait())
            except queue.Empty:
                return frames

    def __len__(self) -> int:
        return self._queue.qsize()


class SemanticSegmentationSink:
    """Write semantic segmentation frames to disk using the CityScapes palette."""

    def __init__(self, output_dir: str | Path, api: Any) -> None:
        self.output_dir = Path(output_dir)
        self._api = api
        self.saved = 0

    def path_for(self, frame: Any) -> Path:
        return self.output_dir / f"{int(frame.frame):08d}.png"

    def __call__(self, frame: Any) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(frame)
        frame.save_to_disk(str(path), self._api.ColorConverter.CityScapesPalette)
        self.saved += 1
        LOGGER.debug("Saved frame %s to '%s'", frame.frame, path)
        return path


def stream_frames(
    channel: FrameChannel,
    sink: Callable[[Any], Any],
    duration_s: float,
    *,
    poll_interval_s: float = 0.1,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Feed frames from ``channel`` into ``sink`` for ``duration_s`` seconds."""

    handled = 0
    deadline = clock() + max(duration_s, 0.0)
    while True:
        remaining = deadline - clock()
        if remaining <= 0:
            break
        frame = channel.get(timeout=min(poll_interval_s, remaining))
        if frame is None:
            continue
        sink(frame)
        handled += 1
    return handled
