"""Locate and read OpenDRIVE (``.xodr``) road descriptions for a map.

None of these helpers raise for a missing or unreadable file: they log the
problem and return ``None`` or an empty string so the caller decides whether
a map without road description is fatal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Optional

LOGGER = logging.getLogger(__name__)

EDITOR_PREFIX = "UEDPIE_0_"
XODR_EXTENSION = ".xodr"
CANONICAL_SUBDIR = Path("Carla") / "Maps" / "OpenDrive"


def strip_editor_prefix(map_name: str) -> str:
    """Drop the prefix the editor adds to map names while playing in editor."""

    if map_name.startswith(EDITOR_PREFIX):
        return map_name[len(EDITOR_PREFIX):]
    return map_name


def _find_first(root: Path, pattern: str) -> Optional[Path]:
    if not root.is_dir():
        return None
    matches = sorted(path for path in root.rglob(pattern) if path.is_file())
    return matches[0] if matches else None


def _read_description(path: Optional[Path], map_name: str) -> str:
    if path is None:
        LOGGER.error("Failed to find OpenDrive file for map '%s'", map_name)
        return ""
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        LOGGER.error("Failed to load OpenDrive file '%s': %s", path, exc)
        return ""
    LOGGER.info("Loaded OpenDrive file '%s'", path)
    return content


def find_path_to_description_file(map_name: str, content_root: str | Path) -> Optional[Path]:
    """Return the ``.xodr`` file for ``map_name`` or ``None``.

    The canonical ``Carla/Maps/OpenDrive`` directory is checked first; only
    when the file is not there is ``content_root`` searched recursively.
    """

    file_name = strip_editor_prefix(map_name) + XODR_EXTENSION
    root = Path(content_root)

    default_path = root / CANONICAL_SUBDIR / file_name
    if default_path.is_file():
        return default_path

    return _find_first(root, file_name)


def load_description(map_name: str, content_root: str | Path) -> str:
    path = find_path_to_description_file(map_name, content_root)
    return _read_description(path, map_name)


def load_description_by_path(xodr_path: str | Path, map_name: str) -> str:
    """Load the description using ``xodr_path`` as a directory hint.

    A hint naming the map directory itself (or the ``.xodr`` file inside it)
    accepts any ``.xodr`` file below it.
    """

    map_name = strip_editor_prefix(map_name)
    hint = str(xodr_path)
    file_name = "*" if hint.endswith(map_name) else map_name
    suffix = map_name + XODR_EXTENSION
    folder = hint[: -len(suffix)] if hint.endswith(suffix) else hint
    return _read_description(_find_first(Path(folder or "."), file_name + XODR_EXTENSION), map_name)


@dataclass(frozen=True, slots=True)
class MapContext:
    """The active map's name and the directory holding its assets."""

    map_name: str
    map_dir: Path

    @classmethod
    def from_world(cls, world: Any, content_root: str | Path) -> "MapContext":
        """Derive the context from a loaded world.

        ``world.map_name`` is an asset path such as ``Carla/Maps/Town01``; the
        map directory is the folder holding that asset under ``content_root``.
        """

        full_name = str(world.map_name)
        parts = PurePosixPath(full_name.lstrip("/")).parts
        if parts and parts[0] == "Game":
            parts = parts[1:]
        map_dir = Path(content_root).joinpath(*parts[:-1])
        return cls(map_name=PurePosixPath(full_name).name, map_dir=map_dir)


def load_description_from_world(context: MapContext) -> str:
    map_name = strip_editor_prefix(context.map_name)
    map_dir = Path(context.map_dir)
    file_name = "*" if str(map_dir).endswith(map_name) else map_name
    path = _find_first(map_dir / "OpenDrive", file_name + XODR_EXTENSION)
    return _read_description(path, map_name)
