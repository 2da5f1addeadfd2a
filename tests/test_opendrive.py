import logging
from types import SimpleNamespace

import pytest

from carla_bootstrap import opendrive
from carla_bootstrap.opendrive import (
    MapContext,
    find_path_to_description_file,
    load_description,
    load_description_by_path,
    load_description_from_world,
    strip_editor_prefix,
)


@pytest.fixture
def content_root(tmp_path):
    canonical = tmp_path / "Carla" / "Maps" / "OpenDrive"
    canonical.mkdir(parents=True)
    (canonical / "Town01.xodr").write_text("<OpenDRIVE name='Town01'/>", encoding="utf-8")

    package = tmp_path / "Custom" / "Maps" / "Circuit" / "OpenDrive"
    package.mkdir(parents=True)
    (package / "Circuit.xodr").write_text("<OpenDRIVE name='Circuit'/>", encoding="utf-8")
    return tmp_path


def test_strip_editor_prefix():
    assert strip_editor_prefix("UEDPIE_0_Town01") == "Town01"
    assert strip_editor_prefix("Town01") == "Town01"


def test_canonical_directory_wins_without_search(content_root, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("recursive search must not run")

    monkeypatch.setattr(opendrive, "_find_first", fail)
    path = find_path_to_description_file("Town01", content_root)
    assert path == content_root / "Carla" / "Maps" / "OpenDrive" / "Town01.xodr"


def test_editor_prefix_is_stripped(content_root):
    path = find_path_to_description_file("UEDPIE_0_Town01", content_root)
    assert path is not None and path.name == "Town01.xodr"


def test_recursive_search_fallback(content_root):
    path = find_path_to_description_file("Circuit", content_root)
    assert path == content_root / "Custom" / "Maps" / "Circuit" / "OpenDrive" / "Circuit.xodr"


def test_missing_file_returns_none(content_root):
    assert find_path_to_description_file("Atlantis", content_root) is None
    assert find_path_to_description_file("Town01", content_root / "nowhere") is None


def test_load_description(content_root, caplog):
    with caplog.at_level(logging.INFO, logger="carla_bootstrap.opendrive"):
        assert load_description("Town01", content_root) == "<OpenDRIVE name='Town01'/>"
    assert "Loaded OpenDrive file" in caplog.text


def test_load_description_missing_is_empty(content_root, caplog):
    with caplog.at_level(logging.ERROR, logger="carla_bootstrap.opendrive"):
        assert load_description("Atlantis", content_root) == ""
    assert "Failed to find OpenDrive file for map 'Atlantis'" in caplog.text


def test_load_description_unreadable_is_empty(content_root):
    broken = content_root / "Carla" / "Maps" / "OpenDrive" / "Broken.xodr"
    broken.write_bytes(b"\xff\xfe\x00invalid")
    assert load_description("Broken", content_root) == ""


def test_load_description_by_path_with_file_hint(content_root):
    hint = content_root / "Custom" / "Maps" / "Circuit" / "OpenDrive" / "Circuit.xodr"
    assert load_description_by_path(hint, "Circuit") == "<OpenDRIVE name='Circuit'/>"


def test_load_description_by_path_with_map_directory_hint(content_root):
    hint = content_root / "Custom" / "Maps" / "Circuit"
    assert load_description_by_path(hint, "Circuit") == "<OpenDRIVE name='Circuit'/>"


def test_load_description_by_path_missing(content_root):
    assert load_description_by_path(content_root / "Custom", "Atlantis") == ""


def test_load_description_from_world_context(content_root):
    context = MapContext(map_name="Town01", map_dir=content_root / "Carla" / "Maps")
    assert load_description_from_world(context) == "<OpenDRIVE name='Town01'/>"


def test_load_description_from_packaged_map(content_root):
    context = MapContext(map_name="UEDPIE_0_Circuit", map_dir=content_root / "Custom" / "Maps" / "Circuit")
    assert load_description_from_world(context) == "<OpenDRIVE name='Circuit'/>"


def test_map_context_from_world(content_root):
    world = SimpleNamespace(map_name="/Game/Carla/Maps/Town01")
    context = MapContext.from_world(world, content_root)
    assert context.map_name == "Town01"
    assert context.map_dir == content_root / "Carla" / "Maps"
    assert load_description_from_world(context) == "<OpenDRIVE name='Town01'/>"
