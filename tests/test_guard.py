import pytest

from carla_bootstrap.errors import SpawnError, TeardownError
from carla_bootstrap.guard import ResourceGuard
from carla_bootstrap.model import TransformSpec


def _spawn(world, blueprint_id="vehicle.tesla.model3", parent=None):
    return world.spawn_actor(world.find_blueprint(blueprint_id), TransformSpec(), parent=parent)


@pytest.mark.parametrize("count", [0, 1, 3, 5])
def test_failure_after_n_spawns_destroys_each_once(world, server, count):
    handles = []
    with pytest.raises(SpawnError):
        with ResourceGuard() as guard:
            for _ in range(count):
                handles.append(guard.register(_spawn(world)))
            raise SpawnError("no free spawn point for the next actor")

    assert server.count("destroy") == count
    assert sorted(server.destroyed) == sorted(handle.id for handle in handles)
    assert guard.destroyed_count == count
    assert all(not handle.is_alive for handle in handles)


def test_reverse_creation_order(world, server):
    with ResourceGuard() as guard:
        ids = [guard.register(_spawn(world)).id for _ in range(3)]
    assert server.destroyed == list(reversed(ids))


def test_children_destroyed_before_parent(world, server):
    with ResourceGuard() as guard:
        vehicle = _spawn(world)
        # registered out of order on purpose
        sensor = _spawn(world, "sensor.camera.semantic_segmentation", parent=vehicle)
        guard.register(sensor)
        guard.register(vehicle)
    assert server.destroyed == [sensor.id, vehicle.id]


def test_register_is_idempotent(world, server):
    with ResourceGuard() as guard:
        vehicle = _spawn(world)
        guard.register(vehicle)
        guard.register(vehicle)
        assert len(guard) == 1
    assert server.count("destroy") == 1


def test_handles_destroyed_elsewhere_are_skipped(world, server):
    with ResourceGuard() as guard:
        vehicle = guard.register(_spawn(world))
        vehicle.destroy()
    assert server.count("destroy") == 1
    assert guard.destroyed_count == 0


def test_release_destroys_children_first(world, server):
    guard = ResourceGuard()
    vehicle = guard.register(_spawn(world))
    sensor = guard.register(_spawn(world, "sensor.camera.semantic_segmentation", parent=vehicle))
    other = guard.register(_spawn(world))
    guard.release(vehicle)
    assert server.destroyed == [sensor.id, vehicle.id]
    assert len(guard) == 1
    guard.teardown()
    assert server.destroyed[-1] == other.id


def test_teardown_failure_on_success_path(world, server):
    server.destroy_result = False
    with pytest.raises(TeardownError) as info:
        with ResourceGuard() as guard:
            guard.register(_spawn(world))
            guard.register(_spawn(world))
    assert len(info.value.failures) == 2
    assert server.count("destroy") == 2


def test_original_error_wins_over_teardown_failure(world, server):
    server.failures["destroy"] = RuntimeError("connection lost")
    with pytest.raises(SpawnError):
        with ResourceGuard() as guard:
            guard.register(_spawn(world))
            raise SpawnError("collision")
    assert len(guard.failures) == 1
    assert server.count("destroy") == 1


def test_keyboard_interrupt_still_tears_down(world, server):
    with pytest.raises(KeyboardInterrupt):
        with ResourceGuard() as guard:
            guard.register(_spawn(world))
            raise KeyboardInterrupt
    assert server.count("destroy") == 1
