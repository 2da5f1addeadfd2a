import pytest

from carla_bootstrap.errors import EmptyRangeError, PreconditionError
from carla_bootstrap.selection import make_rng, random_choice, random_index


@pytest.mark.parametrize("size", [1, 2, 7, 100])
def test_random_index_in_range(size):
    rng = make_rng(1234)
    for _ in range(200):
        assert 0 <= random_index(size, rng) < size


def test_random_choice_reproducible_with_seed():
    items = ["Town01", "Town02", "Town03", "Town04", "Town05"]
    first = [random_choice(items, make_rng(42)) for _ in range(3)]
    rng_a = make_rng(7)
    rng_b = make_rng(7)
    sequence_a = [random_choice(items, rng_a) for _ in range(20)]
    sequence_b = [random_choice(items, rng_b) for _ in range(20)]
    assert sequence_a == sequence_b
    assert len(set(first)) == 1


def test_random_choice_returns_member():
    items = ("red", "green", "blue")
    rng = make_rng(0)
    assert {random_choice(items, rng) for _ in range(100)} <= set(items)


def test_random_choice_covers_all_elements():
    rng = make_rng(99)
    picks = {random_choice([0, 1, 2], rng) for _ in range(300)}
    assert picks == {0, 1, 2}


def test_random_choice_accepts_iterables():
    rng = make_rng(3)
    assert random_choice((x for x in ["only"]), rng) == "only"


@pytest.mark.parametrize("empty", [[], (), "", iter([])])
def test_random_choice_empty_raises(empty):
    with pytest.raises(EmptyRangeError):
        random_choice(empty, make_rng(0))


def test_empty_range_is_precondition_error():
    with pytest.raises(PreconditionError):
        random_index(0, make_rng(0))
