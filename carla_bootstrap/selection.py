"""Uniform random selection over server-provided catalogs."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence, TypeVar

import numpy as np

from .errors import EmptyRangeError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def make_rng(seed: int | None = None) -> np.random.Generator:
    """Return a generator; seeded generators replay the same selections."""

    if seed is None:
        LOGGER.debug("Seeding random selector from OS entropy")
    else:
        LOGGER.debug("Seeding random selector with %d", seed)
    return np.random.default_rng(seed)


def random_index(size: int, rng: np.random.Generator) -> int:
    if size <= 0:
        raise EmptyRangeError("Cannot select from an empty range")
    return int(rng.integers(0, size))


def random_choice(items: Sequence[T] | Iterable[T], rng: np.random.Generator, *, label: str = "range") -> T:
    """Pick one element of ``items`` uniformly at random.

    Raises :class:`EmptyRangeError` when ``items`` is empty; callers rely on the
    server returning a non-empty catalog and must not get a silent ``None``.
    """

    sequence: Any = items
    if not hasattr(sequence, "__getitem__") or not hasattr(sequence, "__len__"):
        sequence = list(sequence)
    if len(sequence) == 0:
        raise EmptyRangeError(f"Cannot select from an empty {label}")
    return sequence[random_index(len(sequence), rng)]
