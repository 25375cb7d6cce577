import random

import pytest

from opt.base import ConfigurationError
from opt.sa import CoefficientNeighborhood


def test_initial_solution_is_tuple_of_floats() -> None:
    hood = CoefficientNeighborhood([1, 2, 3])
    assert hood.initial_solution() == (1.0, 2.0, 3.0)


def test_transition_returns_new_solution_within_bounds() -> None:
    hood = CoefficientNeighborhood(
        [0.5, 0.5],
        lower_bounds=[0.0, 0.0],
        upper_bounds=[1.0, 1.0],
        step_scale=2.0,
        rng=random.Random(3),
    )
    current = hood.initial_solution()
    for _ in range(100):
        candidate = hood.transition(current)
        assert isinstance(candidate, tuple)
        assert all(0.0 <= v <= 1.0 for v in candidate)
        current = candidate
    assert hood.initial_solution() == (0.5, 0.5)


def test_unbounded_step_scales_with_magnitude() -> None:
    hood = CoefficientNeighborhood([100.0], step_scale=0.1, rng=random.Random(1))
    for _ in range(50):
        (v,) = hood.transition((100.0,))
        assert 90.0 <= v <= 110.0


def test_decimals_discretize_the_space() -> None:
    hood = CoefficientNeighborhood([0.0, 0.0], step_scale=0.5, decimals=1, rng=random.Random(7))
    seen = {hood.transition((0.0, 0.0)) for _ in range(200)}
    for candidate in seen:
        assert all(round(v, 1) == v for v in candidate)
    # a 1-decimal grid in [-0.5, 0.5]^2 has at most 121 points
    assert len(seen) <= 121


@pytest.mark.parametrize(
    "kwargs",
    [
        {"x0": []},
        {"x0": [1.0], "lower_bounds": [0.0, 0.0]},
        {"x0": [1.0], "upper_bounds": [2.0, 2.0]},
        {"x0": [1.0], "lower_bounds": [2.0], "upper_bounds": [3.0]},
        {"x0": [1.0], "lower_bounds": [2.0], "upper_bounds": [0.0]},
        {"x0": [1.0], "step_scale": 0.0},
    ],
)
def test_invalid_neighborhood_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        CoefficientNeighborhood(**kwargs)
