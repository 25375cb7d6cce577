import random

from opt.sa import CoefficientNeighborhood, build_config
from trainer.tuner import RulesetTuner


def test_tuner_converges_on_agreeing_judges() -> None:
    def near(target):
        return lambda message: abs(message["coeffs"][0] - target) <= 1.0

    rng = random.Random(5)
    tuner = RulesetTuner(
        [near(3.0), near(3.5), near(2.5)],
        "price",
        CoefficientNeighborhood([1.0], lower_bounds=[0.0], upper_bounds=[5.0], step_scale=0.2, decimals=1, rng=rng),
        config=build_config(cooling_steps=200, steps_per_temp=20),
        observers=[],
        rng=rng,
    )

    report = tuner.tune_sync()

    assert report.best_cost <= 1.0 / 3.0
    assert 1.5 <= report.best_solution[0] <= 4.5
    assert report.evaluations == report.cache_misses
