import asyncio

import pytest
from langchain_core.runnables import RunnableLambda

from opt.base import ConfigurationError
from trainer.judges import JudgePanelEvaluator, as_runnable, load_judges


def test_cost_is_one_minus_success_fraction() -> None:
    seen = []

    def judge_factory(verdict):
        def judge(message):
            seen.append(message)
            return verdict

        return judge

    panel = JudgePanelEvaluator(
        [judge_factory(True), judge_factory(False), judge_factory(True), judge_factory(True)],
        "overlay",
    )
    cost = asyncio.run(panel.cost((0.5, 2.0)))

    assert cost == pytest.approx(0.25)
    assert len(seen) == 4
    assert seen[0] == {"type": "rulesetSucceeded", "trainable_id": "overlay", "coeffs": [0.5, 2.0]}


def test_judges_are_queried_in_parallel() -> None:
    started = []

    async def judge(message):
        started.append(1)
        # every judge must be in flight before any of them can finish
        while len(started) < 3:
            await asyncio.sleep(0)
        return True

    panel = JudgePanelEvaluator([judge, judge, judge], "overlay")
    assert asyncio.run(asyncio.wait_for(panel.cost((1.0,)), 2.0)) == 0.0


def test_timed_out_judge_is_not_a_success() -> None:
    async def fast(message):
        return True

    async def silent(message):
        await asyncio.sleep(10)
        return True

    panel = JudgePanelEvaluator([fast, silent], "overlay", timeout=0.05)
    assert asyncio.run(panel.cost((1.0,))) == pytest.approx(0.5)


def test_failing_judge_fails_the_evaluation() -> None:
    state = {}

    async def slow(message):
        try:
            await asyncio.sleep(0.2)
            state["finished"] = True
            return True
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    async def broken(message):
        await asyncio.sleep(0)
        raise ConnectionError("tab closed")

    panel = JudgePanelEvaluator([slow, broken], "overlay")

    async def scenario():
        with pytest.raises(ConnectionError):
            await panel.cost((1.0,))
        await asyncio.sleep(0.3)

    asyncio.run(scenario())
    # the remaining judge is cancelled rather than left running in the background
    assert state == {"cancelled": True}


def test_runnables_are_used_as_is() -> None:
    runnable = RunnableLambda(lambda m: True)
    assert as_runnable(runnable) is runnable
    assert isinstance(as_runnable(lambda m: False), RunnableLambda)
    with pytest.raises(ConfigurationError):
        as_runnable(42)


def test_panel_validation() -> None:
    with pytest.raises(ConfigurationError):
        JudgePanelEvaluator([], "overlay")
    with pytest.raises(ConfigurationError):
        JudgePanelEvaluator([lambda m: True], "overlay", timeout=0)


def test_load_judges_from_factory() -> None:
    judges = load_judges("tests.fixtures.demo_judges:close_to_three")
    assert len(judges) == 3


@pytest.mark.parametrize(
    "target",
    ["no_colon", "tests.fixtures.demo_judges:missing", "not_a_module_xyz:judges"],
)
def test_load_judges_rejects_bad_targets(target) -> None:
    with pytest.raises(ConfigurationError):
        load_judges(target)


@pytest.mark.parametrize(
    "target",
    ["tests.fixtures.demo_judges:not_a_list", "tests.fixtures.demo_judges:exploding"],
)
def test_load_judges_wraps_factory_errors(target) -> None:
    with pytest.raises(ConfigurationError) as excinfo:
        load_judges(target)
    assert excinfo.value.__cause__ is not None
