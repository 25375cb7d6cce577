from __future__ import annotations

import logging
import math
import random
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from opt.base import (
    AnnealReport,
    ConfigurationError,
    EvaluationFailure,
    Evaluator,
    Neighborhood,
    SearchState,
    solution_key,
)
from opt.cache import SingleFlightCache


logger = logging.getLogger("ruleset_tuner.opt.sa")

# 玻尔兹曼常数：沿用经典退火算法的物理尺度，温度默认值依赖于它，不可调
BOLTZMANN_CONSTANT = 1.3806485279e-23


class AnnealConfig(BaseModel):
    """
    退火调度参数。

    - initial_temperature：初始温度；
    - cooling_steps：降温步数（温度平台的个数）；
    - cooling_fraction：每个平台结束后温度乘以的系数，必须在 (0, 1) 之间；
    - steps_per_temp：每个温度平台内最多尝试的次数。
    """

    model_config = ConfigDict(extra="forbid")

    initial_temperature: float = Field(default=5000.0, gt=0)
    cooling_steps: int = Field(default=5000, gt=0)
    cooling_fraction: float = Field(default=0.95, gt=0, lt=1)
    steps_per_temp: int = Field(default=1000, gt=0)


def build_config(**overrides: Any) -> AnnealConfig:
    """构造 AnnealConfig，把 pydantic 的校验错误转换为 ConfigurationError。"""
    try:
        return AnnealConfig(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(f"退火参数不合法：{exc}") from exc


def acceptance_probability(
    current_cost: float,
    candidate_cost: float,
    temperature: float,
) -> float:
    """
    Metropolis 接受概率：exp((current - candidate) / (k_B * T))。

    改进解返回 1.0；温度下溢为 0 时，等代价返回 1.0，更差返回 0.0。
    """
    delta = current_cost - candidate_cost
    if delta > 0:
        return 1.0
    denom = BOLTZMANN_CONSTANT * temperature
    if denom <= 0:
        return 1.0 if delta == 0 else 0.0
    return math.exp(delta / denom)


class AnnealObserver:
    """
    退火过程的观察者钩子，默认全部为空操作。

    子类按需覆盖：
    - on_start：初始解评估完成后；
    - on_plateau_start / on_plateau_end：每个温度平台的开始与结束；
    - on_new_best：出现新的历史最优解时；
    - on_finish：运行结束、报告生成后。
    """

    def on_start(self, config: AnnealConfig, state: SearchState) -> None:
        pass

    def on_plateau_start(self, step: int, state: SearchState) -> None:
        pass

    def on_plateau_end(
        self,
        step: int,
        attempts: int,
        start_cost: float,
        early_exit: bool,
        state: SearchState,
    ) -> None:
        pass

    def on_new_best(self, state: SearchState) -> None:
        pass

    def on_finish(self, report: AnnealReport) -> None:
        pass


class LoggingObserver(AnnealObserver):
    """把平台进度、新最优解和最终统计写入日志。"""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger
        self._cooling_steps = 0

    def on_start(self, config: AnnealConfig, state: SearchState) -> None:
        self._cooling_steps = config.cooling_steps
        self.log.info(
            "退火开始：T0=%.4g, cooling_steps=%d, cooling_fraction=%s, "
            "steps_per_temp=%d, initial_cost=%s",
            config.initial_temperature,
            config.cooling_steps,
            config.cooling_fraction,
            config.steps_per_temp,
            state.current_cost,
        )

    def on_plateau_start(self, step: int, state: SearchState) -> None:
        self.log.info(
            "降温步 %d / %d，T=%.4g ...", step, self._cooling_steps, state.temperature
        )

    def on_new_best(self, state: SearchState) -> None:
        self.log.info(
            "新的最优解：%s，代价 %s", state.best_solution, state.best_cost
        )

    def on_finish(self, report: AnnealReport) -> None:
        self.log.info(
            "迭代 %d 次，其中接受较差解 %d 次。", report.attempts, report.accepted_worse
        )
        self.log.info(
            "缓存命中 %d，未命中 %d，命中率 %.3f",
            report.cache_hits,
            report.cache_misses,
            report.hit_rate,
        )


class Annealer:
    """
    模拟退火优化器。

    只负责搜索循环本身：温度调度、Metropolis 接受准则、当前解/最优解更新，
    以及一次运行范围内的单飞缓存。代价评估与邻域生成都由外部注入。
    """

    def __init__(
        self,
        evaluator: Evaluator,
        neighborhood: Neighborhood,
        config: Union[AnnealConfig, Dict[str, Any], None] = None,
        *,
        key: Callable[[Any], Hashable] = solution_key,
        rng: Optional[random.Random] = None,
        observers: Optional[Iterable[AnnealObserver]] = None,
    ) -> None:
        if config is None:
            config = AnnealConfig()
        elif isinstance(config, dict):
            config = build_config(**config)
        self.config: AnnealConfig = config
        self.evaluator = evaluator
        self.neighborhood = neighborhood
        self.key = key
        self.rng = rng or random.Random()
        self.observers: List[AnnealObserver] = (
            list(observers) if observers is not None else [LoggingObserver()]
        )

    def _notify(self, hook: str, *args: Any) -> None:
        for obs in self.observers:
            getattr(obs, hook)(*args)

    async def _cost(self, cache: SingleFlightCache, solution: Any) -> float:
        key = self.key(solution)
        try:
            cost = await cache.get_or_compute(key, lambda: self.evaluator.cost(solution))
        except EvaluationFailure:
            raise
        except Exception as exc:
            raise EvaluationFailure(f"评估解 {solution!r} 时失败：{exc}") from exc

        try:
            cost = float(cost)
        except (TypeError, ValueError) as exc:
            raise EvaluationFailure(f"解 {solution!r} 的代价不是数值：{cost!r}") from exc
        if not math.isfinite(cost):
            raise EvaluationFailure(f"解 {solution!r} 的代价不是有限实数：{cost}")
        return cost

    async def run(self) -> AnnealReport:
        """执行一次完整的退火，返回最优解及诊断计数；任何评估失败都会直接抛出。"""
        cfg = self.config
        cache = SingleFlightCache()

        initial = self.neighborhood.initial_solution()
        initial_cost = await self._cost(cache, initial)
        state = SearchState(
            temperature=cfg.initial_temperature,
            current_solution=initial,
            current_cost=initial_cost,
            best_solution=initial,
            best_cost=initial_cost,
        )
        self._notify("on_start", cfg, state)

        attempts = 0
        accepted_worse = 0
        for step in range(cfg.cooling_steps):
            state.cooling_step = step
            start_cost = state.current_cost
            self._notify("on_plateau_start", step, state)

            plateau_attempts = 0
            early_exit = False
            for _ in range(cfg.steps_per_temp):
                candidate = self.neighborhood.transition(state.current_solution)
                candidate_cost = await self._cost(cache, candidate)

                if candidate_cost < state.current_cost:
                    # 改进解总是接受
                    state.current_solution = candidate
                    state.current_cost = candidate_cost
                    if candidate_cost < state.best_cost:
                        state.best_solution = candidate
                        state.best_cost = candidate_cost
                        self._notify("on_new_best", state)
                else:
                    merit = acceptance_probability(
                        state.current_cost, candidate_cost, state.temperature
                    )
                    if merit > self.rng.random():
                        accepted_worse += 1
                        state.current_solution = candidate
                        state.current_cost = candidate_cost

                attempts += 1
                plateau_attempts += 1
                # 与平台起始代价相比没有变化时，放弃本平台
                if start_cost == state.current_cost:
                    early_exit = True
                    break

            self._notify(
                "on_plateau_end", step, plateau_attempts, start_cost, early_exit, state
            )
            state.temperature *= cfg.cooling_fraction

        report = AnnealReport(
            best_solution=state.best_solution,
            best_cost=state.best_cost,
            attempts=attempts,
            accepted_worse=accepted_worse,
            cache_hits=cache.hits,
            cache_misses=cache.misses,
            evaluations=len(cache),
            cooling_steps_run=cfg.cooling_steps,
            final_temperature=state.temperature,
        )
        self._notify("on_finish", report)
        return report

    async def anneal(self) -> Any:
        """只返回最优解。"""
        report = await self.run()
        return report.best_solution
