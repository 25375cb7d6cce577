from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Hashable, Optional, Protocol

import json


class OptError(Exception):
    """优化器相关异常的基类。"""


class ConfigurationError(OptError, ValueError):
    """参数配置非法（在构造阶段发现，而不是运行到一半才暴露）。"""


class EvaluationFailure(OptError):
    """外部代价函数评估失败；整次退火随之中止，不重试、不替换代价。"""


class Evaluator(Protocol):
    """代价评估能力：给定一个解，异步返回一个标量代价（越小越好）。"""

    def cost(self, solution: Any) -> Awaitable[float]:
        ...


class Neighborhood(Protocol):
    """
    邻域能力：

    - initial_solution：每次运行只调用一次，给出起点；
    - transition：每次尝试调用一次，返回一个新的候选解（不得原地修改旧解）。
    """

    def initial_solution(self) -> Any:
        ...

    def transition(self, solution: Any) -> Any:
        ...


def _normalize(value: Any) -> Any:
    # 相等的数值（1 与 1.0）映射到同一个表示
    if isinstance(value, bool):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    return value


def solution_key(solution: Any) -> Hashable:
    """
    把解转换为稳定、唯一的缓存键。

    默认使用紧凑的规范化 JSON：元组与列表得到相同的键，
    整数值的浮点数与对应整数（1.0 与 1）得到相同的键；
    JSON 无法表示的值退回到 repr()。
    """
    try:
        return json.dumps(_normalize(solution), sort_keys=True, separators=(",", ":"))
    except TypeError:
        return repr(solution)


@dataclass
class SearchState:
    """
    单次退火运行的搜索状态。

    只由 Annealer 自己的循环修改，不在多次运行之间共享。
    """

    temperature: float
    current_solution: Any
    current_cost: float
    best_solution: Any
    best_cost: float
    cooling_step: int = 0


@dataclass
class AnnealReport:
    """一次运行结束后返回的结果：最优解 + 诊断计数。"""

    best_solution: Any
    best_cost: float
    attempts: int = 0
    accepted_worse: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    evaluations: int = 0
    cooling_steps_run: int = 0
    final_temperature: Optional[float] = None

    @property
    def hit_rate(self) -> float:
        total = self.cache_hits + self.cache_misses
        if total == 0:
            return 0.0
        return self.cache_hits / total
