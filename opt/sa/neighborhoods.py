from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, Tuple

from opt.base import ConfigurationError


logger = logging.getLogger("ruleset_tuner.opt.sa")

Coeffs = Tuple[float, ...]


def _clip_to_bounds(
    x: List[float],
    lower_bounds: Optional[List[float]],
    upper_bounds: Optional[List[float]],
) -> List[float]:
    """将候选解裁剪到给定的上下界范围内。"""
    if lower_bounds is None and upper_bounds is None:
        return x

    clipped: List[float] = []
    for i, v in enumerate(x):
        lo = lower_bounds[i] if lower_bounds is not None else None
        hi = upper_bounds[i] if upper_bounds is not None else None
        if lo is not None and v < lo:
            v = lo
        if hi is not None and v > hi:
            v = hi
        clipped.append(v)
    return clipped


class CoefficientNeighborhood:
    """
    规则集系数向量的邻域。

    说明：
    - 解是浮点元组（不可变），每次扰动都返回新元组；
    - 有上下界时扰动幅度为 step_scale * (ub - lb)，否则为 step_scale * max(1, |v|)；
    - decimals 不为 None 时把结果四舍五入到网格上，使搜索空间离散化、缓存能够命中。
    """

    def __init__(
        self,
        x0: Sequence[float],
        lower_bounds: Optional[Sequence[float]] = None,
        upper_bounds: Optional[Sequence[float]] = None,
        step_scale: float = 0.1,
        decimals: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if not x0:
            raise ConfigurationError("x0 必须是非空的一维序列。")
        dim = len(x0)
        if lower_bounds is not None and len(lower_bounds) != dim:
            raise ConfigurationError("lower_bounds 的长度必须与 x0 相同。")
        if upper_bounds is not None and len(upper_bounds) != dim:
            raise ConfigurationError("upper_bounds 的长度必须与 x0 相同。")
        if step_scale <= 0:
            raise ConfigurationError("step_scale 必须为正数。")

        self.x0: List[float] = [float(v) for v in x0]
        self.lower_bounds = [float(v) for v in lower_bounds] if lower_bounds is not None else None
        self.upper_bounds = [float(v) for v in upper_bounds] if upper_bounds is not None else None
        for i, v in enumerate(self.x0):
            lo = self.lower_bounds[i] if self.lower_bounds is not None else None
            hi = self.upper_bounds[i] if self.upper_bounds is not None else None
            if lo is not None and hi is not None and lo > hi:
                raise ConfigurationError(f"第 {i} 维的下界 {lo} 大于上界 {hi}。")
            if (lo is not None and v < lo) or (hi is not None and v > hi):
                raise ConfigurationError(f"x0 第 {i} 维的取值 {v} 超出上下界。")

        self.dim = dim
        self.step_scale = float(step_scale)
        self.decimals = decimals
        self.rng = rng or random.Random()

    def _finish(self, x: List[float]) -> Coeffs:
        if self.decimals is not None:
            x = [round(v, self.decimals) for v in x]
        return tuple(_clip_to_bounds(x, self.lower_bounds, self.upper_bounds))

    def initial_solution(self) -> Coeffs:
        return self._finish(list(self.x0))

    def transition(self, solution: Coeffs) -> Coeffs:
        lb = self.lower_bounds
        ub = self.upper_bounds

        candidate: List[float] = []
        for i, v in enumerate(solution):
            # 根据有无上下界决定扰动尺度
            if lb is not None and ub is not None:
                step = self.step_scale * (ub[i] - lb[i])
            else:
                step = self.step_scale * max(1.0, abs(v))
            candidate.append(v + self.rng.uniform(-step, step))

        result = self._finish(candidate)
        logger.debug("propose_candidate：current=%s, candidate=%s", solution, result)
        return result
