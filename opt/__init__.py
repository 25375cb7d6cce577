from __future__ import annotations

"""
优化算法通用基础设施。

约定：
- 具体算法放在二级子目录下，例如：
  - opt/sa/core.py  实现模拟退火（Simulated Annealing）的搜索循环；
- 本包提供公共的数据结构（搜索状态、运行报告）、能力协议、异常类型
  与单飞缓存，不依赖任何具体的评估传输方式。
"""

from .base import (
    AnnealReport,
    ConfigurationError,
    EvaluationFailure,
    Evaluator,
    Neighborhood,
    OptError,
    SearchState,
    solution_key,
)
from .cache import SingleFlightCache

__all__ = [
    "AnnealReport",
    "ConfigurationError",
    "EvaluationFailure",
    "Evaluator",
    "Neighborhood",
    "OptError",
    "SearchState",
    "SingleFlightCache",
    "solution_key",
]
