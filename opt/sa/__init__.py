from __future__ import annotations

"""
模拟退火（Simulated Annealing, SA）算法实现。

本模块只负责 SA 的搜索细节：
- 温度调度（几何降温、每个温度平台内的多次尝试）；
- Metropolis 接受准则与当前解 / 最优解的更新；
- 运行范围内的单飞缓存，避免重复调用昂贵的代价函数。

代价函数与邻域由调用方注入，不依赖任何具体的传输方式。
"""

from .core import (
    BOLTZMANN_CONSTANT,
    AnnealConfig,
    Annealer,
    AnnealObserver,
    LoggingObserver,
    acceptance_probability,
    build_config,
)
from .history import HistoryObserver
from .neighborhoods import CoefficientNeighborhood

__all__ = [
    "BOLTZMANN_CONSTANT",
    "AnnealConfig",
    "Annealer",
    "AnnealObserver",
    "LoggingObserver",
    "HistoryObserver",
    "CoefficientNeighborhood",
    "acceptance_probability",
    "build_config",
]
