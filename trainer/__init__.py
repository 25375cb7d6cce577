"""
规则集调优的“应用层”。

当前项目中，主要暴露：
- `RulesetTuner`：把裁判组、邻域与退火参数组装成一次调优；
- `JudgePanelEvaluator`：并行询问裁判并汇总为代价的参考评估器。
"""

from .judges import JudgePanelEvaluator, load_judges
from .tuner import RulesetTuner

__all__ = ["JudgePanelEvaluator", "RulesetTuner", "load_judges"]
