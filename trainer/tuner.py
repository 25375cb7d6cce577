from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Dict, Iterable, Optional, Union

from opt.base import AnnealReport, Neighborhood
from opt.sa import AnnealConfig, Annealer, AnnealObserver

from .judges import JudgeLike, JudgePanelEvaluator


logger = logging.getLogger("ruleset_tuner.tuner")


class RulesetTuner:
    """
    把“裁判组 + 规则集 ID + 邻域 + 退火参数”组装成一次调优。

    每次 tune() 都新建 Annealer，因此缓存只在单次调优内有效。
    """

    def __init__(
        self,
        judges: Iterable[JudgeLike],
        trainable_id: str,
        neighborhood: Neighborhood,
        config: Union[AnnealConfig, Dict[str, Any], None] = None,
        judge_timeout: Optional[float] = None,
        observers: Optional[Iterable[AnnealObserver]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.trainable_id = trainable_id
        self.evaluator = JudgePanelEvaluator(judges, trainable_id, timeout=judge_timeout)
        self.neighborhood = neighborhood
        self.config = config
        self.observers = list(observers) if observers is not None else None
        self.rng = rng

    def build_annealer(self) -> Annealer:
        return Annealer(
            self.evaluator,
            self.neighborhood,
            self.config,
            rng=self.rng,
            observers=self.observers,
        )

    async def tune(self) -> AnnealReport:
        logger.info(
            "开始调优规则集 %s，裁判数=%d", self.trainable_id, len(self.evaluator.judges)
        )
        report = await self.build_annealer().run()
        logger.info(
            "规则集 %s 调优完成：best=%s, cost=%s",
            self.trainable_id,
            report.best_solution,
            report.best_cost,
        )
        return report

    def tune_sync(self) -> AnnealReport:
        return asyncio.run(self.tune())
