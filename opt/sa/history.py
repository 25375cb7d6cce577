from __future__ import annotations

import csv
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Optional

from opt.base import AnnealReport, SearchState
from opt.sa.core import AnnealConfig, AnnealObserver


logger = logging.getLogger("ruleset_tuner.opt.sa")

HISTORY_HEADER = [
    "step",
    "temperature",
    "attempts",
    "start_cost",
    "current_cost",
    "best_cost",
    "early_exit",
    "current_solution",
    "best_solution",
]


def _to_jsonable(solution: Any) -> Any:
    if isinstance(solution, tuple):
        return list(solution)
    return solution


class HistoryObserver(AnnealObserver):
    """
    把一次退火的过程持久化到目录中，便于事后追踪：

    - <run_id>_meta.json：运行开始时的参数与初始解；
    - <run_id>_history.csv：每个温度平台一行；
    - <run_id>_best.json：运行结束时的最优结果汇总。

    这些文件只是诊断信息，写入失败只记录日志，不打断退火主流程。
    """

    def __init__(self, out_dir: Path, run_id: Optional[str] = None) -> None:
        self.out_dir = Path(out_dir)
        self.run_id = run_id or uuid.uuid4().hex[:8]
        self._config: Optional[AnnealConfig] = None

    @property
    def meta_path(self) -> Path:
        return self.out_dir / f"{self.run_id}_meta.json"

    @property
    def history_path(self) -> Path:
        return self.out_dir / f"{self.run_id}_history.csv"

    @property
    def best_path(self) -> Path:
        return self.out_dir / f"{self.run_id}_best.json"

    def _write_json(self, path: Path, payload: Dict[str, Any]) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, default=repr),
            encoding="utf-8",
        )

    def on_start(self, config: AnnealConfig, state: SearchState) -> None:
        self._config = config
        try:
            self._write_json(
                self.meta_path,
                {
                    "run_id": self.run_id,
                    "config": config.model_dump(),
                    "initial_solution": _to_jsonable(state.current_solution),
                    "initial_cost": state.current_cost,
                },
            )
            logger.info("已初始化退火运行元数据日志：%s", self.meta_path)
        except Exception:  # noqa: BLE001
            logger.exception("初始化退火运行日志时出错（已忽略）。")

    def on_plateau_end(
        self,
        step: int,
        attempts: int,
        start_cost: float,
        early_exit: bool,
        state: SearchState,
    ) -> None:
        """将单个温度平台的结果追加写入 CSV。"""
        try:
            self.out_dir.mkdir(parents=True, exist_ok=True)
            path = self.history_path
            write_header = not path.exists() or path.stat().st_size == 0
            with path.open("a", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                if write_header:
                    writer.writerow(HISTORY_HEADER)
                writer.writerow(
                    [
                        step,
                        float(state.temperature),
                        attempts,
                        float(start_cost),
                        float(state.current_cost),
                        float(state.best_cost),
                        int(early_exit),
                        json.dumps(_to_jsonable(state.current_solution), default=repr),
                        json.dumps(_to_jsonable(state.best_solution), default=repr),
                    ]
                )
        except Exception:  # noqa: BLE001
            logger.exception("写入退火历史 CSV 时出错（已忽略）。")

    def on_finish(self, report: AnnealReport) -> None:
        try:
            self._write_json(
                self.best_path,
                {
                    "run_id": self.run_id,
                    "config": self._config.model_dump() if self._config else None,
                    "best_solution": _to_jsonable(report.best_solution),
                    "best_cost": report.best_cost,
                    "attempts": report.attempts,
                    "accepted_worse": report.accepted_worse,
                    "cache_hits": report.cache_hits,
                    "cache_misses": report.cache_misses,
                    "hit_rate": report.hit_rate,
                    "evaluations": report.evaluations,
                    "final_temperature": report.final_temperature,
                },
            )
            logger.info("已写入退火最优结果日志：%s", self.best_path)
        except Exception:  # noqa: BLE001
            logger.exception("写入退火最优结果 JSON 时出错（已忽略）。")
