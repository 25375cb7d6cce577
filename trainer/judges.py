from __future__ import annotations

"""
参考实现的代价函数：把候选系数广播给一组“裁判”，汇总对/错结果。

每个裁判是一个 LangChain Runnable（普通函数或协程函数会被包装成 RunnableLambda），
输入为一条消息：
    {"type": "rulesetSucceeded", "trainable_id": ..., "coeffs": [...]}
返回值为真表示该裁判认为规则集在这组系数下判断正确。
"""

import asyncio
import importlib
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from langchain_core.runnables import Runnable, RunnableLambda

from opt.base import ConfigurationError


logger = logging.getLogger("ruleset_tuner.judges")

JudgeLike = Union[Runnable, Callable[[Dict[str, Any]], Any]]


def as_runnable(judge: JudgeLike) -> Runnable:
    """把裁判统一成 Runnable。"""
    if isinstance(judge, Runnable):
        return judge
    if callable(judge):
        return RunnableLambda(judge)
    raise ConfigurationError(f"裁判必须是 Runnable 或可调用对象，但实际为: {type(judge)!r}")


def load_judges(target: str) -> List[Runnable]:
    """
    按 "module:callable" 导入裁判工厂并调用，返回裁判列表。

    工厂不接受参数，返回一个可迭代的裁判集合。
    """
    mod_name, _, fn_name = target.partition(":")
    if not mod_name or not fn_name:
        raise ConfigurationError(f"裁判工厂格式应为 module:callable，但实际为: {target!r}")
    try:
        module = importlib.import_module(mod_name)
        factory = getattr(module, fn_name)
    except (ImportError, AttributeError) as exc:
        raise ConfigurationError(f"无法导入裁判工厂 {target}: {exc}") from exc

    try:
        judges = [as_runnable(j) for j in factory()]
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(f"裁判工厂 {target} 调用失败或返回值不可迭代: {exc}") from exc
    logger.info("已加载裁判工厂 %s，共 %d 个裁判。", target, len(judges))
    return judges


class JudgePanelEvaluator:
    """
    并行询问全部裁判，全部返回后再给出代价：

        cost = 1 - 成功数 / 裁判总数

    超时的裁判记为 None：不算成功，但仍占用分母中的一个名额。
    任何裁判抛出异常都会让本次评估失败。
    """

    def __init__(
        self,
        judges: Iterable[JudgeLike],
        trainable_id: str,
        timeout: Optional[float] = None,
    ) -> None:
        self.judges: List[Runnable] = [as_runnable(j) for j in judges]
        if not self.judges:
            raise ConfigurationError("裁判列表不能为空。")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError("裁判超时时间必须为正数。")
        self.trainable_id = trainable_id
        self.timeout = timeout

    def build_message(self, solution: Any) -> Dict[str, Any]:
        return {
            "type": "rulesetSucceeded",
            "trainable_id": self.trainable_id,
            "coeffs": list(solution),
        }

    async def _ask(self, index: int, judge: Runnable, message: Dict[str, Any]) -> Any:
        if self.timeout is None:
            return await judge.ainvoke(message)
        try:
            return await asyncio.wait_for(judge.ainvoke(message), self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "裁判 #%d 在 %.3g 秒内没有响应，本次不计为成功。", index, self.timeout
            )
            return None

    async def cost(self, solution: Any) -> float:
        message = self.build_message(solution)
        tasks = [
            asyncio.ensure_future(self._ask(i, judge, message))
            for i, judge in enumerate(self.judges)
        ]
        try:
            verdicts = await asyncio.gather(*tasks)
        finally:
            # 任一裁判失败时，取消其余仍在进行的裁判，并等待它们真正结束
            pending = [t for t in tasks if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        successes = sum(1 for v in verdicts if v)
        logger.info(
            "裁判结果：trainable_id=%s, coeffs=%s, successes=%d/%d, verdicts=%s",
            self.trainable_id,
            message["coeffs"],
            successes,
            len(verdicts),
            verdicts,
        )
        return 1.0 - successes / len(verdicts)
