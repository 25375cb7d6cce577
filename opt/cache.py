from __future__ import annotations

"""
单飞（single-flight）记忆化缓存。

映射的值是 asyncio.Task 本身，而不是它最终的结果：
同一个键在评估尚未完成时再次被查询，会等待同一个 Task，
不会启动第二次昂贵的评估。
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Hashable, Iterator


logger = logging.getLogger("ruleset_tuner.cache")


class SingleFlightCache:
    """键 → 进行中或已完成的评估任务。条目在一次运行内不淘汰、不失效。"""

    def __init__(self) -> None:
        self._tasks: Dict[Hashable, "asyncio.Task[float]"] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._tasks

    def keys(self) -> Iterator[Hashable]:
        return iter(self._tasks.keys())

    async def get_or_compute(
        self,
        key: Hashable,
        factory: Callable[[], Awaitable[float]],
    ) -> float:
        """
        如果 key 已存在（无论已完成还是仍在进行中），直接等待已有任务；
        否则调用一次 factory，并把包装后的 Task 存入映射再等待。

        检查与写入之间没有挂起点，因此在 asyncio 下是原子的。
        """
        task = self._tasks.get(key)
        if task is not None:
            self.hits += 1
            logger.debug("缓存命中：key=%s, done=%s", key, task.done())
        else:
            self.misses += 1
            task = asyncio.ensure_future(factory())
            self._tasks[key] = task
            logger.debug("缓存未命中，开始评估：key=%s", key)

        # shield：某个等待方被取消时，不影响其他共享该任务的等待方
        return await asyncio.shield(task)
