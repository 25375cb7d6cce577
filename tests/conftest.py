from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Dict, List, Sequence

import pytest

# Ensure project root is on sys.path for package imports like `opt.*`
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ScriptedNeighborhood:
    """Walks a fixed list of solutions: index 0 is initial, each transition returns the next."""

    def __init__(self, solutions: Sequence[Any]) -> None:
        self.solutions = list(solutions)
        self.position = 0
        self.initial_calls = 0
        self.transition_calls = 0

    def initial_solution(self) -> Any:
        self.initial_calls += 1
        self.position = 0
        return self.solutions[0]

    def transition(self, solution: Any) -> Any:
        self.transition_calls += 1
        self.position = (self.position + 1) % len(self.solutions)
        return self.solutions[self.position]


class TableEvaluator:
    """Looks costs up in a dict keyed by solution and records every call."""

    def __init__(self, costs: Dict[Any, float], delay: float = 0.0) -> None:
        self.costs = costs
        self.delay = delay
        self.calls: List[Any] = []

    async def cost(self, solution: Any) -> float:
        self.calls.append(solution)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.costs[solution]


@pytest.fixture
def scripted_neighborhood():
    return ScriptedNeighborhood


@pytest.fixture
def table_evaluator():
    return TableEvaluator
