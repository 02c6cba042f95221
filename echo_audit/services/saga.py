"""
Ordered multi-key mutations over the key-value store.

The store has no transactions, so operations that touch several keys
(saving an audit, cascading a project delete) are expressed as a list of
named steps. Steps run in order; when one fails, the compensations of
the steps that already completed run in reverse and the original error
is re-raised.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

import structlog

logger = structlog.get_logger(__name__)

StepAction = Callable[[], Awaitable[None]]


@dataclass
class SagaStep:
    name: str
    action: StepAction
    compensate: Optional[StepAction] = None


@dataclass
class SagaResult:
    name: str
    completed: List[str] = field(default_factory=list)


class Saga:
    """A named sequence of store mutations."""

    def __init__(self, name: str, **context):
        self.name = name
        self.context = context
        self.steps: List[SagaStep] = []

    def add_step(self, name: str, action: StepAction, compensate: Optional[StepAction] = None) -> "Saga":
        self.steps.append(SagaStep(name, action, compensate))
        return self

    async def run(self) -> SagaResult:
        result = SagaResult(name=self.name)
        done: List[SagaStep] = []

        for step in self.steps:
            try:
                await step.action()
            except Exception as exc:
                logger.error(
                    "Saga step failed",
                    saga=self.name,
                    step=step.name,
                    completed=result.completed,
                    error=str(exc),
                    **self.context,
                )
                await self._compensate(done)
                raise
            done.append(step)
            result.completed.append(step.name)

        logger.debug("Saga completed", saga=self.name, steps=result.completed, **self.context)
        return result

    async def _compensate(self, done: List[SagaStep]) -> None:
        for step in reversed(done):
            if step.compensate is None:
                continue
            try:
                await step.compensate()
            except Exception as exc:
                # Readers tolerate the leftover state; keep unwinding.
                logger.warning(
                    "Saga compensation failed",
                    saga=self.name,
                    step=step.name,
                    error=str(exc),
                    **self.context,
                )
