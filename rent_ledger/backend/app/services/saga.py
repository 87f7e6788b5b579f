# backend/app/services/saga.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

log = logging.getLogger("rentledger.saga")


@dataclass(frozen=True)
class SagaStep:
    """
    forward(state) -> value stored under state[name]
    compensate(state) undoes forward; None means the step has nothing to undo.
    """

    name: str
    forward: Callable[[dict[str, Any]], Any]
    compensate: Optional[Callable[[dict[str, Any]], None]] = None


class SagaFailed(Exception):
    def __init__(
        self,
        saga: str,
        step: str,
        cause: BaseException,
        compensated: list[str],
        compensation_errors: list[str],
    ):
        super().__init__(f"{saga}: step '{step}' failed: {cause}")
        self.saga = saga
        self.step = step
        self.cause = cause
        self.compensated = compensated
        self.compensation_errors = compensation_errors

    @property
    def fully_compensated(self) -> bool:
        return not self.compensation_errors


@dataclass
class Saga:
    """
    Ordered forward steps. When a step raises, the steps that already completed
    are compensated in reverse order, then SagaFailed is raised.

    Steps run inside the caller's transaction; committing (or rolling back) is
    the caller's job once run() returns or raises.
    """

    name: str
    steps: list[SagaStep] = field(default_factory=list)

    def run(self, state: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        st: dict[str, Any] = state if state is not None else {}
        done: list[SagaStep] = []

        for step in self.steps:
            try:
                st[step.name] = step.forward(st)
            except Exception as e:
                compensated, errors = self._unwind(done, st)
                log.warning(
                    "saga %s failed at %s; compensated=%s errors=%s",
                    self.name,
                    step.name,
                    compensated,
                    errors,
                    exc_info=True,
                )
                raise SagaFailed(self.name, step.name, e, compensated, errors) from e
            done.append(step)

        return st

    def _unwind(self, done: list[SagaStep], st: dict[str, Any]) -> tuple[list[str], list[str]]:
        compensated: list[str] = []
        errors: list[str] = []
        for step in reversed(done):
            if step.compensate is None:
                continue
            try:
                step.compensate(st)
                compensated.append(step.name)
            except Exception:
                log.exception("saga %s: compensation for %s failed", self.name, step.name)
                errors.append(step.name)
        return compensated, errors
