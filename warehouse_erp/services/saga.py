# warehouse_erp/services/saga.py
"""
Многошаговая запись документа с компенсацией.

Каждый шаг коммитится отдельно (шапка → строки → зеркальный документ → ...).
Если шаг падает, для уже выполненных шагов в обратном порядке вызываются
компенсации (удаление созданных строк). Между шагами документ виден
частично, расчёт остатка на промежуточных состояниях остаётся корректным.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from warehouse_erp.services.exceptions import SagaStepFailed

log = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[Session, Dict[str, Any]], Any]
    compensation: Optional[Callable[[Session, Dict[str, Any]], None]] = None


class Saga:
    """
    Последовательность шагов записи.

    action(db, ctx) — выполняет шаг, результат кладётся в ctx[step.name].
    compensation(db, ctx) — откатывает шаг (обычно delete по id из ctx).
    """

    def __init__(self, name: str, db: Session):
        self.name = name
        self.db = db
        self.steps: List[SagaStep] = []

    def step(self, name: str, action, compensation=None) -> "Saga":
        self.steps.append(SagaStep(name, action, compensation))
        return self

    def run(self) -> Dict[str, Any]:
        ctx: Dict[str, Any] = {}
        done: List[SagaStep] = []

        for step in self.steps:
            try:
                ctx[step.name] = step.action(self.db, ctx)
                self.db.commit()
            except Exception as e:
                self.db.rollback()
                log.exception("%s: step '%s' failed, compensating %d steps", self.name, step.name, len(done))
                compensated = self._compensate(done, ctx)
                raise SagaStepFailed(self.name, step.name, e, compensated=compensated) from e
            done.append(step)

        return ctx

    def _compensate(self, done: List[SagaStep], ctx: Dict[str, Any]) -> bool:
        ok = True
        for step in reversed(done):
            if step.compensation is None:
                continue
            try:
                step.compensation(self.db, ctx)
                self.db.commit()
            except Exception:
                self.db.rollback()
                ok = False
                log.exception("%s: compensation of step '%s' failed", self.name, step.name)
        return ok
