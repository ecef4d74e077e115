from __future__ import annotations

import re
from datetime import date

from sqlalchemy.orm import Session
import sqlalchemy as sa

from warehouse_erp.models.inventory_count import InventoryCount
from warehouse_erp.models.warehouse import Warehouse

_COUNT_RE = re.compile(r"COUNT-\d+-(\d+)")
_WAREHOUSE_RE = re.compile(r"WH(\d+)")


def build_count_code(db: Session, on_date: date | None = None) -> str:
    """
    Номер инвентаризации: COUNT-<YYYY>-<SEQ>
    Пример: COUNT-2026-007
    """
    year = (on_date or date.today()).year
    codes = db.execute(
        sa.select(InventoryCount.count_code).where(InventoryCount.count_code.like(f"COUNT-{year}-%"))
    ).scalars().all()
    return f"COUNT-{year}-{_next_seq(codes, _COUNT_RE):03d}"


def build_warehouse_code(db: Session) -> str:
    """Код склада: WH001, WH002, ..."""
    codes = db.execute(sa.select(Warehouse.code)).scalars().all()
    return f"WH{_next_seq(codes, _WAREHOUSE_RE):03d}"


def _next_seq(codes, pattern: re.Pattern) -> int:
    # берём максимум, а не количество — коды могли удаляться
    seqs = [int(m.group(1)) for m in (pattern.fullmatch(c or "") for c in codes) if m]
    return max(seqs, default=0) + 1
