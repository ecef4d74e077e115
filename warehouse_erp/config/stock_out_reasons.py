"""
Справочник причин списания (stock_out.reason).

Причина — только метка для журнала и отчётов: на расчёт остатка влияет
лишь привязка списания к документу-источнику (transfer_id / invoice_id).
"""

TRANSFER = "transfer"
INVENTORY_LOSS = "inventory_loss"
INVOICE_RETURN = "invoice_return"
CONSUMPTION = "consumption"
OTHER = "other"

REASON_LIST: list[dict] = [
    {"code": TRANSFER, "label": "Перемещение между складами", "manual": False, "order": 10},
    {"code": INVENTORY_LOSS, "label": "Недостача по инвентаризации", "manual": False, "order": 20},
    {"code": INVOICE_RETURN, "label": "Возврат накладной", "manual": False, "order": 30},
    {"code": CONSUMPTION, "label": "Расход", "manual": True, "order": 40},
    {"code": OTHER, "label": "Прочее списание", "manual": True, "order": 50},
]

REASON_BY_CODE: dict[str, dict] = {r["code"]: r for r in REASON_LIST}


def label_by_code(code: str | None) -> str | None:
    """Из кода причины ("transfer") → подпись для журнала."""
    if not code:
        return None
    r = REASON_BY_CODE.get(code)
    return r["label"] if r else code


def manual_reasons() -> list[str]:
    """
    Причины, с которыми списание можно провести вручную.
    Остальные создаются только сервисами (перемещение, возврат, инвентаризация).
    """
    return [r["code"] for r in REASON_LIST if r["manual"]]
