# warehouse_erp/api/documents.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..config.stock_out_reasons import REASON_LIST, label_by_code
from ..db import get_db
from ..deps import get_catalog_cache, get_stock_service
from ..repositories.catalog_repository import get_warehouse
from ..schemas.documents import (
    CountSheetRowRead,
    InventoryCountCreate,
    InventoryCountRead,
    InvoiceCreate,
    InvoiceRead,
    InvoiceReturn,
    StockOutCreate,
    StockOutRead,
    TransferCreate,
    TransferRead,
)
from ..services.catalog_cache import ProductCatalogCache
from ..services.documents_common import DocumentLine
from ..services.inventory_count_service import CountInput, build_count_sheet, create_inventory_count
from ..services.invoice_service import create_invoice, list_invoices, return_invoice
from ..services.stock_calculator import StockService
from ..services.stock_out_service import list_stock_outs, post_stock_out
from ..services.transfer_service import create_transfer

router = APIRouter(
    prefix="/api",
    tags=["Documents"],
)


def _stock_out_read(obj) -> StockOutRead:
    return StockOutRead.model_validate(obj).model_copy(update={"reason_label": label_by_code(obj.reason)})


# ---------- Накладные ----------

@router.get("/invoices", response_model=list[InvoiceRead])
def api_list_invoices(
    warehouse_id: Optional[int] = None,
    status_: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_invoices(db, warehouse_id=warehouse_id, status=status_, skip=skip, limit=limit)


@router.post("/invoices", response_model=InvoiceRead, status_code=status.HTTP_201_CREATED)
def api_create_invoice(data: InvoiceCreate, db: Session = Depends(get_db)):
    return create_invoice(
        db,
        warehouse_id=data.warehouse_id,
        invoice_code=data.invoice_code,
        supplier=data.supplier,
        invoice_date=data.date,
        lines=[
            DocumentLine(l.product_type, l.product_id, l.quantity, l.unit_price)
            for l in data.lines
        ],
    )


@router.post("/invoices/{invoice_id}/return", response_model=InvoiceRead)
def api_return_invoice(
    invoice_id: int,
    data: Optional[InvoiceReturn] = None,
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
):
    """Возврат накладной поставщику: списание invoice_return + статус returned."""
    return return_invoice(
        db,
        stock_service,
        invoice_id=invoice_id,
        return_date=data.date if data else None,
    )


# ---------- Перемещения ----------

@router.post("/transfers", response_model=TransferRead, status_code=status.HTTP_201_CREATED)
def api_create_transfer(
    data: TransferCreate,
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
):
    return create_transfer(
        db,
        stock_service,
        from_warehouse_id=data.from_warehouse_id,
        to_warehouse_id=data.to_warehouse_id,
        transfer_date=data.date,
        lines=[
            DocumentLine(l.product_type, l.product_id, l.quantity, l.unit_price, l.batch_date)
            for l in data.lines
        ],
    )


# ---------- Списания ----------

@router.get("/stock-outs/reasons")
def api_stock_out_reasons():
    """Справочник причин списания (manual — можно выбрать в ручном списании)."""
    return [
        {"code": r["code"], "label": r["label"], "manual": r["manual"]}
        for r in sorted(REASON_LIST, key=lambda r: r["order"])
    ]


@router.get("/stock-outs", response_model=list[StockOutRead])
def api_list_stock_outs(
    warehouse_id: Optional[int] = None,
    reason: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return [
        _stock_out_read(s)
        for s in list_stock_outs(db, warehouse_id=warehouse_id, reason=reason, skip=skip, limit=limit)
    ]


@router.post("/stock-outs", response_model=StockOutRead, status_code=status.HTTP_201_CREATED)
def api_post_stock_out(
    data: StockOutCreate,
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
):
    stock_out = post_stock_out(
        db,
        stock_service,
        warehouse_id=data.warehouse_id,
        out_date=data.date,
        reason=data.reason,
        lines=[
            DocumentLine(l.product_type, l.product_id, l.quantity, l.unit_price, l.batch_date)
            for l in data.lines
        ],
    )
    return _stock_out_read(stock_out)


# ---------- Инвентаризация ----------

@router.get("/inventory-counts/sheet/{warehouse_id}", response_model=list[CountSheetRowRead])
def api_count_sheet(
    warehouse_id: int,
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
    catalog: ProductCatalogCache = Depends(get_catalog_cache),
):
    """Лист пересчёта: расчётные остатки склада на сейчас."""
    get_warehouse(db, warehouse_id)
    return build_count_sheet(stock_service, catalog, warehouse_id)


@router.post("/inventory-counts", response_model=InventoryCountRead, status_code=status.HTTP_201_CREATED)
def api_create_inventory_count(
    data: InventoryCountCreate,
    db: Session = Depends(get_db),
    stock_service: StockService = Depends(get_stock_service),
):
    return create_inventory_count(
        db,
        stock_service,
        warehouse_id=data.warehouse_id,
        count_date=data.date,
        count_code=data.count_code,
        rows=[CountInput(r.product_type, r.product_id, r.real_qty) for r in data.rows],
    )
