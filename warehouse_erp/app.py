import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .api import catalog, documents, stock
from .services.exceptions import (
    DocumentNotFound,
    DocumentValidationError,
    InsufficientStock,
    QueryFailure,
    SagaStepFailed,
)
from .settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
log = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_TITLE)

app.include_router(stock.router)
app.include_router(documents.router)
app.include_router(catalog.router)


# === Ошибки складского учёта → HTTP ===

@app.exception_handler(QueryFailure)
async def handle_query_failure(request: Request, exc: QueryFailure):
    # Остаток неизвестен — это не ноль, отдаём 503
    log.error("Stock query failed on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Stock data is temporarily unavailable", "query": exc.query_name},
    )


@app.exception_handler(InsufficientStock)
async def handle_insufficient_stock(request: Request, exc: InsufficientStock):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={
            "detail": str(exc),
            "warehouse_id": exc.warehouse_id,
            "product_type": exc.product_type,
            "product_id": exc.product_id,
            "requested": str(exc.requested),
            "available": str(exc.available),
        },
    )


@app.exception_handler(DocumentNotFound)
async def handle_not_found(request: Request, exc: DocumentNotFound):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(DocumentValidationError)
async def handle_validation_error(request: Request, exc: DocumentValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


@app.exception_handler(SagaStepFailed)
async def handle_saga_failed(request: Request, exc: SagaStepFailed):
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc), "step": exc.step, "compensated": exc.compensated},
    )


@app.get("/health")
def health():
    return {"status": "ok"}
