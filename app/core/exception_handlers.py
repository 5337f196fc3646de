# app/core/exception_handlers.py

"""
도메인/저장소 예외를 HTTP 응답으로 변환하는 처리기를 등록하는 모듈입니다.

- InventoryError: 예외에 정의된 상태 코드와 {"detail", "code", "context"} 본문.
- TransactionConflict: 503, 재시도 가능 표시.
- StorageError: 500, 작업이 반영되지 않았음을 알림.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.exceptions import InventoryError, StorageError

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
        if exc.retryable:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"detail": exc.message, "code": "transaction_conflict", "retryable": True},
            )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": exc.message, "code": "storage_error", "retryable": False},
        )
