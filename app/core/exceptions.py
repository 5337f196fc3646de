# app/core/exceptions.py

"""
재고 엔진의 예외 체계를 정의하는 모듈입니다.

- `InventoryError` 하위 클래스는 예상 가능한 도메인 결과입니다.
  호출자에게 구조화된 사유(context)와 함께 전달되며, 감싸고 있는 트랜잭션은 롤백됩니다.
- `StorageError` 하위 클래스는 저장소 계층의 치명적 오류입니다.
  작업은 적용되지 않은 것으로 간주되며, `TransactionConflict`만 재시도 가능합니다.
"""

from typing import Any, Dict, Optional

from fastapi import status


class InventoryError(Exception):
    """모든 도메인 오류의 기본 클래스입니다."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "inventory_error"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "code": self.code, "context": self.context}


class ValidationError(InventoryError):
    """필수 필드 누락 또는 잘못된 값."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "validation_error"

    def __init__(self, message: str, *, fields: Optional[list] = None, **context: Any):
        super().__init__(message, fields=fields or [], **context)


class TypeNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "type_not_found"

    def __init__(self, *, barcode: Optional[str] = None, type_id: Optional[int] = None):
        if barcode is not None:
            message = f"No inventory type matches barcode '{barcode}'."
        else:
            message = f"Inventory type {type_id} not found."
        super().__init__(message, barcode=barcode, type_id=type_id)


class DepartmentNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "department_not_found"

    def __init__(self, department_id: int):
        super().__init__(f"Department {department_id} not found.", department_id=department_id)


class DuplicateKey(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "duplicate_key"

    def __init__(self, *, field: str, value: str, conflicting_type_id: Optional[int] = None):
        super().__init__(
            f"Inventory type {field} '{value}' collides with an existing type.",
            field=field, value=value, conflicting_type_id=conflicting_type_id,
        )


class TypeInUse(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "type_in_use"

    def __init__(self, *, type_id: int, item_count: int, history_count: int, reason: str = "delete"):
        super().__init__(
            f"Inventory type {type_id} is referenced by {item_count} item(s) "
            f"and {history_count} history record(s); cannot {reason} it.",
            type_id=type_id, item_count=item_count, history_count=history_count,
        )


class InsufficientStock(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "insufficient_stock"

    def __init__(self, *, type_id: int, type_name: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for '{type_name}': requested {requested}, available {available}.",
            type_id=type_id, requested=requested, available=available,
        )


class ItemNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "item_not_found"

    def __init__(self, barcode: str, *, recorded_as_unattributed: bool = False):
        message = f"No tracked item with barcode '{barcode}'."
        if recorded_as_unattributed:
            message += " The scan has been recorded for reconciliation."
        super().__init__(message, barcode=barcode, recorded_as_unattributed=recorded_as_unattributed)


# 현재 상태별 안내 문구. 호출자가 구체적인 메시지를 표시할 수 있도록 합니다.
STATUS_PHRASES = {
    "distributed": "is already distributed",
    "returned": "has already been returned",
    "used": "has already been used",
    "expired": "has expired",
    "lost": "is recorded as lost",
}


class InvalidStateTransition(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state_transition"

    def __init__(
        self, *, barcode: str, current_status: str, action: str,
        recorded_as_unattributed: bool = False,
    ):
        phrase = STATUS_PHRASES.get(current_status, f"is in state '{current_status}'")
        message = f"Item '{barcode}' {phrase} and cannot be processed for {action}."
        if recorded_as_unattributed:
            message += " The scan has been recorded for reconciliation."
        super().__init__(
            message, barcode=barcode, current_status=current_status, action=action,
            recorded_as_unattributed=recorded_as_unattributed,
        )


class StorageError(Exception):
    """저장소 I/O 실패. 로컬에서 복구하지 않고 치명적 오류로 전파합니다."""

    retryable: bool = False

    def __init__(self, message: str = "Storage failure; the operation was not applied."):
        super().__init__(message)
        self.message = message


class TransactionConflict(StorageError):
    """잠금 대기 초과, 직렬화 실패, 교착 상태. 호출자가 재시도 여부를 결정합니다."""

    retryable = True

    def __init__(self, message: str = "Concurrent update conflict; the operation was rolled back and may be retried."):
        super().__init__(message)


class AppendOnlyViolation(StorageError):
    """이력/미확인 스캔 레코드의 수정 또는 삭제 시도."""

    def __init__(self, entity: str):
        super().__init__(f"{entity} records are append-only and cannot be modified or deleted.")
        self.entity = entity
