"""
Historical import endpoints: the backup / validate / import operation plus
log, backup and RFV status routes.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from app.api.dependencies import get_invoking_user_id
from app.domain.historical_import import ImporterResult, ValidationResult
from app.schemas.historical_import import (
    BackupListResponse,
    BackupMetadataResponse,
    BackupResponse,
    BothValidationResponse,
    FailureResponse,
    HistoricalImportRequest,
    ImportLogListResponse,
    ImportLogResponse,
    ImportResponse,
    ImportSetResponse,
    RFVResponse,
    ValidationResultResponse,
)
from app.services.errors import BackupError, CircuitBreakerTripped, HistoricalImportError
from app.services.historical_import_service import (
    HistoricalImportService,
    get_historical_import_service,
)
from db.models.commercial_record import RecordSetType
from db.session import get_db

router = APIRouter(tags=["historical-import"])


@router.post("/historical-import")
def historical_import(
    payload: dict[str, Any] = Body(...),
    invoking_user_id: str | None = Depends(get_invoking_user_id),
    db: Session = Depends(get_db),
    service: HistoricalImportService = Depends(get_historical_import_service),
) -> JSONResponse:
    """
    Run one action. Synchronous so a client disconnect cannot interrupt an
    import that already started.
    """

    try:
        request = HistoricalImportRequest.model_validate(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.errors(include_url=False, include_context=False),
        ) from exc

    if request.action == "backup":
        return _backup(request, service=service, db=db, invoking_user_id=invoking_user_id)
    if request.action == "validate":
        return _validate(request, service=service)
    return _import(request, service=service, db=db, invoking_user_id=invoking_user_id)


@router.get("/historical-import/logs", response_model=ImportLogListResponse)
def list_import_logs(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    file_type: str | None = Query(default=None, description="Optional file type filter"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    service: HistoricalImportService = Depends(get_historical_import_service),
) -> ImportLogListResponse:
    logs = service.list_logs(db=db, limit=limit, status=status_filter, file_type=file_type)
    return ImportLogListResponse(logs=[ImportLogResponse.model_validate(log) for log in logs])


@router.get("/historical-import/logs/{log_id}", response_model=ImportLogResponse)
def get_import_log(
    log_id: UUID,
    db: Session = Depends(get_db),
    service: HistoricalImportService = Depends(get_historical_import_service),
) -> ImportLogResponse:
    log = service.get_log(db=db, log_id=log_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import log not found: {log_id}",
        )
    return ImportLogResponse.model_validate(log)


@router.get("/historical-import/backups", response_model=BackupListResponse)
def list_backups(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    service: HistoricalImportService = Depends(get_historical_import_service),
) -> BackupListResponse:
    backups = service.list_backups(db=db, limit=limit)
    return BackupListResponse(backups=[BackupMetadataResponse.model_validate(b) for b in backups])


@router.post("/historical-import/rfv/recalculate")
def recalculate_rfv(
    db: Session = Depends(get_db),
    service: HistoricalImportService = Depends(get_historical_import_service),
) -> JSONResponse:
    outcome = service.recalculate_rfv(db=db)
    status_code = status.HTTP_200_OK if outcome.success else status.HTTP_500_INTERNAL_SERVER_ERROR
    return _json(RFVResponse.from_outcome(outcome), status_code=status_code)


# ---------------------------------------------------------------------------
# Action handlers
# ---------------------------------------------------------------------------


def _backup(
    request: HistoricalImportRequest,
    *,
    service: HistoricalImportService,
    db: Session,
    invoking_user_id: str | None,
) -> JSONResponse:
    try:
        backup = service.backup(db=db, file_type=request.file_type, invoking_user_id=invoking_user_id)
    except BackupError as exc:
        return _json(
            FailureResponse(error=str(exc), phase=exc.phase),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return _json(
        BackupResponse(
            backup_id=backup.backup_id,
            revenue_count=backup.revenue_count,
            executed_count=backup.executed_count,
        )
    )


def _validate(request: HistoricalImportRequest, *, service: HistoricalImportService) -> JSONResponse:
    validations = service.validate(
        file_type=request.file_type,
        data=request.rows(),
        executado_data=request.executado_rows(),
        period_start=request.period_start,
        period_end=request.period_end,
    )
    return _json(_validation_payload(validations))


def _import(
    request: HistoricalImportRequest,
    *,
    service: HistoricalImportService,
    db: Session,
    invoking_user_id: str | None,
) -> JSONResponse:
    try:
        outcome = service.run_import(
            db=db,
            file_type=request.file_type,
            data=request.rows(),
            executado_data=request.executado_rows(),
            clear_old_data=request.clear_old_data,
            period_start=request.period_start,
            period_end=request.period_end,
            file_name=request.file_name,
            invoking_user_id=invoking_user_id,
        )
    except CircuitBreakerTripped as exc:
        return _json(
            FailureResponse(
                error=str(exc),
                phase=exc.phase,
                validation=_validation_payload(exc.validation),
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    except HistoricalImportError as exc:
        return _json(
            FailureResponse(
                error=str(exc),
                phase=exc.phase,
                vendas=_set_payload(exc.results.get(RecordSetType.VENDAS), service),
                executado=_set_payload(exc.results.get(RecordSetType.EXECUTADO), service),
                rfv=RFVResponse.from_outcome(exc.rfv) if exc.rfv is not None else None,
            ),
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return _json(
        ImportResponse(
            backup_id=outcome.backup_id,
            vendas=_set_payload(outcome.vendas, service),
            executado=_set_payload(outcome.executado, service),
            rfv=RFVResponse.from_outcome(outcome.rfv),
            duration_seconds=outcome.duration_seconds,
            log_id=outcome.log_id,
        )
    )


def _set_payload(
    result: ImporterResult | None,
    service: HistoricalImportService,
) -> ImportSetResponse | None:
    if result is None:
        return None
    return ImportSetResponse.from_result(result, max_messages=service.max_reported_messages)


def _validation_payload(
    validations: dict[str, ValidationResult],
) -> ValidationResultResponse | BothValidationResponse:
    if len(validations) == 2:
        return BothValidationResponse(
            vendas=ValidationResultResponse.from_result(validations[RecordSetType.VENDAS]),
            executado=ValidationResultResponse.from_result(validations[RecordSetType.EXECUTADO]),
        )
    (result,) = validations.values()
    return ValidationResultResponse.from_result(result)


def _json(model: BaseModel, *, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True),
    )
