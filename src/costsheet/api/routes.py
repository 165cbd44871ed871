"""API routes for costsheet."""

from typing import Any, Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, Field, ValidationError

from ..config import settings
from ..errors import FormatNotRecognizedError, InvalidTransitionError, OracleUnavailableError
from ..finance.models import EstimateLineItem, ImportSummary, LaborRates
from ..importer import ImportOrchestrator, ImportSessionStore, ImportStep
from ..llm.oracle import ClassificationOracle, create_classification_oracle
from ..validation.models import ImportedLineItem

router = APIRouter()

# Pipeline error codes -> HTTP status
ERROR_STATUS = {
    "empty_input": 422,
    "format_not_recognized": 422,
    "unsupported_file": 415,
    "oracle_unavailable": 503,
    "oracle_malformed": 502,
    "unexpected_error": 500,
}

# Global instances
_session_store: Optional[ImportSessionStore] = None
_oracle: Optional[ClassificationOracle] = None


def get_session_store() -> ImportSessionStore:
    """Get the global import session store."""
    global _session_store
    if _session_store is None:
        _session_store = ImportSessionStore(default_ttl_minutes=settings.session_ttl_minutes)
    return _session_store


def get_oracle() -> ClassificationOracle:
    """Get the global classification oracle."""
    global _oracle
    if _oracle is None:
        _oracle = create_classification_oracle(settings)
    return _oracle


class CreateImportRequest(BaseModel):
    """Request to import already parsed rows."""

    rows: list[list[Any]]
    filename: Optional[str] = None
    billing_rate_per_hour: Optional[float] = None
    actual_cost_rate_per_hour: Optional[float] = None


class SelectionRequest(BaseModel):
    """Replace the selection of an import under review."""

    selected: list[int] = Field(default_factory=list)


class ImportResponse(BaseModel):
    """State of one import."""

    import_id: str
    step: ImportStep
    filename: Optional[str] = None
    header_row_index: Optional[int] = None
    confidence: Optional[float] = None
    stop_reason: Optional[str] = None
    items: list[ImportedLineItem] = Field(default_factory=list)
    selected: list[int] = Field(default_factory=list)
    summary: Optional[ImportSummary] = None
    selected_summary: Optional[ImportSummary] = None
    warnings: list[str] = Field(default_factory=list)


class ConfirmResponse(BaseModel):
    """Line items handed to the estimate flow."""

    import_id: str
    line_items: list[EstimateLineItem]
    summary: ImportSummary


def _rates(billing: Optional[float], actual: Optional[float]) -> LaborRates:
    try:
        return LaborRates(
            billing_rate_per_hour=billing if billing is not None else settings.default_billing_rate,
            actual_cost_rate_per_hour=actual if actual is not None else settings.default_actual_cost_rate,
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={"code": "invalid_rates", "message": "Labor rates must be greater than zero."},
        ) from e


def _new_orchestrator(rates: LaborRates) -> ImportOrchestrator:
    try:
        oracle = get_oracle()
    except OracleUnavailableError as e:
        raise HTTPException(status_code=503, detail={"code": e.code, "message": e.message})
    return ImportOrchestrator(oracle, rates, settings)


def _raise_failure(orchestrator: ImportOrchestrator):
    """Translate a failed upload or processing step into an HTTP error."""
    detail = {"code": orchestrator.error_code, "message": orchestrator.error}
    if isinstance(orchestrator.failure, FormatNotRecognizedError):
        detail["missing_columns"] = orchestrator.failure.missing_columns
        detail["detected_format"] = orchestrator.failure.detected_format
    raise HTTPException(status_code=ERROR_STATUS.get(orchestrator.error_code, 500), detail=detail)


def _to_response(orchestrator: ImportOrchestrator) -> ImportResponse:
    result = orchestrator.result
    response = ImportResponse(
        import_id=orchestrator.import_id,
        step=orchestrator.step,
        filename=orchestrator.filename,
        items=orchestrator.items,
        selected=sorted(orchestrator.selected),
        warnings=orchestrator.warnings,
    )
    if result is not None:
        response.header_row_index = result.detection.header_row_index
        response.confidence = result.detection.confidence
        response.stop_reason = result.stop_reason
        response.summary = result.summary
        response.selected_summary = orchestrator.selected_summary()
    return response


async def _store(orchestrator: ImportOrchestrator):
    store = get_session_store()
    await store.cleanup_expired()
    await store.add(orchestrator)


async def _get_import(import_id: str) -> ImportOrchestrator:
    orchestrator = await get_session_store().get(import_id)
    if orchestrator is None:
        raise HTTPException(status_code=404, detail="Import not found or expired")
    return orchestrator


@router.get("/health")
async def health_check():
    """Health check endpoint with non-secret diagnostics."""
    config = {
        "llm_provider": settings.llm_provider,
        "model_name": settings.classifier_model,
        "anthropic_key_present": bool(settings.anthropic_api_key),
        "openrouter_key_present": bool(settings.openrouter_api_key),
    }

    return {
        "status": "ok",
        "service": "costsheet",
        "config": config,
        "active_imports": get_session_store().size(),
    }


@router.post("/imports", response_model=ImportResponse)
async def create_import(request: CreateImportRequest):
    """Import rows that were parsed by the caller."""
    rates = _rates(request.billing_rate_per_hour, request.actual_cost_rate_per_hour)
    orchestrator = _new_orchestrator(rates)
    orchestrator.upload_rows(request.rows, filename=request.filename)

    if not await orchestrator.process():
        _raise_failure(orchestrator)

    await _store(orchestrator)
    return _to_response(orchestrator)


@router.post("/imports/upload", response_model=ImportResponse)
async def upload_import(
    file: UploadFile = File(...),
    billing_rate_per_hour: Optional[float] = Form(None),
    actual_cost_rate_per_hour: Optional[float] = Form(None),
):
    """Import an uploaded .csv, .tsv or .xlsx file."""
    rates = _rates(billing_rate_per_hour, actual_cost_rate_per_hour)
    orchestrator = _new_orchestrator(rates)

    content = await file.read()
    if not orchestrator.upload_file(content, file.filename or "upload.csv"):
        _raise_failure(orchestrator)
    if not await orchestrator.process():
        _raise_failure(orchestrator)

    await _store(orchestrator)
    return _to_response(orchestrator)


@router.get("/imports/{import_id}", response_model=ImportResponse)
async def get_import(import_id: str):
    """Get the review state of an import."""
    return _to_response(await _get_import(import_id))


@router.put("/imports/{import_id}/selection", response_model=ImportResponse)
async def update_selection(import_id: str, request: SelectionRequest):
    """Replace which items of an import are selected."""
    orchestrator = await _get_import(import_id)
    try:
        orchestrator.set_selection(request.selected)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(orchestrator)


@router.post("/imports/{import_id}/confirm", response_model=ConfirmResponse)
async def confirm_import(import_id: str):
    """Confirm the selected items and close the import."""
    orchestrator = await _get_import(import_id)
    try:
        line_items = orchestrator.confirm()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
    summary = orchestrator.selected_summary()

    await get_session_store().remove(import_id)
    return ConfirmResponse(import_id=import_id, line_items=line_items, summary=summary)


@router.delete("/imports/{import_id}")
async def delete_import(import_id: str):
    """Discard an import."""
    if not await get_session_store().remove(import_id):
        raise HTTPException(status_code=404, detail="Import not found or expired")
    return {"status": "deleted", "import_id": import_id}
