"""
Income HTTP API

FastAPI application serving the income matrix under /api/income with a
JSON envelope:

    {"success": true, "data": ...}
    {"success": false, "error": "...", "code": "...", "details": ...}

DESIGN DECISION: The app holds no module-level state. create_app()
receives the service it serves and stores it on app.state, so the
hosting process owns its lifecycle and tests can build as many isolated
apps as they like.
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from income_matrix import __version__
from income_matrix.api.schemas import (
    BulkSetRowIn,
    CreateCategoryIn,
    RenameCategoryIn,
    ReorderIn,
    SetCellIn,
)
from income_matrix.config import AppSettings, get_settings
from income_matrix.core.errors import (
    ErrorCode,
    IncomeMatrixError,
    NotFoundError,
    ValidationError,
)
from income_matrix.core.grid import coerce_month_key
from income_matrix.orchestrator import IncomeMatrixService
from income_matrix.validation import validate_year

logger = structlog.get_logger(__name__)

API_PREFIX = "/api/income"


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse({"success": True, "data": data}, status_code=status_code)


def status_for(error: IncomeMatrixError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ValidationError):
        return 400
    return 500


def get_service(request: Request) -> IncomeMatrixService:
    return request.app.state.service


def checked_year(request: Request, year: int) -> int:
    settings: AppSettings = request.app.state.settings
    return validate_year(year, settings.min_year, settings.max_year)


router = APIRouter(prefix=API_PREFIX)


@router.get("/health")
async def health():
    return ok({"status": "ok", "version": __version__})


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------

@router.get("/categories")
async def list_categories(service: IncomeMatrixService = Depends(get_service)):
    categories = await service.list_categories()
    return ok([category.to_wire() for category in categories])


@router.post("/categories")
async def create_category(
    payload: CreateCategoryIn,
    service: IncomeMatrixService = Depends(get_service),
):
    category = await service.create_category(payload.name)
    return ok(category.to_wire(), status_code=201)


# Declared before /categories/{category_id} so "reorder" is not read as an id
@router.patch("/categories/reorder")
async def reorder_categories(
    payload: ReorderIn,
    service: IncomeMatrixService = Depends(get_service),
):
    await service.reorder_categories(payload.order)
    return ok()


@router.patch("/categories/{category_id}")
async def rename_category(
    category_id: str,
    payload: RenameCategoryIn,
    service: IncomeMatrixService = Depends(get_service),
):
    await service.rename_category(category_id, payload.name)
    return ok()


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: str,
    service: IncomeMatrixService = Depends(get_service),
):
    await service.delete_category(category_id)
    return ok()


# -----------------------------------------------------------------------------
# Matrix
# -----------------------------------------------------------------------------

@router.get("/matrix")
async def get_matrix(
    request: Request,
    year: int = Query(...),
    service: IncomeMatrixService = Depends(get_service),
):
    matrix = await service.get_matrix(checked_year(request, year))
    return ok({
        category_id: {str(month): value for month, value in sorted(row.items())}
        for category_id, row in matrix.items()
    })


@router.patch("/matrix")
async def set_cell(
    request: Request,
    payload: SetCellIn,
    service: IncomeMatrixService = Depends(get_service),
):
    year = checked_year(request, payload.year)
    stored = await service.set_cell(year, payload.category_id, payload.month, payload.value)
    return ok({"value": stored})


@router.post("/matrix/bulk-row")
async def bulk_set_row(
    request: Request,
    payload: BulkSetRowIn,
    service: IncomeMatrixService = Depends(get_service),
):
    year = checked_year(request, payload.year)
    values_by_month = {}
    for key, value in payload.values_by_month.items():
        month = coerce_month_key(key)
        if month is not None:
            values_by_month[month] = value
    await service.bulk_set_row(year, payload.category_id, values_by_month)
    return ok()


@router.get("/matrix/summary")
async def get_summary(
    request: Request,
    year: int = Query(...),
    service: IncomeMatrixService = Depends(get_service),
):
    summary = await service.get_summary(checked_year(request, year))
    return ok(summary.model_dump(mode="json"))


@router.delete("/reset")
async def reset(service: IncomeMatrixService = Depends(get_service)):
    await service.reset()
    return ok()


# -----------------------------------------------------------------------------
# Application factory
# -----------------------------------------------------------------------------

async def handle_income_error(request: Request, exc: IncomeMatrixError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("api_request_failed", path=request.url.path, code=exc.code.value, error=exc.message)
    return JSONResponse({"success": False, **exc.to_dict()}, status_code=status_code)


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError(
        "Invalid request",
        code=ErrorCode.VALIDATION_FAILED,
        details=[
            {"loc": list(item.get("loc", ())), "msg": item.get("msg")}
            for item in exc.errors()
        ],
    )
    return JSONResponse({"success": False, **error.to_dict()}, status_code=400)


def create_app(
    service: IncomeMatrixService,
    settings: Optional[AppSettings] = None,
    initialize: bool = True,
) -> FastAPI:
    """
    Build the income API around an explicit service.

    Args:
        service: Service the handlers operate on
        settings: Accepted year range; defaults to the configured AppSettings
        initialize: Run service.initialize() on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if initialize:
            await service.initialize()
        yield

    app = FastAPI(title="Income Matrix", version=__version__, lifespan=lifespan)
    app.state.service = service
    app.state.settings = settings or get_settings().app

    app.add_exception_handler(IncomeMatrixError, handle_income_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.include_router(router)
    return app
