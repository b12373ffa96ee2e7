import asyncio
import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .config import load_settings
from .db.mappers import map_property_row
from .db.repo import Repo
from .db.store import create_store
from .errors import StoreQueryFailed
from .models.property import PropertyListResponse
from .services.completion import GeminiCompletion
from .services.insights_service import GENERIC_ERROR, InsightsFailure, InsightsService
from .services.normalizer import normalize_property
from .utils.logging import get_logger

LOGGER = get_logger("api")

app = FastAPI(title="Property Insights")
router = APIRouter(prefix="/api")

_service_lock = asyncio.Lock()


def _sanitize(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, dict):
        return {k: _sanitize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_sanitize(item) for item in value]
    return value


async def get_insights_service(request: Request) -> InsightsService:
    service = getattr(request.app.state, "insights_service", None)
    if service is not None:
        return service
    async with _service_lock:
        service = getattr(request.app.state, "insights_service", None)
        if service is None:
            settings = load_settings()
            store = await create_store(settings.store)
            service = InsightsService(
                Repo(store, settings.store.tables),
                GeminiCompletion(settings.llm),
                settings.insights,
                warmup_timeout_s=settings.llm.warmup_timeout_s,
            )
            request.app.state.insights_service = service
    return service


def _failure_response(failure: InsightsFailure) -> JSONResponse:
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


@router.post("/property-insights")
async def property_insights(request: Request, service: InsightsService = Depends(get_insights_service)):
    try:
        payload = await request.json()
    except ValueError as exc:
        return _failure_response(InsightsFailure(GENERIC_ERROR, f"request body is not valid JSON: {exc}", 400))
    result = await service.answer(payload)
    if isinstance(result, InsightsFailure):
        return _failure_response(result)
    return jsonable_encoder(_sanitize(result.model_dump(by_alias=True)))


@router.get("/property-insights/warmup")
async def warmup(service: InsightsService = Depends(get_insights_service)):
    readiness = await service.warmup()
    return jsonable_encoder(readiness.model_dump())


@router.get("/properties")
async def list_props(
    submarket: Optional[str] = Query(None),
    limit: int = Query(200, ge=1, le=500),
    service: InsightsService = Depends(get_insights_service),
):
    try:
        rows = await service.repository.list_properties(submarket=submarket, limit=limit)
    except StoreQueryFailed as exc:
        LOGGER.error("list_properties_failed table=%s cause=%s", exc.table, exc.cause)
        return JSONResponse(status_code=502, content={"error": "Failed to load properties", "details": exc.table})
    items = [normalize_property(map_property_row(_sanitize(row))) for row in rows]
    payload = PropertyListResponse(items=items, total=len(items))
    return jsonable_encoder(payload.model_dump(by_alias=True))


@router.get("/properties/{property_id}")
async def get_prop(property_id: str, service: InsightsService = Depends(get_insights_service)):
    try:
        row = await service.repository.get_property(property_id)
    except StoreQueryFailed as exc:
        LOGGER.error("get_property_failed table=%s cause=%s", exc.table, exc.cause)
        return JSONResponse(status_code=502, content={"error": "Failed to load property", "details": exc.table})
    if row is None:
        raise HTTPException(404, detail=f"Property not found: {property_id}")
    return jsonable_encoder(normalize_property(map_property_row(_sanitize(row))).to_payload())


@router.get("/health")
def health(): return {"status": "ok"}


app.include_router(router)
