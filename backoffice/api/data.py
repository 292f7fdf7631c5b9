from fastapi import APIRouter, Body, Depends, HTTPException
from typing import Any, Dict
import logging

from backoffice.api.deps import get_store
from backoffice.core.config import settings
from backoffice.core.errors import RecordValidationError
from backoffice.core.summary import sample_data_report
from backoffice.db.store import EntityStore
from backoffice.schemas.summary import SampleDataReport

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health(store: EntityStore = Depends(get_store)):
    result = store.last_storage_result
    return {
        "status": "ok" if result.ok else "degraded",
        "service": settings.PROJECT_NAME,
        "initialized": store.is_initialized,
        "counts": store.counts(),
        "last_storage_result": result,
    }


@router.post("/reset", response_model=SampleDataReport)
async def reset(store: EntityStore = Depends(get_store)):
    logger.info("Reset requested")
    store.reset_all_data()
    return sample_data_report(store)


@router.post("/load-sample-data", response_model=SampleDataReport)
async def load_sample_data(store: EntityStore = Depends(get_store)):
    store.load_sample_data()
    return sample_data_report(store)


@router.get("/sync-data")
async def export_data(store: EntityStore = Depends(get_store)):
    return store.export_snapshot()


@router.post("/sync-data")
async def import_data(payload: Dict[str, Any] = Body(...), store: EntityStore = Depends(get_store)):
    try:
        applied = store.import_snapshot(payload)
    except RecordValidationError as e:
        raise HTTPException(status_code=400, detail={"message": str(e), "errors": e.errors})
    return {"applied": applied, "counts": store.counts()}
