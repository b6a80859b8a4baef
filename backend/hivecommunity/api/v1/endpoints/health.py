"""
Health Check Endpoints

- /health/live  - process is up
- /health/ready - document store answers a query
"""

import time
from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hivecommunity.api.deps import get_store
from hivecommunity.core.config import settings
from hivecommunity.core.exceptions import HiveError
from hivecommunity.core.logging_config import logger
from hivecommunity.services.document_store import Collections, DocumentStore

router = APIRouter(prefix="/health", tags=["Health Checks"])


async def check_store(store: DocumentStore) -> Dict[str, Any]:
    """Check the document store with a cheap read"""
    start = time.time()
    try:
        await store.query(Collections.HIVES_APPROVED, limit=1)
        latency = (time.time() - start) * 1000
        return {"status": "healthy", "latency_ms": round(latency, 2)}
    except HiveError as e:
        latency = (time.time() - start) * 1000
        logger.error(f"[HealthCheck] Document store check failed: {e}")
        return {"status": "unhealthy", "latency_ms": round(latency, 2), "error": e.message}


@router.get("/live")
async def liveness():
    return {"status": "alive", "service": settings.APP_NAME}


@router.get("/ready")
async def readiness(store: DocumentStore = Depends(get_store)):
    store_check = await check_store(store)
    ready = store_check["status"] == "healthy"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": {"document_store": store_check}},
    )
