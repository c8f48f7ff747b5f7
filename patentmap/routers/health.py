"""
Liveness of the service and its two backing systems.

Routes
------
GET /api/health/  database + inference engine status → HealthCheckResponse
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patentmap.database import get_db, ping_db
from patentmap.dependencies.services import get_inference_client
from patentmap.models.schemas import HealthCheckResponse
from patentmap.services.inference import HttpInferenceClient

logger = logging.getLogger(__name__)

router = APIRouter()


def _label(ok: bool) -> str:
    return "ok" if ok else "error"


@router.get("/", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    inference: HttpInferenceClient = Depends(get_inference_client),
):
    """
    Report ``healthy`` when both the database and the inference engine
    answer, ``degraded`` otherwise. Always returns 200.
    """
    db_ok = await ping_db(db)
    inference_ok = await inference.check_health()
    if not inference_ok:
        logger.warning("Inference engine health probe failed")

    return HealthCheckResponse(
        status="healthy" if db_ok and inference_ok else "degraded",
        database=_label(db_ok),
        inference=_label(inference_ok),
        timestamp=datetime.now(timezone.utc),
    )
