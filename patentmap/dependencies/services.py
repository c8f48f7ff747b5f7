"""
Service wiring for FastAPI routes.

Repositories are bound to the request's DB session; the inference client and
the cache are process-wide.
"""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from patentmap.config import settings
from patentmap.database import get_db
from patentmap.services.cache import constellation_cache
from patentmap.services.constellation import ConstellationService
from patentmap.services.inference import HttpInferenceClient
from patentmap.services.repositories import (
    SqlMoleculeRepository,
    SqlPatentRepository,
    SqlPortfolioRepository,
)

inference_client = HttpInferenceClient()


def get_inference_client() -> HttpInferenceClient:
    return inference_client


async def get_constellation_service(
    db: AsyncSession = Depends(get_db),
) -> ConstellationService:
    """Build a ConstellationService over the per-request session."""
    return ConstellationService(
        portfolio_repo=SqlPortfolioRepository(db),
        patent_repo=SqlPatentRepository(db),
        molecule_repo=SqlMoleculeRepository(db),
        inference=inference_client,
        cache=constellation_cache,
        cache_ttl=settings.CACHE_TTL_SECONDS,
    )
