"""
Portfolio analytics endpoints.

Routes
------
POST /api/portfolios/{portfolio_id}/constellation  constellation view     → ConstellationResponse
GET  /api/portfolios/{portfolio_id}/domains        domain distribution    → DomainDistribution
POST /api/portfolios/{portfolio_id}/compare        competitor comparison  → CompetitorCompareResponse
GET  /api/portfolios/{portfolio_id}/heatmap        coverage heatmap       → CoverageHeatmap
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from patentmap.dependencies.services import get_constellation_service
from patentmap.models.schemas import (
    CompetitorCompareBody,
    CompetitorCompareRequest,
    CompetitorCompareResponse,
    ConstellationBuildRequest,
    ConstellationRequest,
    ConstellationResponse,
    CoverageHeatmap,
    DomainDistribution,
)
from patentmap.services.constellation import ConstellationService
from patentmap.services.exceptions import (
    ConstellationError,
    DependencyFailureError,
    InvalidRequestError,
    PortfolioNotFoundError,
)
from patentmap.services.heatmap import HeatmapConfig

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_http(exc: ConstellationError, action: str) -> HTTPException:
    """Map the service error taxonomy onto HTTP status codes."""
    if isinstance(exc, InvalidRequestError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, PortfolioNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, DependencyFailureError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.error("%s error: %s", action, exc)
    return HTTPException(status_code=code, detail=f"{action} failed: {exc}")


# ---------------------------------------------------------------------------
# POST /{portfolio_id}/constellation
# ---------------------------------------------------------------------------

@router.post(
    "/{portfolio_id}/constellation",
    response_model=ConstellationResponse,
    status_code=status.HTTP_200_OK,
)
async def generate_constellation(
    portfolio_id: str,
    body: Optional[ConstellationBuildRequest] = None,
    service: ConstellationService = Depends(get_constellation_service),
):
    """
    Embed the portfolio's molecules, reduce them to 2D/3D, cluster the
    result and optionally flag white-space regions.
    """
    body = body or ConstellationBuildRequest()
    request = ConstellationRequest(portfolio_id=portfolio_id, **body.model_dump())
    try:
        return await service.generate_constellation(request)
    except ConstellationError as exc:
        raise _to_http(exc, "Constellation generation")


# ---------------------------------------------------------------------------
# GET /{portfolio_id}/domains
# ---------------------------------------------------------------------------

@router.get(
    "/{portfolio_id}/domains",
    response_model=DomainDistribution,
    status_code=status.HTTP_200_OK,
)
async def get_domain_distribution(
    portfolio_id: str,
    service: ConstellationService = Depends(get_constellation_service),
):
    """Patent count, value share and mean age per technology domain."""
    try:
        return await service.get_tech_domain_distribution(portfolio_id)
    except ConstellationError as exc:
        raise _to_http(exc, "Domain distribution")


# ---------------------------------------------------------------------------
# POST /{portfolio_id}/compare
# ---------------------------------------------------------------------------

@router.post(
    "/{portfolio_id}/compare",
    response_model=CompetitorCompareResponse,
    status_code=status.HTTP_200_OK,
)
async def compare_with_competitor(
    portfolio_id: str,
    body: CompetitorCompareBody,
    service: ConstellationService = Depends(get_constellation_service),
):
    """Overlap / exclusive zones and the strength index against a competitor."""
    request = CompetitorCompareRequest(portfolio_id=portfolio_id, **body.model_dump())
    try:
        return await service.compare_with_competitor(request)
    except ConstellationError as exc:
        raise _to_http(exc, "Competitor comparison")


# ---------------------------------------------------------------------------
# GET /{portfolio_id}/heatmap
# ---------------------------------------------------------------------------

@router.get(
    "/{portfolio_id}/heatmap",
    response_model=CoverageHeatmap,
    status_code=status.HTTP_200_OK,
)
async def get_coverage_heatmap(
    portfolio_id: str,
    resolution: Optional[int] = Query(None, description="Grid side length, 1-500"),
    min_density: Optional[float] = Query(None),
    max_density: Optional[float] = Query(None),
    service: ConstellationService = Depends(get_constellation_service),
):
    """
    Gaussian KDE over the 2D-reduced molecules. Out-of-range options are
    ignored and the defaults apply.
    """
    config = HeatmapConfig()
    if resolution is not None:
        config.with_resolution(resolution)
    if min_density is not None or max_density is not None:
        config.with_density_range(min_density or 0.0, max_density or 0.0)
    try:
        return await service.get_coverage_heatmap(portfolio_id, config)
    except ConstellationError as exc:
        raise _to_http(exc, "Heatmap generation")
