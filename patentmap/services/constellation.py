"""
Portfolio constellation service.

Public API
----------
ConstellationService.generate_constellation(request)            → ConstellationResponse
ConstellationService.get_tech_domain_distribution(portfolio_id) → DomainDistribution
ConstellationService.compare_with_competitor(request)           → CompetitorCompareResponse
ConstellationService.get_coverage_heatmap(portfolio_id, config) → CoverageHeatmap

Pipeline for ``generate_constellation``
---------------------------------------
validate → cache lookup → load portfolio + patents → filter → load molecules
→ embed → reduce → points → clusters → white space (optional) → statistics
→ cache write → response

Cache reads and writes are best-effort: a failing cache is logged and the
request proceeds as on a miss.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ValidationError

from patentmap.config import settings
from patentmap.models.schemas import (
    CompetitorCompareRequest,
    CompetitorCompareResponse,
    ConstellationFilters,
    ConstellationRequest,
    ConstellationResponse,
    CoverageHeatmap,
    CoverageStatistics,
    DimensionReduction,
    DomainDistribution,
    PatentRecord,
    ReductionAlgorithm,
    WhiteSpaceRegion,
)
from patentmap.services.cache import ConstellationCache
from patentmap.services.clustering import DensityClusterer
from patentmap.services.comparison import compare_portfolios, filter_by_tech_domains
from patentmap.services.embedding import (
    EmbeddingOrchestrator,
    apply_reduction_defaults,
    extract_molecule_ids,
)
from patentmap.services.exceptions import (
    ConstellationError,
    DependencyFailureError,
    InvalidRequestError,
    PortfolioNotFoundError,
)
from patentmap.services.heatmap import HeatmapConfig, empty_heatmap, generate_heatmap
from patentmap.services.inference import InferenceEngine
from patentmap.services.repositories import (
    MoleculeRepository,
    PatentRepository,
    PortfolioRepository,
)
from patentmap.services.statistics import build_domain_distribution, compute_coverage_statistics
from patentmap.services.white_space import WhiteSpaceDetector
from patentmap.utils.helpers import canonical_json, generate_hash, to_string_set

logger = logging.getLogger(__name__)

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

# The heatmap always projects to 2D with UMAP defaults
HEATMAP_REDUCTION = DimensionReduction(
    algorithm=ReductionAlgorithm.UMAP, dimensions=2, neighbors=15
)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def validate_portfolio_id(portfolio_id: Optional[str]) -> str:
    if not portfolio_id or not portfolio_id.strip():
        raise InvalidRequestError("portfolio_id is required")
    try:
        uuid.UUID(portfolio_id)
    except ValueError:
        raise InvalidRequestError("invalid portfolio ID format")
    return portfolio_id


def build_constellation_cache_key(request: ConstellationRequest, prefix: str = "constellation") -> str:
    """Deterministic key over the portfolio id and the serialised parameters."""
    raw = ":".join(
        [
            prefix,
            request.portfolio_id,
            canonical_json(request.filters.model_dump(mode="json")),
            canonical_json(request.reduction.model_dump(mode="json")),
            str(request.include_white_spaces),
        ]
    )
    return f"{prefix}:{request.portfolio_id}:{generate_hash(raw)[:16]}"


def build_heatmap_cache_key(portfolio_id: str, resolution: int) -> str:
    return f"heatmap:{portfolio_id}:res{resolution}"


def build_distribution_cache_key(portfolio_id: str) -> str:
    return f"domain_dist:{portfolio_id}"


def apply_patent_filters(
    patents: Sequence[PatentRecord], filters: ConstellationFilters
) -> List[PatentRecord]:
    """
    Keep patents matching every given criterion. Year bounds exclude
    patents without a filing date.
    """
    if filters.is_empty():
        return list(patents)

    tech = to_string_set(filters.tech_domains)
    statuses = to_string_set(filters.legal_statuses)
    assignees = to_string_set(filters.assignees)
    year_min, year_max = filters.filing_year_min, filters.filing_year_max

    kept: List[PatentRecord] = []
    for p in patents:
        if tech and p.primary_tech_domain not in tech:
            continue
        if year_min or year_max:
            if p.filing_date is None:
                continue
            year = p.filing_date.year
            if year_min and year < year_min:
                continue
            if year_max and year > year_max:
                continue
        if statuses and p.legal_status not in statuses:
            continue
        if assignees and p.assignee not in assignees:
            continue
        kept.append(p)
    return kept


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ConstellationService:
    """Orchestrates constellation, distribution, comparison and heatmap requests."""

    def __init__(
        self,
        portfolio_repo: PortfolioRepository,
        patent_repo: PatentRepository,
        molecule_repo: MoleculeRepository,
        inference: InferenceEngine,
        cache: Optional[ConstellationCache] = None,
        cache_ttl: Optional[float] = None,
        clusterer: Optional[DensityClusterer] = None,
        white_space_detector: Optional[WhiteSpaceDetector] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.portfolio_repo = portfolio_repo
        self.patent_repo = patent_repo
        self.molecule_repo = molecule_repo
        self.embedder = EmbeddingOrchestrator(inference)
        self.cache = cache
        self.cache_ttl = cache_ttl if cache_ttl is not None else settings.CACHE_TTL_SECONDS
        self.clusterer = clusterer or DensityClusterer()
        self.white_space_detector = white_space_detector or WhiteSpaceDetector()
        self.clock = clock

    # ------------------------------------------------------------------
    # 1. Constellation
    # ------------------------------------------------------------------

    async def generate_constellation(
        self, request: Optional[ConstellationRequest]
    ) -> ConstellationResponse:
        if request is None:
            raise InvalidRequestError("constellation request must not be None")
        portfolio_id = validate_portfolio_id(request.portfolio_id)
        reduction = apply_reduction_defaults(request.reduction)

        cache_key = build_constellation_cache_key(request)
        cached = await self._cache_get(cache_key, ConstellationResponse)
        if cached is not None:
            logger.debug("constellation cache hit for portfolio %s", portfolio_id)
            return cached

        logger.info("generating constellation for portfolio %s", portfolio_id)

        await self._require_portfolio(portfolio_id)
        patents = await self._dependency(
            "load portfolio patents", self.patent_repo.find_by_portfolio_id(portfolio_id)
        )
        patents = apply_patent_filters(patents, request.filters)
        if not patents:
            logger.info("portfolio %s: no patents left after filtering", portfolio_id)
            return ConstellationResponse(
                portfolio_id=portfolio_id,
                coverage_stats=CoverageStatistics(),
                generated_at=self.clock(),
            )

        molecules = await self._dependency(
            "load molecules for constellation",
            self.molecule_repo.find_by_ids(extract_molecule_ids(patents)),
        )
        coordinates = await self.embedder.embed_and_reduce(molecules, reduction)
        points = self.embedder.build_points(patents, molecules, coordinates)

        clusters = self.clusterer.detect_clusters(points)
        white_spaces: List[WhiteSpaceRegion] = []
        if request.include_white_spaces:
            white_spaces = self.white_space_detector.identify(points, clusters)
        stats = compute_coverage_statistics(points, clusters, white_spaces)

        response = ConstellationResponse(
            portfolio_id=portfolio_id,
            points=points,
            clusters=clusters,
            white_spaces=white_spaces,
            coverage_stats=stats,
            generated_at=self.clock(),
            cache_key=cache_key,
        )
        await self._cache_set(cache_key, response)

        logger.info(
            "constellation generated for portfolio %s: %d points, %d clusters, %d white spaces",
            portfolio_id,
            len(points),
            len(clusters),
            len(white_spaces),
        )
        return response

    # ------------------------------------------------------------------
    # 2. Technology-domain distribution
    # ------------------------------------------------------------------

    async def get_tech_domain_distribution(self, portfolio_id: str) -> DomainDistribution:
        portfolio_id = validate_portfolio_id(portfolio_id)

        cache_key = build_distribution_cache_key(portfolio_id)
        cached = await self._cache_get(cache_key, DomainDistribution)
        if cached is not None:
            logger.debug("domain distribution cache hit for portfolio %s", portfolio_id)
            return cached

        await self._require_portfolio(portfolio_id)
        patents = await self._dependency(
            "load patents for domain distribution",
            self.patent_repo.find_by_portfolio_id(portfolio_id),
        )
        distribution = build_domain_distribution(portfolio_id, patents, now=self.clock())
        await self._cache_set(cache_key, distribution)
        return distribution

    # ------------------------------------------------------------------
    # 3. Competitor comparison
    # ------------------------------------------------------------------

    async def compare_with_competitor(
        self, request: Optional[CompetitorCompareRequest]
    ) -> CompetitorCompareResponse:
        if request is None:
            raise InvalidRequestError("competitor compare request must not be None")
        portfolio_id = validate_portfolio_id(request.portfolio_id)
        if not request.competitor_name or not request.competitor_name.strip():
            raise InvalidRequestError("competitor_name is required")

        logger.info(
            "comparing portfolio %s with competitor %s", portfolio_id, request.competitor_name
        )

        await self._require_portfolio(portfolio_id)
        own = await self._dependency(
            "load own patents", self.patent_repo.find_by_portfolio_id(portfolio_id)
        )
        if request.competitor_patent_ids:
            competitor_call = self.patent_repo.find_by_ids(request.competitor_patent_ids)
        else:
            competitor_call = self.patent_repo.find_by_assignee(request.competitor_name)
        competitor = await self._dependency("load competitor patents", competitor_call)

        if request.tech_domains:
            own = filter_by_tech_domains(own, request.tech_domains)
            competitor = filter_by_tech_domains(competitor, request.tech_domains)

        result = compare_portfolios(own, competitor, now=self.clock())

        logger.info(
            "comparison %s vs %s: %d overlap, %d own-exclusive, %d competitor-exclusive, index %.3f",
            portfolio_id,
            request.competitor_name,
            len(result.overlap_zones),
            len(result.own_exclusive),
            len(result.competitor_exclusive),
            result.strength_index,
        )
        return CompetitorCompareResponse(
            portfolio_id=portfolio_id,
            competitor_name=request.competitor_name,
            overlap_zones=result.overlap_zones,
            own_exclusive_zones=result.own_exclusive,
            competitor_exclusive_zones=result.competitor_exclusive,
            strength_index=result.strength_index,
            summary=result.summary,
            generated_at=self.clock(),
        )

    # ------------------------------------------------------------------
    # 4. Coverage heatmap
    # ------------------------------------------------------------------

    async def get_coverage_heatmap(
        self, portfolio_id: str, config: Optional[HeatmapConfig] = None
    ) -> CoverageHeatmap:
        portfolio_id = validate_portfolio_id(portfolio_id)
        config = config or HeatmapConfig()

        # Cached grids carry the observed maximum; an override is applied per request
        cache_key = build_heatmap_cache_key(portfolio_id, config.resolution)
        heatmap = await self._cache_get(cache_key, CoverageHeatmap)
        if heatmap is not None:
            logger.debug("heatmap cache hit for portfolio %s", portfolio_id)
            return self._apply_density_override(heatmap, config)

        logger.info(
            "generating coverage heatmap for portfolio %s at resolution %d",
            portfolio_id,
            config.resolution,
        )
        await self._require_portfolio(portfolio_id)
        patents = await self._dependency(
            "load patents for heatmap", self.patent_repo.find_by_portfolio_id(portfolio_id)
        )
        if not patents:
            return empty_heatmap(portfolio_id, config)

        molecules = await self._dependency(
            "load molecules for heatmap",
            self.molecule_repo.find_by_ids(extract_molecule_ids(patents)),
        )
        coordinates = await self.embedder.embed_and_reduce(molecules, HEATMAP_REDUCTION)

        base_config = HeatmapConfig(resolution=config.resolution, color_scale=config.color_scale)
        heatmap = generate_heatmap(portfolio_id, list(coordinates.values()), base_config)
        await self._cache_set(cache_key, heatmap)
        return self._apply_density_override(heatmap, config)

    @staticmethod
    def _apply_density_override(heatmap: CoverageHeatmap, config: HeatmapConfig) -> CoverageHeatmap:
        if config.max_density > 0:
            return heatmap.model_copy(update={"max_density": config.max_density})
        return heatmap

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _require_portfolio(self, portfolio_id: str) -> None:
        portfolio = await self._dependency(
            "load portfolio", self.portfolio_repo.get_by_id(portfolio_id)
        )
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)

    async def _dependency(self, action: str, call: Awaitable[T]) -> T:
        """Await a collaborator call, wrapping foreign errors with context."""
        try:
            return await call
        except ConstellationError:
            raise
        except Exception as exc:
            raise DependencyFailureError(f"failed to {action}: {exc}") from exc

    async def _cache_get(self, key: str, model: Type[M]) -> Optional[M]:
        if self.cache is None:
            return None
        try:
            raw = await self.cache.get(key)
        except Exception as exc:
            logger.warning("cache read failed for %s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("discarding undecodable cache entry %s: %s", key, exc)
            try:
                await self.cache.delete(key)
            except Exception as del_exc:
                logger.warning("cache delete failed for %s: %s", key, del_exc)
            return None

    async def _cache_set(self, key: str, value: BaseModel) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(key, value.model_dump_json().encode("utf-8"), self.cache_ttl)
        except Exception as exc:
            logger.warning("failed to cache %s: %s", key, exc)
