"""Database and schema models for PatentMap."""
from patentmap.models.database_models import (
    Portfolio,
    Patent,
    Molecule,
    portfolio_patents,
)
from patentmap.models.schemas import (
    Advantage,
    CompetitorCompareRequest,
    CompetitorCompareResponse,
    ConstellationCluster,
    ConstellationPoint,
    ConstellationRequest,
    ConstellationResponse,
    CoverageHeatmap,
    CoverageStatistics,
    DomainDistribution,
    HealthCheckResponse,
    MoleculeRecord,
    PatentRecord,
    PointType,
    PortfolioRecord,
    ReductionAlgorithm,
    WhiteSpaceRegion,
)

__all__ = [
    # Database models
    "Portfolio",
    "Patent",
    "Molecule",
    "portfolio_patents",
    # Pydantic schemas
    "Advantage",
    "CompetitorCompareRequest",
    "CompetitorCompareResponse",
    "ConstellationCluster",
    "ConstellationPoint",
    "ConstellationRequest",
    "ConstellationResponse",
    "CoverageHeatmap",
    "CoverageStatistics",
    "DomainDistribution",
    "HealthCheckResponse",
    "MoleculeRecord",
    "PatentRecord",
    "PointType",
    "PortfolioRecord",
    "ReductionAlgorithm",
    "WhiteSpaceRegion",
]
