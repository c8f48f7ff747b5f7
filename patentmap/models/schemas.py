"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, List, Tuple
from datetime import date, datetime
from enum import Enum


# Enums
class ReductionAlgorithm(str, Enum):
    """Dimensionality reduction algorithms supported by the inference engine."""

    TSNE = "tsne"
    UMAP = "umap"
    PCA = "pca"


class PointType(str, Enum):
    """What a constellation point stands for."""

    OWN_PATENT = "own_patent"
    COMPETITOR_PATENT = "competitor_patent"
    PUBLIC_PATENT = "public_patent"
    MOLECULE = "molecule"


class Advantage(str, Enum):
    """Categorical outcome of a competitor comparison."""

    OWN = "own"
    COMPETITOR = "competitor"
    NEUTRAL = "neutral"


# Repository-facing records
class PortfolioRecord(BaseModel):
    """Portfolio as returned by the portfolio repository."""

    id: str
    name: str
    owner: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PatentRecord(BaseModel):
    """Patent as returned by the patent repository."""

    id: str
    patent_number: str = ""
    assignee: str = ""
    primary_tech_domain: str = ""
    legal_status: str = ""
    filing_date: Optional[date] = None
    value_score: float = 0.0
    molecule_ids: List[str] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("patent_number", "assignee", "primary_tech_domain", "legal_status", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""

    @field_validator("value_score", mode="before")
    @classmethod
    def _none_to_zero(cls, value):
        return value if value is not None else 0.0

    @field_validator("molecule_ids", mode="before")
    @classmethod
    def _none_to_list(cls, value):
        return list(value) if value else []


class MoleculeRecord(BaseModel):
    """Molecule as returned by the molecule repository."""

    id: str
    smiles: str = ""
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("smiles", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return value or ""


# Constellation Schemas
class ConstellationFilters(BaseModel):
    """Optional filtering criteria applied to a portfolio's patents."""

    tech_domains: List[str] = Field(default_factory=list)
    filing_year_min: int = Field(0, ge=0)
    filing_year_max: int = Field(0, ge=0)
    legal_statuses: List[str] = Field(default_factory=list)
    assignees: List[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (
            self.tech_domains
            or self.filing_year_min
            or self.filing_year_max
            or self.legal_statuses
            or self.assignees
        )


class DimensionReduction(BaseModel):
    """Algorithm and parameters for reducing embeddings to 2D/3D."""

    algorithm: Optional[ReductionAlgorithm] = None
    dimensions: int = 0
    perplexity: float = 0.0
    neighbors: int = 0


class ConstellationRequest(BaseModel):
    """Schema for generating a portfolio constellation."""

    portfolio_id: str
    filters: ConstellationFilters = Field(default_factory=ConstellationFilters)
    reduction: DimensionReduction = Field(default_factory=DimensionReduction)
    include_white_spaces: bool = False


class ConstellationBuildRequest(BaseModel):
    """Request body for the constellation endpoint (portfolio id comes from the path)."""

    filters: ConstellationFilters = Field(default_factory=ConstellationFilters)
    reduction: DimensionReduction = Field(default_factory=DimensionReduction)
    include_white_spaces: bool = False


class ConstellationPoint(BaseModel):
    """A single molecule/patent pairing placed in the reduced space."""

    id: str
    patent_number: Optional[str] = None
    molecule_id: Optional[str] = None
    smiles: Optional[str] = None
    x: float = 0.0
    y: float = 0.0
    z: Optional[float] = None
    tech_domain: str = ""
    legal_status: str = ""
    assignee: str = ""
    filing_year: Optional[int] = None
    value_score: float = 0.0
    point_type: PointType = PointType.OWN_PATENT


class ConstellationCluster(BaseModel):
    """A dense region of the constellation."""

    cluster_id: str
    label: str
    center_x: float
    center_y: float
    radius: float
    point_count: int
    tech_domains: List[str] = Field(default_factory=list)
    density: float


class WhiteSpaceRegion(BaseModel):
    """A sparse region near existing activity: a candidate unclaimed area."""

    region_id: str
    center_x: float
    center_y: float
    area: float
    nearest_tech_domains: List[str] = Field(default_factory=list)
    opportunity_description: Optional[str] = None
    score: float


class CoverageStatistics(BaseModel):
    """Aggregate statistics for one constellation run."""

    total_points: int = 0
    own_patent_count: int = 0
    competitor_count: int = 0
    coverage_ratio: float = 0.0
    white_space_count: int = 0
    cluster_count: int = 0
    density_mean: float = 0.0
    density_std_dev: float = 0.0


class ConstellationResponse(BaseModel):
    """Full constellation view."""

    portfolio_id: str
    points: List[ConstellationPoint] = Field(default_factory=list)
    clusters: List[ConstellationCluster] = Field(default_factory=list)
    white_spaces: List[WhiteSpaceRegion] = Field(default_factory=list)
    coverage_stats: CoverageStatistics = Field(default_factory=CoverageStatistics)
    generated_at: datetime
    cache_key: Optional[str] = None


# Domain distribution Schemas
class DomainEntry(BaseModel):
    """Statistics for a single technology domain."""

    domain_code: str
    domain_name: str
    patent_count: int = 0
    percentage: float = 0.0
    value_sum: float = 0.0
    value_percent: float = 0.0
    avg_age_years: float = 0.0


class DomainDistribution(BaseModel):
    """Distribution of a portfolio's patents across technology domains."""

    portfolio_id: str
    domains: List[DomainEntry] = Field(default_factory=list)
    total_count: int = 0
    generated_at: datetime


# Competitor comparison Schemas
class CompetitorCompareRequest(BaseModel):
    """Schema for comparing a portfolio against a competitor's holdings."""

    portfolio_id: str
    competitor_name: str
    competitor_patent_ids: List[str] = Field(default_factory=list)
    tech_domains: List[str] = Field(default_factory=list)


class CompetitorCompareBody(BaseModel):
    """Request body for the compare endpoint (portfolio id comes from the path)."""

    competitor_name: str = Field(..., min_length=1, max_length=255)
    competitor_patent_ids: List[str] = Field(default_factory=list)
    tech_domains: List[str] = Field(default_factory=list)


class OverlapZone(BaseModel):
    """A technology domain where both parties hold patents."""

    zone_id: str
    tech_domain: str
    own_patent_count: int
    competitor_patent_count: int
    competition_intensity: float


class ExclusiveZone(BaseModel):
    """A technology domain covered by only one party."""

    zone_id: str
    tech_domain: str
    patent_count: int
    strength_score: float


class ComparisonSummary(BaseModel):
    """High-level summary of a comparison."""

    total_own_patents: int = 0
    total_competitor_patents: int = 0
    overlap_domain_count: int = 0
    own_exclusive_domain_count: int = 0
    competitor_exclusive_domain_count: int = 0
    overall_advantage: Advantage = Advantage.NEUTRAL
    advantage_score: float = 0.0


class CompetitorCompareResponse(BaseModel):
    """Result of a competitor comparison."""

    portfolio_id: str
    competitor_name: str
    overlap_zones: List[OverlapZone] = Field(default_factory=list)
    own_exclusive_zones: List[ExclusiveZone] = Field(default_factory=list)
    competitor_exclusive_zones: List[ExclusiveZone] = Field(default_factory=list)
    strength_index: float = 0.0
    summary: ComparisonSummary = Field(default_factory=ComparisonSummary)
    generated_at: datetime


# Heatmap Schemas
class CoverageHeatmap(BaseModel):
    """Kernel density grid over the reduced 2D space."""

    portfolio_id: str
    grid: List[List[float]] = Field(default_factory=list)
    x_range: Tuple[float, float] = (0.0, 0.0)
    y_range: Tuple[float, float] = (0.0, 0.0)
    resolution: int
    max_density: float = 0.0
    color_scale: str = "viridis"
    generated_at: datetime


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check response."""

    status: str
    database: str
    inference: str
    timestamp: datetime
