"""
Shared fixtures for PatentMap tests.

The constellation services are exercised against in-memory repositories and
a deterministic inference stub: each structure string maps to a fixed vector
whose leading components become the reduced coordinates. No database or
inference engine is needed.
"""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import AsyncGenerator, Dict, Iterable, List, Optional, Sequence

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from patentmap.dependencies.services import get_constellation_service
from patentmap.main import app
from patentmap.models.schemas import MoleculeRecord, PatentRecord, PortfolioRecord
from patentmap.services.cache import InMemoryConstellationCache
from patentmap.services.constellation import ConstellationService
from patentmap.services.inference import EmbeddingResult, InferenceEngineError

PORTFOLIO_ID = "00000000-0000-0000-0000-000000000001"
MISSING_PORTFOLIO_ID = "00000000-0000-0000-0000-0000000000ff"
FIXED_NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakePortfolioRepo:
    def __init__(self, portfolios: Iterable[PortfolioRecord] = ()) -> None:
        self.portfolios = {p.id: p for p in portfolios}
        self.fail = False

    async def get_by_id(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        if self.fail:
            raise RuntimeError("portfolio store unavailable")
        return self.portfolios.get(portfolio_id)


class FakePatentRepo:
    def __init__(self) -> None:
        self.by_portfolio: Dict[str, List[PatentRecord]] = {}
        self.patents: Dict[str, PatentRecord] = {}
        self.fail = False
        self.calls: List[str] = []

    def add(self, patent: PatentRecord, portfolio_id: Optional[str] = None) -> PatentRecord:
        self.patents[patent.id] = patent
        if portfolio_id:
            self.by_portfolio.setdefault(portfolio_id, []).append(patent)
        return patent

    async def find_by_portfolio_id(self, portfolio_id: str) -> List[PatentRecord]:
        self.calls.append("portfolio")
        if self.fail:
            raise RuntimeError("patent store unavailable")
        return list(self.by_portfolio.get(portfolio_id, []))

    async def find_by_assignee(self, assignee: str) -> List[PatentRecord]:
        self.calls.append("assignee")
        return [p for p in self.patents.values() if p.assignee == assignee]

    async def find_by_ids(self, patent_ids: Sequence[str]) -> List[PatentRecord]:
        self.calls.append("ids")
        return [self.patents[pid] for pid in patent_ids if pid in self.patents]


class FakeMoleculeRepo:
    def __init__(self, molecules: Iterable[MoleculeRecord] = ()) -> None:
        self.molecules = {m.id: m for m in molecules}

    async def find_by_ids(self, molecule_ids: Sequence[str]) -> List[MoleculeRecord]:
        return [self.molecules[mid] for mid in molecule_ids if mid in self.molecules]


class StubInference:
    """Embeds via a lookup table and 'reduces' by truncating vectors."""

    def __init__(self, vectors: Dict[str, List[float]], failing: Iterable[str] = ()) -> None:
        self.vectors = vectors
        self.failing = set(failing)
        self.embed_calls: List[str] = []
        self.reduce_calls: List[dict] = []
        self.reduce_error: Optional[Exception] = None
        self.drop_last = False
        self.healthy = True

    async def embed(self, smiles: str) -> EmbeddingResult:
        self.embed_calls.append(smiles)
        if smiles in self.failing or smiles not in self.vectors:
            raise InferenceEngineError(f"cannot embed {smiles}")
        return EmbeddingResult(vector=list(self.vectors[smiles]), confidence=0.9, latency_ms=1.0)

    async def reduce(self, vectors, algorithm, dimensions, perplexity=0.0, neighbors=0):
        self.reduce_calls.append(
            {
                "vectors": [list(v) for v in vectors],
                "algorithm": algorithm,
                "dimensions": dimensions,
                "perplexity": perplexity,
                "neighbors": neighbors,
            }
        )
        if self.reduce_error is not None:
            raise self.reduce_error
        reduced = [list(v[:dimensions]) for v in vectors]
        return reduced[:-1] if self.drop_last else reduced

    async def check_health(self) -> bool:
        return self.healthy


class BrokenCache:
    """Cache whose every operation fails."""

    async def get(self, key):
        raise ConnectionError("cache down")

    async def set(self, key, value, ttl_seconds):
        raise ConnectionError("cache down")

    async def delete(self, key):
        raise ConnectionError("cache down")


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def make_patent(
    pid: str,
    domain: str = "A61K",
    assignee: str = "OwnCorp",
    filing_date: Optional[date] = date(2020, 3, 15),
    value: float = 5.0,
    molecules: Sequence[str] = (),
    number: Optional[str] = None,
    status: str = "granted",
) -> PatentRecord:
    return PatentRecord(
        id=pid,
        patent_number=number or f"US{pid}",
        assignee=assignee,
        primary_tech_domain=domain,
        legal_status=status,
        filing_date=filing_date,
        value_score=value,
        molecule_ids=list(molecules),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def portfolio_repo() -> FakePortfolioRepo:
    return FakePortfolioRepo([PortfolioRecord(id=PORTFOLIO_ID, name="Test Portfolio")])


@pytest.fixture
def patent_repo() -> FakePatentRepo:
    """Three own patents with one molecule each, plus two competitor patents."""
    repo = FakePatentRepo()
    repo.add(make_patent("p1", "A61K", filing_date=date(2020, 3, 15), value=8.5, molecules=["mol-1"]), PORTFOLIO_ID)
    repo.add(make_patent("p2", "C07D", filing_date=date(2021, 7, 20), value=7.2, molecules=["mol-2"]), PORTFOLIO_ID)
    repo.add(make_patent("p3", "A61K", filing_date=date(2023, 1, 10), value=9.1, molecules=["mol-3"]), PORTFOLIO_ID)
    repo.add(make_patent("c1", "A61K", assignee="RivalCorp", value=6.0, molecules=["mol-1"]))
    repo.add(make_patent("c2", "G16B", assignee="RivalCorp", value=4.0, molecules=["mol-2"]))
    return repo


@pytest.fixture
def molecule_repo() -> FakeMoleculeRepo:
    return FakeMoleculeRepo(
        [
            MoleculeRecord(id="mol-1", smiles="CCO"),
            MoleculeRecord(id="mol-2", smiles="c1ccccc1"),
            MoleculeRecord(id="mol-3", smiles="CC(=O)O"),
        ]
    )


@pytest.fixture
def inference() -> StubInference:
    return StubInference(
        {
            "CCO": [0.0, 0.0, 1.0, 0.5],
            "c1ccccc1": [1.0, 2.0, 0.0, 0.5],
            "CC(=O)O": [2.0, 1.0, 0.5, 0.5],
        }
    )


@pytest.fixture
def cache() -> InMemoryConstellationCache:
    return InMemoryConstellationCache()


@pytest.fixture
def service(portfolio_repo, patent_repo, molecule_repo, inference, cache) -> ConstellationService:
    return ConstellationService(
        portfolio_repo=portfolio_repo,
        patent_repo=patent_repo,
        molecule_repo=molecule_repo,
        inference=inference,
        cache=cache,
        cache_ttl=300,
        clock=lambda: FIXED_NOW,
    )


@pytest_asyncio.fixture
async def client(service: ConstellationService) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the service dependency
    overridden to use the in-memory fixtures.
    """
    app.dependency_overrides[get_constellation_service] = lambda: service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
