"""
Lookup contracts for portfolios, patents and molecules, with SQLAlchemy
implementations backed by the async session.

The constellation services only depend on the Protocols; any failure raised
by an implementation is treated as fatal for the current request.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from patentmap.models.database_models import Molecule, Patent, Portfolio, portfolio_patents
from patentmap.models.schemas import MoleculeRecord, PatentRecord, PortfolioRecord

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class PortfolioRepository(Protocol):
    async def get_by_id(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        ...


class PatentRepository(Protocol):
    async def find_by_portfolio_id(self, portfolio_id: str) -> List[PatentRecord]:
        ...

    async def find_by_assignee(self, assignee: str) -> List[PatentRecord]:
        ...

    async def find_by_ids(self, patent_ids: Sequence[str]) -> List[PatentRecord]:
        ...


class MoleculeRepository(Protocol):
    async def find_by_ids(self, molecule_ids: Sequence[str]) -> List[MoleculeRecord]:
        ...


# ---------------------------------------------------------------------------
# SQLAlchemy implementations
# ---------------------------------------------------------------------------

class SqlPortfolioRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_by_id(self, portfolio_id: str) -> Optional[PortfolioRecord]:
        result = await self.db.execute(select(Portfolio).where(Portfolio.id == portfolio_id))
        portfolio = result.scalar_one_or_none()
        return PortfolioRecord.model_validate(portfolio) if portfolio else None


class SqlPatentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_portfolio_id(self, portfolio_id: str) -> List[PatentRecord]:
        result = await self.db.execute(
            select(Patent)
            .join(portfolio_patents, portfolio_patents.c.patent_id == Patent.id)
            .where(portfolio_patents.c.portfolio_id == portfolio_id)
            .order_by(Patent.filing_date, Patent.id)
        )
        return [PatentRecord.model_validate(p) for p in result.scalars().all()]

    async def find_by_assignee(self, assignee: str) -> List[PatentRecord]:
        result = await self.db.execute(
            select(Patent)
            .where(Patent.assignee == assignee)
            .order_by(Patent.filing_date, Patent.id)
        )
        return [PatentRecord.model_validate(p) for p in result.scalars().all()]

    async def find_by_ids(self, patent_ids: Sequence[str]) -> List[PatentRecord]:
        if not patent_ids:
            return []
        result = await self.db.execute(select(Patent).where(Patent.id.in_(list(patent_ids))))
        by_id = {p.id: p for p in result.scalars().all()}
        missing = [pid for pid in patent_ids if pid not in by_id]
        if missing:
            logger.warning("find_by_ids: %d patent id(s) not found", len(missing))
        return [PatentRecord.model_validate(by_id[pid]) for pid in patent_ids if pid in by_id]


class SqlMoleculeRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def find_by_ids(self, molecule_ids: Sequence[str]) -> List[MoleculeRecord]:
        if not molecule_ids:
            return []
        result = await self.db.execute(select(Molecule).where(Molecule.id.in_(list(molecule_ids))))
        by_id = {m.id: m for m in result.scalars().all()}
        return [MoleculeRecord.model_validate(by_id[mid]) for mid in molecule_ids if mid in by_id]
