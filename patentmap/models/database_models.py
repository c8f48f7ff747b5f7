"""
SQLAlchemy ORM models for the PatentMap database.
"""
from sqlalchemy import (
    Column,
    String,
    Text,
    DateTime,
    Date,
    ForeignKey,
    Float,
    Table,
    JSON,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from patentmap.database import Base


# Association table: a patent may sit in several portfolios
portfolio_patents = Table(
    "portfolio_patents",
    Base.metadata,
    Column("portfolio_id", String(36), ForeignKey("portfolios.id", ondelete="CASCADE"), primary_key=True),
    Column("patent_id", String(36), ForeignKey("patents.id", ondelete="CASCADE"), primary_key=True),
)


class Portfolio(Base):
    """A named collection of patents owned or tracked by one organisation."""

    __tablename__ = "portfolios"

    id = Column(String(36), primary_key=True)  # UUID string
    name = Column(String(255), nullable=False)
    owner = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    patents = relationship("Patent", secondary=portfolio_patents, back_populates="portfolios")


class Patent(Base):
    """Patent with its bibliographic data and the molecules it claims."""

    __tablename__ = "patents"

    id = Column(String(36), primary_key=True)
    patent_number = Column(String(64), nullable=False, index=True)
    title = Column(Text, nullable=True)
    assignee = Column(String(255), nullable=True, index=True)
    primary_tech_domain = Column(String(32), nullable=True, index=True)  # IPC subclass, e.g. A61K
    legal_status = Column(String(50), nullable=True)
    filing_date = Column(Date, nullable=True)
    value_score = Column(Float, default=0.0)
    molecule_ids = Column(JSON, nullable=True)  # ordered list of molecule ids
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    portfolios = relationship("Portfolio", secondary=portfolio_patents, back_populates="patents")


class Molecule(Base):
    """Chemical structure referenced by one or more patents."""

    __tablename__ = "molecules"

    id = Column(String(64), primary_key=True)
    smiles = Column(Text, nullable=True)
    name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
