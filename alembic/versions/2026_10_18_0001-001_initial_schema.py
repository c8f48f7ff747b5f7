"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

All 4 tables as defined in patentmap/models/database_models.py:
portfolios, patents, molecules, portfolio_patents.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── portfolios ────────────────────────────────────────────────────────
    op.create_table(
        "portfolios",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("owner", sa.String(255), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── patents ───────────────────────────────────────────────────────────
    op.create_table(
        "patents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("patent_number", sa.String(64), nullable=False, index=True),
        sa.Column("title", sa.Text, nullable=True),
        sa.Column("assignee", sa.String(255), nullable=True, index=True),
        sa.Column("primary_tech_domain", sa.String(32), nullable=True, index=True),
        sa.Column("legal_status", sa.String(50), nullable=True),
        sa.Column("filing_date", sa.Date, nullable=True),
        sa.Column("value_score", sa.Float, nullable=True),
        sa.Column("molecule_ids", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── molecules ─────────────────────────────────────────────────────────
    op.create_table(
        "molecules",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("smiles", sa.Text, nullable=True),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── portfolio_patents ─────────────────────────────────────────────────
    op.create_table(
        "portfolio_patents",
        sa.Column("portfolio_id", sa.String(36), sa.ForeignKey("portfolios.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("patent_id", sa.String(36), sa.ForeignKey("patents.id", ondelete="CASCADE"), primary_key=True),
    )


def downgrade() -> None:
    op.drop_table("portfolio_patents")
    op.drop_table("molecules")
    op.drop_table("patents")
    op.drop_table("portfolios")
