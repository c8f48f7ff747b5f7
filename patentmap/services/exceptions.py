"""
Error taxonomy for constellation operations.

Routers translate these into HTTP status codes (see ``patentmap.routers.portfolios``).
"""
from __future__ import annotations


class ConstellationError(Exception):
    """Base class for all errors raised by the constellation services."""


class InvalidRequestError(ConstellationError):
    """A required field is missing or malformed. Raised before any I/O."""


class PortfolioNotFoundError(ConstellationError):
    """The requested portfolio does not exist."""

    def __init__(self, portfolio_id: str) -> None:
        super().__init__(f"portfolio {portfolio_id} not found")
        self.portfolio_id = portfolio_id


class DependencyFailureError(ConstellationError):
    """A repository, embedding or reduction call failed."""


class EmbeddingUnavailableError(ConstellationError):
    """Not a single molecule could be embedded, so there is nothing to map."""
