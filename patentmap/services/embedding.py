"""
Embedding & reduction orchestration for constellation points.

Turns a filtered patent set into labelled points in 2D/3D:

1. Collect the molecule ids the patents reference (deduplicated, in order).
2. Embed every molecule that has a structure string. Single failures are
   logged and skipped; if nothing could be embedded the run is aborted.
3. Sort the vectors by molecule id and reduce them in one batched call.
4. Map each (patent, molecule) reference back onto its reduced coordinates.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Sequence

from patentmap.models.schemas import (
    ConstellationPoint,
    DimensionReduction,
    MoleculeRecord,
    PatentRecord,
    PointType,
    ReductionAlgorithm,
)
from patentmap.services.exceptions import DependencyFailureError, EmbeddingUnavailableError
from patentmap.services.inference import InferenceEngine
from patentmap.utils.helpers import dedupe_preserving_order

logger = logging.getLogger(__name__)

DEFAULT_PERPLEXITY = 30.0
DEFAULT_NEIGHBORS = 15


def extract_molecule_ids(patents: Iterable[PatentRecord]) -> List[str]:
    """Unique molecule ids referenced by *patents*, first occurrence first."""
    return dedupe_preserving_order(mid for p in patents for mid in p.molecule_ids)


def apply_reduction_defaults(reduction: DimensionReduction) -> DimensionReduction:
    """Fill unset reduction parameters and clamp the target dimensions to [2, 3]."""
    algorithm = reduction.algorithm or ReductionAlgorithm.UMAP
    dimensions = min(max(reduction.dimensions, 2), 3)
    perplexity = reduction.perplexity
    if perplexity == 0 and algorithm == ReductionAlgorithm.TSNE:
        perplexity = DEFAULT_PERPLEXITY
    neighbors = reduction.neighbors
    if neighbors == 0 and algorithm == ReductionAlgorithm.UMAP:
        neighbors = DEFAULT_NEIGHBORS
    return DimensionReduction(
        algorithm=algorithm,
        dimensions=dimensions,
        perplexity=perplexity,
        neighbors=neighbors,
    )


class EmbeddingOrchestrator:
    """Drives the inference engine for one constellation or heatmap run."""

    def __init__(self, inference: InferenceEngine) -> None:
        self.inference = inference

    async def generate_embeddings(
        self, molecules: Sequence[MoleculeRecord]
    ) -> Dict[str, List[float]]:
        """
        Embed each molecule with a structure string.

        Returns ``{molecule_id: vector}``. Raises
        :class:`EmbeddingUnavailableError` when no molecule could be embedded.
        """
        embeddings: Dict[str, List[float]] = {}
        failed = 0
        skipped = 0

        for mol in molecules:
            if not mol.smiles:
                skipped += 1
                continue
            try:
                result = await self.inference.embed(mol.smiles)
            except Exception as exc:
                failed += 1
                logger.warning(
                    "failed to generate embedding for molecule %s: %s", mol.id, exc
                )
                continue
            embeddings[mol.id] = list(result.vector)

        logger.info(
            "generate_embeddings: %d/%d molecules embedded (%d failed, %d without structure)",
            len(embeddings),
            len(molecules),
            failed,
            skipped,
        )
        if not embeddings:
            raise EmbeddingUnavailableError(
                "no embeddings could be generated for portfolio molecules"
            )
        return embeddings

    async def reduce_embeddings(
        self,
        embeddings: Mapping[str, Sequence[float]],
        reduction: DimensionReduction,
    ) -> Dict[str, List[float]]:
        """
        Reduce all vectors in one call.

        Vectors are submitted in molecule-id order; the returned mapping is
        ``{molecule_id: coordinates}``.
        """
        keys = sorted(embeddings)
        vectors = [list(embeddings[k]) for k in keys]
        algorithm = (reduction.algorithm or ReductionAlgorithm.UMAP).value

        try:
            reduced = await self.inference.reduce(
                vectors,
                algorithm=algorithm,
                dimensions=reduction.dimensions,
                perplexity=reduction.perplexity,
                neighbors=reduction.neighbors,
            )
        except Exception as exc:
            raise DependencyFailureError(f"failed to reduce embeddings: {exc}") from exc

        if len(reduced) != len(keys):
            raise DependencyFailureError(
                f"reduction returned {len(reduced)} coordinates for {len(keys)} vectors"
            )
        return dict(zip(keys, (list(c) for c in reduced)))

    async def embed_and_reduce(
        self,
        molecules: Sequence[MoleculeRecord],
        reduction: DimensionReduction,
    ) -> Dict[str, List[float]]:
        embeddings = await self.generate_embeddings(molecules)
        return await self.reduce_embeddings(embeddings, reduction)

    @staticmethod
    def build_points(
        patents: Sequence[PatentRecord],
        molecules: Sequence[MoleculeRecord],
        coordinates: Mapping[str, Sequence[float]],
        point_type: PointType = PointType.OWN_PATENT,
    ) -> List[ConstellationPoint]:
        """
        One point per (patent, molecule) reference that received coordinates.

        A patent citing several molecules yields several points; molecules
        shared between patents appear once per citing patent.
        """
        smiles_by_id = {m.id: m.smiles for m in molecules}
        points: List[ConstellationPoint] = []

        for patent in patents:
            for mid in patent.molecule_ids:
                coords = coordinates.get(mid)
                if coords is None:
                    continue
                points.append(
                    ConstellationPoint(
                        id=f"{patent.id}-{mid}",
                        patent_number=patent.patent_number or None,
                        molecule_id=mid,
                        smiles=smiles_by_id.get(mid) or None,
                        x=coords[0] if len(coords) >= 1 else 0.0,
                        y=coords[1] if len(coords) >= 2 else 0.0,
                        z=coords[2] if len(coords) >= 3 else None,
                        tech_domain=patent.primary_tech_domain,
                        legal_status=patent.legal_status,
                        assignee=patent.assignee,
                        filing_year=patent.filing_date.year if patent.filing_date else None,
                        value_score=patent.value_score,
                        point_type=point_type,
                    )
                )
        return points
