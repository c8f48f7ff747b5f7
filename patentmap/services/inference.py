"""
Client for the remote molecular inference engine.

Provides:
- InferenceEngine: the two-call contract (embed, reduce) the orchestrator needs
- EmbeddingResult: one embedding with its confidence and backend latency
- HttpInferenceClient: httpx implementation talking to the inference service
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import httpx

from patentmap.config import settings

logger = logging.getLogger(__name__)


class InferenceEngineError(Exception):
    """The inference engine could not serve a request."""


@dataclass
class EmbeddingResult:
    vector: List[float]
    confidence: float = 1.0
    latency_ms: float = 0.0


class InferenceEngine(Protocol):
    async def embed(self, smiles: str) -> EmbeddingResult:
        ...

    async def reduce(
        self,
        vectors: Sequence[Sequence[float]],
        algorithm: str,
        dimensions: int,
        perplexity: float = 0.0,
        neighbors: int = 0,
    ) -> List[List[float]]:
        ...


class HttpInferenceClient:
    """
    Inference engine reached over HTTP.

    * ``POST /v1/embeddings``: ``{"smiles", "model_type"}`` → ``{"embedding", "confidence"}``
    * ``POST /v1/reduce``: ``{"vectors", "algorithm", "dimensions", ...}`` → ``{"reduced"}``
    * ``GET  /health``: liveness

    Failures surface as :class:`InferenceEngineError`; retrying is left to
    the caller.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        model_type: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.INFERENCE_BASE_URL).rstrip("/")
        self.model_type = model_type or settings.INFERENCE_MODEL_TYPE
        self.timeout = httpx.Timeout(timeout or settings.INFERENCE_TIMEOUT, connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Primary API
    # ------------------------------------------------------------------

    async def embed(self, smiles: str) -> EmbeddingResult:
        """Embed one structure string."""
        if not smiles or not smiles.strip():
            raise InferenceEngineError("cannot embed an empty structure")

        t0 = time.perf_counter()
        data = await self._post(
            "/v1/embeddings",
            {"smiles": smiles.strip(), "model_type": self.model_type},
        )
        elapsed_ms = (time.perf_counter() - t0) * 1000

        vector = data.get("embedding")
        if not vector:
            raise InferenceEngineError("inference response missing 'embedding' field")

        logger.debug("Embedded %r → %d-dim in %.1f ms", smiles, len(vector), elapsed_ms)
        return EmbeddingResult(
            vector=[float(v) for v in vector],
            confidence=float(data.get("confidence", 1.0)),
            latency_ms=float(data.get("latency_ms", elapsed_ms)),
        )

    async def reduce(
        self,
        vectors: Sequence[Sequence[float]],
        algorithm: str,
        dimensions: int,
        perplexity: float = 0.0,
        neighbors: int = 0,
    ) -> List[List[float]]:
        """Project *vectors* down to *dimensions* coordinates in one batch."""
        payload = {
            "vectors": [list(v) for v in vectors],
            "algorithm": algorithm,
            "dimensions": dimensions,
            "perplexity": perplexity,
            "neighbors": neighbors,
        }
        data = await self._post("/v1/reduce", payload)
        reduced = data.get("reduced")
        if reduced is None:
            raise InferenceEngineError("inference response missing 'reduced' field")
        logger.info(
            "Reduced %d vectors to %dD with %s", len(vectors), dimensions, algorithm
        )
        return [[float(c) for c in row] for row in reduced]

    async def check_health(self) -> bool:
        """Return ``True`` if the inference engine answers its health probe."""
        try:
            async with self._client(timeout=5.0) as client:
                resp = await client.get(f"{self.base_url}/health")
                return resp.status_code == 200
        except Exception as exc:
            logger.error("Inference health check failed: %s", exc)
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _client(self, timeout=None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    async def _post(self, path: str, payload: dict) -> dict:
        try:
            async with self._client() as client:
                resp = await client.post(f"{self.base_url}{path}", json=payload)
        except httpx.TimeoutException as exc:
            raise InferenceEngineError(f"inference timeout on {path}: {exc}") from exc
        except httpx.HTTPError as exc:
            raise InferenceEngineError(f"inference request to {path} failed: {exc}") from exc

        if resp.status_code != 200:
            raise InferenceEngineError(
                f"inference {path} returned {resp.status_code}: {resp.text[:300]}"
            )
        return resp.json()
