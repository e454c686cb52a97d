from typing import Any, Dict

from pydantic import ConfigDict, Field

from schemas.base import SchemaBase


class ContextChunk(SchemaBase):
    """
    A scored passage returned by the vector search service.

    Chunks are immutable once returned, and the list they arrive in keeps the
    service's ranking (descending score). Nothing downstream re-sorts it.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(..., description="Stable chunk id, e.g. chunk-123")
    text: str = Field(..., description="Passage text used for grounding")
    score: float = Field(..., ge=0, le=1, description="Similarity score")
    source_id: str = Field("", description="Identifier of the source document")
    source: str = Field("", description="Attribution text or source URL")
    metadata: Dict[str, Any] = Field(default_factory=dict)
