from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator

from schemas.base import SchemaBase
from schemas.common import (
    DEFAULT_ALPHA,
    CitationFormat,
    CitationStyle,
    GenerationMode,
    ImagePolicy,
    clamp_alpha,
    coerce_mode,
)


class BlockPreferences(SchemaBase):
    preferred_plugin: str = ""
    section_type: str = "content"
    fallback_blocks: List[str] = Field(default_factory=list)
    custom_attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("section_type", mode="before")
    @classmethod
    def _section_type_default(cls, v: Any) -> Any:
        return (str(v).strip().lower() or "content") if v is not None else "content"


class ImageRequirements(SchemaBase):
    policy: ImagePolicy = ImagePolicy.optional
    style: str = "photographic"
    alt_text_required: bool = True
    license_compliance: List[str] = Field(default_factory=list)


class CitationSettings(SchemaBase):
    enabled: bool = True
    style: CitationStyle = CitationStyle.inline
    include_mvdb_refs: bool = True
    format: CitationFormat = CitationFormat.text


class GenerationRequest(SchemaBase):
    """
    One section generation request.

    `mode` never fails validation: absent or unknown values become hybrid.
    `alpha` is clamped into [0, 1]; only non-numeric input is rejected.
    """

    section_id: str = Field(..., alias="sectionId", min_length=1)
    content_brief: str = Field(..., alias="contentBrief")
    mode: GenerationMode = GenerationMode.hybrid
    alpha: float = DEFAULT_ALPHA
    block_preferences: BlockPreferences = Field(default_factory=BlockPreferences, alias="blockPreferences")
    image_requirements: ImageRequirements = Field(default_factory=ImageRequirements, alias="imageRequirements")
    citation_settings: CitationSettings = Field(default_factory=CitationSettings, alias="citationSettings")

    @field_validator("content_brief")
    @classmethod
    def _brief_long_enough(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 10:
            raise ValueError("contentBrief must be at least 10 characters")
        return v

    @field_validator("mode", mode="before")
    @classmethod
    def _mode_default(cls, v: Any) -> GenerationMode:
        return coerce_mode(v)

    @field_validator("alpha", mode="before")
    @classmethod
    def _alpha_clamped(cls, v: Any) -> float:
        return clamp_alpha(v)


class SectionContent(SchemaBase):
    html: str
    block_json: Dict[str, Any] = Field(..., alias="json")


class BlockTypeInfo(SchemaBase):
    name: str
    plugin: str
    namespace: str
    fallback_used: bool = False


CitationType = Literal["inline", "parenthetical", "narrative", "reference"]


class Citation(SchemaBase):
    id: str
    text: str
    type: CitationType
    position: int = Field(..., ge=0)
    source: str = ""
    chunk_id: Optional[str] = None
    confidence: float = Field(0.0, ge=0, le=1)
    url: Optional[str] = None
    formatted: str = ""
    aria_label: str = ""


class MediaDimensions(SchemaBase):
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)


class MediaDescriptor(SchemaBase):
    id: str
    url: str
    alt_text: str = ""
    license: str = "generated"
    attribution: str = ""
    dimensions: Optional[MediaDimensions] = None
    cost_usd: float = Field(0.0, ge=0)


class GenerationMetadata(SchemaBase):
    mode: GenerationMode
    alpha: float = Field(..., ge=0, le=1)
    word_count: int = Field(..., ge=0)
    token_count: int = Field(..., ge=0)
    cost_usd: float = Field(..., ge=0)
    processing_time_ms: int = Field(..., ge=0)
    # Set by the caller's cache layer, never by the generator.
    cache_hit: bool = False


class GeneratedSection(SchemaBase):
    section_id: str = Field(..., alias="sectionId")
    content: SectionContent
    block_type: BlockTypeInfo = Field(..., alias="blockType")
    citations: List[Citation] = Field(default_factory=list)
    media_id: Optional[str] = Field(None, alias="mediaId")
    media: Optional[MediaDescriptor] = None
    metadata: GenerationMetadata
