from typing import Any, List, Literal

from pydantic import Field, field_validator, model_validator

from schemas.base import SchemaBase
from schemas.common import DEFAULT_ALPHA, Tone, clamp_alpha


class MvdbParams(SchemaBase):
    namespaces: List[str] = Field(default_factory=list)
    k: int = Field(10, ge=1, le=50)
    min_score: float = Field(0.5, ge=0, le=1)


class OutlineParams(SchemaBase):
    brief: str
    audience: str = ""
    tone: Tone = Tone.professional
    alpha: float = DEFAULT_ALPHA
    mvdb_params: MvdbParams = Field(default_factory=MvdbParams)

    @field_validator("brief")
    @classmethod
    def _brief_long_enough(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < 10:
            raise ValueError("brief must be at least 10 characters")
        return v

    @field_validator("audience", mode="before")
    @classmethod
    def _audience_str(cls, v: Any) -> str:
        return str(v or "").strip()

    @field_validator("alpha", mode="before")
    @classmethod
    def _alpha_clamped(cls, v: Any) -> float:
        return clamp_alpha(v)


class OutlineSection(SchemaBase):
    id: str
    heading: str
    type: str = "content"
    target_words: int = Field(..., gt=0, alias="targetWords")
    needs_image: bool = Field(False, alias="needsImage")
    mode: Literal["stub", "hybrid"]
    subheadings: List[str] = Field(default_factory=list)


class OutlineResult(SchemaBase):
    sections: List[OutlineSection]
    total_words: int = Field(..., ge=0, alias="totalWords")
    estimated_time_minutes: int = Field(..., ge=0, alias="estimatedTimeMinutes")
    mode: Literal["stub", "hybrid"]
    estimated_cost: float = Field(0.0, ge=0, alias="estimatedCost")
    generated_at: str = Field(..., alias="generatedAt")
    blueprint_id: str = Field(..., alias="blueprintId")

    @model_validator(mode="after")
    def _totals_match(self) -> "OutlineResult":
        total = sum(s.target_words for s in self.sections)
        if self.total_words != total:
            raise ValueError(f"total_words={self.total_words} does not match sum of sections ({total})")
        return self


def estimate_writing_minutes(total_words: int) -> int:
    """Roughly 50 words per minute of writing, never less than five minutes."""
    return max(5, int(total_words) // 50)
