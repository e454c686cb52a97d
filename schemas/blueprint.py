from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator

from schemas.base import SchemaBase
from schemas.common import MediaPolicy


class SectionTemplate(SchemaBase):
    """
    One section of a blueprint.

    media_policy is left as None when the blueprint does not declare one, so the
    image-need policy can tell "not declared" apart from "optional".
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    heading: Optional[str] = None
    type: str = "content"
    word_target: int = Field(150, gt=0)
    media_policy: Optional[MediaPolicy] = None


class Blueprint(SchemaBase):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    blueprint_id: str = Field(..., min_length=1)
    name: str = ""
    sections: list[SectionTemplate] = Field(default_factory=list)

    @field_validator("blueprint_id", mode="before")
    @classmethod
    def _id_as_str(cls, v: Any) -> Any:
        # Host post ids are integers.
        return str(v) if isinstance(v, int) else v
