from typing import Any, Dict

from pydantic import ConfigDict, Field

from schemas.base import SchemaBase
from schemas.common import BlockFamily


class BlockSpecification(SchemaBase):
    """
    Resolved target block for one section.

    Produced once per section by the block resolver and treated as read-only
    input by the prompt builder and the block converter.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    block_name: str = Field(..., description="Registered block name, e.g. core/group")
    plugin: str = Field("Unknown Plugin", description="Display name of the block family")
    plugin_key: str = Field("unknown", description="Family key, e.g. kadence_blocks")
    namespace: str = Field("", description="Block namespace (prefix before '/')")
    section_type: str = Field("content", description="hero, content, testimonial, ...")
    attributes: Dict[str, Any] = Field(default_factory=dict)
    fallback_used: bool = Field(False, description="True when the preferred family was unavailable")
    supports_inner_blocks: bool = False
    is_container: bool = False

    @property
    def family(self) -> BlockFamily:
        try:
            return BlockFamily(self.plugin_key)
        except ValueError:
            return BlockFamily.generic
