from typing import Any, Dict, List, Optional

from pydantic import Field

from schemas.base import SchemaBase
from schemas.common import DEFAULT_ALPHA, GenerationMode


DEFAULT_MVDB_API_URL = "https://api.wpengine.com/smart-search/v1"
ALLOWED_NAMESPACES = ["content", "products", "docs", "knowledge"]


class PluginInfo(SchemaBase):
    name: str
    namespace: str
    priority: int = 0


DEFAULT_PLUGINS: Dict[str, Dict[str, Any]] = {
    "genesis_blocks": {"name": "Genesis Blocks", "namespace": "genesis-blocks", "priority": 8},
    "kadence_blocks": {"name": "Kadence Blocks", "namespace": "kadence", "priority": 8},
    "stackable": {"name": "Stackable", "namespace": "ugb", "priority": 7},
    "ultimate_addons": {"name": "Ultimate Addons for Gutenberg", "namespace": "uagb", "priority": 7},
    "blocksy": {"name": "Blocksy Companion", "namespace": "blocksy", "priority": 6},
    "core": {"name": "WordPress Core Blocks", "namespace": "core", "priority": 5},
}

# section type -> family key -> block name
DEFAULT_SECTION_MAPPINGS: Dict[str, Dict[str, str]] = {
    "hero": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-container",
        "stackable": "ugb/hero",
        "ultimate_addons": "uagb/advanced-heading",
        "core": "core/cover",
    },
    "content": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-container",
        "stackable": "ugb/text",
        "ultimate_addons": "uagb/info-box",
        "core": "core/group",
    },
    "testimonial": {
        "kadence_blocks": "kadence/testimonials",
        "genesis_blocks": "genesis-blocks/gb-testimonial",
        "stackable": "ugb/testimonial",
        "ultimate_addons": "uagb/testimonial",
        "core": "core/quote",
    },
    "pricing": {
        "kadence_blocks": "kadence/pricelist",
        "genesis_blocks": "genesis-blocks/gb-pricing",
        "stackable": "ugb/pricing-box",
        "ultimate_addons": "uagb/restaurant-menu",
        "core": "core/table",
    },
    "team": {
        "kadence_blocks": "kadence/rowlayout",
        "genesis_blocks": "genesis-blocks/gb-profile-box",
        "stackable": "ugb/team-member",
        "ultimate_addons": "uagb/team",
        "core": "core/media-text",
    },
    "faq": {
        "kadence_blocks": "kadence/accordion",
        "genesis_blocks": "genesis-blocks/gb-accordion",
        "stackable": "ugb/expand",
        "ultimate_addons": "uagb/faq",
        "core": "core/details",
    },
    "cta": {
        "kadence_blocks": "kadence/advancedbtn",
        "genesis_blocks": "genesis-blocks/gb-button",
        "stackable": "ugb/cta",
        "ultimate_addons": "uagb/call-to-action",
        "core": "core/buttons",
    },
    "feature": {
        "kadence_blocks": "kadence/iconlist",
        "genesis_blocks": "genesis-blocks/gb-columns",
        "stackable": "ugb/feature",
        "ultimate_addons": "uagb/info-box",
        "core": "core/columns",
    },
}

DEFAULT_BLOCK_ATTRIBUTES: Dict[str, Dict[str, Any]] = {
    "kadence/rowlayout": {
        "uniqueID": "",
        "columns": 1,
        "padding": ["20", "20", "20", "20"],
        "backgroundImg": [],
        "backgroundOverlay": [],
    },
    "kadence/testimonials": {
        "uniqueID": "",
        "testimonialCount": 1,
        "layout": "simple",
        "displayTitle": True,
    },
    "kadence/accordion": {
        "uniqueID": "",
        "paneCount": 3,
        "startClosed": False,
        "showIcon": True,
    },
    "genesis-blocks/gb-container": {
        "containerPaddingTop": 20,
        "containerPaddingBottom": 20,
        "containerMaxWidth": 1200,
        "containerImgID": 0,
    },
    "core/cover": {
        "dimRatio": 30,
        "minHeight": 400,
        "contentPosition": "center center",
        "backgroundType": "image",
    },
    "core/group": {
        "layout": {"type": "constrained"},
        "style": {},
    },
    "core/columns": {
        "columns": 2,
        "isStackedOnMobile": True,
    },
}


class DevelopmentSettings(SchemaBase):
    use_llm_stub: bool = False


class RetrievalSettings(SchemaBase):
    api_url: str = DEFAULT_MVDB_API_URL
    access_token: str = ""
    timeout_seconds: float = Field(30.0, gt=0)
    default_namespaces: List[str] = Field(default_factory=lambda: ["content"])
    allowed_namespaces: List[str] = Field(default_factory=lambda: list(ALLOWED_NAMESPACES))
    k: int = Field(10, ge=1, le=50)
    min_score: float = Field(0.5, ge=0, le=1)


class GenerationSettings(SchemaBase):
    default_mode: GenerationMode = GenerationMode.hybrid
    alpha: float = Field(DEFAULT_ALPHA, ge=0, le=1)
    model: Optional[str] = None
    max_output_tokens: int = Field(2000, gt=0)


class RateSettings(SchemaBase):
    input_per_1k: float = Field(..., ge=0)
    output_per_1k: float = Field(..., ge=0)


class BlockSettings(SchemaBase):
    plugins: Dict[str, PluginInfo] = Field(
        default_factory=lambda: {k: PluginInfo(**v) for k, v in DEFAULT_PLUGINS.items()}
    )
    # None means every family listed in `plugins` is available.
    available_families: Optional[List[str]] = None
    section_mappings: Dict[str, Dict[str, str]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_SECTION_MAPPINGS.items()}
    )
    block_attributes: Dict[str, Dict[str, Any]] = Field(
        default_factory=lambda: {k: dict(v) for k, v in DEFAULT_BLOCK_ATTRIBUTES.items()}
    )


class ImageSettings(SchemaBase):
    media_dir: str = "media/generated"
    public_prefix: str = "/media/generated"
    model: Optional[str] = None
    cost_per_image_usd: float = Field(0.04, ge=0)


class LedgerSettings(SchemaBase):
    path: str = "memory/cost_ledger.json"


class ComposerSettings(SchemaBase):
    """Top-level shape of config/composer.yaml. Every section is optional."""

    development: DevelopmentSettings = Field(default_factory=DevelopmentSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    pricing: Dict[str, RateSettings] = Field(
        default_factory=lambda: {"default": RateSettings(input_per_1k=0.01, output_per_1k=0.03)}
    )
    blocks: BlockSettings = Field(default_factory=BlockSettings)
    images: ImageSettings = Field(default_factory=ImageSettings)
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
