import math
from enum import Enum
from typing import Any

DEFAULT_ALPHA = 0.7


class GenerationMode(str, Enum):
    grounded = "grounded"
    hybrid = "hybrid"
    generative = "generative"


class OutlineMode(str, Enum):
    stub = "stub"
    hybrid = "hybrid"


class ImagePolicy(str, Enum):
    none = "none"
    optional = "optional"
    required = "required"


class MediaPolicy(str, Enum):
    required = "required"
    optional = "optional"
    none = "none"


class Tone(str, Enum):
    professional = "professional"
    casual = "casual"
    technical = "technical"
    friendly = "friendly"
    authoritative = "authoritative"


class BlockFamily(str, Enum):
    kadence_blocks = "kadence_blocks"
    genesis_blocks = "genesis_blocks"
    core = "core"
    generic = "generic"


class CitationStyle(str, Enum):
    inline = "inline"
    footnote = "footnote"
    bibliography = "bibliography"


class CitationFormat(str, Enum):
    text = "text"
    html = "html"


def coerce_mode(value: Any) -> GenerationMode:
    """Absent or unknown modes fall back to hybrid."""
    if isinstance(value, GenerationMode):
        return value
    raw = str(value or "").strip().lower()
    try:
        return GenerationMode(raw)
    except ValueError:
        return GenerationMode.hybrid


def clamp_alpha(value: Any, default: float = DEFAULT_ALPHA) -> float:
    """Clamp alpha into [0.0, 1.0]; None means the default weight."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValueError("alpha must be a number, got a boolean")
    try:
        alpha = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"alpha must be a number, got {value!r}") from e
    if math.isnan(alpha):
        raise ValueError("alpha must be a number, got NaN")
    return min(1.0, max(0.0, alpha))
