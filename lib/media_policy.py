from __future__ import annotations

from typing import Any, Mapping, Optional

from schemas.blueprint import SectionTemplate
from schemas.common import ImagePolicy, MediaPolicy

# Outline planning: section types that get an image when nothing else decides.
OUTLINE_IMAGE_TYPES = {"hero", "testimonial", "team", "pricing"}
# Section generation: types that get an image under the "optional" policy.
SECTION_IMAGE_TYPES = {"hero", "feature", "testimonial"}

_TRUE_WORDS = {"true", "yes", "1"}
_FALSE_WORDS = {"false", "no", "0", ""}


def _service_flag(value: Any) -> Optional[bool]:
    # Model JSON sometimes quotes booleans; anything unreadable defers to the blueprint.
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    return None


def needs_image(service_section: Optional[Mapping[str, Any]], template: Optional[SectionTemplate]) -> bool:
    """
    Decide whether an outline section should carry an image.

    An explicit `needs_image` from the generation service wins, then the
    blueprint's declared media policy, then the section type.
    """
    if service_section:
        flag = _service_flag(service_section.get("needs_image"))
        if flag is not None:
            return flag
    if template is not None and template.media_policy is not None:
        return template.media_policy == MediaPolicy.required
    section_type = template.type if template is not None else "content"
    return section_type in OUTLINE_IMAGE_TYPES


def should_request_image(policy: ImagePolicy, section_type: str) -> bool:
    if policy == ImagePolicy.none:
        return False
    if policy == ImagePolicy.required:
        return True
    return section_type in SECTION_IMAGE_TYPES
