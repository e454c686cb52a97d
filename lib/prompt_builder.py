from __future__ import annotations

from typing import Sequence

from lib.text_utils import trim_words
from schemas.block import BlockSpecification
from schemas.blueprint import Blueprint
from schemas.common import GenerationMode, MediaPolicy
from schemas.context import ContextChunk
from schemas.outline import OutlineParams
from schemas.section import GenerationRequest

MAX_CONTEXT_CHUNKS = 5
CHUNK_WORD_LIMIT = 50

SECTION_CLOSING_LINE = "Please generate appropriate content that fits the block structure and section requirements."

OUTLINE_INSTRUCTIONS = [
    "",
    "Generate a structured content outline with:",
    "- Specific headings for each section",
    "- Target word counts",
    "- Image requirements",
    "- 2-3 subheadings per section where appropriate",
]


def format_alpha(alpha: float) -> str:
    # 14 significant digits: 0.7 -> "0.7", 1.0 -> "1", 0.1234567 -> "0.1234567"
    return f"{float(alpha):.14g}"


def build_section_prompt(
    request: GenerationRequest,
    chunks: Sequence[ContextChunk],
    block_spec: BlockSpecification,
) -> str:
    """
    Assemble the section generation prompt.

    The line order is fixed: header, brief, up to five context chunks, block
    requirements, mode, alpha (hybrid only), closing instruction. Downstream
    prompt comparisons rely on this exact layout.
    """
    prompt = (
        f"Generate content for a {block_spec.section_type} section using {block_spec.block_name} block.\n\n"
    )
    prompt += f"Content Brief: {request.content_brief}\n\n"

    if chunks:
        prompt += "Relevant Context:\n"
        for chunk in list(chunks)[:MAX_CONTEXT_CHUNKS]:
            prompt += f"- {trim_words(chunk.text, CHUNK_WORD_LIMIT)}\n"
        prompt += "\n"

    prompt += "Block Requirements:\n"
    prompt += f"- Block Type: {block_spec.block_name}\n"
    prompt += f"- Plugin: {block_spec.plugin}\n"
    prompt += f"- Section Type: {block_spec.section_type}\n"
    if block_spec.attributes:
        prompt += f"- Required Attributes: {', '.join(block_spec.attributes.keys())}\n"

    prompt += f"\nGeneration Mode: {request.mode.value}\n"
    if request.mode == GenerationMode.hybrid:
        prompt += f"Alpha Weight: {format_alpha(request.alpha)} (context relevance)\n"

    prompt += f"\n{SECTION_CLOSING_LINE}"
    return prompt


def build_outline_prompt(params: OutlineParams, blueprint: Blueprint) -> str:
    parts = [f"Content Brief: {params.brief}"]

    if params.audience:
        parts.append(f"Target Audience: {params.audience}")

    parts.append(f"Tone: {params.tone.value.capitalize()}")

    if blueprint.sections:
        parts.append("Required Sections:")
        for section in blueprint.sections:
            images = "with" if section.media_policy == MediaPolicy.required else "without"
            parts.append(
                f"- {section.heading or 'Section'} ({section.type}, {section.word_target} words, {images} images)"
            )

    parts.extend(OUTLINE_INSTRUCTIONS)
    return "\n".join(parts)
