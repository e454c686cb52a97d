from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence

from agents.llm_client import LLMClient, LLMResponse
from lib.cost import DEFAULT_RATES, Rates, estimate_cost, estimate_tokens
from lib.errors import GenerationError
from lib.prompt_builder import format_alpha
from schemas.block import BlockSpecification
from schemas.common import GenerationMode
from schemas.context import ContextChunk


SECTION_SYSTEM_INTRO = (
    "You are an expert content generator for websites. Your task is to create high-quality, "
    "engaging content for specific website sections."
)

SECTION_INSTRUCTIONS = [
    "Instructions:",
    "1. Generate content that is appropriate for the specified block type and section",
    "2. Ensure content is engaging, professional, and well-structured",
    "3. Include natural citations and references when relevant context is provided",
    "4. Format content appropriately for the target block structure",
    "5. Keep content focused and relevant to the provided brief",
]

OUTLINE_JSON_SHAPE = """{
  "sections": [
    {
      "heading": "Section Title",
      "target_words": 150,
      "needs_image": true,
      "subheadings": ["Subheading 1", "Subheading 2"]
    }
  ]
}"""


@dataclass(frozen=True)
class GenerationResponse:
    content: str
    token_count: int
    cost_usd: float


class TextGenerationService(Protocol):
    def generate_content(
        self,
        prompt: str,
        mode: GenerationMode,
        alpha: float,
        block_spec: BlockSpecification,
    ) -> GenerationResponse: ...

    def generate_outline(self, prompt: str, context: Sequence[ContextChunk], alpha: float) -> Dict[str, Any]: ...


def build_section_system_message(mode: GenerationMode, alpha: float, block_spec: Optional[BlockSpecification]) -> str:
    lines = [SECTION_SYSTEM_INTRO, "", f"Generation Mode: {mode.value}"]
    if mode == GenerationMode.hybrid:
        lines.append(f"Alpha Weight: {format_alpha(alpha)} (balance between provided context and creative generation)")
    if block_spec is not None:
        lines.extend(
            [
                "",
                "Block Requirements:",
                f"- Block Type: {block_spec.block_name}",
                f"- Plugin: {block_spec.plugin}",
                f"- Section Type: {block_spec.section_type}",
            ]
        )
    lines.append("")
    lines.extend(SECTION_INSTRUCTIONS)
    return "\n".join(lines)


def build_outline_system_message(alpha: float) -> str:
    lean = (
        "Focus heavily on the provided context and knowledge base information."
        if alpha > 0.5
        else "Be creative while incorporating relevant context when available."
    )
    return "\n".join(
        [
            "You are an expert content strategist creating structured outlines for web content.",
            "Your task is to generate a detailed content outline based on the provided brief and requirements.",
            lean,
            "Return only a JSON object with this exact structure:",
            OUTLINE_JSON_SHAPE,
            "",
            "Make headings specific and engaging. Include 2-3 relevant subheadings per section.",
            "Set needs_image to true for visual sections like hero, testimonials, team, pricing.",
        ]
    )


def with_context(prompt: str, context: Sequence[ContextChunk]) -> str:
    if not context:
        return prompt
    lines = ["Relevant context from knowledge base:"]
    lines.extend(f"- {c.text}" for c in context)
    return "\n".join(lines) + "\n\n" + prompt


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the JSON object between the first '{' and the last '}' of a model reply."""
    start = (text or "").find("{")
    end = (text or "").rfind("}")
    if start == -1 or end == -1 or end < start:
        raise GenerationError("No JSON object found in model response")
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise GenerationError(f"Failed to parse JSON from model response: {e}") from e
    if not isinstance(data, dict):
        raise GenerationError("Model response JSON is not an object")
    return data


class GenerationService:
    """
    Text-generation capability backed by the OpenAI client.

    Every client failure surfaces as GenerationError. Cost uses the API's
    reported token usage when present, otherwise the ~4 chars/token estimate.
    """

    def __init__(
        self,
        client: Optional[LLMClient] = None,
        *,
        model: Optional[str] = None,
        rates: Rates = DEFAULT_RATES,
        max_output_tokens: Optional[int] = 2000,
    ) -> None:
        self._client = client
        self.model = model
        self.rates = rates
        self.max_output_tokens = max_output_tokens

    @property
    def client(self) -> LLMClient:
        if self._client is None:
            self._client = LLMClient(model=self.model)
        return self._client

    def _call(self, system: str, user: str) -> LLMResponse:
        messages = [{"role": "system", "content": system}, {"role": "user", "content": user}]
        try:
            return self.client.generate(messages=messages, max_output_tokens=self.max_output_tokens)
        except GenerationError:
            raise
        except Exception as e:
            raise GenerationError(f"Generation request failed: {e}") from e

    def _cost(self, prompt_text: str, resp: LLMResponse) -> tuple[int, float]:
        if resp.has_usage:
            prompt_tokens, response_tokens = int(resp.input_tokens or 0), int(resp.output_tokens or 0)
        else:
            prompt_tokens, response_tokens = estimate_tokens(prompt_text), estimate_tokens(resp.text)
        token_count = int(resp.total_tokens) if resp.total_tokens is not None else prompt_tokens + response_tokens
        return token_count, estimate_cost(prompt_tokens, response_tokens, self.rates)

    def generate_content(
        self,
        prompt: str,
        mode: GenerationMode,
        alpha: float,
        block_spec: BlockSpecification,
    ) -> GenerationResponse:
        if not (prompt or "").strip():
            raise GenerationError("No prompt provided for content generation")

        system = build_section_system_message(mode, alpha, block_spec)
        resp = self._call(system, prompt)
        if not resp.text:
            raise GenerationError("Model returned empty content")

        token_count, cost = self._cost(system + "\n" + prompt, resp)
        return GenerationResponse(content=resp.text, token_count=token_count, cost_usd=cost)

    def generate_outline(self, prompt: str, context: Sequence[ContextChunk], alpha: float) -> Dict[str, Any]:
        user = with_context(prompt, context)
        resp = self._call(build_outline_system_message(alpha), user)
        data = extract_json_object(resp.text)
        if not isinstance(data.get("sections"), list):
            raise GenerationError("Invalid section structure in model response")
        return data
