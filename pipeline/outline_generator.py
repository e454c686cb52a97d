from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from agents.generation_service import TextGenerationService
from agents.stub_outline_agent import StubOutlineAgent
from app_logging.run_logger import RunLogger, utc_iso
from lib.context_retriever import ContextRetriever
from lib.cost import DEFAULT_RATES, Rates, estimate_text_cost
from lib.errors import RequestValidationError
from lib.media_policy import needs_image
from lib.prompt_builder import build_outline_prompt
from memory.cost_ledger import CostLedger, NullCostLedger
from schemas.blueprint import Blueprint, SectionTemplate
from schemas.common import MediaPolicy
from schemas.context import ContextChunk
from schemas.outline import OutlineParams, OutlineResult, OutlineSection, estimate_writing_minutes
from schemas.settings import ComposerSettings


@dataclass(frozen=True)
class StubMode:
    reason: str


@dataclass(frozen=True)
class LiveMode:
    pass


OutlineRunMode = Union[StubMode, LiveMode]


@dataclass(frozen=True)
class LiveOutlineSuccess:
    sections: List[OutlineSection]
    cost: float


@dataclass(frozen=True)
class LiveOutlineFailure:
    error: Exception


LiveOutlineResult = Union[LiveOutlineSuccess, LiveOutlineFailure]


def resolve_outline_mode(dev_flag: bool, settings: Optional[ComposerSettings] = None) -> OutlineRunMode:
    if dev_flag:
        return StubMode(reason="development flag")
    if settings is not None and settings.development.use_llm_stub:
        return StubMode(reason="use_llm_stub setting")
    return LiveMode()


def _positive_int(value: Any) -> Optional[int]:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return None
    return n if n > 0 else None


def _subheadings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(s).strip() for s in value if str(s).strip()]


def reshape_service_sections(response: Mapping[str, Any], blueprint: Blueprint) -> List[OutlineSection]:
    """
    Merge the service's sections with the blueprint, field by field.

    Heading, word target and subheadings come from the service when present;
    the section type always comes from the blueprint. When the service returns
    no sections at all, the blueprint's sections are used as they are and only
    a `required` media policy asks for an image.
    """
    service_sections = [s for s in (response.get("sections") or []) if isinstance(s, Mapping)]
    templates = blueprint.sections
    out: List[OutlineSection] = []

    for index, raw in enumerate(service_sections):
        template: Optional[SectionTemplate] = templates[index] if index < len(templates) else None
        heading = str(raw.get("heading") or "").strip() or (template.heading if template else None) or f"Section {index + 1}"
        target = _positive_int(raw.get("target_words")) or (template.word_target if template else 150)
        out.append(
            OutlineSection(
                id=f"section-{index + 1}",
                heading=heading,
                type=template.type if template else "content",
                target_words=target,
                needs_image=needs_image(raw, template),
                mode="hybrid",
                subheadings=_subheadings(raw.get("subheadings")),
            )
        )

    if not out:
        for index, template in enumerate(templates):
            out.append(
                OutlineSection(
                    id=f"section-{index + 1}",
                    heading=template.heading or f"Section {index + 1}",
                    type=template.type,
                    target_words=template.word_target,
                    needs_image=template.media_policy == MediaPolicy.required,
                    mode="hybrid",
                    subheadings=[],
                )
            )
    return out


class OutlineGenerator:
    """
    Whole-page outline planning.

    Stub mode runs the offline agent. Live mode builds the outline prompt,
    optionally pulls grounding context, asks the generation service and
    reshapes its answer. Any live failure, including the ledger charge, is
    logged and mapped onto the stub path once. Run log writes are best-effort;
    `generate` only raises for malformed params.
    """

    def __init__(
        self,
        generation_service: Optional[TextGenerationService],
        *,
        settings: Optional[ComposerSettings] = None,
        retriever: Optional[ContextRetriever] = None,
        stub_agent: Optional[StubOutlineAgent] = None,
        ledger: Optional[CostLedger] = None,
        rates: Rates = DEFAULT_RATES,
        dev_mode: bool = False,
        logger: Callable[[str], None] = print,
        run_logger: Optional[RunLogger] = None,
    ) -> None:
        self.generation_service = generation_service
        self.settings = settings or ComposerSettings()
        self.retriever = retriever
        self.stub_agent = stub_agent or StubOutlineAgent()
        self.ledger = ledger or NullCostLedger()
        self.rates = rates
        self.dev_mode = dev_mode
        self._log = logger
        self.run_logger = run_logger

    def generate(self, params: Union[OutlineParams, Dict[str, Any]], blueprint: Blueprint) -> OutlineResult:
        if not isinstance(params, OutlineParams):
            try:
                params = OutlineParams.model_validate(params)
            except ValidationError as e:
                raise RequestValidationError(f"Invalid outline parameters: {e}") from e

        subject = blueprint.blueprint_id
        mode = resolve_outline_mode(self.dev_mode, self.settings)
        if self.generation_service is None and isinstance(mode, LiveMode):
            mode = StubMode(reason="no generation service configured")

        self._record("start", {"brief": params.brief, "mode": type(mode).__name__}, subject_id=subject)

        if isinstance(mode, StubMode):
            self._log(f"🟢 Outline for blueprint {subject}: stub mode ({mode.reason})")
            return self._finish(self._stub_result(params, blueprint))

        live = self._generate_live(params, blueprint)
        if isinstance(live, LiveOutlineFailure):
            self._log(f"🟠 Live outline generation failed, falling back to stub: {live.error}")
            self._record("error", {"brief": params.brief}, live.error, subject_id=subject)
            self._record("fallback", str(live.error), to="stub", subject_id=subject)
            return self._finish(self._stub_result(params, blueprint))

        self._log(f"✅ Live outline for blueprint {subject}: {len(live.sections)} sections, ${live.cost:.4f}")
        return self._finish(self._result(live.sections, "hybrid", live.cost, blueprint))

    def _record(self, event: str, *args: Any, **kwargs: Any) -> None:
        # Run log writes never fail an outline.
        if self.run_logger is None:
            return
        try:
            getattr(self.run_logger, event)("outline", *args, **kwargs)
        except Exception as e:
            self._log(f"🟠 Run log write failed ({event}): {e}")

    def _finish(self, result: OutlineResult) -> OutlineResult:
        self._record(
            "end",
            {"mode": result.mode, "sections": len(result.sections)},
            {"total_words": result.total_words, "estimated_cost": result.estimated_cost},
            subject_id=result.blueprint_id,
        )
        return result

    def _result(self, sections: List[OutlineSection], mode: str, cost: float, blueprint: Blueprint) -> OutlineResult:
        total = sum(s.target_words for s in sections)
        return OutlineResult(
            sections=sections,
            total_words=total,
            estimated_time_minutes=estimate_writing_minutes(total),
            mode=mode,
            estimated_cost=cost,
            generated_at=utc_iso(),
            blueprint_id=blueprint.blueprint_id,
        )

    def _stub_result(self, params: OutlineParams, blueprint: Blueprint) -> OutlineResult:
        return self._result(self.stub_agent.generate(params, blueprint), "stub", 0.0, blueprint)

    def _retrieve_context(self, params: OutlineParams) -> List[ContextChunk]:
        mvdb = params.mvdb_params
        if not mvdb.namespaces or self.retriever is None:
            return []
        return self.retriever.retrieve(params.brief, k=mvdb.k, min_score=mvdb.min_score, namespaces=mvdb.namespaces)

    def _generate_live(self, params: OutlineParams, blueprint: Blueprint) -> LiveOutlineResult:
        try:
            prompt = build_outline_prompt(params, blueprint)
            context = self._retrieve_context(params)
            response = self.generation_service.generate_outline(prompt, context, params.alpha)
            sections = reshape_service_sections(response, blueprint)
            if not sections:
                raise ValueError("Generation service returned no sections and the blueprint has none")
            cost = estimate_text_cost(prompt, json.dumps(response, ensure_ascii=False), self.rates)
            self.ledger.add(cost)
            return LiveOutlineSuccess(sections=sections, cost=cost)
        except Exception as e:
            return LiveOutlineFailure(error=e)
