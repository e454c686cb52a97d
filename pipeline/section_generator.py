from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import ValidationError

from agents.generation_service import GenerationResponse, TextGenerationService
from app_logging.run_logger import RunLogger
from lib.block_converter import IdFactory, Renderer, convert, default_unique_id, render_markup
from lib.block_resolver import BlockResolver
from lib.citations import extract_citations
from lib.context_retriever import ContextRetriever
from lib.errors import RequestValidationError, SectionGenerationError
from lib.media_policy import should_request_image
from lib.prompt_builder import build_section_prompt
from lib.text_utils import count_words
from memory.cost_ledger import CostLedger, NullCostLedger
from pipeline.image_step import ImagePipeline, build_alt_text, build_image_prompt
from schemas.block import BlockSpecification
from schemas.common import GenerationMode
from schemas.context import ContextChunk
from schemas.section import (
    BlockTypeInfo,
    GeneratedSection,
    GenerationMetadata,
    GenerationRequest,
    MediaDescriptor,
    SectionContent,
)

RETRIEVAL_K = 10
RETRIEVAL_MIN_SCORE = 0.5


@dataclass(frozen=True)
class Grounded:
    pass


@dataclass(frozen=True)
class Hybrid:
    alpha: float


@dataclass(frozen=True)
class Generative:
    pass


SectionMode = Union[Grounded, Hybrid, Generative]


def resolve_section_mode(request: GenerationRequest) -> SectionMode:
    if request.mode == GenerationMode.grounded:
        return Grounded()
    if request.mode == GenerationMode.generative:
        return Generative()
    return Hybrid(alpha=request.alpha)


def uses_context(mode: SectionMode) -> bool:
    return isinstance(mode, (Grounded, Hybrid))


class SectionGenerator:
    """
    Generates one page section end to end.

    Order: resolve block, retrieve context (grounded/hybrid only), build prompt,
    generate, convert to blocks and render, extract citations, optionally
    request an image, assemble the result. Retrieval and image failures are
    logged and replaced by empty defaults; a generation failure is raised as
    SectionGenerationError.
    """

    def __init__(
        self,
        resolver: BlockResolver,
        retriever: Optional[ContextRetriever],
        generation_service: TextGenerationService,
        image_pipeline: Optional[ImagePipeline] = None,
        renderer: Optional[Renderer] = None,
        ledger: Optional[CostLedger] = None,
        logger: Callable[[str], None] = print,
        run_logger: Optional[RunLogger] = None,
        clock: Callable[[], float] = time.perf_counter,
        id_factory: IdFactory = default_unique_id,
    ) -> None:
        self.resolver = resolver
        self.retriever = retriever
        self.generation_service = generation_service
        self.image_pipeline = image_pipeline
        self.renderer = renderer
        self.ledger = ledger or NullCostLedger()
        self._log = logger
        self.run_logger = run_logger
        self.clock = clock
        self.id_factory = id_factory

    def _validate(self, request: Union[GenerationRequest, Dict[str, Any]]) -> GenerationRequest:
        if isinstance(request, GenerationRequest):
            return request
        try:
            return GenerationRequest.model_validate(request)
        except ValidationError as e:
            raise RequestValidationError(f"Invalid generation request: {e}") from e

    def _retrieve(self, request: GenerationRequest) -> List[ContextChunk]:
        if self.retriever is None:
            return []
        try:
            return self.retriever.retrieve(request.content_brief, k=RETRIEVAL_K, min_score=RETRIEVAL_MIN_SCORE)
        except Exception as e:
            self._log(f"🟠 Context retrieval failed for {request.section_id}, continuing without context: {e}")
            if self.run_logger:
                self.run_logger.error("retrieval", {"query": request.content_brief}, e, subject_id=request.section_id)
                self.run_logger.fallback("retrieval", str(e), to="empty_context", subject_id=request.section_id)
            return []

    def _generate(self, request: GenerationRequest, chunks: List[ContextChunk], spec: BlockSpecification) -> GenerationResponse:
        prompt = build_section_prompt(request, chunks, spec)
        try:
            return self.generation_service.generate_content(prompt, request.mode, request.alpha, spec)
        except Exception as e:
            self._log(f"❌ Content generation failed for {request.section_id}: {e}")
            if self.run_logger:
                self.run_logger.error("generation", {"prompt_chars": len(prompt)}, e, subject_id=request.section_id)
            raise SectionGenerationError(str(e)) from e

    def _request_image(self, request: GenerationRequest, spec: BlockSpecification) -> Optional[MediaDescriptor]:
        if not should_request_image(request.image_requirements.policy, spec.section_type):
            return None
        if self.image_pipeline is None:
            self._log(f"🟠 Image wanted for {request.section_id} but no image pipeline is configured")
            return None

        try:
            media = self.image_pipeline.request(
                prompt=build_image_prompt(request.content_brief, spec.section_type),
                style=request.image_requirements.style,
                source="generate",
                alt_text=build_alt_text(request.content_brief, spec.section_type),
                license_filter=list(request.image_requirements.license_compliance),
            )
            if not isinstance(media, MediaDescriptor):
                media = MediaDescriptor.model_validate(media)
            return media
        except Exception as e:
            self._log(f"🟠 Image step failed for {request.section_id}, continuing without media: {e}")
            if self.run_logger:
                self.run_logger.error("image", {"section_type": spec.section_type}, e, subject_id=request.section_id)
                self.run_logger.fallback("image", str(e), to="no_media", subject_id=request.section_id)
            return None

    def generate(self, request: Union[GenerationRequest, Dict[str, Any]]) -> GeneratedSection:
        request = self._validate(request)
        started = self.clock()
        if self.run_logger:
            self.run_logger.start(
                "section",
                {"mode": request.mode.value, "alpha": request.alpha, "section_type": request.block_preferences.section_type},
                subject_id=request.section_id,
            )

        try:
            spec = self.resolver.resolve(request.block_preferences)
        except Exception as e:
            raise SectionGenerationError(f"block resolution failed: {e}") from e

        mode = resolve_section_mode(request)
        chunks = self._retrieve(request) if uses_context(mode) else []

        generated = self._generate(request, chunks, spec)

        try:
            tree = convert(generated.content, spec, id_factory=self.id_factory)
            html = render_markup(tree, self.renderer)
        except Exception as e:
            raise SectionGenerationError(f"block conversion failed: {e}") from e

        citations = extract_citations(generated.content, chunks, request.citation_settings)
        media = self._request_image(request, spec)

        self.ledger.add(generated.cost_usd)
        if media is not None:
            self.ledger.add(media.cost_usd)

        elapsed_ms = max(0, round((self.clock() - started) * 1000))
        section = GeneratedSection(
            section_id=request.section_id,
            content=SectionContent(html=html, block_json=tree),
            block_type=BlockTypeInfo(
                name=spec.block_name,
                plugin=spec.plugin,
                namespace=spec.namespace,
                fallback_used=spec.fallback_used,
            ),
            citations=citations,
            media_id=media.id if media else None,
            media=media,
            metadata=GenerationMetadata(
                mode=request.mode,
                alpha=request.alpha,
                word_count=count_words(html),
                token_count=max(0, int(generated.token_count)),
                cost_usd=max(0.0, float(generated.cost_usd)),
                processing_time_ms=elapsed_ms,
                cache_hit=False,
            ),
        )

        self._log(
            f"✅ Section {request.section_id}: {section.metadata.word_count} words, "
            f"{len(citations)} citations, media={'yes' if media else 'no'}"
        )
        if self.run_logger:
            self.run_logger.end(
                "section",
                {"block": section.block_type.name, "citations": len(citations), "media_id": section.media_id},
                {
                    "word_count": section.metadata.word_count,
                    "token_count": section.metadata.token_count,
                    "cost_usd": section.metadata.cost_usd,
                    "processing_time_ms": elapsed_ms,
                },
                subject_id=request.section_id,
            )
        return section
