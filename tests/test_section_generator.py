from __future__ import annotations

import re
import unittest
from typing import Any

from agents.generation_service import GenerationResponse
from lib.block_resolver import BlockResolver
from lib.errors import GenerationError, ImagePipelineError, RequestValidationError, RetrievalError, SectionGenerationError
from pipeline.section_generator import Generative, Grounded, Hybrid, SectionGenerator, resolve_section_mode
from schemas.context import ContextChunk
from schemas.section import GenerationRequest, MediaDescriptor


BRIEF = "Introduce our remote planning toolkit for distributed teams"

CHUNK = ContextChunk(
    id="chunk-1",
    text="Remote teams that hold weekly planning meetings ship features faster and report higher satisfaction.",
    score=0.9,
    source="https://www.example.com/remote-report",
)


class _FakeRetriever:
    def __init__(self, chunks: list[ContextChunk] | None = None, error: Exception | None = None) -> None:
        self.chunks = chunks or []
        self.error = error
        self.calls = 0

    def retrieve(self, query, *, k=10, min_score=0.5, namespaces=None):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.chunks)


class _FakeGenerationService:
    def __init__(self, content: str = "Alpha beta gamma delta", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def generate_content(self, prompt, mode, alpha, block_spec) -> GenerationResponse:
        self.calls.append({"prompt": prompt, "mode": mode, "alpha": alpha, "block": block_spec.block_name})
        if self.error is not None:
            raise self.error
        return GenerationResponse(content=self.content, token_count=120, cost_usd=0.0123)


class _FakeImagePipeline:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def request(self, **kwargs) -> MediaDescriptor:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return MediaDescriptor(
            id="img-abc",
            url="/media/generated/img-abc.webp",
            alt_text=kwargs["alt_text"],
            license="generated",
            attribution="AI generated",
            cost_usd=0.04,
        )


class _RecordingLedger:
    def __init__(self) -> None:
        self.amounts: list[float] = []

    def add(self, amount_usd: float) -> None:
        self.amounts.append(amount_usd)


def _ticking_clock():
    ticks = iter([10.0, 10.25])
    return lambda: next(ticks)


def _request(**overrides) -> dict[str, Any]:
    data: dict[str, Any] = {
        "sectionId": "section-1",
        "contentBrief": BRIEF,
        "blockPreferences": {"section_type": "content"},
        "imageRequirements": {"policy": "none"},
    }
    data.update(overrides)
    return data


class TestSectionGenerator(unittest.TestCase):
    def setUp(self) -> None:
        self.retriever = _FakeRetriever([CHUNK])
        self.service = _FakeGenerationService()
        self.images = _FakeImagePipeline()
        self.ledger = _RecordingLedger()
        self.logs: list[str] = []

    def _generator(self, **overrides) -> SectionGenerator:
        kwargs: dict[str, Any] = dict(
            resolver=BlockResolver(),
            retriever=self.retriever,
            generation_service=self.service,
            image_pipeline=self.images,
            ledger=self.ledger,
            logger=self.logs.append,
            clock=_ticking_clock(),
            id_factory=lambda section_type: f"{section_type}-fixed",
        )
        kwargs.update(overrides)
        return SectionGenerator(**kwargs)

    def test_assembles_section(self) -> None:
        section = self._generator().generate(_request())

        self.assertEqual(section.section_id, "section-1")
        self.assertEqual(section.block_type.name, "kadence/rowlayout")
        self.assertEqual(section.block_type.plugin, "Kadence Blocks")
        self.assertFalse(section.block_type.fallback_used)
        self.assertEqual(section.content.block_json["blockName"], "kadence/rowlayout")
        self.assertEqual(section.content.block_json["attrs"]["uniqueID"], "content-fixed")
        self.assertEqual(section.content.html, '<div class="wp-block-kadence-rowlayout">Alpha beta gamma delta</div>')
        self.assertEqual(section.metadata.token_count, 120)
        self.assertEqual(section.metadata.cost_usd, 0.0123)
        self.assertEqual(section.metadata.processing_time_ms, 250)
        self.assertFalse(section.metadata.cache_hit)
        self.assertIsNone(section.media)
        self.assertTrue(any(line.startswith("✅") for line in self.logs))

    def test_word_count_matches_stripped_html(self) -> None:
        self.service.content = "Plan <b>together</b>, ship & learn faster"
        section = self._generator().generate(_request())
        stripped = re.sub(r"<[^>]+>", " ", section.content.html)
        self.assertEqual(section.metadata.word_count, len(stripped.replace("&amp;", "&").split()))

    def test_serializes_with_wire_names(self) -> None:
        data = self._generator().generate(_request()).to_dict(exclude_none=False)
        self.assertEqual(data["sectionId"], "section-1")
        self.assertEqual(data["content"]["json"]["blockName"], "kadence/rowlayout")
        self.assertEqual(data["blockType"]["name"], "kadence/rowlayout")
        self.assertIsNone(data["mediaId"])

    def test_hybrid_prompt_includes_context_and_alpha(self) -> None:
        self._generator().generate(_request(mode="hybrid", alpha=0.4))
        prompt = self.service.calls[0]["prompt"]
        self.assertIn("Relevant Context:\n- Remote teams", prompt)
        self.assertIn("Alpha Weight: 0.4 (context relevance)", prompt)

    def test_generative_mode_skips_retrieval(self) -> None:
        section = self._generator().generate(_request(mode="generative"))
        self.assertEqual(self.retriever.calls, 0)
        self.assertNotIn("Relevant Context", self.service.calls[0]["prompt"])
        self.assertEqual(section.citations, [])

    def test_unknown_mode_becomes_hybrid(self) -> None:
        section = self._generator().generate(_request(mode="creative"))
        self.assertEqual(section.metadata.mode.value, "hybrid")

    def test_alpha_is_clamped(self) -> None:
        self.assertEqual(self._generator().generate(_request(alpha=1.7)).metadata.alpha, 1.0)
        self.assertEqual(self._generator().generate(_request(alpha=-0.2)).metadata.alpha, 0.0)

    def test_invalid_requests_raise_before_generation(self) -> None:
        for bad in (_request(alpha="abc"), _request(contentBrief="too short"), {"contentBrief": BRIEF}):
            with self.subTest(request=bad):
                with self.assertRaises(RequestValidationError):
                    self._generator().generate(bad)
        self.assertEqual(self.service.calls, [])

    def test_retrieval_failure_is_absorbed(self) -> None:
        self.retriever.error = RetrievalError("search down")
        section = self._generator().generate(_request())

        self.assertEqual(section.citations, [])
        self.assertNotIn("Relevant Context", self.service.calls[0]["prompt"])
        self.assertTrue(any(line.startswith("🟠") and "search down" in line for line in self.logs))

    def test_missing_retriever_means_no_context(self) -> None:
        section = self._generator(retriever=None).generate(_request())
        self.assertEqual(section.citations, [])

    def test_generation_failure_raises_section_error(self) -> None:
        cause = GenerationError("model unavailable")
        self.service.error = cause
        with self.assertRaises(SectionGenerationError) as ctx:
            self._generator().generate(_request())

        self.assertTrue(str(ctx.exception).startswith("Section generation failed:"))
        self.assertIs(ctx.exception.__cause__, cause)
        self.assertEqual(self.ledger.amounts, [])
        self.assertTrue(any(line.startswith("❌") for line in self.logs))

    def test_citations_tie_back_to_chunks(self) -> None:
        self.service.content = "Remote teams that hold weekly planning meetings ship features faster [1]."
        section = self._generator().generate(_request())

        self.assertTrue(section.citations)
        self.assertTrue(all(c.chunk_id == "chunk-1" for c in section.citations))

    def test_citations_can_be_disabled(self) -> None:
        self.service.content = "Remote teams that hold weekly planning meetings ship features faster [1]."
        section = self._generator().generate(_request(citationSettings={"enabled": False}))
        self.assertEqual(section.citations, [])


class TestImagePolicy(unittest.TestCase):
    def setUp(self) -> None:
        self.images = _FakeImagePipeline()
        self.ledger = _RecordingLedger()
        self.logs: list[str] = []

    def _generate(self, policy: str, section_type: str, **overrides):
        kwargs: dict[str, Any] = dict(
            resolver=BlockResolver(),
            retriever=_FakeRetriever(),
            generation_service=_FakeGenerationService(),
            image_pipeline=self.images,
            ledger=self.ledger,
            logger=self.logs.append,
        )
        kwargs.update(overrides)
        return SectionGenerator(**kwargs).generate(
            _request(imageRequirements={"policy": policy}, blockPreferences={"section_type": section_type})
        )

    def test_policy_none_never_requests_image(self) -> None:
        section = self._generate("none", "hero")
        self.assertEqual(self.images.calls, [])
        self.assertIsNone(section.media_id)

    def test_policy_required_always_requests_once(self) -> None:
        section = self._generate("required", "content")

        self.assertEqual(len(self.images.calls), 1)
        self.assertEqual(section.media_id, "img-abc")
        self.assertEqual(section.media.url, "/media/generated/img-abc.webp")
        self.assertEqual(self.ledger.amounts, [0.0123, 0.04])

    def test_optional_policy_depends_on_section_type(self) -> None:
        self._generate("optional", "content")
        self.assertEqual(self.images.calls, [])

        self._generate("optional", "hero")
        self.assertEqual(len(self.images.calls), 1)
        call = self.images.calls[0]
        self.assertEqual(call["source"], "generate")
        self.assertEqual(call["prompt"], f"{BRIEF}, professional, high-quality background image")
        self.assertTrue(call["alt_text"].startswith("Hero section image: Introduce our remote"))

    def test_image_failure_is_absorbed(self) -> None:
        self.images.error = ImagePipelineError("quota exceeded")
        section = self._generate("required", "hero")

        self.assertIsNone(section.media)
        self.assertEqual(self.ledger.amounts, [0.0123])
        self.assertTrue(any(line.startswith("🟠") and "quota exceeded" in line for line in self.logs))

    def test_no_pipeline_configured(self) -> None:
        section = self._generate("required", "hero", image_pipeline=None)
        self.assertIsNone(section.media)


class TestSectionMode(unittest.TestCase):
    def test_modes(self) -> None:
        base = {"sectionId": "s", "contentBrief": BRIEF}
        self.assertEqual(resolve_section_mode(GenerationRequest.model_validate({**base, "mode": "grounded"})), Grounded())
        self.assertEqual(resolve_section_mode(GenerationRequest.model_validate({**base, "mode": "generative"})), Generative())
        self.assertEqual(
            resolve_section_mode(GenerationRequest.model_validate({**base, "alpha": 0.3})),
            Hybrid(alpha=0.3),
        )


if __name__ == "__main__":
    unittest.main()
