from __future__ import annotations

import argparse
import json
import uuid
from pathlib import Path

from agents.generation_service import GenerationService
from app_logging.run_logger import RunLogger
from lib.block_resolver import BlockResolver
from lib.citations import render_citations_html
from lib.composer_config_loader import load_composer_settings
from lib.context_retriever import ContextRetriever, MvdbSearchClient
from lib.cost import rates_for
from lib.env import load_env
from lib.errors import RequestValidationError, SectionGenerationError
from memory.cost_ledger import JsonCostLedger
from pipeline.image_step import OpenAIImagePipeline
from pipeline.section_generator import SectionGenerator
from schemas.common import CitationStyle, GenerationMode, ImagePolicy


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Generate one page section as blocks + markup")
    ap.add_argument("--section-id", required=True, help="Caller-assigned section id, e.g. section-1")
    ap.add_argument("--brief", required=True, help="Content brief (10+ characters)")
    ap.add_argument("--mode", default=None, choices=[m.value for m in GenerationMode])
    ap.add_argument("--alpha", type=float, default=None, help="Context weight 0..1 (hybrid mode)")
    ap.add_argument("--section-type", default="content", help="hero, content, feature, testimonial, ...")
    ap.add_argument("--preferred-plugin", default="", help="Block family key, e.g. kadence_blocks")
    ap.add_argument("--fallback-block", action="append", default=[], help="Fallback block name (repeatable)")
    ap.add_argument("--image-policy", default=ImagePolicy.optional.value, choices=[p.value for p in ImagePolicy])
    ap.add_argument("--image-style", default="photographic")
    ap.add_argument("--no-citations", action="store_true", help="Disable citation extraction")
    ap.add_argument("--citation-style", default=CitationStyle.inline.value, choices=[s.value for s in CitationStyle])
    ap.add_argument("--citations-html", action="store_true", help="Also print the rendered citation markup")
    ap.add_argument("--config", default=None, help="Path to composer.yaml")
    ap.add_argument("--log-path", default=None, help="Append JSONL run events to this file")
    ap.add_argument("--out", default=None, help="Write the section JSON here instead of stdout")
    args = ap.parse_args(argv)

    load_env()
    settings = load_composer_settings(Path(args.config) if args.config else None)

    run_logger = None
    if args.log_path:
        run_logger = RunLogger(run_id=uuid.uuid4().hex[:12], log_path=Path(args.log_path), subject_id=args.section_id)

    generator = SectionGenerator(
        resolver=BlockResolver(settings.blocks),
        retriever=ContextRetriever(MvdbSearchClient.from_settings(settings.retrieval), settings.retrieval),
        generation_service=GenerationService(
            model=settings.generation.model,
            rates=rates_for("openai", settings.pricing),
            max_output_tokens=settings.generation.max_output_tokens,
        ),
        image_pipeline=OpenAIImagePipeline(
            Path(settings.images.media_dir),
            settings.images.public_prefix,
            model=settings.images.model,
            cost_per_image_usd=settings.images.cost_per_image_usd,
        ),
        ledger=JsonCostLedger(Path(settings.ledger.path)),
        run_logger=run_logger,
    )

    request = {
        "sectionId": args.section_id,
        "contentBrief": args.brief,
        "mode": args.mode or settings.generation.default_mode.value,
        "alpha": args.alpha if args.alpha is not None else settings.generation.alpha,
        "blockPreferences": {
            "preferred_plugin": args.preferred_plugin,
            "section_type": args.section_type,
            "fallback_blocks": args.fallback_block,
        },
        "imageRequirements": {"policy": args.image_policy, "style": args.image_style},
        "citationSettings": {"enabled": not args.no_citations, "style": args.citation_style},
    }

    try:
        section = generator.generate(request)
    except RequestValidationError as e:
        print(f"❌ {e}")
        return 2
    except SectionGenerationError as e:
        print(f"❌ {e}")
        return 1

    payload = json.dumps(section.to_dict(exclude_none=False), indent=2, ensure_ascii=False)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote section: {out}")
    else:
        print(payload)

    if args.citations_html:
        print(render_citations_html(section.citations, CitationStyle(args.citation_style)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
