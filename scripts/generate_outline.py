from __future__ import annotations

import argparse
import json
import uuid
from pathlib import Path

from agents.generation_service import GenerationService
from app_logging.run_logger import RunLogger
from lib.blueprint_loader import load_blueprint
from lib.composer_config_loader import dev_mode_enabled, load_composer_settings
from lib.context_retriever import ContextRetriever, MvdbSearchClient
from lib.cost import rates_for
from lib.env import load_env
from lib.errors import RequestValidationError
from memory.cost_ledger import JsonCostLedger
from pipeline.outline_generator import OutlineGenerator
from schemas.common import Tone


DEFAULT_BLUEPRINT = Path("config/blueprints/landing_page.yaml")


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Plan a page outline from a brief and a blueprint")
    ap.add_argument("--brief", required=True, help="What the page should cover (10+ characters)")
    ap.add_argument("--blueprint", default=str(DEFAULT_BLUEPRINT), help="Blueprint YAML file")
    ap.add_argument("--audience", default="", help="Target audience")
    ap.add_argument("--tone", default=Tone.professional.value, choices=[t.value for t in Tone])
    ap.add_argument("--alpha", type=float, default=None, help="Context weight 0..1 (default from config)")
    ap.add_argument("--namespace", action="append", default=[], help="Vector search namespace (repeatable)")
    ap.add_argument("--stub", action="store_true", help="Force the offline stub outline")
    ap.add_argument("--config", default=None, help="Path to composer.yaml")
    ap.add_argument("--log-path", default=None, help="Append JSONL run events to this file")
    ap.add_argument("--out", default=None, help="Write the outline JSON here instead of stdout")
    args = ap.parse_args(argv)

    load_env()
    settings = load_composer_settings(Path(args.config) if args.config else None)
    blueprint = load_blueprint(Path(args.blueprint))

    run_logger = None
    if args.log_path:
        run_logger = RunLogger(run_id=uuid.uuid4().hex[:12], log_path=Path(args.log_path), subject_id=blueprint.blueprint_id)

    generator = OutlineGenerator(
        GenerationService(
            model=settings.generation.model,
            rates=rates_for("openai", settings.pricing),
            max_output_tokens=settings.generation.max_output_tokens,
        ),
        settings=settings,
        retriever=ContextRetriever(MvdbSearchClient.from_settings(settings.retrieval), settings.retrieval),
        ledger=JsonCostLedger(Path(settings.ledger.path)),
        rates=rates_for("openai", settings.pricing),
        dev_mode=bool(args.stub) or dev_mode_enabled(),
        run_logger=run_logger,
    )

    params = {
        "brief": args.brief,
        "audience": args.audience,
        "tone": args.tone,
        "alpha": args.alpha if args.alpha is not None else settings.generation.alpha,
        "mvdb_params": {
            "namespaces": args.namespace,
            "k": settings.retrieval.k,
            "min_score": settings.retrieval.min_score,
        },
    }
    try:
        result = generator.generate(params, blueprint)
    except RequestValidationError as e:
        print(f"❌ {e}")
        return 2

    payload = json.dumps(result.to_dict(exclude_none=False), indent=2, ensure_ascii=False)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload + "\n", encoding="utf-8")
        print(f"Wrote outline: {out} ({result.mode}, {len(result.sections)} sections)")
    else:
        print(payload)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
