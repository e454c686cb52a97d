from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from lib.env import env_flag, env_str
from schemas.settings import ComposerSettings


DEFAULT_COMPOSER_CONFIG_PATH = Path("config/composer.yaml")


def load_composer_settings(path: Optional[Path] = None, *, apply_env: bool = True) -> ComposerSettings:
    """
    Loads and validates config/composer.yaml.

    A missing file means built-in defaults. Environment variables
    (COMPOSER_USE_LLM_STUB, MVDB_API_URL, MVDB_ACCESS_TOKEN, OPENAI_MODEL,
    OPENAI_IMAGE_MODEL) override the file when set.
    """
    p = path or DEFAULT_COMPOSER_CONFIG_PATH
    raw: dict = {}
    if p.exists():
        try:
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Composer config is not valid YAML: {p}: {e}") from e
        if not isinstance(raw, dict):
            raise ValueError(f"Composer config must be a mapping at the top level: {p}")

    try:
        cfg = ComposerSettings.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid composer config {p}: {e}") from e

    # Basic sanity checks
    if "default" not in cfg.pricing:
        raise ValueError(f"pricing must define a 'default' service. Known services: {sorted(cfg.pricing.keys())}")
    unknown = sorted(set(cfg.blocks.available_families or []) - set(cfg.blocks.plugins.keys()))
    if unknown:
        raise ValueError(f"available_families lists unknown block families: {unknown}")

    if apply_env:
        cfg = apply_env_overrides(cfg)
    return cfg


def apply_env_overrides(cfg: ComposerSettings) -> ComposerSettings:
    use_stub = env_flag("COMPOSER_USE_LLM_STUB", default=None)
    if use_stub is not None:
        cfg.development.use_llm_stub = use_stub

    if env_str("MVDB_API_URL"):
        cfg.retrieval.api_url = env_str("MVDB_API_URL")
    if env_str("MVDB_ACCESS_TOKEN"):
        cfg.retrieval.access_token = env_str("MVDB_ACCESS_TOKEN")
    if env_str("OPENAI_MODEL"):
        cfg.generation.model = env_str("OPENAI_MODEL")
    if env_str("OPENAI_IMAGE_MODEL"):
        cfg.images.model = env_str("OPENAI_IMAGE_MODEL")
    return cfg


def dev_mode_enabled() -> bool:
    return bool(env_flag("COMPOSER_DEV_MODE", default=False))
