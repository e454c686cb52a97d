from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from schemas.block import BlockSpecification
from schemas.section import BlockPreferences
from schemas.settings import BlockSettings

PREFERRED_BONUS = 100
CORE_PENALTY = 10
FINAL_FALLBACK_BLOCK = "core/group"

INNER_BLOCK_SUPPORT = {
    "kadence/rowlayout",
    "genesis-blocks/gb-container",
    "core/group",
    "core/cover",
    "core/columns",
    "core/column",
}

CONTAINER_BLOCKS = {
    "kadence/rowlayout",
    "genesis-blocks/gb-container",
    "core/group",
    "core/cover",
    "core/columns",
}


@dataclass(frozen=True)
class _Candidate:
    plugin_key: str
    block_name: str
    score: int


class BlockResolver:
    """
    Resolve caller block preferences to a concrete block.

    Candidates come from the section->block mapping of every available family,
    ranked by preference bonus plus configured plugin priority (core is
    penalised unless explicitly preferred). When no family maps the section,
    the caller's fallback blocks are tried, then core/group.
    """

    def __init__(self, settings: Optional[BlockSettings] = None, available_families: Optional[Iterable[str]] = None) -> None:
        self.settings = settings or BlockSettings()
        families = available_families if available_families is not None else self.settings.available_families
        self.available = set(families) if families is not None else set(self.settings.plugins.keys())

    def _candidates(self, section_type: str, preferred: str) -> list[_Candidate]:
        mappings = self.settings.section_mappings.get(section_type) or self.settings.section_mappings.get("content", {})
        out: list[_Candidate] = []
        for plugin_key, block_name in mappings.items():
            if plugin_key not in self.available:
                continue
            score = 0
            if plugin_key == preferred:
                score += PREFERRED_BONUS
            plugin = self.settings.plugins.get(plugin_key)
            score += plugin.priority if plugin else 0
            if plugin_key == "core" and preferred != "core":
                score -= CORE_PENALTY
            out.append(_Candidate(plugin_key=plugin_key, block_name=block_name, score=score))
        # sorted() is stable: equal scores keep mapping order
        return sorted(out, key=lambda c: c.score, reverse=True)

    def guess_family(self, block_name: str) -> str:
        namespace = block_name.split("/", 1)[0]
        for key, plugin in self.settings.plugins.items():
            if plugin.namespace == namespace:
                return key
        return "unknown"

    def resolve(self, preferences: BlockPreferences) -> BlockSpecification:
        section_type = preferences.section_type or "content"
        candidates = self._candidates(section_type, preferences.preferred_plugin)

        if candidates:
            best = candidates[0]
            return self._spec(best.plugin_key, best.block_name, section_type, preferences, fallback_used=False)

        for block_name in preferences.fallback_blocks:
            family = self.guess_family(block_name)
            if family in self.available or family == "unknown":
                return self._spec(family, block_name, section_type, preferences, fallback_used=True)

        return self._spec("core", FINAL_FALLBACK_BLOCK, section_type, preferences, fallback_used=True)

    def _spec(
        self,
        plugin_key: str,
        block_name: str,
        section_type: str,
        preferences: BlockPreferences,
        *,
        fallback_used: bool,
    ) -> BlockSpecification:
        plugin = self.settings.plugins.get(plugin_key)
        attributes = dict(self.settings.block_attributes.get(block_name, {}))
        attributes.update(preferences.custom_attributes)
        return BlockSpecification(
            block_name=block_name,
            plugin=plugin.name if plugin else "Unknown Plugin",
            plugin_key=plugin_key,
            namespace=plugin.namespace if plugin else block_name.split("/", 1)[0],
            section_type=section_type,
            attributes=attributes,
            fallback_used=fallback_used,
            supports_inner_blocks=block_name in INNER_BLOCK_SUPPORT,
            is_container=block_name in CONTAINER_BLOCKS,
        )
