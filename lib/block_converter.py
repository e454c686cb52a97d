from __future__ import annotations

import copy
import uuid
from html import escape
from typing import Any, Callable, Dict, Optional

from lib.errors import ConversionError
from schemas.block import BlockSpecification
from schemas.common import BlockFamily

BlockTree = Dict[str, Any]
FamilyStrategy = Callable[[BlockTree, BlockSpecification], BlockTree]
IdFactory = Callable[[str], str]
Renderer = Callable[[BlockTree], Optional[str]]


def default_unique_id(section_type: str) -> str:
    return f"{section_type or 'section'}-{uuid.uuid4()}"


def _kadence(tree: BlockTree, spec: BlockSpecification) -> BlockTree:
    if spec.section_type == "hero":
        tree["attrs"].update(
            {
                "backgroundImg": [],
                "backgroundOverlay": {"color": "rgba(0,0,0,0.3)"},
                "padding": ["100", "20", "100", "20"],
                "textAlign": "center",
            }
        )
    elif spec.section_type == "content":
        tree["attrs"].update({"padding": ["40", "20", "40", "20"], "textAlign": "left"})
    return tree


def _genesis(tree: BlockTree, spec: BlockSpecification) -> BlockTree:
    tree["attrs"]["className"] = f"gb-block-{spec.section_type}"
    return tree


def _core(tree: BlockTree, spec: BlockSpecification) -> BlockTree:
    if spec.section_type == "hero":
        tree["blockName"] = "core/cover"
        tree["attrs"].update({"dimRatio": 30, "minHeight": 400, "contentPosition": "center center"})
    elif spec.section_type == "content":
        tree["blockName"] = "core/group"
    return tree


def _generic(tree: BlockTree, spec: BlockSpecification) -> BlockTree:
    return tree


_STRATEGIES: Dict[BlockFamily, FamilyStrategy] = {
    BlockFamily.kadence_blocks: _kadence,
    BlockFamily.genesis_blocks: _genesis,
    BlockFamily.core: _core,
    BlockFamily.generic: _generic,
}


def register_family(family: BlockFamily, strategy: FamilyStrategy) -> None:
    """Add or replace the attribute overlay applied for a block family."""
    _STRATEGIES[family] = strategy


def strategy_for(family: BlockFamily) -> FamilyStrategy:
    return _STRATEGIES.get(family, _generic)


def convert(content: str, spec: BlockSpecification, *, id_factory: IdFactory = default_unique_id) -> BlockTree:
    """
    Turn raw generated text into a block tree:

        {"blockName": ..., "attrs": {...attributes, "uniqueID", "content"}, "innerBlocks": []}

    then apply the family overlay for the section type.
    """
    if not spec.block_name:
        raise ConversionError("Block specification has no block name")

    attrs = copy.deepcopy(dict(spec.attributes))
    attrs["uniqueID"] = id_factory(spec.section_type)
    attrs["content"] = content or ""

    tree: BlockTree = {"blockName": spec.block_name, "attrs": attrs, "innerBlocks": []}
    return strategy_for(spec.family)(tree, spec)


def fallback_markup(tree: BlockTree) -> str:
    name = tree.get("blockName")
    if not name:
        raise ConversionError("Block tree has no blockName")
    class_name = "wp-block-" + str(name).replace("/", "-")
    content = str((tree.get("attrs") or {}).get("content") or "")
    return f'<div class="{escape(class_name)}">{escape(content, quote=False)}</div>'


def render_markup(tree: BlockTree, renderer: Optional[Renderer] = None) -> str:
    """
    Render a block tree to markup.

    The host renderer wins when it returns a non-empty string; a missing
    renderer, an empty result or a renderer error fall back to a minimal
    `<div class="wp-block-...">` wrapper with escaped content.
    """
    if renderer is not None:
        try:
            html = renderer(tree)
        except Exception as e:
            print(f"🟠 Block renderer failed, using fallback markup: {e}")
            html = None
        if isinstance(html, str) and html.strip():
            return html
    return fallback_markup(tree)
