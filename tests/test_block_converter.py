from __future__ import annotations

import unittest

from lib.block_converter import (
    convert,
    default_unique_id,
    fallback_markup,
    register_family,
    render_markup,
    strategy_for,
)
from lib.errors import ConversionError
from schemas.block import BlockSpecification
from schemas.common import BlockFamily


def _fixed_id(section_type: str) -> str:
    return f"{section_type}-fixed"


def _spec(block_name: str, plugin_key: str, section_type: str = "hero", **attrs) -> BlockSpecification:
    return BlockSpecification(
        block_name=block_name,
        plugin_key=plugin_key,
        section_type=section_type,
        attributes=attrs,
    )


class TestConvert(unittest.TestCase):
    def test_kadence_hero(self) -> None:
        spec = _spec("kadence/rowlayout", "kadence_blocks", columns=1, padding=["20", "20", "20", "20"])
        tree = convert("Hello world", spec, id_factory=_fixed_id)

        self.assertEqual(
            tree,
            {
                "blockName": "kadence/rowlayout",
                "attrs": {
                    "columns": 1,
                    "padding": ["100", "20", "100", "20"],
                    "uniqueID": "hero-fixed",
                    "content": "Hello world",
                    "backgroundImg": [],
                    "backgroundOverlay": {"color": "rgba(0,0,0,0.3)"},
                    "textAlign": "center",
                },
                "innerBlocks": [],
            },
        )

    def test_kadence_content(self) -> None:
        tree = convert("Body", _spec("kadence/rowlayout", "kadence_blocks", "content"), id_factory=_fixed_id)
        self.assertEqual(tree["attrs"]["padding"], ["40", "20", "40", "20"])
        self.assertEqual(tree["attrs"]["textAlign"], "left")
        self.assertNotIn("backgroundOverlay", tree["attrs"])

    def test_genesis_hero(self) -> None:
        tree = convert("Hello world", _spec("genesis-blocks/gb-container", "genesis_blocks"), id_factory=_fixed_id)
        self.assertEqual(
            tree,
            {
                "blockName": "genesis-blocks/gb-container",
                "attrs": {"uniqueID": "hero-fixed", "content": "Hello world", "className": "gb-block-hero"},
                "innerBlocks": [],
            },
        )

    def test_core_hero_becomes_cover(self) -> None:
        tree = convert("Hello world", _spec("core/group", "core"), id_factory=_fixed_id)
        self.assertEqual(
            tree,
            {
                "blockName": "core/cover",
                "attrs": {
                    "uniqueID": "hero-fixed",
                    "content": "Hello world",
                    "dimRatio": 30,
                    "minHeight": 400,
                    "contentPosition": "center center",
                },
                "innerBlocks": [],
            },
        )

    def test_core_content_becomes_group(self) -> None:
        tree = convert("Body", _spec("core/cover", "core", "content"), id_factory=_fixed_id)
        self.assertEqual(tree["blockName"], "core/group")

    def test_unknown_family_gets_no_overlay(self) -> None:
        tree = convert("Hello world", _spec("ugb/hero", "stackable"), id_factory=_fixed_id)
        self.assertEqual(
            tree,
            {
                "blockName": "ugb/hero",
                "attrs": {"uniqueID": "hero-fixed", "content": "Hello world"},
                "innerBlocks": [],
            },
        )

    def test_families_produce_distinct_hero_attributes(self) -> None:
        kadence = convert("x", _spec("kadence/rowlayout", "kadence_blocks"), id_factory=_fixed_id)
        genesis = convert("x", _spec("genesis-blocks/gb-container", "genesis_blocks"), id_factory=_fixed_id)
        core = convert("x", _spec("core/cover", "core"), id_factory=_fixed_id)
        self.assertNotEqual(kadence["attrs"], genesis["attrs"])
        self.assertNotEqual(kadence["attrs"], core["attrs"])
        self.assertNotEqual(genesis["attrs"], core["attrs"])

    def test_same_inputs_same_tree(self) -> None:
        spec = _spec("kadence/rowlayout", "kadence_blocks", nested={"a": [1, 2]})
        first = convert("Hello", spec, id_factory=_fixed_id)
        second = convert("Hello", spec, id_factory=_fixed_id)
        self.assertEqual(first, second)

        first["attrs"]["nested"]["a"].append(3)
        self.assertEqual(spec.attributes["nested"], {"a": [1, 2]})

    def test_default_unique_id_is_prefixed_and_unique(self) -> None:
        a = default_unique_id("hero")
        b = default_unique_id("hero")
        self.assertTrue(a.startswith("hero-"))
        self.assertNotEqual(a, b)

    def test_empty_block_name_raises(self) -> None:
        with self.assertRaises(ConversionError):
            convert("x", _spec("", "core"))

    def test_registered_family_strategy_is_used(self) -> None:
        original = strategy_for(BlockFamily.generic)

        def _tagged(tree, spec):
            tree["attrs"]["tagged"] = spec.section_type
            return tree

        register_family(BlockFamily.generic, _tagged)
        try:
            tree = convert("x", _spec("ugb/hero", "stackable"), id_factory=_fixed_id)
            self.assertEqual(tree["attrs"]["tagged"], "hero")
        finally:
            register_family(BlockFamily.generic, original)


class TestRenderMarkup(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = convert("<b>Fast</b> & simple", _spec("core/cover", "core"), id_factory=_fixed_id)

    def test_fallback_markup_escapes_content(self) -> None:
        self.assertEqual(
            render_markup(self.tree),
            '<div class="wp-block-core-cover">&lt;b&gt;Fast&lt;/b&gt; &amp; simple</div>',
        )

    def test_renderer_output_wins_when_non_empty(self) -> None:
        self.assertEqual(render_markup(self.tree, lambda tree: "<section>ok</section>"), "<section>ok</section>")

    def test_empty_or_failing_renderer_falls_back(self) -> None:
        expected = fallback_markup(self.tree)

        def _broken(tree):
            raise RuntimeError("renderer down")

        self.assertEqual(render_markup(self.tree, lambda tree: ""), expected)
        self.assertEqual(render_markup(self.tree, lambda tree: None), expected)
        self.assertEqual(render_markup(self.tree, _broken), expected)

    def test_tree_without_block_name_raises(self) -> None:
        with self.assertRaises(ConversionError):
            fallback_markup({"attrs": {"content": "x"}, "innerBlocks": []})


if __name__ == "__main__":
    unittest.main()
