from __future__ import annotations

import unittest

from lib.citations import extract_citations, find_matching_chunk, render_citations_html
from schemas.common import CitationFormat, CitationStyle
from schemas.context import ContextChunk
from schemas.section import CitationSettings


REMOTE = ContextChunk(
    id="chunk-1",
    text="Remote teams that hold weekly planning meetings ship features faster and report higher satisfaction.",
    score=0.9,
    source="https://www.example.com/remote-report",
)
COFFEE = ContextChunk(
    id="chunk-2",
    text="Coffee consumption in offices has doubled over the last decade according to industry surveys.",
    score=0.6,
    source="Office Weekly",
)
CHUNKS = [REMOTE, COFFEE]

TEXT = "Remote teams that hold weekly planning meetings ship features faster [1]. Our product makes planning simple."


class TestExtractCitations(unittest.TestCase):
    def test_marker_and_reused_sentence_are_cited(self) -> None:
        citations = extract_citations(TEXT, CHUNKS)

        self.assertEqual([c.id for c in citations], ["cite-1", "cite-2"])
        reference, inline = citations
        self.assertEqual(reference.type, "reference")
        self.assertEqual(reference.position, 0)
        self.assertEqual(reference.chunk_id, "chunk-1")
        self.assertEqual(inline.type, "inline")
        self.assertEqual(inline.text, "1")
        self.assertEqual(inline.position, TEXT.index("[1]"))
        self.assertEqual(inline.chunk_id, "chunk-1")
        self.assertAlmostEqual(inline.confidence, 0.7)

    def test_every_citation_points_at_an_input_chunk(self) -> None:
        ids = {c.id for c in CHUNKS}
        for citation in extract_citations(TEXT, CHUNKS):
            self.assertIn(citation.chunk_id, ids)
            self.assertTrue(0.0 <= citation.confidence <= 1.0)

    def test_url_source_becomes_domain_and_link(self) -> None:
        citation = extract_citations(TEXT, CHUNKS)[1]
        self.assertEqual(citation.source, "example.com")
        self.assertEqual(citation.url, "https://www.example.com/remote-report")
        self.assertEqual(citation.formatted, "1 [example.com]")
        self.assertTrue(citation.aria_label.startswith("Citation from example.com: "))

    def test_html_format_wraps_in_anchor(self) -> None:
        settings = CitationSettings(format=CitationFormat.html)
        citation = extract_citations(TEXT, CHUNKS, settings)[1]
        self.assertTrue(citation.formatted.startswith('<a href="https://www.example.com/remote-report"'))

    def test_chunk_ids_can_be_left_out(self) -> None:
        citations = extract_citations(TEXT, CHUNKS, CitationSettings(include_mvdb_refs=False))
        self.assertTrue(citations)
        self.assertTrue(all(c.chunk_id is None for c in citations))

    def test_disabled_or_empty_inputs_yield_nothing(self) -> None:
        self.assertEqual(extract_citations(TEXT, CHUNKS, CitationSettings(enabled=False)), [])
        self.assertEqual(extract_citations("", CHUNKS), [])
        self.assertEqual(extract_citations(TEXT, []), [])

    def test_unmatched_spans_are_dropped(self) -> None:
        self.assertEqual(extract_citations("Bananas are yellow and taste sweet when ripe.", CHUNKS), [])
        self.assertEqual(extract_citations("Something unrelated entirely here [7].", CHUNKS), [])

    def test_find_matching_chunk_threshold(self) -> None:
        self.assertIs(find_matching_chunk("(remote teams hold weekly planning meetings)", CHUNKS), REMOTE)
        self.assertIsNone(find_matching_chunk("(bananas)", CHUNKS))


class TestRenderCitations(unittest.TestCase):
    def setUp(self) -> None:
        self.citations = extract_citations(TEXT, CHUNKS)

    def test_inline_superscripts(self) -> None:
        html = render_citations_html(self.citations, CitationStyle.inline)
        self.assertIn('<sup class="ai-citation" id="cite-1">', html)
        self.assertIn('href="https://www.example.com/remote-report"', html)

    def test_footnotes(self) -> None:
        html = render_citations_html(self.citations, CitationStyle.footnote)
        self.assertTrue(html.startswith('<div class="ai-citations-footnotes"><h4>References</h4><ol>'))
        self.assertIn('<li id="footnote-cite-2">', html)

    def test_bibliography(self) -> None:
        html = render_citations_html(self.citations, CitationStyle.bibliography)
        self.assertIn("<ul>", html)
        self.assertIn("1 [example.com]", html)

    def test_style_only_changes_rendering(self) -> None:
        footnote = extract_citations(TEXT, CHUNKS, CitationSettings(style=CitationStyle.footnote))
        self.assertEqual([c.to_dict() for c in footnote], [c.to_dict() for c in self.citations])
        self.assertNotEqual(
            render_citations_html(footnote, CitationStyle.footnote),
            render_citations_html(self.citations, CitationStyle.inline),
        )

    def test_no_citations_render_empty(self) -> None:
        self.assertEqual(render_citations_html([], CitationStyle.footnote), "")


if __name__ == "__main__":
    unittest.main()
