from __future__ import annotations

import re
from dataclasses import dataclass
from html import escape
from typing import Optional, Sequence
from urllib.parse import urlparse

from lib.text_utils import normalize_text, token_overlap_similarity, tokenize, trim_words
from schemas.common import CitationFormat, CitationStyle
from schemas.context import ContextChunk
from schemas.section import Citation, CitationSettings


MATCH_THRESHOLD = 0.3
# Share of a sentence's content words that must occur in a chunk for a reference citation.
REFERENCE_COVERAGE = 0.6
REFERENCE_MIN_WORDS = 3

CITATION_PATTERNS: dict[str, list[re.Pattern[str]]] = {
    "inline": [
        re.compile(r"\[(\d+)\]"),
        re.compile(r"\(([^)]+, \d{4})\)"),
        re.compile(r"according to ([^,]+),"),
        re.compile(r"research shows that ([^.]+)\.", re.IGNORECASE),
        re.compile(r"studies indicate ([^.]+)\.", re.IGNORECASE),
    ],
    "parenthetical": [
        re.compile(r"\(([^)]+)\)"),
        re.compile(r"\[([^\]]+)\]"),
    ],
    "narrative": [
        re.compile(r"([A-Z][^.]+) states that ([^.]+)\.", re.IGNORECASE),
        re.compile(r"([A-Z][^.]+) found that ([^.]+)\.", re.IGNORECASE),
        re.compile(r"([A-Z][^.]+) reports ([^.]+)\.", re.IGNORECASE),
    ],
}

RE_NUMERIC_MARKER = re.compile(r"^\[(\d+)\]$")
RE_SENTENCE = re.compile(r"[^.!?\n]+[.!?]?")

CITATION_PREFIXES = (
    "according to ",
    "research shows that ",
    "studies indicate ",
    "data suggests ",
    "findings reveal ",
)


@dataclass
class _Match:
    text: str
    type: str
    position: int
    chunk: ContextChunk
    confidence: float


def clean_citation_text(raw: str) -> str:
    cleaned = raw.strip("[]()")
    lowered = cleaned.lower()
    for prefix in CITATION_PREFIXES:
        if lowered.startswith(prefix):
            cleaned = cleaned[len(prefix):]
            break
    return cleaned.strip()


def find_matching_chunk(citation_text: str, chunks: Sequence[ContextChunk]) -> Optional[ContextChunk]:
    best: Optional[ContextChunk] = None
    best_score = 0.0
    cleaned = clean_citation_text(citation_text)
    for chunk in chunks:
        score = token_overlap_similarity(cleaned, chunk.text)
        if score > best_score and score > MATCH_THRESHOLD:
            best, best_score = chunk, score
    return best


def match_confidence(base: float, chunk: ContextChunk) -> float:
    if chunk_source(chunk):
        base += 0.1
    if chunk.score > 0.8:
        base += 0.1
    return round(min(base, 1.0), 4)


def chunk_source(chunk: ContextChunk) -> str:
    return (chunk.source or str(chunk.metadata.get("source") or chunk.metadata.get("source_url") or "")).strip()


def _content_words(text: str) -> set[str]:
    return {t for t in tokenize(text) if len(t) >= 4}


def _reference_coverage(sentence: str, chunk: ContextChunk) -> float:
    words = _content_words(sentence)
    if len(words) < REFERENCE_MIN_WORDS:
        return 0.0
    return len(words & _content_words(chunk.text)) / len(words)


def _pattern_matches(text: str, chunks: Sequence[ContextChunk]) -> list[_Match]:
    out: list[_Match] = []
    for ctype, patterns in CITATION_PATTERNS.items():
        for pattern in patterns:
            for m in pattern.finditer(text):
                raw = m.group(0)
                numeric = RE_NUMERIC_MARKER.match(raw)
                if numeric:
                    idx = int(numeric.group(1)) - 1
                    if 0 <= idx < len(chunks):
                        out.append(_Match(raw.strip("[]()"), ctype, m.start(), chunks[idx], match_confidence(0.5, chunks[idx])))
                    continue

                chunk = find_matching_chunk(raw, chunks)
                if chunk is None:
                    continue
                base = token_overlap_similarity(raw, chunk.text)
                out.append(_Match(raw.strip("[]()"), ctype, m.start(), chunk, match_confidence(base, chunk)))
    return out


def _reference_matches(text: str, chunks: Sequence[ContextChunk]) -> list[_Match]:
    out: list[_Match] = []
    sentences = [(m.group(0).strip(), m.start()) for m in RE_SENTENCE.finditer(text) if m.group(0).strip()]
    for chunk in chunks:
        best: Optional[tuple[str, int, float]] = None
        for sentence, pos in sentences:
            coverage = _reference_coverage(sentence, chunk)
            if coverage >= REFERENCE_COVERAGE and (best is None or coverage > best[2]):
                best = (sentence, pos, coverage)
        if best is not None:
            out.append(_Match(best[0], "reference", best[1], chunk, match_confidence(best[2] * 0.8, chunk)))
    return out


def _dedupe(matches: list[_Match]) -> list[_Match]:
    seen: set[str] = set()
    unique: list[_Match] = []
    for m in matches:
        key = normalize_text(m.text)
        if key in seen:
            continue
        seen.add(key)
        unique.append(m)
    return unique


def extract_domain(url: str) -> str:
    host = urlparse(url).hostname or url
    return host[4:] if host.startswith("www.") else host


def is_url(value: str) -> bool:
    parsed = urlparse(value or "")
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def format_citation(text: str, source: str, ctype: str) -> str:
    if not source:
        return text
    if ctype == "inline":
        return f"{text} [{source}]"
    if ctype == "parenthetical":
        return f"{text} ({source})"
    if ctype == "narrative":
        return f"According to {source}, {text}"
    return f"{text} - {source}"


def _format_html(formatted: str, url: Optional[str]) -> str:
    if url:
        return f'<a href="{escape(url)}" target="_blank" rel="noopener">{escape(formatted)}</a>'
    return f"<cite>{escape(formatted)}</cite>"


def extract_citations(
    text: str,
    chunks: Sequence[ContextChunk],
    settings: Optional[CitationSettings] = None,
) -> list[Citation]:
    """
    Tie generated text back to the chunks it was grounded on.

    Citation-like spans ([1], (Author, 2023), "according to X,", ...) are
    attached to the most similar chunk; numeric markers point at the n-th
    chunk. Chunks whose wording is reused in a generated sentence produce a
    `reference` citation. Spans that match no input chunk are dropped.

    `settings.style` does not change what is extracted; it is the layout
    `render_citations_html` uses when the citations are shown.
    """
    settings = settings or CitationSettings()
    if not settings.enabled or not text or not chunks:
        return []

    chunks = list(chunks)
    matches = _dedupe(_pattern_matches(text, chunks) + _reference_matches(text, chunks))
    matches.sort(key=lambda m: m.position)

    citations: list[Citation] = []
    for i, m in enumerate(matches, start=1):
        source = chunk_source(m.chunk)
        url: Optional[str] = None
        if is_url(source):
            url = source
            source = extract_domain(source)

        formatted = format_citation(m.text, source, m.type)
        if settings.format == CitationFormat.html:
            formatted = _format_html(formatted, url)

        citations.append(
            Citation(
                id=f"cite-{i}",
                text=m.text,
                type=m.type,
                position=m.position,
                source=source,
                chunk_id=m.chunk.id if settings.include_mvdb_refs else None,
                confidence=m.confidence,
                url=url,
                formatted=formatted,
                aria_label=f"Citation from {source or 'source'}: {trim_words(m.text, 10)}",
            )
        )
    return citations


def render_citations_html(citations: Sequence[Citation], style: CitationStyle = CitationStyle.inline) -> str:
    if not citations:
        return ""

    if style == CitationStyle.footnote:
        items = []
        for c in citations:
            label = escape(c.source or "Source")
            body = f'<a href="{escape(c.url)}" target="_blank" rel="noopener">{label}</a>' if c.url else label
            items.append(f'<li id="footnote-{escape(c.id)}">{body}</li>')
        return f'<div class="ai-citations-footnotes"><h4>References</h4><ol>{"".join(items)}</ol></div>'

    if style == CitationStyle.bibliography:
        items = []
        for c in citations:
            label = escape(c.formatted or c.text)
            body = f'<a href="{escape(c.url)}" target="_blank" rel="noopener">{label}</a>' if c.url else label
            items.append(f"<li>{body}</li>")
        return f'<div class="ai-citations-bibliography"><h4>Bibliography</h4><ul>{"".join(items)}</ul></div>'

    html = ""
    for n, c in enumerate(citations, start=1):
        if c.url:
            html += (
                f'<sup class="ai-citation" id="{escape(c.id)}"><a href="{escape(c.url)}" target="_blank" '
                f'rel="noopener" aria-label="{escape(c.aria_label)}">{n}</a></sup>'
            )
        else:
            html += f'<sup class="ai-citation" id="{escape(c.id)}" aria-label="{escape(c.aria_label)}">{n}</sup>'
    return html
