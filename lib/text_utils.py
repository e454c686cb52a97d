from __future__ import annotations

import re
from html import unescape


RE_TAG = re.compile(r"<[^>]+>")


def normalize_text(text: str) -> str:
    """Normalize text for comparisons.

    Lowercases and collapses whitespace.
    """
    return " ".join((text or "").strip().lower().split())


def tokenize(text: str) -> list[str]:
    """Tokenize text into simple alphanumeric tokens."""
    normalized = normalize_text(text)
    tokens: list[str] = []
    current: list[str] = []

    for ch in normalized:
        if ch.isalnum():
            current.append(ch)
        else:
            if current:
                tokens.append("".join(current))
                current = []
    if current:
        tokens.append("".join(current))

    return tokens


def token_overlap_similarity(a: str, b: str) -> float:
    """Jaccard similarity on token sets: |A ∩ B| / |A ∪ B|. Returns 0.0 for empty unions."""
    a_tokens = set(tokenize(a))
    b_tokens = set(tokenize(b))
    union = a_tokens | b_tokens
    if not union:
        return 0.0
    return len(a_tokens & b_tokens) / len(union)


def trim_words(text: str, max_words: int) -> str:
    words = (text or "").split()
    if max_words <= 0 or len(words) <= max_words:
        return " ".join(words)
    return " ".join(words[:max_words]) + "…"


def strip_tags(markup: str) -> str:
    return unescape(RE_TAG.sub(" ", markup or ""))


def count_words(markup: str) -> int:
    """Words of rendered markup once tags are stripped and entities decoded."""
    return len(strip_tags(markup).split())
