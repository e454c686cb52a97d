from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass(frozen=True)
class Rates:
    """USD per 1,000 tokens."""

    input_per_1k: float
    output_per_1k: float


DEFAULT_RATES = Rates(input_per_1k=0.01, output_per_1k=0.03)


def estimate_tokens(text: str) -> int:
    # ~4 characters per token
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def rates_for(service: str, table: Optional[Mapping[str, object]] = None) -> Rates:
    """
    Look up a service's rates in a pricing table.

    Table values may be `Rates`, pydantic `RateSettings` or plain dicts.
    Unknown services use the table's `default` entry, then DEFAULT_RATES.
    """
    table = table or {}
    entry = table.get(service) or table.get("default")
    if entry is None:
        return DEFAULT_RATES
    if isinstance(entry, Rates):
        return entry
    if isinstance(entry, Mapping):
        return Rates(float(entry["input_per_1k"]), float(entry["output_per_1k"]))
    return Rates(float(getattr(entry, "input_per_1k")), float(getattr(entry, "output_per_1k")))


def estimate_cost(prompt_tokens: int, response_tokens: int, rates: Rates = DEFAULT_RATES) -> float:
    p = max(0, int(prompt_tokens or 0))
    r = max(0, int(response_tokens or 0))
    cost = (p / 1000) * rates.input_per_1k + (r / 1000) * rates.output_per_1k
    return max(0.0, round(cost, 4))


def estimate_text_cost(prompt: str, response: str, rates: Rates = DEFAULT_RATES) -> float:
    return estimate_cost(estimate_tokens(prompt), estimate_tokens(response), rates)
