from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from openai import OpenAI


DEFAULT_MODEL = os.getenv("OPENAI_MODEL", "gpt-5.2")
DEFAULT_TEMPERATURE = float(os.getenv("OPENAI_TEMPERATURE", "0.7"))
DEFAULT_SEED = int(os.getenv("OPENAI_SEED", "1337"))

# Sent when given, dropped one by one when the SDK or model rejects them.
OPTIONAL_PARAMS = ("seed", "temperature")


@dataclass(frozen=True)
class LLMResponse:
    text: str
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    @property
    def has_usage(self) -> bool:
        return self.input_tokens is not None and self.output_tokens is not None


def _rejected_param(err: Exception, request: Dict[str, Any]) -> Optional[str]:
    msg = str(err).lower()
    if "unexpected keyword argument" not in msg and "unsupported parameter" not in msg:
        return None
    for name in OPTIONAL_PARAMS:
        if name in request and name in msg:
            return name
    return None


class LLMClient:
    """
    OpenAI Responses API wrapper that reports token usage with the text.

    Older SDKs refuse `seed=` and some models refuse `temperature=`; a refused
    optional param is removed and the call repeated.
    """

    def __init__(self, model: Optional[str] = None, client: Optional[OpenAI] = None) -> None:
        self.client = client or OpenAI()
        self.model = model or DEFAULT_MODEL

    def _create(self, request: Dict[str, Any]) -> LLMResponse:
        resp = self.client.responses.create(**request)
        usage = getattr(resp, "usage", None)
        inp = getattr(usage, "input_tokens", None)
        out = getattr(usage, "output_tokens", None)
        total = getattr(usage, "total_tokens", None)
        if total is None and inp is not None and out is not None:
            total = int(inp) + int(out)
        return LLMResponse(
            text=(resp.output_text or "").strip(),
            input_tokens=inp,
            output_tokens=out,
            total_tokens=total,
        )

    def generate(
        self,
        *,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = DEFAULT_TEMPERATURE,
        seed: Optional[int] = DEFAULT_SEED,
        max_output_tokens: Optional[int] = None,
        reasoning_effort: str = "low",
    ) -> LLMResponse:
        request: Dict[str, Any] = {
            "model": self.model,
            "input": messages,
            "reasoning": {"effort": reasoning_effort},
        }
        if max_output_tokens is not None:
            request["max_output_tokens"] = int(max_output_tokens)
        if temperature is not None:
            request["temperature"] = float(temperature)
        if seed is not None:
            request["seed"] = int(seed)

        while True:
            try:
                return self._create(request)
            except Exception as e:
                rejected = _rejected_param(e, request)
                if rejected is None:
                    raise
                request.pop(rejected)
