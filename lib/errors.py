from __future__ import annotations


class RequestValidationError(ValueError):
    """Malformed or out-of-range request fields. Raised before any network call."""


class UpstreamServiceError(RuntimeError):
    """A collaborating service (retrieval, generation, image) failed."""

    service = "upstream"

    def __init__(self, message: str, *, service: str | None = None) -> None:
        super().__init__(message)
        if service:
            self.service = service


class RetrievalError(UpstreamServiceError):
    service = "retrieval"


class GenerationError(UpstreamServiceError):
    service = "generation"


class ImagePipelineError(UpstreamServiceError):
    service = "image"


class ConversionError(RuntimeError):
    """Block or markup conversion could not produce valid output."""


class SectionGenerationError(GenerationError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Section generation failed: {reason}")
