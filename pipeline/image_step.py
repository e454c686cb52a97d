from __future__ import annotations

import base64
import hashlib
import os
from io import BytesIO
from pathlib import Path
from typing import Optional, Protocol, Sequence, Tuple

from openai import OpenAI
from PIL import Image, ImageOps

from lib.errors import ImagePipelineError
from lib.text_utils import trim_words
from schemas.section import MediaDescriptor, MediaDimensions


STYLE_HINTS = {
    "hero": "professional, high-quality background image",
    "feature": "clean, modern illustration",
    "testimonial": "professional headshot or team photo",
    "content": "relevant supporting image",
}
DEFAULT_STYLE_HINT = "professional image"

SQUARE = (1024, 1024)


class ImagePipeline(Protocol):
    def request(
        self,
        *,
        prompt: str,
        style: str,
        source: str,
        alt_text: str,
        license_filter: Sequence[str],
    ) -> MediaDescriptor: ...


def build_image_prompt(brief: str, section_type: str) -> str:
    return f"{(brief or '').strip()}, {STYLE_HINTS.get(section_type, DEFAULT_STYLE_HINT)}"


def build_alt_text(brief: str, section_type: str) -> str:
    label = (section_type or "section")
    return f"{label[:1].upper() + label[1:]} section image: {trim_words(brief, 10)}"


def _ensure_parent(p: Path) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)


def _cover_resize(im: "Image.Image", width: int, height: int) -> "Image.Image":
    return ImageOps.fit(im, (int(width), int(height)), method=Image.Resampling.LANCZOS, centering=(0.5, 0.5))


def _save_webp(im: "Image.Image", path: Path, *, quality: int = 85) -> None:
    _ensure_parent(path)
    im.save(str(path), format="WEBP", quality=int(quality), method=6)


class OpenAIImagePipeline:
    """
    Generates section images with OpenAI Images and stores them as WEBP.

    Files land in `media_dir/<id>.webp` and are addressed as
    `<public_prefix>/<id>.webp`. Only `source="generate"` is supported; stock
    image providers are outside this package.
    """

    def __init__(
        self,
        media_dir: Path,
        public_prefix: str = "/media/generated",
        *,
        model: Optional[str] = None,
        cost_per_image_usd: float = 0.04,
        client: Optional[OpenAI] = None,
        size: Tuple[int, int] = SQUARE,
    ) -> None:
        self.media_dir = Path(media_dir)
        self.public_prefix = public_prefix.rstrip("/")
        self.model = model
        self.cost_per_image_usd = float(cost_per_image_usd)
        self._client = client
        self.size = (int(size[0]), int(size[1]))

    def _generate_square_image_bytes(self, prompt: str) -> bytes:
        client = self._client
        if client is None:
            api_key = (os.environ.get("OPENAI_API_KEY") or "").strip()
            if not api_key:
                raise ImagePipelineError("OPENAI_API_KEY is required to generate images")
            client = OpenAI(api_key=api_key)

        m = (self.model or os.environ.get("OPENAI_IMAGE_MODEL") or "gpt-image-1").strip()
        resp = client.images.generate(model=m, prompt=prompt, size="1024x1024")

        first = resp.data[0]
        b64 = getattr(first, "b64_json", None) or getattr(first, "base64", None)
        if not b64:
            raise ImagePipelineError("Image API response did not include base64 data")
        return base64.b64decode(b64)

    def request(
        self,
        *,
        prompt: str,
        style: str,
        source: str,
        alt_text: str,
        license_filter: Sequence[str],
    ) -> MediaDescriptor:
        if source != "generate":
            raise ImagePipelineError(f"Unsupported image source: {source}")

        full_prompt = f"{prompt}. Style: {style}. No text, no logos, no watermarks."
        try:
            raw = self._generate_square_image_bytes(full_prompt)
        except ImagePipelineError:
            raise
        except Exception as e:
            raise ImagePipelineError(f"Image generation failed: {e}") from e

        media_id = "img-" + hashlib.sha256(raw).hexdigest()[:16]
        out_path = self.media_dir / f"{media_id}.webp"
        width, height = self.size

        try:
            with Image.open(BytesIO(raw)) as im:
                im = im.convert("RGB")
                if (width, height) != im.size:
                    im = _cover_resize(im, width, height)
                _save_webp(im, out_path, quality=85)
        except OSError as e:
            raise ImagePipelineError(f"Could not store generated image: {e}") from e

        return MediaDescriptor(
            id=media_id,
            url=f"{self.public_prefix}/{out_path.name}",
            alt_text=alt_text,
            license="generated",
            attribution="AI generated",
            dimensions=MediaDimensions(width=width, height=height),
            cost_usd=self.cost_per_image_usd,
        )
