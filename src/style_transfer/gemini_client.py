"""Gemini-backed transform service: restyle, edit, describe and translate frames."""

from __future__ import annotations

import logging
import os
from typing import Any, Iterable, Optional

try:
    from google import genai
    from google.genai import errors as genai_errors
    from google.genai import types
except ImportError as exc:  # pragma: no cover - handled at runtime
    raise ImportError(
        "google-genai is required for frame regeneration. Install with `pip install google-genai`."
    ) from exc

from frame_studio.errors import (
    TransformAuthError,
    TransformBlocked,
    TransformEmptyResult,
    TransformError,
    TransformRateLimited,
)

from .base import closest_aspect_ratio
from .styles import (
    DESCRIBE_PROMPT,
    ArtStyle,
    RegenerationEngine,
    build_reimagine_prompt,
    build_style_prompt,
    build_translate_prompt,
)


logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MODEL = "gemini-2.5-flash-image"
DEFAULT_TEXT_MODEL = "gemini-2.5-flash"
DEFAULT_IMAGEN_MODEL = "imagen-4.0-generate-001"

BLOCKING_FINISH_REASONS = {"SAFETY", "RECITATION", "PROHIBITED_CONTENT", "IMAGE_SAFETY", "BLOCKLIST"}


def classify_api_error(exc: Exception) -> TransformError:
    """Map a google-genai failure onto the transform error taxonomy."""

    if isinstance(exc, TransformError):
        return exc

    code = getattr(exc, "code", None)
    status = str(getattr(exc, "status", "") or "")
    message = str(exc)

    if "API key not valid" in message or "API_KEY_INVALID" in message or code in (401, 403):
        return TransformAuthError("The provided Gemini API key is not valid. Please check your key.")
    if code == 429 or "RESOURCE_EXHAUSTED" in status or "RESOURCE_EXHAUSTED" in message:
        return TransformRateLimited(f"API rate limit exceeded. {TransformRateLimited.hint}")
    return TransformError(f"Gemini request failed: {message}")


def _enum_name(value: Any) -> Optional[str]:
    if value is None:
        return None
    return getattr(value, "name", None) or str(value)


def _block_reason(response: Any) -> Optional[str]:
    feedback = getattr(response, "prompt_feedback", None)
    reason = _enum_name(getattr(feedback, "block_reason", None)) if feedback else None
    if reason:
        return reason
    for candidate in getattr(response, "candidates", None) or []:
        finish = _enum_name(getattr(candidate, "finish_reason", None))
        if finish in BLOCKING_FINISH_REASONS:
            return finish
    return None


def _inline_images(response: Any) -> Iterable[bytes]:
    """Yield inline image payloads from a generate_content response."""

    for candidate in getattr(response, "candidates", None) or []:
        content = getattr(candidate, "content", None)
        for part in getattr(content, "parts", None) or []:
            inline = getattr(part, "inline_data", None)
            if inline is not None and getattr(inline, "data", None):
                yield inline.data


class GeminiTransformService:
    """Talks to Gemini and Imagen through a single ``genai.Client``."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        engine: RegenerationEngine = RegenerationEngine.STYLE_TRANSFER,
        image_model: str = DEFAULT_IMAGE_MODEL,
        text_model: str = DEFAULT_TEXT_MODEL,
        imagen_model: str = DEFAULT_IMAGEN_MODEL,
        client: Any = None,
    ) -> None:
        self.engine = engine
        self.image_model = image_model
        self.text_model = text_model
        self.imagen_model = imagen_model
        self._api_key = api_key or os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise TransformAuthError("Set GEMINI_API_KEY (or GOOGLE_API_KEY) before calling Gemini.")
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    def _call(self, fn, **kwargs) -> Any:
        try:
            return fn(**kwargs)
        except genai_errors.APIError as exc:
            logger.warning("Gemini call to %s failed: %s", kwargs.get("model"), exc)
            raise classify_api_error(exc) from exc
        except Exception as exc:
            # Transport failures (timeouts, dropped connections) are ordinary call failures.
            logger.warning("Gemini call to %s failed: %s", kwargs.get("model"), exc)
            raise TransformError(f"Gemini request failed: {exc}") from exc

    def _generate_image(self, contents: list, *, aspect_ratio: str | None = None) -> bytes:
        image_config = types.ImageConfig(aspect_ratio=aspect_ratio) if aspect_ratio else None
        config = types.GenerateContentConfig(
            response_modalities=["IMAGE", "TEXT"],
            image_config=image_config,
        )
        response = self._call(
            self.client.models.generate_content,
            model=self.image_model,
            contents=contents,
            config=config,
        )

        for data in _inline_images(response):
            return data

        reason = _block_reason(response)
        if reason:
            raise TransformBlocked(reason)
        raise TransformEmptyResult("No image was generated in the API response.")

    def _generate_text(self, contents: list) -> str:
        response = self._call(
            self.client.models.generate_content,
            model=self.text_model,
            contents=contents,
        )
        text = (getattr(response, "text", None) or "").strip()
        if text:
            return text

        reason = _block_reason(response)
        if reason:
            raise TransformBlocked(reason)
        raise TransformEmptyResult("The model returned no text.")

    def transform(
        self,
        image: bytes,
        style: ArtStyle,
        aspect_ratio: float,
        style_reference: Optional[bytes] = None,
    ) -> bytes:
        ratio = closest_aspect_ratio(aspect_ratio)
        if self.engine is RegenerationEngine.REIMAGINE:
            return self._reimagine(image, style, ratio)

        parts = [types.Part.from_bytes(data=image, mime_type="image/jpeg")]
        if style_reference:
            parts.append(types.Part.from_bytes(data=style_reference, mime_type="image/jpeg"))
        parts.append(build_style_prompt(style, with_reference=bool(style_reference)))

        logger.debug("Style transfer (%s, %s) via %s", style.value, ratio, self.image_model)
        return self._generate_image(parts, aspect_ratio=ratio)

    def _reimagine(self, image: bytes, style: ArtStyle, ratio: str) -> bytes:
        description = self.describe(image)
        prompt = build_reimagine_prompt(style, description)
        logger.debug("Re-imagining (%s, %s) via %s", style.value, ratio, self.imagen_model)

        response = self._call(
            self.client.models.generate_images,
            model=self.imagen_model,
            prompt=prompt,
            config=types.GenerateImagesConfig(
                number_of_images=1,
                output_mime_type="image/jpeg",
                aspect_ratio=ratio,
            ),
        )
        for generated in getattr(response, "generated_images", None) or []:
            img = getattr(generated, "image", None)
            if img is not None and getattr(img, "image_bytes", None):
                return img.image_bytes
            reason = getattr(generated, "rai_filtered_reason", None)
            if reason:
                raise TransformBlocked(reason)
        raise TransformEmptyResult("Imagen failed to generate an image.")

    def edit(self, image: bytes, prompt: str) -> bytes:
        parts = [types.Part.from_bytes(data=image, mime_type="image/jpeg"), prompt]
        return self._generate_image(parts)

    def describe(self, image: bytes) -> str:
        parts = [types.Part.from_bytes(data=image, mime_type="image/jpeg"), DESCRIBE_PROMPT]
        return self._generate_text(parts)

    def translate(self, text: str, language: str) -> str:
        return self._generate_text([build_translate_prompt(text, language)])


__all__ = ["GeminiTransformService", "classify_api_error", "DEFAULT_IMAGE_MODEL", "DEFAULT_TEXT_MODEL"]
