"""Gemini image backend built on google-genai."""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import TYPE_CHECKING, Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from stickify.backend.base import GenerationCandidate, GenerationRequest
from stickify.errors import (
    BackendConnectionError,
    EmptyGenerationError,
    GenerationBackendError,
    StageTimeoutError,
)

if TYPE_CHECKING:
    from stickify.config import GeminiSettings

logger = logging.getLogger(__name__)

MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiClient:
    """One-shot image generation/editing against the Gemini API.

    Stateless: every :meth:`generate` call is a single ``generate_content``
    exchange. Nothing is retried here; a refusal for a given image/prompt is
    unlikely to change on a repeat and would burn quota.
    """

    def __init__(
        self,
        credential: str,
        settings: GeminiSettings,
        *,
        client: genai.Client | None = None,
    ) -> None:
        self._settings = settings
        # An injected client belongs to the caller and is left open.
        self._owns_client = client is None
        self._client = client or genai.Client(api_key=credential)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aio.aclose()

    async def generate(self, request: GenerationRequest) -> GenerationCandidate:
        contents = self._build_contents(request)
        config = self._build_config(request)
        logger.debug(
            "Gemini request: model=%s image=%s size=%s",
            request.model, request.image is not None, request.image_size,
        )

        try:
            response = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=request.model,
                    contents=contents,
                    config=config,
                ),
                timeout=self._settings.timeout,
            )
        except (TimeoutError, httpx.TimeoutException) as exc:
            raise StageTimeoutError("image generation", self._settings.timeout) from exc
        except (httpx.TransportError, OSError) as exc:
            msg = f"could not reach Gemini: {exc}"
            raise BackendConnectionError(msg) from exc
        except genai_errors.APIError as exc:
            msg = f"Gemini rejected the request ({exc.code}): {exc.message}"
            raise GenerationBackendError(msg) from exc

        return _first_inline_image(response, request.model)

    def _build_contents(self, request: GenerationRequest) -> list[Any]:
        parts: list[Any] = []
        if request.image is not None:
            parts.append(
                types.Part.from_bytes(data=request.image, mime_type=request.image_mime_type),
            )
        parts.append(types.Part.from_text(text=request.instruction))
        return [types.Content(role="user", parts=parts)]

    def _build_config(self, request: GenerationRequest) -> types.GenerateContentConfig:
        image_config = None
        if request.image_size or request.aspect_ratio:
            image_config = types.ImageConfig(
                aspect_ratio=request.aspect_ratio,
                image_size=request.image_size,
            )
        return types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=image_config,
        )


async def check_gemini_available(credential: str, *, timeout: float = 10.0) -> bool:
    """Check that the Gemini API is reachable and accepts *credential*."""
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(
                MODELS_URL,
                headers={"x-goog-api-key": credential},
                params={"pageSize": 1},
            )
    except (httpx.HTTPError, OSError):
        logger.warning("Gemini API unreachable")
        return False
    if resp.status_code in (401, 403):
        logger.warning("Gemini API rejected the key (%d)", resp.status_code)
    return resp.status_code == 200


def _first_inline_image(response: Any, model: str) -> GenerationCandidate:
    """Extract the first inline image of the first candidate."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        feedback = getattr(response, "prompt_feedback", None)
        reason = getattr(feedback, "block_reason", None)
        logger.warning("Gemini returned no candidates (block_reason=%s)", reason)
        msg = "no candidates returned from the model"
        if reason:
            msg = f"{msg} (blocked: {reason})"
        raise EmptyGenerationError(msg)

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        if inline_data is None:
            continue
        data = getattr(inline_data, "data", None)
        mime = getattr(inline_data, "mime_type", None) or "image/png"
        if isinstance(data, str):
            try:
                data = base64.b64decode(data, validate=True)
            except binascii.Error:
                logger.warning("Skipping inline part with undecodable base64 payload")
                continue
        if isinstance(data, (bytes, bytearray)) and data:
            return GenerationCandidate(data=bytes(data), mime_type=mime, metadata={"model": model})

    logger.warning("Gemini candidate carried no inline image part")
    msg = "the model did not return an image"
    raise EmptyGenerationError(msg)
