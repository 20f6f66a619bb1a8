from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ..errors import InvalidArgumentError, RemoteCallError
from ..types import (
    Artifact,
    ImageEditRequest,
    ImageGenerationRequest,
    ImagePayload,
    SegmentationMask,
    SegmentationResult,
    SegmentRequest,
    ServiceResponse,
    SvgRequest,
    SvgResult,
    TextGenerationRequest,
    UpscaleRequest,
    Usage,
)
from .base_backend import GenerativeBackend


logger = logging.getLogger(__name__)

DEFAULT_SVG_INSTRUCTIONS = (
    "You are an expert SVG designer. Reply with one complete, valid SVG document and nothing else: "
    "no markdown fences and no commentary. Always include a viewBox attribute and keep the markup clean."
)

DEFAULT_SEGMENT_PROMPT = (
    "Give the segmentation masks for the objects in the image. Output a JSON list of segmentation masks "
    'where each entry contains the 2D bounding box in the key "box_2d", the segmentation mask in key '
    '"mask", and the text label in the key "label". Use descriptive labels.'
)

_EDIT_MODES = {
    "inpaint": "EDIT_MODE_INPAINT_INSERTION",
    "outpaint": "EDIT_MODE_OUTPAINT",
}

_SVG_RE = re.compile(r"<svg\b.*?</svg>", re.IGNORECASE | re.DOTALL)
_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_DATA_URI_RE = re.compile(r"^data:[^;,]+;base64,", re.IGNORECASE)


def _sniff_mime_type(content: bytes, fallback: str) -> str:
    b = bytes(content or b"")
    if b.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if b.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if len(b) >= 12 and b[:4] == b"RIFF" and b[8:12] == b"WEBP":
        return "image/webp"
    return str(fallback or "application/octet-stream")


def _decode_b64(s: str) -> bytes:
    raw = _DATA_URI_RE.sub("", str(s or "").strip())
    raw = "".join(raw.split())
    pad = (-len(raw)) % 4
    if pad:
        raw = raw + ("=" * pad)
    return base64.b64decode(raw, validate=False)


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", str(text or "").strip())


def _iter_parts(resp: Any, *, first_candidate_only: bool = False) -> Iterator[Any]:
    candidates = getattr(resp, "candidates", None) or []
    if first_candidate_only:
        candidates = candidates[:1]
    for cand in candidates:
        content = getattr(cand, "content", None)
        for part in getattr(content, "parts", None) or []:
            yield part


def _response_text(resp: Any) -> str:
    chunks: List[str] = []
    for part in _iter_parts(resp, first_candidate_only=True):
        text = getattr(part, "text", None)
        if text and not getattr(part, "thought", False):
            chunks.append(str(text))
    return "".join(chunks)


def _inline_artifacts(resp: Any) -> List[Artifact]:
    out: List[Artifact] = []
    for part in _iter_parts(resp):
        inline = getattr(part, "inline_data", None)
        data = getattr(inline, "data", None) if inline is not None else None
        if data:
            out.append(Artifact(data=bytes(data), mime_type=getattr(inline, "mime_type", None) or _sniff_mime_type(data, "image/png")))
    return out


def _generated_artifacts(resp: Any) -> List[Artifact]:
    out: List[Artifact] = []
    for generated in getattr(resp, "generated_images", None) or []:
        image = getattr(generated, "image", None)
        data = getattr(image, "image_bytes", None) if image is not None else None
        if data:
            out.append(Artifact(data=bytes(data), mime_type=getattr(image, "mime_type", None) or _sniff_mime_type(data, "image/png")))
    return out


def _usage(resp: Any) -> Optional[Usage]:
    meta = getattr(resp, "usage_metadata", None)
    if meta is None:
        return None
    return Usage(
        prompt_tokens=getattr(meta, "prompt_token_count", None),
        completion_tokens=getattr(meta, "candidates_token_count", None),
        total_tokens=getattr(meta, "total_token_count", None),
    )


def _to_image(payload: ImagePayload) -> genai_types.Image:
    return genai_types.Image(image_bytes=bytes(payload.data), mime_type=payload.mime_type)


def _to_part(payload: ImagePayload) -> genai_types.Part:
    return genai_types.Part.from_bytes(data=bytes(payload.data), mime_type=payload.mime_type)


def _drop_none(**kwargs: Any) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if v is not None}


def _is_imagen(model: str) -> bool:
    return str(model or "").lower().startswith("imagen")


@dataclass
class GeminiBackendConfig:
    api_key: Optional[str] = None
    # Pre-built client (tests, custom http options); otherwise created from api_key.
    client: Any = None

    text_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-3-pro-image-preview"
    upscale_model: str = "imagen-4.0-upscale-preview"
    edit_model: str = "imagen-3.0-capability-001"
    svg_model: str = "gemini-3-pro-preview"
    segment_model: str = "gemini-2.5-flash"

    default_temperature: float = 0.7


class GeminiBackend(GenerativeBackend):
    """Backend adapter for the Gemini / Imagen API through `google-genai`.

    Notes:
    - Gemini-native models go through `models.generate_content`; Imagen models
      through `generate_images`, `upscale_image` and `edit_image`.
    - Each public method issues exactly one call. Client/transport failures are
      re-raised as RemoteCallError with the service's message.
    """

    def __init__(self, *, config: GeminiBackendConfig):
        self._cfg = config
        self._client_obj = config.client

    def _client(self) -> Any:
        if self._client_obj is None:
            self._client_obj = genai.Client(api_key=self._cfg.api_key)
        return self._client_obj

    def _call(self, fn: Callable[..., Any], **kwargs: Any) -> Any:
        logger.debug("Calling %s (model=%s)", getattr(fn, "__name__", "remote"), kwargs.get("model"))
        try:
            return fn(**kwargs)
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise RemoteCallError(str(e)) from e

    def _require_artifacts(self, artifacts: List[Artifact], text: Optional[str] = None) -> List[Artifact]:
        if artifacts:
            return artifacts
        msg = "No images returned by the service."
        if text:
            msg += f" Model said: {text}"
        raise RemoteCallError(msg)

    def generate_text(self, request: TextGenerationRequest) -> ServiceResponse:
        parts = [_to_part(img) for img in request.images]
        parts.append(genai_types.Part.from_text(text=request.prompt))
        temperature = request.temperature if request.temperature is not None else self._cfg.default_temperature
        config = genai_types.GenerateContentConfig(
            **_drop_none(
                system_instruction=request.instructions,
                max_output_tokens=request.max_tokens,
                temperature=temperature,
            )
        )
        resp = self._call(
            self._client().models.generate_content,
            model=request.model or self._cfg.text_model,
            contents=[genai_types.Content(role="user", parts=parts)],
            config=config,
        )
        return ServiceResponse(text=_response_text(resp), usage=_usage(resp))

    def generate_image(self, request: ImageGenerationRequest) -> ServiceResponse:
        model = request.model or self._cfg.image_model
        if _is_imagen(model):
            return self._generate_imagen(model, request)

        dropped = [name for name, v in (("negative", request.negative_prompt), ("guidance", request.guidance_scale)) if v is not None]
        if dropped:
            logger.warning("Ignoring --%s: not supported by Gemini image model %s", ", --".join(dropped), model)

        image_config = _drop_none(
            image_size=request.size.value if request.size else None,
            aspect_ratio=request.aspect_ratio.value if request.aspect_ratio else None,
        )
        config = genai_types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            **_drop_none(
                image_config=genai_types.ImageConfig(**image_config) if image_config else None,
                candidate_count=request.count if request.count and request.count > 1 else None,
                seed=request.seed,
            ),
        )
        parts = [_to_part(request.input_image)] if request.input_image is not None else []
        parts.append(genai_types.Part.from_text(text=request.prompt))
        resp = self._call(
            self._client().models.generate_content,
            model=model,
            contents=[genai_types.Content(role="user", parts=parts)],
            config=config,
        )
        text = _response_text(resp) or None
        artifacts = self._require_artifacts(_inline_artifacts(resp), text)
        return ServiceResponse(artifacts=artifacts, text=text, usage=_usage(resp))

    def _generate_imagen(self, model: str, request: ImageGenerationRequest) -> ServiceResponse:
        if request.input_image is not None:
            raise InvalidArgumentError(f"--input is not supported by Imagen model {model}; use a Gemini image model.")
        config = genai_types.GenerateImagesConfig(
            number_of_images=request.count or 1,
            **_drop_none(
                image_size=request.size.value if request.size else None,
                aspect_ratio=request.aspect_ratio.value if request.aspect_ratio else None,
                negative_prompt=request.negative_prompt,
                guidance_scale=request.guidance_scale,
                seed=request.seed,
            ),
        )
        resp = self._call(self._client().models.generate_images, model=model, prompt=request.prompt, config=config)
        return ServiceResponse(artifacts=self._require_artifacts(_generated_artifacts(resp)))

    def upscale_image(self, request: UpscaleRequest) -> ServiceResponse:
        config_kwargs = _drop_none(
            output_mime_type=f"image/{request.output_format}" if request.output_format else None,
            output_compression_quality=request.quality,
        )
        resp = self._call(
            self._client().models.upscale_image,
            model=request.model or self._cfg.upscale_model,
            image=_to_image(request.image),
            upscale_factor=request.factor,
            config=genai_types.UpscaleImageConfig(**config_kwargs) if config_kwargs else None,
        )
        return ServiceResponse(artifacts=self._require_artifacts(_generated_artifacts(resp)))

    def edit_image(self, request: ImageEditRequest) -> ServiceResponse:
        references: List[Any] = [genai_types.RawReferenceImage(reference_id=1, reference_image=_to_image(request.image))]
        if request.mask is not None:
            references.append(
                genai_types.MaskReferenceImage(
                    reference_id=2,
                    reference_image=_to_image(request.mask),
                    config=genai_types.MaskReferenceConfig(mask_mode="MASK_MODE_USER_PROVIDED"),
                )
            )

        edit_mode = _EDIT_MODES.get(str(request.mode or ""))
        if edit_mode is None:
            edit_mode = _EDIT_MODES["inpaint"] if request.mask is not None else "EDIT_MODE_DEFAULT"

        config = genai_types.EditImageConfig(
            edit_mode=edit_mode,
            **_drop_none(
                number_of_images=request.count,
                negative_prompt=request.negative_prompt,
                guidance_scale=request.guidance_scale,
                seed=request.seed,
                output_mime_type=f"image/{request.output_format}" if request.output_format else None,
                output_compression_quality=request.quality,
            ),
        )
        resp = self._call(
            self._client().models.edit_image,
            model=request.model or self._cfg.edit_model,
            prompt=request.prompt,
            reference_images=references,
            config=config,
        )
        return ServiceResponse(artifacts=self._require_artifacts(_generated_artifacts(resp)))

    def generate_svg(self, request: SvgRequest) -> SvgResult:
        config = genai_types.GenerateContentConfig(system_instruction=request.instructions or DEFAULT_SVG_INSTRUCTIONS)
        resp = self._call(
            self._client().models.generate_content,
            model=request.model or self._cfg.svg_model,
            contents=request.prompt,
            config=config,
        )
        text = _response_text(resp)
        m = _SVG_RE.search(text)
        if m is None:
            raise RemoteCallError("No SVG markup found in the model response.")
        return SvgResult(svg=m.group(0), usage=_usage(resp))

    def segment_image(self, request: SegmentRequest) -> SegmentationResult:
        model = request.model or self._cfg.segment_model
        config_kwargs: Dict[str, Any] = {"response_mime_type": "application/json"}
        if model.startswith("gemini-2.5-flash"):
            config_kwargs["thinking_config"] = genai_types.ThinkingConfig(thinking_budget=0)
        resp = self._call(
            self._client().models.generate_content,
            model=model,
            contents=[_to_part(request.image), genai_types.Part.from_text(text=request.prompt or DEFAULT_SEGMENT_PROMPT)],
            config=genai_types.GenerateContentConfig(**config_kwargs),
        )
        return SegmentationResult(masks=parse_segmentation_masks(_response_text(resp)), usage=_usage(resp))


def parse_segmentation_masks(text: str) -> List[SegmentationMask]:
    """Parse the model's JSON list of `{box_2d, mask, label}` entries."""
    try:
        data = json.loads(_strip_fences(text))
    except ValueError as e:
        raise RemoteCallError(f"Invalid segmentation response: {e}") from e
    if not isinstance(data, list):
        raise RemoteCallError("Invalid segmentation response: expected a JSON list.")

    masks: List[SegmentationMask] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        box = item.get("box_2d")
        if not isinstance(box, list) or len(box) != 4:
            raise RemoteCallError(f"Invalid segmentation response: bad box_2d {box!r}.")
        label = str(item.get("label") or "object")
        try:
            mask = _decode_b64(str(item.get("mask") or ""))
        except (binascii.Error, ValueError) as e:
            raise RemoteCallError(f"Invalid segmentation response: bad mask for {label!r} ({e}).") from e
        masks.append(SegmentationMask(label=label, box_2d=list(box), mask=mask))
    return masks
