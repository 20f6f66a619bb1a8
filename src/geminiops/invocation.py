"""Per-command option schemas and typed request builders.

Builders validate everything that can be checked locally (prompt, inputs,
option values) before touching the filesystem or the network, then load
the referenced images and return one typed request record.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Union

from .args import OptionSpec, ParsedArgs
from .errors import InvalidArgumentError
from .images import load_image, load_images
from .types import (
    AspectRatio,
    ImageEditRequest,
    ImageGenerationRequest,
    ImagePayload,
    ImageSize,
    OperationKind,
    SegmentRequest,
    SvgRequest,
    TextGenerationRequest,
    UpscaleRequest,
)


InvocationRequest = Union[
    TextGenerationRequest,
    ImageGenerationRequest,
    UpscaleRequest,
    ImageEditRequest,
    SvgRequest,
    SegmentRequest,
]

SIZE_TOKENS: Dict[str, ImageSize] = {
    "1K": ImageSize.SIZE_1024,
    "2K": ImageSize.SIZE_2048,
    "4K": ImageSize.SIZE_4096,
}

ASPECT_TOKENS: Dict[str, AspectRatio] = {
    "1:1": AspectRatio.RATIO_1_1,
    "16:9": AspectRatio.RATIO_16_9,
    "9:16": AspectRatio.RATIO_9_16,
    "4:3": AspectRatio.RATIO_4_3,
    "3:4": AspectRatio.RATIO_3_4,
}

UPSCALE_FACTORS = ("x2", "x4")
OUTPUT_FORMATS = ("png", "jpeg", "webp")
EDIT_MODES = ("inpaint", "outpaint")
MAX_COUNT = 4

_MODEL = OptionSpec("model")
_OUTPUT = OptionSpec("output")

GENERATE_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    OptionSpec("instructions"),
    OptionSpec("max-tokens", type=int),
    OptionSpec("temperature", type=float),
    OptionSpec("image", aliases=("-i",), repeatable=True),
)

IMAGE_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    _OUTPUT,
    OptionSpec("size"),
    OptionSpec("aspect"),
    OptionSpec("negative"),
    OptionSpec("count", type=int),
    OptionSpec("guidance", type=float),
    OptionSpec("seed", type=int),
    OptionSpec("input", aliases=("--image", "-i"), repeatable=True),
)

UPSCALE_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    _OUTPUT,
    OptionSpec("factor"),
    OptionSpec("format"),
    OptionSpec("quality", type=int),
)

EDIT_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    _OUTPUT,
    OptionSpec("mask"),
    OptionSpec("mode"),
    OptionSpec("format"),
    OptionSpec("quality", type=int),
    OptionSpec("negative"),
    OptionSpec("count", type=int),
    OptionSpec("guidance", type=float),
    OptionSpec("seed", type=int),
)

SVG_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    _OUTPUT,
    OptionSpec("instructions"),
)

SEGMENT_SCHEMA: Tuple[OptionSpec, ...] = (
    _MODEL,
    _OUTPUT,
    OptionSpec("prompt"),
)

SCHEMAS: Dict[OperationKind, Tuple[OptionSpec, ...]] = {
    OperationKind.GENERATE: GENERATE_SCHEMA,
    OperationKind.IMAGE: IMAGE_SCHEMA,
    OperationKind.UPSCALE: UPSCALE_SCHEMA,
    OperationKind.EDIT: EDIT_SCHEMA,
    OperationKind.SVG: SVG_SCHEMA,
    OperationKind.SEGMENT: SEGMENT_SCHEMA,
}

# Which option carries image paths for each command (None: images are positional).
IMAGE_OPTIONS: Dict[OperationKind, str] = {
    OperationKind.GENERATE: "image",
    OperationKind.IMAGE: "input",
}


def _str_option(parsed: ParsedArgs, name: str) -> Optional[str]:
    v = parsed.get(name)
    if v is None:
        return None
    if v is True:
        raise InvalidArgumentError(f"Option --{name} expects a value.")
    s = str(v).strip()
    return s if s else None


def _choice(parsed: ParsedArgs, name: str, choices: Sequence[str]) -> Optional[str]:
    v = _str_option(parsed, name)
    if v is None:
        return None
    low = v.lower()
    if low not in choices:
        raise InvalidArgumentError(f"Invalid --{name} '{v}'. Expected one of: {', '.join(choices)}.")
    return low


def _in_range(parsed: ParsedArgs, name: str, lo: float, hi: Optional[float] = None) -> Any:
    v = parsed.get(name)
    if v is None:
        return None
    if v < lo or (hi is not None and v > hi):
        bound = f"between {lo} and {hi}" if hi is not None else f"at least {lo}"
        raise InvalidArgumentError(f"Option --{name} must be {bound}, got {v}.")
    return v


def parse_size(token: Optional[str]) -> Optional[ImageSize]:
    if token is None:
        return None
    size = SIZE_TOKENS.get(str(token).strip().upper())
    if size is None:
        raise InvalidArgumentError(f"Invalid --size '{token}'. Expected one of: {', '.join(SIZE_TOKENS)}.")
    return size


def parse_aspect(token: Optional[str]) -> Optional[AspectRatio]:
    if token is None:
        return None
    ratio = ASPECT_TOKENS.get(str(token).strip())
    if ratio is None:
        raise InvalidArgumentError(f"Invalid --aspect '{token}'. Expected one of: {', '.join(ASPECT_TOKENS)}.")
    return ratio


def _require_prompt(prompt: str) -> str:
    if not prompt:
        raise InvalidArgumentError("Prompt required")
    return prompt


def _single_path(paths: Sequence[str], what: str) -> Optional[str]:
    if not paths:
        return None
    if len(paths) > 1:
        raise InvalidArgumentError(f"Only one {what} is supported, got {len(paths)}.")
    return paths[0]


def build_generate_request(parsed: ParsedArgs, *, loader: Callable = load_images) -> TextGenerationRequest:
    prompt = _require_prompt(parsed.prompt)
    max_tokens = _in_range(parsed, "max-tokens", 1)
    temperature = _in_range(parsed, "temperature", 0.0, 2.0)
    return TextGenerationRequest(
        prompt=prompt,
        images=tuple(loader(parsed.images)),
        model=_str_option(parsed, "model"),
        instructions=_str_option(parsed, "instructions"),
        max_tokens=max_tokens,
        temperature=temperature,
    )


def build_image_request(parsed: ParsedArgs, *, loader: Callable = load_image) -> ImageGenerationRequest:
    prompt = _require_prompt(parsed.prompt)
    size = parse_size(_str_option(parsed, "size"))
    aspect = parse_aspect(_str_option(parsed, "aspect"))
    count = _in_range(parsed, "count", 1, MAX_COUNT)
    input_path = _single_path(parsed.images, "--input image")
    input_image: Optional[ImagePayload] = loader(input_path) if input_path else None
    return ImageGenerationRequest(
        prompt=prompt,
        input_image=input_image,
        model=_str_option(parsed, "model"),
        size=size,
        aspect_ratio=aspect,
        negative_prompt=_str_option(parsed, "negative"),
        count=count,
        guidance_scale=parsed.get("guidance"),
        seed=parsed.get("seed"),
    )


def build_upscale_request(parsed: ParsedArgs, *, loader: Callable = load_image) -> UpscaleRequest:
    input_path = parsed.positionals[0] if parsed.positionals else None
    if not input_path:
        raise InvalidArgumentError("Input image path required")
    factor = _choice(parsed, "factor", UPSCALE_FACTORS) or "x2"
    output_format = _choice(parsed, "format", OUTPUT_FORMATS)
    quality = _in_range(parsed, "quality", 1, 100)
    return UpscaleRequest(
        image=loader(input_path),
        model=_str_option(parsed, "model"),
        factor=factor,
        output_format=output_format,
        quality=quality,
    )


def build_edit_request(parsed: ParsedArgs, *, loader: Callable = load_image) -> ImageEditRequest:
    input_path = parsed.positionals[0] if parsed.positionals else None
    prompt = " ".join(parsed.positionals[1:]).strip()
    if not input_path or not prompt:
        raise InvalidArgumentError("Input image and prompt required")
    mode = _choice(parsed, "mode", EDIT_MODES)
    output_format = _choice(parsed, "format", OUTPUT_FORMATS)
    quality = _in_range(parsed, "quality", 1, 100)
    count = _in_range(parsed, "count", 1, MAX_COUNT)
    mask_path = _str_option(parsed, "mask")
    image = loader(input_path)
    mask = loader(mask_path) if mask_path else None
    return ImageEditRequest(
        prompt=prompt,
        image=image,
        mask=mask,
        model=_str_option(parsed, "model"),
        mode=mode,
        output_format=output_format,
        quality=quality,
        negative_prompt=_str_option(parsed, "negative"),
        count=count,
        guidance_scale=parsed.get("guidance"),
        seed=parsed.get("seed"),
    )


def build_svg_request(parsed: ParsedArgs) -> SvgRequest:
    return SvgRequest(
        prompt=_require_prompt(parsed.prompt),
        model=_str_option(parsed, "model"),
        instructions=_str_option(parsed, "instructions"),
    )


def build_segment_request(parsed: ParsedArgs, *, loader: Callable = load_image) -> SegmentRequest:
    input_path = parsed.positionals[0] if parsed.positionals else None
    if not input_path:
        raise InvalidArgumentError("Input image path required")
    return SegmentRequest(
        image=loader(input_path),
        model=_str_option(parsed, "model"),
        prompt=_str_option(parsed, "prompt"),
    )


_BUILDERS: Dict[OperationKind, Callable[[ParsedArgs], InvocationRequest]] = {
    OperationKind.GENERATE: build_generate_request,
    OperationKind.IMAGE: build_image_request,
    OperationKind.UPSCALE: build_upscale_request,
    OperationKind.EDIT: build_edit_request,
    OperationKind.SVG: build_svg_request,
    OperationKind.SEGMENT: build_segment_request,
}


def build_request(kind: Union[OperationKind, str], parsed: ParsedArgs) -> InvocationRequest:
    return _BUILDERS[OperationKind(kind)](parsed)
