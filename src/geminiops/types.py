from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, List, Optional, Sequence


class OperationKind(str, Enum):
    GENERATE = "generate"
    IMAGE = "image"
    UPSCALE = "upscale"
    EDIT = "edit"
    SVG = "svg"
    SEGMENT = "segment"


class ImageSize(str, Enum):
    """Named output sizes; values are what the service expects."""

    SIZE_1024 = "1K"
    SIZE_2048 = "2K"
    SIZE_4096 = "4K"


class AspectRatio(str, Enum):
    RATIO_1_1 = "1:1"
    RATIO_16_9 = "16:9"
    RATIO_9_16 = "9:16"
    RATIO_4_3 = "4:3"
    RATIO_3_4 = "3:4"


@dataclass(frozen=True)
class ImagePayload:
    """Raw image bytes plus the content type inferred from the file extension."""

    data: bytes
    mime_type: str = "image/png"


@dataclass(frozen=True)
class Artifact:
    """One generated output unit (decoded bytes)."""

    data: bytes
    mime_type: str


@dataclass(frozen=True)
class Usage:
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass(frozen=True)
class ServiceResponse:
    artifacts: List[Artifact] = field(default_factory=list)
    text: Optional[str] = None
    usage: Optional[Usage] = None


@dataclass(frozen=True)
class SvgResult:
    svg: str
    usage: Optional[Usage] = None


@dataclass(frozen=True)
class SegmentationMask:
    label: str
    box_2d: Sequence[float]
    mask: bytes


@dataclass(frozen=True)
class SegmentationResult:
    masks: List[SegmentationMask] = field(default_factory=list)
    usage: Optional[Usage] = None


@dataclass(frozen=True)
class TextGenerationRequest:
    kind: ClassVar[OperationKind] = OperationKind.GENERATE

    prompt: str
    images: Sequence[ImagePayload] = ()
    model: Optional[str] = None
    instructions: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class ImageGenerationRequest:
    kind: ClassVar[OperationKind] = OperationKind.IMAGE

    prompt: str
    input_image: Optional[ImagePayload] = None
    model: Optional[str] = None
    size: Optional[ImageSize] = None
    aspect_ratio: Optional[AspectRatio] = None
    negative_prompt: Optional[str] = None
    count: Optional[int] = None
    guidance_scale: Optional[float] = None
    seed: Optional[int] = None


@dataclass(frozen=True)
class UpscaleRequest:
    kind: ClassVar[OperationKind] = OperationKind.UPSCALE

    image: ImagePayload
    model: Optional[str] = None
    factor: str = "x2"
    output_format: Optional[str] = None
    quality: Optional[int] = None


@dataclass(frozen=True)
class ImageEditRequest:
    kind: ClassVar[OperationKind] = OperationKind.EDIT

    prompt: str
    image: ImagePayload
    mask: Optional[ImagePayload] = None
    model: Optional[str] = None
    mode: Optional[str] = None  # "inpaint" | "outpaint"
    output_format: Optional[str] = None
    quality: Optional[int] = None
    negative_prompt: Optional[str] = None
    count: Optional[int] = None
    guidance_scale: Optional[float] = None
    seed: Optional[int] = None


@dataclass(frozen=True)
class SvgRequest:
    kind: ClassVar[OperationKind] = OperationKind.SVG

    prompt: str
    model: Optional[str] = None
    instructions: Optional[str] = None


@dataclass(frozen=True)
class SegmentRequest:
    kind: ClassVar[OperationKind] = OperationKind.SEGMENT

    image: ImagePayload
    model: Optional[str] = None
    prompt: Optional[str] = None
