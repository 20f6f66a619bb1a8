from __future__ import annotations

from abc import ABC, abstractmethod

from ..types import (
    ImageEditRequest,
    ImageGenerationRequest,
    SegmentationResult,
    SegmentRequest,
    ServiceResponse,
    SvgRequest,
    SvgResult,
    TextGenerationRequest,
    UpscaleRequest,
)


class GenerativeBackend(ABC):
    """Backend interface: one method per operation kind, one remote call per method."""

    @abstractmethod
    def generate_text(self, request: TextGenerationRequest) -> ServiceResponse: ...

    @abstractmethod
    def generate_image(self, request: ImageGenerationRequest) -> ServiceResponse: ...

    @abstractmethod
    def upscale_image(self, request: UpscaleRequest) -> ServiceResponse: ...

    @abstractmethod
    def edit_image(self, request: ImageEditRequest) -> ServiceResponse: ...

    @abstractmethod
    def generate_svg(self, request: SvgRequest) -> SvgResult: ...

    @abstractmethod
    def segment_image(self, request: SegmentRequest) -> SegmentationResult: ...
