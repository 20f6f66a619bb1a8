from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .backends import GenerativeBackend
from .errors import GeminiOpsError
from .invocation import InvocationRequest
from .types import (
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


logger = logging.getLogger(__name__)

DispatchResult = Union[ServiceResponse, SvgResult, SegmentationResult]


@dataclass
class GeminiOps:
    """Routes one typed request to the matching backend method (one call, no retries)."""

    backend: Optional[GenerativeBackend] = None

    def _require_backend(self) -> GenerativeBackend:
        if self.backend is None:
            raise GeminiOpsError("No backend configured. Provide GeminiOps(backend=...) before dispatching.")
        return self.backend

    def dispatch(self, request: InvocationRequest) -> DispatchResult:
        backend = self._require_backend()
        logger.debug("Dispatching %s to %s", type(request).__name__, type(backend).__name__)
        if isinstance(request, TextGenerationRequest):
            return backend.generate_text(request)
        if isinstance(request, ImageGenerationRequest):
            return backend.generate_image(request)
        if isinstance(request, UpscaleRequest):
            return backend.upscale_image(request)
        if isinstance(request, ImageEditRequest):
            return backend.edit_image(request)
        if isinstance(request, SvgRequest):
            return backend.generate_svg(request)
        if isinstance(request, SegmentRequest):
            return backend.segment_image(request)
        raise TypeError(f"Unsupported request type: {type(request).__name__}")
