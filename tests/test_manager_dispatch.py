import sys
import unittest
from pathlib import Path

# Ensure `src/` layout is importable when running tests without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))


def _recording_backend():
    from geminiops.backends import GenerativeBackend
    from geminiops.types import SegmentationResult, ServiceResponse, SvgResult

    class RecordingBackend(GenerativeBackend):
        def __init__(self) -> None:
            self.calls = []

        def generate_text(self, request):
            self.calls.append("generate_text")
            return ServiceResponse(text="ok")

        def generate_image(self, request):
            self.calls.append("generate_image")
            return ServiceResponse()

        def upscale_image(self, request):
            self.calls.append("upscale_image")
            return ServiceResponse()

        def edit_image(self, request):
            self.calls.append("edit_image")
            return ServiceResponse()

        def generate_svg(self, request):
            self.calls.append("generate_svg")
            return SvgResult(svg="<svg/>")

        def segment_image(self, request):
            self.calls.append("segment_image")
            return SegmentationResult()

    return RecordingBackend()


class TestGeminiOpsDispatch(unittest.TestCase):
    def test_each_request_kind_makes_exactly_one_matching_call(self):
        from geminiops import GeminiOps
        from geminiops.types import (
            ImageEditRequest,
            ImageGenerationRequest,
            ImagePayload,
            SegmentRequest,
            SvgRequest,
            TextGenerationRequest,
            UpscaleRequest,
        )

        img = ImagePayload(data=b"x")
        cases = [
            (TextGenerationRequest(prompt="p"), "generate_text"),
            (ImageGenerationRequest(prompt="p"), "generate_image"),
            (UpscaleRequest(image=img), "upscale_image"),
            (ImageEditRequest(prompt="p", image=img), "edit_image"),
            (SvgRequest(prompt="p"), "generate_svg"),
            (SegmentRequest(image=img), "segment_image"),
        ]
        for request, expected in cases:
            backend = _recording_backend()
            GeminiOps(backend=backend).dispatch(request)
            self.assertEqual(backend.calls, [expected])

    def test_request_kind_tags(self):
        from geminiops.types import OperationKind, SvgRequest, UpscaleRequest

        self.assertIs(SvgRequest.kind, OperationKind.SVG)
        self.assertIs(UpscaleRequest.kind, OperationKind.UPSCALE)

    def test_dispatch_without_backend_raises(self):
        from geminiops import GeminiOps
        from geminiops.errors import GeminiOpsError
        from geminiops.types import SvgRequest

        with self.assertRaises(GeminiOpsError):
            GeminiOps().dispatch(SvgRequest(prompt="p"))

    def test_unknown_request_type(self):
        from geminiops import GeminiOps

        with self.assertRaises(TypeError):
            GeminiOps(backend=_recording_backend()).dispatch(object())  # type: ignore[arg-type]


if __name__ == "__main__":
    unittest.main()
