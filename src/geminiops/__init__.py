"""geminiops: command-line utilities for the Gemini / Imagen generative API.

Each command forwards one prompt (and optionally images) to the service and
writes what comes back (text, images, SVG markup, segmentation masks) to
stdout or local files. The `google-genai` client is only imported when a
command actually dispatches.
"""

from .args import OptionSpec, ParsedArgs, normalize_args
from .images import guess_image_mime_type, load_image
from .manager import GeminiOps

__version__ = "0.1.0"

__all__ = [
    "GeminiOps",
    "OptionSpec",
    "ParsedArgs",
    "normalize_args",
    "guess_image_mime_type",
    "load_image",
    "__version__",
]
