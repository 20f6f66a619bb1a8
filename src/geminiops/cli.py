from __future__ import annotations

import logging
import os
import sys
from typing import Callable, Dict, List, Optional, Sequence

from .args import PROMPT_TAIL, SCAN, ParsedArgs, normalize_args
from .artifacts import format_box, format_usage, write_artifacts, write_masks, write_svg
from .backends import GenerativeBackend
from .errors import GeminiOpsError, InvalidArgumentError, MissingCredentialError
from .invocation import IMAGE_OPTIONS, SCHEMAS, build_request
from .manager import GeminiOps
from .types import OperationKind, ServiceResponse, Usage


API_KEY_ENV = "GEMINI_API_KEY"

API_KEY_HELP = (
    f"{API_KEY_ENV} environment variable is not set.\n"
    "\nGet an API key from: https://aistudio.google.com/apikey\n"
    "\nThen add to your environment:\n"
    f'  export {API_KEY_ENV}="your-api-key-here"'
)

BackendFactory = Callable[[str], GenerativeBackend]

USAGE = """\
Gemini Operations CLI

Usage: gemini-ops <command> [options]

Commands:
  generate <prompt>              Generate text content
  image <prompt> [options]       Generate images
  upscale <input> [options]      Upscale an image
  edit <input> <prompt> [opts]   Edit an image
  svg <prompt>                   Generate SVG
  segment <input>                Segment image objects
  help                           Show this help

Text Generation:
  gemini-ops generate "your prompt" [image.png ...]
    --model <model>              Model name (default: gemini-3-pro-preview)
    --instructions <text>        System instructions
    --max-tokens <n>             Max output tokens
    --temperature <n>            Temperature (default: 0.7)
    --image, -i <path>           Attach an image (repeatable, up to 10)

Image Generation:
  gemini-ops image "a sunset over mountains"
    --model <model>              gemini-* or imagen-* (default: gemini-3-pro-image-preview)
    --size <size>                Image size: 1K, 2K, 4K
    --aspect <ratio>             Aspect ratio: 1:1, 16:9, 9:16, 4:3, 3:4
    --negative <prompt>          Negative prompt (Imagen models)
    --count <n>                  Number of images (1-4)
    --guidance <n>               Guidance scale (Imagen models)
    --seed <n>                   Random seed
    --input <path>               Input image for img2img (Gemini models)
    --output <path>              Output path (default: output_<timestamp>.<ext>)

Upscale:
  gemini-ops upscale input.png
    --factor <x2|x4>             Upscale factor (default: x2)
    --format <fmt>               Output format: png, jpeg, webp
    --quality <n>                JPEG quality (1-100)
    --output <path>              Output path (default: upscaled_<timestamp>.<ext>)

Edit:
  gemini-ops edit input.png "add a sunset sky"
    --mask <path>                Mask image
    --mode <mode>                Edit mode: inpaint, outpaint
    --format <fmt>               Output format: png, jpeg, webp
    --quality <n>                JPEG quality (1-100)
    --negative <prompt>          Negative prompt
    --count <n>                  Number of images (1-4)
    --guidance <n>               Guidance scale
    --seed <n>                   Random seed
    --output <path>              Output path (default: edited_<timestamp>.<ext>)

SVG:
  gemini-ops svg "minimalist mountain logo"
    --instructions <text>        Custom system instructions
    --output <path>              Output path (default: output.svg)

Segment:
  gemini-ops segment input.png
    --prompt <text>              Custom segmentation prompt
    --output <dir>               Output directory for masks

Environment:
  GEMINI_API_KEY                 API key (required)
  GEMINIOPS_LOG_LEVEL            Log level on stderr (default: WARNING)

Examples:
  gemini-ops generate "Explain quantum computing"
  gemini-ops image "cyberpunk cityscape" --size 4K --aspect 16:9
  gemini-ops upscale photo.png --factor x4 --output hires.png
  gemini-ops edit scene.png "replace sky with stars" --mode inpaint
  gemini-ops svg "geometric pattern" --output logo.svg
  gemini-ops segment photo.png --output ./masks
"""

ASK_USAGE = """\
Usage: ask-gemini [--image <path>]... <your question>

Examples:
  ask-gemini 'What is the best color scheme for web3 sites?'
  ask-gemini --image screenshot.png 'Analyze this design'
  ask-gemini current.png target.png 'What are the differences?'

Supports up to 10 images per request.
"""


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    v = os.environ.get(key)
    if v is None:
        return default
    s = str(v).strip()
    return s if s else default


def _configure_logging() -> None:
    level_name = (_env("GEMINIOPS_LOG_LEVEL", "WARNING") or "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _require_api_key() -> str:
    key = _env(API_KEY_ENV)
    if not key:
        raise MissingCredentialError(API_KEY_HELP)
    return key


def _default_backend_factory(api_key: str) -> GenerativeBackend:
    from .backends.gemini import GeminiBackend, GeminiBackendConfig

    return GeminiBackend(config=GeminiBackendConfig(api_key=api_key))


def _note(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_usage_footer(usage: Optional[Usage]) -> None:
    line = format_usage(usage)
    if line:
        print("\n---")
        print(line)


def _normalize(kind: OperationKind, tokens: Sequence[str], *, mode: str = SCAN) -> ParsedArgs:
    image_option = IMAGE_OPTIONS.get(kind)
    return normalize_args(
        tokens,
        SCHEMAS[kind],
        mode=mode,
        implicit_images=kind is OperationKind.GENERATE and mode == PROMPT_TAIL,
        image_option=image_option or "image",
    )


def _dispatch(kind: OperationKind, parsed: ParsedArgs, backend_factory: BackendFactory):
    # Local validation and file loading happen before the credential check and the call.
    request = build_request(kind, parsed)
    api_key = _require_api_key()
    return GeminiOps(backend=backend_factory(api_key)).dispatch(request)


def _output_option(parsed: ParsedArgs) -> Optional[str]:
    output = parsed.get("output")
    if output is True:
        raise InvalidArgumentError("Option --output expects a value.")
    return output


def _save_images(result: ServiceResponse, output: Optional[str], *, prefix: str) -> None:
    for path in write_artifacts(result.artifacts, output, prefix=prefix):
        print(f"Saved: {path}")


def _cmd_generate(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    if parsed.images:
        _note(f"Attaching {len(parsed.images)} image(s)...")
    result = _dispatch(OperationKind.GENERATE, parsed, backend_factory)
    print(result.text or "")
    _print_usage_footer(result.usage)
    return 0


def _cmd_image(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    output = _output_option(parsed)
    _note("Generating image...")
    result = _dispatch(OperationKind.IMAGE, parsed, backend_factory)
    if result.text:
        print(f"Model comment: {result.text}\n")
    _save_images(result, output, prefix="output")
    _print_usage_footer(result.usage)
    return 0


def _cmd_upscale(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    output = _output_option(parsed)
    _note("Upscaling image...")
    result = _dispatch(OperationKind.UPSCALE, parsed, backend_factory)
    _save_images(result, output, prefix="upscaled")
    return 0


def _cmd_edit(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    output = _output_option(parsed)
    _note("Editing image...")
    result = _dispatch(OperationKind.EDIT, parsed, backend_factory)
    _save_images(result, output, prefix="edited")
    return 0


def _cmd_svg(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    output = _output_option(parsed) or "output.svg"
    _note("Generating SVG...")
    result = _dispatch(OperationKind.SVG, parsed, backend_factory)
    print(f"Saved: {write_svg(result.svg, output)}")
    _print_usage_footer(result.usage)
    return 0


def _cmd_segment(parsed: ParsedArgs, backend_factory: BackendFactory) -> int:
    output_dir = _output_option(parsed)
    _note("Segmenting image...")
    result = _dispatch(OperationKind.SEGMENT, parsed, backend_factory)

    print(f"Found {len(result.masks)} objects:\n")
    for i, mask in enumerate(result.masks, start=1):
        print(f"{i}. {mask.label}")
        print(f"   Box: {format_box(mask.box_2d)}")

    if output_dir:
        write_masks(result.masks, output_dir)
        print(f"\nSaved {len(result.masks)} masks to: {output_dir}")

    _print_usage_footer(result.usage)
    return 0


COMMANDS: Dict[str, Callable[[ParsedArgs, BackendFactory], int]] = {
    OperationKind.GENERATE.value: _cmd_generate,
    OperationKind.IMAGE.value: _cmd_image,
    OperationKind.UPSCALE.value: _cmd_upscale,
    OperationKind.EDIT.value: _cmd_edit,
    OperationKind.SVG.value: _cmd_svg,
    OperationKind.SEGMENT.value: _cmd_segment,
}


def _run(fn: Callable[[], int], *, usage_hint: str) -> int:
    """Outermost error boundary: errors become `Error: ...` on stderr and exit status 1."""
    try:
        return int(fn())
    except InvalidArgumentError as e:
        print(f"Error: {e}", file=sys.stderr)
        print(usage_hint, file=sys.stderr)
        return 1
    except (GeminiOpsError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run_command(
    command: str,
    tokens: Sequence[str],
    *,
    backend_factory: Optional[BackendFactory] = None,
    mode: str = SCAN,
    usage_hint: str = 'Run "gemini-ops help" for usage',
) -> int:
    handler = COMMANDS[command]
    factory = backend_factory or _default_backend_factory
    kind = OperationKind(command)
    return _run(lambda: handler(_normalize(kind, tokens, mode=mode), factory), usage_hint=usage_hint)


def main(argv: Optional[Sequence[str]] = None, *, backend_factory: Optional[BackendFactory] = None) -> int:
    _configure_logging()
    args: List[str] = list(argv) if argv is not None else sys.argv[1:]
    command = args[0] if args else None

    if command in {"help", "--help", "-h"}:
        print(USAGE)
        return 0
    if command is None:
        print(USAGE, file=sys.stderr)
        return 1
    if command not in COMMANDS:
        print(f"Unknown command: {command}", file=sys.stderr)
        print('Run "gemini-ops help" for usage', file=sys.stderr)
        return 1
    return run_command(command, args[1:], backend_factory=backend_factory)


def _script_main(command: str, usage_hint: str, *, mode: str = SCAN) -> Callable[..., int]:
    def _main(argv: Optional[Sequence[str]] = None, *, backend_factory: Optional[BackendFactory] = None) -> int:
        _configure_logging()
        args = list(argv) if argv is not None else sys.argv[1:]
        return run_command(command, args, backend_factory=backend_factory, mode=mode, usage_hint=usage_hint)

    _main.__name__ = f"{command}_main"
    return _main


# Standalone scripts: one command each, no command token.
ask_main = _script_main(OperationKind.GENERATE.value, ASK_USAGE, mode=PROMPT_TAIL)
image_main = _script_main(OperationKind.IMAGE.value, 'Usage: gemini-image "prompt" [options]')
upscale_main = _script_main(OperationKind.UPSCALE.value, "Usage: gemini-upscale <input-image> [options]")
edit_main = _script_main(OperationKind.EDIT.value, 'Usage: gemini-edit <input-image> "edit prompt" [options]')
svg_main = _script_main(OperationKind.SVG.value, 'Usage: gemini-svg "prompt" [options]')
segment_main = _script_main(OperationKind.SEGMENT.value, "Usage: gemini-segment <input-image> [options]")


if __name__ == "__main__":
    raise SystemExit(main())
