from __future__ import annotations

import os
import re
import time
from pathlib import Path
from typing import List, Optional, Sequence, Union

from .types import Artifact, SegmentationMask, Usage


PathLike = Union[str, Path]


def _now_ms() -> int:
    return int(time.time() * 1000)


def extension_for_mime_type(mime_type: Optional[str], default: str = "png") -> str:
    """`image/jpeg` -> `jpeg`, `image/svg+xml` -> `svg`; `default` when there is no subtype."""
    ct = str(mime_type or "").strip().lower()
    if "/" not in ct:
        return default
    subtype = ct.split("/", 1)[1].split(";", 1)[0].split("+", 1)[0].strip()
    return subtype or default


def indexed_path(path: PathLike, index: int) -> str:
    """Insert a 1-based index before the extension (`name.png` -> `name_1.png`, `name` -> `name_1`)."""
    root, ext = os.path.splitext(str(path))
    return f"{root}_{int(index)}{ext}"


def output_paths(
    artifacts: Sequence[Artifact],
    output: Optional[PathLike] = None,
    *,
    prefix: str = "output",
    now_ms: Optional[int] = None,
) -> List[str]:
    """Target path for each artifact.

    One artifact: `output` verbatim, or `<prefix>_<epoch-ms>.<ext>`.
    Several: the indexed form of `output` (or of the synthesized name).
    """
    if not artifacts:
        return []
    ts = _now_ms() if now_ms is None else int(now_ms)
    if len(artifacts) == 1:
        if output:
            return [str(output)]
        return [f"{prefix}_{ts}.{extension_for_mime_type(artifacts[0].mime_type)}"]

    out: List[str] = []
    for i, artifact in enumerate(artifacts, start=1):
        base = str(output) if output else f"{prefix}_{ts}.{extension_for_mime_type(artifact.mime_type)}"
        out.append(indexed_path(base, i))
    return out


def write_artifacts(
    artifacts: Sequence[Artifact],
    output: Optional[PathLike] = None,
    *,
    prefix: str = "output",
    now_ms: Optional[int] = None,
) -> List[Path]:
    """Write each artifact's bytes, in order. Files written before a failure are left in place."""
    written: List[Path] = []
    for artifact, target in zip(artifacts, output_paths(artifacts, output, prefix=prefix, now_ms=now_ms)):
        p = Path(target)
        p.write_bytes(bytes(artifact.data))
        written.append(p)
    return written


def write_svg(svg: str, path: PathLike) -> Path:
    p = Path(path)
    p.write_text(str(svg), encoding="utf-8")
    return p


def mask_filename(index: int, label: str) -> str:
    safe = re.sub(r"\s+", "_", str(label))
    return f"mask_{int(index)}_{safe}.png"


def write_masks(masks: Sequence[SegmentationMask], directory: PathLike) -> List[Path]:
    d = Path(directory)
    d.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for i, mask in enumerate(masks, start=1):
        p = d / mask_filename(i, mask.label)
        p.write_bytes(bytes(mask.mask))
        written.append(p)
    return written


def format_box(box: Sequence[float]) -> str:
    return "[" + ", ".join(str(v) for v in box) + "]"


def format_usage(usage: Optional[Usage]) -> Optional[str]:
    if usage is None:
        return None
    return (
        f"Tokens: {usage.prompt_tokens} prompt, "
        f"{usage.completion_tokens} completion, "
        f"{usage.total_tokens} total"
    )
